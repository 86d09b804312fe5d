"""Static names shared by the stack, the instrumentation shim and the sinks."""

from __future__ import annotations

# Event emitted once per middleware invocation when instrumentation is on.
EVENT_NAME = "process_middleware.middleware_stack"

# Subscription key for sinks that want every event.
ALL_EVENTS = "*"

# Payload key carrying the middleware display name.
PAYLOAD_MIDDLEWARE_KEY = "middleware"
