"""Public package interface for middleware_stack."""

from .config import StackConfig, TelemetryConfig
from .constants import EVENT_NAME
from .errors import FrozenStackError, MiddlewareNotFoundError, MiddlewareStackError
from .middleware import InstrumentationProxy, Middleware, same_middleware
from .stack import MiddlewareStack
from .telemetry import (
    InMemoryTelemetrySink,
    LoggingTelemetrySink,
    TelemetryPublisher,
    TelemetrySink,
    default_publisher,
    set_default_publisher,
)
from .types import Handler, MiddlewareEvent, MiddlewareFactory

__all__ = [
    "EVENT_NAME",
    "FrozenStackError",
    "Handler",
    "InMemoryTelemetrySink",
    "InstrumentationProxy",
    "LoggingTelemetrySink",
    "Middleware",
    "MiddlewareEvent",
    "MiddlewareFactory",
    "MiddlewareNotFoundError",
    "MiddlewareStack",
    "MiddlewareStackError",
    "StackConfig",
    "TelemetryConfig",
    "TelemetryPublisher",
    "TelemetrySink",
    "default_publisher",
    "set_default_publisher",
    "same_middleware",
]
