"""Common data types used across the middleware stack package."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from pydantic import BaseModel, Field

Request = Any
Response = Any


class Handler(Protocol):
    """Anything that turns a request into a response."""

    def __call__(self, request: Request) -> Response:  # pragma: no cover - protocol definition
        ...


class MiddlewareFactory(Protocol):
    """Callable producing a handler that wraps ``app``.

    Usually a class whose instances implement :class:`Handler`.
    """

    def __call__(self, app: Handler, *args: Any, **kwargs: Any) -> Handler:  # pragma: no cover
        ...


class MiddlewareEvent(BaseModel):
    """One instrumented span reported to telemetry sinks."""

    event: str
    payload: dict[str, object] = Field(default_factory=dict)
    duration_ms: float = Field(default=0.0, ge=0.0)
    error: Optional[str] = Field(
        default=None,
        description="repr() of the exception raised inside the span, if any.",
    )

    @property
    def failed(self) -> bool:
        return self.error is not None


__all__ = ["Handler", "MiddlewareEvent", "MiddlewareFactory", "Request", "Response"]
