"""Middleware registrations and the instrumentation shim."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Union

from .constants import EVENT_NAME, PAYLOAD_MIDDLEWARE_KEY
from .telemetry import TelemetryPublisher
from .types import Handler, MiddlewareFactory, Request, Response


@dataclass(frozen=True, eq=False)
class Middleware:
    """One registration in a stack: a factory plus its construction arguments.

    Equality is left as object identity. Lookups by factory go through
    :meth:`matches` / :func:`same_middleware`, which ignore the arguments.
    """

    klass: MiddlewareFactory
    args: tuple[Any, ...] = ()
    kwargs: Mapping[str, Any] = field(default_factory=dict)
    block: Optional[Callable[..., Any]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))
        object.__setattr__(self, "kwargs", MappingProxyType(dict(self.kwargs)))

    @property
    def name(self) -> Optional[str]:
        return getattr(self.klass, "__name__", None)

    def matches(self, target: Any) -> bool:
        """Return True when ``target`` refers to the same factory."""

        return same_middleware(self, target)

    def display_name(self) -> str:
        if inspect.isclass(self.klass):
            return _qualified_name(self.klass)
        return _qualified_name(type(self.klass))

    def build(self, app: Handler) -> Handler:
        """Instantiate the factory around ``app``."""

        if self.block is not None:
            return self.klass(app, *self.args, block=self.block, **self.kwargs)
        return self.klass(app, *self.args, **self.kwargs)

    def build_instrumented(
        self,
        app: Handler,
        telemetry: TelemetryPublisher,
        event_name: str = EVENT_NAME,
    ) -> "InstrumentationProxy":
        return InstrumentationProxy(self.build(app), self.display_name(), telemetry, event_name)

    def __repr__(self) -> str:
        return self.display_name()


def same_middleware(left: Any, right: Any) -> bool:
    """Compare two registrations, or a registration and a bare factory, by factory."""

    left_klass = _factory_of(left)
    right_klass = _factory_of(right)
    if left_klass is None or right_klass is None:
        return False
    return left_klass == right_klass


def _qualified_name(cls: type) -> str:
    module = getattr(cls, "__module__", None)
    if not module or module == "builtins":
        return cls.__qualname__
    return f"{module}.{cls.__qualname__}"


def _factory_of(value: Any) -> Optional[Any]:
    if isinstance(value, Middleware):
        return value.klass
    if isinstance(value, (int, str)) or value is None:
        return None
    return value


class InstrumentationProxy:
    """Wraps one built middleware and reports every call as a telemetry span."""

    def __init__(
        self,
        middleware: Handler,
        class_name: str,
        telemetry: TelemetryPublisher,
        event_name: str = EVENT_NAME,
    ) -> None:
        self._middleware = middleware
        self._telemetry = telemetry
        self._event_name = event_name
        self._payload = MappingProxyType({PAYLOAD_MIDDLEWARE_KEY: class_name})

    @property
    def middleware(self) -> Handler:
        return self._middleware

    @property
    def payload(self) -> Mapping[str, object]:
        return self._payload

    def __call__(self, request: Request) -> Response:
        with self._telemetry.instrument(self._event_name, self._payload):
            return self._middleware(request)

    def __repr__(self) -> str:
        return f"InstrumentationProxy({self._payload[PAYLOAD_MIDDLEWARE_KEY]})"


Target = Union[int, MiddlewareFactory, Middleware]


__all__ = ["InstrumentationProxy", "Middleware", "Target", "same_middleware"]
