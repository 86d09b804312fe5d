"""Ordered middleware registry and its compiler into a single handler chain."""

from __future__ import annotations

import logging
from functools import reduce
from typing import Any, Callable, Iterator, Optional, Union, overload

from .config import StackConfig
from .errors import FrozenStackError, MiddlewareNotFoundError
from .middleware import Middleware, Target
from .telemetry import TelemetryPublisher, default_publisher
from .types import Handler, MiddlewareFactory

LOGGER = logging.getLogger(__name__)


class MiddlewareStack:
    """Mutable list of middleware registrations compiled once into a handler.

    Edit the stack during application boot, call :meth:`build` once, then
    serve requests through the returned handler. The stack does no locking:
    it must not be edited while it is being built, and a built stack is
    frozen for good. Use :meth:`copy` to derive a new, editable stack.
    """

    def __init__(
        self,
        configure: Optional[Callable[["MiddlewareStack"], None]] = None,
        *,
        telemetry: Optional[TelemetryPublisher] = None,
        config: Optional[StackConfig] = None,
    ) -> None:
        self.config = config or StackConfig()
        self._telemetry = telemetry
        self._middlewares: list[Middleware] = []
        self._frozen = False
        if configure is not None:
            configure(self)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def telemetry(self) -> TelemetryPublisher:
        return self._telemetry or default_publisher()

    def attach_telemetry(self, telemetry: TelemetryPublisher) -> None:
        self._telemetry = telemetry

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def middlewares(self) -> tuple[Middleware, ...]:
        return tuple(self._middlewares)

    @property
    def last(self) -> Optional[Middleware]:
        return self._middlewares[-1] if self._middlewares else None

    def at(self, index: int) -> Optional[Middleware]:
        """Return the entry at ``index`` or None when out of range."""

        if -len(self._middlewares) <= index < len(self._middlewares):
            return self._middlewares[index]
        return None

    def __len__(self) -> int:
        return len(self._middlewares)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(list(self._middlewares))

    @overload
    def __getitem__(self, index: int) -> Middleware: ...

    @overload
    def __getitem__(self, index: slice) -> list[Middleware]: ...

    def __getitem__(self, index: Union[int, slice]) -> Union[Middleware, list[Middleware]]:
        return self._middlewares[index]

    def __contains__(self, target: Any) -> bool:
        return any(middleware.matches(target) for middleware in self._middlewares)

    def __repr__(self) -> str:
        names = ", ".join(repr(middleware) for middleware in self._middlewares)
        return f"MiddlewareStack([{names}])"

    # ------------------------------------------------------------------
    # Copying
    # ------------------------------------------------------------------
    def copy(self) -> "MiddlewareStack":
        """Return an editable stack sharing this stack's registrations."""

        clone = type(self)(telemetry=self._telemetry, config=self.config)
        clone._middlewares = list(self._middlewares)
        return clone

    __copy__ = copy

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def use(
        self,
        klass: MiddlewareFactory,
        /,
        *args: Any,
        block: Optional[Callable[..., Any]] = None,
        **kwargs: Any,
    ) -> None:
        """Register ``klass`` at the end of the stack (innermost position)."""

        self._ensure_mutable("append")
        self._insert(len(self._middlewares), klass, args, kwargs, block)

    append = use

    def unshift(
        self,
        klass: MiddlewareFactory,
        /,
        *args: Any,
        block: Optional[Callable[..., Any]] = None,
        **kwargs: Any,
    ) -> None:
        """Register ``klass`` at the front of the stack (outermost position)."""

        self._ensure_mutable("prepend")
        self._insert(0, klass, args, kwargs, block)

    prepend = unshift

    def insert_before(
        self,
        target: Target,
        klass: MiddlewareFactory,
        /,
        *args: Any,
        block: Optional[Callable[..., Any]] = None,
        **kwargs: Any,
    ) -> None:
        self._ensure_mutable("insert")
        index = self._assert_index(target, "before", allow_end=True)
        self._insert(index, klass, args, kwargs, block)

    insert = insert_before

    def insert_after(
        self,
        target: Target,
        klass: MiddlewareFactory,
        /,
        *args: Any,
        block: Optional[Callable[..., Any]] = None,
        **kwargs: Any,
    ) -> None:
        self._ensure_mutable("insert")
        index = self._assert_index(target, "after")
        self._insert(index + 1, klass, args, kwargs, block)

    def swap(
        self,
        target: Target,
        klass: MiddlewareFactory,
        /,
        *args: Any,
        block: Optional[Callable[..., Any]] = None,
        **kwargs: Any,
    ) -> None:
        """Replace the first entry matching ``target`` in place."""

        self._ensure_mutable("swap")
        index = self._assert_index(target, "before")
        replacement = self._build_middleware(klass, args, kwargs, block)
        LOGGER.debug("Swapping %r for %r", self._middlewares[index], replacement)
        self._middlewares[index] = replacement

    def delete(self, target: Target) -> None:
        """Remove every entry matching ``target``; no-op when none match."""

        self._ensure_mutable("delete")
        kept = [m for m in self._middlewares if not m.matches(target)]
        if len(kept) != len(self._middlewares):
            LOGGER.debug("Deleting %d entries matching %r", len(self._middlewares) - len(kept), target)
        self._middlewares[:] = kept

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------
    def build(self, app: Optional[Handler] = None) -> Handler:
        """Freeze the stack and fold it around ``app``.

        The first registered middleware ends up outermost. Also usable as a
        decorator over the terminal handler.
        """

        if app is None:
            raise ValueError("MiddlewareStack.build requires a terminal application")

        telemetry = self.telemetry
        event_name = self.config.event_name
        instrumenting = telemetry.listening(event_name)
        self._frozen = True
        LOGGER.debug(
            "Building %d middleware around %r (instrumented=%s)",
            len(self._middlewares),
            app,
            instrumenting,
        )

        def wrap(inner: Handler, middleware: Middleware) -> Handler:
            if instrumenting:
                return middleware.build_instrumented(inner, telemetry, event_name)
            return middleware.build(inner)

        return reduce(wrap, reversed(self._middlewares), app)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _ensure_mutable(self, operation: str) -> None:
        if self._frozen:
            raise FrozenStackError(operation)

    def _assert_index(self, target: Target, where: str, *, allow_end: bool = False) -> int:
        """Resolve ``target`` to the position of an existing entry.

        Integers follow list indexing: negatives count from the end. Only
        ``allow_end`` accepts ``len(self)``, the slot past the last entry.
        """

        if isinstance(target, int) and not isinstance(target, bool):
            size = len(self._middlewares)
            index = target + size if target < 0 else target
            upper = size if allow_end else size - 1
            if 0 <= index <= upper:
                return index
            raise MiddlewareNotFoundError(target, where)
        for index, middleware in enumerate(self._middlewares):
            if middleware.matches(target):
                return index
        raise MiddlewareNotFoundError(target, where)

    def _insert(
        self,
        index: int,
        klass: MiddlewareFactory,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        block: Optional[Callable[..., Any]],
    ) -> None:
        middleware = self._build_middleware(klass, args, kwargs, block)
        LOGGER.debug("Inserting %r at position %d", middleware, index)
        self._middlewares.insert(index, middleware)

    @staticmethod
    def _build_middleware(
        klass: MiddlewareFactory,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        block: Optional[Callable[..., Any]],
    ) -> Middleware:
        return Middleware(klass, args, kwargs, block)


__all__ = ["MiddlewareStack"]
