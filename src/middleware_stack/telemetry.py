"""Telemetry publishing utilities."""

from __future__ import annotations

import logging
import random
import time
from contextlib import contextmanager
from typing import Callable, Iterator, List, Mapping, Optional, Protocol, Tuple

from .config import TelemetryConfig
from .constants import ALL_EVENTS
from .types import MiddlewareEvent

LOGGER = logging.getLogger(__name__)


class TelemetrySink(Protocol):
    """Sink that handles telemetry events."""

    def handle(self, event: MiddlewareEvent) -> None:  # pragma: no cover - protocol
        ...


class TelemetryPublisher:
    """Publish telemetry events to subscribed sinks respecting config sample rate."""

    def __init__(
        self,
        config: Optional[TelemetryConfig] = None,
        *,
        random_fn: Callable[[], float] = random.random,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.config = config or TelemetryConfig()
        self._random = random_fn
        self._clock = clock
        self._subscriptions: List[Tuple[TelemetrySink, str]] = []

    def subscribe(self, sink: TelemetrySink, event: Optional[str] = None) -> None:
        """Deliver ``event`` (or every event when omitted) to ``sink``."""

        self._subscriptions.append((sink, event or ALL_EVENTS))

    def unsubscribe(self, sink: TelemetrySink) -> None:
        self._subscriptions = [entry for entry in self._subscriptions if entry[0] is not sink]

    @contextmanager
    def subscribed(self, sink: TelemetrySink, event: Optional[str] = None):
        self.subscribe(sink, event)
        try:
            yield sink
        finally:
            self.unsubscribe(sink)

    def listening(self, event: str) -> bool:
        """Return True when at least one sink would receive ``event``."""

        if not self.config.enabled:
            return False
        return any(self._accepts(pattern, event) for _, pattern in self._subscriptions)

    @contextmanager
    def instrument(self, event: str, payload: Mapping[str, object]) -> Iterator[Mapping[str, object]]:
        """Time the enclosed block and emit one event when it exits.

        The event is emitted whether the block returns or raises; exceptions
        propagate to the caller untouched.
        """

        started = self._clock()
        error: Optional[str] = None
        try:
            yield payload
        except Exception as exc:
            if self.config.include_errors:
                error = repr(exc)
            raise
        finally:
            elapsed_ms = max(0.0, (self._clock() - started) * 1000.0)
            self.emit(
                MiddlewareEvent(
                    event=event,
                    payload=dict(payload),
                    duration_ms=elapsed_ms,
                    error=error,
                )
            )

    def emit(self, event: MiddlewareEvent) -> None:
        if not self.config.enabled:
            return
        if self._random() > self.config.sample_rate:
            return
        for sink, pattern in list(self._subscriptions):
            if not self._accepts(pattern, event.event):
                continue
            try:
                sink.handle(event)
            except Exception:
                LOGGER.exception("Telemetry sink %s failed", sink)

    @staticmethod
    def _accepts(pattern: str, event: str) -> bool:
        return pattern == ALL_EVENTS or pattern == event


class LoggingTelemetrySink:
    """Simple sink that logs events with the module logger."""

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    def handle(self, event: MiddlewareEvent) -> None:
        LOGGER.log(self.level, "Telemetry event %s", event.model_dump())


class InMemoryTelemetrySink:
    """Collects telemetry events in memory for diagnostics or testing."""

    def __init__(self) -> None:
        self.events: list[MiddlewareEvent] = []

    def handle(self, event: MiddlewareEvent) -> None:
        self.events.append(event)


_DEFAULT_PUBLISHER: Optional[TelemetryPublisher] = None


def default_publisher() -> TelemetryPublisher:
    """Return the process-wide publisher used by stacks built without one."""

    global _DEFAULT_PUBLISHER
    if _DEFAULT_PUBLISHER is None:
        _DEFAULT_PUBLISHER = TelemetryPublisher()
    return _DEFAULT_PUBLISHER


def set_default_publisher(publisher: Optional[TelemetryPublisher]) -> None:
    """Replace the process-wide publisher; ``None`` resets it lazily."""

    global _DEFAULT_PUBLISHER
    _DEFAULT_PUBLISHER = publisher


__all__ = [
    "InMemoryTelemetrySink",
    "LoggingTelemetrySink",
    "TelemetryPublisher",
    "TelemetrySink",
    "default_publisher",
    "set_default_publisher",
]
