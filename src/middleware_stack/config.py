"""Configuration models for the middleware stack."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from .constants import EVENT_NAME


class TelemetryConfig(BaseModel):
    """Controls how instrumentation events are published."""

    enabled: bool = True
    sample_rate: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Fraction of events delivered to sinks.",
    )
    include_errors: bool = Field(
        default=True,
        description="Attach repr() of the raised exception to failed spans.",
    )


class StackConfig(BaseModel):
    """Settings applied when a stack is compiled."""

    event_name: str = Field(
        default=EVENT_NAME,
        description="Event reported around every middleware call when someone listens.",
    )

    @field_validator("event_name")
    @classmethod
    def _strip_event_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("event_name must be non-empty")
        return value


__all__ = ["StackConfig", "TelemetryConfig"]
