import pytest
from pydantic import ValidationError

from middleware_stack.config import StackConfig, TelemetryConfig
from middleware_stack.constants import EVENT_NAME


def test_defaults():
    assert StackConfig().event_name == EVENT_NAME
    telemetry = TelemetryConfig()
    assert telemetry.enabled
    assert telemetry.sample_rate == 1.0
    assert telemetry.include_errors


def test_event_name_is_stripped():
    assert StackConfig(event_name="  custom.event ").event_name == "custom.event"


def test_blank_event_name_rejected():
    with pytest.raises(ValidationError):
        StackConfig(event_name="   ")


@pytest.mark.parametrize("rate", [-0.1, 1.5])
def test_sample_rate_bounds(rate):
    with pytest.raises(ValidationError):
        TelemetryConfig(sample_rate=rate)
