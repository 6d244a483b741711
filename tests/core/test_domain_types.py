"""Domain Types — constants and pipeline order."""

from ta_agi_doorbell.core.domain_types import (
    DEFAULT_AGI_PORT,
    DEFAULT_CMI_PORT,
    DEFAULT_HOLD_SECONDS,
    PIPELINE,
    PulseValue,
    RequestOperation,
)


def test_defaults():
    assert DEFAULT_AGI_PORT == 4573
    assert DEFAULT_CMI_PORT == 5442
    assert DEFAULT_HOLD_SECONDS == 15.0


def test_authentication_runs_first():
    assert PIPELINE[0] is RequestOperation.AUTHENTICATE
    assert PIPELINE == (RequestOperation.AUTHENTICATE, RequestOperation.RESOLVE_AND_ACTUATE)


def test_pulse_value_as_bool():
    assert PulseValue.ON.as_bool is True
    assert PulseValue.OFF.as_bool is False
