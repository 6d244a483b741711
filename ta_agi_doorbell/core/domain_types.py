"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - VirtualNode and PdoIndex are bounded 0–255; PdoIndex is always zero-based
    - All valid states encoded as Enums — no raw string matching
"""

from enum import Enum
from typing import NewType


# ─── Value Types ─────────────────────────────────────────────────

VirtualNode = NewType("VirtualNode", int)   # 0–255
PdoIndex = NewType("PdoIndex", int)         # 0–255, zero-based
NonceHex = NewType("NonceHex", str)         # 40 lowercase hex chars


# ─── Constants ───────────────────────────────────────────────────

DEFAULT_AGI_PORT: int = 4573
DEFAULT_CMI_PORT: int = 5442
DEFAULT_HOLD_SECONDS: float = 15.0
DEFAULT_READ_TIMEOUT_SECONDS: float = 30.0
DEFAULT_DIGEST_VARIABLE: str = "BLAZING_AGI_DIGEST_SECRET"


# ─── Enums ───────────────────────────────────────────────────────

class PulseValue(str, Enum):
    """Logical signal sent to a digital CMI output."""
    ON = "on"
    OFF = "off"

    @property
    def as_bool(self) -> bool:
        return self is PulseValue.ON


class PulseState(str, Enum):
    """Per-actuation lifecycle. FAILED is terminal, there is no way back to IDLE."""
    IDLE = "idle"
    CHANNEL_OPEN = "channel_open"
    PULSE_ON = "pulse_on"
    HOLDING = "holding"
    PULSE_OFF = "pulse_off"
    DONE = "done"
    FAILED = "failed"


class RequestOperation(str, Enum):
    """Closed set of operations a request goes through."""
    AUTHENTICATE = "authenticate"
    RESOLVE_AND_ACTUATE = "resolve_and_actuate"


# Fixed order applied to every request, authentication always first
PIPELINE: tuple[RequestOperation, ...] = (
    RequestOperation.AUTHENTICATE,
    RequestOperation.RESOLVE_AND_ACTUATE,
)
