"""Digest Handshake — nonce creation and SHA-1 challenge/response verification.

Invariants:
    - Nonce is 20 bytes: 8 bytes LE epoch seconds, 4 bytes LE sub-second millis, 8 random bytes
    - Nonce travels as 40 lowercase hex characters; the digest is computed over that hex text
    - expected = SHA1(secret || ":" || nonce_hex)
    - Absent reply → MissingSecretError, non-hex reply → DigestDecodeError,
      any other mismatch (including wrong length) → WrongDigestError
    - The comparison always runs over the full digest (constant time)
"""

import binascii
import hashlib
import hmac
import secrets
import struct
import time

from ta_agi_doorbell.core.domain_types import NonceHex
from ta_agi_doorbell.core.errors import (
    DigestDecodeError,
    MissingSecretError,
    WrongDigestError,
)


NONCE_LENGTH: int = 20
DIGEST_LENGTH: int = 20
_RANDOM_FILL_LENGTH: int = 8


def create_nonce(
    now_ns: int | None = None, random_fill: bytes | None = None,
) -> NonceHex:
    """Create a 20-byte nonce with 8 bytes of randomness, encoded as hex."""
    if now_ns is None:
        now_ns = time.time_ns()
    if random_fill is None:
        random_fill = secrets.token_bytes(_RANDOM_FILL_LENGTH)
    if len(random_fill) != _RANDOM_FILL_LENGTH:
        raise ValueError(f"random_fill must be {_RANDOM_FILL_LENGTH} bytes")
    seconds, remainder_ns = divmod(now_ns, 1_000_000_000)
    millis = remainder_ns // 1_000_000
    raw = struct.pack("<QI", seconds, millis) + random_fill
    return NonceHex(raw.hex())


def expected_digest(secret: str, nonce_hex: str) -> bytes:
    """SHA-1 over secret, a colon and the hex nonce."""
    hasher = hashlib.sha1()
    hasher.update(secret.encode("utf-8"))
    hasher.update(b":")
    hasher.update(nonce_hex.encode("ascii"))
    return hasher.digest()


def digest_expression(variable: str, nonce_hex: str) -> str:
    """Dialplan expression the caller evaluates with its own copy of the secret."""
    return f"${{SHA1(${{{variable}}}:{nonce_hex})}}"


def verify_digest(expected: bytes, returned: str | None, variable: str) -> None:
    """Raise the matching AuthenticationError unless `returned` is hex(expected)."""
    if returned is None:
        raise MissingSecretError(variable)
    try:
        decoded = binascii.unhexlify(returned)
    except ValueError as e:
        raise DigestDecodeError() from e
    if not hmac.compare_digest(decoded, expected):
        raise WrongDigestError()
