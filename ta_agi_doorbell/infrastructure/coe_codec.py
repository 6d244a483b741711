"""CoE (CAN over Ethernet) v2 packet codec for Technische Alternative CMIs.

Frame format:
  - Header: version major (0x02), version minor (0x00), total length, payload count
  - Payloads, 8 bytes each: node, pdo index (u16 LE, zero-based), unit id, value (i32 LE)

A packet with one digital payload is 12 bytes long.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from ta_agi_doorbell.core.domain_types import PulseValue
from ta_agi_doorbell.core.errors import CodecError

VERSION_MAJOR = 0x02
VERSION_MINOR = 0x00

HEADER_LENGTH = 4
PAYLOAD_LENGTH = 8
MAX_PAYLOADS = 31

# TA unit id for digital "off/on" values
UNIT_DIGITAL_ON_OFF = 43

_HEADER = struct.Struct("<BBBB")
_PAYLOAD = struct.Struct("<BHBi")


@dataclass(frozen=True)
class Payload:
    node: int
    pdo_index: int
    unit: int
    value: int

    @classmethod
    def digital(cls, node: int, pdo_index: int, value: PulseValue) -> Payload:
        return cls(node, pdo_index, UNIT_DIGITAL_ON_OFF, 1 if value.as_bool else 0)

    def to_bytes(self) -> bytes:
        if not 0 <= self.node <= 255:
            raise CodecError(f"Node must be 0-255, got {self.node}")
        if not 0 <= self.pdo_index <= 255:
            raise CodecError(f"PDO index must be 0-255, got {self.pdo_index}")
        if not 0 <= self.unit <= 255:
            raise CodecError(f"Unit must be 0-255, got {self.unit}")
        return _PAYLOAD.pack(self.node, self.pdo_index, self.unit, self.value)


@dataclass(frozen=True)
class Packet:
    payloads: tuple[Payload, ...]

    def to_bytes(self) -> bytes:
        count = len(self.payloads)
        if not 1 <= count <= MAX_PAYLOADS:
            raise CodecError(f"Packet needs 1-{MAX_PAYLOADS} payloads, got {count}")
        length = HEADER_LENGTH + PAYLOAD_LENGTH * count
        header = _HEADER.pack(VERSION_MAJOR, VERSION_MINOR, length, count)
        return header + b"".join(p.to_bytes() for p in self.payloads)


def encode_digital(node: int, pdo_index: int, value: PulseValue) -> bytes:
    """Encode a single on/off value as one wire frame."""
    return Packet((Payload.digital(node, pdo_index, value),)).to_bytes()


def decode_packet(data: bytes) -> Packet:
    if len(data) < HEADER_LENGTH:
        raise CodecError(f"Packet too short: {len(data)} bytes")
    major, minor, length, count = _HEADER.unpack_from(data)
    if (major, minor) != (VERSION_MAJOR, VERSION_MINOR):
        raise CodecError(f"Unsupported CoE version {major}.{minor}")
    if length != len(data) or length != HEADER_LENGTH + PAYLOAD_LENGTH * count:
        raise CodecError(
            f"Length mismatch: header says {length} bytes / {count} payloads, got {len(data)} bytes"
        )
    payloads = tuple(
        Payload(*_PAYLOAD.unpack_from(data, HEADER_LENGTH + i * PAYLOAD_LENGTH))
        for i in range(count)
    )
    return Packet(payloads)
