"""CoE Codec — frame layout for digital on/off payloads.

Tests cover:
    - one digital payload encodes to exactly 12 bytes with the v2 header
    - node, zero-based index, unit 43 and value land in the documented offsets
    - decode_packet reads back what encode produced and rejects malformed frames
    - range checks raise CodecError
"""

import pytest

from ta_agi_doorbell.core.domain_types import PulseValue
from ta_agi_doorbell.core.errors import CodecError
from ta_agi_doorbell.infrastructure.coe_codec import (
    UNIT_DIGITAL_ON_OFF,
    Packet,
    Payload,
    decode_packet,
    encode_digital,
)


def test_single_digital_payload_is_12_bytes():
    frame = encode_digital(2, 2, PulseValue.ON)
    assert len(frame) == 12


def test_on_frame_layout():
    frame = encode_digital(2, 2, PulseValue.ON)
    assert frame == bytes([
        0x02, 0x00, 12, 1,          # version 2.0, length, count
        2, 2, 0, UNIT_DIGITAL_ON_OFF,  # node, pdo index LE, unit
        1, 0, 0, 0,                 # value LE
    ])


def test_off_frame_differs_only_in_value():
    on = encode_digital(7, 200, PulseValue.ON)
    off = encode_digital(7, 200, PulseValue.OFF)
    assert on[:8] == off[:8]
    assert on[8:] == b"\x01\x00\x00\x00"
    assert off[8:] == b"\x00\x00\x00\x00"


def test_decode_reads_back_payload():
    packet = decode_packet(encode_digital(2, 2, PulseValue.OFF))
    assert packet.payloads == (Payload(2, 2, UNIT_DIGITAL_ON_OFF, 0),)


def test_multiple_payloads_grow_by_8_bytes():
    packet = Packet((Payload.digital(1, 0, PulseValue.ON), Payload.digital(1, 1, PulseValue.OFF)))
    frame = packet.to_bytes()
    assert len(frame) == 20
    assert frame[2] == 20
    assert frame[3] == 2
    assert decode_packet(frame) == packet


@pytest.mark.parametrize("node, index", [(256, 0), (-1, 0), (0, 256), (0, -1)])
def test_out_of_range_node_or_index_raises(node, index):
    with pytest.raises(CodecError):
        encode_digital(node, index, PulseValue.ON)


def test_empty_packet_raises():
    with pytest.raises(CodecError):
        Packet(()).to_bytes()


@pytest.mark.parametrize("frame", [
    b"",
    b"\x02\x00",
    b"\x01\x00\x0c\x01" + b"\x00" * 8,       # wrong version
    b"\x02\x00\x0c\x02" + b"\x00" * 8,       # count says 2, one payload
    b"\x02\x00\x0d\x01" + b"\x00" * 8,       # length byte wrong
])
def test_decode_rejects_malformed_frames(frame):
    with pytest.raises(CodecError):
        decode_packet(frame)
