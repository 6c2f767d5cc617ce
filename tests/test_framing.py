from __future__ import annotations

import pytest

from flicctl.core.errors import FrameTooLargeError
from flicctl.core.framing import MAX_PAYLOAD_SIZE, PacketFramer, build_frame


def test_build_frame_prefixes_little_endian_length() -> None:
    assert build_frame(b"\x07\x01\x00\x00\x00") == b"\x05\x00\x07\x01\x00\x00\x00"


def test_build_frame_rejects_oversized_payload() -> None:
    with pytest.raises(FrameTooLargeError):
        build_frame(b"\x00" * (MAX_PAYLOAD_SIZE + 1))


def test_feed_returns_every_complete_frame() -> None:
    framer = PacketFramer()
    data = build_frame(b"\x0d\x01\x00\x00\x00") + build_frame(b"\x08" + b"\x01" * 6)
    assert framer.feed(data) == [b"\x0d\x01\x00\x00\x00", b"\x08" + b"\x01" * 6]
    assert framer.buffer == bytearray()


def test_feed_is_invariant_under_any_split() -> None:
    first = b"\x0d\x2a\x00\x00\x00"
    second = b"\x06\x05\x00\x00\x00\x04\x01\x03\x00\x00\x00"
    data = build_frame(first) + build_frame(b"") + build_frame(second)

    for split in range(len(data) + 1):
        framer = PacketFramer()
        packets = framer.feed(data[:split]) + framer.feed(data[split:])
        assert packets == [first, second], split


def test_feed_one_byte_at_a_time() -> None:
    payload = bytes(range(1, 40))
    framer = PacketFramer()
    packets: list[bytes] = []
    for byte in build_frame(payload):
        packets.extend(framer.feed(bytes([byte])))
    assert packets == [payload]


def test_split_length_header_waits_for_second_byte() -> None:
    framer = PacketFramer()
    assert framer.feed(b"\x02") == []
    assert framer.feed(b"\x00ab") == [b"ab"]


def test_zero_length_frames_are_discarded() -> None:
    framer = PacketFramer()
    assert framer.feed(b"\x00\x00\x00\x00") == []
    assert framer.buffer == bytearray()


def test_reset_drops_partial_frame() -> None:
    framer = PacketFramer()
    framer.feed(b"\x05\x00\x0d")
    framer.reset()
    assert framer.feed(build_frame(b"\x0d\x00\x00\x00\x00")) == [b"\x0d\x00\x00\x00\x00"]
