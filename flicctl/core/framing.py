"""Length-prefixed framing for the flicd TCP stream.

Frame layout::

    +-----------+---------------------+
    |  Length   |       Payload       |
    |  2 bytes  |    Length bytes     |
    +-----------+---------------------+

- Length: little-endian byte count of the payload
- Payload: opcode byte followed by the opcode's fields
"""

from __future__ import annotations

import logging

from flicctl.core.errors import FrameTooLargeError

LOGGER = logging.getLogger(__name__)

HEADER_SIZE = 2
MAX_PAYLOAD_SIZE = 0xFFFF


def build_frame(payload: bytes) -> bytes:
    """Prepend the 2-byte little-endian length header to ``payload``."""
    if len(payload) > MAX_PAYLOAD_SIZE:
        raise FrameTooLargeError(
            f"Payload of {len(payload)} bytes exceeds the {MAX_PAYLOAD_SIZE}-byte frame limit"
        )
    return len(payload).to_bytes(HEADER_SIZE, "little") + payload


class PacketFramer:
    r"""Extract complete payloads from a TCP byte stream.

    A read may deliver part of a frame, exactly one frame, or several frames;
    incomplete data stays buffered until the rest arrives.

    Example:
        framer = PacketFramer()
        assert framer.feed(b"\x02\x00\x0d") == []
        assert framer.feed(b"\x01") == [b"\x0d\x01"]

    """

    def __init__(self) -> None:
        self.buffer: bytearray = bytearray()

    def reset(self) -> None:
        self.buffer = bytearray()

    def feed(self, data: bytes) -> list[bytes]:
        """Add data to the buffer and return every payload now complete.

        Zero-length frames are consumed and not returned.
        """
        self.buffer.extend(data)
        packets: list[bytes] = []
        while len(self.buffer) >= HEADER_SIZE:
            length = self.buffer[0] | (self.buffer[1] << 8)
            total = HEADER_SIZE + length
            if len(self.buffer) < total:
                break
            packet = bytes(self.buffer[HEADER_SIZE:total])
            del self.buffer[:total]
            if packet:
                packets.append(packet)
            else:
                LOGGER.debug("Discarding zero-length frame")
        return packets
