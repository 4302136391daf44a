import struct
from typing import Dict, Iterator, Tuple

from evaluator.exceptions import LogStreamError

STDIN = 0
STDOUT = 1
STDERR = 2


class StreamDemultiplexer:
    """
    Splits the engine's multiplexed log stream by channel.

    Each frame is an 8-byte header (channel byte, three padding bytes,
    big-endian payload length) followed by the payload.
    """

    HEADER = struct.Struct(">BxxxL")
    CHANNELS = (STDIN, STDOUT, STDERR)

    def frames(self, raw: bytes) -> Iterator[Tuple[int, bytes]]:
        view = memoryview(raw)
        offset = 0
        total = len(view)

        while offset < total:
            if total - offset < self.HEADER.size:
                raise LogStreamError(
                    f"truncated_header: {total - offset} bytes at offset {offset}"
                )
            channel, length = self.HEADER.unpack_from(view, offset)
            if channel not in self.CHANNELS:
                raise LogStreamError(f"unknown_channel: {channel} at offset {offset}")
            offset += self.HEADER.size

            if total - offset < length:
                raise LogStreamError(
                    f"truncated_payload: expected {length} bytes, got {total - offset}"
                )
            yield channel, bytes(view[offset:offset + length])
            offset += length

    def demultiplex(self, raw: bytes) -> Tuple[bytes, bytes]:
        buffers: Dict[int, bytearray] = {channel: bytearray() for channel in self.CHANNELS}
        for channel, payload in self.frames(raw):
            buffers[channel] += payload

        return bytes(buffers[STDOUT]), bytes(buffers[STDERR])
