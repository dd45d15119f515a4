from __future__ import annotations

from typing import List

from .records import RECORD_SIZE, Record, decode_record


class FrameReader:
    """Turns an arbitrarily chunked byte stream into fixed-width records.

    Pure buffer logic (no sockets). Bytes that do not yet form a full frame stay
    buffered until the next `feed()`; whatever is left at end of stream is
    dropped with `discard()`.
    """

    def __init__(self, frame_size: int = RECORD_SIZE):
        self.frame_size = int(frame_size)
        self._buf = bytearray()
        self.frames: int = 0
        self.bytes_in: int = 0

    @property
    def pending(self) -> int:
        return len(self._buf)

    def feed(self, chunk: bytes) -> List[Record]:
        if not chunk:
            return []
        self._buf.extend(chunk)
        self.bytes_in += len(chunk)

        out: List[Record] = []
        while len(self._buf) >= self.frame_size:
            out.append(decode_record(self._buf, 0))
            del self._buf[: self.frame_size]
        self.frames += len(out)
        return out

    def discard(self) -> int:
        """Drop a partial trailing frame. Returns the number of bytes dropped."""
        n = len(self._buf)
        self._buf.clear()
        return n
