import warnings
from typing import Callable, Optional

from .protocol_def import MAX_LINE_LENGTH

_TERMINATORS = (ord('\n'), ord('\r'))


class LineFramer:
    """Accumulates inbound bytes into protocol lines. Blank lines are absorbed, the server terminates every line twice."""

    def __init__(self, capacity=MAX_LINE_LENGTH, on_overflow: Callable[[str], None] = None):
        self.capacity = capacity
        self.on_overflow = on_overflow  # diagnostic sink, receives the discarded text
        self._buffer = bytearray()

    def feed(self, byte: int) -> Optional[str]:
        """
        Args:
            byte: next byte from the transport (0-255)

        Returns:
            The completed line without terminator, or `None` if no line was completed by this byte.
        """
        if byte in _TERMINATORS:
            if not self._buffer:
                return None
            line = self._buffer.decode('ascii', errors='replace')
            self._buffer.clear()
            return line
        self._buffer.append(byte)
        if len(self._buffer) >= self.capacity:
            discarded = self._buffer.decode('ascii', errors='replace')
            self._buffer.clear()
            warnings.warn(f"Line too long (>{self.capacity} bytes), discarding input")
            if self.on_overflow is not None:
                self.on_overflow(discarded)
        return None

    def feed_bytes(self, data: bytes):
        """ Yields every line completed by `data`. """
        for b in data:
            line = self.feed(b)
            if line is not None:
                yield line

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def reset(self):
        self._buffer.clear()
