from collections import deque
from typing import Callable, Optional

from .protocol_def import DEFAULT_MIN_DELAY, LEADING_CRLF, NEWLINE


class OutboundQueue:
    """
    Pending commands, released one at a time with at least `min_delay` seconds in between.
    Command stations can be overwhelmed by bursts.
    """

    def __init__(self, min_delay=DEFAULT_MIN_DELAY, now: float = 0., leading_crlf=False, server=False):
        self.min_delay = min_delay
        self.last_sent_at = now
        self.leading_crlf = leading_crlf
        self.server = server  # servers terminate every line twice
        self._pending = deque()

    def __len__(self):
        return len(self._pending)

    def __repr__(self):
        return NEWLINE.join(self._pending)

    def enqueue(self, cmd: str):
        """ Multi-line text is queued as separate commands. Empty commands are ignored. """
        for line in cmd.split(NEWLINE):
            if line:
                self._pending.append(line)

    def is_ready(self, now: float) -> bool:
        return bool(self._pending) and now - self.last_sent_at >= self.min_delay

    def tick(self, now: float, write: Callable[[bytes], None]) -> Optional[str]:
        """
        Writes the next pending command if the pacing interval has elapsed.

        Args:
            now: current time in seconds
            write: transport write function

        Returns:
            The command that was written or `None`.
        """
        if not self.is_ready(now):
            return None
        cmd = self._pending.popleft()
        self.send(cmd, write)
        self.last_sent_at = now
        return cmd

    def send(self, cmd: str, write: Callable[[bytes], None]):
        """ Writes `cmd` immediately, bypassing the queue. """
        data = (cmd + NEWLINE).encode('ascii', errors='replace')
        if self.server:
            data += NEWLINE.encode('ascii')
        if self.leading_crlf:
            data = LEADING_CRLF + data
        write(data)

    def clear(self):
        self._pending.clear()
