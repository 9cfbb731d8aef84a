from typing import Optional

from .helper import to_int, to_float
from .protocol_def import FAST_CLOCK_PERIOD


class FastClock:
    """
    Simulated layout time in seconds since 1970 (fast clock time), advanced by `rate` once per real second.
    A rate of 0 means the clock is stopped.
    """

    def __init__(self, now: float = 0.):
        self.value = 0.
        self.rate = 0.
        self.timer = now

    def __repr__(self):
        return f"{self.value:.0f} x{self.rate}"

    def tick(self, now: float) -> bool:
        """ Returns whether the simulated time advanced. """
        if now - self.timer < FAST_CLOCK_PERIOD:
            return False
        self.timer = now
        if self.rate == 0:
            return False
        self.value += self.rate
        return True

    def set_from_wire(self, time_text: str, rate_text: Optional[str] = None):
        """ Overwrites the time and, if given, the rate with the values sent by the server. """
        self.value = float(to_int(time_text))
        if rate_text is not None:
            self.rate = to_float(rate_text)
