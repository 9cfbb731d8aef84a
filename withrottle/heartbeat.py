class Heartbeat:
    """
    Keep-alive requirement announced by the server (`*<seconds>`).
    The client sends traffic every half period, 0 disables it.
    """

    def __init__(self, now: float = 0.):
        self.period = 0
        self.timer = now

    @property
    def enabled(self) -> bool:
        return self.period > 0

    def set_period(self, seconds: int) -> bool:
        """ Returns whether the heartbeat is now enabled. """
        self.period = seconds
        return self.enabled

    def is_due(self, now: float) -> bool:
        return self.enabled and now - self.timer >= .5 * self.period

    def reset(self, now: float):
        self.timer = now
