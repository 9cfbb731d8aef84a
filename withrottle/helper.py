import re
import threading
import time
from typing import Callable, Iterator, Optional

_INT_PREFIX = re.compile(r'\s*([+-]?\d{1,18})(?!\d)')
_FLOAT_PREFIX = re.compile(r'\s*([+-]?(\d+\.?\d*|\.\d+))')


def split_fields(text: str, separator: str) -> Iterator[str]:
    """
    Lazily yields the substrings of `text` between occurrences of the multi-character `separator`.
    The terminal field consumes the remainder. Call again to restart.
    """
    start = 0
    while True:
        end = text.find(separator, start)
        if end < 0:
            yield text[start:]
            return
        yield text[start:end]
        start = end + len(separator)


def to_int(text: str) -> int:
    """ Leading integer of `text`, 0 if there is none or it has more than 18 digits (trailing garbage is ignored). """
    match = _INT_PREFIX.match(text)
    return int(match.group(1)) if match else 0


def to_float(text: str) -> float:
    match = _FLOAT_PREFIX.match(text)
    return float(match.group(1)) if match else 0.


def schedule_at_fixed_rate(task_function: Callable, period: float, stop: Optional[threading.Event] = None) -> threading.Thread:
    """
    Calls `task_function` every `period` seconds on a new thread until `stop` is set.

    Args:
        task_function: function to call, single parameter `dt`
        period: seconds between calls
        stop: event that ends the loop, runs forever if `None`
    """
    stop = stop or threading.Event()

    def run():
        i = 0
        t0 = time.perf_counter()
        t = t0
        while not stop.is_set():
            ti = time.perf_counter()
            task_function(ti - t)
            t = ti
            i += 1
            delta = t0 + period * i - time.perf_counter()
            if delta > 0:
                stop.wait(delta)

    thread = threading.Thread(target=run, name=f'Schedule {getattr(task_function, "__name__", "task")}')
    thread.start()
    return thread
