"""Pytest configuration: repository root on sys.path plus a connected protocol over an in-memory transport."""
import sys
from pathlib import Path

import pytest

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from withrottle.delegate import WiThrottleDelegate  # noqa: E402
from withrottle.protocol import WiThrottleProtocol  # noqa: E402
from withrottle.transports import DebugTransport  # noqa: E402


class RecordingDelegate(WiThrottleDelegate):
    """Records every notification as (method name, arguments)."""

    def __init__(self):
        self.events = []

    def calls(self, name):
        return [args for event, args in self.events if event == name]


def _recorder(name):
    def record(self, *args):
        self.events.append((name, args))
    return record


for _name in [n for n in vars(WiThrottleDelegate) if not n.startswith('_')]:
    setattr(RecordingDelegate, _name, _recorder(_name))


@pytest.fixture
def delegate():
    return RecordingDelegate()


@pytest.fixture
def transport():
    return DebugTransport()


@pytest.fixture
def protocol(transport, delegate):
    protocol = WiThrottleProtocol()
    protocol.set_delegate(delegate)
    protocol.connect(transport, min_delay=.05, now=0.)
    return protocol


@pytest.fixture
def receive(protocol, transport):
    """ Feeds server lines (each terminated twice, like the server does) and polls once. """
    def receive(*lines, now=0.):
        for line in lines:
            transport.feed(line + '\n\n')
        return protocol.check(now)
    return receive


@pytest.fixture
def drain(protocol, transport):
    """ Polls until the outbound queue is empty and returns all lines written so far. """
    clock = {'now': 100.}

    def drain():
        while len(protocol.outbound):
            clock['now'] += 1.
            protocol.check(clock['now'])
        return transport.sent_lines()
    return drain
