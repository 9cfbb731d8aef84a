"""
WiThrottle protocol constants.

https://www.jmri.org/help/en/package/jmri/jmrit/withrottle/Protocol.shtml
"""
from enum import IntEnum

import numpy

PROPERTY_SEPARATOR = '<;>'
ENTRY_SEPARATOR = ']\\['
SEGMENT_SEPARATOR = '}|{'
NEWLINE = '\n'
CR = '\r'
LEADING_CRLF = b'\r\n'

DEFAULT_THROTTLE = 'T'
THROTTLE_IDS = ('0', '1', '2', '3', '4', '5')
ALL_LOCOS = '*'

MAX_FUNCTIONS = 32
MIN_SPEED = 0
MAX_SPEED = 126
VALID_SPEED_STEPS = (1, 2, 4, 8, 16)  # 128, 28, 27, 14, 28 (Motorola)

GARBAGE_PREAMBLE = 'AT+CIPSENDBUF='  # emitted by the Digitrax LnWi
VENDOR_AT_COMMAND = 'AT+'

MAX_LINE_LENGTH = 32766
RESYNC_DELAY = 5.  # seconds after the last acquisition before speeds are re-sent
FAST_CLOCK_PERIOD = 1.
DEFAULT_MIN_DELAY = .05


class Direction(IntEnum):
    REVERSE = 0
    FORWARD = 1


class TrackPower(IntEnum):
    OFF = 0
    ON = 1
    UNKNOWN = 2


class TurnoutState(IntEnum):
    UNKNOWN = 1
    CLOSED = 2
    THROWN = 4
    INCONSISTENT = 8


class TurnoutAction(IntEnum):
    CLOSE = 0
    THROW = 1
    TOGGLE = 2


class RouteState(IntEnum):
    ACTIVE = 2
    INACTIVE = 4
    INCONSISTENT = 8


TURNOUT_ACTION_CODES = {TurnoutAction.CLOSE: 'C', TurnoutAction.THROW: 'T', TurnoutAction.TOGGLE: '2'}
TURNOUT_STATE_CODES = {'1': TurnoutState.UNKNOWN, '2': TurnoutState.CLOSED, '4': TurnoutState.THROWN, '8': TurnoutState.INCONSISTENT}
ROUTE_STATE_CODES = {'2': RouteState.ACTIVE, '4': RouteState.INACTIVE}

NOTCHES = {1: 126, 2: 28, 4: 27, 8: 14, 16: 28}  # speed step code -> number of non-zero notches


def notch_speeds(speed_steps: int) -> numpy.ndarray:
    """
    Wire speed (0-126) of every notch for the given speed step mode.
    Unknown modes fall back to 128 steps.
    """
    n = NOTCHES.get(speed_steps, NOTCHES[1])
    return numpy.round(numpy.linspace(MIN_SPEED, MAX_SPEED, n + 1)).astype(int)


def speed_to_notch(speed: int, speed_steps: int) -> int:
    speeds = notch_speeds(speed_steps)
    return int(numpy.argmin(numpy.abs(speeds - speed)))


def notch_to_speed(notch: int, speed_steps: int) -> int:
    speeds = notch_speeds(speed_steps)
    return int(speeds[int(numpy.clip(notch, 0, len(speeds) - 1))])
