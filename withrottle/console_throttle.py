"""
Text console for driving locomotives with a WiThrottleProtocol.
Commands are typed on stdin and executed inside the polling thread.
"""
import queue
import threading
from typing import Callable, Tuple

from .delegate import WiThrottleDelegate
from .helper import schedule_at_fixed_rate
from .protocol import WiThrottleProtocol
from .protocol_def import Direction, TrackPower, TurnoutAction, DEFAULT_THROTTLE, THROTTLE_IDS, ALL_LOCOS, notch_to_speed, speed_to_notch
from .settings import Settings
from .transports import open_transport

HELP = """Commands:
  use <T|0-5>               select the throttle for the following commands
  add <S|L><address>        acquire a locomotive        release [address]   release one or all
  steal <S|L><address>      take over a locomotive      status              show throttles
  speed <0-126>             set speed                   notch <n>           set speed by speed step notch
  dir <f|r> [address]       set direction               fn <n> <on|off>     set function
  steps <1|2|4|8|16>        set speed step mode         stop                emergency stop
  power <on|off>            track power                 route <name>        set route
  turnout <name> <close|throw|toggle>                   quit
"""


class PrintingDelegate(WiThrottleDelegate):

    def __init__(self, out=print):
        self.out = out

    def received_version(self, version: str):
        self.out(f"Protocol version {version}")

    def received_server_type(self, server_type: str):
        self.out(f"Server type: {server_type}")

    def received_server_description(self, description: str):
        self.out(f"Server: {description}")

    def received_message(self, message: str):
        self.out(f"Message: {message}")

    def received_alert(self, alert: str):
        self.out(f"ALERT: {alert}")

    def received_roster_entry(self, index: int, name: str, address: int, length: str):
        self.out(f"Roster {index}: {length}{address} {name}")

    def received_track_power(self, state: TrackPower):
        self.out(f"Track power {state.name}")

    def heartbeat_config(self, seconds: int):
        self.out(f"Heartbeat required every {seconds} s")

    def received_speed_multi_throttle(self, throttle: str, speed: int):
        self.out(f"Throttle {throttle}: speed {speed}")

    def received_speed(self, speed: int):
        self.received_speed_multi_throttle(DEFAULT_THROTTLE, speed)

    def received_direction_multi_throttle(self, throttle: str, direction: Direction):
        self.out(f"Throttle {throttle}: {direction.name.lower()}")

    def received_direction(self, direction: Direction):
        self.received_direction_multi_throttle(DEFAULT_THROTTLE, direction)

    def address_steal_needed_multi_throttle(self, throttle: str, address: str, entry: str):
        self.out(f"Throttle {throttle}: {address} is in use elsewhere, type 'steal {address}' to take it over")

    def address_steal_needed(self, address: str, entry: str):
        self.address_steal_needed_multi_throttle(DEFAULT_THROTTLE, address, entry)


class ConsoleThrottle:

    def __init__(self, protocol: WiThrottleProtocol):
        self.protocol = protocol
        self.throttle = DEFAULT_THROTTLE

    def execute(self, line: str) -> str:
        """ Runs one typed command and returns the text to show. Must be called from the polling thread. """
        words = line.split()
        if not words:
            return ""
        cmd, args = words[0].lower(), words[1:]
        handler = getattr(self, f"cmd_{cmd}", None)
        if handler is None:
            return f"Unknown command '{cmd}'. Type 'help' for a list of commands."
        try:
            return handler(*args)
        except (TypeError, ValueError, KeyError) as exc:
            return f"Invalid arguments for '{cmd}': {exc}"

    def cmd_help(self):
        return HELP

    def cmd_use(self, throttle: str):
        if throttle != DEFAULT_THROTTLE and throttle not in THROTTLE_IDS:
            raise ValueError(f"throttle must be T or 0-5, not {throttle}")
        self.throttle = throttle
        return f"Using throttle {throttle}"

    def cmd_status(self):
        return repr(self.protocol)

    def cmd_add(self, address: str):
        return _result(self.protocol.add_locomotive(address.upper(), self.throttle), f"Acquiring {address}", "Address must start with S or L")

    def cmd_steal(self, address: str):
        return _result(self.protocol.steal_locomotive(address.upper(), self.throttle), f"Stealing {address}", "Address must start with S or L")

    def cmd_release(self, address=ALL_LOCOS):
        self.protocol.release_locomotive(address.upper(), self.throttle)
        return f"Released {address}"

    def cmd_speed(self, speed: str):
        return _result(self.protocol.set_speed(int(speed), self.throttle), f"Speed {speed}", "Speed must be 0-126 and a locomotive must be selected")

    def cmd_notch(self, notch: str):
        steps = self.protocol.get_speed_steps(self.throttle)
        speed = notch_to_speed(int(notch), steps)
        ok = self.protocol.set_speed(speed, self.throttle)
        return _result(ok, f"Notch {speed_to_notch(speed, steps)} = speed {speed}", "No locomotive selected")

    def cmd_dir(self, direction: str, address=ALL_LOCOS):
        direction = {'f': Direction.FORWARD, 'r': Direction.REVERSE}[direction.lower()[:1]]
        return _result(self.protocol.set_direction(direction, self.throttle, address.upper()), direction.name.lower(), "No locomotive selected")

    def cmd_fn(self, func: str, state: str):
        self.protocol.set_function(int(func), _on_off(state), self.throttle)
        return f"F{func} {state}"

    def cmd_steps(self, steps: str):
        return _result(self.protocol.set_speed_steps(int(steps), self.throttle), f"Speed steps {steps}", "Steps must be 1, 2, 4, 8 or 16 and a locomotive must be selected")

    def cmd_stop(self):
        self.protocol.emergency_stop(self.throttle)
        return "Emergency stop"

    def cmd_power(self, state: str):
        self.protocol.set_track_power(TrackPower.ON if _on_off(state) else TrackPower.OFF)
        return f"Track power {state}"

    def cmd_turnout(self, name: str, action: str):
        action = {'close': TurnoutAction.CLOSE, 'throw': TurnoutAction.THROW, 'toggle': TurnoutAction.TOGGLE}[action.lower()]
        self.protocol.set_turnout(name, action)
        return f"Turnout {name} {action.name.lower()}"

    def cmd_route(self, name: str):
        self.protocol.set_route(name)
        return f"Route {name}"


def _result(ok: bool, success: str, failure: str) -> str:
    return success if ok else failure


def _on_off(state: str) -> bool:
    return {'on': True, '1': True, 'off': False, '0': False}[state.lower()]


def run(settings: Settings, out=print) -> Tuple[WiThrottleProtocol, queue.Queue, Callable[[], None]]:
    """
    Connects to the configured server and starts polling on a worker thread.

    Returns:
        protocol, command queue and shutdown function. Put typed command lines into the queue.
        `shutdown()` stops polling and disconnects.
    """
    transport = open_transport(settings.transport, settings.baudrate)
    protocol = WiThrottleProtocol()
    protocol.set_delegate(PrintingDelegate(out))
    protocol.set_log_stream(out if settings.log_level > 0 else None)
    protocol.set_log_level(settings.log_level)
    protocol.set_commands_need_leading_crlf(settings.leading_crlf)
    protocol.connect(transport, settings.min_delay)
    protocol.set_device_name(settings.device_name)
    if settings.device_id:
        protocol.set_device_id(settings.device_id)
    if settings.require_heartbeat:
        protocol.require_heartbeat()
    console = ConsoleThrottle(protocol)
    commands = queue.Queue()
    stop = threading.Event()

    def poll(dt):
        while not commands.empty():
            text = console.execute(commands.get())
            if text:
                out(text)
        protocol.check()

    thread = schedule_at_fixed_rate(poll, settings.poll_period, stop)

    def shutdown():
        stop.set()
        thread.join()
        protocol.disconnect()
        transport.close()

    return protocol, commands, shutdown
