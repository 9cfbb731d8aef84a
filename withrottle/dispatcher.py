"""
Parses complete inbound lines and routes them to their handler.

Every line is self-contained. Handlers update the throttle table, fast clock and heartbeat
and notify the delegate. Unknown or malformed input never raises.
"""
import warnings
from itertools import islice
from typing import Callable, List

from .delegate import WiThrottleDelegate
from .fast_clock import FastClock
from .heartbeat import Heartbeat
from .helper import split_fields, to_int
from .protocol_def import PROPERTY_SEPARATOR, ENTRY_SEPARATOR, SEGMENT_SEPARATOR, DEFAULT_THROTTLE, ALL_LOCOS, \
    MAX_FUNCTIONS, VALID_SPEED_STEPS, GARBAGE_PREAMBLE, VENDOR_AT_COMMAND, TURNOUT_STATE_CODES, ROUTE_STATE_CODES, \
    Direction, TrackPower, TurnoutState, RouteState
from .throttles import ThrottleTable, ThrottleSlot


def _segments(entry: str, count=3) -> List[str]:
    """ First `count` segments of a list entry, missing ones are empty. """
    segments = list(islice(split_fields(entry, SEGMENT_SEPARATOR), count))
    return segments + [''] * (count - len(segments))


class CommandDispatcher:

    def __init__(self, throttles: ThrottleTable, clock: FastClock, heartbeat: Heartbeat, delegate: WiThrottleDelegate = None, log: Callable[[int, str], None] = None):
        self.throttles = throttles
        self.clock = clock
        self.heartbeat = heartbeat
        self.delegate = delegate or WiThrottleDelegate()
        self.log = log or (lambda level, msg: None)
        self.clock_changed = False
        self.heartbeat_changed = False

    def reset_change_flags(self):
        self.clock_changed = False
        self.heartbeat_changed = False

    def dispatch(self, line: str) -> bool:
        """
        Args:
            line: complete line without terminator

        Returns:
            Whether visible state changed.
        """
        self.log(1, f"<== {line}")
        while line.startswith(GARBAGE_PREAMBLE):
            line = line[len(GARBAGE_PREAMBLE):]
            self.log(1, f"removed {GARBAGE_PREAMBLE}, input is now '{line}'")
        n = len(line)
        if n > 3 and line.startswith('PFT'):
            return self.process_fast_time(line[3:])
        elif n > 3 and line.startswith('PPA'):
            self.process_track_power(line[3:])
        elif n > 1 and line.startswith('*'):
            return self.process_heartbeat(line[1:])
        elif n > 2 and line.startswith('VN'):
            self._forward(self.delegate.received_version, line[2:])
        elif n > 2 and line.startswith('HT'):
            self._forward(self.delegate.received_server_type, line[2:])
        elif n > 2 and line.startswith('Ht'):
            self._forward(self.delegate.received_server_description, line[2:])
        elif n > 2 and line.startswith('HM'):
            self._forward(self.delegate.received_alert, line[2:])
        elif n > 2 and line.startswith('Hm'):
            self._forward(self.delegate.received_message, line[2:])
        elif n > 2 and line.startswith('PW'):
            self.delegate.received_web_port(to_int(line[2:]))
        elif n > 2 and line.startswith('RL'):
            self.process_roster_list(line[2:])
        elif n > 3 and line.startswith('PTL'):
            self.process_turnout_list(line[3:])
        elif n > 3 and line.startswith('PRL'):
            self.process_route_list(line[3:])
        elif n > 6 and line[0] == 'M' and line[2] == 'S':
            self.process_steal_needed(line[1], line[3:])
        elif n > 6 and line[0] == 'M' and line[2] in '+-':
            self.process_add_remove(line[1], line[2:])
        elif n > 8 and line[0] == 'M' and line[2] == 'A':
            return self.process_locomotive_action(line[1], line[3:])
        elif n > 8 and line[0] == 'M' and line[2] == 'L':
            return self.process_roster_function_list(line[1], line[3:])
        elif n > 5 and line.startswith('PTA'):
            self.process_turnout_action(line[3:])
        elif n > 4 and line.startswith('PRA'):
            self.process_route_action(line[3:])
        elif line.startswith(VENDOR_AT_COMMAND):
            self.log(2, f"ignoring vendor command '{line}'")
            return False
        else:
            self.log(1, f"unknown command '{line}'")
            self.delegate.received_unknown_command(line)
            return False
        return True

    def _forward(self, callback: Callable[[str], None], payload: str):
        if payload:
            callback(payload)

    # --- Session ---

    def process_fast_time(self, data: str) -> bool:
        p = data.find(PROPERTY_SEPARATOR)
        if p > 0:
            self.clock.set_from_wire(data[:p], data[p + len(PROPERTY_SEPARATOR):])
            self.log(1, f"fast clock {self.clock.value:.0f}, rate {self.clock.rate}")
            self.delegate.fast_time_changed(self.clock.value)
            self.delegate.fast_time_rate_changed(self.clock.rate)
        else:
            self.clock.set_from_wire(data)
            self.log(1, f"fast clock {self.clock.value:.0f}")
            self.delegate.fast_time_changed(self.clock.value)
        self.clock_changed = True
        return True

    def process_heartbeat(self, data: str) -> bool:
        period = to_int(data)
        if not self.heartbeat.set_period(period):
            return False
        self.heartbeat_changed = True
        self.log(1, f"heartbeat required every {period} seconds")
        self.delegate.heartbeat_config(period)
        return True

    def process_track_power(self, data: str):
        state = {'0': TrackPower.OFF, '1': TrackPower.ON}.get(data[0], TrackPower.UNKNOWN)
        self.delegate.received_track_power(state)

    # --- Lists ---

    def process_roster_list(self, data: str):
        """ RL2]\\[RGS 41}|{41}|{L]\\[Test Loco}|{1234}|{L """
        fields = split_fields(data, ENTRY_SEPARATOR)
        count = to_int(next(fields))
        if count < 0:
            self.log(0, f"ignoring roster list with negative size {count}")
            return
        self.log(1, f"entries in roster: {count}")
        self.delegate.received_roster_entries(count)
        for index, entry in enumerate(islice(fields, count)):
            name, address, length = _segments(entry)
            self.log(2, f"roster entry {index}: name={name}, address={address}, length={length}")
            self.delegate.received_roster_entry(index, name, to_int(address), length[:1])

    def _list_entries(self, data: str) -> List[List[str]]:
        if data.startswith(ENTRY_SEPARATOR):
            data = data[len(ENTRY_SEPARATOR):]
        return [_segments(entry) for entry in split_fields(data, ENTRY_SEPARATOR) if entry]

    def process_turnout_list(self, data: str):
        """ PTL]\\[LT12}|{Rico Station N}|{1]\\[LT324}|{Rico Station S}|{2 """
        entries = self._list_entries(data)
        for index, (system_name, user_name, state) in enumerate(entries):
            self.delegate.received_turnout_entry(index, system_name, user_name, to_int(state))
        self.log(1, f"entries in turnout list: {len(entries)}")
        self.delegate.received_turnout_entries(len(entries))

    def process_route_list(self, data: str):
        entries = self._list_entries(data)
        for index, (system_name, user_name, state) in enumerate(entries):
            self.delegate.received_route_entry(index, system_name, user_name, to_int(state))
        self.log(1, f"entries in route list: {len(entries)}")
        self.delegate.received_route_entries(len(entries))

    # --- Throttles ---

    def process_add_remove(self, throttle: str, data: str):
        """ data: +L341<;>roster entry  or  -L341<;>r """
        p = data.find(PROPERTY_SEPARATOR)
        if p <= 0:
            self.log(1, f"malformed add/remove command '{data}'")
            return
        address = data[1:p].strip()
        entry = data[p + len(PROPERTY_SEPARATOR):].strip()
        if data[0] == '+':
            if throttle == DEFAULT_THROTTLE:
                self.delegate.address_added(address, entry)
            else:
                self.delegate.address_added_multi_throttle(throttle, address, entry)
        elif entry in ('d', 'r'):
            if throttle == DEFAULT_THROTTLE:
                self.delegate.address_removed(address, entry)
            else:
                self.delegate.address_removed_multi_throttle(throttle, address, entry)
        else:
            self.log(0, f"malformed address removal for {address}: command is '{entry}'")
            warnings.warn(f"Malformed address removal on throttle {throttle}: {data!r}")

    def process_steal_needed(self, throttle: str, data: str):
        address, _, entry = data.partition(PROPERTY_SEPARATOR)
        self.log(1, f"steal needed for {address} on throttle {throttle}")
        if throttle == DEFAULT_THROTTLE:
            self.delegate.address_steal_needed(address, entry)
        else:
            self.delegate.address_steal_needed_multi_throttle(throttle, address, entry)

    def _strip_address(self, slot: ThrottleSlot, data: str) -> str:
        for marker in (slot.lead_address + PROPERTY_SEPARATOR, ALL_LOCOS + PROPERTY_SEPARATOR):
            if data.startswith(marker):
                return data[len(marker):]
        return data

    def process_locomotive_action(self, throttle: str, data: str) -> bool:
        """ data: L341<;>V42  or  *<;>R1 """
        slot = self.throttles[throttle]
        if not slot.selected:
            self.log(1, f"skipping action on throttle {throttle}, no locomotive selected")
            return False
        data = self._strip_address(slot, data)
        if not data:
            self.log(1, "insufficient action to process")
            return False
        action = data[0]
        if action == 'F':
            self.process_function_state(throttle, data)
        elif action == 'V':
            self.process_speed(throttle, data)
        elif action == 's':
            self.process_speed_steps(throttle, data)
        elif action == 'R':
            self.process_direction(throttle, data)
        else:
            self.log(1, f"unrecognized action '{action}'")
        return True

    def process_function_state(self, throttle: str, data: str):
        """ F[0|1]nn, e.g. F03 = function 3 released, F112 = function 12 pressed """
        if len(data) < 3:
            return
        state = data[1] == '1'
        func_text = data[2:]
        func = to_int(func_text)
        if func == 0 and func_text != '0':
            return  # not a number
        if throttle == DEFAULT_THROTTLE:
            self.delegate.received_function_state(func, state)
        else:
            self.delegate.received_function_state_multi_throttle(throttle, func, state)

    def process_speed(self, throttle: str, data: str):
        if len(data) < 2:
            return
        slot = self.throttles[throttle]
        slot.set_speed(to_int(data[1:]))
        if throttle == DEFAULT_THROTTLE:
            self.delegate.received_speed(slot.speed)
        else:
            self.delegate.received_speed_multi_throttle(throttle, slot.speed)

    def process_speed_steps(self, throttle: str, data: str):
        if len(data) < 2:
            return
        steps = to_int(data[1:])
        if steps not in VALID_SPEED_STEPS:
            self.log(1, f"ignoring unknown speed step mode {data[1:]}")
            return
        self.throttles[throttle].speed_steps = steps
        if throttle == DEFAULT_THROTTLE:
            self.delegate.received_speed_steps(steps)
        else:
            self.delegate.received_speed_steps_multi_throttle(throttle, steps)

    def process_direction(self, throttle: str, data: str):
        if len(data) != 2:
            return
        slot = self.throttles[throttle]
        slot.direction = Direction.REVERSE if data[1] == '0' else Direction.FORWARD
        if throttle == DEFAULT_THROTTLE:
            self.delegate.received_direction(slot.direction)
        else:
            self.delegate.received_direction_multi_throttle(throttle, slot.direction)

    def process_roster_function_list(self, throttle: str, data: str) -> bool:
        """ data: L341<;>]\\[Headlight]\\[Bell]\\[Whistle]\\[... """
        slot = self.throttles[throttle]
        if not slot.selected:
            self.log(1, f"skipping function list on throttle {throttle}, no locomotive selected")
            return False
        data = self._strip_address(slot, data)
        if not data:
            self.log(1, "insufficient action to process")
            return False
        if data[0] != ']':
            self.log(1, f"unrecognized L action '{data[0]}'")
            return True
        labels = data[len(ENTRY_SEPARATOR):]
        names = list(islice(split_fields(labels, ENTRY_SEPARATOR), MAX_FUNCTIONS)) if labels else []
        functions = tuple(names + [''] * (MAX_FUNCTIONS - len(names)))
        self.log(1, f"functions for {slot.lead_address}: {len(names)}")
        if throttle == DEFAULT_THROTTLE:
            self.delegate.received_roster_function_list(functions)
        else:
            self.delegate.received_roster_function_list_multi_throttle(throttle, functions)
        return True

    # --- Turnouts and routes ---

    def process_turnout_action(self, data: str):
        """ data: 2LT92 """
        # JMRI sends no trailing marker, the name runs to the end of the line
        state = TURNOUT_STATE_CODES.get(data[0], TurnoutState.UNKNOWN)
        self.delegate.received_turnout_action(data[1:].strip(), state)

    def process_route_action(self, data: str):
        state = ROUTE_STATE_CODES.get(data[0], RouteState.INCONSISTENT)
        self.delegate.received_route_action(data[1:].strip(), state)
