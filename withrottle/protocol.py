import time
from typing import Callable, Optional

from .delegate import WiThrottleDelegate
from .dispatcher import CommandDispatcher
from .fast_clock import FastClock
from .framer import LineFramer
from .heartbeat import Heartbeat
from .outbound import OutboundQueue
from .protocol_def import DEFAULT_THROTTLE, ALL_LOCOS, PROPERTY_SEPARATOR, MIN_SPEED, MAX_SPEED, MAX_FUNCTIONS, \
    VALID_SPEED_STEPS, DEFAULT_MIN_DELAY, RESYNC_DELAY, TURNOUT_ACTION_CODES, Direction, TrackPower, TurnoutAction
from .throttles import ThrottleTable, ThrottleSlot, slot_index
from .transports import Transport


class WiThrottleProtocol:
    """
    Client side of a WiThrottle connection.

    The host calls `check()` repeatedly from a single thread. Each call advances the fast clock,
    sends heartbeat traffic when due, dispatches all completed inbound lines and releases at most one queued command.
    Public mutation methods only queue commands, they must be called from the polling thread.

    All methods accepting a `throttle` id use 'T' (the default throttle) or '0'-'5'. Other ids alias slot 0.
    """

    def __init__(self, server=False):
        self.server = server
        self.transport: Optional[Transport] = None
        self.delegate = WiThrottleDelegate()
        self.console: Optional[Callable[[str], None]] = None
        self.log_level = 1
        self.device_name = ''
        self.leading_crlf = False
        self.speed_commands_twice = False
        self.time_source: Callable[[], float] = time.perf_counter
        self._init(0.)

    def _init(self, now: float):
        self._now = now
        self.framer = LineFramer(on_overflow=lambda text: self._log(0, f"line too long, discarded: {text[:40]}..."))
        self.outbound = OutboundQueue(now=now, leading_crlf=self.leading_crlf, server=self.server)
        self.heartbeat = Heartbeat(now)
        self.clock = FastClock(now)
        self.throttles = ThrottleTable()
        self.dispatcher = CommandDispatcher(self.throttles, self.clock, self.heartbeat, self.delegate, self._log)
        self.last_server_response_time = now
        self._clock_ticked = False

    def _log(self, level: int, msg: str):
        if self.console is not None and self.log_level >= level:
            self.console(msg)

    def _time(self, now: Optional[float]) -> float:
        self._now = self.time_source() if now is None else now
        return self._now

    def __repr__(self):
        slots = "\n".join(f"- {throttle}: {slot}" for throttle, slot in self.throttles if slot.selected)
        return f"""--- WiThrottle {self.device_name or '(unnamed)'} ---
Fast clock: {self.clock}, heartbeat: {self.heartbeat.period or 'off'}
Throttles:
{slots}
"""

    # --- Configuration ---

    def set_delegate(self, delegate: WiThrottleDelegate):
        self.delegate = delegate
        self.dispatcher.delegate = delegate

    def set_log_stream(self, console: Optional[Callable[[str], None]]):
        """ `console` receives diagnostic lines, e.g. `print`. """
        self.console = console

    def set_log_level(self, level: int):
        """ 0 = errors only, 1 = traffic and state changes, 2 = parser detail """
        self.log_level = level

    def set_commands_need_leading_crlf(self, needed: bool):
        self.leading_crlf = needed
        self.outbound.leading_crlf = needed

    def set_speed_commands_twice(self, twice: bool):
        self.speed_commands_twice = twice

    # --- Session ---

    def connect(self, transport: Transport, min_delay=DEFAULT_MIN_DELAY, now: float = None):
        """ Resets all state and starts using `transport`. `min_delay` is the pacing interval in seconds. """
        self._init(self._time(now))
        self.transport = transport
        self.outbound.min_delay = min_delay
        self._log(1, f"connected, outbound commands minimum delay: {min_delay}s")

    def disconnect(self, now: float = None):
        """ Sends the quit command immediately and drops all queued commands, partial input and state. """
        if self.transport is not None:
            self.outbound.send('Q', self.transport.write)
            self._log(1, "==> Q")
        self.transport = None
        self._init(self._time(now))

    @property
    def is_connected(self):
        return self.transport is not None

    def set_device_name(self, device_name: str):
        self.device_name = device_name
        self._send('N' + device_name)

    def set_device_id(self, device_id: str):
        self._send('HU' + device_id)

    def require_heartbeat(self, needed=True):
        self._send('*+' if needed else '*-')

    def _send(self, cmd: str):
        self.outbound.enqueue(cmd)

    def check(self, now: float = None) -> bool:
        """
        Polls the connection once. Never blocks.

        Args:
            now: current time in seconds, defaults to `time_source()`

        Returns:
            Whether visible state changed.
        """
        if self.transport is None:
            return False
        now = self._time(now)
        self.dispatcher.reset_change_flags()
        self._clock_ticked = self.clock.tick(now)
        changed = self._clock_ticked
        changed |= self._check_heartbeat(now)
        while self.transport.available():
            byte = self.transport.read()
            if byte < 0:
                break
            line = self.framer.feed(byte)
            if line is not None:
                self.last_server_response_time = now
                changed |= self.dispatcher.dispatch(line)
        sent = self.outbound.tick(now, self.transport.write)
        if sent is not None:
            self._log(1, f"==> {sent} ({now:.3f})")
        return changed

    def _check_heartbeat(self, now: float) -> bool:
        if not self.heartbeat.is_due(now):
            return False
        self._log(1, "heartbeat")
        self._send('*')
        self.set_device_name(self.device_name)  # servers answer a repeated name, not every server answers '*'
        acquired = self.throttles.last_acquire_time()
        if acquired is not None and now - acquired > RESYNC_DELAY:
            # some servers forget speed and direction, re-send once acquisition has settled
            for throttle, slot in self.throttles:
                if slot.selected:
                    self.set_speed(slot.speed, throttle, force_send=True)
                    self.set_direction(slot.direction, throttle, force_send=True)
        self.heartbeat.reset(now)
        return True

    @property
    def clock_changed(self) -> bool:
        return self._clock_ticked or self.dispatcher.clock_changed

    @property
    def heartbeat_changed(self) -> bool:
        return self.dispatcher.heartbeat_changed

    @property
    def heartbeat_period(self) -> int:
        return self.heartbeat.period

    def get_current_fast_time(self) -> float:
        return self.clock.value

    def get_fast_time_rate(self) -> float:
        return self.clock.rate

    def get_last_server_response_time(self) -> float:
        return self.last_server_response_time

    # --- Locomotives ---

    def __getitem__(self, throttle: str) -> ThrottleSlot:
        return self.throttles[throttle]

    def get_multi_throttle_index(self, throttle: str) -> int:
        return slot_index(throttle)

    def add_locomotive(self, address: str, throttle=DEFAULT_THROTTLE) -> bool:
        """
        Acquires a locomotive and appends it to the consist of `throttle`.

        Args:
            address: 'S' or 'L' followed by the DCC address, e.g. 'S3' or 'L1234'
            throttle: throttle id

        Returns:
            `False` if the address is not a short or long address.
        """
        if not address or address[0] not in 'SL':
            return False
        self._send(f"M{throttle}+{address}{PROPERTY_SEPARATOR}{address}")
        if self.throttles[throttle].add(address, self._now):
            self._log(1, f"added {address} to throttle {throttle}")
        return True

    def steal_locomotive(self, address: str, throttle=DEFAULT_THROTTLE) -> bool:
        return self.release_locomotive(address, throttle) and self.add_locomotive(address, throttle)

    def release_locomotive(self, address=ALL_LOCOS, throttle=DEFAULT_THROTTLE) -> bool:
        """ `address='*'` releases the whole consist. """
        self._send(f"M{throttle}-{address}{PROPERTY_SEPARATOR}r")
        self.throttles[throttle].remove(address)
        return True

    def get_lead_locomotive(self, throttle=DEFAULT_THROTTLE) -> Optional[str]:
        return self.throttles[throttle].lead_address

    def get_locomotive_at_position(self, position: int, throttle=DEFAULT_THROTTLE) -> Optional[str]:
        roster = self.throttles[throttle].roster
        return roster[position].address if 0 <= position < len(roster) else None

    def get_number_of_locomotives(self, throttle=DEFAULT_THROTTLE) -> int:
        return len(self.throttles[throttle].roster)

    def is_selected(self, throttle=DEFAULT_THROTTLE) -> bool:
        return self.throttles[throttle].selected

    def set_speed(self, speed: int, throttle=DEFAULT_THROTTLE, force_send=False) -> bool:
        """
        Args:
            speed: 0 to 126
            throttle: throttle id
            force_send: send even if the speed did not change

        Returns:
            `False` if `speed` is out of range or no locomotive is selected.
        """
        slot = self.throttles[throttle]
        if not MIN_SPEED <= speed <= MAX_SPEED or not slot.selected:
            return False
        if speed != slot.speed or force_send:
            cmd = f"M{throttle}A{ALL_LOCOS}{PROPERTY_SEPARATOR}V{speed}"
            self._send(cmd)
            if self.speed_commands_twice:
                self._send(cmd)
            slot.speed = speed
        return True

    def get_speed(self, throttle=DEFAULT_THROTTLE) -> int:
        return self.throttles[throttle].speed

    def set_direction(self, direction: Direction, throttle=DEFAULT_THROTTLE, address=ALL_LOCOS, force_send=False) -> bool:
        """ `address='*'` sets the direction of the whole consist, any other address only changes its facing. """
        slot = self.throttles[throttle]
        if not slot.selected:
            return False
        if direction != slot.direction or force_send:
            self._send(f"M{throttle}A{address}{PROPERTY_SEPARATOR}R{int(direction == Direction.FORWARD)}")
            if address == ALL_LOCOS:
                slot.direction = direction
            else:
                loco = slot.find(address)
                if loco is not None:
                    loco.facing = direction
        return True

    def get_direction(self, throttle=DEFAULT_THROTTLE, address=ALL_LOCOS) -> Direction:
        return self.throttles[throttle].facing(address)

    def set_speed_steps(self, steps: int, throttle=DEFAULT_THROTTLE) -> bool:
        slot = self.throttles[throttle]
        if steps not in VALID_SPEED_STEPS or not slot.selected:
            return False
        self._send(f"M{throttle}A{ALL_LOCOS}{PROPERTY_SEPARATOR}s{steps}")
        slot.speed_steps = steps
        return True

    def get_speed_steps(self, throttle=DEFAULT_THROTTLE) -> int:
        return self.throttles[throttle].speed_steps

    def set_function(self, func: int, pressed: bool, throttle=DEFAULT_THROTTLE, address=''):
        """ An empty `address` targets the lead locomotive. """
        slot = self.throttles[throttle]
        if not slot.selected:
            self._log(1, f"set_function(): no locomotive selected on throttle {throttle}")
            return
        if not 0 <= func < MAX_FUNCTIONS:
            return
        self._send(f"M{throttle}A{address or slot.lead_address}{PROPERTY_SEPARATOR}F{int(pressed)}{func}")

    def emergency_stop(self, throttle=DEFAULT_THROTTLE, address=ALL_LOCOS):
        self.set_speed(0, throttle)
        self._send(f"M{throttle}A{address}{PROPERTY_SEPARATOR}X")

    # --- Layout ---

    def set_track_power(self, state: TrackPower):
        self._send(f"PPA{int(state)}")

    def set_turnout(self, system_name: str, action: TurnoutAction) -> bool:
        """ `system_name` e.g. LT92 """
        self._send(f"PTA{TURNOUT_ACTION_CODES.get(action, 'T')}{system_name}")
        return True

    def set_route(self, system_name: str) -> bool:
        self._send(f"PRA2{system_name}")
        return True
