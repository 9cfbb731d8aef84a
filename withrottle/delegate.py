from typing import Tuple

from .protocol_def import Direction, TrackPower, TurnoutState, RouteState


class WiThrottleDelegate:
    """
    Receives notifications for inbound protocol events.
    Every method is a no-op by default, subclasses override the events they care about.
    Methods without throttle id are called for the default throttle 'T'.
    """

    def received_version(self, version: str):
        pass

    def received_server_type(self, server_type: str):
        pass

    def received_server_description(self, description: str):
        pass

    def received_message(self, message: str):
        pass

    def received_alert(self, alert: str):
        pass

    def received_roster_entries(self, roster_size: int):
        pass

    def received_roster_entry(self, index: int, name: str, address: int, length: str):
        pass

    def received_turnout_entries(self, turnout_list_size: int):
        pass

    def received_turnout_entry(self, index: int, system_name: str, user_name: str, state: int):
        pass

    def received_route_entries(self, route_list_size: int):
        pass

    def received_route_entry(self, index: int, system_name: str, user_name: str, state: int):
        pass

    def fast_time_changed(self, time: float):
        pass

    def fast_time_rate_changed(self, rate: float):
        pass

    def heartbeat_config(self, seconds: int):
        pass

    def received_function_state(self, func: int, state: bool):
        pass

    def received_function_state_multi_throttle(self, throttle: str, func: int, state: bool):
        pass

    def received_roster_function_list(self, functions: Tuple[str, ...]):
        pass

    def received_roster_function_list_multi_throttle(self, throttle: str, functions: Tuple[str, ...]):
        pass

    def received_speed(self, speed: int):
        pass

    def received_speed_multi_throttle(self, throttle: str, speed: int):
        pass

    def received_direction(self, direction: Direction):
        pass

    def received_direction_multi_throttle(self, throttle: str, direction: Direction):
        pass

    def received_speed_steps(self, steps: int):
        pass

    def received_speed_steps_multi_throttle(self, throttle: str, steps: int):
        pass

    def received_web_port(self, port: int):
        pass

    def received_track_power(self, state: TrackPower):
        pass

    def address_added(self, address: str, entry: str):
        pass

    def address_added_multi_throttle(self, throttle: str, address: str, entry: str):
        pass

    def address_removed(self, address: str, command: str):
        pass

    def address_removed_multi_throttle(self, throttle: str, address: str, command: str):
        pass

    def address_steal_needed(self, address: str, entry: str):
        pass

    def address_steal_needed_multi_throttle(self, throttle: str, address: str, entry: str):
        pass

    def received_turnout_action(self, system_name: str, state: TurnoutState):
        pass

    def received_route_action(self, system_name: str, state: RouteState):
        pass

    def received_unknown_command(self, line: str):
        pass
