import pytest

from withrottle import WiThrottleProtocol, DebugTransport
from withrottle.protocol_def import Direction, TrackPower, TurnoutAction


def test_add_locomotive(protocol, drain):
    assert protocol.add_locomotive('L341')
    assert not protocol.add_locomotive('X1')
    assert not protocol.add_locomotive('')
    assert drain() == ['MT+L341<;>L341']
    assert protocol.is_selected()
    assert protocol.get_lead_locomotive() == 'L341'


def test_consist_queries(protocol):
    protocol.add_locomotive('L1', '1')
    protocol.add_locomotive('L2', '1')
    protocol.add_locomotive('L1', '1')
    assert protocol.get_number_of_locomotives('1') == 2
    assert protocol.get_locomotive_at_position(1, '1') == 'L2'
    assert protocol.get_locomotive_at_position(2, '1') is None
    assert protocol.get_lead_locomotive('2') is None
    assert protocol['1'].addresses == ['L1', 'L2']


def test_default_throttle_shares_slot_zero(protocol):
    assert protocol['T'] is protocol['0']
    assert protocol.get_multi_throttle_index('T') == 0
    assert protocol.get_multi_throttle_index('3') == 3
    assert protocol.get_multi_throttle_index('x') == 0


def test_release_locomotive(protocol, drain):
    protocol.add_locomotive('S3')
    protocol.release_locomotive()
    assert drain() == ['MT+S3<;>S3', 'MT-*<;>r']
    assert not protocol.is_selected()


def test_release_all_locomotives(protocol):
    protocol.add_locomotive('L1', '3')
    protocol.add_locomotive('L2', '3')
    assert protocol.release_locomotive('*', '3')
    assert protocol.get_number_of_locomotives('3') == 0
    assert not protocol.is_selected('3')
    assert protocol.get_lead_locomotive('3') is None


def test_release_single_locomotive(protocol, drain):
    protocol.add_locomotive('S3', '2')
    protocol.add_locomotive('S4', '2')
    protocol.release_locomotive('S3', '2')
    assert drain()[-1] == 'M2-S3<;>r'
    assert protocol.get_lead_locomotive('2') == 'S4'


def test_steal_locomotive(protocol, drain):
    assert protocol.steal_locomotive('S3', '2')
    assert drain() == ['M2-S3<;>r', 'M2+S3<;>S3']
    assert protocol.get_lead_locomotive('2') == 'S3'


def test_set_speed_requires_selection(protocol, drain):
    assert not protocol.set_speed(10)
    protocol.add_locomotive('S3')
    assert not protocol.set_speed(127)
    assert not protocol.set_speed(-1)
    assert protocol.set_speed(42)
    assert protocol.set_speed(42)
    assert protocol.set_speed(42, force_send=True)
    assert drain() == ['MT+S3<;>S3', 'MTA*<;>V42', 'MTA*<;>V42']
    assert protocol.get_speed() == 42


def test_speed_commands_twice(protocol, drain):
    protocol.set_speed_commands_twice(True)
    protocol.add_locomotive('S3', '1')
    protocol.set_speed(5, '1')
    assert drain() == ['M1+S3<;>S3', 'M1A*<;>V5', 'M1A*<;>V5']


def test_set_direction(protocol, drain):
    assert not protocol.set_direction(Direction.REVERSE)
    protocol.add_locomotive('S3')
    assert protocol.set_direction(Direction.REVERSE)
    assert protocol.set_direction(Direction.REVERSE)
    protocol.set_direction(Direction.FORWARD)
    assert drain() == ['MT+S3<;>S3', 'MTA*<;>R0', 'MTA*<;>R1']
    assert protocol.get_direction() == Direction.FORWARD


def test_set_direction_of_consist_member(protocol, drain):
    protocol.add_locomotive('L1', '1')
    protocol.add_locomotive('L2', '1')
    protocol.set_direction(Direction.REVERSE, '1', 'L2')
    assert drain()[-1] == 'M1AL2<;>R0'
    assert protocol.get_direction('1', 'L2') == Direction.REVERSE
    assert protocol.get_direction('1') == Direction.FORWARD


def test_set_speed_steps(protocol, drain):
    protocol.add_locomotive('S3')
    assert not protocol.set_speed_steps(3)
    assert protocol.set_speed_steps(8)
    assert drain()[-1] == 'MTA*<;>s8'
    assert protocol.get_speed_steps() == 8


def test_set_function(protocol, drain):
    protocol.set_function(1, True)
    protocol.add_locomotive('L341')
    protocol.set_function(12, True)
    protocol.set_function(0, False, address='L2')
    protocol.set_function(32, True)
    protocol.set_function(-1, True)
    assert drain() == ['MT+L341<;>L341', 'MTAL341<;>F112', 'MTAL2<;>F00']


def test_emergency_stop(protocol, drain):
    protocol.add_locomotive('S3')
    protocol.set_speed(30)
    protocol.emergency_stop()
    assert drain() == ['MT+S3<;>S3', 'MTA*<;>V30', 'MTA*<;>V0', 'MTA*<;>X']
    assert protocol.get_speed() == 0


def test_layout_commands(protocol, drain):
    protocol.set_track_power(TrackPower.ON)
    protocol.set_turnout('LT92', TurnoutAction.THROW)
    protocol.set_turnout('LT92', TurnoutAction.CLOSE)
    protocol.set_turnout('LT92', TurnoutAction.TOGGLE)
    protocol.set_route('IR:AUTO:0001')
    assert drain() == ['PPA1', 'PTATLT92', 'PTACLT92', 'PTA2LT92', 'PRA2IR:AUTO:0001']


def test_session_commands(protocol, drain):
    protocol.set_device_name('My Throttle')
    protocol.set_device_id('a1b2c3')
    protocol.require_heartbeat()
    protocol.require_heartbeat(False)
    assert drain() == ['NMy Throttle', 'HUa1b2c3', '*+', '*-']
    assert protocol.device_name == 'My Throttle'


def test_commands_are_paced(protocol, transport):
    protocol.set_track_power(TrackPower.ON)
    protocol.set_track_power(TrackPower.OFF)
    protocol.check(.01)
    assert transport.written == b''
    protocol.check(.05)
    assert transport.sent_lines() == ['PPA1']
    protocol.check(.08)
    assert transport.sent_lines() == ['PPA1']
    protocol.check(.11)
    assert transport.sent_lines() == ['PPA1', 'PPA0']


def test_heartbeat_is_sent_every_half_period(protocol, receive, transport):
    protocol.set_device_name('Cab')
    receive('*10')
    protocol.outbound.clear()
    protocol.check(4.9)
    assert len(protocol.outbound) == 0
    assert protocol.check(5.)
    assert transport.sent_lines() == ['*']
    assert repr(protocol.outbound) == 'NCab'


def test_heartbeat_resends_speed_and_direction(protocol, receive):
    protocol.add_locomotive('S3')
    protocol.set_speed(20)
    receive('*10')
    protocol.outbound.clear()
    protocol.check(5.)
    assert repr(protocol.outbound) == 'N'
    protocol.outbound.clear()
    protocol.check(10.)
    assert repr(protocol.outbound).split('\n') == ['N', 'M0A*<;>V20', 'M0A*<;>R1']


def test_no_heartbeat_unless_requested(protocol, transport):
    assert not protocol.check(100.)
    assert transport.written == b''


def test_disconnect_sends_quit_immediately(protocol, transport):
    protocol.add_locomotive('S3')
    transport.feed('VN2')
    protocol.disconnect(now=1.)
    assert transport.written == b'Q\n'
    assert not protocol.is_connected
    assert not protocol.is_selected()
    assert len(protocol.outbound) == 0
    assert not protocol.check(2.)


def test_disconnect_with_leading_crlf(protocol, transport):
    protocol.set_commands_need_leading_crlf(True)
    protocol.disconnect()
    assert transport.written == b'\r\nQ\n'


def test_check_without_transport():
    protocol = WiThrottleProtocol()
    assert not protocol.is_connected
    assert not protocol.check(0.)


def test_connect_resets_state(protocol, transport):
    protocol.add_locomotive('S3')
    protocol.connect(transport, now=5.)
    assert not protocol.is_selected()
    assert len(protocol.outbound) == 0
    assert protocol.get_last_server_response_time() == 5.


def test_clock_changed(protocol, receive):
    receive('PFT100<;>1')
    assert protocol.clock_changed
    assert not protocol.check(.5)
    assert not protocol.clock_changed
    assert protocol.check(1.)
    assert protocol.clock_changed
    assert protocol.get_current_fast_time() == 101


def test_stopped_clock_does_not_change(protocol, receive):
    receive('PFT100<;>0')
    assert not protocol.check(1.)
    assert protocol.get_current_fast_time() == 100


def test_log_stream(protocol, receive):
    lines = []
    protocol.set_log_stream(lines.append)
    receive('VN2.0')
    assert '<== VN2.0' in lines
    lines.clear()
    protocol.set_log_level(0)
    receive('VN2.0')
    assert lines == []


def test_time_source(protocol, transport):
    protocol.time_source = lambda: 42.
    transport.feed('VN2.0\n')
    protocol.check()
    assert protocol.get_last_server_response_time() == 42.


def test_server_mode_terminates_twice():
    transport = DebugTransport()
    protocol = WiThrottleProtocol(server=True)
    protocol.connect(transport, now=0.)
    protocol.set_track_power(TrackPower.ON)
    protocol.check(1.)
    assert transport.written == b'PPA1\n\n'


def test_repr_lists_selected_throttles(protocol):
    protocol.set_device_name('Cab')
    protocol.add_locomotive('L341', '2')
    text = repr(protocol)
    assert 'Cab' in text
    assert '- 2: [L341]' in text


@pytest.mark.parametrize('steps', [1, 2, 4, 8, 16])
def test_valid_speed_steps(protocol, steps):
    protocol.add_locomotive('S3')
    assert protocol.set_speed_steps(steps)
    assert protocol.get_speed_steps() == steps
