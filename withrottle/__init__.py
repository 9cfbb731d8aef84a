from .protocol_def import Direction, TrackPower, TurnoutState, TurnoutAction, RouteState
from .delegate import WiThrottleDelegate
from .protocol import WiThrottleProtocol
from .transports import Transport, SerialTransport, SocketTransport, DebugTransport, open_transport
