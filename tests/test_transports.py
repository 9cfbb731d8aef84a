import socket
import time

import pytest

from withrottle.transports import DebugTransport, SocketTransport, open_transport, is_serial_port


def test_debug_transport_reads_fed_bytes():
    transport = DebugTransport()
    assert transport.read() == -1
    transport.feed('VN')
    assert transport.available() == 2
    assert transport.read() == ord('V')
    assert transport.read() == ord('N')
    assert transport.available() == 0


def test_debug_transport_collects_written_lines():
    transport = DebugTransport()
    transport.write(b'\r\nPPA1\n\n')
    transport.write(b'Q\n')
    assert transport.sent_lines() == ['PPA1', 'Q']


def test_open_debug_transport():
    transport = open_transport('debug-1')
    assert isinstance(transport, DebugTransport)
    assert repr(transport) == 'debug-1'


@pytest.mark.parametrize('name, expected', [('COM3', True), ('com12', True), ('/dev/ttyUSB0', True), ('localhost', False), ('192.168.1.5:12090', False), ('company-server:12090', False), ('COM', False)])
def test_is_serial_port(name, expected):
    assert is_serial_port(name) == expected


@pytest.mark.parametrize('name', ['', 'localhost:abc'])
def test_open_transport_rejects_invalid_names(name):
    with pytest.raises(ValueError):
        open_transport(name)


@pytest.fixture
def server():
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(('127.0.0.1', 0))
    listener.listen(1)
    yield listener
    listener.close()


def _poll(transport, count, timeout=2.):
    received = bytearray()
    deadline = time.perf_counter() + timeout
    while len(received) < count and time.perf_counter() < deadline and not transport.closed:
        while transport.available():
            received.append(transport.read())
        time.sleep(.005)
    return bytes(received)


def test_socket_transport(server):
    transport = open_transport(f'127.0.0.1:{server.getsockname()[1]}')
    assert isinstance(transport, SocketTransport)
    connection, _ = server.accept()
    try:
        transport.write(b'NCab\n')
        connection.settimeout(2.)
        assert connection.recv(16) == b'NCab\n'
        assert transport.read() == -1
        connection.sendall(b'VN2.0\n')
        assert _poll(transport, 6) == b'VN2.0\n'
    finally:
        connection.close()
        transport.close()
    assert transport.closed


def test_socket_transport_detects_closed_connection(server):
    transport = SocketTransport('127.0.0.1', server.getsockname()[1])
    connection, _ = server.accept()
    connection.close()
    assert _poll(transport, 1) == b''
    assert transport.closed
    transport.close()
