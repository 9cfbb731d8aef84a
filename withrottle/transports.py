"""
Byte streams the protocol engine can run on: serial ports (pyserial), TCP sockets and an in-memory debug stream.
All reads are non-blocking.
"""
import re
import select
import socket
from typing import List

import serial
from serial import SerialException
import serial.tools.list_ports

DEFAULT_PORT = 12090  # JMRI WiThrottle server
_COM_PORT = re.compile(r'COM\d+', re.IGNORECASE)


class Transport:

    def available(self) -> int:
        """ Number of bytes that can be read without blocking. """
        raise NotImplementedError

    def read(self) -> int:
        """ Next byte or -1 if none is available. """
        raise NotImplementedError

    def write(self, data: bytes):
        raise NotImplementedError

    def close(self):
        pass


class SerialTransport(Transport):

    def __init__(self, serial_port: str, baudrate=115200):
        self.serial_port = serial_port
        self.error_message = ""
        print(f"Opening serial port {serial_port}...")
        self._ser = serial.Serial(port=serial_port, baudrate=baudrate, parity=serial.PARITY_NONE,
                                  stopbits=serial.STOPBITS_ONE, bytesize=serial.EIGHTBITS,
                                  timeout=0,  # non-blocking read
                                  rtscts=False,  # no flow control
                                  dsrdtr=False,  # no flow control
                                  )
        print(f"{serial_port} opened successfully")

    def __repr__(self):
        return f"{self.serial_port}{' ' + self.error_message if self.error_message else ''}"

    def available(self) -> int:
        try:
            return self._ser.in_waiting
        except SerialException as exc:
            print(exc)
            self.error_message = str(exc)
            return 0

    def read(self) -> int:
        data = self._ser.read(1)
        return data[0] if data else -1

    def write(self, data: bytes):
        self._ser.write(data)

    def close(self):
        self._ser.close()


class SocketTransport(Transport):

    def __init__(self, host: str, port=DEFAULT_PORT, timeout=5.):
        self.address = (host, port)
        self.error_message = ""
        self.closed = False
        self._buffer = bytearray()
        self._socket = socket.create_connection(self.address, timeout=timeout)

    def __repr__(self):
        return f"{self.address[0]}:{self.address[1]}{' (closed)' if self.closed else ''}"

    def available(self) -> int:
        if not self._buffer and not self.closed:
            readable, _, _ = select.select([self._socket], [], [], 0)
            if readable:
                try:
                    data = self._socket.recv(4096)
                except OSError as exc:
                    self.error_message = str(exc)
                    data = b''
                if data:
                    self._buffer.extend(data)
                else:
                    self.closed = True
        return len(self._buffer)

    def read(self) -> int:
        if not self._buffer:
            return -1
        byte = self._buffer[0]
        del self._buffer[0]
        return byte

    def write(self, data: bytes):
        if not self.closed:
            self._socket.sendall(data)

    def close(self):
        self.closed = True
        self._socket.close()


class DebugTransport(Transport):
    """In-memory stream. Bytes passed to `feed()` are read by the protocol, written bytes are collected in `written`."""

    def __init__(self, name='debug'):
        self.name = name
        self.inbound = bytearray()
        self.written = bytearray()

    def __repr__(self):
        return self.name

    def feed(self, data):
        self.inbound.extend(data.encode('ascii') if isinstance(data, str) else data)

    def available(self) -> int:
        return len(self.inbound)

    def read(self) -> int:
        if not self.inbound:
            return -1
        byte = self.inbound[0]
        del self.inbound[0]
        return byte

    def write(self, data: bytes):
        self.written.extend(data)

    def sent_lines(self) -> List[str]:
        """ Written commands without blank lines and terminators. """
        return [line for line in self.written.decode('ascii').replace('\r', '\n').split('\n') if line]


def list_serial_ports(include_bluetooth=False):
    ports = serial.tools.list_ports.comports()
    for port, desc, hwid in sorted(ports):
        is_bluetooth = 'bluetooth' in desc.lower() or '00001101-0000-1000-8000-00805F9B34FB' in hwid.upper()
        if not is_bluetooth or include_bluetooth:
            yield port, desc, hwid


def is_serial_port(name: str) -> bool:
    return name.startswith('/dev/') or _COM_PORT.fullmatch(name) is not None


def open_transport(name: str, baudrate=115200) -> Transport:
    """
    Args:
        name: 'debug...' for an in-memory stream, a serial port such as 'COM3' or '/dev/ttyUSB0',
            or a server as 'host' or 'host:port'

    Returns:
        Connected transport. Serial and socket errors propagate.
    """
    if not name:
        raise ValueError("No transport specified")
    if name.startswith('debug'):
        return DebugTransport(name)
    if is_serial_port(name):
        return SerialTransport(name, baudrate)
    host, _, port = name.rpartition(':')
    if not host:
        return SocketTransport(name)
    if not port.isdigit():
        raise ValueError(f"Invalid server address '{name}'")
    return SocketTransport(host, int(port))
