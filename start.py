import argparse
import os

from withrottle.console_throttle import run, HELP
from withrottle.settings import load_settings, Settings
from withrottle.transports import list_serial_ports

if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Drive model railway locomotives over the WiThrottle protocol.")
    parser.add_argument('--settings', default='settings.json', help="JSON settings file")
    parser.add_argument('--transport', help="host[:port], serial port or 'debug'")
    parser.add_argument('--log-level', type=int, help="0 = errors only, 1 = traffic, 2 = parser detail")
    parser.add_argument('--list-ports', action='store_true', help="list serial ports and exit")
    args = parser.parse_args()

    if args.list_ports:
        for port, desc, _ in list_serial_ports(include_bluetooth=True):
            print(f"{port}\t{desc}")
        raise SystemExit(0)

    settings = load_settings(args.settings) if os.path.exists(args.settings) else Settings()
    settings = settings.override(transport=args.transport, log_level=args.log_level)
    print(f"Connecting to {settings.transport} as '{settings.device_name}'...")
    protocol, commands, shutdown = run(settings)
    print(HELP)
    try:
        while True:
            line = input()
            if line.strip().lower() in ('quit', 'exit', 'q'):
                break
            commands.put(line)
    except (EOFError, KeyboardInterrupt):
        pass
    finally:
        shutdown()
        print("Disconnected.")
