import json
from dataclasses import dataclass, fields, replace

from .protocol_def import DEFAULT_MIN_DELAY


@dataclass(frozen=True)
class Settings:
    transport: str = 'localhost'  # 'host[:port]', serial port or 'debug'
    baudrate: int = 115200
    device_name: str = 'WiThrottle Client'
    device_id: str = ''
    min_delay: float = DEFAULT_MIN_DELAY  # seconds between outbound commands
    leading_crlf: bool = False
    require_heartbeat: bool = True
    log_level: int = 1
    poll_period: float = .01  # seconds between check() calls

    def __post_init__(self):
        if self.min_delay < 0:
            raise ValueError(f"min_delay must be >= 0 but got {self.min_delay}")
        if self.poll_period <= 0:
            raise ValueError(f"poll_period must be > 0 but got {self.poll_period}")

    def override(self, **values) -> 'Settings':
        """ Copy with all non-`None` values replaced. """
        return replace(self, **{k: v for k, v in values.items() if v is not None})


def load_settings(file='settings.json') -> Settings:
    with open(file) as f:
        values = json.load(f)
    known = {f.name for f in fields(Settings)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown settings in {file}: {', '.join(sorted(unknown))}")
    return Settings(**values)
