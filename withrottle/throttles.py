from dataclasses import dataclass, field
from typing import List, Optional

from .protocol_def import Direction, MIN_SPEED, MAX_SPEED, THROTTLE_IDS, ALL_LOCOS


def slot_index(throttle: str) -> int:
    """ '0'-'5' map to their slot, 'T' and every other id alias slot 0. """
    return THROTTLE_IDS.index(throttle) if throttle in THROTTLE_IDS else 0


@dataclass
class LocomotiveEntry:
    address: str  # [S|L]nnnn, short or long DCC address
    facing: Direction = Direction.FORWARD

    def __repr__(self):
        return f"{self.address}{'' if self.facing == Direction.FORWARD else ' (reversed)'}"


@dataclass
class ThrottleSlot:
    roster: List[LocomotiveEntry] = field(default_factory=list)  # consist order, lead first
    speed: int = 0
    direction: Direction = Direction.FORWARD
    speed_steps: int = 0  # 0 until the server reports a mode
    last_acquire_time: Optional[float] = None

    def __repr__(self):
        return f"{self.roster} {'+' if self.direction == Direction.FORWARD else '-'}{self.speed} steps={self.speed_steps}"

    @property
    def selected(self) -> bool:
        return len(self.roster) > 0

    @property
    def lead_address(self) -> Optional[str]:
        return self.roster[0].address if self.roster else None

    @property
    def addresses(self) -> List[str]:
        return [loco.address for loco in self.roster]

    def find(self, address: str) -> Optional[LocomotiveEntry]:
        for loco in self.roster:
            if loco.address == address:
                return loco
        return None

    def add(self, address: str, now: float) -> bool:
        """ Appends `address` facing forward unless it is already part of the consist. Returns whether it was added. """
        if self.find(address) is not None:
            return False
        self.roster.append(LocomotiveEntry(address))
        self.last_acquire_time = now
        return True

    def remove(self, address: str):
        if address == ALL_LOCOS:
            self.roster.clear()
        else:
            loco = self.find(address)
            if loco is not None:
                self.roster.remove(loco)

    def set_speed(self, speed: int):
        self.speed = max(MIN_SPEED, min(speed, MAX_SPEED))

    def facing(self, address: str) -> Direction:
        if address == ALL_LOCOS:
            return self.direction
        loco = self.find(address)
        return self.direction if loco is None else loco.facing


class ThrottleTable:
    """Six independent throttle slots, addressed by throttle id character."""

    def __init__(self):
        self.slots = tuple(ThrottleSlot() for _ in THROTTLE_IDS)

    def __getitem__(self, throttle: str) -> ThrottleSlot:
        return self.slots[slot_index(throttle)]

    def __iter__(self):
        return iter(zip(THROTTLE_IDS, self.slots))

    def last_acquire_time(self) -> Optional[float]:
        times = [s.last_acquire_time for s in self.slots if s.last_acquire_time is not None]
        return max(times) if times else None

    def reset(self):
        self.slots = tuple(ThrottleSlot() for _ in THROTTLE_IDS)
