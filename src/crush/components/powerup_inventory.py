from dataclasses import dataclass, field
from enum import Enum
from typing import Dict


class PowerUpKind(str, Enum):
    HAMMER = "hammer"
    FREE_SWITCH = "free_switch"
    UFO = "ufo"
    PARTY = "party"


@dataclass(slots=True)
class PowerUpInventory:
    counts: Dict[str, int] = field(default_factory=dict)

    def available(self, kind: str) -> int:
        return int(self.counts.get(kind, 0))

    def consume(self, kind: str) -> bool:
        current = self.available(kind)
        if current <= 0:
            return False
        self.counts[kind] = current - 1
        return True

    def add(self, kind: str, amount: int = 1) -> None:
        if amount <= 0:
            return
        self.counts[kind] = self.available(kind) + amount
