from dataclasses import dataclass

from crush.constants import STREAK_MULTIPLIER_STEP


@dataclass(slots=True)
class Streak:
    """Cross-move streak meter.

    ``level`` grows by one for each move that resolved at least one pass.
    ``progress`` is the fraction of the decay window left (1.0 = full meter).
    """

    level: int = 1
    progress: float = 0.0

    @property
    def multiplier(self) -> float:
        return 1 + (self.level - 1) * STREAK_MULTIPLIER_STEP
