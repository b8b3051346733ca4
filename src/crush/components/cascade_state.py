from dataclasses import dataclass, field
from typing import List, Tuple

from crush.components.token import TokenKind

ClearedToken = Tuple[str | None, TokenKind]


@dataclass(slots=True)
class CascadeState:
    """Per-move bookkeeping while the board resolves. Discarded at rest."""

    streak_level: int = 1
    multiplier: int = 0
    score_delta: int = 0
    cleared: List[ClearedToken] = field(default_factory=list)

    @property
    def passes(self) -> int:
        return self.multiplier
