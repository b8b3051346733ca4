from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ResolutionPhase(Enum):
    IDLE = auto()
    RESOLVING = auto()


@dataclass(slots=True)
class ResolutionState:
    """Tracks whether a move is currently being resolved on the board."""

    phase: ResolutionPhase = ResolutionPhase.IDLE
    action_source: Optional[str] = None
    cascade_depth: int = 0

    @property
    def resolving(self) -> bool:
        return self.phase is ResolutionPhase.RESOLVING
