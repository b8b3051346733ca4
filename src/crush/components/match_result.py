from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Set, Tuple

from crush.components.token import TokenKind

Position = Tuple[int, int]


@dataclass(frozen=True, slots=True)
class SpecialSpawn:
    pos: Position
    color: str
    kind: TokenKind


@dataclass(slots=True)
class MatchResult:
    """Outcome of one detection pass. Computed fresh every pass, never stored."""

    destroyed: Set[Position] = field(default_factory=set)
    damaged: Set[Position] = field(default_factory=set)
    specials: List[SpecialSpawn] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.destroyed and not self.damaged

    def merge(self, other: "MatchResult") -> "MatchResult":
        destroyed = self.destroyed | other.destroyed
        specials = list(self.specials)
        taken = {spawn.pos for spawn in specials}
        for spawn in other.specials:
            if spawn.pos not in taken:
                specials.append(spawn)
                taken.add(spawn.pos)
        return MatchResult(
            destroyed=destroyed,
            damaged=(self.damaged | other.damaged) - destroyed,
            specials=specials,
        )
