from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Tuple

from crush.components.token import TokenKind


@dataclass(frozen=True, slots=True)
class LevelGoal:
    """Clear ``count`` tokens matching ``target`` (a colour name or a TokenKind value)."""

    target: str
    count: int

    def matches(self, color: str | None, kind: TokenKind | str) -> bool:
        kind_value = kind.value if isinstance(kind, TokenKind) else str(kind)
        return self.target == color or self.target == kind_value


@dataclass(slots=True)
class GoalProgress:
    goals: Tuple[LevelGoal, ...] = ()
    tallies: Dict[str, int] = field(default_factory=dict)

    def record(self, tokens: Iterable[Tuple[str | None, TokenKind | str]]) -> bool:
        """Tally cleared tokens. Returns True when any goal counter moved."""
        changed = False
        for color, kind in tokens:
            for goal in self.goals:
                if goal.matches(color, kind):
                    self.tallies[goal.target] = self.tallies.get(goal.target, 0) + 1
                    changed = True
        return changed

    def is_complete(self) -> bool:
        return all(self.tallies.get(goal.target, 0) >= goal.count for goal in self.goals)
