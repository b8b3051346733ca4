from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class TokenKind(str, Enum):
    REGULAR = "regular"
    STRIPE_H = "stripe_h"      # clears its row when destroyed
    STRIPE_V = "stripe_v"      # clears its column when destroyed
    BOMB = "bomb"              # clears its 3x3 neighbourhood
    COLOR_BOMB = "color_bomb"  # clears every token of one colour
    ROCK = "rock"
    JELLY = "jelly"


SPECIAL_KINDS = frozenset({TokenKind.STRIPE_H, TokenKind.STRIPE_V, TokenKind.BOMB, TokenKind.COLOR_BOMB})
LINE_KINDS = frozenset({TokenKind.STRIPE_H, TokenKind.STRIPE_V})
OBSTACLE_KINDS = frozenset({TokenKind.ROCK, TokenKind.JELLY})

_token_ids = itertools.count(1)


@dataclass(slots=True)
class Token:
    """A single candy occupying one board cell.

    Tokens are replaced wholesale when they change; the only in-place mutation is
    ``durability`` being decremented on obstacles. ``color`` is ``None`` only for
    rocks, which never take part in colour matching. ``uid`` identifies a token for
    presentation purposes and is ignored by equality.
    """

    color: Optional[str]
    kind: TokenKind = TokenKind.REGULAR
    durability: int = 0
    uid: int = field(default_factory=lambda: next(_token_ids), compare=False)

    @property
    def is_special(self) -> bool:
        return self.kind in SPECIAL_KINDS

    @property
    def is_obstacle(self) -> bool:
        return self.kind in OBSTACLE_KINDS

    @property
    def is_rock(self) -> bool:
        return self.kind is TokenKind.ROCK

    @property
    def matchable(self) -> bool:
        """True when the token can extend a same-colour run."""
        return self.color is not None and self.kind not in (TokenKind.ROCK, TokenKind.COLOR_BOMB)

    def hit(self) -> bool:
        """Apply one point of damage. Returns True when the token is used up."""
        if self.durability <= 1:
            self.durability = 0
            return True
        self.durability -= 1
        return False
