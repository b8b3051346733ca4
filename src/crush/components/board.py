from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from crush.components.token import Token

Position = Tuple[int, int]


@dataclass(slots=True)
class Board:
    """Square grid of tokens stored as a flat row-major arena.

    Row 0 is the top of the board; gravity pulls toward ``size - 1``. Reads outside
    the grid return ``None`` instead of raising so neighbour lookups near the edges
    stay simple.
    """

    size: int
    cells: List[Optional[Token]] = field(default_factory=list)

    def __post_init__(self) -> None:
        expected = self.size * self.size
        if not self.cells:
            self.cells = [None] * expected
        elif len(self.cells) != expected:
            raise ValueError(f"Board of size {self.size} needs {expected} cells, got {len(self.cells)}")

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.size and 0 <= col < self.size

    def get(self, row: int, col: int) -> Optional[Token]:
        if not self.in_bounds(row, col):
            return None
        return self.cells[row * self.size + col]

    def set(self, row: int, col: int, token: Optional[Token]) -> None:
        if not self.in_bounds(row, col):
            return
        self.cells[row * self.size + col] = token

    def at(self, pos: Position) -> Optional[Token]:
        return self.get(pos[0], pos[1])

    def positions(self) -> Iterator[Position]:
        for row in range(self.size):
            for col in range(self.size):
                yield (row, col)

    def occupied(self) -> Iterator[Tuple[Position, Token]]:
        for pos in self.positions():
            token = self.at(pos)
            if token is not None:
                yield pos, token

    def is_full(self) -> bool:
        return all(cell is not None for cell in self.cells)

    def copy(self) -> "Board":
        """Deep copy used for snapshots published to observers."""
        clones: List[Optional[Token]] = []
        for cell in self.cells:
            if cell is None:
                clones.append(None)
            else:
                clones.append(Token(color=cell.color, kind=cell.kind, durability=cell.durability, uid=cell.uid))
        return Board(size=self.size, cells=clones)
