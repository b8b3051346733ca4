from __future__ import annotations

import random
from typing import Iterable, List, Optional, Sequence, Tuple

from esper import World

from crush.components.board import Board
from crush.components.token import Token, TokenKind
from crush.constants import CODE_TO_COLOR, COLOR_CODES, MIN_RUN, PALETTE

Position = Tuple[int, int]

ROCK_CODE = "#"
EMPTY_CODE = "."
KIND_SUFFIX = {
    TokenKind.BOMB: "*",
    TokenKind.STRIPE_H: "-",
    TokenKind.STRIPE_V: "|",
    TokenKind.COLOR_BOMB: "@",
    TokenKind.JELLY: "~",
}
SUFFIX_KIND = {suffix: kind for kind, suffix in KIND_SUFFIX.items()}

ORTHOGONAL = ((-1, 0), (1, 0), (0, -1), (0, 1))


def get_board(world: World) -> Board:
    for _, board in world.get_component(Board):
        return board
    raise RuntimeError("Board not found")


def is_adjacent(a: Position, b: Position) -> bool:
    ar, ac = a
    br, bc = b
    return abs(ar - br) + abs(ac - bc) == 1


def neighbours(board: Board, pos: Position) -> List[Position]:
    row, col = pos
    return [
        (row + dr, col + dc)
        for dr, dc in ORTHOGONAL
        if board.in_bounds(row + dr, col + dc)
    ]


def swap_tokens(board: Board, a: Position, b: Position) -> None:
    token_a = board.at(a)
    board.set(a[0], a[1], board.at(b))
    board.set(b[0], b[1], token_a)


def positions_of_color(board: Board, color: str) -> List[Position]:
    return [pos for pos, token in board.occupied() if token.color == color and not token.is_rock]


def random_regular_token(rng: random.Random, palette: Sequence[str] = PALETTE) -> Token:
    return Token(color=rng.choice(list(palette)))


def has_line_match(board: Board, pos: Position) -> bool:
    """Return True if a horizontal or vertical run of MIN_RUN passes through pos."""
    token = board.at(pos)
    if token is None or not token.matchable:
        return False
    row, col = pos
    for dr, dc in ((0, 1), (1, 0)):
        length = 1
        for sign in (-1, 1):
            r, c = row + dr * sign, col + dc * sign
            while True:
                other = board.get(r, c)
                if other is None or not other.matchable or other.color != token.color:
                    break
                length += 1
                r += dr * sign
                c += dc * sign
        if length >= MIN_RUN:
            return True
    return False


def predict_swap_creates_match(board: Board, src: Position, dst: Position, *, touching: Optional[Position] = None) -> bool:
    """Return True if swapping src/dst forms a run.

    When ``touching`` is given only runs through that cell count.
    """
    if board.at(src) is None or board.at(dst) is None:
        return False
    swap_tokens(board, src, dst)
    try:
        if touching is not None:
            return has_line_match(board, touching)
        return has_line_match(board, src) or has_line_match(board, dst)
    finally:
        swap_tokens(board, src, dst)


def find_valid_swaps(board: Board) -> List[Tuple[Position, Position]]:
    """Enumerate adjacent swaps of movable tokens that would produce a match."""
    swaps: List[Tuple[Position, Position]] = []
    for row in range(board.size):
        for col in range(board.size):
            pos = (row, col)
            token = board.at(pos)
            if token is None or token.is_rock:
                continue
            for other in ((row, col + 1), (row + 1, col)):
                neighbour = board.at(other)
                if neighbour is None or neighbour.is_rock:
                    continue
                if predict_swap_creates_match(board, pos, other):
                    swaps.append((pos, other))
    return swaps


def cell_code(token: Optional[Token]) -> str:
    if token is None:
        return EMPTY_CODE
    if token.is_rock:
        return ROCK_CODE
    code = COLOR_CODES.get(token.color or "", "?")
    return code + KIND_SUFFIX.get(token.kind, "")


def serialize_grid(board: Board) -> str:
    """Row-major text grid: colour letter plus kind suffix, rocks as '#', empties as '.'."""
    lines = []
    for row in range(board.size):
        lines.append(" ".join(cell_code(board.get(row, col)) for col in range(board.size)))
    return "\n".join(lines)


def parse_cell(code: str) -> Optional[Token]:
    """Inverse of cell_code. A trailing digit sets durability (e.g. '#2', 'R~3')."""
    if not code or code == EMPTY_CODE:
        return None
    durability = 0
    if code[-1].isdigit():
        durability = int(code[-1])
        code = code[:-1]
    if code == ROCK_CODE:
        return Token(color=None, kind=TokenKind.ROCK, durability=durability)
    color = CODE_TO_COLOR.get(code[0])
    if color is None:
        raise ValueError(f"Unknown colour code in cell {code!r}")
    kind = TokenKind.REGULAR
    if len(code) > 1:
        try:
            kind = SUFFIX_KIND[code[1:]]
        except KeyError:
            raise ValueError(f"Unknown kind suffix in cell {code!r}") from None
    return Token(color=color, kind=kind, durability=durability)


def parse_grid(text: str | Iterable[str]) -> Board:
    rows = text.strip().splitlines() if isinstance(text, str) else list(text)
    size = len(rows)
    cells: List[Optional[Token]] = []
    for line in rows:
        codes = line.split()
        if len(codes) != size:
            raise ValueError(f"Expected {size} cells per row, got {len(codes)}")
        cells.extend(parse_cell(code) for code in codes)
    return Board(size=size, cells=cells)
