from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Tuple

from crush.components.board import Board
from crush.components.token import Token

Position = Tuple[int, int]
TokenSource = Callable[[Position], Token]


@dataclass(slots=True)
class GravityMove:
    source: Position
    target: Position
    uid: int


@dataclass(slots=True)
class GravityResult:
    moves: List[GravityMove] = field(default_factory=list)
    new_tiles: List[Position] = field(default_factory=list)


def compute_gravity_moves(board: Board) -> List[GravityMove]:
    """Moves that compact each column toward the bottom, keeping relative order."""
    moves: List[GravityMove] = []
    for col in range(board.size):
        target_row = board.size - 1
        for row in range(board.size - 1, -1, -1):
            token = board.get(row, col)
            if token is None:
                continue
            if row != target_row:
                moves.append(GravityMove(source=(row, col), target=(target_row, col), uid=token.uid))
            target_row -= 1
    return moves


def apply_gravity_moves(board: Board, moves: List[GravityMove]) -> None:
    # Moves are produced bottom-up per column so targets are always already vacated.
    for move in moves:
        token = board.at(move.source)
        board.set(move.source[0], move.source[1], None)
        board.set(move.target[0], move.target[1], token)


def refill_empty_cells(board: Board, spawn: TokenSource) -> List[Position]:
    spawned: List[Position] = []
    for col in range(board.size):
        for row in range(board.size - 1, -1, -1):
            if board.get(row, col) is None:
                board.set(row, col, spawn((row, col)))
                spawned.append((row, col))
    return spawned


def apply_gravity(board: Board, spawn: TokenSource) -> GravityResult:
    """Compact every column downward, then fill the vacated top cells from ``spawn``.

    Refilled tokens are not screened for matches; any run they form feeds the next
    cascade pass.
    """
    moves = compute_gravity_moves(board)
    apply_gravity_moves(board, moves)
    new_tiles = refill_empty_cells(board, spawn)
    return GravityResult(moves=moves, new_tiles=new_tiles)
