from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence, Set, Tuple

from crush.components.board import Board
from crush.components.token import Token, TokenKind
from crush.constants import GENERATOR_MAX_ATTEMPTS, GRID_SIZE, PALETTE
from crush.factories.levels import ObstacleSettings
from crush.systems.board_ops import find_valid_swaps
from crush.systems.match_detector import find_runs

Position = Tuple[int, int]

logger = logging.getLogger(__name__)


def rock_positions(level_id: int, size: int, settings: ObstacleSettings) -> Set[Position]:
    """Fixed central block of rocks once the level reaches the rock tier."""
    if level_id < settings.rock_from_level or settings.rock_block <= 0:
        return set()
    block = min(settings.rock_block, size)
    start = (size - block) // 2
    return {
        (row, col)
        for row in range(start, start + block)
        for col in range(start, start + block)
    }


def jelly_positions(
    level_id: int,
    size: int,
    settings: ObstacleSettings,
    rng: random.Random,
    blocked: Set[Position],
) -> Set[Position]:
    """Sprinkle jelly over free cells: ``jelly_density`` of them, never fewer than ``jelly_minimum``."""
    if level_id < settings.jelly_from_level:
        return set()
    eligible = [
        (row, col)
        for row in range(size)
        for col in range(size)
        if (row, col) not in blocked
    ]
    count = max(int(round(settings.jelly_density * len(eligible))), settings.jelly_minimum)
    count = min(count, len(eligible))
    if count <= 0:
        return set()
    return set(rng.sample(eligible, count))


def _pick_color(board: Board, row: int, col: int, palette: Sequence[str], rng: random.Random) -> Optional[str]:
    available = list(palette)
    # Prevent horizontal triple: if the two cells to the left share a colour, exclude it.
    left1 = board.get(row, col - 1)
    left2 = board.get(row, col - 2)
    if left1 is not None and left2 is not None and left1.matchable and left2.matchable:
        if left1.color == left2.color:
            available = [color for color in available if color != left1.color]
    # Prevent vertical triple with the two cells above.
    up1 = board.get(row - 1, col)
    up2 = board.get(row - 2, col)
    if up1 is not None and up2 is not None and up1.matchable and up2.matchable:
        if up1.color == up2.color:
            available = [color for color in available if color != up1.color]
    if not available:
        return None
    return rng.choice(available)


def _build_layout(
    level_id: int,
    size: int,
    settings: ObstacleSettings,
    palette: Sequence[str],
    rng: random.Random,
) -> Board | None:
    board = Board(size=size)
    rocks = rock_positions(level_id, size, settings)
    jellies = jelly_positions(level_id, size, settings, rng, rocks)
    # Obstacles go down before any colour is assigned.
    for row, col in rocks:
        board.set(row, col, Token(color=None, kind=TokenKind.ROCK, durability=settings.rock_durability))
    for row in range(size):
        for col in range(size):
            if (row, col) in rocks:
                continue
            color = _pick_color(board, row, col, palette, rng)
            if color is None:
                return None
            if (row, col) in jellies:
                board.set(row, col, Token(color=color, kind=TokenKind.JELLY, durability=settings.jelly_durability))
            else:
                board.set(row, col, Token(color=color))
    return board


def generate_board(
    level_id: int,
    *,
    size: int = GRID_SIZE,
    rng: random.Random | None = None,
    settings: ObstacleSettings | None = None,
    palette: Sequence[str] = PALETTE,
    max_attempts: int = GENERATOR_MAX_ATTEMPTS,
) -> Board:
    """Build a full board with no pre-existing runs and at least one valid swap."""
    rng = rng or random.Random()
    settings = settings or ObstacleSettings()
    for attempt in range(max_attempts):
        board = _build_layout(level_id, size, settings, palette, rng)
        if board is None:
            continue
        horizontal, vertical = find_runs(board)
        if horizontal or vertical:
            continue
        if not find_valid_swaps(board):
            logger.debug("Generated board %d for level %d has no valid swap; retrying", attempt, level_id)
            continue
        return board
    raise RuntimeError("Unable to generate board without matches and valid swaps")


def validate_rest_board(board: Board) -> List[str]:
    """Return a list of problems that keep ``board`` from being a resting board."""
    problems: List[str] = []
    if not board.is_full():
        problems.append("board has empty cells")
    horizontal, vertical = find_runs(board)
    if horizontal or vertical:
        problems.append("board contains runs")
    return problems
