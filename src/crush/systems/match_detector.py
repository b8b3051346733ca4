"""Run detection and chain expansion for a board that may be mid-cascade.

One call to :func:`detect_matches` is one pass: scan rows and columns for runs,
turn L/T intersections and long runs into special spawns, then follow every
destroyed special through the board until nothing new is marked.
"""
from __future__ import annotations

import random
from collections import deque
from typing import Deque, Iterable, List, Optional, Sequence, Set, Tuple

from crush.components.board import Board
from crush.components.match_result import MatchResult, SpecialSpawn
from crush.components.token import TokenKind
from crush.constants import MIN_RUN, PALETTE
from crush.systems.board_ops import neighbours

Position = Tuple[int, int]
Run = List[Position]


def _scan_line(board: Board, cells: Sequence[Position]) -> List[Run]:
    runs: List[Run] = []
    run: Run = []
    last_color: Optional[str] = None
    for pos in cells:
        token = board.at(pos)
        color = token.color if token is not None and token.matchable else None
        if color is not None and color == last_color:
            run.append(pos)
            continue
        if len(run) >= MIN_RUN:
            runs.append(run)
        run = [pos] if color is not None else []
        last_color = color
    if len(run) >= MIN_RUN:
        runs.append(run)
    return runs


def find_runs(board: Board) -> Tuple[List[Run], List[Run]]:
    """Return (horizontal, vertical) runs of MIN_RUN or more matchable tokens."""
    horizontal: List[Run] = []
    vertical: List[Run] = []
    for row in range(board.size):
        horizontal.extend(_scan_line(board, [(row, col) for col in range(board.size)]))
    for col in range(board.size):
        vertical.extend(_scan_line(board, [(row, col) for row in range(board.size)]))
    return horizontal, vertical


def _spawn_position(run: Run, destination: Optional[Position]) -> Position:
    if destination is not None and destination in run:
        return destination
    return run[(len(run) - 1) // 2]


def _run_special(run: Run, *, horizontal: bool) -> Optional[TokenKind]:
    if len(run) >= 5:
        return TokenKind.COLOR_BOMB
    if len(run) == 4:
        # The stripe runs across the direction of the match.
        return TokenKind.STRIPE_V if horizontal else TokenKind.STRIPE_H
    return None


def expand_chain(
    board: Board,
    seeds: Iterable[Position],
    rng: random.Random,
    *,
    consumed: Iterable[Position] = (),
    palette: Sequence[str] = PALETTE,
) -> Set[Position]:
    """Follow destroyed specials through the board.

    Every marked cell is queued once; when it holds a special its area is marked in
    turn. Cells in ``consumed`` are marked but their own effect does not fire.
    """
    consumed_set = set(consumed)
    marked: Set[Position] = set()
    queue: Deque[Position] = deque()
    for pos in list(seeds) + list(consumed_set):
        if board.in_bounds(*pos) and pos not in marked:
            marked.add(pos)
            queue.append(pos)
    processed: Set[Position] = set()

    def mark(pos: Position) -> None:
        if pos not in marked:
            marked.add(pos)
            queue.append(pos)

    while queue:
        current = queue.popleft()
        if current in processed:
            continue
        processed.add(current)
        if current in consumed_set:
            continue
        token = board.at(current)
        if token is None:
            continue
        row, col = current
        if token.kind is TokenKind.STRIPE_H:
            for c in range(board.size):
                mark((row, c))
        elif token.kind is TokenKind.STRIPE_V:
            for r in range(board.size):
                mark((r, col))
        elif token.kind is TokenKind.BOMB:
            for r in range(row - 1, row + 2):
                for c in range(col - 1, col + 2):
                    if board.in_bounds(r, c):
                        mark((r, c))
        elif token.kind is TokenKind.COLOR_BOMB:
            chosen = rng.choice(list(palette))
            for pos, other in board.occupied():
                if other.color == chosen and not other.is_rock:
                    mark(pos)
    return marked


def build_result(
    board: Board,
    seeds: Iterable[Position],
    rng: random.Random,
    *,
    specials: Iterable[SpecialSpawn] = (),
    consumed: Iterable[Position] = (),
    direct_hits: Iterable[Position] = (),
) -> MatchResult:
    """Expand ``seeds`` and split the outcome into destroyed cells and damaged rocks.

    Rocks never break from a match directly: a rock swept by a clearer or next to
    a destroyed cell takes one point of damage instead. ``direct_hits`` are cells
    damaged without being destroyed (hammer on an obstacle).
    """
    marked = expand_chain(board, seeds, rng, consumed=consumed)
    destroyed: Set[Position] = set()
    damaged: Set[Position] = set()
    for pos in marked:
        token = board.at(pos)
        if token is None:
            continue
        if token.is_rock:
            damaged.add(pos)
        else:
            destroyed.add(pos)
    for pos in destroyed:
        for adjacent in neighbours(board, pos):
            token = board.at(adjacent)
            if token is not None and token.is_rock:
                damaged.add(adjacent)
    for pos in direct_hits:
        if board.at(pos) is not None and pos not in destroyed:
            damaged.add(pos)
    return MatchResult(destroyed=destroyed, damaged=damaged, specials=list(specials))


def detect_matches(
    board: Board,
    destination: Optional[Position] = None,
    rng: random.Random | None = None,
) -> MatchResult:
    """Run one detection pass. Does not modify the board."""
    rng = rng or random.Random()
    horizontal, vertical = find_runs(board)
    if not horizontal and not vertical:
        return MatchResult()

    matched: Set[Position] = set()
    specials: List[SpecialSpawn] = []
    spawn_cells: Set[Position] = set()

    def add_spawn(pos: Position, kind: TokenKind) -> None:
        token = board.at(pos)
        if token is None or token.color is None or pos in spawn_cells:
            return
        specials.append(SpecialSpawn(pos=pos, color=token.color, kind=kind))
        spawn_cells.add(pos)

    # L/T shapes: a horizontal and vertical run sharing a cell become one bomb.
    used_h: Set[int] = set()
    used_v: Set[int] = set()
    for h_index, h_run in enumerate(horizontal):
        for v_index, v_run in enumerate(vertical):
            shared = set(h_run) & set(v_run)
            if not shared:
                continue
            intersection = min(shared)
            matched.update(h_run)
            matched.update(v_run)
            add_spawn(intersection, TokenKind.BOMB)
            used_h.add(h_index)
            used_v.add(v_index)

    for runs, used, is_horizontal in ((horizontal, used_h, True), (vertical, used_v, False)):
        for index, run in enumerate(runs):
            if index in used:
                continue
            matched.update(run)
            kind = _run_special(run, horizontal=is_horizontal)
            if kind is not None:
                add_spawn(_spawn_position(run, destination), kind)

    return build_result(board, matched, rng, specials=specials)
