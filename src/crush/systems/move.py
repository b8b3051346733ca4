from __future__ import annotations

import logging
import random
from typing import Iterable, List, Set, Tuple

from esper import World

from crush.components.board import Board
from crush.components.match_result import MatchResult
from crush.components.token import LINE_KINDS, Token, TokenKind
from crush.events.bus import (
    EVENT_BOARD_SETTLE_REQUEST,
    EVENT_MOVE_CONSUMED,
    EVENT_TILE_SWAP_FINALIZE,
    EVENT_TILE_SWAP_INVALID,
    EVENT_TILE_SWAP_REQUEST,
    EVENT_TILE_SWAP_VALID,
    EventBus,
)
from crush.systems.board_ops import (
    get_board,
    is_adjacent,
    positions_of_color,
    predict_swap_creates_match,
    swap_tokens,
)
from crush.systems.match_detector import build_result, detect_matches
from crush.utils.state import input_allowed

Position = Tuple[int, int]

logger = logging.getLogger(__name__)


def _full_row(board: Board, row: int) -> List[Position]:
    return [(row, col) for col in range(board.size)] if 0 <= row < board.size else []


def _full_col(board: Board, col: int) -> List[Position]:
    return [(row, col) for row in range(board.size)] if 0 <= col < board.size else []


def _square(board: Board, center: Position, radius: int) -> List[Position]:
    row, col = center
    return [
        (r, c)
        for r in range(row - radius, row + radius + 1)
        for c in range(col - radius, col + radius + 1)
        if board.in_bounds(r, c)
    ]


def _convert(board: Board, positions: Iterable[Position], kind_for) -> None:
    """Replace every non-obstacle token at ``positions`` with a special of the same colour."""
    for pos in positions:
        token = board.at(pos)
        if token is None or token.is_obstacle:
            continue
        board.set(pos[0], pos[1], Token(color=token.color, kind=kind_for()))


def is_special_swap(a: Token, b: Token) -> bool:
    if a.kind is TokenKind.COLOR_BOMB or b.kind is TokenKind.COLOR_BOMB:
        return True
    return a.is_special and b.is_special


def special_swap_result(board: Board, src: Position, dst: Position, rng: random.Random) -> MatchResult:
    """Clear set for a colour bomb swap or two specials swapped together.

    May convert tokens on the board (colour bomb + special). The swapped pair is
    consumed by the combo and does not fire its own effect, except a non-colour
    partner of a colour bomb which is part of the converted set.
    """
    first = board.at(src)
    second = board.at(dst)
    if first is None or second is None:
        return MatchResult()
    seeds: Set[Position] = set()
    consumed: Set[Position] = {src, dst}

    if first.kind is TokenKind.COLOR_BOMB and second.kind is TokenKind.COLOR_BOMB:
        seeds.update(board.positions())
    elif first.kind is TokenKind.COLOR_BOMB or second.kind is TokenKind.COLOR_BOMB:
        bomb_pos, partner_pos = (src, dst) if first.kind is TokenKind.COLOR_BOMB else (dst, src)
        partner = board.at(partner_pos)
        targets = positions_of_color(board, partner.color) if partner.color else []
        if partner.kind is TokenKind.BOMB:
            _convert(board, targets, lambda: TokenKind.BOMB)
        elif partner.kind in LINE_KINDS:
            orientations = sorted(LINE_KINDS, key=lambda kind: kind.value)
            _convert(board, targets, lambda: rng.choice(orientations))
        seeds.update(targets)
        consumed = {bomb_pos}
    else:
        kinds = {first.kind, second.kind}
        row, col = dst
        if kinds == {TokenKind.BOMB}:
            seeds.update(_square(board, dst, 2))
        elif TokenKind.BOMB in kinds:
            for offset in (-1, 0, 1):
                seeds.update(_full_row(board, row + offset))
                seeds.update(_full_col(board, col + offset))
        else:
            seeds.update(_full_row(board, row))
            seeds.update(_full_col(board, col))

    direct = build_result(board, seeds - consumed, rng, consumed=consumed)
    return direct.merge(detect_matches(board, dst, rng))


class MoveSystem:
    """Validates swap requests and hands accepted moves to the resolution loop."""

    def __init__(self, world: World, event_bus: EventBus):
        self.world = world
        self.event_bus = event_bus
        self.event_bus.subscribe(EVENT_TILE_SWAP_REQUEST, self.on_swap_request)

    def on_swap_request(self, sender, **kwargs):
        src = kwargs.get('src')
        dst = kwargs.get('dst')
        if not src or not dst:
            return
        self.attempt_swap(tuple(src), tuple(dst))

    def attempt_swap(self, src: Position, dst: Position) -> bool:
        if not input_allowed(self.world):
            return self._reject(src, dst, "busy")
        board = get_board(self.world)
        if not (board.in_bounds(*src) and board.in_bounds(*dst)) or not is_adjacent(src, dst):
            return self._reject(src, dst, "not_adjacent")
        first = board.at(src)
        second = board.at(dst)
        if first is None or second is None:
            return self._reject(src, dst, "empty")
        if first.is_rock or second.is_rock:
            return self._reject(src, dst, "obstacle")

        if is_special_swap(first, second):
            result = special_swap_result(board, src, dst, getattr(self.world, "random"))
            self.event_bus.emit(EVENT_TILE_SWAP_VALID, src=src, dst=dst, kind="special")
            self.event_bus.emit(EVENT_MOVE_CONSUMED, source="special_swap")
            self.event_bus.emit(
                EVENT_BOARD_SETTLE_REQUEST,
                reason="special_swap",
                initial=result,
                destination=dst,
            )
            return True

        if not predict_swap_creates_match(board, src, dst, touching=dst):
            return self._reject(src, dst, "no_match")
        swap_tokens(board, src, dst)
        self.event_bus.emit(EVENT_TILE_SWAP_VALID, src=src, dst=dst, kind="swap")
        self.event_bus.emit(EVENT_MOVE_CONSUMED, source="swap")
        self.event_bus.emit(EVENT_TILE_SWAP_FINALIZE, src=src, dst=dst)
        return True

    def _reject(self, src: Position, dst: Position, reason: str) -> bool:
        logger.debug("Swap %s -> %s rejected: %s", src, dst, reason)
        self.event_bus.emit(EVENT_TILE_SWAP_INVALID, src=src, dst=dst, reason=reason)
        return False
