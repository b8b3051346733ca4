from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from esper import World

from crush.components.board import Board
from crush.components.cascade_state import CascadeState
from crush.components.match_result import MatchResult, SpecialSpawn
from crush.components.resolution_state import ResolutionPhase
from crush.components.token import Token, TokenKind
from crush.constants import POINTS_PER_DAMAGED, POINTS_PER_DESTROYED, STREAK_MAX_LEVEL, STREAK_MULTIPLIER_STEP
from crush.events.bus import (
    EVENT_BOARD_CHANGED,
    EVENT_BOARD_SETTLE_REQUEST,
    EVENT_CASCADE_COMPLETE,
    EVENT_CASCADE_STARTED,
    EVENT_CASCADE_STEP,
    EVENT_GRAVITY_APPLIED,
    EVENT_MATCH_CLEARED,
    EVENT_OBSTACLE_DAMAGED,
    EVENT_REFILL_COMPLETED,
    EVENT_SCORE_AWARDED,
    EVENT_SPECIALS_SPAWNED,
    EVENT_STREAK_CHANGED,
    EVENT_TILE_SWAP_FINALIZE,
    EVENT_TOKENS_CLEARED,
    EventBus,
)
from crush.systems.board_ops import get_board, random_regular_token
from crush.systems.gravity import TokenSource, apply_gravity
from crush.systems.match_detector import detect_matches
from crush.utils.state import get_or_create_resolution_state, get_or_create_streak

Position = Tuple[int, int]

logger = logging.getLogger(__name__)


def pass_score(result: MatchResult, multiplier: int, streak_multiplier: float) -> int:
    base = len(result.destroyed) * POINTS_PER_DESTROYED + len(result.damaged) * POINTS_PER_DAMAGED
    return int(round(base * multiplier * streak_multiplier))


class MatchResolutionSystem:
    """Drives detect -> score -> clear -> gravity passes until the board is at rest.

    Each resolve call runs synchronously. Pass boundaries are published as events so
    a presentation layer can pace its own animations; the core never waits on them.
    """

    def __init__(self, world: World, event_bus: EventBus, *, spawn: TokenSource | None = None):
        self.world = world
        self.event_bus = event_bus
        self._spawn = spawn or self._random_spawn
        self.event_bus.subscribe(EVENT_TILE_SWAP_FINALIZE, self.on_swap_finalize)
        self.event_bus.subscribe(EVENT_BOARD_SETTLE_REQUEST, self.on_settle_request)

    def on_swap_finalize(self, sender, **kwargs):
        dst = kwargs.get('dst')
        self.resolve(destination=dst, source=kwargs.get('source', 'swap'))

    def on_settle_request(self, sender, **kwargs):
        self.resolve(
            destination=kwargs.get('destination'),
            initial=kwargs.get('initial'),
            source=kwargs.get('reason', 'board_changed'),
        )

    def resolve(
        self,
        *,
        destination: Optional[Position] = None,
        initial: Optional[MatchResult] = None,
        source: str = "swap",
    ) -> CascadeState:
        """Resolve the board to rest and return the bookkeeping for this action.

        ``initial`` replaces the detector on the first pass, for actions that
        compute their own clear set (special combos, power-ups).
        """
        state = get_or_create_resolution_state(self.world)
        streak = get_or_create_streak(self.world)
        cascade = CascadeState(streak_level=streak.level)
        if state.resolving:
            logger.debug("Ignoring resolve request from %s while a cascade is running", source)
            return cascade

        board = get_board(self.world)
        rng = getattr(self.world, "random")
        state.phase = ResolutionPhase.RESOLVING
        state.action_source = source
        state.cascade_depth = 0
        self.event_bus.emit(EVENT_CASCADE_STARTED, source=source)
        try:
            pending = initial
            while True:
                if pending is not None:
                    result, pending = pending, None
                else:
                    result = detect_matches(board, destination if cascade.passes == 0 else None, rng)
                if result.is_empty():
                    break
                self._run_pass(board, result, cascade)
                state.cascade_depth = cascade.passes
        finally:
            state.phase = ResolutionPhase.IDLE
            state.action_source = None

        if cascade.passes:
            streak.level = min(streak.level + 1, STREAK_MAX_LEVEL)
            streak.progress = 1.0
            self.event_bus.emit(EVENT_STREAK_CHANGED, level=streak.level, multiplier=streak.multiplier)
        if cascade.score_delta > 0:
            self.event_bus.emit(EVENT_SCORE_AWARDED, points=cascade.score_delta, reason=source)
        if cascade.cleared:
            self.event_bus.emit(EVENT_TOKENS_CLEARED, tokens=list(cascade.cleared))
        self.event_bus.emit(
            EVENT_CASCADE_COMPLETE,
            depth=cascade.passes,
            score_delta=cascade.score_delta,
            cleared=list(cascade.cleared),
        )
        return cascade

    def _run_pass(self, board: Board, result: MatchResult, cascade: CascadeState) -> None:
        cascade.multiplier += 1
        streak_multiplier = 1 + (cascade.streak_level - 1) * STREAK_MULTIPLIER_STEP
        points = pass_score(result, cascade.multiplier, streak_multiplier)
        cascade.score_delta += points
        self.event_bus.emit(
            EVENT_CASCADE_STEP,
            depth=cascade.multiplier,
            positions=sorted(result.destroyed),
            damaged=sorted(result.damaged),
            points=points,
            multiplier=cascade.multiplier,
            streak_multiplier=streak_multiplier,
        )

        cleared = self._clear(board, result)
        tokens = [(token.color, token.kind) for _, token in cleared]
        cascade.cleared.extend(tokens)
        self.event_bus.emit(
            EVENT_MATCH_CLEARED,
            positions=[pos for pos, _ in cleared],
            tokens=tokens,
        )
        if result.damaged:
            self.event_bus.emit(EVENT_OBSTACLE_DAMAGED, positions=sorted(result.damaged))

        spawned = self._spawn_specials(board, result.specials)
        if spawned:
            self.event_bus.emit(EVENT_SPECIALS_SPAWNED, specials=spawned)

        gravity = apply_gravity(board, self._spawn)
        self.event_bus.emit(EVENT_GRAVITY_APPLIED, moves=gravity.moves)
        if gravity.new_tiles:
            self.event_bus.emit(EVENT_REFILL_COMPLETED, new_tiles=gravity.new_tiles)
        self.event_bus.emit(EVENT_BOARD_CHANGED, reason="cascade", board=board.copy())

    @staticmethod
    def _clear(board: Board, result: MatchResult) -> List[Tuple[Position, Token]]:
        """Remove destroyed tokens and apply obstacle durability.

        Damaged obstacles lose one point and only leave once depleted. Jelly in the
        destroyed set behaves the same way; everything else is removed outright.
        """
        cleared: List[Tuple[Position, Token]] = []
        for pos in sorted(result.damaged):
            token = board.at(pos)
            if token is None or not token.is_obstacle:
                continue
            if token.hit():
                board.set(pos[0], pos[1], None)
                cleared.append((pos, token))
        for pos in sorted(result.destroyed):
            token = board.at(pos)
            if token is None:
                continue
            if token.kind is TokenKind.JELLY and not token.hit():
                continue
            board.set(pos[0], pos[1], None)
            cleared.append((pos, token))
        return cleared

    @staticmethod
    def _spawn_specials(board: Board, specials: List[SpecialSpawn]) -> List[SpecialSpawn]:
        placed: List[SpecialSpawn] = []
        for spawn in specials:
            row, col = spawn.pos
            if board.in_bounds(row, col) and board.get(row, col) is None:
                board.set(row, col, Token(color=spawn.color, kind=spawn.kind))
                placed.append(spawn)
        return placed

    def _random_spawn(self, pos: Position) -> Token:
        return random_regular_token(getattr(self.world, "random"))
