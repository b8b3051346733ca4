from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

from esper import World

from crush.components.match_result import MatchResult, SpecialSpawn
from crush.components.powerup_inventory import PowerUpKind
from crush.components.token import LINE_KINDS, Token, TokenKind
from crush.constants import (
    HAMMER_SCORE,
    PALETTE,
    PARTY_BONUS_PER_TOKEN,
    PARTY_SPECIAL_COUNT,
    UFO_MAX_SPAWNS,
    UFO_MIN_SPAWNS,
)
from crush.events.bus import (
    EVENT_BOARD_SETTLE_REQUEST,
    EVENT_POWERUP_ACTIVATE_REQUEST,
    EVENT_POWERUP_REJECTED,
    EVENT_POWERUP_USED,
    EVENT_SCORE_AWARDED,
    EVENT_SPECIALS_SPAWNED,
    EventBus,
)
from crush.systems.board_ops import get_board, is_adjacent, positions_of_color, swap_tokens
from crush.systems.match_detector import build_result
from crush.utils.state import get_or_create_powerups, input_allowed

Position = Tuple[int, int]

logger = logging.getLogger(__name__)

_LINE_ORIENTATIONS = sorted(LINE_KINDS, key=lambda kind: kind.value)
_PARTY_KINDS = _LINE_ORIENTATIONS + [TokenKind.BOMB]


def _as_position(value: Any) -> Optional[Position]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return None
    try:
        return int(value[0]), int(value[1])
    except (TypeError, ValueError):
        return None


class PowerUpSystem:
    """Resolves power-up activations: hammer, free switch, UFO and party.

    Power-ups spend one charge from the inventory but never a move. Each
    activation that changes the board is settled through exactly one resolve.
    """

    def __init__(self, world: World, event_bus: EventBus) -> None:
        self.world = world
        self.event_bus = event_bus
        self.event_bus.subscribe(EVENT_POWERUP_ACTIVATE_REQUEST, self.on_activate_request)
        self._handlers = {
            PowerUpKind.HAMMER.value: self._hammer,
            PowerUpKind.FREE_SWITCH.value: self._free_switch,
            PowerUpKind.UFO.value: self._ufo,
            PowerUpKind.PARTY.value: self._party,
        }

    def on_activate_request(self, sender, **payload) -> None:
        kind = payload.get("kind")
        if isinstance(kind, PowerUpKind):
            kind = kind.value
        self.activate(kind, target=_as_position(payload.get("target")), other=_as_position(payload.get("other")))

    def activate(self, kind: str, *, target: Optional[Position] = None, other: Optional[Position] = None) -> bool:
        handler = self._handlers.get(kind)
        if handler is None:
            return self._reject(kind, "unknown")
        if not input_allowed(self.world):
            return self._reject(kind, "busy")
        inventory = get_or_create_powerups(self.world)
        if inventory.available(kind) <= 0:
            return self._reject(kind, "none_left")
        return handler(target, other)

    # Handlers -----------------------------------------------------------

    def _hammer(self, target: Optional[Position], other: Optional[Position]) -> bool:
        kind = PowerUpKind.HAMMER.value
        board = get_board(self.world)
        if target is None or board.at(target) is None:
            return self._reject(kind, "invalid_target")
        rng = getattr(self.world, "random")
        token = board.at(target)
        if token.is_obstacle:
            result = build_result(board, [], rng, direct_hits=[target])
        else:
            result = build_result(board, [target], rng)
        self._spend(kind)
        self.event_bus.emit(EVENT_SCORE_AWARDED, points=HAMMER_SCORE, reason=kind)
        self._settle(kind, initial=result, destination=target)
        self._announce(kind)
        return True

    def _free_switch(self, target: Optional[Position], other: Optional[Position]) -> bool:
        kind = PowerUpKind.FREE_SWITCH.value
        board = get_board(self.world)
        if target is None or other is None or not is_adjacent(target, other):
            return self._reject(kind, "not_adjacent")
        if board.at(target) is None or board.at(other) is None:
            return self._reject(kind, "invalid_target")
        swap_tokens(board, target, other)
        self._spend(kind)
        self._settle(kind, destination=other)
        self._announce(kind)
        return True

    def _ufo(self, target: Optional[Position], other: Optional[Position]) -> bool:
        kind = PowerUpKind.UFO.value
        board = get_board(self.world)
        rng = getattr(self.world, "random")
        candidates = [pos for pos, token in board.occupied() if token.kind is TokenKind.REGULAR]
        if not candidates:
            return self._reject(kind, "no_targets")
        count = min(len(candidates), rng.randint(UFO_MIN_SPAWNS, UFO_MAX_SPAWNS))
        dropped: List[SpecialSpawn] = []
        for row, col in rng.sample(candidates, count):
            spawn = SpecialSpawn(pos=(row, col), color=board.get(row, col).color, kind=rng.choice(_LINE_ORIENTATIONS))
            board.set(row, col, Token(color=spawn.color, kind=spawn.kind))
            dropped.append(spawn)
        self.event_bus.emit(EVENT_SPECIALS_SPAWNED, specials=dropped)
        # Colours are kept, so the drop never forms a run by itself.
        self._spend(kind)
        self._settle(kind)
        self._announce(kind)
        return True

    def _party(self, target: Optional[Position], other: Optional[Position]) -> bool:
        kind = PowerUpKind.PARTY.value
        board = get_board(self.world)
        rng = getattr(self.world, "random")
        present = [color for color in PALETTE if positions_of_color(board, color)]
        if not present:
            return self._reject(kind, "no_targets")
        color = rng.choice(present)
        targets = positions_of_color(board, color)
        result = build_result(board, targets, rng)
        spawn_cells: List[Position] = rng.sample(targets, min(PARTY_SPECIAL_COUNT, len(targets)))
        result = MatchResult(
            destroyed=result.destroyed,
            damaged=result.damaged,
            specials=[SpecialSpawn(pos=pos, color=color, kind=rng.choice(_PARTY_KINDS)) for pos in spawn_cells],
        )
        self._spend(kind)
        self.event_bus.emit(EVENT_SCORE_AWARDED, points=PARTY_BONUS_PER_TOKEN * len(targets), reason=kind)
        self._settle(kind, initial=result)
        self._announce(kind)
        return True

    # Helpers ------------------------------------------------------------

    def _spend(self, kind: str) -> None:
        get_or_create_powerups(self.world).consume(kind)

    def _settle(self, kind: str, *, initial: Optional[MatchResult] = None, destination: Optional[Position] = None) -> None:
        self.event_bus.emit(
            EVENT_BOARD_SETTLE_REQUEST,
            reason=kind,
            initial=initial,
            destination=destination,
        )

    def _announce(self, kind: str) -> None:
        remaining = get_or_create_powerups(self.world).available(kind)
        self.event_bus.emit(EVENT_POWERUP_USED, kind=kind, remaining=remaining)

    def _reject(self, kind: Any, reason: str) -> bool:
        logger.debug("Power-up %s rejected: %s", kind, reason)
        self.event_bus.emit(EVENT_POWERUP_REJECTED, kind=kind, reason=reason)
        return False
