"""Client side of the hint oracle.

The oracle is any callable that takes the request text and returns response
text (or raises). Its reasoning is opaque; this module only builds the request,
validates the answer and reports it. Any failure means no hint.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from esper import World

from crush.components.board import Board
from crush.events.bus import EVENT_HINT_RECEIVED, EVENT_HINT_REQUEST, EventBus
from crush.systems.board_ops import get_board, is_adjacent, serialize_grid
from crush.utils.state import input_allowed

Position = Tuple[int, int]
HintOracle = Callable[[str], Optional[str]]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MoveHint:
    src: Position
    dst: Position
    explanation: str


def build_hint_request(board: Board) -> str:
    return (
        f"Below is a {board.size}x{board.size} match-three board, one cell per token.\n"
        "Letters are colours: R(ed), B(lue), G(reen), Y(ellow), P(urple), O(range).\n"
        "Suffixes: '-' row clearer, '|' column clearer, '*' bomb, '@' colour bomb, '~' jelly.\n"
        "'#' is a rock and cannot be moved.\n\n"
        f"{serialize_grid(board)}\n\n"
        "Suggest one swap of two adjacent cells that makes a run of three or more.\n"
        'Answer with JSON: {"from": {"row": r, "col": c}, "to": {"row": r, "col": c}, '
        '"explanation": "..."} using 0-indexed coordinates.'
    )


def _position(payload: Any, size: int) -> Position:
    row = int(payload["row"])
    col = int(payload["col"])
    if not (0 <= row < size and 0 <= col < size):
        raise ValueError(f"position {(row, col)} is off the board")
    return row, col


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    return text.strip()


def parse_hint_response(text: Optional[str], size: int) -> Optional[MoveHint]:
    if not text:
        return None
    try:
        payload = json.loads(_strip_fences(text))
        src = _position(payload["from"], size)
        dst = _position(payload["to"], size)
        explanation = str(payload.get("explanation", ""))
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
        logger.debug("Unusable hint response: %s", exc)
        return None
    if not is_adjacent(src, dst):
        return None
    return MoveHint(src=src, dst=dst, explanation=explanation)


class HintSystem:
    """Asks the oracle for a suggested swap and publishes the outcome."""

    def __init__(self, world: World, event_bus: EventBus, *, oracle: HintOracle | None = None) -> None:
        self.world = world
        self.event_bus = event_bus
        self.oracle = oracle
        self.event_bus.subscribe(EVENT_HINT_REQUEST, self.on_hint_request)

    def on_hint_request(self, sender, **payload) -> None:
        self.request_hint()

    def request_hint(self) -> Optional[MoveHint]:
        if not input_allowed(self.world):
            return None
        hint: Optional[MoveHint] = None
        if self.oracle is not None:
            board = get_board(self.world)
            try:
                response = self.oracle(build_hint_request(board))
            except Exception as exc:
                logger.warning("Hint oracle failed: %s", exc)
                response = None
            hint = parse_hint_response(response, board.size)
        self.event_bus.emit(EVENT_HINT_RECEIVED, hint=hint)
        return hint
