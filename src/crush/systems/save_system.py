from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from esper import World

from crush.components.board import Board
from crush.components.game_state import GameMode
from crush.components.token import Token, TokenKind
from crush.constants import GRID_SIZE, PALETTE, STREAK_MAX_LEVEL
from crush.events.bus import (
    EVENT_CASCADE_COMPLETE,
    EVENT_GAME_MODE_CHANGED,
    EVENT_POWERUP_USED,
    EventBus,
)
from crush.systems.board_generator import validate_rest_board
from crush.systems.board_ops import get_board
from crush.utils.state import (
    get_or_create_game_state,
    get_or_create_goal_progress,
    get_or_create_powerups,
    get_or_create_resolution_state,
    get_or_create_streak,
)

SNAPSHOT_VERSION = 1

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RestoredSnapshot:
    level_id: int
    board: Board
    score: int = 0
    moves_left: int = 0
    goal_progress: Dict[str, int] = field(default_factory=dict)
    power_ups: Dict[str, int] = field(default_factory=dict)
    streak_level: int = 1
    streak_progress: float = 0.0
    mode: GameMode = GameMode.PLAYING


def _encode_token(token: Optional[Token]) -> Optional[Dict[str, Any]]:
    if token is None:
        return None
    return {"color": token.color, "kind": token.kind.value, "durability": token.durability}


def _decode_token(payload: Any) -> Token:
    if not isinstance(payload, dict):
        raise ValueError("cell must be an object")
    kind = TokenKind(payload.get("kind", TokenKind.REGULAR.value))
    color = payload.get("color")
    durability = int(payload.get("durability", 0))
    if durability < 0:
        raise ValueError("durability must be non-negative")
    if kind is TokenKind.ROCK:
        color = None
    elif color not in PALETTE:
        raise ValueError(f"unknown colour {color!r}")
    return Token(color=color, kind=kind, durability=durability)


def encode_board(board: Board) -> Dict[str, Any]:
    return {"size": board.size, "cells": [_encode_token(cell) for cell in board.cells]}


def decode_board(payload: Any) -> Board:
    if not isinstance(payload, dict):
        raise ValueError("board must be an object")
    size = int(payload["size"])
    raw_cells = payload["cells"]
    if size <= 0 or not isinstance(raw_cells, list) or len(raw_cells) != size * size:
        raise ValueError("board cells do not match its size")
    cells: List[Optional[Token]] = [_decode_token(cell) for cell in raw_cells]
    return Board(size=size, cells=cells)


def snapshot_world(world: World) -> Dict[str, Any]:
    """Capture everything needed to resume. Only meaningful while the board is at rest."""
    state = get_or_create_game_state(world)
    streak = get_or_create_streak(world)
    return {
        "version": SNAPSHOT_VERSION,
        "level_id": state.level_id,
        "mode": state.mode.name,
        "score": state.score,
        "moves_left": state.moves_left,
        "board": encode_board(get_board(world)),
        "goal_progress": dict(get_or_create_goal_progress(world).tallies),
        "power_ups": dict(get_or_create_powerups(world).counts),
        "streak": {"level": streak.level, "progress": streak.progress},
    }


def restore_snapshot(payload: Mapping[str, Any] | None) -> RestoredSnapshot | None:
    """Decode a snapshot, returning None when anything is missing or malformed."""
    if not isinstance(payload, Mapping):
        return None
    try:
        board = decode_board(payload["board"])
        if board.size != GRID_SIZE:
            raise ValueError(f"board size {board.size} is not {GRID_SIZE}")
        problems = validate_rest_board(board)
        if problems:
            raise ValueError("; ".join(problems))
        streak = payload.get("streak") or {}
        restored = RestoredSnapshot(
            level_id=int(payload["level_id"]),
            board=board,
            score=max(0, int(payload.get("score", 0))),
            moves_left=max(0, int(payload.get("moves_left", 0))),
            goal_progress={str(k): int(v) for k, v in dict(payload.get("goal_progress") or {}).items()},
            power_ups={str(k): int(v) for k, v in dict(payload.get("power_ups") or {}).items()},
            streak_level=max(1, min(STREAK_MAX_LEVEL, int(streak.get("level", 1)))),
            streak_progress=max(0.0, min(1.0, float(streak.get("progress", 0.0)))),
            mode=GameMode[str(payload.get("mode", GameMode.PLAYING.name))],
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        logger.warning("Snapshot rejected: %s", exc)
        return None
    return restored


def load_snapshot(path: Path) -> Dict[str, Any] | None:
    try:
        with Path(path).open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except FileNotFoundError:
        return None
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read save file %s: %s", path, exc)
        return None
    return payload if isinstance(payload, dict) else None


class SaveGameSystem:
    """Persists a snapshot of the world whenever the board returns to rest."""

    def __init__(
        self,
        world: World,
        event_bus: EventBus,
        *,
        save_path: Path | None = None,
    ) -> None:
        self.world = world
        self.event_bus = event_bus
        self._save_path = Path(save_path) if save_path is not None else self.default_save_path()
        self.event_bus.subscribe(EVENT_CASCADE_COMPLETE, self._on_idle_point)
        self.event_bus.subscribe(EVENT_POWERUP_USED, self._on_idle_point)
        self.event_bus.subscribe(EVENT_GAME_MODE_CHANGED, self._on_idle_point)

    @staticmethod
    def default_save_path() -> Path:
        return Path.home() / ".sweet_crush" / "save.json"

    @property
    def save_path(self) -> Path:
        return self._save_path

    def save(self) -> bool:
        if get_or_create_resolution_state(self.world).resolving:
            return False
        payload = snapshot_world(self.world)
        try:
            self._save_path.parent.mkdir(parents=True, exist_ok=True)
            with self._save_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
        except OSError as exc:
            logger.warning("Could not write save file %s: %s", self._save_path, exc)
            return False
        return True

    def load(self) -> Dict[str, Any] | None:
        return load_snapshot(self._save_path)

    def clear(self) -> None:
        try:
            self._save_path.unlink()
        except FileNotFoundError:
            pass

    def _on_idle_point(self, sender, **payload) -> None:
        self.save()
