from __future__ import annotations

import random
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from esper import World

import crush.events.bus as bus_module
from crush.components.board import Board
from crush.components.token import Token
from crush.constants import PALETTE
from crush.events.bus import EventBus
from crush.factories.levels import LevelConfig
from crush.systems.board import BoardSystem
from crush.systems.board_ops import get_board, neighbours, parse_cell, parse_grid
from crush.systems.hint_system import HintSystem
from crush.systems.match_resolution import MatchResolutionSystem
from crush.systems.move import MoveSystem
from crush.systems.powerup_system import PowerUpSystem
from crush.systems.score_system import ScoreSystem
from crush.systems.streak_system import StreakSystem
from crush.world import create_world

Position = Tuple[int, int]

# Letters cycle so no two orthogonal neighbours share a colour.
BASE_CODES = "RBGYPO"


def base_code(row: int, col: int) -> str:
    return BASE_CODES[(col + 2 * row) % len(BASE_CODES)]


def board_from_rows(overrides: Mapping[Position, str] | None = None, size: int = 8) -> Board:
    """Build a run-free board and apply ``overrides`` given as hint cell codes."""
    overrides = overrides or {}
    rows = []
    for row in range(size):
        rows.append(" ".join(overrides.get((row, col), base_code(row, col)) for col in range(size)))
    return parse_grid(rows)


class CalmSpawner:
    """Refill source that never forms a run through the new token.

    Queued cell codes are handed out first, in refill order (bottom-up, column by
    column). After that each new token takes the first palette colour not used by
    any orthogonal neighbour.
    """

    def __init__(self, board: Board, queued: Iterable[str] = ()):
        self.board = board
        self.queued = deque(queued)
        self.spawned: List[Position] = []

    def __call__(self, pos: Position) -> Token:
        self.spawned.append(pos)
        if self.queued:
            return parse_cell(self.queued.popleft())
        taken = {
            self.board.at(other).color
            for other in neighbours(self.board, pos)
            if self.board.at(other) is not None
        }
        for color in PALETTE:
            if color not in taken:
                return Token(color=color)
        raise AssertionError("no free colour for refill")


@dataclass
class Game:
    world: World
    bus: EventBus
    board: Board
    spawner: CalmSpawner
    moves: MoveSystem
    resolution: MatchResolutionSystem
    powerups: PowerUpSystem
    selection: BoardSystem
    streak: StreakSystem
    score: ScoreSystem
    hints: HintSystem
    events: List[Tuple[str, Dict[str, Any]]] = field(default_factory=list)

    def emitted(self, name: str) -> List[Dict[str, Any]]:
        return [payload for event, payload in self.events if event == name]


def _event_names() -> List[str]:
    return [value for key, value in vars(bus_module).items() if key.startswith("EVENT_")]


def build_game(
    board: Board | None = None,
    *,
    seed: int = 0,
    refill: Iterable[str] = (),
    level_config: LevelConfig | None = None,
    oracle: Optional[Callable[[str], Optional[str]]] = None,
) -> Game:
    """Wire a world with every gameplay system and record each emitted event."""
    bus = EventBus()
    events: List[Tuple[str, Dict[str, Any]]] = []
    for name in _event_names():
        bus.subscribe(name, lambda sender, _event=name, **payload: events.append((_event, payload)))
    world = create_world(
        bus,
        rng=random.Random(seed),
        board=board if board is not None else board_from_rows(),
        level_config=level_config,
    )
    live_board = get_board(world)
    spawner = CalmSpawner(live_board, refill)
    return Game(
        world=world,
        bus=bus,
        board=live_board,
        spawner=spawner,
        moves=MoveSystem(world, bus),
        resolution=MatchResolutionSystem(world, bus, spawn=spawner),
        powerups=PowerUpSystem(world, bus),
        selection=BoardSystem(world, bus),
        streak=StreakSystem(world, bus),
        score=ScoreSystem(world, bus),
        hints=HintSystem(world, bus, oracle=oracle),
        events=events,
    )
