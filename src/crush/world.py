from __future__ import annotations

import logging
import random
from typing import Any, Mapping

from esper import World

from crush.components.board import Board
from crush.components.game_state import GameMode, GameState
from crush.components.level_goal import GoalProgress
from crush.components.powerup_inventory import PowerUpInventory
from crush.components.resolution_state import ResolutionState
from crush.components.streak import Streak
from crush.constants import GRID_SIZE
from crush.events.bus import EventBus
from crush.factories.levels import LevelConfig, level_config_for
from crush.systems.board_generator import generate_board
from crush.systems.save_system import restore_snapshot

logger = logging.getLogger(__name__)


def create_world(
    event_bus: EventBus,
    level_id: int = 1,
    *,
    rng: random.Random | None = None,
    snapshot: Mapping[str, Any] | None = None,
    board: Board | None = None,
    level_config: LevelConfig | None = None,
    size: int = GRID_SIZE,
) -> World:
    """Create a world holding the board entity and the game-state singletons.

    The board comes from ``board`` when given, else from a valid ``snapshot``, else
    from the generator. A snapshot that fails to restore is ignored.
    """
    world = World()
    setattr(world, "random", rng or random.Random())
    setattr(world, "event_bus", event_bus)

    restored = restore_snapshot(snapshot) if snapshot is not None else None
    if snapshot is not None and restored is None:
        logger.warning("Ignoring malformed snapshot; generating a fresh board")
    if restored is not None:
        level_id = restored.level_id

    config = level_config or level_config_for(level_id)
    setattr(world, "level_config", config)

    state = GameState(mode=GameMode.PLAYING, level_id=level_id, score=0, moves_left=config.moves)
    powerups = PowerUpInventory(counts=dict(config.power_ups))
    goals = GoalProgress(goals=tuple(config.goals))
    streak = Streak()

    if board is None and restored is not None:
        board = restored.board
        state.score = restored.score
        state.moves_left = restored.moves_left
        powerups.counts = dict(restored.power_ups)
        goals.tallies = dict(restored.goal_progress)
        streak.level = restored.streak_level
        streak.progress = restored.streak_progress
        state.mode = restored.mode
    if board is None:
        board = generate_board(level_id, size=size, rng=world.random, settings=config.obstacles)

    world.create_entity(state, streak, ResolutionState(), powerups, goals)
    world.create_entity(board)
    return world
