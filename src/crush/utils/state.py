from __future__ import annotations

from typing import Type, TypeVar

from esper import World

from crush.components.game_state import GameMode, GameState
from crush.components.level_goal import GoalProgress
from crush.components.powerup_inventory import PowerUpInventory
from crush.components.resolution_state import ResolutionState
from crush.components.streak import Streak

T = TypeVar("T")


def _get_or_create(world: World, component_type: Type[T]) -> T:
    existing = list(world.get_component(component_type))
    if existing:
        return existing[0][1]
    component = component_type()
    world.create_entity(component)
    return component


def get_or_create_resolution_state(world: World) -> ResolutionState:
    """Return the shared ResolutionState component, creating it if absent."""
    return _get_or_create(world, ResolutionState)


def get_or_create_streak(world: World) -> Streak:
    return _get_or_create(world, Streak)


def get_or_create_game_state(world: World) -> GameState:
    return _get_or_create(world, GameState)


def get_or_create_powerups(world: World) -> PowerUpInventory:
    return _get_or_create(world, PowerUpInventory)


def get_or_create_goal_progress(world: World) -> GoalProgress:
    return _get_or_create(world, GoalProgress)


def input_allowed(world: World) -> bool:
    """Player input is accepted only while playing and with the board at rest."""
    if get_or_create_resolution_state(world).resolving:
        return False
    return get_or_create_game_state(world).mode is GameMode.PLAYING
