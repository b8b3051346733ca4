from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Tuple

from crush.components.level_goal import LevelGoal
from crush.components.powerup_inventory import PowerUpKind


@dataclass(frozen=True)
class ObstacleSettings:
    """Obstacle tiers: rocks form a central block, jelly is sprinkled at random.

    ``jelly_minimum`` keeps enough jelly on the board for a level goal to be reachable.
    """

    rock_from_level: int = 3
    jelly_from_level: int = 4
    rock_block: int = 2
    rock_durability: int = 2
    jelly_density: float = 0.1
    jelly_durability: int = 2
    jelly_minimum: int = 0


@dataclass(frozen=True)
class LevelConfig:
    id: int
    title: str
    target_score: int
    moves: int
    goals: Tuple[LevelGoal, ...] = ()
    power_ups: Mapping[str, int] = field(default_factory=dict)
    obstacles: ObstacleSettings = field(default_factory=ObstacleSettings)


_STARTER_POWER_UPS = {
    PowerUpKind.HAMMER.value: 1,
    PowerUpKind.FREE_SWITCH.value: 1,
    PowerUpKind.UFO.value: 1,
    PowerUpKind.PARTY.value: 1,
}

_LEVELS: Mapping[int, LevelConfig] = {
    1: LevelConfig(
        id=1,
        title="Sugar Start",
        target_score=500,
        moves=25,
        power_ups=_STARTER_POWER_UPS,
    ),
    2: LevelConfig(
        id=2,
        title="Sweet Success",
        target_score=1200,
        moves=20,
        goals=(LevelGoal(target="red", count=20),),
        power_ups=_STARTER_POWER_UPS,
    ),
    3: LevelConfig(
        id=3,
        title="Caramel Canyon",
        target_score=2500,
        moves=18,
        goals=(LevelGoal(target="rock", count=4),),
        power_ups=_STARTER_POWER_UPS,
    ),
    4: LevelConfig(
        id=4,
        title="Marshmallow Mountain",
        target_score=4000,
        moves=15,
        goals=(LevelGoal(target="jelly", count=5), LevelGoal(target="rock", count=4)),
        power_ups=_STARTER_POWER_UPS,
        obstacles=ObstacleSettings(jelly_minimum=5),
    ),
    5: LevelConfig(
        id=5,
        title="Chocolate Champ",
        target_score=6000,
        moves=12,
        goals=(LevelGoal(target="bomb", count=2), LevelGoal(target="rock", count=4)),
        power_ups=_STARTER_POWER_UPS,
    ),
}


def all_level_configs() -> Iterable[LevelConfig]:
    return _LEVELS.values()


def get_level_config(level_id: int) -> LevelConfig:
    try:
        return _LEVELS[level_id]
    except KeyError:
        raise ValueError(f"Unknown level id: {level_id}") from None


def level_config_for(level_id: int) -> LevelConfig:
    """Return the config for ``level_id``, clamping to the first/last defined level."""
    if level_id in _LEVELS:
        return _LEVELS[level_id]
    ids = sorted(_LEVELS)
    return _LEVELS[ids[0]] if level_id < ids[0] else _LEVELS[ids[-1]]


def next_level_id(level_id: int) -> int | None:
    later = [candidate for candidate in sorted(_LEVELS) if candidate > level_id]
    return later[0] if later else None
