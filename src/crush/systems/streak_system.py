from __future__ import annotations

from esper import World

from crush.components.game_state import GameMode
from crush.constants import STREAK_DURATION
from crush.events.bus import EVENT_STREAK_CHANGED, EVENT_TICK, EventBus
from crush.utils.state import (
    get_or_create_game_state,
    get_or_create_resolution_state,
    get_or_create_streak,
)


class StreakSystem:
    """Drains the streak meter in real time while the board is idle.

    The meter only runs while playing with the board at rest; pausing or an
    in-flight cascade freezes it. An empty meter drops the streak back to 1.
    Growth happens in MatchResolutionSystem when a move resolves.
    """

    def __init__(self, world: World, event_bus: EventBus, *, duration: float = STREAK_DURATION) -> None:
        self.world = world
        self.event_bus = event_bus
        self.duration = duration
        self.event_bus.subscribe(EVENT_TICK, self.on_tick)

    def on_tick(self, sender, **payload) -> None:
        dt = payload.get("dt")
        try:
            dt = float(dt)
        except (TypeError, ValueError):
            return
        if dt <= 0.0:
            return
        streak = get_or_create_streak(self.world)
        if streak.level <= 1:
            return
        if get_or_create_resolution_state(self.world).resolving:
            return
        if get_or_create_game_state(self.world).mode is not GameMode.PLAYING:
            return
        if self.duration <= 0.0:
            streak.progress = 0.0
        else:
            streak.progress -= dt / self.duration
        if streak.progress <= 0.0:
            streak.level = 1
            streak.progress = 0.0
            self.event_bus.emit(EVENT_STREAK_CHANGED, level=streak.level, multiplier=streak.multiplier)
