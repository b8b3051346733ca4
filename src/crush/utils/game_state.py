from __future__ import annotations

from esper import World

from crush.components.game_state import GameMode
from crush.events.bus import EVENT_GAME_MODE_CHANGED, EventBus
from crush.utils.state import get_or_create_game_state


def set_game_mode(world: World, event_bus: EventBus, mode: GameMode) -> None:
    """Update the global game mode and emit a change event when it differs."""
    state = get_or_create_game_state(world)
    previous_mode = state.mode
    if previous_mode == mode:
        return
    state.mode = mode
    event_bus.emit(
        EVENT_GAME_MODE_CHANGED,
        previous_mode=previous_mode,
        new_mode=mode,
    )


def toggle_pause(world: World, event_bus: EventBus) -> GameMode:
    state = get_or_create_game_state(world)
    if state.mode is GameMode.PLAYING:
        set_game_mode(world, event_bus, GameMode.PAUSED)
    elif state.mode is GameMode.PAUSED:
        set_game_mode(world, event_bus, GameMode.PLAYING)
    return state.mode
