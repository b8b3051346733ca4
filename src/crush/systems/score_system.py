from __future__ import annotations

from typing import Callable

from esper import World

from crush.components.game_state import GameMode
from crush.events.bus import (
    EVENT_CASCADE_COMPLETE,
    EVENT_GAME_OVER,
    EVENT_GOAL_PROGRESS,
    EVENT_LEVEL_COMPLETED,
    EVENT_MOVE_CONSUMED,
    EVENT_POWERUP_USED,
    EVENT_SCORE_AWARDED,
    EVENT_SCORE_CHANGED,
    EVENT_SCORE_REJECTED,
    EVENT_TOKENS_CLEARED,
    EventBus,
)
from crush.factories.levels import level_config_for
from crush.utils.game_state import set_game_mode
from crush.utils.integrity import is_score_plausible
from crush.utils.state import get_or_create_game_state, get_or_create_goal_progress


class ScoreSystem:
    """Owns score, remaining moves and goal tallies for the current level.

    Awards that fail the plausibility check are dropped; the board is never
    rolled back because of it. Level outcome is evaluated whenever the board
    returns to rest.
    """

    def __init__(
        self,
        world: World,
        event_bus: EventBus,
        *,
        plausible: Callable[[int], bool] = is_score_plausible,
    ) -> None:
        self.world = world
        self.event_bus = event_bus
        self._plausible = plausible
        self.event_bus.subscribe(EVENT_SCORE_AWARDED, self.on_score_awarded)
        self.event_bus.subscribe(EVENT_TOKENS_CLEARED, self.on_tokens_cleared)
        self.event_bus.subscribe(EVENT_MOVE_CONSUMED, self.on_move_consumed)
        self.event_bus.subscribe(EVENT_CASCADE_COMPLETE, self.on_board_at_rest)
        self.event_bus.subscribe(EVENT_POWERUP_USED, self.on_board_at_rest)

    def on_score_awarded(self, sender, **payload) -> None:
        points = payload.get("points")
        reason = payload.get("reason", "match")
        if not isinstance(points, int) or not self._plausible(points):
            self.event_bus.emit(EVENT_SCORE_REJECTED, points=points, reason=reason)
            return
        state = get_or_create_game_state(self.world)
        state.score += points
        self.event_bus.emit(EVENT_SCORE_CHANGED, score=state.score, delta=points)

    def on_tokens_cleared(self, sender, **payload) -> None:
        tokens = payload.get("tokens") or []
        progress = get_or_create_goal_progress(self.world)
        if progress.record(tokens):
            self.event_bus.emit(EVENT_GOAL_PROGRESS, progress=dict(progress.tallies))

    def on_move_consumed(self, sender, **payload) -> None:
        state = get_or_create_game_state(self.world)
        state.moves_left = max(0, state.moves_left - 1)

    def on_board_at_rest(self, sender, **payload) -> None:
        self.check_outcome()

    def check_outcome(self) -> GameMode:
        state = get_or_create_game_state(self.world)
        if state.mode is not GameMode.PLAYING:
            return state.mode
        config = getattr(self.world, "level_config", None) or level_config_for(state.level_id)
        goals_done = get_or_create_goal_progress(self.world).is_complete()
        if state.score >= config.target_score and goals_done:
            set_game_mode(self.world, self.event_bus, GameMode.LEVEL_COMPLETE)
            self.event_bus.emit(EVENT_LEVEL_COMPLETED, level_id=state.level_id, score=state.score)
        elif state.moves_left <= 0:
            set_game_mode(self.world, self.event_bus, GameMode.GAME_OVER)
            self.event_bus.emit(EVENT_GAME_OVER, level_id=state.level_id, score=state.score)
        return state.mode
