from typing import Optional, Tuple

from esper import World

from crush.events.bus import (
    EVENT_GAME_MODE_CHANGED,
    EVENT_TILE_CLICK,
    EVENT_TILE_DESELECTED,
    EVENT_TILE_SELECTED,
    EVENT_TILE_SWAP_REQUEST,
    EventBus,
)
from crush.systems.board_ops import get_board, is_adjacent
from crush.utils.state import input_allowed


class BoardSystem:
    """Turns tile clicks into a selection and, on a second adjacent click, a swap request."""

    def __init__(self, world: World, event_bus: EventBus):
        self.world = world
        self.event_bus = event_bus
        self.selected: Optional[Tuple[int, int]] = None
        self.event_bus.subscribe(EVENT_TILE_CLICK, self.on_tile_click)
        self.event_bus.subscribe(EVENT_GAME_MODE_CHANGED, self.on_mode_changed)

    def on_tile_click(self, sender, **kwargs):
        row = kwargs.get('row')
        col = kwargs.get('col')
        if row is None or col is None:
            return
        if not input_allowed(self.world):
            return
        if not get_board(self.world).in_bounds(row, col):
            return
        cell = (row, col)
        if self.selected is None:
            self.selected = cell
            self.event_bus.emit(EVENT_TILE_SELECTED, row=row, col=col)
        elif self.selected == cell:
            self.clear_selection('same_tile')
        elif is_adjacent(self.selected, cell):
            src = self.selected
            self.selected = None
            self.event_bus.emit(EVENT_TILE_DESELECTED, reason='swap')
            self.event_bus.emit(EVENT_TILE_SWAP_REQUEST, src=src, dst=cell)
        else:
            # Change selection to new tile
            self.selected = cell
            self.event_bus.emit(EVENT_TILE_SELECTED, row=row, col=col)

    def on_mode_changed(self, sender, **kwargs):
        self.clear_selection('mode_changed')

    def clear_selection(self, reason: str) -> None:
        if self.selected is None:
            return
        self.selected = None
        self.event_bus.emit(EVENT_TILE_DESELECTED, reason=reason)
