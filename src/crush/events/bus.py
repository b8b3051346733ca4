from blinker import Signal
from typing import Dict

class EventBus:
    """Simple event bus leveraging blinker Signal objects."""
    def __init__(self):
        self._signals: Dict[str, Signal] = {}

    def subscribe(self, name: str, fn):
        sig = self._signals.setdefault(name, Signal(name))
        # Use weak=False to retain strong reference to bound methods so systems not kept in a variable still receive events.
        sig.connect(fn, weak=False)

    def unsubscribe(self, name: str, fn):
        sig = self._signals.get(name)
        if sig:
            sig.disconnect(fn)

    def emit(self, name: str, **payload):
        sig = self._signals.get(name)
        if sig:
            sig.send(self, **payload)


# ============================================================================
# SYSTEM & TIMING
# ============================================================================
EVENT_TICK = "tick"                        # payload: dt=float (seconds)


# ============================================================================
# INPUT & INTERACTION
# ============================================================================
EVENT_TILE_CLICK = "tile_click"            # payload: row, col
EVENT_TILE_SELECTED = "tile_selected"      # payload: row, col
EVENT_TILE_DESELECTED = "tile_deselected"  # payload: reason=str


# ============================================================================
# SWAPS & MOVES
# ============================================================================
EVENT_TILE_SWAP_REQUEST = "tile_swap_request"      # payload: src=(r,c), dst=(r,c)
EVENT_TILE_SWAP_VALID = "tile_swap_valid"          # payload: src=(r,c), dst=(r,c), kind=str
EVENT_TILE_SWAP_INVALID = "tile_swap_invalid"      # payload: src=(r,c), dst=(r,c), reason=str
EVENT_TILE_SWAP_FINALIZE = "tile_swap_finalize"    # payload: src=(r,c), dst=(r,c)
EVENT_MOVE_CONSUMED = "move_consumed"              # payload: source=str


# ============================================================================
# CASCADE RESOLUTION
# ============================================================================
EVENT_BOARD_SETTLE_REQUEST = "board_settle_request"  # payload: reason=str, initial=MatchResult|None, destination=(r,c)|None
EVENT_CASCADE_STARTED = "cascade_started"          # payload: source=str
EVENT_CASCADE_STEP = "cascade_step"                # payload: depth=int, positions=[(r,c),...], damaged=[(r,c),...], points=int, multiplier=int, streak_multiplier=float
EVENT_MATCH_CLEARED = "match_cleared"              # payload: positions=[(r,c),...], tokens=[(color, kind),...]
EVENT_OBSTACLE_DAMAGED = "obstacle_damaged"        # payload: positions=[(r,c),...]
EVENT_SPECIALS_SPAWNED = "specials_spawned"        # payload: specials=[SpecialSpawn,...]
EVENT_GRAVITY_APPLIED = "gravity_applied"          # payload: moves=[GravityMove,...]
EVENT_REFILL_COMPLETED = "refill_completed"        # payload: new_tiles=[(r,c),...]
EVENT_BOARD_CHANGED = "board_changed"              # payload: reason=str, board=Board (read-only copy)
EVENT_CASCADE_COMPLETE = "cascade_complete"        # payload: depth=int, score_delta=int, cleared=[(color, kind),...]


# ============================================================================
# SCORE & GOALS
# ============================================================================
EVENT_SCORE_AWARDED = "score_awarded"      # payload: points=int, reason=str
EVENT_SCORE_REJECTED = "score_rejected"    # payload: points=int, reason=str
EVENT_SCORE_CHANGED = "score_changed"      # payload: score=int, delta=int
EVENT_TOKENS_CLEARED = "tokens_cleared"    # payload: tokens=[(color, kind),...]
EVENT_GOAL_PROGRESS = "goal_progress"      # payload: progress=dict[str,int]
EVENT_LEVEL_COMPLETED = "level_completed"  # payload: level_id=int, score=int
EVENT_GAME_OVER = "game_over"              # payload: level_id=int, score=int
EVENT_STREAK_CHANGED = "streak_changed"    # payload: level=int, multiplier=float


# ============================================================================
# POWER-UPS
# ============================================================================
EVENT_POWERUP_ACTIVATE_REQUEST = "powerup_activate_request"  # payload: kind=str, target=(r,c)|None, other=(r,c)|None
EVENT_POWERUP_USED = "powerup_used"                          # payload: kind=str, remaining=int
EVENT_POWERUP_REJECTED = "powerup_rejected"                  # payload: kind=str, reason=str


# ============================================================================
# HINTS
# ============================================================================
EVENT_HINT_REQUEST = "hint_request"        # payload: None
EVENT_HINT_RECEIVED = "hint_received"      # payload: hint=MoveHint|None


# ============================================================================
# GAME FLOW & STATE
# ============================================================================
EVENT_GAME_MODE_CHANGED = "game_mode_changed"  # payload: previous_mode=GameMode|None, new_mode=GameMode
