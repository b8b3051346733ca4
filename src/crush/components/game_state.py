"""Game state resource describing the active high-level mode."""
from dataclasses import dataclass
from enum import Enum, auto


class GameMode(Enum):
    """High-level game modes that gate input and streak decay."""
    PLAYING = auto()
    PAUSED = auto()
    LEVEL_COMPLETE = auto()
    GAME_OVER = auto()


@dataclass
class GameState:
    """Singleton component storing mode, level and score bookkeeping."""
    mode: GameMode = GameMode.PLAYING
    level_id: int = 1
    score: int = 0
    moves_left: int = 0
