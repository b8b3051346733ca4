"""Headless console driver for the match-three engine.

Sets up the world, event bus and systems, then reads commands from stdin:

    r1 c1 r2 c2         swap two adjacent cells
    hammer r c          smash one cell
    switch r1 c1 r2 c2  swap without a match (free switch)
    ufo | party         fire the matching power-up
    hint                ask for a hint
    pause               toggle pause
    quit
"""
import argparse
import logging
import random
import sys
import time
from pathlib import Path

from crush.components.powerup_inventory import PowerUpKind
from crush.events.bus import (
    EVENT_GAME_OVER,
    EVENT_HINT_RECEIVED,
    EVENT_HINT_REQUEST,
    EVENT_LEVEL_COMPLETED,
    EVENT_POWERUP_ACTIVATE_REQUEST,
    EVENT_POWERUP_REJECTED,
    EVENT_TICK,
    EVENT_TILE_SWAP_INVALID,
    EVENT_TILE_SWAP_REQUEST,
    EventBus,
)
from crush.systems.board import BoardSystem
from crush.systems.board_ops import get_board, serialize_grid
from crush.systems.hint_system import HintSystem
from crush.systems.match_resolution import MatchResolutionSystem
from crush.systems.move import MoveSystem
from crush.systems.powerup_system import PowerUpSystem
from crush.systems.save_system import SaveGameSystem, load_snapshot
from crush.systems.score_system import ScoreSystem
from crush.systems.streak_system import StreakSystem
from crush.utils.game_state import toggle_pause
from crush.utils.state import get_or_create_game_state, get_or_create_powerups, get_or_create_streak
from crush.world import create_world


class ConsoleGame:
    def __init__(self, level_id: int = 1, *, seed: int | None = None, save_path: Path | None = None, resume: bool = False):
        self.event_bus = EventBus()
        snapshot = None
        if resume:
            snapshot = load_snapshot(save_path or SaveGameSystem.default_save_path())
        self.world = create_world(self.event_bus, level_id, rng=random.Random(seed), snapshot=snapshot)

        # Board and resolution systems
        self.board_system = BoardSystem(self.world, self.event_bus)
        self.move_system = MoveSystem(self.world, self.event_bus)
        self.match_resolution_system = MatchResolutionSystem(self.world, self.event_bus)
        self.powerup_system = PowerUpSystem(self.world, self.event_bus)

        # Progression systems
        self.streak_system = StreakSystem(self.world, self.event_bus)
        self.score_system = ScoreSystem(self.world, self.event_bus)
        self.hint_system = HintSystem(self.world, self.event_bus)
        self.save_system = SaveGameSystem(self.world, self.event_bus, save_path=save_path)

        self.finished = False
        self.event_bus.subscribe(EVENT_TILE_SWAP_INVALID, self._on_invalid)
        self.event_bus.subscribe(EVENT_POWERUP_REJECTED, self._on_invalid)
        self.event_bus.subscribe(EVENT_HINT_RECEIVED, self._on_hint)
        self.event_bus.subscribe(EVENT_LEVEL_COMPLETED, self._on_finished)
        self.event_bus.subscribe(EVENT_GAME_OVER, self._on_finished)
        self._last_tick = time.monotonic()

    def status(self) -> str:
        state = get_or_create_game_state(self.world)
        streak = get_or_create_streak(self.world)
        powerups = get_or_create_powerups(self.world)
        charges = ", ".join(f"{kind}={count}" for kind, count in sorted(powerups.counts.items()))
        return (
            f"level {state.level_id} | score {state.score}/{self.world.level_config.target_score}"
            f" | moves {state.moves_left} | streak x{streak.multiplier:g} | {charges}"
            f" | {state.mode.name.lower()}"
        )

    def render(self) -> str:
        return f"{serialize_grid(get_board(self.world))}\n{self.status()}"

    def tick(self) -> None:
        now = time.monotonic()
        self.event_bus.emit(EVENT_TICK, dt=now - self._last_tick)
        self._last_tick = now

    def handle(self, line: str) -> bool:
        """Apply one command line. Returns False when the driver should stop."""
        parts = line.strip().lower().split()
        if not parts:
            return True
        command, args = parts[0], parts[1:]
        try:
            numbers = [int(value) for value in args]
        except ValueError:
            print(f"bad arguments: {line.strip()}")
            return True
        if command == "quit":
            return False
        if command == "pause":
            toggle_pause(self.world, self.event_bus)
        elif command == "hint":
            self.event_bus.emit(EVENT_HINT_REQUEST)
        elif command == "hammer" and len(numbers) == 2:
            self._powerup(PowerUpKind.HAMMER, target=tuple(numbers))
        elif command == "switch" and len(numbers) == 4:
            self._powerup(PowerUpKind.FREE_SWITCH, target=tuple(numbers[:2]), other=tuple(numbers[2:]))
        elif command in (PowerUpKind.UFO.value, PowerUpKind.PARTY.value):
            self._powerup(PowerUpKind(command))
        elif command.isdigit() and len(numbers) == 3:
            row, col = int(command), numbers[0]
            self.event_bus.emit(EVENT_TILE_SWAP_REQUEST, src=(row, col), dst=(numbers[1], numbers[2]))
        else:
            print(f"unknown command: {line.strip()}")
        return not self.finished

    def _powerup(self, kind: PowerUpKind, target=None, other=None) -> None:
        self.event_bus.emit(EVENT_POWERUP_ACTIVATE_REQUEST, kind=kind.value, target=target, other=other)

    def _on_invalid(self, sender, **payload):
        print(f"rejected: {payload.get('reason')}")

    def _on_hint(self, sender, **payload):
        hint = payload.get("hint")
        if hint is None:
            print("no hint available")
        else:
            print(f"hint: {hint.src} -> {hint.dst} {hint.explanation}")

    def _on_finished(self, sender, **payload):
        self.finished = True
        print(f"level {payload.get('level_id')} finished with {payload.get('score')} points")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Play the match-three engine in a terminal.")
    parser.add_argument("--level", type=int, default=1)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--save", type=Path, default=None)
    parser.add_argument("--resume", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    game = ConsoleGame(args.level, seed=args.seed, save_path=args.save, resume=args.resume)
    print(game.render())
    for line in sys.stdin:
        game.tick()
        if not game.handle(line):
            break
        print(game.render())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
