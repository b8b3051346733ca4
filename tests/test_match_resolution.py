from crush.components.level_goal import LevelGoal
from crush.components.match_result import MatchResult
from crush.components.token import TokenKind
from crush.constants import STREAK_DURATION
from crush.events.bus import (
    EVENT_BOARD_CHANGED,
    EVENT_BOARD_SETTLE_REQUEST,
    EVENT_CASCADE_COMPLETE,
    EVENT_CASCADE_STEP,
    EVENT_MATCH_CLEARED,
    EVENT_OBSTACLE_DAMAGED,
    EVENT_SCORE_AWARDED,
    EVENT_STREAK_CHANGED,
    EVENT_TICK,
    EVENT_TOKENS_CLEARED,
)
from crush.factories.levels import LevelConfig
from crush.systems.board_ops import serialize_grid
from crush.systems.match_detector import detect_matches
from crush.utils.state import get_or_create_goal_progress, get_or_create_resolution_state, get_or_create_streak
from tests.helpers import board_from_rows, build_game


def test_board_at_rest_resolves_to_noop():
    game = build_game()
    before = serialize_grid(game.board)
    cascade = game.resolution.resolve()
    assert cascade.passes == 0
    assert cascade.score_delta == 0
    assert serialize_grid(game.board) == before
    assert get_or_create_streak(game.world).level == 1
    assert game.emitted(EVENT_SCORE_AWARDED) == []
    assert game.emitted(EVENT_CASCADE_COMPLETE) == [{"depth": 0, "score_delta": 0, "cleared": []}]


def test_pass_multiplier_grows_with_each_cascade_pass():
    board = board_from_rows({(0, 1): "R", (0, 2): "R"})
    game = build_game(board, refill=["G", "G", "G"])
    cascade = game.resolution.resolve()
    steps = game.emitted(EVENT_CASCADE_STEP)
    assert [step["multiplier"] for step in steps] == [1, 2]
    assert [step["points"] for step in steps] == [30, 60]
    assert cascade.score_delta == 90
    assert game.emitted(EVENT_SCORE_AWARDED) == [{"points": 90, "reason": "swap"}]
    assert not get_or_create_resolution_state(game.world).resolving


def test_streak_reaches_double_on_third_consecutive_move():
    game = build_game()
    for _ in range(3):
        game.bus.emit(EVENT_BOARD_SETTLE_REQUEST, reason="test", initial=MatchResult(destroyed={(7, 7)}))
    steps = game.emitted(EVENT_CASCADE_STEP)
    assert [step["streak_multiplier"] for step in steps] == [1.0, 1.5, 2.0]
    assert [step["points"] for step in steps] == [10, 15, 20]
    assert [change["level"] for change in game.emitted(EVENT_STREAK_CHANGED)] == [2, 3, 4]

    game.bus.emit(EVENT_TICK, dt=STREAK_DURATION + 0.1)
    streak = get_or_create_streak(game.world)
    assert streak.level == 1
    assert streak.multiplier == 1.0


def test_streak_meter_drains_gradually():
    game = build_game()
    game.bus.emit(EVENT_BOARD_SETTLE_REQUEST, reason="test", initial=MatchResult(destroyed={(7, 7)}))
    streak = get_or_create_streak(game.world)
    assert streak.level == 2 and streak.progress == 1.0
    game.bus.emit(EVENT_TICK, dt=STREAK_DURATION / 2)
    assert streak.level == 2
    assert 0.4 < streak.progress < 0.6


def test_rock_with_two_durability_breaks_on_second_damage():
    board = board_from_rows({
        (7, 0): "R", (7, 1): "R", (7, 2): "R", (7, 3): "#2",
        (5, 1): "Y", (5, 2): "Y",
    })
    config = LevelConfig(id=3, title="Rocks", target_score=10_000, moves=10, goals=(LevelGoal("rock", 1),))
    game = build_game(board, level_config=config)
    game.resolution.resolve()

    cleared = game.emitted(EVENT_MATCH_CLEARED)
    assert len(cleared) >= 2
    first_kinds = [kind for _, kind in cleared[0]["tokens"]]
    second_kinds = [kind for _, kind in cleared[1]["tokens"]]
    assert TokenKind.ROCK not in first_kinds
    assert second_kinds.count(TokenKind.ROCK) == 1

    steps = game.emitted(EVENT_CASCADE_STEP)
    assert steps[0]["damaged"] == [(7, 3)]
    assert steps[0]["points"] == 50
    assert steps[1]["damaged"] == [(7, 3)]
    assert steps[1]["points"] == 100

    tokens = game.emitted(EVENT_TOKENS_CLEARED)[0]["tokens"]
    assert [kind for _, kind in tokens].count(TokenKind.ROCK) == 1
    assert get_or_create_goal_progress(game.world).tallies["rock"] == 1


def test_jelly_survives_a_match_until_depleted():
    board = board_from_rows({(0, 0): "R~2", (0, 1): "R", (0, 2): "R"})
    game = build_game(board)
    game.resolution.resolve()
    jelly = game.board.get(0, 0)
    assert jelly.kind is TokenKind.JELLY
    assert jelly.durability == 1
    tokens = game.emitted(EVENT_TOKENS_CLEARED)[0]["tokens"]
    assert ("red", TokenKind.JELLY) not in tokens
    assert len(tokens) == 2


def test_jelly_next_to_a_match_is_left_alone():
    board = board_from_rows({(0, 1): "R", (0, 2): "R", (1, 0): "G~2"})
    assert detect_matches(board).damaged == set()
    game = build_game(board)
    game.resolution.resolve()

    jelly = game.board.get(1, 0)
    assert jelly.kind is TokenKind.JELLY
    assert jelly.durability == 2
    assert game.emitted(EVENT_OBSTACLE_DAMAGED) == []
    assert game.emitted(EVENT_CASCADE_STEP)[0]["positions"] == [(0, 0), (0, 1), (0, 2)]


def test_board_changed_publishes_a_copy():
    board = board_from_rows({(0, 1): "R", (0, 2): "R"})
    game = build_game(board)
    game.resolution.resolve()
    snapshot = game.emitted(EVENT_BOARD_CHANGED)[-1]["board"]
    assert snapshot is not game.board
    assert serialize_grid(snapshot) == serialize_grid(game.board)
