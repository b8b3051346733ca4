from crush.components.token import TokenKind
from crush.events.bus import (
    EVENT_CASCADE_STEP,
    EVENT_MOVE_CONSUMED,
    EVENT_POWERUP_ACTIVATE_REQUEST,
    EVENT_TILE_SWAP_INVALID,
    EVENT_TILE_SWAP_REQUEST,
    EVENT_TILE_SWAP_VALID,
)
from crush.systems.board_ops import positions_of_color, serialize_grid
from crush.utils.state import get_or_create_game_state
from tests.helpers import board_from_rows, build_game


def _swap(game, src, dst):
    game.bus.emit(EVENT_TILE_SWAP_REQUEST, src=src, dst=dst)


def test_swap_without_match_is_reverted_and_free():
    game = build_game()
    before = serialize_grid(game.board)
    _swap(game, (0, 0), (0, 1))
    assert serialize_grid(game.board) == before
    assert game.emitted(EVENT_TILE_SWAP_INVALID)[-1]["reason"] == "no_match"
    assert game.emitted(EVENT_MOVE_CONSUMED) == []
    assert get_or_create_game_state(game.world).moves_left == 25


def test_non_adjacent_swap_is_rejected():
    game = build_game()
    _swap(game, (0, 0), (0, 2))
    assert game.emitted(EVENT_TILE_SWAP_INVALID)[-1]["reason"] == "not_adjacent"


def test_rock_cannot_be_swapped():
    game = build_game(board_from_rows({(0, 0): "#2"}))
    _swap(game, (0, 0), (0, 1))
    assert game.emitted(EVENT_TILE_SWAP_INVALID)[-1]["reason"] == "obstacle"


def test_run_of_four_leaves_clearer_at_destination():
    board = board_from_rows({(0, 2): "R", (0, 3): "R", (1, 1): "R"})
    game = build_game(board)
    _swap(game, (1, 1), (0, 1))

    assert game.emitted(EVENT_TILE_SWAP_VALID)[-1]["kind"] == "swap"
    first = game.emitted(EVENT_CASCADE_STEP)[0]
    assert first["positions"] == [(0, 0), (0, 1), (0, 2), (0, 3)]
    clearer = game.board.get(0, 1)
    assert clearer.kind is TokenKind.STRIPE_V
    assert clearer.color == "red"
    state = get_or_create_game_state(game.world)
    assert state.moves_left == 24
    assert state.score == 40


def test_clearer_from_run_of_four_fires_its_column_later():
    board = board_from_rows({(0, 2): "R", (0, 3): "R", (1, 1): "R"})
    game = build_game(board)
    _swap(game, (1, 1), (0, 1))
    assert game.board.get(0, 1).kind is TokenKind.STRIPE_V

    game.events.clear()
    game.bus.emit(EVENT_POWERUP_ACTIVATE_REQUEST, kind="hammer", target=(0, 1), other=None)
    first = game.emitted(EVENT_CASCADE_STEP)[0]
    assert set(first["positions"]) == {(row, 1) for row in range(8)}
    assert game.board.get(0, 1).kind is TokenKind.REGULAR


def test_input_is_locked_while_resolving():
    board = board_from_rows({(0, 2): "R", (0, 3): "R", (1, 1): "R"})
    game = build_game(board)

    def meddle(sender, **payload):
        _swap(game, (5, 5), (5, 6))

    game.bus.subscribe(EVENT_CASCADE_STEP, meddle)
    _swap(game, (1, 1), (0, 1))
    reasons = [p["reason"] for p in game.emitted(EVENT_TILE_SWAP_INVALID)]
    assert reasons and set(reasons) == {"busy"}
    assert len(game.emitted(EVENT_MOVE_CONSUMED)) == 1


def test_two_line_clearers_clear_row_and_column():
    board = board_from_rows({(3, 3): "Y-", (3, 4): "P|"})
    game = build_game(board)
    _swap(game, (3, 3), (3, 4))
    assert game.emitted(EVENT_TILE_SWAP_VALID)[-1]["kind"] == "special"
    expected = {(3, col) for col in range(8)} | {(row, 4) for row in range(8)}
    assert set(game.emitted(EVENT_CASCADE_STEP)[0]["positions"]) == expected
    assert get_or_create_game_state(game.world).moves_left == 24


def test_two_bombs_clear_five_by_five():
    game = build_game(board_from_rows({(3, 3): "Y*", (3, 4): "P*"}))
    _swap(game, (3, 3), (3, 4))
    expected = {(r, c) for r in range(1, 6) for c in range(2, 7)}
    assert set(game.emitted(EVENT_CASCADE_STEP)[0]["positions"]) == expected


def test_bomb_and_line_clear_three_wide_bands():
    game = build_game(board_from_rows({(3, 3): "Y*", (3, 4): "P-"}))
    _swap(game, (3, 3), (3, 4))
    expected = {(r, c) for r in range(2, 5) for c in range(8)}
    expected |= {(r, c) for r in range(8) for c in range(3, 6)}
    assert set(game.emitted(EVENT_CASCADE_STEP)[0]["positions"]) == expected


def test_color_clearer_with_regular_clears_that_color():
    board = board_from_rows({(0, 0): "R@"})
    blue = set(positions_of_color(board, "blue"))
    game = build_game(board)
    _swap(game, (0, 0), (0, 1))
    assert set(game.emitted(EVENT_CASCADE_STEP)[0]["positions"]) == blue | {(0, 0)}
    assert get_or_create_game_state(game.world).moves_left == 24


def test_color_clearer_with_bomb_turns_color_into_bombs():
    board = board_from_rows({(0, 0): "R@", (0, 1): "B*"})
    blue = positions_of_color(board, "blue")
    game = build_game(board)
    _swap(game, (0, 0), (0, 1))
    cleared = set(game.emitted(EVENT_CASCADE_STEP)[0]["positions"])
    for row, col in blue:
        area = {(r, c) for r in range(row - 1, row + 2) for c in range(col - 1, col + 2) if 0 <= r < 8 and 0 <= c < 8}
        assert area <= cleared


def test_two_color_clearers_clear_everything():
    game = build_game(board_from_rows({(0, 0): "R@", (0, 1): "B@"}))
    _swap(game, (0, 0), (0, 1))
    assert len(game.emitted(EVENT_CASCADE_STEP)[0]["positions"]) == 64


def test_color_clearer_with_line_fires_every_converted_clearer():
    board = board_from_rows({(0, 0): "R@", (0, 1): "B-"})
    blue = positions_of_color(board, "blue")
    game = build_game(board)
    _swap(game, (0, 0), (0, 1))
    cleared = set(game.emitted(EVENT_CASCADE_STEP)[0]["positions"])
    assert set(blue) <= cleared
    for row, col in blue:
        full_row = {(row, c) for c in range(8)}
        full_col = {(r, col) for r in range(8)}
        assert full_row <= cleared or full_col <= cleared
    assert get_or_create_game_state(game.world).moves_left == 24
