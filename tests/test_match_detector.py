import random

from crush.components.match_result import SpecialSpawn
from crush.components.token import TokenKind
from crush.constants import PALETTE
from crush.systems.board_ops import positions_of_color
from crush.systems.match_detector import detect_matches, expand_chain, find_runs
from tests.helpers import board_from_rows


def test_board_at_rest_has_no_match():
    result = detect_matches(board_from_rows(), rng=random.Random(0))
    assert result.is_empty()
    assert result.specials == []


def test_run_of_four_spawns_vertical_clearer_at_destination():
    board = board_from_rows({(0, 1): "R", (0, 2): "R", (0, 3): "R"})
    result = detect_matches(board, (0, 1), random.Random(0))
    assert result.destroyed == {(0, 0), (0, 1), (0, 2), (0, 3)}
    assert result.specials == [SpecialSpawn(pos=(0, 1), color="red", kind=TokenKind.STRIPE_V)]


def test_vertical_run_of_four_spawns_horizontal_clearer_in_the_middle():
    board = board_from_rows({(1, 0): "R", (2, 0): "R", (3, 0): "R"})
    result = detect_matches(board, None, random.Random(0))
    assert result.destroyed == {(0, 0), (1, 0), (2, 0), (3, 0)}
    assert result.specials == [SpecialSpawn(pos=(1, 0), color="red", kind=TokenKind.STRIPE_H)]


def test_run_of_five_spawns_color_clearer():
    board = board_from_rows({(0, 1): "R", (0, 2): "R", (0, 3): "R", (0, 4): "R"})
    result = detect_matches(board, None, random.Random(0))
    assert len(result.destroyed) == 5
    assert result.specials == [SpecialSpawn(pos=(0, 2), color="red", kind=TokenKind.COLOR_BOMB)]


def test_l_shape_spawns_one_bomb_and_destroys_five():
    board = board_from_rows({(2, 0): "Y", (2, 1): "Y", (2, 2): "Y", (3, 0): "Y", (4, 0): "Y"})
    horizontal, vertical = find_runs(board)
    assert len(horizontal) == 1 and len(vertical) == 1
    result = detect_matches(board, None, random.Random(0))
    assert result.destroyed == {(2, 0), (2, 1), (2, 2), (3, 0), (4, 0)}
    assert result.specials == [SpecialSpawn(pos=(2, 0), color="yellow", kind=TokenKind.BOMB)]


def test_detection_is_idempotent():
    board = board_from_rows({(2, 0): "Y", (2, 1): "Y", (2, 2): "Y", (3, 0): "Y", (4, 0): "Y"})
    first = detect_matches(board, None, random.Random(0))
    second = detect_matches(board, None, random.Random(0))
    assert first == second


def test_rocks_and_color_clearers_break_runs():
    board = board_from_rows({(0, 1): "R", (0, 2): "#", (0, 3): "R", (0, 4): "R@"})
    assert find_runs(board) == ([], [])


def test_clearer_inside_a_run_sweeps_its_row():
    board = board_from_rows({(0, 1): "R-", (0, 2): "R"})
    result = detect_matches(board, None, random.Random(0))
    assert result.destroyed == {(0, col) for col in range(8)}
    assert result.specials == []


def test_chain_reaches_color_clearer_with_seeded_random():
    board = board_from_rows({(0, 1): "R|", (0, 2): "R", (5, 1): "O@"})
    expected_color = random.Random(3).choice(list(PALETTE))
    expected = set(positions_of_color(board, expected_color))
    result = detect_matches(board, None, random.Random(3))
    assert {(row, 1) for row in range(8)} <= result.destroyed
    assert expected <= result.destroyed


def test_expand_chain_marks_each_cell_once():
    board = board_from_rows({(3, 3): "G*", (3, 4): "P-"})
    marked = expand_chain(board, [(3, 3)], random.Random(0))
    bomb_area = {(r, c) for r in range(2, 5) for c in range(2, 5)}
    row = {(3, c) for c in range(8)}
    assert marked == bomb_area | row


def test_consumed_cells_do_not_fire():
    board = board_from_rows({(3, 3): "G*"})
    marked = expand_chain(board, [], random.Random(0), consumed=[(3, 3)])
    assert marked == {(3, 3)}


def test_rock_next_to_a_match_is_damaged_not_destroyed():
    board = board_from_rows({(0, 1): "R", (0, 2): "R", (1, 0): "#2"})
    result = detect_matches(board, None, random.Random(0))
    assert result.destroyed == {(0, 0), (0, 1), (0, 2)}
    assert result.damaged == {(1, 0)}
