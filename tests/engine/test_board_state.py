from __future__ import annotations

import pytest

from qchess.engine.board import ClassicBoardState
from qchess.engine.move import str_to_cell
from qchess.engine.piece import parse_placement, standard_setup
from qchess.engine.rules import Ruleset


def _start():
    pieces, cells = standard_setup()
    return Ruleset(pieces), ClassicBoardState.from_cells(cells)


def test_from_cells_rejects_duplicate_ids() -> None:
    with pytest.raises(ValueError):
        ClassicBoardState.from_cells({(0, 0): 1, (1, 0): 1})


def test_make_move_applies_and_marks_moved() -> None:
    rules, board = _start()
    e2, e4 = str_to_cell("e2"), str_to_cell("e4")
    assert board.make_move_if_able(rules, 4, e2, e4)
    assert board.piece_at(e2) is None
    assert board.piece_at(e4) == 4
    assert board.position_of(4) == e4
    assert board.has_moved(4)
    assert board.captured == []


def test_make_move_skips_when_piece_elsewhere() -> None:
    rules, board = _start()
    before = dict(board.cells)
    # Piece 4 is on e2, not d2
    assert not board.make_move_if_able(rules, 4, str_to_cell("d2"), str_to_cell("d4"))
    assert board.cells == before
    assert board.moved == set()


def test_make_move_skips_illegal_target() -> None:
    rules, board = _start()
    before = dict(board.cells)
    assert not board.make_move_if_able(rules, 4, str_to_cell("e2"), str_to_cell("e5"))
    assert board.cells == before


def test_capture_appends_to_captured_list() -> None:
    pieces, cells, w, h = parse_placement("4k3/8/8/8/8/8/8/R2pK3")
    rules = Ruleset(pieces, w, h)
    board = ClassicBoardState.from_cells(cells)
    assert board.make_move_if_able(rules, 0, str_to_cell("a1"), str_to_cell("d1"))
    assert board.captured == [1]
    assert board.piece_at(str_to_cell("d1")) == 0
    assert board.position_of(1) is None


def test_clone_is_deep() -> None:
    rules, board = _start()
    board.weight = 3
    clone = board.clone()
    clone.make_move_if_able(rules, 4, str_to_cell("e2"), str_to_cell("e4"))
    assert board.piece_at(str_to_cell("e2")) == 4
    assert board.moved == set()
    assert clone.weight == 3


def test_identity_ignores_weight_and_history() -> None:
    _, board = _start()
    other = board.clone()
    other.weight = 7
    other.captured.append(99)
    other.moved.add(4)
    assert board.is_identical(other)
    assert board.occupancy_key() == other.occupancy_key()
    del other.cells[str_to_cell("a2")]
    assert not board.is_identical(other)
    assert board.occupancy_key() != other.occupancy_key()
