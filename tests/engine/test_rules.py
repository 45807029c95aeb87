from __future__ import annotations

from typing import Set

from qchess.engine.board import ClassicBoardState
from qchess.engine.move import ClassicMove, str_to_cell
from qchess.engine.piece import parse_placement, standard_setup
from qchess.engine.rules import Ruleset


def _names(cells: Set) -> Set[str]:
    from qchess.engine.move import cell_to_str

    return {cell_to_str(c) for c in cells}


def _setup(placement: str):
    pieces, cells, width, height = parse_placement(placement)
    return Ruleset(pieces, width, height), ClassicBoardState.from_cells(cells), pieces


def test_knight_from_start() -> None:
    pieces, cells = standard_setup()
    rules = Ruleset(pieces)
    board = ClassicBoardState.from_cells(cells)
    assert _names(rules.destinations(board, pieces[10], str_to_cell("b1"))) == {"a3", "c3"}
    assert _names(rules.destinations(board, pieces[26], str_to_cell("b8"))) == {"a6", "c6"}


def test_pawn_pushes_from_start() -> None:
    pieces, cells = standard_setup()
    rules = Ruleset(pieces)
    board = ClassicBoardState.from_cells(cells)
    assert _names(rules.destinations(board, pieces[4], str_to_cell("e2"))) == {"e3", "e4"}
    # Black pawns advance toward rank 1
    assert _names(rules.destinations(board, pieces[20], str_to_cell("e7"))) == {"e6", "e5"}


def test_pieces_boxed_in_at_start() -> None:
    pieces, cells = standard_setup()
    rules = Ruleset(pieces)
    board = ClassicBoardState.from_cells(cells)
    for pid, name in ((8, "a1"), (12, "c1"), (14, "d1"), (15, "e1")):
        assert rules.destinations(board, pieces[pid], str_to_cell(name)) == set()


def test_rook_slides_and_stops_on_enemy() -> None:
    rules, board, pieces = _setup("4k3/8/8/8/8/8/8/R2pK3")
    dests = _names(rules.destinations(board, pieces[0], str_to_cell("a1")))
    assert dests == {"b1", "c1", "d1", "a2", "a3", "a4", "a5", "a6", "a7", "a8"}


def test_bishop_blocked_by_own_piece() -> None:
    # White bishop c1, own pawn d2, enemy pawn a3
    rules, board, pieces = _setup("4k3/8/8/8/8/p7/3P4/2B1K3")
    bishop = board.piece_at(str_to_cell("c1"))
    assert bishop is not None
    assert _names(rules.destinations(board, pieces[bishop], str_to_cell("c1"))) == {"b2", "a3"}


def test_queen_combines_lines_and_diagonals() -> None:
    rules, board, pieces = _setup("8/8/8/8/3Q4/8/8/8")
    dests = rules.destinations(board, pieces[0], str_to_cell("d4"))
    # 7 on the file, 7 on the rank, 13 on the two diagonals
    assert len(dests) == 27


def test_pawn_blocked_and_captures_only_enemies() -> None:
    # White pawn e2; black knight e3 blocks, black pawn d3 and white pawn f3 diagonal
    rules, board, pieces = _setup("4k3/8/8/8/8/3pnP2/4P3/4K3")
    pawn = board.piece_at(str_to_cell("e2"))
    assert pawn is not None
    assert _names(rules.destinations(board, pieces[pawn], str_to_cell("e2"))) == {"d3"}


def test_pawn_double_step_needs_both_cells_empty() -> None:
    rules, board, pieces = _setup("4k3/8/8/8/4n3/8/4P3/4K3")
    pawn = board.piece_at(str_to_cell("e2"))
    assert pawn is not None
    assert _names(rules.destinations(board, pieces[pawn], str_to_cell("e2"))) == {"e3"}


def test_pawn_on_last_rank_has_no_push() -> None:
    rules, board, pieces = _setup("4P3/8/8/8/8/8/8/4K3")
    pawn = board.piece_at(str_to_cell("e8"))
    assert pawn is not None
    assert rules.destinations(board, pieces[pawn], str_to_cell("e8")) == set()


def test_king_steps_avoid_own_pieces() -> None:
    rules, board, pieces = _setup("4k3/8/8/8/8/8/3PP3/4K3")
    king = board.piece_at(str_to_cell("e1"))
    assert king is not None
    assert _names(rules.destinations(board, pieces[king], str_to_cell("e1"))) == {
        "d1",
        "f1",
        "f2",
    }


def test_en_passant_requires_last_double_step() -> None:
    rules, board, pieces = _setup("4k3/8/8/3Pp3/8/8/8/4K3")
    white_pawn = board.piece_at(str_to_cell("d5"))
    black_pawn = board.piece_at(str_to_cell("e5"))
    assert white_pawn is not None and black_pawn is not None
    origin = str_to_cell("d5")

    double = ClassicMove(1, black_pawn, str_to_cell("e7"), str_to_cell("e5"))
    assert "e6" in _names(rules.destinations(board, pieces[white_pawn], origin, double))

    single = ClassicMove(1, black_pawn, str_to_cell("e6"), str_to_cell("e5"))
    assert "e6" not in _names(rules.destinations(board, pieces[white_pawn], origin, single))
    assert "e6" not in _names(rules.destinations(board, pieces[white_pawn], origin, None))


def test_can_quantum_move_excludes_pawns() -> None:
    pieces, _ = standard_setup()
    rules = Ruleset(pieces)
    assert not rules.can_quantum_move(pieces[0])
    assert all(rules.can_quantum_move(pieces[pid]) for pid in range(8, 16))
