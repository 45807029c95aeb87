from __future__ import annotations

from qchess.engine.board import ClassicBoardState
from qchess.engine.game import Game
from qchess.engine.move import ClassicMove, str_to_cell
from qchess.engine.piece import WHITE, Piece, PieceType, parse_placement
from qchess.engine.rules import Ruleset


EP_FEN = "4k3/4p3/8/3P4/8/8/8/4K3"
# ids: e1 king 0, d5 white pawn 1, e7 black pawn 2, e8 king 3


def test_white_en_passant_after_double_step() -> None:
    game = Game.from_placement(EP_FEN)
    assert game.try_classic_move(2, str_to_cell("e7"), str_to_cell("e5"))
    assert str_to_cell("e6") in game.legal_targets(1, str_to_cell("d5"))

    res = game.try_classic_move(1, str_to_cell("d5"), str_to_cell("e6"))
    assert res.accepted
    meaning = game.meaning()
    assert meaning[str_to_cell("e5")] == []
    assert [rp.piece_id for rp in meaning[str_to_cell("e6")]] == [1]
    assert [(rp.piece_id, rp.presence) for rp in meaning.captured] == [(2, 1.0)]


def test_en_passant_expires_after_another_move() -> None:
    game = Game.from_placement(EP_FEN)
    assert game.try_classic_move(2, str_to_cell("e7"), str_to_cell("e5"))
    assert game.try_classic_move(0, str_to_cell("e1"), str_to_cell("e2"))
    res = game.try_classic_move(1, str_to_cell("d5"), str_to_cell("e6"))
    assert not res.accepted
    assert game.meaning()[str_to_cell("e5")][0].piece_id == 2


def test_black_en_passant_on_board() -> None:
    pieces, cells, w, h = parse_placement("4k3/8/8/8/3pP3/8/8/4K3")
    # ids: e1 king 0, d4 black pawn 1, e4 white pawn 2, e8 king 3
    rules = Ruleset(pieces, w, h)
    board = ClassicBoardState.from_cells(cells)
    last = ClassicMove(0, 2, str_to_cell("e2"), str_to_cell("e4"))
    assert board.make_move_if_able(rules, 1, str_to_cell("d4"), str_to_cell("e3"), last)
    assert board.piece_at(str_to_cell("e3")) == 1
    assert board.piece_at(str_to_cell("e4")) is None
    assert board.captured == [2]


def test_en_passant_skipped_in_branch_without_the_pawn() -> None:
    pieces, cells, w, h = parse_placement("4k3/8/8/8/3p4/8/8/4K3")
    # The double step is in history but this branch has no white pawn on e4
    registry = dict(pieces)
    registry[9] = Piece(WHITE, PieceType.PAWN, 9)
    rules = Ruleset(registry, w, h)
    board = ClassicBoardState.from_cells(cells)
    last = ClassicMove(0, 9, str_to_cell("e2"), str_to_cell("e4"))
    assert not board.make_move_if_able(rules, 1, str_to_cell("d4"), str_to_cell("e3"), last)
    assert board.piece_at(str_to_cell("d4")) == 1
