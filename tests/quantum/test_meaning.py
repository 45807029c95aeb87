from __future__ import annotations

import random

from qchess.engine.game import Game
from qchess.engine.move import str_to_cell


def test_start_position_is_fully_classical(check_presence) -> None:
    game = Game.standard(rng=random.Random(0))
    meaning = game.meaning()
    occupied = list(meaning.cells())
    assert len(occupied) == 32
    for _, pieces in occupied:
        assert len(pieces) == 1
        assert pieces[0].presence == 1.0
        assert not pieces[0].is_quantum
    assert meaning.captured == []
    assert meaning[str_to_cell("e4")] == []
    check_presence(game)


def test_cells_iterate_rank_by_rank() -> None:
    game = Game.standard(rng=random.Random(0))
    order = [cell for cell, _ in game.meaning().cells()]
    assert order[0] == (0, 0)
    assert order[8] == (0, 1)
    assert order[-1] == (7, 7)


def test_split_piece_has_half_presence(check_presence) -> None:
    game = Game.standard(rng=random.Random(0))
    assert game.try_quantum_move(10, str_to_cell("b1"), [str_to_cell("a3"), str_to_cell("c3")])
    meaning = game.meaning()
    (a3,) = meaning[str_to_cell("a3")]
    (c3,) = meaning[str_to_cell("c3")]
    assert a3.piece_id == c3.piece_id == 10
    assert a3.presence == c3.presence == 0.5
    assert a3.is_quantum and not a3.is_captured
    assert meaning.presence_of(10) == {str_to_cell("a3"): 0.5, str_to_cell("c3"): 0.5}
    assert meaning.real_piece(10, str_to_cell("a3")) == a3
    assert meaning.real_piece(11, str_to_cell("a3")) is None
    check_presence(game)


def test_captured_presence_is_reported(check_presence) -> None:
    game = Game.from_placement("4kr2/8/8/8/8/8/8/3QK3", rng=random.Random(0))
    # ids: d1 queen 0, e1 king 1, e8 king 2, f8 rook 3
    f3 = str_to_cell("f3")
    assert game.try_quantum_move(0, str_to_cell("d1"), [str_to_cell("d3"), f3])
    assert game.try_quantum_move(3, str_to_cell("f8"), [str_to_cell("f7"), str_to_cell("g8")])
    # Quantum rook onto a quantum queen: no measurement, capture in one branch of four
    res = game.try_classic_move(3, str_to_cell("f7"), f3)
    assert res.accepted and res.move is not None
    assert not res.move.measures_origin and not res.move.measures_target
    assert game.state.branch_count == 4

    meaning = game.meaning()
    assert meaning.presence_of(0) == {str_to_cell("d3"): 0.5, f3: 0.25, None: 0.25}
    assert [(rp.piece_id, rp.presence, rp.is_captured) for rp in meaning.captured] == [
        (0, 0.25, True)
    ]
    assert sorted((rp.piece_id, rp.presence) for rp in meaning[f3]) == [(0, 0.25), (3, 0.5)]
    check_presence(game)
