import os
import sys
from typing import Callable, Dict, List

import pytest


# Ensure the repository root is on sys.path for `from qchess...` imports
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from qchess.engine.game import Game  # noqa: E402


class FixedRandom:
    """Random source returning scripted draws, to pick measurement outcomes."""

    def __init__(self, draws: List[int]) -> None:
        self.draws = list(draws)
        self.calls: List[int] = []

    def randrange(self, stop: int) -> int:
        self.calls.append(stop)
        value = self.draws.pop(0)
        if not 0 <= value < stop:
            raise ValueError(f"scripted draw {value} outside [0, {stop})")
        return value


def _check_presence(game: Game) -> None:
    meaning = game.meaning()
    per_piece: Dict[int, float] = {pid: 0.0 for pid in game.pieces}
    for _, pieces in meaning.cells():
        assert sum(rp.presence for rp in pieces) <= 1.0 + 1e-9
        for rp in pieces:
            assert 0.0 < rp.presence <= 1.0
            per_piece[rp.piece_id] += rp.presence
    for rp in meaning.captured:
        per_piece[rp.piece_id] += rp.presence
    for pid, total in per_piece.items():
        assert total == pytest.approx(1.0), pid


@pytest.fixture
def fixed_random() -> Callable[[List[int]], FixedRandom]:
    return FixedRandom


@pytest.fixture
def check_presence() -> Callable[[Game], None]:
    return _check_presence
