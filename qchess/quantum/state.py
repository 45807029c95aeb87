from __future__ import annotations

import logging
import math
import random
from functools import reduce
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from ..engine.board import ClassicBoardState, OccupancyKey
from ..engine.move import Cell, ClassicMove, Move, QuantumMove, cell_to_str
from ..engine.rules import Ruleset


logger = logging.getLogger(__name__)


class InvariantViolation(RuntimeError):
    """Branch bookkeeping broke; the quantum board can no longer be trusted."""


class RandomSource(Protocol):
    def randrange(self, stop: int) -> int: ...


def normalize_weights(branches: List[ClassicBoardState]) -> None:
    """Divide all branch weights by their greatest common divisor, in place.

    Skipped once any weight equals 1, since no reduction is possible then.
    """
    if any(b.weight == 1 for b in branches):
        return
    divisor = reduce(math.gcd, (b.weight for b in branches), 0)
    if divisor > 1:
        for b in branches:
            b.weight //= divisor


def consolidate(branches: Iterable[ClassicBoardState]) -> List[ClassicBoardState]:
    """Merge branches identical by occupancy and reduce their weights.

    The first occurrence of each occupancy keeps its position; later
    duplicates add their weight to it.

    Raises:
        InvariantViolation: If no branch is left or a weight is not positive.
    """
    merged: Dict[OccupancyKey, ClassicBoardState] = {}
    for branch in branches:
        if branch.weight <= 0:
            raise InvariantViolation(f"branch weight must be positive, got {branch.weight}")
        key = branch.occupancy_key()
        kept = merged.get(key)
        if kept is None:
            merged[key] = branch
        else:
            kept.weight += branch.weight
    out = list(merged.values())
    if not out:
        raise InvariantViolation("quantum board has no branches")
    normalize_weights(out)
    return out


class QuantumBoardState:
    """Weighted superposition of classical branches.

    Responsibility: own the branch list; split, merge, normalize and measure.

    Notes:
    - Every mutation is computed on cloned branches and swapped in at the
      end, so a failure leaves the previous branches in place.
    - ``total_weight`` is cached and recomputed after each swap.
    """

    def __init__(
        self,
        ruleset: Ruleset,
        branches: Iterable[ClassicBoardState],
        rng: Optional[RandomSource] = None,
    ) -> None:
        self.ruleset = ruleset
        self.rng: RandomSource = rng if rng is not None else random.Random()
        self._branches: List[ClassicBoardState] = []
        self._total_weight = 0
        self._replace(consolidate(b.clone() for b in branches))

    @classmethod
    def from_cells(
        cls, ruleset: Ruleset, cells: Dict[Cell, int], rng: Optional[RandomSource] = None
    ) -> "QuantumBoardState":
        return cls(ruleset, [ClassicBoardState.from_cells(cells)], rng=rng)

    # --- Queries ---
    @property
    def branches(self) -> Tuple[ClassicBoardState, ...]:
        return tuple(self._branches)

    @property
    def branch_count(self) -> int:
        return len(self._branches)

    @property
    def total_weight(self) -> int:
        return self._total_weight

    def pieces_at(self, cell: Cell) -> Dict[int, int]:
        """Return ``{piece_id: summed weight}`` of branches holding each id at ``cell``."""
        found: Dict[int, int] = {}
        for branch in self._branches:
            pid = branch.piece_at(cell)
            if pid is not None:
                found[pid] = found.get(pid, 0) + branch.weight
        return found

    def captured_pieces(self) -> Dict[int, int]:
        """Return ``{piece_id: summed weight}`` of branches where each id is captured."""
        found: Dict[int, int] = {}
        for branch in self._branches:
            for pid in branch.captured:
                found[pid] = found.get(pid, 0) + branch.weight
        return found

    def is_cell_empty(self, cell: Cell) -> bool:
        return not any(b.is_any_piece_at(cell) for b in self._branches)

    # --- Mutations ---
    def classic_move(self, move: ClassicMove, last_move: Optional[Move] = None) -> None:
        """Measure as flagged, then apply ``move`` in every surviving branch.

        Branches where the move is not legal are left as they are. Legality
        is evaluated after measurement, on the surviving branches only.
        """
        branches = [b.clone() for b in self._branches]
        if move.measures_origin:
            branches, _ = self._measure(branches, move.origin)
        if move.measures_target:
            branches, _ = self._measure(branches, move.target)
        for branch in branches:
            branch.make_move_if_able(
                self.ruleset, move.piece_id, move.origin, move.target, last_move
            )
        self._replace(consolidate(branches))
        self._log_step(move)

    def split(self, move: QuantumMove, last_move: Optional[Move] = None) -> List[ClassicBoardState]:
        """Return the unconsolidated branches produced by ``move``.

        Each branch is cloned; the original takes the first target and the
        clone the second, both keeping the parent's weight. Does not touch
        the current state.
        """
        first: List[ClassicBoardState] = []
        second: List[ClassicBoardState] = []
        for branch in self._branches:
            a = branch.clone()
            b = branch.clone()
            a.make_move_if_able(
                self.ruleset, move.piece_id, move.origin, move.targets[0], last_move
            )
            b.make_move_if_able(
                self.ruleset, move.piece_id, move.origin, move.targets[1], last_move
            )
            first.append(a)
            second.append(b)
        return first + second

    def quantum_move(self, move: QuantumMove, last_move: Optional[Move] = None) -> None:
        self._replace(consolidate(self.split(move, last_move)))
        self._log_step(move)

    def measure(self, cell: Cell) -> Optional[int]:
        """Collapse the board on the occupant of ``cell``.

        One branch is sampled with probability proportional to its weight;
        every branch disagreeing with its occupant at ``cell`` is dropped and
        the survivors are consolidated.

        Returns:
            Optional[int]: The sampled occupant id, or ``None`` for empty.

        Raises:
            InvariantViolation: If there is no weight to sample from.
        """
        branches, occupant = self._measure([b.clone() for b in self._branches], cell)
        self._replace(consolidate(branches))
        return occupant

    def _measure(
        self, branches: List[ClassicBoardState], cell: Cell
    ) -> Tuple[List[ClassicBoardState], Optional[int]]:
        total = sum(b.weight for b in branches)
        if not branches or total <= 0:
            raise InvariantViolation("no branch to sample from")
        draw = self.rng.randrange(total)
        sampled: Optional[ClassicBoardState] = None
        acc = 0
        for branch in branches:
            acc += branch.weight
            if draw < acc:
                sampled = branch
                break
        if sampled is None:
            raise InvariantViolation(f"draw {draw} outside total weight {total}")
        occupant = sampled.piece_at(cell)
        survivors = [b for b in branches if b.piece_at(cell) == occupant]
        logger.debug(
            "measured %s -> %s (%d of %d branches kept)",
            cell_to_str(cell),
            occupant,
            len(survivors),
            len(branches),
        )
        return survivors, occupant

    def _replace(self, branches: List[ClassicBoardState]) -> None:
        total = sum(b.weight for b in branches)
        if not branches or total <= 0:
            raise InvariantViolation("quantum board must keep positive total weight")
        self._branches = branches
        self._total_weight = total

    def _log_step(self, move: Move) -> None:
        logger.debug(
            "%s: %d boards (representing %d states)",
            move.to_str(),
            len(self._branches),
            self._total_weight,
        )
