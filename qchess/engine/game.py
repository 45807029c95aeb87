from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set

from ..quantum.meaning import BoardMeaning
from ..quantum.state import QuantumBoardState, RandomSource
from .move import Cell, ClassicMove, Move, QuantumMove, cell_to_str
from .piece import Piece, PieceType, parse_placement, standard_setup
from .rules import Ruleset


logger = logging.getLogger(__name__)

MoveListener = Callable[[Move], None]


class MoveError(Enum):
    ILLEGAL_MOVE = "illegal move"
    INVALID_MOVE_SHAPE = "invalid move shape"


@dataclass(frozen=True)
class MoveResult:
    accepted: bool
    move: Optional[Move] = None
    error: Optional[MoveError] = None
    detail: str = ""

    def __bool__(self) -> bool:
        return self.accepted


class Game:
    """Quantum chess game: pieces, board extent, quantum state and history.

    Responsibility: validate move requests, build move records, dispatch them
    to the quantum board state, and notify listeners after each commit.

    Notes:
    - Rejected requests never touch the state.
    - Turn order is not enforced; a move record carries its piece's owner.
    """

    def __init__(
        self,
        pieces: Mapping[int, Piece],
        starting_cells: Mapping[Cell, int],
        width: int = 8,
        height: int = 8,
        rng: Optional[RandomSource] = None,
    ) -> None:
        for cell, pid in starting_cells.items():
            if pid not in pieces:
                raise ValueError(f"unknown piece id {pid} at {cell!r}")
            if not (0 <= cell[0] < width and 0 <= cell[1] < height):
                raise ValueError(f"starting cell outside the board: {cell!r}")
        placed = set(starting_cells.values())
        missing = [pid for pid in pieces if pid not in placed]
        if missing:
            raise ValueError(f"pieces without a starting cell: {missing}")

        self.width = width
        self.height = height
        self.pieces: Dict[int, Piece] = dict(pieces)
        self.ruleset = Ruleset(self.pieces, width, height)
        self.state = QuantumBoardState.from_cells(
            self.ruleset, dict(starting_cells), rng=rng if rng is not None else random.Random()
        )
        self.history: List[Move] = []
        self._listeners: List[MoveListener] = []

    @classmethod
    def standard(cls, rng: Optional[RandomSource] = None) -> "Game":
        pieces, cells = standard_setup()
        return cls(pieces, cells, rng=rng)

    @classmethod
    def from_placement(cls, placement: str, rng: Optional[RandomSource] = None) -> "Game":
        pieces, cells, width, height = parse_placement(placement)
        return cls(pieces, cells, width=width, height=height, rng=rng)

    # --- Queries ---
    def piece(self, piece_id: int) -> Piece:
        return self.pieces[piece_id]

    @property
    def last_move(self) -> Optional[Move]:
        return self.history[-1] if self.history else None

    def meaning(self) -> BoardMeaning:
        return BoardMeaning.from_state(self.state, self.width, self.height, self.pieces)

    def legal_targets(self, piece_id: int, origin: Cell) -> Set[Cell]:
        return self.ruleset.aggregate_destinations(
            self.state, piece_id, origin, self.last_move, self.meaning()
        )

    # --- Listeners ---
    def add_listener(self, listener: MoveListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: MoveListener) -> None:
        self._listeners.remove(listener)

    # --- Move requests ---
    def try_move(self, piece_id: int, origin: Cell, targets: Sequence[Cell]) -> MoveResult:
        """Dispatch on the number of targets: one is classic, two is quantum."""
        if len(targets) == 1:
            return self.try_classic_move(piece_id, origin, targets[0])
        if len(targets) == 2:
            return self.try_quantum_move(piece_id, origin, targets)
        return self._reject(
            MoveError.INVALID_MOVE_SHAPE, f"a move takes one or two targets, got {len(targets)}"
        )

    def try_classic_move(self, piece_id: int, origin: Cell, target: Cell) -> MoveResult:
        piece = self.pieces.get(piece_id)
        if piece is None:
            return self._reject(MoveError.ILLEGAL_MOVE, f"unknown piece id {piece_id}")
        meaning = self.meaning()
        legal = self.ruleset.aggregate_destinations(
            self.state, piece_id, origin, self.last_move, meaning
        )
        if target not in legal:
            return self._reject(
                MoveError.ILLEGAL_MOVE,
                f"{piece} cannot move {cell_to_str(origin)} -> {cell_to_str(target)}",
            )

        mover = meaning.real_piece(piece_id, origin)
        occupants = [rp for rp in meaning[target] if rp.piece_id != piece_id]
        mover_quantum = mover is not None and mover.is_quantum
        # A quantum attacker must prove it is there before taking a classical piece
        measures_origin = mover_quantum and any(not rp.is_quantum for rp in occupants)
        # A classical attacker forces whatever may be on the target to resolve
        measures_target = not mover_quantum and bool(meaning[target])
        is_castling = piece.type is PieceType.KING and abs(target[0] - origin[0]) >= 2
        try:
            move = ClassicMove(
                player=piece.player,
                piece_id=piece_id,
                origin=origin,
                target=target,
                measures_origin=measures_origin,
                measures_target=measures_target,
                is_castling=is_castling,
            )
        except ValueError as e:
            return self._reject(MoveError.INVALID_MOVE_SHAPE, str(e))

        self.state.classic_move(move, self.last_move)
        return self._commit(move)

    def try_quantum_move(
        self, piece_id: int, origin: Cell, targets: Sequence[Cell]
    ) -> MoveResult:
        piece = self.pieces.get(piece_id)
        if piece is None:
            return self._reject(MoveError.ILLEGAL_MOVE, f"unknown piece id {piece_id}")
        try:
            move = QuantumMove(
                player=piece.player,
                piece_id=piece_id,
                origin=origin,
                targets=tuple(targets),  # type: ignore[arg-type]
            )
        except ValueError as e:
            return self._reject(MoveError.INVALID_MOVE_SHAPE, str(e))
        if not self.ruleset.can_quantum_move(piece):
            return self._reject(MoveError.ILLEGAL_MOVE, f"{piece} cannot make quantum moves")

        legal = self.legal_targets(piece_id, origin)
        missing = [t for t in move.targets if t not in legal]
        if missing:
            return self._reject(
                MoveError.ILLEGAL_MOVE,
                f"{piece} cannot move {cell_to_str(origin)} -> "
                + ", ".join(cell_to_str(t) for t in missing),
            )

        self.state.quantum_move(move, self.last_move)
        return self._commit(move)

    def _commit(self, move: Move) -> MoveResult:
        self.history.append(move)
        logger.info(
            "move committed",
            extra={
                "move": move.to_str(),
                "branches": self.state.branch_count,
                "total_weight": str(self.state.total_weight),
            },
        )
        for listener in list(self._listeners):
            listener(move)
        return MoveResult(accepted=True, move=move)

    def _reject(self, error: MoveError, detail: str) -> MoveResult:
        logger.info("move rejected", extra={"error": error.value, "detail": detail})
        return MoveResult(accepted=False, error=error, detail=detail)
