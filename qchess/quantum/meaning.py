from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from ..engine.move import Cell
from ..engine.piece import Piece
from .state import QuantumBoardState


@dataclass(frozen=True)
class RealPiece:
    """A piece as the players see it: one location and how likely it is there.

    Attributes:
        piece (Piece): Descriptor of the underlying piece.
        cell (Optional[Cell]): Cell it occupies, ``None`` when captured.
        presence (float): Weight fraction of branches placing it there.
    """

    piece: Piece
    cell: Optional[Cell]
    presence: float

    @property
    def piece_id(self) -> int:
        return self.piece.id

    @property
    def is_quantum(self) -> bool:
        return self.presence < 1.0

    @property
    def is_captured(self) -> bool:
        return self.cell is None


class BoardMeaning:
    """Per-cell projection of a quantum board for presentation.

    Holds no identity of its own; rebuild it after every move.
    """

    def __init__(
        self,
        width: int,
        height: int,
        cells: Dict[Cell, List[RealPiece]],
        captured: List[RealPiece],
    ) -> None:
        self.width = width
        self.height = height
        self._cells = cells
        self.captured = captured

    @classmethod
    def from_state(
        cls,
        state: QuantumBoardState,
        width: int,
        height: int,
        pieces: Mapping[int, Piece],
    ) -> "BoardMeaning":
        total = state.total_weight
        weights: Dict[Cell, Dict[int, int]] = {}
        for branch in state.branches:
            for cell, pid in branch.cells.items():
                per_cell = weights.setdefault(cell, {})
                per_cell[pid] = per_cell.get(pid, 0) + branch.weight

        cells: Dict[Cell, List[RealPiece]] = {}
        for cell, per_cell in weights.items():
            cells[cell] = [RealPiece(pieces[pid], cell, w / total) for pid, w in per_cell.items()]
        captured = [
            RealPiece(pieces[pid], None, w / total) for pid, w in state.captured_pieces().items()
        ]
        return cls(width, height, cells, captured)

    def __getitem__(self, cell: Cell) -> List[RealPiece]:
        return self._cells.get(cell, [])

    def cells(self) -> Iterator[Tuple[Cell, List[RealPiece]]]:
        """Iterate occupied cells, rank by rank from rank 1."""
        for cell in sorted(self._cells, key=lambda c: (c[1], c[0])):
            yield cell, self._cells[cell]

    def real_piece(self, piece_id: int, cell: Cell) -> Optional[RealPiece]:
        for rp in self[cell]:
            if rp.piece_id == piece_id:
                return rp
        return None

    def presence_of(self, piece_id: int) -> Dict[Optional[Cell], float]:
        """Return ``{cell or None: presence}`` for every location of ``piece_id``."""
        out: Dict[Optional[Cell], float] = {}
        for cell, real_pieces in self._cells.items():
            for rp in real_pieces:
                if rp.piece_id == piece_id:
                    out[cell] = rp.presence
        for rp in self.captured:
            if rp.piece_id == piece_id:
                out[None] = rp.presence
        return out
