from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Mapping, Optional, Set, Tuple

from .move import Cell, Move, cell_to_str
from .piece import PieceType

if TYPE_CHECKING:
    from .rules import Ruleset


OccupancyKey = FrozenSet[Tuple[Cell, int]]


@dataclass
class ClassicBoardState:
    """One fully-determined chess position inside a quantum board.

    Notes:
    - ``cells`` maps ``(x, y)`` to the id of the piece standing there; a
      piece id appears at most once.
    - ``weight`` counts how many identical classical histories this branch
      stands for. It is an unbounded ``int``.
    - Identity between branches only looks at occupancy, never at weight,
      captures, or the moved set.
    """

    cells: Dict[Cell, int] = field(default_factory=dict)
    captured: List[int] = field(default_factory=list)
    moved: Set[int] = field(default_factory=set)
    weight: int = 1

    @classmethod
    def from_cells(cls, cells: Mapping[Cell, int]) -> "ClassicBoardState":
        """Create a root branch (weight 1) from a starting placement.

        Raises:
            ValueError: If a piece id is placed on more than one cell.
        """
        ids = list(cells.values())
        if len(ids) != len(set(ids)):
            raise ValueError("a piece id may occupy at most one cell")
        return cls(cells=dict(cells))

    def piece_at(self, cell: Cell) -> Optional[int]:
        return self.cells.get(cell)

    def is_any_piece_at(self, cell: Cell) -> bool:
        return cell in self.cells

    def position_of(self, piece_id: int) -> Optional[Cell]:
        for cell, pid in self.cells.items():
            if pid == piece_id:
                return cell
        return None

    def has_moved(self, piece_id: int) -> bool:
        return piece_id in self.moved

    def clone(self) -> "ClassicBoardState":
        return ClassicBoardState(
            cells=dict(self.cells),
            captured=list(self.captured),
            moved=set(self.moved),
            weight=self.weight,
        )

    def occupancy_key(self) -> OccupancyKey:
        """Hashable form of the occupancy map, used to merge branches."""
        return frozenset(self.cells.items())

    def is_identical(self, other: "ClassicBoardState") -> bool:
        return self.cells == other.cells

    def make_move_if_able(
        self,
        ruleset: "Ruleset",
        piece_id: int,
        origin: Cell,
        target: Cell,
        last_move: Optional[Move] = None,
    ) -> bool:
        """Move ``piece_id`` from ``origin`` to ``target`` if this branch allows it.

        The move is skipped (and ``False`` returned) when the piece is not on
        ``origin`` in this branch or ``target`` is not one of its legal
        destinations here.

        Handles captures, en passant captures and the rook half of castling.

        Args:
            ruleset (Ruleset): Rules bound to the game's pieces and extent.
            piece_id (int): Piece to move.
            origin (Cell): Cell the piece is expected on.
            target (Cell): Destination cell.
            last_move (Optional[Move]): Last committed move, for en passant.

        Returns:
            bool: ``True`` when the branch changed.
        """
        if self.cells.get(origin) != piece_id:
            return False
        piece = ruleset.pieces[piece_id]
        if target not in ruleset.destinations(self, piece, origin, last_move):
            return False

        rook_step: Optional[Tuple[Cell, Cell]] = None
        if piece.type is PieceType.KING:
            rook_step = ruleset.castling_rook(self, piece, origin, target)

        victim = self.cells.get(target)
        if victim is not None:
            self.captured.append(victim)
        elif piece.type is PieceType.PAWN and target[0] != origin[0]:
            # Diagonal step onto an empty cell: en passant
            passed = (target[0], origin[1])
            ep_victim = self.cells.get(passed)
            if ep_victim is not None:
                other = ruleset.pieces[ep_victim]
                if other.player != piece.player and other.type is PieceType.PAWN:
                    del self.cells[passed]
                    self.captured.append(ep_victim)

        del self.cells[origin]
        self.cells[target] = piece_id
        self.moved.add(piece_id)

        if rook_step is not None:
            rook_from, rook_to = rook_step
            rook_id = self.cells.pop(rook_from)
            self.cells[rook_to] = rook_id
            self.moved.add(rook_id)
        return True

    def describe(self) -> str:
        ordered = sorted(self.cells.items(), key=lambda kv: (kv[0][1], kv[0][0]))
        placed = ", ".join(f"{cell_to_str(c)}={pid}" for c, pid in ordered)
        return f"weight={self.weight} [{placed}]"
