from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Mapping, Optional, Set, Tuple

from .board import ClassicBoardState
from .move import Cell, ClassicMove, Move
from .piece import Piece, PieceType, WHITE

if TYPE_CHECKING:
    from ..quantum.meaning import BoardMeaning
    from ..quantum.state import QuantumBoardState


ROOK_DIRS = ((-1, 0), (1, 0), (0, -1), (0, 1))
BISHOP_DIRS = ((-1, -1), (1, -1), (-1, 1), (1, 1))
QUEEN_DIRS = ROOK_DIRS + BISHOP_DIRS
KNIGHT_OFFSETS = (
    (1, 2),
    (2, 1),
    (2, -1),
    (1, -2),
    (-1, -2),
    (-2, -1),
    (-2, 1),
    (-1, 2),
)
KING_OFFSETS = QUEEN_DIRS

SLIDER_DIRS = {
    PieceType.ROOK: ROOK_DIRS,
    PieceType.BISHOP: BISHOP_DIRS,
    PieceType.QUEEN: QUEEN_DIRS,
}


@dataclass(frozen=True)
class Ruleset:
    """Move legality for a game's pieces on a board of a given extent.

    Responsibility: compute destinations, never mutate boards.

    Notes:
    - Player 0 advances toward higher ranks, player 1 toward lower ones.
    - Check is not evaluated; kings may step onto attacked cells.
    """

    pieces: Mapping[int, Piece]
    width: int = 8
    height: int = 8

    def in_bounds(self, cell: Cell) -> bool:
        return 0 <= cell[0] < self.width and 0 <= cell[1] < self.height

    def pawn_direction(self, player: int) -> int:
        return 1 if player == WHITE else -1

    def pawn_start_rank(self, player: int) -> int:
        return 1 if player == WHITE else self.height - 2

    def can_quantum_move(self, piece: Piece) -> bool:
        return piece.type is not PieceType.PAWN

    def _is_enemy(self, board: ClassicBoardState, cell: Cell, player: int) -> bool:
        pid = board.piece_at(cell)
        return pid is not None and self.pieces[pid].player != player

    # --- Per-branch generation ---
    def destinations(
        self,
        board: ClassicBoardState,
        piece: Piece,
        origin: Cell,
        last_move: Optional[Move] = None,
    ) -> Set[Cell]:
        """Return the cells ``piece`` standing on ``origin`` may reach in ``board``.

        Args:
            board (ClassicBoardState): The branch to evaluate against.
            piece (Piece): The moving piece.
            origin (Cell): The cell it stands on.
            last_move (Optional[Move]): Last committed move, for en passant.

        Returns:
            Set[Cell]: Legal destination cells in this branch.
        """
        if piece.type in SLIDER_DIRS:
            return self._slide(board, piece, origin, SLIDER_DIRS[piece.type])
        if piece.type is PieceType.KNIGHT:
            return self._step(board, piece, origin, KNIGHT_OFFSETS)
        if piece.type is PieceType.KING:
            return self._step(board, piece, origin, KING_OFFSETS) | self._castling_targets(
                board, piece, origin
            )
        return self._pawn(board, piece, origin, last_move)

    def _slide(
        self,
        board: ClassicBoardState,
        piece: Piece,
        origin: Cell,
        dirs: Tuple[Tuple[int, int], ...],
    ) -> Set[Cell]:
        out: Set[Cell] = set()
        for dx, dy in dirs:
            x, y = origin
            while True:
                x += dx
                y += dy
                cell = (x, y)
                if not self.in_bounds(cell):
                    break
                if board.is_any_piece_at(cell):
                    if self._is_enemy(board, cell, piece.player):
                        out.add(cell)
                    break
                out.add(cell)
        return out

    def _step(
        self,
        board: ClassicBoardState,
        piece: Piece,
        origin: Cell,
        offsets: Tuple[Tuple[int, int], ...],
    ) -> Set[Cell]:
        out: Set[Cell] = set()
        for dx, dy in offsets:
            cell = (origin[0] + dx, origin[1] + dy)
            if not self.in_bounds(cell):
                continue
            if board.is_any_piece_at(cell) and not self._is_enemy(board, cell, piece.player):
                continue
            out.add(cell)
        return out

    def _pawn(
        self,
        board: ClassicBoardState,
        piece: Piece,
        origin: Cell,
        last_move: Optional[Move],
    ) -> Set[Cell]:
        out: Set[Cell] = set()
        x, y = origin
        dy = self.pawn_direction(piece.player)

        one = (x, y + dy)
        if self.in_bounds(one) and not board.is_any_piece_at(one):
            out.add(one)
            two = (x, y + 2 * dy)
            if (
                y == self.pawn_start_rank(piece.player)
                and self.in_bounds(two)
                and not board.is_any_piece_at(two)
            ):
                out.add(two)

        for dx in (-1, 1):
            diag = (x + dx, y + dy)
            if self.in_bounds(diag) and self._is_enemy(board, diag, piece.player):
                out.add(diag)

        ep = self._en_passant_target(board, piece, origin, last_move)
        if ep is not None:
            out.add(ep)
        return out

    def _en_passant_target(
        self,
        board: ClassicBoardState,
        piece: Piece,
        origin: Cell,
        last_move: Optional[Move],
    ) -> Optional[Cell]:
        # Eligibility reads the shared move history, not a per-branch one
        if not isinstance(last_move, ClassicMove):
            return None
        mover = self.pieces.get(last_move.piece_id)
        if mover is None or mover.type is not PieceType.PAWN or mover.player == piece.player:
            return None
        (ox, oy), (tx, ty) = last_move.origin, last_move.target
        if ox != tx or abs(ty - oy) != 2 or oy != self.pawn_start_rank(mover.player):
            return None
        if ty != origin[1] or abs(tx - origin[0]) != 1:
            return None
        if board.piece_at(last_move.target) != last_move.piece_id:
            return None
        dest = (tx, origin[1] + self.pawn_direction(piece.player))
        if not self.in_bounds(dest) or board.is_any_piece_at(dest):
            return None
        return dest

    # --- Castling ---
    def _castling_sides(
        self, board: ClassicBoardState, king: Piece, origin: Cell
    ) -> List[Tuple[Cell, Cell, Cell]]:
        """Return ``(king_target, rook_from, rook_to)`` for each open side."""
        if board.has_moved(king.id) or board.piece_at(origin) != king.id:
            return []
        x, y = origin
        sides: List[Tuple[Cell, Cell, Cell]] = []
        for direction, rook_x in ((1, self.width - 1), (-1, 0)):
            if abs(rook_x - x) <= 2:
                continue
            rook_cell = (rook_x, y)
            rook_id = board.piece_at(rook_cell)
            if rook_id is None or board.has_moved(rook_id):
                continue
            rook = self.pieces[rook_id]
            if rook.type is not PieceType.ROOK or rook.player != king.player:
                continue
            between = range(min(x, rook_x) + 1, max(x, rook_x))
            if any(board.is_any_piece_at((bx, y)) for bx in between):
                continue
            king_target = (x + 2 * direction, y)
            sides.append((king_target, rook_cell, (king_target[0] - direction, y)))
        return sides

    def _castling_targets(self, board: ClassicBoardState, king: Piece, origin: Cell) -> Set[Cell]:
        return {side[0] for side in self._castling_sides(board, king, origin)}

    def castling_rook(
        self, board: ClassicBoardState, king: Piece, origin: Cell, target: Cell
    ) -> Optional[Tuple[Cell, Cell]]:
        """Return ``(rook_from, rook_to)`` if moving the king to ``target`` castles."""
        if target[1] != origin[1] or abs(target[0] - origin[0]) < 2:
            return None
        for king_target, rook_from, rook_to in self._castling_sides(board, king, origin):
            if king_target == target:
                return rook_from, rook_to
        return None

    # --- Aggregate over a quantum board ---
    def aggregate_destinations(
        self,
        state: "QuantumBoardState",
        piece_id: int,
        origin: Cell,
        last_move: Optional[Move] = None,
        meaning: Optional["BoardMeaning"] = None,
    ) -> Set[Cell]:
        """Return the legal destinations of the real piece ``piece_id`` at ``origin``.

        Union of the per-branch destinations over every branch holding
        ``piece_id`` on ``origin``. Cells where the projected board shows a
        different piece of the same player are removed; a piece may still
        move onto a cell holding another instance of itself.
        """
        piece = self.pieces.get(piece_id)
        if piece is None:
            return set()
        out: Set[Cell] = set()
        for branch in state.branches:
            if branch.piece_at(origin) != piece_id:
                continue
            out |= self.destinations(branch, piece, origin, last_move)
        if not out:
            return out

        if meaning is None:
            from ..quantum.meaning import BoardMeaning

            meaning = BoardMeaning.from_state(state, self.width, self.height, self.pieces)
        return {
            cell
            for cell in out
            if not any(
                rp.piece_id != piece_id and rp.piece.player == piece.player
                for rp in meaning[cell]
            )
        }
