from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple

from .move import FILES


WHITE = 0
BLACK = 1
PLAYER_NAMES = {WHITE: "White", BLACK: "Black"}


class PieceType(Enum):
    PAWN = "Pawn"
    ROOK = "Rook"
    KNIGHT = "Knight"
    BISHOP = "Bishop"
    QUEEN = "Queen"
    KING = "King"


# Placement letters, uppercase for White as in FEN
TYPE_TO_CHAR = {
    PieceType.PAWN: "p",
    PieceType.ROOK: "r",
    PieceType.KNIGHT: "n",
    PieceType.BISHOP: "b",
    PieceType.QUEEN: "q",
    PieceType.KING: "k",
}
CHAR_TO_TYPE = {v: k for k, v in TYPE_TO_CHAR.items()}

MAX_PIECE_ID = (1 << 12) - 1


@dataclass(frozen=True)
class Piece:
    """Immutable identity of a chess piece.

    Attributes:
        player (int): Owning player, ``0`` (White) or ``1`` (Black).
        type (PieceType): Kind of piece.
        id (int): Identifier unique across the game; captured pieces keep it.
    """

    player: int
    type: PieceType
    id: int

    def __post_init__(self) -> None:
        if self.player not in (WHITE, BLACK):
            raise ValueError(f"invalid player: {self.player!r}")
        if not isinstance(self.type, PieceType):
            raise ValueError(f"invalid piece type: {self.type!r}")
        if self.id < 0 or self.id > MAX_PIECE_ID:
            raise ValueError(f"piece id out of range: {self.id}")

    @property
    def player_name(self) -> str:
        return PLAYER_NAMES[self.player]

    @property
    def symbol(self) -> str:
        ch = TYPE_TO_CHAR[self.type]
        return ch.upper() if self.player == WHITE else ch

    def __str__(self) -> str:
        return f"{self.player}:{self.id}/{self.type.value}"


# Back rank from file a to h
_BACK_RANK = (
    PieceType.ROOK,
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.QUEEN,
    PieceType.KING,
    PieceType.BISHOP,
    PieceType.KNIGHT,
    PieceType.ROOK,
)
# Standard ids of the back rank pieces, by file
_BACK_RANK_IDS = (8, 10, 12, 14, 15, 13, 11, 9)


def standard_setup() -> Tuple[Dict[int, Piece], Dict[Tuple[int, int], int]]:
    """Build the 32-piece registry and starting cells of an 8x8 game.

    White pawns take ids 0-7 (files a-h), rooks 8-9, knights 10-11, bishops
    12-13, the queen 14 and the king 15. Black pieces mirror them with
    ``id + 16``.

    Returns:
        Tuple[Dict[int, Piece], Dict[Tuple[int, int], int]]: Registry keyed
            by id, and the ``(x, y) -> id`` starting placement.
    """
    pieces: Dict[int, Piece] = {}
    cells: Dict[Tuple[int, int], int] = {}
    for player, offset, back_y, pawn_y in ((WHITE, 0, 0, 1), (BLACK, 16, 7, 6)):
        for x in range(8):
            pid = x + offset
            pieces[pid] = Piece(player, PieceType.PAWN, pid)
            cells[(x, pawn_y)] = pid
        for x, (ptype, base_id) in enumerate(zip(_BACK_RANK, _BACK_RANK_IDS)):
            pid = base_id + offset
            pieces[pid] = Piece(player, ptype, pid)
            cells[(x, back_y)] = pid
    return pieces, cells


def parse_placement(
    placement: str,
) -> Tuple[Dict[int, Piece], Dict[Tuple[int, int], int], int, int]:
    """Parse a FEN-style piece placement field of any rectangular size.

    Ids are assigned in scan order starting at rank 1, files left to right.

    Args:
        placement (str): Ranks separated by ``/`` from the top rank down,
            e.g. ``"r3k2r/8/8/8/8/8/8/R3K2R"``.

    Returns:
        Tuple: ``(pieces, cells, width, height)``.

    Raises:
        ValueError: If the field is empty, ranks differ in width, the board
            has more files than there are file letters, or a piece letter is
            unknown.
    """
    if not placement or not isinstance(placement, str):
        raise ValueError("placement must be a non-empty string")
    ranks = placement.strip().split("/")
    rows: List[List[str]] = []
    for rank in ranks:
        row: List[str] = []
        run = ""
        for ch in rank:
            if ch.isdigit():
                run += ch
                continue
            if run:
                row.extend([""] * int(run))
                run = ""
            if ch.lower() not in CHAR_TO_TYPE:
                raise ValueError(f"invalid piece in placement: {ch!r}")
            row.append(ch)
        if run:
            row.extend([""] * int(run))
        rows.append(row)
    width = len(rows[0])
    if width == 0 or any(len(r) != width for r in rows):
        raise ValueError("placement ranks must have equal, non-zero width")
    if width > len(FILES):
        raise ValueError(f"placement is {width} files wide; at most {len(FILES)} are supported")
    height = len(rows)

    pieces: Dict[int, Piece] = {}
    cells: Dict[Tuple[int, int], int] = {}
    next_id = 0
    for y, row in enumerate(rows[::-1]):
        for x, ch in enumerate(row):
            if not ch:
                continue
            player = WHITE if ch.isupper() else BLACK
            pieces[next_id] = Piece(player, CHAR_TO_TYPE[ch.lower()], next_id)
            cells[(x, y)] = next_id
            next_id += 1
    return pieces, cells, width, height
