from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple, Union


Cell = Tuple[int, int]

FILES = "abcdefghijklmnopqrstuvwxyz"


@dataclass(frozen=True)
class ClassicMove:
    """A move with a single target, applied to every branch that can make it.

    Attributes:
        player (int): Player who made the move.
        piece_id (int): Id of the moving piece.
        origin (Cell): Cell the piece moves from.
        target (Cell): Cell the piece moves to.
        measures_origin (bool): Measure ``origin`` before moving.
        measures_target (bool): Measure ``target`` before moving.
        is_castling (bool): The move is a king's castling step.
    """

    player: int
    piece_id: int
    origin: Cell
    target: Cell
    measures_origin: bool = False
    measures_target: bool = False
    is_castling: bool = False

    def __post_init__(self) -> None:
        if self.origin == self.target:
            raise ValueError("classic move target must differ from its origin")

    @property
    def targets(self) -> Tuple[Cell, ...]:
        return (self.target,)

    def to_str(self) -> str:
        """Long algebraic form, e.g. ``"e2e4"``."""
        return cell_to_str(self.origin) + cell_to_str(self.target)


@dataclass(frozen=True)
class QuantumMove:
    """A split move: every branch is cloned and each copy takes one target.

    Attributes:
        player (int): Player who made the move.
        piece_id (int): Id of the moving piece.
        origin (Cell): Cell the piece moves from.
        targets (Tuple[Cell, Cell]): Exactly two distinct destinations.
    """

    player: int
    piece_id: int
    origin: Cell
    targets: Tuple[Cell, Cell]

    def __post_init__(self) -> None:
        targets = tuple(self.targets)
        if len(targets) != 2:
            raise ValueError("quantum move needs exactly two targets")
        if targets[0] == targets[1]:
            raise ValueError("quantum move targets must be distinct")
        if self.origin in targets:
            raise ValueError("quantum move targets must differ from its origin")
        object.__setattr__(self, "targets", targets)

    def to_str(self) -> str:
        """Long algebraic form, e.g. ``"b1^a3c3"``."""
        return (
            cell_to_str(self.origin)
            + "^"
            + cell_to_str(self.targets[0])
            + cell_to_str(self.targets[1])
        )


Move = Union[ClassicMove, QuantumMove]


def str_to_cell(s: str, width: int = 8, height: int = 8) -> Cell:
    """Convert an algebraic cell name into ``(x, y)`` coordinates.

    Args:
        s (str): Cell name such as ``"e4"``; ranks may have several digits.
        width (int): Number of files on the board.
        height (int): Number of ranks on the board.

    Returns:
        Cell: Zero-based ``(file, rank)`` pair.

    Raises:
        ValueError: If ``s`` is malformed or lies outside the board.
    """
    if not isinstance(s, str) or len(s) < 2:
        raise ValueError(f"invalid cell: {s!r}")
    file_ch, rank_str = s[0].lower(), s[1:]
    if file_ch not in FILES or not rank_str.isdigit():
        raise ValueError(f"invalid cell: {s!r}")
    x = FILES.index(file_ch)
    y = int(rank_str) - 1
    if not (0 <= x < width and 0 <= y < height):
        raise ValueError(f"cell outside the board: {s!r}")
    return (x, y)


def cell_to_str(cell: Cell) -> str:
    """Convert ``(x, y)`` coordinates into an algebraic cell name.

    Raises:
        ValueError: If the coordinates cannot be named.
    """
    x, y = cell
    if not (0 <= x < len(FILES)) or y < 0:
        raise ValueError(f"invalid cell coordinates: {cell!r}")
    return FILES[x] + str(y + 1)


def parse_cells(names: Sequence[str], width: int = 8, height: int = 8) -> Tuple[Cell, ...]:
    return tuple(str_to_cell(n, width, height) for n in names)
