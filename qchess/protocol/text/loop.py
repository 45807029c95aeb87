from __future__ import annotations

import logging
import random
import sys
from typing import Callable, List, Optional, Tuple

from ...engine.game import Game, MoveResult
from ...engine.move import Cell, cell_to_str, str_to_cell
from ...quantum.meaning import RealPiece


logger = logging.getLogger(__name__)

Writer = Callable[[str], None]


class TextSession:
    """Line-oriented command adapter around a quantum chess game.

    Notes:
    - Core stays pure; I/O is isolated here.
    - Replies start with ``ok`` or ``error`` for move commands so scripts can
      parse them.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = seed
        self.game: Game = Game.standard(rng=random.Random(seed))

    # ---- Command handlers ----
    def cmd_new(self, args: List[str], write: Writer) -> None:
        # new [seed]
        seed = self.seed
        if args:
            try:
                seed = int(args[0])
            except ValueError:
                write(f"error invalid seed: {args[0]}")
                return
        self.game = Game.standard(rng=random.Random(seed))
        write("ok new")

    def cmd_position(self, args: List[str], write: Writer) -> None:
        # position <placement> [seed]
        if not args:
            write("error position needs a placement")
            return
        seed = self.seed
        if len(args) > 1:
            try:
                seed = int(args[1])
            except ValueError:
                write(f"error invalid seed: {args[1]}")
                return
        try:
            game = Game.from_placement(args[0], rng=random.Random(seed))
        except ValueError as e:
            write(f"error {e}")
            return
        self.game = game
        write(f"ok position {game.width}x{game.height}")

    def cmd_move(self, args: List[str], write: Writer) -> None:
        # move <from><to> [piece_id]  |  move <from> <to> [piece_id]
        parsed = self._parse_cells_and_id(args, expected=2, write=write)
        if parsed is None:
            return
        (origin, target), piece_id = parsed
        pid = self._resolve_piece(origin, piece_id, write)
        if pid is None:
            return
        self._report(self.game.try_classic_move(pid, origin, target), write)

    def cmd_split(self, args: List[str], write: Writer) -> None:
        # split <from> <to1> <to2> [piece_id]
        parsed = self._parse_cells_and_id(args, expected=3, write=write)
        if parsed is None:
            return
        (origin, *targets), piece_id = parsed
        pid = self._resolve_piece(origin, piece_id, write)
        if pid is None:
            return
        self._report(self.game.try_quantum_move(pid, origin, targets), write)

    def cmd_legal(self, args: List[str], write: Writer) -> None:
        # legal <cell> [piece_id]
        parsed = self._parse_cells_and_id(args, expected=1, write=write)
        if parsed is None:
            return
        (origin,), piece_id = parsed
        pid = self._resolve_piece(origin, piece_id, write)
        if pid is None:
            return
        targets = sorted(self.game.legal_targets(pid, origin), key=lambda c: (c[1], c[0]))
        write(f"legal {cell_to_str(origin)}: " + " ".join(cell_to_str(t) for t in targets))

    def cmd_board(self, write: Writer) -> None:
        meaning = self.game.meaning()
        for y in range(self.game.height - 1, -1, -1):
            row = [_cell_glyph(meaning[(x, y)]) for x in range(self.game.width)]
            write(f"{y + 1:>2} " + " ".join(row))
        write("   " + " ".join(f"{chr(ord('a') + x):<2}" for x in range(self.game.width)))

    def cmd_captured(self, write: Writer) -> None:
        captured = self.game.meaning().captured
        write("captured " + " ".join(f"{rp.piece}={rp.presence:.3f}" for rp in captured))

    def cmd_history(self, write: Writer) -> None:
        write("history " + " ".join(m.to_str() for m in self.game.history))

    def cmd_stats(self, write: Writer) -> None:
        state = self.game.state
        write(f"branches {state.branch_count} weight {state.total_weight}")

    # ---- Helpers ----
    def _parse_cells_and_id(
        self, args: List[str], expected: int, write: Writer
    ) -> Optional[Tuple[List[Cell], Optional[int]]]:
        tokens = list(args)
        # Accept the compact "e2e4" form for two-cell commands
        if expected == 2 and len(tokens) in (1, 2) and len(tokens[0]) >= 4:
            head = tokens[0]
            split_at = next((i for i in range(2, len(head)) if head[i].isalpha()), None)
            if split_at is not None:
                tokens = [head[:split_at], head[split_at:]] + tokens[1:]
        if len(tokens) not in (expected, expected + 1):
            write(f"error expected {expected} cells")
            return None
        piece_id: Optional[int] = None
        if len(tokens) == expected + 1:
            try:
                piece_id = int(tokens[-1])
            except ValueError:
                write(f"error invalid piece id: {tokens[-1]}")
                return None
        try:
            cells = [str_to_cell(t, self.game.width, self.game.height) for t in tokens[:expected]]
        except ValueError as e:
            write(f"error {e}")
            return None
        return cells, piece_id

    def _resolve_piece(self, origin: Cell, piece_id: Optional[int], write: Writer) -> Optional[int]:
        if piece_id is not None:
            return piece_id
        ids = {rp.piece_id for rp in self.game.meaning()[origin]}
        if len(ids) != 1:
            write(f"error {cell_to_str(origin)} holds {len(ids)} pieces; give a piece id")
            return None
        return ids.pop()

    def _report(self, result: MoveResult, write: Writer) -> None:
        if result.accepted and result.move is not None:
            write(f"ok {result.move.to_str()}")
        else:
            reason = result.error.value if result.error is not None else "rejected"
            write(f"error {reason}: {result.detail}")


def _cell_glyph(pieces: List[RealPiece]) -> str:
    if not pieces:
        return ". "
    if len(pieces) > 1:
        return "+?"
    rp = pieces[0]
    return rp.piece.symbol + ("?" if rp.is_quantum else " ")


def _default_writer(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def run_loop(seed: Optional[int] = None, write: Writer = _default_writer) -> None:
    session = TextSession(seed=seed)
    for raw in sys.stdin:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        cmd, args = parts[0].lower(), parts[1:]

        if cmd == "new":
            session.cmd_new(args, write)
        elif cmd == "position":
            session.cmd_position(args, write)
        elif cmd == "move":
            session.cmd_move(args, write)
        elif cmd == "split":
            session.cmd_split(args, write)
        elif cmd == "legal":
            session.cmd_legal(args, write)
        elif cmd == "board":
            session.cmd_board(write)
        elif cmd == "captured":
            session.cmd_captured(write)
        elif cmd == "history":
            session.cmd_history(write)
        elif cmd == "stats":
            session.cmd_stats(write)
        elif cmd == "quit":
            break
        else:
            logger.debug("unknown command", extra={"command": cmd})
            write(f"error unknown command: {cmd}")
