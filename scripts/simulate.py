#!/usr/bin/env python3
# ruff: noqa: E402
from __future__ import annotations

import argparse
import json
import os
import random
import sys
import time
from typing import Any, Dict, List, Tuple

# Allow running this script directly via `python scripts/simulate.py`
# by adding the repo root (which contains `qchess/`) to sys.path.
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from qchess.engine.game import Game
from qchess.engine.move import Cell


def _candidates(game: Game, player: int) -> List[Tuple[int, Cell, List[Cell]]]:
    out: List[Tuple[int, Cell, List[Cell]]] = []
    for cell, pieces in game.meaning().cells():
        for rp in pieces:
            if rp.piece.player != player:
                continue
            targets = sorted(game.legal_targets(rp.piece_id, cell))
            if targets:
                out.append((rp.piece_id, cell, targets))
    return out


def simulate(
    plies: int, seed: int, quantum_rate: float, max_branches: int
) -> List[Dict[str, Any]]:
    """Play random moves, alternating players, and record branch growth per ply."""
    chooser = random.Random(seed)
    game = Game.standard(rng=random.Random(seed + 1))
    rows: List[Dict[str, Any]] = []
    for ply in range(plies):
        player = ply % 2
        options = _candidates(game, player)
        if not options:
            break
        piece_id, origin, targets = chooser.choice(options)
        piece = game.piece(piece_id)
        start = time.perf_counter()
        if (
            len(targets) >= 2
            and game.ruleset.can_quantum_move(piece)
            and game.state.branch_count * 2 <= max_branches
            and chooser.random() < quantum_rate
        ):
            result = game.try_quantum_move(piece_id, origin, chooser.sample(targets, 2))
        else:
            result = game.try_classic_move(piece_id, origin, chooser.choice(targets))
        dt = time.perf_counter() - start
        rows.append(
            {
                "ply": ply + 1,
                "move": result.move.to_str() if result.move else None,
                "accepted": result.accepted,
                "branches": game.state.branch_count,
                "total_weight": str(game.state.total_weight),
                "time_ms": int(dt * 1000),
            }
        )
    return rows


def main() -> None:
    parser = argparse.ArgumentParser(description="Random quantum chess playout")
    parser.add_argument("--plies", type=int, default=20, help="Number of plies (default: 20)")
    parser.add_argument("--seed", type=int, default=0, help="Random seed (default: 0)")
    parser.add_argument(
        "--quantum-rate", type=float, default=0.3, help="Chance of a split move (default: 0.3)"
    )
    parser.add_argument(
        "--max-branches", type=int, default=256, help="Skip splits beyond this many branches"
    )
    parser.add_argument("--json", action="store_true", help="Emit one JSON object per ply")
    args = parser.parse_args()

    rows = simulate(args.plies, args.seed, args.quantum_rate, args.max_branches)
    for row in rows:
        if args.json:
            print(json.dumps(row))
        else:
            print(
                f"ply={row['ply']} move={row['move']} branches={row['branches']} "
                f"weight={row['total_weight']} time_ms={row['time_ms']}"
            )


if __name__ == "__main__":
    main()
