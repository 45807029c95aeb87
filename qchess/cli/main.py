from __future__ import annotations

import argparse
from typing import List, Optional

import uvicorn

from ..config import Settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qchess", description="Quantum chess engine")
    parser.add_argument("--config", type=str, default=None, help="Path to a TOML settings file")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP service")
    serve.add_argument("--host", type=str, default=None, help="Bind address")
    serve.add_argument("--port", type=int, default=None, help="Port")

    play = sub.add_parser("play", help="Read text commands from stdin")
    play.add_argument("--seed", type=int, default=None, help="Seed for measurements")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    settings = Settings.load(args.config)
    settings.configure_logging()

    if args.command == "serve":
        from ..protocol.http.app import create_app

        uvicorn.run(
            create_app(settings),
            host=args.host or settings.host,
            port=args.port or settings.port,
            log_level=settings.log_level.lower(),
        )
    elif args.command == "play":
        from ..protocol.text.loop import run_loop

        run_loop(seed=args.seed if args.seed is not None else settings.seed)


if __name__ == "__main__":
    main()
