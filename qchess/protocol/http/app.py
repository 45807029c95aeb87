from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Response
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field

from ...config import Settings
from ...engine.game import Game, MoveResult
from ...engine.move import Cell, cell_to_str, str_to_cell
from ...quantum.meaning import RealPiece
from ...quantum.state import InvariantViolation
from .error import (
    exception_handler,
    http_exception_handler,
    invariant_violation_handler,
    request_validation_exception_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from .session import InMemorySessionStore


logger = logging.getLogger(__name__)


class CreateGameRequest(BaseModel):
    seed: Optional[int] = Field(default=None, description="Seed for measurement randomness")
    placement: Optional[str] = Field(
        default=None, description="FEN-style piece placement, e.g. r3k2r/8/8/8/8/8/8/R3K2R"
    )


class CreateGameResponse(BaseModel):
    game_id: str
    width: int
    height: int


class MoveRequest(BaseModel):
    origin: str = Field(..., description="Cell the piece moves from, e.g. e2")
    target: str = Field(..., description="Cell the piece moves to, e.g. e4")
    piece_id: Optional[int] = None


class SplitRequest(BaseModel):
    origin: str = Field(..., description="Cell the piece moves from, e.g. b1")
    targets: List[str] = Field(..., description="Two distinct destination cells")
    piece_id: Optional[int] = None


class RealPieceModel(BaseModel):
    piece_id: int
    player: int
    type: str
    symbol: str
    presence: float


class CellModel(BaseModel):
    cell: str
    pieces: List[RealPieceModel]


class GameState(BaseModel):
    game_id: str
    width: int
    height: int
    cells: List[CellModel]
    captured: List[RealPieceModel]
    branch_count: int
    total_weight: str
    history: List[str]
    last_move: Optional[str]


class LegalTargets(BaseModel):
    piece_id: int
    origin: str
    targets: List[str]


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings if settings is not None else Settings.load()
    app = FastAPI(title="Quantum Chess API", version="0.1.0")

    settings.configure_logging()

    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(InvariantViolation, invariant_violation_handler)
    app.add_exception_handler(Exception, exception_handler)

    store = InMemorySessionStore()
    app.state.store = store

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game(req: Optional[CreateGameRequest] = None) -> CreateGameResponse:
        req = req or CreateGameRequest()
        seed = req.seed if req.seed is not None else settings.seed
        rng = random.Random(seed)
        if req.placement:
            try:
                game = Game.from_placement(req.placement, rng=rng)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=f"invalid placement: {e}")
        else:
            game = Game.standard(rng=rng)
        game_id = store.create(game)
        logger.info("game created", extra={"game_id": game_id})
        return CreateGameResponse(game_id=game_id, width=game.width, height=game.height)

    @app.get("/api/games/{game_id}/state", response_model=GameState)
    async def get_state(game_id: str) -> GameState:
        with store.locked(game_id) as game:
            return _game_state(game_id, _require(game))

    @app.get("/api/games/{game_id}/legal", response_model=LegalTargets)
    async def legal(game_id: str, cell: str, piece_id: Optional[int] = None) -> LegalTargets:
        with store.locked(game_id) as game:
            game = _require(game)
            origin = _parse_cell(game, cell)
            pid = _resolve_piece(game, origin, piece_id)
            targets = sorted(game.legal_targets(pid, origin), key=lambda c: (c[1], c[0]))
            return LegalTargets(
                piece_id=pid, origin=cell_to_str(origin), targets=[cell_to_str(t) for t in targets]
            )

    @app.post("/api/games/{game_id}/move", response_model=GameState)
    async def make_move(game_id: str, req: MoveRequest) -> GameState:
        with store.locked(game_id) as game:
            game = _require(game)
            origin = _parse_cell(game, req.origin)
            target = _parse_cell(game, req.target)
            pid = _resolve_piece(game, origin, req.piece_id)
            _check(game.try_classic_move(pid, origin, target))
            return _game_state(game_id, game)

    @app.post("/api/games/{game_id}/split", response_model=GameState)
    async def split(game_id: str, req: SplitRequest) -> GameState:
        with store.locked(game_id) as game:
            game = _require(game)
            origin = _parse_cell(game, req.origin)
            targets = [_parse_cell(game, t) for t in req.targets]
            pid = _resolve_piece(game, origin, req.piece_id)
            _check(game.try_quantum_move(pid, origin, targets))
            return _game_state(game_id, game)

    @app.delete("/api/games/{game_id}", status_code=204)
    async def delete_game(game_id: str) -> Response:
        if not store.delete(game_id):
            raise HTTPException(status_code=404, detail="game not found")
        return Response(status_code=204)

    return app


def _require(game: Optional[Game]) -> Game:
    if game is None:
        raise HTTPException(status_code=404, detail="game not found")
    return game


def _parse_cell(game: Game, name: str) -> Cell:
    try:
        return str_to_cell(name, game.width, game.height)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _resolve_piece(game: Game, origin: Cell, piece_id: Optional[int]) -> int:
    if piece_id is not None:
        if piece_id not in game.pieces:
            raise HTTPException(status_code=400, detail=f"unknown piece id {piece_id}")
        return piece_id
    ids = {rp.piece_id for rp in game.meaning()[origin]}
    if len(ids) != 1:
        raise HTTPException(
            status_code=400,
            detail=f"{cell_to_str(origin)} holds {len(ids)} pieces; piece_id is required",
        )
    return ids.pop()


def _check(result: MoveResult) -> None:
    if not result.accepted:
        reason = result.error.value if result.error is not None else "rejected"
        raise HTTPException(status_code=400, detail=f"{reason}: {result.detail}")


def _real_piece(rp: RealPiece) -> RealPieceModel:
    return RealPieceModel(
        piece_id=rp.piece_id,
        player=rp.piece.player,
        type=rp.piece.type.value,
        symbol=rp.piece.symbol,
        presence=rp.presence,
    )


def _game_state(game_id: str, game: Game) -> GameState:
    meaning = game.meaning()
    history = [m.to_str() for m in game.history]
    return GameState(
        game_id=game_id,
        width=game.width,
        height=game.height,
        cells=[
            CellModel(cell=cell_to_str(c), pieces=[_real_piece(rp) for rp in pieces])
            for c, pieces in meaning.cells()
        ],
        captured=[_real_piece(rp) for rp in meaning.captured],
        branch_count=game.state.branch_count,
        total_weight=str(game.state.total_weight),
        history=history,
        last_move=history[-1] if history else None,
    )


# Default app for non-factory servers
app = create_app()
