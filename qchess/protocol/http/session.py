from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

from ...engine.game import Game


@dataclass
class Session:
    game: Game
    lock: threading.Lock = field(default_factory=threading.Lock)


class InMemorySessionStore:
    """Thread-safe in-memory store of quantum chess games.

    Responsibilities:
    - Create sessions with unique ``game_id``s
    - Look up and delete sessions
    - Serialize access to each game, which is not safe to mutate concurrently
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._sessions: Dict[str, Session] = {}

    def create(self, game: Optional[Game] = None) -> str:
        """Store ``game`` (a standard game by default) and return its id."""
        gid = uuid.uuid4().hex
        with self._lock:
            self._sessions[gid] = Session(game if game is not None else Game.standard())
        return gid

    def get(self, game_id: str) -> Optional[Game]:
        with self._lock:
            session = self._sessions.get(game_id)
        return session.game if session is not None else None

    @contextmanager
    def locked(self, game_id: str) -> Iterator[Optional[Game]]:
        """Hold the game's lock for the duration of the block."""
        with self._lock:
            session = self._sessions.get(game_id)
        if session is None:
            yield None
            return
        with session.lock:
            yield session.game

    def delete(self, game_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(game_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
