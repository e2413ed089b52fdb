"""In-memory lobby registry and membership rules."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .game import Event, GameEngine
from .models import MAX_NAME_LENGTH, MAX_PLAYERS, MIN_PLAYERS, Lobby, LobbySettings, LobbyStatus, Player

LOGGER = logging.getLogger("holdem.sessions")

LOBBY_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
LOBBY_ID_LENGTH = 5


class LobbyError(Exception):
    """Membership request that was refused; nothing was changed."""

    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg


@dataclass
class LeaveResult:
    lobby_id: str
    engine: Optional[GameEngine]
    events: List[Event] = field(default_factory=list)

    @property
    def deleted(self) -> bool:
        return self.engine is None


def clean_name(name: Any, fallback: str) -> str:
    text = str(name).strip() if name is not None else ""
    return (text or fallback)[:MAX_NAME_LENGTH]


class LobbyManager:
    """Owns every live lobby; lifetime is the process lifetime."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.engines: Dict[str, GameEngine] = {}
        self._member_lobby: Dict[str, str] = {}
        self._rng = rng or random.SystemRandom()

    def get(self, lobby_id: str) -> Optional[GameEngine]:
        return self.engines.get(lobby_id)

    def lobby_of(self, conn_id: str) -> Optional[GameEngine]:
        lobby_id = self._member_lobby.get(conn_id)
        return self.engines.get(lobby_id) if lobby_id else None

    # Membership ------------------------------------------------------

    def create_lobby(
        self,
        conn_id: str,
        name: Any = None,
        settings: Optional[Mapping[str, Any]] = None,
    ) -> GameEngine:
        self._ensure_unseated(conn_id)
        lobby_settings = LobbySettings.from_payload(settings)
        lobby = Lobby(id=self._new_lobby_id(), host_id=conn_id, settings=lobby_settings)
        lobby.players.append(
            Player(id=conn_id, name=clean_name(name, "Host"), chips=lobby_settings.start_chips, is_host=True)
        )
        engine = GameEngine(lobby)
        self.engines[lobby.id] = engine
        self._member_lobby[conn_id] = lobby.id
        LOGGER.info("Lobby %s created by %s (%s)", lobby.id, conn_id, lobby_settings)
        return engine

    def find(self, lobby_id: Any) -> GameEngine:
        """Look up a lobby by the id a user typed (case-insensitive)."""
        if not lobby_id or not isinstance(lobby_id, str):
            raise LobbyError("LOBBY_ID_REQUIRED", "A lobby id is required.")
        engine = self.engines.get(lobby_id.strip().upper())
        if engine is None:
            raise LobbyError("LOBBY_NOT_FOUND", "Lobby not found.")
        return engine

    def join_lobby(self, conn_id: str, lobby_id: Any, name: Any = None) -> GameEngine:
        engine = self.find(lobby_id)
        self._ensure_unseated(conn_id)
        lobby = engine.lobby
        if lobby.status != LobbyStatus.LOBBY:
            raise LobbyError("GAME_STARTED", "The game in this lobby has already started.")
        if len(lobby.players) >= MAX_PLAYERS:
            raise LobbyError("LOBBY_FULL", f"The lobby is full (max {MAX_PLAYERS} players).")

        lobby.players.append(Player(id=conn_id, name=clean_name(name, "Player"), chips=lobby.settings.start_chips))
        self._member_lobby[conn_id] = lobby.id
        LOGGER.info("%s joined lobby %s (%s/%s)", conn_id, lobby.id, len(lobby.players), MAX_PLAYERS)
        return engine

    def leave(self, conn_id: str) -> Optional[LeaveResult]:
        """Remove a connection's seat. Returns None when it was not seated anywhere."""
        lobby_id = self._member_lobby.pop(conn_id, None)
        if lobby_id is None:
            return None
        engine = self.engines.get(lobby_id)
        if engine is None:
            return None

        events = engine.remove_player(conn_id)
        if not engine.lobby.players:
            del self.engines[lobby_id]
            LOGGER.info("Lobby %s deleted (empty)", lobby_id)
            return LeaveResult(lobby_id=lobby_id, engine=None, events=events)
        LOGGER.info("%s left lobby %s", conn_id, lobby_id)
        return LeaveResult(lobby_id=lobby_id, engine=engine, events=events)

    # Game control ----------------------------------------------------

    def start_game(self, conn_id: str, seed: Optional[int] = None) -> List[Event]:
        engine = self._require_engine(conn_id)
        lobby = engine.lobby
        if conn_id != lobby.host_id:
            raise LobbyError("NOT_HOST", "Only the host can start the game.")
        if len(lobby.players) < MIN_PLAYERS:
            raise LobbyError("NOT_ENOUGH_PLAYERS", f"At least {MIN_PLAYERS} players are required.")
        if lobby.status == LobbyStatus.PLAYING:
            raise LobbyError("GAME_IN_PROGRESS", "The game is already running.")
        events = engine.start_game(seed=seed)
        LOGGER.info("Game started in lobby %s with %s players", lobby.id, len(lobby.players))
        return events

    def player_action(self, conn_id: str, action: Any, amount: Any = None) -> List[Event]:
        engine = self._require_engine(conn_id)
        return engine.apply_action(conn_id, action, amount)

    def _require_engine(self, conn_id: str) -> GameEngine:
        engine = self.lobby_of(conn_id)
        if engine is None:
            raise LobbyError("NOT_IN_LOBBY", "You are not in a lobby.")
        return engine

    def _ensure_unseated(self, conn_id: str) -> None:
        if conn_id in self._member_lobby:
            raise LobbyError("ALREADY_IN_LOBBY", "Leave your current lobby first.")

    def _new_lobby_id(self) -> str:
        while True:
            lobby_id = "".join(self._rng.choice(LOBBY_ID_ALPHABET) for _ in range(LOBBY_ID_LENGTH))
            if lobby_id not in self.engines:
                return lobby_id
