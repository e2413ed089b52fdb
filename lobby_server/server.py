from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

import websockets
from websockets.asyncio.server import ServerConnection

from holdem.game import Event, GameEngine
from holdem.sessions import LobbyError, LobbyManager

LOGGER = logging.getLogger("holdem_lobby")

DEFAULT_REVEAL_DELAY_MS = 6_000

# HostServer glues the lobby manager to WebSocket clients. Every network
# concern lives here; GameEngine and LobbyManager stay free of I/O.


@dataclass
class ClientSession:
    conn_id: str
    websocket: ServerConnection


@dataclass
class PendingPayout:
    lobby_id: str
    due: float
    task: Optional[asyncio.Task] = None


Handler = Callable[[ClientSession, Dict[str, Any]], Awaitable[None]]


class HostServer:
    def __init__(
        self,
        reveal_delay_ms: int = DEFAULT_REVEAL_DELAY_MS,
        manager: Optional[LobbyManager] = None,
    ) -> None:
        self.manager = manager or LobbyManager()
        self.reveal_delay_ms = max(0, reveal_delay_ms)
        self.sessions: Dict[str, ClientSession] = {}
        # One lock per lobby: each inbound event runs to completion before the
        # next one touches the same lobby.
        self.locks: Dict[str, asyncio.Lock] = {}
        self.create_lock = asyncio.Lock()
        self.pending_payouts: Dict[str, PendingPayout] = {}
        self._handlers: Dict[str, Handler] = {
            "createLobby": self._handle_create_lobby,
            "joinLobby": self._handle_join_lobby,
            "leaveLobby": self._handle_leave_lobby,
            "startGame": self._handle_start_game,
            "playerAction": self._handle_player_action,
        }

    async def start(self, host: str = "0.0.0.0", port: int = 3000) -> None:
        async with websockets.serve(self._handle_connection, host, port):
            LOGGER.info("Lobby server listening on %s:%s", host, port)
            await asyncio.Future()

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        session = ClientSession(conn_id=uuid.uuid4().hex[:12], websocket=websocket)
        self.sessions[session.conn_id] = session
        LOGGER.info("Connection %s opened", session.conn_id)
        await self._send_json(websocket, "welcome", {"id": session.conn_id})

        try:
            async for raw in websocket:
                await self._dispatch(session, self._decode(raw))
        except websockets.ConnectionClosed:
            pass
        finally:
            self.sessions.pop(session.conn_id, None)
            LOGGER.info("Connection %s closed", session.conn_id)
            await self._handle_leave_lobby(session, {})

    async def _dispatch(self, session: ClientSession, message: Dict[str, Any]) -> None:
        handler = self._handlers.get(message.get("type"))  # type: ignore[arg-type]
        if handler is None:
            await self._send_error(session.websocket, "Unsupported message type.")
            return
        try:
            await handler(session, message)
        except Exception:
            # A fault in one lobby must not take the connection or other lobbies down.
            LOGGER.exception("Unhandled error for %s on %s", session.conn_id, message.get("type"))
            await self._send_error(session.websocket, "Internal server error.")

    # Inbound handlers ------------------------------------------------

    async def _handle_create_lobby(self, session: ClientSession, message: Dict[str, Any]) -> None:
        async with self.create_lock:
            try:
                engine = self.manager.create_lobby(session.conn_id, message.get("name"), message.get("settings"))
            except LobbyError as exc:
                await self._reply(session, message, {"ok": False, "error": exc.msg})
                return

        async with self._lock_for(engine.lobby.id):
            await self._reply(session, message, self._joined_payload(engine, session.conn_id))
            await self._broadcast_lobby(engine)

    async def _handle_join_lobby(self, session: ClientSession, message: Dict[str, Any]) -> None:
        try:
            engine = self.manager.find(message.get("lobbyId"))
        except LobbyError as exc:
            await self._reply(session, message, {"ok": False, "error": exc.msg})
            return

        async with self._lock_for(engine.lobby.id):
            try:
                engine = self.manager.join_lobby(session.conn_id, message.get("lobbyId"), message.get("name"))
            except LobbyError as exc:
                await self._reply(session, message, {"ok": False, "error": exc.msg})
                return
            await self._reply(session, message, self._joined_payload(engine, session.conn_id))
            await self._broadcast_lobby(engine)

    async def _handle_leave_lobby(self, session: ClientSession, message: Dict[str, Any]) -> None:
        engine = self.manager.lobby_of(session.conn_id)
        if engine is None:
            return
        lobby_id = engine.lobby.id
        async with self._lock_for(lobby_id):
            result = self.manager.leave(session.conn_id)
            if result is None:
                return
            if result.deleted:
                self._cancel_payout(lobby_id)
                self.locks.pop(lobby_id, None)
                return
            assert result.engine is not None
            await self._publish(result.engine, result.events)

    async def _handle_start_game(self, session: ClientSession, message: Dict[str, Any]) -> None:
        engine = self.manager.lobby_of(session.conn_id)
        if engine is None:
            await self._send_error(session.websocket, "No lobby found.")
            return
        async with self._lock_for(engine.lobby.id):
            try:
                events = self.manager.start_game(session.conn_id)
            except LobbyError as exc:
                await self._send_error(session.websocket, exc.msg)
                return
            await self._publish(engine, events)

    async def _handle_player_action(self, session: ClientSession, message: Dict[str, Any]) -> None:
        engine = self.manager.lobby_of(session.conn_id)
        if engine is None:
            await self._send_error(session.websocket, "You are not in a lobby.")
            return
        action = message.get("actionType", message.get("action"))
        amount = message.get("amount")
        async with self._lock_for(engine.lobby.id):
            try:
                events = self.manager.player_action(session.conn_id, action, amount)
            except (LobbyError, ValueError) as exc:
                LOGGER.warning(
                    "Rejected action lobby=%s player=%s action=%s amount=%s reason=%s",
                    engine.lobby.id,
                    session.conn_id,
                    action,
                    amount,
                    exc,
                )
                await self._send_error(session.websocket, str(exc))
                return
            LOGGER.debug(
                "Applied action lobby=%s player=%s action=%s amount=%s",
                engine.lobby.id,
                session.conn_id,
                action,
                amount,
            )
            await self._publish(engine, events)

    # Outbound --------------------------------------------------------

    async def _publish(self, engine: GameEngine, events: List[Event]) -> None:
        """Relay engine events, then push fresh state. Caller holds the lobby lock."""
        game_over: Optional[Event] = None
        for event in events:
            if event["ev"] == "REVEAL":
                await self._broadcast(engine, "reveal", event["payload"])
            elif event["ev"] == "HAND_END":
                LOGGER.info("Lobby %s finished hand %s; chips=%s", engine.lobby.id, event["round"], event["chips"])
            elif event["ev"] == "GAME_OVER":
                game_over = event

        await self._broadcast_state(engine)
        if game_over is not None:
            LOGGER.info("Lobby %s game over: %s", engine.lobby.id, game_over["standings"])
            await self._broadcast(engine, "gameOver", {"lobby": engine.public_state()})

        if engine.awaiting_payout and engine.lobby.id not in self.pending_payouts:
            self._schedule_payout(engine.lobby.id)

    async def _broadcast_state(self, engine: GameEngine) -> None:
        for player in engine.lobby.players:
            session = self.sessions.get(player.id)
            if session:
                await self._send_json(session.websocket, "gameUpdate", {"lobby": engine.public_state(player.id)})
        await self._broadcast_lobby(engine)

    async def _broadcast_lobby(self, engine: GameEngine) -> None:
        await self._broadcast(engine, "lobbyUpdate", {"lobby": engine.public_state()})

    async def _broadcast(self, engine: GameEngine, msg_type: str, payload: Dict[str, Any]) -> None:
        targets = [self.sessions[p.id].websocket for p in engine.lobby.players if p.id in self.sessions]
        if not targets:
            return
        message = self._envelope(msg_type, payload)
        await asyncio.gather(*(socket.send(message) for socket in targets), return_exceptions=True)

    def _joined_payload(self, engine: GameEngine, conn_id: str) -> Dict[str, Any]:
        player = engine.lobby.find_player(conn_id)
        assert player is not None
        return {
            "ok": True,
            "lobbyId": engine.lobby.id,
            "me": engine.player_payload(player, conn_id),
            "lobby": engine.public_state(conn_id),
        }

    async def _reply(self, session: ClientSession, message: Dict[str, Any], payload: Dict[str, Any]) -> None:
        req_id = message.get("reqId")
        if req_id is not None:
            await self._send_json(session.websocket, "ack", {"reqId": req_id, **payload})
        elif not payload.get("ok"):
            await self._send_error(session.websocket, str(payload.get("error")))

    # Deferred payout -------------------------------------------------

    def _schedule_payout(self, lobby_id: str) -> None:
        delay = self.reveal_delay_ms / 1000
        task = asyncio.create_task(self._delayed_payout(lobby_id, delay))
        self.pending_payouts[lobby_id] = PendingPayout(lobby_id=lobby_id, due=time.monotonic() + delay, task=task)

    async def _delayed_payout(self, lobby_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._run_payout(lobby_id)

    async def _run_payout(self, lobby_id: str) -> None:
        async with self._lock_for(lobby_id):
            self.pending_payouts.pop(lobby_id, None)
            engine = self.manager.get(lobby_id)
            if engine is None:
                LOGGER.info("Lobby %s closed before payout", lobby_id)
                self.locks.pop(lobby_id, None)
                return
            events = engine.settle_hand()
            await self._publish(engine, events)

    def _cancel_payout(self, lobby_id: str) -> None:
        pending = self.pending_payouts.pop(lobby_id, None)
        if pending and pending.task:
            pending.task.cancel()

    # Helpers ---------------------------------------------------------

    def _lock_for(self, lobby_id: str) -> asyncio.Lock:
        lock = self.locks.get(lobby_id)
        if lock is None:
            lock = self.locks[lobby_id] = asyncio.Lock()
        return lock

    async def _send_json(self, websocket: ServerConnection, msg_type: str, payload: Dict[str, Any]) -> None:
        try:
            await websocket.send(self._envelope(msg_type, payload))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket: ServerConnection, msg: str) -> None:
        await self._send_json(websocket, "errorMessage", {"message": msg})

    def _envelope(self, msg_type: str, payload: Dict[str, Any]) -> str:
        body: Dict[str, Any] = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        body.update(payload)
        return json.dumps(body)

    def _decode(self, raw: Any) -> Dict[str, Any]:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            return {}
        return message if isinstance(message, dict) else {}
