from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import websockets
from websockets.asyncio.server import ServerConnection, serve

from holdem.errors import TableError
from holdem.models import TableConfig
from holdem.rooms import RoomRegistry, Subscription

LOGGER = logging.getLogger("poker_host")

# HostServer glues the room registry to WebSocket clients.
# Every network concern lives here; the TableEngine stays pure.


@dataclass
class ClientSession:
    room: str
    player_id: Optional[str]
    websocket: ServerConnection
    subscription: Optional[Subscription] = None
    pump_task: Optional[asyncio.Task] = None


class HostServer:
    def __init__(self, config: Optional[TableConfig] = None) -> None:
        self.config = config or TableConfig()
        self.rooms = RoomRegistry(self.config)

    async def start(self, host: str = "0.0.0.0", port: int = 8765) -> None:
        # serve keeps accepting clients until the process stops.
        async with serve(self._handle_connection, host, port):
            LOGGER.info("Host server listening on %s:%s", host, port)
            await asyncio.Future()

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        # First message must be "hello" so we know which room and seat to show.
        hello = await self._read_message(websocket)
        if hello is None or hello.get("type") != "hello":
            await self._send_error(websocket, code="BAD_HELLO", msg="Expected hello")
            await websocket.close()
            return

        session = await self._open_session(websocket, hello)
        if session is None:
            await websocket.close()
            return

        try:
            async for raw in websocket:
                await self._handle_raw(session, raw)
        except websockets.ConnectionClosed:
            pass
        finally:
            self._close_session(session)
        LOGGER.info("Connection for room %s (player=%s) closed", session.room, session.player_id)

    async def _open_session(self, websocket: ServerConnection, hello: Dict[str, Any]) -> Optional[ClientSession]:
        room_raw = hello.get("room")
        name = hello.get("name")
        player_id = hello.get("player_id")
        if room_raw is not None and not isinstance(room_raw, str):
            await self._send_error(websocket, code="BAD_SCHEMA", msg="room must be a string")
            return None
        room = self.rooms.normalize(room_raw)
        state: Optional[Dict[str, Any]] = None

        if name is not None:
            if not isinstance(name, str):
                await self._send_error(websocket, code="BAD_SCHEMA", msg="name must be a string")
                return None
            try:
                player_id, state = await self.rooms.join(room, name)
            except TableError as exc:
                await self._send_error(websocket, code=exc.code, msg=exc.msg)
                return None
        elif player_id is not None:
            existing = self.rooms.rooms.get(room)
            if not isinstance(player_id, str) or existing is None or existing.engine.find_player(player_id) is None:
                await self._send_error(websocket, code="PLAYER_NOT_FOUND", msg="Player not found.")
                return None
            LOGGER.info("Player %s re-attached to room %s", player_id, room)
        else:
            LOGGER.info("Spectator attached to room %s", room)

        session = ClientSession(room=room, player_id=player_id, websocket=websocket)
        if state is None:
            state = self.rooms.get_room(room).engine.public_state(player_id)
        await self._send_json(websocket, "welcome", {"room": room, "player_id": player_id, "state": state})
        self._attach(session)
        return session

    def _attach(self, session: ClientSession) -> None:
        session.subscription = self.rooms.subscribe(session.room, session.player_id)
        session.pump_task = asyncio.create_task(self._pump(session, session.subscription))

    def _close_session(self, session: ClientSession) -> None:
        if session.pump_task:
            session.pump_task.cancel()
            session.pump_task = None
        if session.subscription:
            self.rooms.unsubscribe(session.subscription)
            session.subscription = None

    async def _pump(self, session: ClientSession, subscription: Subscription) -> None:
        # One pump per connection, so a stalled socket only delays itself.
        try:
            async for state in subscription:
                await session.websocket.send(self._envelope("state", {"state": state}))
        except websockets.ConnectionClosed:
            LOGGER.info("Observer in room %s went away", session.room)
        finally:
            self.rooms.unsubscribe(subscription)

    async def _handle_raw(self, session: ClientSession, raw: Any) -> None:
        message = self._decode(raw)
        if message is None:
            await self._send_error(session.websocket, code="BAD_SCHEMA", msg="Messages must be JSON objects")
            return
        await self._handle_message(session, message)

    async def _handle_message(self, session: ClientSession, message: Dict[str, Any]) -> None:
        msg_type = message.get("type")
        if msg_type == "action":
            await self._handle_action(session, message)
        elif msg_type == "leave":
            await self._handle_leave(session)
        elif msg_type == "state":
            state = await self.rooms.state(session.room, session.player_id)
            await self._send_json(session.websocket, "state", {"state": state})
        else:
            await self._send_error(session.websocket, code="UNKNOWN_TYPE", msg="Unsupported message type")

    async def _handle_action(self, session: ClientSession, message: Dict[str, Any]) -> None:
        if session.player_id is None:
            await self._send_error(session.websocket, code="NOT_SEATED", msg="Join the table first")
            return

        action = message.get("action")
        amount = message.get("amount")
        winner_id = message.get("winner_id")
        if not isinstance(action, str):
            await self._send_error(session.websocket, code="BAD_SCHEMA", msg="action required")
            return
        if amount is not None and (isinstance(amount, bool) or not isinstance(amount, int)):
            await self._send_error(session.websocket, code="BAD_SCHEMA", msg="amount must be an integer")
            return
        if winner_id is not None and not isinstance(winner_id, str):
            await self._send_error(session.websocket, code="BAD_SCHEMA", msg="winner_id must be a string")
            return

        try:
            state = await self.rooms.act(session.room, session.player_id, action, amount=amount, winner_id=winner_id)
        except TableError as exc:
            LOGGER.warning(
                "Rejected action room=%s player=%s action=%s amount=%s reason=%s",
                session.room,
                session.player_id,
                action,
                amount,
                exc,
            )
            await self._send_error(session.websocket, code=exc.code, msg=exc.msg)
            return

        await self._send_json(session.websocket, "ack", {"action": action, "state": state})

    async def _handle_leave(self, session: ClientSession) -> None:
        if session.player_id is None:
            await self._send_error(session.websocket, code="NOT_SEATED", msg="Join the table first")
            return
        try:
            await self.rooms.leave(session.room, session.player_id)
        except TableError as exc:
            await self._send_error(session.websocket, code=exc.code, msg=exc.msg)
            return

        # The seat is gone; keep watching the room as a spectator.
        self._close_session(session)
        session.player_id = None
        await self._send_json(session.websocket, "left", {"room": session.room})
        self._attach(session)

    async def _send_json(self, websocket: ServerConnection, msg_type: str, payload: Dict[str, Any]) -> None:
        try:
            await websocket.send(self._envelope(msg_type, payload))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket: ServerConnection, code: str, msg: str) -> None:
        await self._send_json(websocket, "error", {"code": code, "msg": msg})

    def _envelope(self, msg_type: str, payload: Dict[str, Any]) -> str:
        body: Dict[str, Any] = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        body.update(payload)
        return json.dumps(body)

    async def _read_message(self, websocket: ServerConnection) -> Optional[Dict[str, Any]]:
        try:
            raw = await asyncio.wait_for(websocket.recv(), timeout=5)
        except (asyncio.TimeoutError, websockets.ConnectionClosed):
            return None
        return self._decode(raw)

    def _decode(self, raw: Any) -> Optional[Dict[str, Any]]:
        try:
            message = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return None
        return message if isinstance(message, dict) else None
