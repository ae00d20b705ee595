from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional, Tuple

from .errors import MissingParameters
from .game import TableEngine
from .models import TableConfig

LOGGER = logging.getLogger(__name__)

PublicState = Dict[str, object]

# RoomRegistry owns every live table. Each room is mutated under its own
# asyncio.Lock; fan-out only enqueues, so observers never hold up an action.


def normalize_room_code(code: Optional[str], default: str = "table") -> str:
    normalized = (code or "").strip().lower()
    return normalized or default


class Subscription:
    """Views of one room pushed to one observer, consumed with ``async for``."""

    def __init__(self, code: str, player_id: Optional[str], maxsize: int) -> None:
        self.code = code
        self.player_id = player_id
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def push(self, state: PublicState) -> None:
        if self.closed:
            return
        if self.queue.full():
            # Observers only need the latest view.
            self.queue.get_nowait()
        self.queue.put_nowait(state)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.queue.full():
            self.queue.get_nowait()
        self.queue.put_nowait(None)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> PublicState:
        state = await self.queue.get()
        if state is None:
            raise StopAsyncIteration
        return state


@dataclass(eq=False)
class Room:
    engine: TableEngine
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    subscribers: List[Subscription] = field(default_factory=list)
    pending: int = 0

    @property
    def code(self) -> str:
        return self.engine.code

    def is_idle(self) -> bool:
        return not self.engine.players and not self.subscribers and self.pending == 0


class RoomRegistry:
    def __init__(self, config: Optional[TableConfig] = None) -> None:
        self.config = config or TableConfig()
        self.rooms: Dict[str, Room] = {}

    def normalize(self, code: Optional[str]) -> str:
        return normalize_room_code(code, self.config.default_room)

    def get_room(self, code: Optional[str]) -> Room:
        normalized = self.normalize(code)
        room = self.rooms.get(normalized)
        if room is None:
            room = Room(engine=TableEngine(normalized, self.config))
            self.rooms[normalized] = room
            LOGGER.info("Room %s created", normalized)
        return room

    # Operations ------------------------------------------------------

    async def join(self, room_code: Optional[str], name: str) -> Tuple[str, PublicState]:
        async with self._locked(room_code) as room:
            player = room.engine.add_player(name)
            state = room.engine.public_state(player.id)
        LOGGER.info("%s joined room %s (player=%s)", player.name, room.code, player.id)
        self._broadcast(room)
        return player.id, state

    async def leave(self, room_code: Optional[str], player_id: Optional[str]) -> None:
        if not player_id:
            raise MissingParameters("Missing parameters")
        async with self._locked(room_code) as room:
            player = room.engine.remove_player(player_id)
            for subscription in [sub for sub in room.subscribers if sub.player_id == player_id]:
                subscription.close()
                room.subscribers.remove(subscription)
        LOGGER.info("%s left room %s", player.name, room.code)
        self._broadcast(room)
        self._discard_if_idle(room)

    async def act(
        self,
        room_code: Optional[str],
        player_id: Optional[str],
        action: Optional[str],
        amount: Optional[object] = None,
        winner_id: Optional[str] = None,
    ) -> PublicState:
        if not room_code or not player_id or not action:
            raise MissingParameters("Missing parameters")
        async with self._locked(room_code) as room:
            room.engine.apply_action(player_id, action, amount=amount, winner_id=winner_id)
            state = room.engine.public_state(player_id)
        LOGGER.debug(
            "Applied action room=%s player=%s action=%s amount=%s stage=%s",
            room.code,
            player_id,
            action,
            amount,
            state["stage"],
        )
        self._broadcast(room)
        return state

    async def state(self, room_code: Optional[str], player_id: Optional[str] = None) -> PublicState:
        async with self._locked(room_code) as room:
            return room.engine.public_state(player_id)

    def subscribe(self, room_code: Optional[str], player_id: Optional[str] = None) -> Subscription:
        room = self.get_room(room_code)
        subscription = Subscription(room.code, player_id, self.config.subscriber_queue_size)
        room.subscribers.append(subscription)
        subscription.push(room.engine.public_state(player_id))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.close()
        room = self.rooms.get(subscription.code)
        if room is None:
            return
        if subscription in room.subscribers:
            room.subscribers.remove(subscription)
        self._discard_if_idle(room)

    # Internals -------------------------------------------------------

    @asynccontextmanager
    async def _locked(self, room_code: Optional[str]) -> AsyncIterator[Room]:
        room = self.get_room(room_code)
        room.pending += 1
        try:
            async with room.lock:
                yield room
        finally:
            room.pending -= 1
            self._discard_if_idle(room)

    def _broadcast(self, room: Room) -> None:
        for subscription in list(room.subscribers):
            if subscription.closed:
                room.subscribers.remove(subscription)
                continue
            subscription.push(room.engine.public_state(subscription.player_id))

    def _discard_if_idle(self, room: Room) -> None:
        if room.is_idle() and self.rooms.get(room.code) is room:
            del self.rooms[room.code]
            LOGGER.info("Room %s closed", room.code)
