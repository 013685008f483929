"""Room registry: one state machine and one lock per room."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from bretton.logic.exceptions import ConflictError, NotFoundError
from bretton.logic.machine import RoomStateMachine
from bretton.logic.rng import create_random_source
from bretton.logic.state import RoomState
from bretton.session.types import RoomInfo

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from bretton.logic.rng import RandomSource
    from bretton.logic.settings import GameSettings
    from bretton.session.models import GlobalState

logger = structlog.get_logger()


class RoomManager:
    """Map room ids to state machines over the rooms held in the global state.

    Room mutations run under that room's lock (``lock_for``). Creating,
    deleting and clearing rooms change the registry itself and must run
    under ``registry_lock``.
    """

    def __init__(
        self,
        state: GlobalState,
        *,
        max_rooms: int = 100,
        rng_factory: Callable[[], RandomSource] = create_random_source,
    ) -> None:
        self._state = state
        self._max_rooms = max_rooms
        self._rng_factory = rng_factory
        self._machines: dict[str, RoomStateMachine] = {}
        self._room_locks: dict[str, asyncio.Lock] = {}
        self.registry_lock = asyncio.Lock()
        for room in state.rooms.values():
            self._attach(room)

    def _attach(self, room: RoomState) -> RoomStateMachine:
        machine = RoomStateMachine(room, rng=self._rng_factory())
        self._machines[room.room_id] = machine
        self._room_locks[room.room_id] = asyncio.Lock()
        return machine

    @property
    def room_count(self) -> int:
        return len(self._machines)

    def get_machine(self, room_id: str) -> RoomStateMachine:
        machine = self._machines.get(room_id)
        if machine is None:
            raise NotFoundError(f"Room {room_id} does not exist")
        return machine

    def lock_for(self, room_id: str) -> asyncio.Lock:
        lock = self._room_locks.get(room_id)
        if lock is None:
            raise NotFoundError(f"Room {room_id} does not exist")
        return lock

    def machines(self) -> Iterator[RoomStateMachine]:
        yield from list(self._machines.values())

    def create_room(self, room_name: str, host_id: str, settings: GameSettings) -> RoomStateMachine:
        if self.room_count >= self._max_rooms:
            raise ConflictError(f"Room limit of {self._max_rooms} reached")
        room = RoomState(room_name=room_name, host_id=host_id, max_players=settings.max_players, settings=settings)
        self._state.rooms[room.room_id] = room
        logger.info("room created", room_id=room.room_id, host_id=host_id, voting_mode=settings.voting_mode)
        return self._attach(room)

    def delete_room(self, room_id: str) -> RoomState:
        machine = self.get_machine(room_id)
        del self._machines[room_id]
        del self._room_locks[room_id]
        del self._state.rooms[room_id]
        logger.info("room deleted", room_id=room_id)
        return machine.room

    def clear(self) -> list[str]:
        """Delete every room. Returns the deleted room ids."""
        room_ids = list(self._machines)
        for room_id in room_ids:
            self.delete_room(room_id)
        return room_ids

    def rooms_info(self) -> list[RoomInfo]:
        """Lobby listing, oldest room first."""
        rooms = sorted(self._state.rooms.values(), key=lambda r: r.created_at)
        return [RoomInfo.from_room(room) for room in rooms]
