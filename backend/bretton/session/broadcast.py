"""Fan-out of server messages to connection groups."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any

from bretton.messaging.types import RoomDeletedMessage, RoomListMessage, RoomStateMessage

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from bretton.session.models import ConnectionSession
    from bretton.session.types import RoomInfo


async def broadcast_to_sessions(sessions: Iterable[ConnectionSession], message: dict[str, Any]) -> None:
    """Send to each session, ignoring connections that closed mid-broadcast.

    The iterable is snapshotted first so a concurrent disconnect cannot
    mutate it while we yield on send_message.
    """
    for session in list(sessions):
        with contextlib.suppress(RuntimeError, OSError):
            await session.connection.send_message(message)


class Broadcaster:
    """Publishes room snapshots to room subscribers and the room list to everyone."""

    def __init__(self, sessions: Mapping[str, ConnectionSession]) -> None:
        self._sessions = sessions

    def subscribers(self, room_id: str) -> list[ConnectionSession]:
        return [s for s in self._sessions.values() if room_id in s.subscriptions]

    async def publish_room_state(self, room_id: str, snapshot: dict[str, Any]) -> None:
        await broadcast_to_sessions(self.subscribers(room_id), RoomStateMessage(room=snapshot).model_dump(mode="json"))

    async def publish_room_deleted(self, room_id: str, subscribers: Iterable[ConnectionSession]) -> None:
        await broadcast_to_sessions(subscribers, RoomDeletedMessage(room_id=room_id).model_dump(mode="json"))

    async def publish_room_list(self, rooms: list[RoomInfo]) -> None:
        message = RoomListMessage(rooms=[r.model_dump(mode="json") for r in rooms]).model_dump(mode="json")
        await broadcast_to_sessions(self._sessions.values(), message)
