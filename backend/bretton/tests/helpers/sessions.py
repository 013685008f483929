"""Helpers for driving a SessionManager through mock connections."""

from typing import Any

from bretton.messaging.mock import MockConnection
from bretton.messaging.router import MessageRouter
from bretton.session.manager import SessionManager

SUPERADMIN_NAME = "chair"
PASSWORD = "correct-horse-battery"


async def connect(router: MessageRouter) -> MockConnection:
    connection = MockConnection()
    await router.handle_connect(connection)
    return connection


async def send(router: MessageRouter, connection: MockConnection, message: dict[str, Any]) -> dict[str, Any]:
    """Route one client message and return the action_result it produced."""
    await router.handle_message(connection, message)
    return connection.last_result()


async def register(router: MessageRouter, username: str) -> MockConnection:
    """Open a connection and register (which also logs it in) as ``username``."""
    connection = await connect(router)
    result = await send(router, connection, {"type": "register", "username": username, "password": PASSWORD})
    assert result["success"], result
    connection.clear()
    return connection


async def create_room(router: MessageRouter, host: MockConnection, name: str = "Delegates", **extra: Any) -> str:  # noqa: ANN401
    result = await send(router, host, {"type": "create_room", "room_name": name, **extra})
    assert result["success"], result
    return result["data"]["room_id"]


async def seat(router: MessageRouter, connection: MockConnection, room_id: str, country: str) -> None:
    result = await send(router, connection, {"type": "join_game", "room_id": room_id, "country": country})
    assert result["success"], result


def room_state(connection: MockConnection) -> dict[str, Any]:
    """Latest room snapshot broadcast to this connection."""
    return connection.messages_of_type("room_state")[-1]["room"]


def player_id_of(manager: SessionManager, connection: MockConnection) -> str:
    return manager.get_session(connection.connection_id).actor.player_id


class MemoryStateStorage:
    """State storage keeping every saved document in memory."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.saved: list[dict[str, Any]] = []
        self._initial = initial

    def load(self) -> dict[str, Any] | None:
        return self.saved[-1] if self.saved else self._initial

    def save(self, data: dict[str, Any]) -> None:
        self.saved.append(data)
