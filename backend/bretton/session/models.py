from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from bretton.logic.state import RoomState  # noqa: TC001
from shared.auth.models import User  # noqa: TC001

if TYPE_CHECKING:
    from bretton.logic.authorization import Actor
    from bretton.messaging.protocol import ConnectionProtocol


class GlobalState(BaseModel):
    """Everything the server persists: accounts and rooms. The room list is derived."""

    users: dict[str, User] = Field(default_factory=dict)
    rooms: dict[str, RoomState] = Field(default_factory=dict)

    def snapshot(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


@dataclass
class ConnectionSession:
    """A live connection, its login binding and the rooms it follows.

    Lifecycle:
    - Created when the connection is registered (anonymous, no actor)
    - register/login binds the actor; all other actions read identity from here
    - join_room/leave_room add and remove room subscriptions
    - Dropped entirely when the connection is unregistered
    """

    connection: ConnectionProtocol
    actor: Actor | None = None
    subscriptions: set[str] = field(default_factory=set)

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id
