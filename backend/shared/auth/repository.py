"""User persistence interface and the implementation backed by the global state."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from shared.auth.models import Role

if TYPE_CHECKING:
    from collections.abc import MutableMapping

    from shared.auth.models import User


class UserRepository(ABC):
    """Abstract interface for user persistence."""

    @abstractmethod
    async def create_user(self, user: User) -> None: ...

    @abstractmethod
    async def get_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    async def set_role(self, username: str, role: Role) -> User: ...

    @abstractmethod
    async def set_password_hash(self, username: str, password_hash: str) -> User: ...

    @abstractmethod
    async def remove_players(self) -> int: ...


class StateUserRepository(UserRepository):
    """Users kept in a live ``username -> User`` mapping owned by the global state.

    The mapping is persisted together with the rooms, so this repository
    never writes files itself. Lookups are case-insensitive; the stored key
    keeps the casing used at registration.
    """

    def __init__(self, users: MutableMapping[str, User]) -> None:
        self._users = users

    def _find_key(self, username: str) -> str | None:
        lower = username.lower()
        return next((key for key in self._users if key.lower() == lower), None)

    async def create_user(self, user: User) -> None:
        """Add a user. Raises ValueError if the username is already taken."""
        if self._find_key(user.username) is not None:
            raise ValueError(f"Username '{user.username}' already taken")
        self._users[user.username] = user

    async def get_by_username(self, username: str) -> User | None:
        key = self._find_key(username)
        return None if key is None else self._users[key]

    async def set_role(self, username: str, role: Role) -> User:
        key = self._find_key(username)
        if key is None:
            raise KeyError(username)
        updated = self._users[key].model_copy(update={"role": role})
        self._users[key] = updated
        return updated

    async def set_password_hash(self, username: str, password_hash: str) -> User:
        key = self._find_key(username)
        if key is None:
            raise KeyError(username)
        updated = self._users[key].model_copy(update={"password_hash": password_hash})
        self._users[key] = updated
        return updated

    async def remove_players(self) -> int:
        """Delete every non-superadmin account. Returns the number removed."""
        doomed = [key for key, user in self._users.items() if user.role != Role.SUPERADMIN]
        for key in doomed:
            del self._users[key]
        return len(doomed)
