"""Auth service coordinating registration, login and the bootstrap superadmin policy."""

from __future__ import annotations

import re
import secrets
import time
from typing import TYPE_CHECKING

import structlog

from shared.auth.models import Role, User

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from shared.auth.password import PasswordHasher
    from shared.auth.repository import UserRepository

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
# email-style usernames are accepted
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.@+-]+$")

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 72  # bcrypt truncates at 72 bytes

logger = structlog.get_logger()


class AuthError(Exception):
    """Authentication failure.

    Attributes:
        code: Wire error code sent back to the client.

    """

    code = "unauthorized"


class AccountValidationError(AuthError):
    code = "validation_error"


class UsernameTakenError(AuthError):
    code = "conflict"


def resolve_initial_role(username: str, superadmin_usernames: Iterable[str]) -> Role:
    """Role granted at registration: superadmin for configured usernames, player otherwise."""
    configured = {name.strip().lower() for name in superadmin_usernames}
    return Role.SUPERADMIN if username.lower() in configured else Role.PLAYER


def new_player_id() -> str:
    return f"player_{secrets.token_hex(8)}"


class AuthService:
    """Coordinate account registration and credential checks."""

    def __init__(
        self,
        user_repo: UserRepository,
        *,
        password_hasher: PasswordHasher,
        superadmin_usernames: Iterable[str] = (),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._user_repo = user_repo
        self._hasher = password_hasher
        self._superadmin_usernames = tuple(superadmin_usernames)
        self._clock = clock

    async def register(self, username: str, password: str) -> User:
        """Create an account. The role comes from the bootstrap superadmin policy."""
        _validate_username(username)
        _validate_password(password)
        if await self._user_repo.get_by_username(username) is not None:
            raise UsernameTakenError(f"Username '{username}' is already taken")

        user = User(
            username=username,
            password_hash=await self._hasher.hash(password),
            player_id=new_player_id(),
            role=resolve_initial_role(username, self._superadmin_usernames),
            created_at=self._clock(),
        )
        try:
            await self._user_repo.create_user(user)
        except ValueError as e:
            raise UsernameTakenError(str(e)) from e
        return user

    async def login(self, username: str, password: str) -> User:
        """Return the user for valid credentials; unknown user and bad password look the same.

        A stored hash in an outdated format is replaced with a fresh one on success.
        """
        user = await self._user_repo.get_by_username(username)
        if user is None or not await self._hasher.verify(password, user.password_hash):
            raise AuthError("Invalid username or password")
        if self._hasher.needs_rehash(user.password_hash):
            user = await self._user_repo.set_password_hash(user.username, await self._hasher.hash(password))
            logger.info("password hash upgraded", username=user.username)
        return user


def _validate_username(username: str) -> None:
    if len(username) < USERNAME_MIN_LENGTH or len(username) > USERNAME_MAX_LENGTH:
        raise AccountValidationError(
            f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters",
        )
    if not USERNAME_PATTERN.match(username):
        raise AccountValidationError("Username may contain only letters, numbers, and _ . @ + -")


def _validate_password(password: str) -> None:
    """Validate password: 8-72 chars, max 72 UTF-8 bytes (bcrypt limit)."""
    if len(password) < PASSWORD_MIN_LENGTH or len(password) > PASSWORD_MAX_LENGTH:
        raise AccountValidationError(
            f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters",
        )
    if len(password.encode("utf-8")) > PASSWORD_MAX_LENGTH:
        raise AccountValidationError(f"Password must not exceed {PASSWORD_MAX_LENGTH} bytes when encoded")
