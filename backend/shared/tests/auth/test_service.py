"""Tests for AuthService."""

from __future__ import annotations

import hashlib

import pytest

from shared.auth.models import Role, User
from shared.auth.password import SimpleHasher
from shared.auth.repository import StateUserRepository
from shared.auth.service import (
    AccountValidationError,
    AuthError,
    AuthService,
    UsernameTakenError,
    resolve_initial_role,
)


@pytest.fixture
def users() -> dict[str, User]:
    return {}


@pytest.fixture
def auth_service(users):
    return AuthService(
        StateUserRepository(users),
        password_hasher=SimpleHasher(),
        superadmin_usernames=["chair@bretton.org", "Chair"],
        clock=lambda: 1_700_000_000.0,
    )


class TestRegister:
    async def test_registers_player(self, auth_service, users):
        user = await auth_service.register("alice", "password123")

        assert user.username == "alice"
        assert user.role == Role.PLAYER
        assert user.player_id.startswith("player_")
        assert user.created_at == 1_700_000_000.0
        assert user.password_hash != "password123"
        assert users["alice"] == user

    async def test_player_ids_are_unique(self, auth_service):
        first = await auth_service.register("alice", "password123")
        second = await auth_service.register("bob", "password123")
        assert first.player_id != second.player_id

    async def test_configured_username_becomes_superadmin(self, auth_service):
        user = await auth_service.register("CHAIR@bretton.org", "password123")
        assert user.role == Role.SUPERADMIN

    async def test_rejects_duplicate_username_case_insensitive(self, auth_service):
        await auth_service.register("alice", "password123")

        with pytest.raises(UsernameTakenError, match="already taken") as exc_info:
            await auth_service.register("Alice", "otherpassword1")
        assert exc_info.value.code == "conflict"

    @pytest.mark.parametrize("username", ["ab", "a" * 51, "alice smith", "alice!"])
    async def test_rejects_invalid_username(self, auth_service, username):
        with pytest.raises(AccountValidationError) as exc_info:
            await auth_service.register(username, "password123")
        assert exc_info.value.code == "validation_error"

    async def test_rejects_short_password(self, auth_service):
        with pytest.raises(AccountValidationError, match="between"):
            await auth_service.register("alice", "short")

    async def test_rejects_multibyte_password_exceeding_72_bytes(self, auth_service):
        # 25 CJK characters = 25 chars but 75 UTF-8 bytes
        with pytest.raises(AccountValidationError, match="bytes"):
            await auth_service.register("alice", "あ" * 25)


class TestLogin:
    async def test_valid_credentials(self, auth_service):
        registered = await auth_service.register("alice", "password123")
        assert await auth_service.login("ALICE", "password123") == registered

    async def test_wrong_password(self, auth_service):
        await auth_service.register("alice", "password123")
        with pytest.raises(AuthError, match="Invalid username or password") as exc_info:
            await auth_service.login("alice", "password124")
        assert exc_info.value.code == "unauthorized"

    async def test_unknown_user_looks_like_wrong_password(self, auth_service):
        with pytest.raises(AuthError, match="Invalid username or password"):
            await auth_service.login("nobody", "password123")

    async def test_legacy_hash_upgraded_on_login(self, auth_service, users):
        users["white"] = User(
            username="white",
            password_hash=hashlib.sha256(b"password123").hexdigest(),
            player_id="player_5eed",
            created_at=0.0,
        )

        user = await auth_service.login("white", "password123")

        assert user.password_hash.startswith("simple$")
        assert users["white"] == user
        assert await auth_service.login("white", "password123") == user

    async def test_legacy_hash_wrong_password_left_untouched(self, auth_service, users):
        legacy = hashlib.sha256(b"password123").hexdigest()
        users["white"] = User(username="white", password_hash=legacy, player_id="player_5eed", created_at=0.0)

        with pytest.raises(AuthError):
            await auth_service.login("white", "password124")
        assert users["white"].password_hash == legacy


class TestResolveInitialRole:
    def test_case_insensitive_match(self):
        assert resolve_initial_role("Chair", ["chair"]) == Role.SUPERADMIN

    def test_everyone_else_is_player(self):
        assert resolve_initial_role("alice", ["chair"]) == Role.PLAYER

    def test_empty_configuration(self):
        assert resolve_initial_role("chair", []) == Role.PLAYER
