"""
Unit tests for SessionManager action routing, login binding and broadcasts.
"""

import pytest

from bretton.logic.enums import GamePhase
from bretton.logic.settings import GameSettings
from bretton.messaging.router import MessageRouter
from bretton.session.manager import SessionManager
from bretton.tests.helpers.rooms import FixedRandomSource
from bretton.tests.helpers.sessions import (
    PASSWORD,
    SUPERADMIN_NAME,
    connect,
    create_room,
    player_id_of,
    register,
    room_state,
    seat,
    send,
)
from shared.auth.password import SimpleHasher


class TestAccounts:
    async def test_connect_sends_room_list(self, message_router):
        connection = await connect(message_router)
        assert connection.sent_messages == [{"type": "room_list", "rooms": []}]

    async def test_register_binds_connection(self, message_router, session_manager):
        connection = await connect(message_router)
        result = await send(
            message_router,
            connection,
            {"type": "register", "username": "keynes", "password": PASSWORD},
        )

        assert result["success"] is True
        assert result["data"]["username"] == "keynes"
        assert result["data"]["role"] == "player"
        assert result["data"]["player_id"].startswith("player_")
        assert player_id_of(session_manager, connection) == result["data"]["player_id"]

    async def test_configured_superadmin_registers_as_superadmin(self, message_router):
        connection = await connect(message_router)
        result = await send(
            message_router,
            connection,
            {"type": "register", "username": SUPERADMIN_NAME, "password": PASSWORD},
        )
        assert result["data"]["role"] == "superadmin"

    async def test_login_on_new_connection(self, message_router, session_manager):
        first = await register(message_router, "white")
        second = await connect(message_router)

        result = await send(
            message_router,
            second,
            {"type": "login", "username": "WHITE", "password": PASSWORD},
        )

        assert result["success"] is True
        assert player_id_of(session_manager, second) == player_id_of(session_manager, first)

    async def test_wrong_password_rejected(self, message_router, session_manager):
        await register(message_router, "white")
        connection = await connect(message_router)

        result = await send(
            message_router,
            connection,
            {"type": "login", "username": "white", "password": "not-the-password"},
        )

        assert result["success"] is False
        assert result["code"] == "unauthorized"
        assert session_manager.get_session(connection.connection_id).actor is None

    async def test_duplicate_username_conflicts(self, message_router):
        await register(message_router, "white")
        connection = await connect(message_router)
        result = await send(
            message_router,
            connection,
            {"type": "register", "username": "White", "password": PASSWORD},
        )
        assert result["code"] == "conflict"

    async def test_short_password_rejected(self, message_router, state):
        connection = await connect(message_router)
        result = await send(message_router, connection, {"type": "register", "username": "white", "password": "short"})
        assert result["code"] == "validation_error"
        assert state.users == {}

    async def test_actions_require_login(self, message_router, state):
        connection = await connect(message_router)
        result = await send(message_router, connection, {"type": "create_room", "room_name": "Lobby"})
        assert result["success"] is False
        assert result["code"] == "not_authenticated"
        assert state.rooms == {}

    async def test_ping_needs_no_login(self, message_router):
        connection = await connect(message_router)
        connection.clear()
        await message_router.handle_message(connection, {"type": "ping"})
        assert connection.sent_messages == [{"type": "pong"}]


class TestRegistry:
    async def test_create_room_broadcasts_room_list(self, message_router):
        host = await register(message_router, "keynes")
        watcher = await register(message_router, "white")

        room_id = await create_room(message_router, host, "Mount Washington")

        listing = watcher.messages_of_type("room_list")[-1]["rooms"]
        assert [r["room_id"] for r in listing] == [room_id]
        assert listing[0]["name"] == "Mount Washington"
        assert listing[0]["status"] == "waiting"

    async def test_create_room_with_voting_mode(self, message_router, session_manager):
        host = await register(message_router, "keynes")
        room_id = await create_room(message_router, host, voting_mode="issue")
        assert session_manager.state.rooms[room_id].settings.voting_mode == "issue"

    async def test_room_limit(self, state):
        manager = SessionManager(state, password_hasher=SimpleHasher(), max_rooms=1)
        router = MessageRouter(manager)
        host = await register(router, "keynes")
        await create_room(router, host)

        result = await send(router, host, {"type": "create_room", "room_name": "Second"})

        assert result["code"] == "conflict"
        assert len(state.rooms) == 1

    async def test_join_room_subscribes_and_returns_snapshot(self, message_router, session_manager):
        host = await register(message_router, "keynes")
        room_id = await create_room(message_router, host)
        guest = await register(message_router, "white")

        result = await send(message_router, guest, {"type": "join_room", "room_id": room_id})

        assert result["data"]["room"]["room_id"] == room_id
        assert room_id in session_manager.get_session(guest.connection_id).subscriptions

    async def test_join_unknown_room(self, message_router):
        guest = await register(message_router, "white")
        result = await send(message_router, guest, {"type": "join_room", "room_id": "room_missing"})
        assert result["code"] == "not_found"

    async def test_leave_room_only_unsubscribes(self, message_router, session_manager, state):
        host = await register(message_router, "keynes")
        room_id = await create_room(message_router, host)
        await seat(message_router, host, room_id, "UK")

        result = await send(message_router, host, {"type": "leave_room", "room_id": room_id})

        assert result["success"] is True
        assert room_id not in session_manager.get_session(host.connection_id).subscriptions
        assert player_id_of(session_manager, host) in state.rooms[room_id].players

    async def test_delete_room_by_host(self, message_router, state):
        host = await register(message_router, "keynes")
        room_id = await create_room(message_router, host)
        follower = await register(message_router, "white")
        await send(message_router, follower, {"type": "join_room", "room_id": room_id})

        result = await send(message_router, host, {"type": "delete_room", "room_id": room_id})

        assert result["success"] is True
        assert room_id not in state.rooms
        assert follower.messages_of_type("room_deleted") == [{"type": "room_deleted", "room_id": room_id}]
        assert follower.messages_of_type("room_list")[-1]["rooms"] == []

    async def test_delete_room_by_stranger_rejected(self, message_router, state):
        host = await register(message_router, "keynes")
        room_id = await create_room(message_router, host)
        stranger = await register(message_router, "white")

        result = await send(message_router, stranger, {"type": "delete_room", "room_id": room_id})

        assert result["code"] == "unauthorized"
        assert room_id in state.rooms

    async def test_superadmin_deletes_any_room(self, message_router, state):
        host = await register(message_router, "keynes")
        room_id = await create_room(message_router, host)
        admin = await register(message_router, SUPERADMIN_NAME)

        result = await send(message_router, admin, {"type": "admin_delete_room", "room_id": room_id})

        assert result["success"] is True
        assert state.rooms == {}

    async def test_admin_delete_requires_superadmin(self, message_router, state):
        host = await register(message_router, "keynes")
        room_id = await create_room(message_router, host)

        result = await send(message_router, host, {"type": "admin_delete_room", "room_id": room_id})

        assert result["code"] == "unauthorized"
        assert room_id in state.rooms

    async def test_clear_all_data(self, message_router, session_manager, state):
        host = await register(message_router, "keynes")
        await create_room(message_router, host)
        admin = await register(message_router, SUPERADMIN_NAME)

        result = await send(message_router, admin, {"type": "clear_all_data", "confirm_code": "CLEAR_ALL_DATA"})

        assert result["data"] == {"rooms_deleted": 1, "users_deleted": 1}
        assert state.rooms == {}
        assert list(state.users) == [SUPERADMIN_NAME]
        assert session_manager.get_session(host.connection_id).actor is None
        assert session_manager.get_session(admin.connection_id).actor is not None

    async def test_clear_all_data_requires_confirm_code(self, message_router, state):
        host = await register(message_router, "keynes")
        await create_room(message_router, host)
        admin = await register(message_router, SUPERADMIN_NAME)

        result = await send(message_router, admin, {"type": "clear_all_data", "confirm_code": "yes"})

        assert result["code"] == "validation_error"
        assert len(state.rooms) == 1


class TestRoomActions:
    async def test_join_game_publishes_state_and_list(self, message_router):
        host = await register(message_router, "keynes")
        room_id = await create_room(message_router, host)
        watcher = await register(message_router, "white")

        await seat(message_router, host, room_id, "UK")

        assert room_state(host)["players"]
        listing = watcher.messages_of_type("room_list")[-1]["rooms"]
        assert listing[0]["player_count"] == 1
        # watcher is not subscribed to the room
        assert watcher.messages_of_type("room_state") == []

    async def test_country_taken(self, message_router):
        host = await register(message_router, "keynes")
        room_id = await create_room(message_router, host)
        await seat(message_router, host, room_id, "UK")
        rival = await register(message_router, "white")

        result = await send(message_router, rival, {"type": "join_game", "room_id": room_id, "country": "UK"})

        assert result["code"] == "conflict"

    async def test_rejection_reaches_only_the_actor(self, message_router):
        host = await register(message_router, "keynes")
        room_id = await create_room(message_router, host)
        await seat(message_router, host, room_id, "UK")
        host.clear()
        rival = await register(message_router, "white")

        await send(message_router, rival, {"type": "join_game", "room_id": room_id, "country": "UK"})

        assert host.sent_messages == []

    async def test_start_requires_superadmin(self, message_router, state):
        host = await register(message_router, "keynes")
        room_id = await create_room(message_router, host)

        result = await send(message_router, host, {"type": "start_game", "room_id": room_id})

        assert result["code"] == "unauthorized"
        assert state.rooms[room_id].phase == GamePhase.LOBBY

    async def test_quorum_rejection_is_not_broadcast(self, message_router, state):
        host = await register(message_router, "keynes")
        room_id = await create_room(message_router, host)
        await seat(message_router, host, room_id, "UK")
        admin = await register(message_router, SUPERADMIN_NAME)
        await send(message_router, admin, {"type": "join_room", "room_id": room_id})
        host.clear()

        result = await send(message_router, admin, {"type": "start_game", "room_id": room_id})

        assert result["success"] is True
        assert result["code"] == "quorum_not_met"
        assert result["data"] == {"pending": True}
        assert host.sent_messages == []
        assert state.rooms[room_id].phase == GamePhase.LOBBY

    async def test_motion_round_resolves_on_last_vote(self, message_router):
        admin = await register(message_router, SUPERADMIN_NAME)
        room_id = await create_room(message_router, admin)
        usa = await register(message_router, "delegate_usa")
        uk = await register(message_router, "delegate_uk")
        await seat(message_router, usa, room_id, "USA")
        await seat(message_router, uk, room_id, "UK")
        await send(message_router, admin, {"type": "start_game", "room_id": room_id})

        first = await send(message_router, usa, {"type": "vote", "room_id": room_id, "choice": "for"})
        second = await send(message_router, uk, {"type": "vote", "room_id": room_id, "choice": "for"})

        assert first["data"] == {"resolved": False}
        assert second["data"]["resolved"] is True
        assert second["data"]["round_result"]["outcome"] == "passed"
        assert room_state(usa)["phase"] == "results"
        assert room_state(usa)["scores"]["USA"] == 40

    async def test_advance_round_alias(self, message_router, state):
        admin = await register(message_router, SUPERADMIN_NAME)
        room_id = await create_room(message_router, admin)
        usa = await register(message_router, "delegate_usa")
        uk = await register(message_router, "delegate_uk")
        await seat(message_router, usa, room_id, "USA")
        await seat(message_router, uk, room_id, "UK")
        await send(message_router, admin, {"type": "start_game", "room_id": room_id})
        await send(message_router, usa, {"type": "vote", "room_id": room_id, "choice": "against"})
        await send(message_router, uk, {"type": "vote", "room_id": room_id, "choice": "against"})

        result = await send(message_router, admin, {"type": "advance_round", "room_id": room_id})

        assert result["action"] == "next_round"
        assert result["data"]["round"] == 2
        assert state.rooms[room_id].phase == GamePhase.VOTING

    async def test_reset_game_alias(self, message_router, state):
        admin = await register(message_router, SUPERADMIN_NAME)
        room_id = await create_room(message_router, admin)
        usa = await register(message_router, "delegate_usa")
        uk = await register(message_router, "delegate_uk")
        await seat(message_router, usa, room_id, "USA")
        await seat(message_router, uk, room_id, "UK")
        await send(message_router, admin, {"type": "start_game", "room_id": room_id})

        result = await send(message_router, admin, {"type": "reset_game", "room_id": room_id})

        assert result["action"] == "reset_room"
        assert state.rooms[room_id].phase == GamePhase.LOBBY
        assert len(state.rooms[room_id].players) == 2

    async def test_identity_comes_from_login(self, message_router, state):
        host = await register(message_router, "keynes")
        room_id = await create_room(message_router, host)
        await seat(message_router, host, room_id, "UK")

        # extra fields naming another player are ignored
        result = await send(
            message_router,
            host,
            {"type": "set_ready", "room_id": room_id, "ready": True, "player_id": "player_other"},
        )

        assert result["success"] is True
        assert state.rooms[room_id].ready_players == [next(iter(state.rooms[room_id].players))]


class TestInternalErrors:
    async def test_unexpected_exception_answers_internal_error(self, message_router, session_manager, monkeypatch):
        host = await register(message_router, "keynes")

        async def explode(*_args):
            raise RuntimeError("boom")

        monkeypatch.setitem(session_manager._handlers, "create_room", explode)
        result = await send(message_router, host, {"type": "create_room", "room_name": "Lobby"})

        assert result["success"] is False
        assert result["code"] == "internal_error"
        assert not host.is_closed

    async def test_invalid_message_gets_error_frame(self, message_router):
        connection = await connect(message_router)
        connection.clear()
        await message_router.handle_message(connection, {"type": "vote", "room_id": "room_x", "choice": "maybe"})
        assert connection.sent_messages[0]["type"] == "error"
        assert connection.sent_messages[0]["code"] == "invalid_message"


class TestSettingsOverride:
    @pytest.fixture
    def session_manager(self, state):
        return SessionManager(
            state,
            password_hasher=SimpleHasher(),
            room_settings=GameSettings(max_rounds=1),
            rng_factory=FixedRandomSource,
        )

    async def test_room_settings_applied_to_new_rooms(self, message_router, state):
        host = await register(message_router, "keynes")
        room_id = await create_room(message_router, host)
        assert state.rooms[room_id].settings.max_rounds == 1
