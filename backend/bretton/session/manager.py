"""
Session layer: connection bindings, action routing, persistence and broadcasts.

Every inbound action produces exactly one ``action_result`` for the acting
connection. A successful mutation then requests a save and publishes the
affected room snapshots and, where the lobby view changed, the room list.
Rejections (GameActionError, AuthError) reach only the actor and change
nothing. An unmet quorum is not a failure: the actor gets a successful
result marked pending with the ``quorum_not_met`` code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from bretton.logic.authorization import Actor, require_role
from bretton.logic.enums import GameAction
from bretton.logic.exceptions import (
    ActionValidationError,
    GameActionError,
    NotAuthenticatedError,
    QuorumNotMetError,
)
from bretton.logic.settings import GameSettings
from bretton.messaging.types import ActionResultMessage, PongMessage, RoomListMessage, SessionErrorCode
from bretton.session.broadcast import Broadcaster
from bretton.session.models import ConnectionSession
from bretton.session.room_manager import RoomManager
from shared.auth.models import Role
from shared.auth.repository import StateUserRepository
from shared.auth.service import AuthError, AuthService

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from pydantic import BaseModel

    from bretton.logic.machine import RoomStateMachine
    from bretton.logic.rng import RandomSource
    from bretton.messaging.protocol import ConnectionProtocol
    from bretton.session.models import GlobalState
    from bretton.session.persistence import PersistenceScheduler
    from bretton.session.types import RoomInfo
    from shared.auth.password import PasswordHasher

logger = structlog.get_logger()

CLEAR_ALL_DATA_CODE = "CLEAR_ALL_DATA"

_ANONYMOUS_ACTIONS = frozenset({GameAction.REGISTER, GameAction.LOGIN})


@dataclass
class ActionOutcome:
    """What a successful action changed, and therefore what must be published."""

    data: dict[str, Any] = field(default_factory=dict)
    message: str = ""
    mutated: bool = True
    room_ids: tuple[str, ...] = ()
    room_list: bool = False


class SessionManager:
    def __init__(
        self,
        state: GlobalState,
        *,
        password_hasher: PasswordHasher,
        superadmin_usernames: tuple[str, ...] | list[str] = (),
        room_settings: GameSettings | None = None,
        max_rooms: int = 100,
        rng_factory: Callable[[], RandomSource] | None = None,
        persistence: PersistenceScheduler | None = None,
    ) -> None:
        self._state = state
        self._room_settings = room_settings or GameSettings()
        self._persistence = persistence
        self._sessions: dict[str, ConnectionSession] = {}  # connection_id -> session
        self._users = StateUserRepository(state.users)
        self._auth = AuthService(
            self._users,
            password_hasher=password_hasher,
            superadmin_usernames=superadmin_usernames,
        )
        room_kwargs: dict[str, Any] = {"max_rooms": max_rooms}
        if rng_factory is not None:
            room_kwargs["rng_factory"] = rng_factory
        self._rooms = RoomManager(state, **room_kwargs)
        self._broadcaster = Broadcaster(self._sessions)
        self._handlers: dict[GameAction, Callable[[ConnectionSession, Any], Awaitable[ActionOutcome]]] = {
            GameAction.REGISTER: self._register,
            GameAction.LOGIN: self._login,
            GameAction.CREATE_ROOM: self._create_room,
            GameAction.JOIN_ROOM: self._join_room,
            GameAction.LEAVE_ROOM: self._leave_room,
            GameAction.DELETE_ROOM: self._delete_room,
            GameAction.ADMIN_DELETE_ROOM: self._admin_delete_room,
            GameAction.CLEAR_ALL_DATA: self._clear_all_data,
            GameAction.JOIN_GAME: self._join_game,
            GameAction.LEAVE_GAME: self._leave_game,
            GameAction.SET_READY: self._set_ready,
            GameAction.START_GAME: self._start_game,
            GameAction.SUBMIT_VOTE: self._submit_vote,
            GameAction.VOTE: self._cast_vote,
            GameAction.NEXT_ROUND: self._next_round,
            GameAction.RESET_ROOM: self._reset_room,
            GameAction.SET_POLICIES: self._set_policies,
            GameAction.ADVANCE_YEAR: self._advance_year,
        }

    # --- Connections ---

    def register_connection(self, connection: ConnectionProtocol) -> None:
        self._sessions[connection.connection_id] = ConnectionSession(connection=connection)

    def unregister_connection(self, connection: ConnectionProtocol) -> None:
        self._sessions.pop(connection.connection_id, None)

    def get_session(self, connection_id: str) -> ConnectionSession | None:
        return self._sessions.get(connection_id)

    @property
    def connection_count(self) -> int:
        return len(self._sessions)

    @property
    def room_count(self) -> int:
        return self._rooms.room_count

    @property
    def state(self) -> GlobalState:
        return self._state

    def rooms_info(self) -> list[RoomInfo]:
        return self._rooms.rooms_info()

    async def send_room_list(self, connection: ConnectionProtocol) -> None:
        rooms = [r.model_dump(mode="json") for r in self._rooms.rooms_info()]
        await connection.send_message(RoomListMessage(rooms=rooms).model_dump(mode="json"))

    async def handle_ping(self, connection: ConnectionProtocol) -> None:
        await connection.send_message(PongMessage().model_dump(mode="json"))

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        """Flag the user's seats disconnected in every room and drop room subscriptions."""
        session = self._sessions.get(connection.connection_id)
        if session is None:
            return
        session.subscriptions.clear()
        if session.actor is None:
            return
        player_id = session.actor.player_id
        if self._still_connected(player_id, excluding=connection.connection_id):
            return

        affected: list[str] = []
        for machine in self._rooms.machines():
            if player_id not in machine.room.players or machine.room_id not in self._state.rooms:
                continue
            async with self._rooms.lock_for(machine.room_id):
                if player_id in machine.room.players:
                    machine.mark_disconnected(player_id)
                    affected.append(machine.room_id)
        if not affected:
            return
        logger.info("player disconnected", player_id=player_id, rooms=affected)
        self._request_save()
        await self._publish(ActionOutcome(room_ids=tuple(affected)))

    def _still_connected(self, player_id: str, *, excluding: str) -> bool:
        return any(
            s.actor is not None and s.actor.player_id == player_id and s.connection_id != excluding
            for s in self._sessions.values()
        )

    # --- Action dispatch ---

    async def handle_action(self, connection: ConnectionProtocol, action: GameAction, message: BaseModel) -> None:
        session = self._sessions.get(connection.connection_id)
        if session is None:
            session = ConnectionSession(connection=connection)
            self._sessions[connection.connection_id] = session
        log = logger.bind(action=action, player_id=session.actor.player_id if session.actor else None)

        try:
            if action not in _ANONYMOUS_ACTIONS and session.actor is None:
                raise NotAuthenticatedError("Log in first")
            outcome = await self._handlers[action](session, message)
        except QuorumNotMetError as e:
            log.debug("quorum not met", reason=str(e))
            await self._send_result(
                connection,
                action,
                success=True,
                code=e.code,
                message=str(e),
                data={"pending": True},
            )
            return
        except (GameActionError, AuthError) as e:
            log.warning("action rejected", code=e.code, reason=str(e))
            await self._send_result(connection, action, success=False, code=e.code, message=str(e))
            return
        except Exception:
            log.exception("action failed")
            await self._send_result(
                connection,
                action,
                success=False,
                code=SessionErrorCode.INTERNAL_ERROR,
                message="Internal server error",
            )
            return

        if outcome.mutated:
            self._request_save()
        await self._send_result(connection, action, success=True, message=outcome.message, data=outcome.data)
        await self._publish(outcome)

    async def _send_result(
        self,
        connection: ConnectionProtocol,
        action: GameAction,
        *,
        success: bool,
        code: str | None = None,
        message: str = "",
        data: dict[str, Any] | None = None,
    ) -> None:
        result = ActionResultMessage(
            action=action,
            success=success,
            code=code,
            message=message,
            data=data or {},
        )
        await connection.send_message(result.model_dump(mode="json"))

    def _request_save(self) -> None:
        if self._persistence is not None:
            self._persistence.request_save()

    async def _publish(self, outcome: ActionOutcome) -> None:
        for room_id in outcome.room_ids:
            try:
                machine = self._rooms.get_machine(room_id)
            except GameActionError:
                continue
            await self._broadcaster.publish_room_state(room_id, machine.snapshot())
        if outcome.room_list:
            await self._broadcaster.publish_room_list(self._rooms.rooms_info())

    # --- Account actions ---

    def _bind(self, session: ConnectionSession, username: str, player_id: str, role: Role) -> dict[str, Any]:
        session.actor = Actor(player_id=player_id, username=username, role=role)
        return {"player_id": player_id, "username": username, "role": role}

    async def _register(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        user = await self._auth.register(message.username, message.password)
        logger.info("user registered", username=user.username, player_id=user.player_id, role=user.role)
        return ActionOutcome(data=self._bind(session, user.username, user.player_id, user.role))

    async def _login(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        stored = await self._users.get_by_username(message.username)
        user = await self._auth.login(message.username, message.password)
        logger.info("user logged in", username=user.username, player_id=user.player_id)
        rehashed = stored is not None and stored.password_hash != user.password_hash
        return ActionOutcome(data=self._bind(session, user.username, user.player_id, user.role), mutated=rehashed)

    # --- Registry actions ---

    async def _create_room(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        settings = self._room_settings
        if message.voting_mode is not None:
            settings = settings.model_copy(update={"voting_mode": message.voting_mode})
        async with self._rooms.registry_lock:
            machine = self._rooms.create_room(message.room_name, session.actor.player_id, settings)
        session.subscriptions.add(machine.room_id)
        return ActionOutcome(
            data={"room_id": machine.room_id, "room": machine.snapshot()},
            room_list=True,
        )

    async def _join_room(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        machine = self._rooms.get_machine(message.room_id)
        player_id = session.actor.player_id
        resumed = False
        async with self._rooms.lock_for(machine.room_id):
            seat = machine.room.players.get(player_id)
            if seat is not None and seat.disconnected:
                machine.mark_connected(player_id)
                resumed = True
            snapshot = machine.snapshot()
        session.subscriptions.add(machine.room_id)
        if resumed:
            logger.info("player reconnected", room_id=machine.room_id, player_id=player_id)
        return ActionOutcome(
            data={"room": snapshot, "resumed": resumed},
            mutated=resumed,
            room_ids=(machine.room_id,) if resumed else (),
        )

    async def _leave_room(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        self._rooms.get_machine(message.room_id)
        session.subscriptions.discard(message.room_id)
        return ActionOutcome(data={"room_id": message.room_id}, mutated=False)

    async def _delete_room(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        machine = self._rooms.get_machine(message.room_id)
        require_role(session.actor, Role.SUPERADMIN, owner_id=machine.room.host_id)
        return await self._remove_room(message.room_id)

    async def _admin_delete_room(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        require_role(session.actor, Role.SUPERADMIN)
        self._rooms.get_machine(message.room_id)
        return await self._remove_room(message.room_id)

    async def _remove_room(self, room_id: str) -> ActionOutcome:
        async with self._rooms.registry_lock:
            subscribers = self._broadcaster.subscribers(room_id)
            self._rooms.delete_room(room_id)
            for subscriber in subscribers:
                subscriber.subscriptions.discard(room_id)
        await self._broadcaster.publish_room_deleted(room_id, subscribers)
        return ActionOutcome(data={"room_id": room_id}, room_list=True)

    async def _clear_all_data(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        require_role(session.actor, Role.SUPERADMIN)
        if message.confirm_code != CLEAR_ALL_DATA_CODE:
            raise ActionValidationError(f"Confirmation code must be {CLEAR_ALL_DATA_CODE}")

        async with self._rooms.registry_lock:
            subscribers = {room_id: self._broadcaster.subscribers(room_id) for room_id in self._state.rooms}
            room_ids = self._rooms.clear()
            users_removed = await self._users.remove_players()
        for s in self._sessions.values():
            s.subscriptions.clear()
            if s.actor is not None and s.actor.username not in self._state.users:
                s.actor = None
        for room_id in room_ids:
            await self._broadcaster.publish_room_deleted(room_id, subscribers[room_id])
        logger.warning("all data cleared", rooms=len(room_ids), users=users_removed)
        return ActionOutcome(
            data={"rooms_deleted": len(room_ids), "users_deleted": users_removed},
            room_list=True,
        )

    # --- Room actions ---

    async def _run_in_room(
        self,
        session: ConnectionSession,
        room_id: str,
        mutate: Callable[[RoomStateMachine, Actor], Any],
    ) -> tuple[RoomStateMachine, Any]:
        """Apply one synchronous mutation under the room's lock."""
        machine = self._rooms.get_machine(room_id)
        async with self._rooms.lock_for(room_id):
            structlog.contextvars.bind_contextvars(room_id=room_id)
            try:
                result = mutate(machine, session.actor)
            finally:
                structlog.contextvars.unbind_contextvars("room_id")
        return machine, result

    async def _join_game(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        machine, player = await self._run_in_room(
            session,
            message.room_id,
            lambda m, actor: m.join_game(actor, message.country),
        )
        session.subscriptions.add(machine.room_id)
        return ActionOutcome(
            data={"country": player.country},
            room_ids=(machine.room_id,),
            room_list=True,
        )

    async def _leave_game(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        machine, round_result = await self._run_in_room(session, message.room_id, lambda m, actor: m.leave_game(actor))
        return ActionOutcome(
            data=_round_data(round_result),
            room_ids=(machine.room_id,),
            room_list=True,
        )

    async def _set_ready(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        machine, _ = await self._run_in_room(
            session,
            message.room_id,
            lambda m, actor: m.set_ready(actor, ready=message.ready),
        )
        return ActionOutcome(data={"ready": message.ready}, room_ids=(machine.room_id,))

    async def _start_game(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        machine, _ = await self._run_in_room(session, message.room_id, lambda m, actor: m.start_game(actor))
        return ActionOutcome(
            data={"phase": machine.phase, "round": machine.room.current_round},
            room_ids=(machine.room_id,),
            room_list=True,
        )

    async def _submit_vote(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        machine, round_result = await self._run_in_room(
            session,
            message.room_id,
            lambda m, actor: m.submit_vote(actor, message.issue_id, message.option_id),
        )
        return ActionOutcome(data=_round_data(round_result), room_ids=(machine.room_id,))

    async def _cast_vote(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        machine, round_result = await self._run_in_room(
            session,
            message.room_id,
            lambda m, actor: m.cast_vote(actor, message.choice),
        )
        return ActionOutcome(data=_round_data(round_result), room_ids=(machine.room_id,))

    async def _next_round(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        machine, _ = await self._run_in_room(session, message.room_id, lambda m, actor: m.next_round(actor))
        return ActionOutcome(
            data={"phase": machine.phase, "round": machine.room.current_round},
            room_ids=(machine.room_id,),
        )

    async def _reset_room(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        machine, _ = await self._run_in_room(session, message.room_id, lambda m, actor: m.reset(actor))
        return ActionOutcome(data={"phase": machine.phase}, room_ids=(machine.room_id,), room_list=True)

    async def _set_policies(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        machine, policy = await self._run_in_room(
            session,
            message.room_id,
            lambda m, actor: m.set_policies(actor, message.central_bank_rate, message.exchange_rate, message.tariff_rate),
        )
        return ActionOutcome(
            data={"year": machine.room.phase2.current_year, "policy": policy.model_dump(mode="json")},
            room_ids=(machine.room_id,),
        )

    async def _advance_year(self, session: ConnectionSession, message: Any) -> ActionOutcome:  # noqa: ANN401
        machine, year = await self._run_in_room(session, message.room_id, lambda m, actor: m.advance_year(actor))
        return ActionOutcome(
            data={"year": year, "phase": machine.phase},
            room_ids=(machine.room_id,),
        )


def _round_data(round_result: Any) -> dict[str, Any]:  # noqa: ANN401
    if round_result is None:
        return {"resolved": False}
    return {"resolved": True, "round_result": round_result.model_dump(mode="json")}
