from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from bretton.logic.enums import GameAction, VoteChoice, VotingMode

# ASCII control character boundaries for input validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F

_ROOM_ID_FIELD = Field(min_length=1, max_length=50, pattern=r"^[a-zA-Z0-9_-]+$")


class ClientMessageType(StrEnum):
    REGISTER = "register"
    LOGIN = "login"
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    LEAVE_ROOM = "leave_room"
    DELETE_ROOM = "delete_room"
    ADMIN_DELETE_ROOM = "admin_delete_room"
    CLEAR_ALL_DATA = "clear_all_data"
    JOIN_GAME = "join_game"
    LEAVE_GAME = "leave_game"
    SET_READY = "set_ready"
    START_GAME = "start_game"
    SUBMIT_VOTE = "submit_vote"
    VOTE = "vote"
    NEXT_ROUND = "next_round"
    ADVANCE_ROUND = "advance_round"
    RESET_ROOM = "reset_room"
    RESET_GAME = "reset_game"
    SET_PHASE2_POLICIES = "set_phase2_policies"
    ADVANCE_YEAR = "advance_year"
    PING = "ping"


class ServerMessageType(StrEnum):
    ACTION_RESULT = "action_result"
    ROOM_STATE = "room_state"
    ROOM_LIST = "room_list"
    ROOM_DELETED = "room_deleted"
    PONG = "pong"
    ERROR = "error"


class SessionErrorCode(StrEnum):
    INVALID_MESSAGE = "invalid_message"
    NOT_AUTHENTICATED = "not_authenticated"
    INTERNAL_ERROR = "internal_error"


def _reject_control_characters(value: str) -> str:
    if any((ord(c) < _SPACE_ORD and c not in ("\t", "\n", "\r")) or ord(c) == _DEL_ORD for c in value):
        raise ValueError("must not contain control characters")
    return value


# --- Account ---


class RegisterMessage(BaseModel):
    type: Literal[ClientMessageType.REGISTER] = ClientMessageType.REGISTER
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=200)

    @field_validator("username")
    @classmethod
    def _validate_username(cls, v: str) -> str:
        return _reject_control_characters(v)


class LoginMessage(BaseModel):
    type: Literal[ClientMessageType.LOGIN] = ClientMessageType.LOGIN
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=200)


class PingMessage(BaseModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


# --- Registry ---


class CreateRoomMessage(BaseModel):
    type: Literal[ClientMessageType.CREATE_ROOM] = ClientMessageType.CREATE_ROOM
    room_name: str = Field(min_length=1, max_length=50)
    voting_mode: VotingMode | None = None

    @field_validator("room_name")
    @classmethod
    def _validate_room_name(cls, v: str) -> str:
        v = _reject_control_characters(v).strip()
        if not v:
            raise ValueError("room_name must not be blank")
        return v


class JoinRoomMessage(BaseModel):
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM
    room_id: str = _ROOM_ID_FIELD


class LeaveRoomMessage(BaseModel):
    type: Literal[ClientMessageType.LEAVE_ROOM] = ClientMessageType.LEAVE_ROOM
    room_id: str = _ROOM_ID_FIELD


class DeleteRoomMessage(BaseModel):
    type: Literal[ClientMessageType.DELETE_ROOM] = ClientMessageType.DELETE_ROOM
    room_id: str = _ROOM_ID_FIELD


class AdminDeleteRoomMessage(BaseModel):
    type: Literal[ClientMessageType.ADMIN_DELETE_ROOM] = ClientMessageType.ADMIN_DELETE_ROOM
    room_id: str = _ROOM_ID_FIELD


class ClearAllDataMessage(BaseModel):
    type: Literal[ClientMessageType.CLEAR_ALL_DATA] = ClientMessageType.CLEAR_ALL_DATA
    confirm_code: str = Field(max_length=50)


# --- Room actions ---


class JoinGameMessage(BaseModel):
    type: Literal[ClientMessageType.JOIN_GAME] = ClientMessageType.JOIN_GAME
    room_id: str = _ROOM_ID_FIELD
    country: str = Field(min_length=1, max_length=50)


class LeaveGameMessage(BaseModel):
    type: Literal[ClientMessageType.LEAVE_GAME] = ClientMessageType.LEAVE_GAME
    room_id: str = _ROOM_ID_FIELD


class SetReadyMessage(BaseModel):
    type: Literal[ClientMessageType.SET_READY] = ClientMessageType.SET_READY
    room_id: str = _ROOM_ID_FIELD
    ready: bool


class StartGameMessage(BaseModel):
    type: Literal[ClientMessageType.START_GAME] = ClientMessageType.START_GAME
    room_id: str = _ROOM_ID_FIELD


class SubmitVoteMessage(BaseModel):
    type: Literal[ClientMessageType.SUBMIT_VOTE] = ClientMessageType.SUBMIT_VOTE
    room_id: str = _ROOM_ID_FIELD
    issue_id: str = Field(min_length=1, max_length=50)
    option_id: str = Field(min_length=1, max_length=10)


class VoteMessage(BaseModel):
    type: Literal[ClientMessageType.VOTE] = ClientMessageType.VOTE
    room_id: str = _ROOM_ID_FIELD
    choice: VoteChoice


class NextRoundMessage(BaseModel):
    type: Literal[ClientMessageType.NEXT_ROUND, ClientMessageType.ADVANCE_ROUND] = ClientMessageType.NEXT_ROUND
    room_id: str = _ROOM_ID_FIELD


class ResetRoomMessage(BaseModel):
    type: Literal[ClientMessageType.RESET_ROOM, ClientMessageType.RESET_GAME] = ClientMessageType.RESET_ROOM
    room_id: str = _ROOM_ID_FIELD


class SetPoliciesMessage(BaseModel):
    """Bounds are checked by the room state machine, not at parse time."""

    type: Literal[ClientMessageType.SET_PHASE2_POLICIES] = ClientMessageType.SET_PHASE2_POLICIES
    room_id: str = _ROOM_ID_FIELD
    central_bank_rate: float = Field(allow_inf_nan=False)
    exchange_rate: float = Field(allow_inf_nan=False)
    tariff_rate: float = Field(allow_inf_nan=False)


class AdvanceYearMessage(BaseModel):
    type: Literal[ClientMessageType.ADVANCE_YEAR] = ClientMessageType.ADVANCE_YEAR
    room_id: str = _ROOM_ID_FIELD


RoomActionMessage = (
    JoinGameMessage
    | LeaveGameMessage
    | SetReadyMessage
    | StartGameMessage
    | SubmitVoteMessage
    | VoteMessage
    | NextRoundMessage
    | ResetRoomMessage
    | SetPoliciesMessage
    | AdvanceYearMessage
)

ClientMessage = Annotated[
    RegisterMessage
    | LoginMessage
    | PingMessage
    | CreateRoomMessage
    | JoinRoomMessage
    | LeaveRoomMessage
    | DeleteRoomMessage
    | AdminDeleteRoomMessage
    | ClearAllDataMessage
    | RoomActionMessage,
    Field(discriminator="type"),
]

_ACTION_ALIASES = {
    ClientMessageType.ADVANCE_ROUND: ClientMessageType.NEXT_ROUND,
    ClientMessageType.RESET_GAME: ClientMessageType.RESET_ROOM,
}


def action_for(message: BaseModel) -> GameAction:
    """Canonical action name for a client message, folding the wire aliases."""
    message_type = ClientMessageType(message.type)
    return GameAction(_ACTION_ALIASES.get(message_type, message_type))


# --- Server messages ---


class ActionResultMessage(BaseModel):
    type: Literal[ServerMessageType.ACTION_RESULT] = ServerMessageType.ACTION_RESULT
    action: str
    success: bool
    code: str | None = None
    message: str = ""
    data: dict[str, Any] = Field(default_factory=dict)


class RoomStateMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_STATE] = ServerMessageType.ROOM_STATE
    room: dict[str, Any]


class RoomListMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_LIST] = ServerMessageType.ROOM_LIST
    rooms: list[dict[str, Any]]


class RoomDeletedMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_DELETED] = ServerMessageType.ROOM_DELETED
    room_id: str


class PongMessage(BaseModel):
    type: Literal[ServerMessageType.PONG] = ServerMessageType.PONG


class ErrorMessage(BaseModel):
    type: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    code: SessionErrorCode
    message: str


_client_adapter = TypeAdapter(ClientMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed client message, discriminated by ``type``."""
    return _client_adapter.validate_python(data)
