"""Typed domain exceptions for rejected player actions.

Every guard failure in the room state machine and the session layer raises a
subclass of GameActionError. The session boundary catches them and converts
them into an ``action_result`` sent only to the acting connection. A rejected
action never mutates room state and never triggers a broadcast.
"""


class GameActionError(Exception):
    """Base exception for rejected player actions.

    Attributes:
        code: Wire error code sent back to the client.

    """

    code = "action_failed"


class ActionValidationError(GameActionError):
    """Malformed or missing fields, or an action that is invalid in the current phase."""

    code = "validation_error"


class NotFoundError(GameActionError):
    """Unknown room, user, or seat."""

    code = "not_found"


class AuthorizationError(GameActionError):
    """Actor lacks the required role or ownership, or is not logged in."""

    code = "unauthorized"


class NotAuthenticatedError(AuthorizationError):
    """Action requires a logged-in connection."""

    code = "not_authenticated"


class ConflictError(GameActionError):
    """Country or username already taken, or room full."""

    code = "conflict"


class QuorumNotMetError(GameActionError):
    """Not every current player is ready or has voted.

    An expected polling state rather than a failure: logged at debug level.
    """

    code = "quorum_not_met"


class PersistenceError(Exception):
    """Writing the global state to durable storage failed.

    Logged by the persistence scheduler. Never rolls back the triggering
    action and never reaches the client.
    """
