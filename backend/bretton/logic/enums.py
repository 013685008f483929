"""
String enum definitions for Bretton Woods game concepts.
"""

from enum import StrEnum


class Country(StrEnum):
    """Delegations that can be seated in a room."""

    USA = "USA"
    UK = "UK"
    USSR = "USSR"
    FRANCE = "France"
    CHINA = "China"
    INDIA = "India"
    ARGENTINA = "Argentina"


class GamePhase(StrEnum):
    """Phase of a room's game."""

    LOBBY = "lobby"
    VOTING = "voting"
    RESULTS = "results"
    PHASE2 = "phase2"
    COMPLETE = "complete"


class VotingMode(StrEnum):
    """How Phase 1 rounds are voted and scored."""

    MOTION = "motion"  # for / against / abstain on the round's proposal
    ISSUE = "issue"  # pick one option of the round's issue


class VoteChoice(StrEnum):
    FOR = "for"
    AGAINST = "against"
    ABSTAIN = "abstain"


class MotionOutcome(StrEnum):
    PASSED = "passed"
    FAILED = "failed"


class ScoreSource(StrEnum):
    """Where a score delta came from."""

    VOTE = "vote"
    PERFORMANCE = "performance"
    ACHIEVEMENT = "achievement"


class GameAction(StrEnum):
    """Player actions accepted by the session layer."""

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
    RESET_ROOM = "reset_room"
    SET_POLICIES = "set_phase2_policies"
    ADVANCE_YEAR = "advance_year"
