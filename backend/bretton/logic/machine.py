"""
Per-room game state machine.

RoomStateMachine owns one RoomState and is the only code that mutates it.
Every public method validates all of its guards before touching state, so a
rejected action (any GameActionError) leaves the room exactly as it was.

Phases run ``lobby -> voting -> results -> ... -> phase2 -> complete``:
Phase 1 alternates voting and results once per scripted issue, then Phase 2
advances one year at a time until the final year, when achievements are
evaluated once and the game completes.

Methods are synchronous and never await; the session layer runs them under
the room's lock.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from bretton.logic.achievements import evaluate_achievements
from bretton.logic.authorization import require_role
from bretton.logic.economy import EconomicContext, YearOutcome, advance_economy, agreement_bonus
from bretton.logic.enums import Country, GamePhase, ScoreSource, VoteChoice, VotingMode
from bretton.logic.exceptions import (
    ActionValidationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    QuorumNotMetError,
)
from bretton.logic.rng import SystemRandomSource
from bretton.logic.scenario import ISSUES, STARTING_ECONOMIES, issue_for_round
from bretton.logic.state import Phase2State, RoomPlayer
from bretton.logic.types import Policy, RoundResult, ScoreEntry
from bretton.logic.voting import quorum_reached, tally_issue_votes, tally_motion_votes, vote_key
from shared.auth.models import Role

if TYPE_CHECKING:
    from collections.abc import Callable

    from bretton.logic.authorization import Actor
    from bretton.logic.rng import RandomSource
    from bretton.logic.scenario import Issue
    from bretton.logic.state import RoomState

logger = structlog.get_logger()


class RoomStateMachine:
    def __init__(
        self,
        room: RoomState,
        rng: RandomSource | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._room = room
        self._rng = rng or SystemRandomSource()
        self._clock = clock

    @property
    def room(self) -> RoomState:
        return self._room

    @property
    def room_id(self) -> str:
        return self._room.room_id

    @property
    def phase(self) -> GamePhase:
        return self._room.phase

    @property
    def round_limit(self) -> int:
        """Number of Phase 1 rounds, capped at the number of scripted issues."""
        return min(self._room.settings.max_rounds, len(ISSUES))

    @property
    def current_issue(self) -> Issue | None:
        return issue_for_round(self._room.current_round)

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready view of the room, suitable for broadcast and persistence."""
        return self._room.model_dump(mode="json")

    # --- Seats ---

    def join_game(self, actor: Actor, country: str) -> RoomPlayer:
        """Seat the actor as ``country``, or resume their seat if they already hold it."""
        if actor.is_superadmin:
            raise AuthorizationError("Administrators cannot join a game as a player")
        chosen = _parse_country(country)
        room = self._room

        seated = room.players.get(actor.player_id)
        if seated is not None:
            if seated.country != chosen:
                raise ConflictError(f"Already playing as {seated.country}")
            seated.disconnected = False
            seated.disconnected_at = None
            logger.info("player resumed seat", room_id=room.room_id, player_id=actor.player_id, country=chosen)
            return seated

        if room.phase != GamePhase.LOBBY:
            raise ActionValidationError("Game already started")
        if room.seat_of(chosen) is not None:
            raise ConflictError(f"{chosen} is already taken")
        if room.is_full:
            raise ConflictError("Room is full")

        player = RoomPlayer(
            player_id=actor.player_id,
            username=actor.username,
            country=chosen,
            joined_at=self._clock(),
        )
        room.players[actor.player_id] = player
        logger.info("player joined game", room_id=room.room_id, player_id=actor.player_id, country=chosen)
        return player

    def leave_game(self, actor: Actor) -> RoundResult | None:
        """Remove the actor's seat, readiness and live vote.

        Leaving can complete the vote quorum of the remaining players, in
        which case the round resolves and its result is returned.
        """
        room = self._room
        player = self._require_seat(actor.player_id)

        del room.players[actor.player_id]
        _discard(room.ready_players, actor.player_id)
        room.votes.pop(actor.player_id, None)
        issue = self.current_issue
        if issue is not None:
            room.votes.pop(vote_key(issue.issue_id, player.country), None)
        logger.info("player left game", room_id=room.room_id, player_id=actor.player_id, country=player.country)

        if room.phase == GamePhase.VOTING and self._vote_quorum_reached():
            return self._resolve_round()
        return None

    def set_ready(self, actor: Actor, *, ready: bool) -> None:
        room = self._room
        self._require_seat(actor.player_id)
        if ready:
            if actor.player_id not in room.ready_players:
                room.ready_players.append(actor.player_id)
        else:
            _discard(room.ready_players, actor.player_id)

    def mark_disconnected(self, player_id: str) -> None:
        """Flag a seat as disconnected; the seat is kept but loses readiness."""
        player = self._require_seat(player_id)
        player.disconnected = True
        player.disconnected_at = self._clock()
        _discard(self._room.ready_players, player_id)

    def mark_connected(self, player_id: str) -> None:
        player = self._require_seat(player_id)
        player.disconnected = False
        player.disconnected_at = None

    # --- Phase 1 ---

    def start_game(self, actor: Actor) -> None:
        room = self._room
        settings = room.settings
        if room.phase != GamePhase.LOBBY:
            raise ActionValidationError("Game already started")
        if settings.require_admin:
            require_role(actor, Role.SUPERADMIN)
        if len(room.players) < settings.min_players:
            raise QuorumNotMetError(f"Need at least {settings.min_players} players to start")
        if not settings.require_admin and not room.all_ready:
            raise QuorumNotMetError("Not all players are ready")

        room.phase = GamePhase.VOTING
        room.current_round = 1
        room.game_started = True
        room.votes.clear()
        room.ready_players.clear()
        logger.info("game started", room_id=room.room_id, players=len(room.players))

    def submit_vote(self, actor: Actor, issue_id: str, option_id: str) -> RoundResult | None:
        """Record an option vote for the current issue (issue voting mode)."""
        room = self._room
        if room.settings.voting_mode != VotingMode.ISSUE:
            raise ActionValidationError("This room votes on motions, not issue options")
        self._require_phase(GamePhase.VOTING)
        player = self._require_seat(actor.player_id)
        issue = self.current_issue
        if issue is None or issue.issue_id != issue_id:
            raise ActionValidationError(f"Issue {issue_id!r} is not under debate")
        if issue.get_option(option_id) is None:
            raise ActionValidationError(f"Unknown option {option_id!r} for {issue_id}")

        room.votes[vote_key(issue_id, player.country)] = option_id
        if self._vote_quorum_reached():
            return self._resolve_round()
        return None

    def cast_vote(self, actor: Actor, choice: str) -> RoundResult | None:
        """Record a for/against/abstain vote on the current motion (motion voting mode)."""
        room = self._room
        if room.settings.voting_mode != VotingMode.MOTION:
            raise ActionValidationError("This room votes on issue options, not motions")
        self._require_phase(GamePhase.VOTING)
        self._require_seat(actor.player_id)
        try:
            vote = VoteChoice(choice)
        except ValueError:
            raise ActionValidationError(f"Invalid vote {choice!r}") from None

        room.votes[actor.player_id] = vote
        if self._vote_quorum_reached():
            return self._resolve_round()
        return None

    def next_round(self, actor: Actor) -> None:
        """Open the next voting round, or enter Phase 2 after the last round."""
        room = self._room
        self._require_phase(GamePhase.RESULTS)
        if room.settings.require_admin:
            require_role(actor, Role.SUPERADMIN)
        elif not room.all_ready:
            raise QuorumNotMetError("Not all players are ready")

        if room.current_round >= self.round_limit:
            self._initialize_phase2()
            return
        room.current_round += 1
        room.phase = GamePhase.VOTING
        room.votes.clear()
        room.ready_players.clear()
        logger.info("round opened", room_id=room.room_id, round=room.current_round)

    # --- Phase 2 ---

    def set_policies(
        self,
        actor: Actor,
        central_bank_rate: float,
        exchange_rate: float,
        tariff_rate: float,
    ) -> Policy:
        room = self._room
        self._require_phase(GamePhase.PHASE2)
        player = self._require_seat(actor.player_id)
        try:
            policy = Policy(
                central_bank_rate=central_bank_rate,
                exchange_rate=exchange_rate,
                tariff_rate=tariff_rate,
                submitted_at=self._clock(),
            )
        except ValidationError as e:
            raise ActionValidationError(f"Invalid policy: {e.errors()[0]['msg']}") from e

        year = room.phase2.current_year
        room.phase2.policies.setdefault(year, {})[player.country] = policy
        return policy

    def advance_year(self, actor: Actor) -> int:
        """Compute the next year for every seated country. Returns the new current year."""
        room = self._room
        settings = room.settings
        phase2 = room.phase2
        self._require_phase(GamePhase.PHASE2)
        if settings.require_admin:
            require_role(actor, Role.SUPERADMIN)
        if not room.all_ready:
            raise QuorumNotMetError("Not all players are ready")

        year = phase2.current_year
        outcomes = self._compute_year(year)

        next_year = year + 1
        phase2.yearly_data[next_year] = {c: o.record for c, o in outcomes.items()}
        phase2.year_scores[next_year] = {c: o.performance for c, o in outcomes.items()}
        for country, outcome in outcomes.items():
            if outcome.policy_submitted:
                self._award(
                    ScoreSource.PERFORMANCE,
                    country,
                    outcome.performance.total,
                    f"{next_year} economic performance",
                    year=next_year,
                )
        phase2.current_year = next_year
        room.ready_players.clear()
        logger.info("year advanced", room_id=room.room_id, year=next_year)

        if next_year >= settings.final_year:
            self._complete_game()
        return next_year

    # --- Admin ---

    def reset(self, actor: Actor) -> None:
        """Return to the lobby with a clean game; seated players are kept."""
        require_role(actor, Role.SUPERADMIN)
        room = self._room
        room.phase = GamePhase.LOBBY
        room.current_round = 0
        room.game_started = False
        room.votes.clear()
        room.ready_players.clear()
        room.round_history.clear()
        room.scores = dict.fromkeys(Country, 0.0)
        room.score_log.clear()
        room.phase2 = Phase2State()
        logger.info("room reset", room_id=room.room_id, player_id=actor.player_id)

    # --- Internal helpers ---

    def _require_phase(self, phase: GamePhase) -> None:
        if self._room.phase != phase:
            raise ActionValidationError(f"Action not allowed in {self._room.phase} phase")

    def _require_seat(self, player_id: str) -> RoomPlayer:
        player = self._room.players.get(player_id)
        if player is None:
            raise NotFoundError("You are not seated in this game")
        return player

    def _vote_quorum_reached(self) -> bool:
        room = self._room
        if room.settings.voting_mode == VotingMode.ISSUE:
            issue = self.current_issue
            return issue is not None and quorum_reached(room.votes, room.players, issue_id=issue.issue_id)
        return quorum_reached(room.votes, room.players)

    def _resolve_round(self) -> RoundResult:
        """Score the current round exactly once and move to results."""
        room = self._room
        issue = self.current_issue
        round_number = room.current_round

        if room.settings.voting_mode == VotingMode.ISSUE:
            resolution = tally_issue_votes(issue, room.votes, room.players, room.settings)
            result = RoundResult(
                round=round_number,
                issue_id=issue.issue_id,
                counts=resolution.counts,
                winner_option_id=resolution.winner_option_id,
                deltas=resolution.deltas,
                votes=dict(room.votes),
                resolved_at=self._clock(),
            )
            reason = f"round {round_number}: option {resolution.winner_option_id} adopted on {issue.issue_id}"
        else:
            resolution = tally_motion_votes(room.votes, room.players, room.settings)
            result = RoundResult(
                round=round_number,
                issue_id=issue.issue_id,
                counts={str(k): v for k, v in resolution.counts.items()},
                outcome=resolution.outcome,
                deltas=resolution.deltas,
                votes=dict(room.votes),
                resolved_at=self._clock(),
            )
            reason = f"round {round_number}: motion on {issue.issue_id} {resolution.outcome}"

        for country, delta in resolution.deltas.items():
            self._award(ScoreSource.VOTE, country, delta, reason, round=round_number)
        room.round_history.append(result)
        room.phase = GamePhase.RESULTS
        room.ready_players.clear()
        logger.info(
            "round resolved",
            room_id=room.room_id,
            round=round_number,
            counts=result.counts,
            winner=result.winner_option_id or result.outcome,
        )
        return result

    def _initialize_phase2(self) -> None:
        room = self._room
        start_year = room.settings.start_year
        room.phase2 = Phase2State(
            active=True,
            current_year=start_year,
            yearly_data={start_year: {c: STARTING_ECONOMIES[c] for c in room.seated_countries}},
        )
        room.phase = GamePhase.PHASE2
        room.votes.clear()
        room.ready_players.clear()
        logger.info("phase 2 started", room_id=room.room_id, year=start_year)

    def _compute_year(self, year: int) -> dict[Country, YearOutcome]:
        """Derive every seated country's next record without mutating the room."""
        room = self._room
        phase2 = room.phase2
        policies = phase2.policies.get(year, {})
        previous = phase2.yearly_data.get(year, {})
        outcomes: dict[Country, YearOutcome] = {}
        for country in room.seated_countries:
            prev = previous.get(country, STARTING_ECONOMIES[country])
            context = EconomicContext(country=country, year=year, settings=room.settings)
            bonus = agreement_bonus(room.scores[country], room.settings)
            outcomes[country] = advance_economy(prev, policies.get(country), bonus, context, self._rng)
        return outcomes

    def _complete_game(self) -> None:
        room = self._room
        phase2 = room.phase2
        start_year = room.settings.start_year
        for country in room.seated_countries:
            report = evaluate_achievements(
                country,
                phase2.records_for(country),
                phase2.policies_for(country),
                start_year,
            )
            phase2.achievements[country] = report
            for achievement in report.achievements:
                self._award(
                    ScoreSource.ACHIEVEMENT,
                    country,
                    achievement.points,
                    achievement.name,
                    year=phase2.current_year,
                )
        room.phase = GamePhase.COMPLETE
        logger.info("game complete", room_id=room.room_id, scores=dict(room.scores))

    def _award(
        self,
        source: ScoreSource,
        country: Country,
        delta: float,
        reason: str,
        *,
        round: int | None = None,  # noqa: A002
        year: int | None = None,
    ) -> None:
        """Single path for score changes: adjust the total and append to the ledger."""
        room = self._room
        room.scores[country] = room.scores.get(country, 0.0) + delta
        room.score_log.append(
            ScoreEntry(source=source, round=round, year=year, country=country, delta=delta, reason=reason),
        )


def _parse_country(value: str) -> Country:
    try:
        return Country(value)
    except ValueError:
        raise ActionValidationError(f"Unknown country {value!r}") from None


def _discard(items: list[str], value: str) -> None:
    if value in items:
        items.remove(value)
