"""
Phase 1 vote tallying and outcome resolution.

Two ledgers exist, one per voting mode:

- issue mode: ``"{issue_id}-{country}"`` -> option id
- motion mode: player id -> for / against / abstain

Only votes of currently seated players are counted. Resolution itself is
pure; firing it exactly once per round is the state machine's job.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from bretton.logic.enums import Country, MotionOutcome, VoteChoice
from bretton.logic.settings import GameSettings

if TYPE_CHECKING:
    from collections.abc import Mapping

    from bretton.logic.scenario import Issue
    from bretton.logic.state import RoomPlayer


class IssueResolution(BaseModel):
    model_config = ConfigDict(frozen=True)

    counts: dict[str, int]
    winner_option_id: str | None
    deltas: dict[Country, float]


class MotionResolution(BaseModel):
    model_config = ConfigDict(frozen=True)

    counts: dict[VoteChoice, int]
    outcome: MotionOutcome
    deltas: dict[Country, float]


def vote_key(issue_id: str, country: Country) -> str:
    return f"{issue_id}-{country}"


def quorum_reached(
    votes: Mapping[str, object],
    players: Mapping[str, RoomPlayer],
    *,
    issue_id: str | None = None,
) -> bool:
    """True only when every current player has a live vote.

    With ``issue_id`` the issue ledger is checked by country, otherwise the
    motion ledger by player id. An empty room never reaches quorum.
    """
    if not players:
        return False
    if issue_id is not None:
        return all(vote_key(issue_id, p.country) in votes for p in players.values())
    return all(player_id in votes for player_id in players)


def tally_issue_votes(
    issue: Issue,
    votes: Mapping[str, str],
    players: Mapping[str, RoomPlayer],
    settings: GameSettings | None = None,
) -> IssueResolution:
    """Count option votes of seated countries and score the winning option.

    The winner needs strictly the highest count; ties go to the option
    declared first. Only seated countries named by the winner gain or lose
    points. No votes means no winner and no deltas.
    """
    settings = settings or GameSettings()
    counts = {option.option_id: 0 for option in issue.options}
    for player in players.values():
        option_id = votes.get(vote_key(issue.issue_id, player.country))
        if option_id in counts:
            counts[option_id] += 1

    winner_id: str | None = None
    best = 0
    for option_id, count in counts.items():
        if count > best:
            winner_id = option_id
            best = count

    deltas: dict[Country, float] = {}
    if winner_id is not None:
        winner = issue.get_option(winner_id)
        seated = {p.country for p in players.values()}
        for country in winner.favors:
            if country in seated:
                deltas[country] = deltas.get(country, 0) + settings.favored_points
        for country in winner.opposes:
            if country in seated:
                deltas[country] = deltas.get(country, 0) + settings.opposed_points

    return IssueResolution(counts=counts, winner_option_id=winner_id, deltas=deltas)


def tally_motion_votes(
    votes: Mapping[str, VoteChoice],
    players: Mapping[str, RoomPlayer],
    settings: GameSettings,
) -> MotionResolution:
    """Resolve a for/against/abstain motion.

    The motion passes iff for > against. Every voter earns the participation
    points, voters on the winning side the alignment points, and abstainers
    the abstain points.
    """
    counts = dict.fromkeys(VoteChoice, 0)
    cast = {pid: VoteChoice(votes[pid]) for pid in players if pid in votes}
    for choice in cast.values():
        counts[choice] += 1

    passed = counts[VoteChoice.FOR] > counts[VoteChoice.AGAINST]
    outcome = MotionOutcome.PASSED if passed else MotionOutcome.FAILED
    winning_side = VoteChoice.FOR if passed else VoteChoice.AGAINST

    deltas: dict[Country, float] = {}
    for player_id, choice in cast.items():
        points = settings.participation_points
        if choice == winning_side:
            points += settings.alignment_points
        elif choice == VoteChoice.ABSTAIN:
            points += settings.abstain_points
        country = players[player_id].country
        deltas[country] = deltas.get(country, 0) + points

    return MotionResolution(counts=counts, outcome=outcome, deltas=deltas)
