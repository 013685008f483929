"""Centralized game settings - all configurable gameplay rules for a room."""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, ConfigDict, model_validator

from bretton.logic.enums import VotingMode

MAX_SEATS = 7  # one seat per delegation


class GameSettings(BaseModel):
    """
    Configuration for one room's game rules.

    Defaults match the multi-room server: the administrator starts and
    advances games, Phase 1 is voted as for/against/abstain motions.
    """

    model_config = ConfigDict(frozen=True)

    # --- Room ---
    max_players: int = MAX_SEATS
    min_players: int = 2
    require_admin: bool = True

    # --- Phase 1 ---
    voting_mode: VotingMode = VotingMode.MOTION
    max_rounds: int = 6
    participation_points: int = 10
    alignment_points: int = 30
    abstain_points: int = 5
    favored_points: int = 10
    opposed_points: int = -5

    # --- Phase 2 ---
    start_year: int = 1946
    max_years: int = 7  # years of history, start year included
    missing_policy_growth: float = -2.0
    agreement_bonus_divisor: float = 20.0

    @model_validator(mode="after")
    def _validate_ranges(self) -> Self:
        if not (1 <= self.min_players <= self.max_players <= MAX_SEATS):
            raise ValueError(f"Expected 1 <= min_players <= max_players <= {MAX_SEATS}")
        if self.max_years < 2:  # noqa: PLR2004
            raise ValueError("max_years must be at least 2")
        if self.max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        if self.agreement_bonus_divisor <= 0:
            raise ValueError("agreement_bonus_divisor must be positive")
        return self

    @property
    def final_year(self) -> int:
        return self.start_year + self.max_years - 1


def consensus_settings() -> GameSettings:
    """Settings for the single-room variant: no administrator, all-ready gating, issue voting."""
    return GameSettings(require_admin=False, min_players=1, voting_mode=VotingMode.ISSUE)
