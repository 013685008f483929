"""
Year-over-year economic model for Phase 2.

``advance_economy`` derives a country's record for year N+1 from its year N
record and the policy it submitted for year N, then scores the year
over six performance bands. The function is pure apart from the
three draws it takes from the supplied random source.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bretton.logic.scenario import optimal_tariff, shocks_for
from bretton.logic.types import EconomicYearRecord, PerformanceBands, PerformanceScore

if TYPE_CHECKING:
    from bretton.logic.enums import Country
    from bretton.logic.rng import RandomSource
    from bretton.logic.settings import GameSettings
    from bretton.logic.types import Policy

BASE_GROWTH = 4.0
OPTIMAL_CENTRAL_BANK_RATE = 3.0
PARITY_EXCHANGE_RATE = 1.0

LOOSE_MONEY_RATE = 2.0  # below this the central bank rate stokes inflation
TIGHT_MONEY_RATE = 5.0  # above this it cools inflation
BOOM_GROWTH = 3.0
SLUMP_GROWTH = 1.0

UNEMPLOYMENT_FLOOR = 0.5
UNEMPLOYMENT_CEILING = 25.0

GOLD_INFLOW_SHARE = 0.10
GOLD_OUTFLOW_SHARE = 0.15


def round_half_up(value: float, *, places: int = 0) -> float:
    """Round to ``places`` decimals, halves toward +inf: 2.5 -> 3.0, -2.5 -> -2.0."""
    scale = 10**places
    return math.floor(value * scale + 0.5) / scale


@dataclass(frozen=True)
class EconomicContext:
    """Who is advancing, from which policy year, under which rules."""

    country: Country
    year: int
    settings: GameSettings


@dataclass(frozen=True)
class Indicators:
    """Unrounded figures for the year, before they are published in the record."""

    gdp_growth: float
    unemployment: float
    inflation: float
    trade_balance: float


@dataclass(frozen=True)
class YearOutcome:
    record: EconomicYearRecord
    performance: PerformanceScore
    policy_submitted: bool


def agreement_bonus(score: float, settings: GameSettings) -> float:
    """GDP bonus earned from a country's running score at the time of advancing."""
    return max(0.0, score / settings.agreement_bonus_divisor)


def advance_economy(
    prev: EconomicYearRecord,
    policy: Policy | None,
    bonus: float,
    context: EconomicContext,
    rng: RandomSource,
) -> YearOutcome:
    """Compute the next year's record and its performance score.

    Without a policy the previous record carries forward with the
    missing-policy growth penalty and a zero performance score; no random
    draws are taken. Otherwise draws happen in the order GDP, inflation, trade.
    """
    if policy is None:
        record = prev.model_copy(update={"gdp_growth": context.settings.missing_policy_growth})
        return YearOutcome(record=record, performance=PerformanceScore(), policy_submitted=False)

    shocks = shocks_for(context.country, context.year)
    cb = policy.central_bank_rate
    ex = policy.exchange_rate
    tariff = policy.tariff_rate

    growth = BASE_GROWTH
    growth -= abs(cb - OPTIMAL_CENTRAL_BANK_RATE) * 0.5
    growth += (ex - PARITY_EXCHANGE_RATE) * -2.0
    growth -= abs(tariff - optimal_tariff(context.country)) * 0.1
    growth += bonus
    growth += sum(s.gdp for s in shocks)
    growth += (rng.random() - 0.5) * 2

    inflation = prev.inflation
    if cb < LOOSE_MONEY_RATE:
        inflation += (LOOSE_MONEY_RATE - cb) * 2.0
    elif cb > TIGHT_MONEY_RATE:
        inflation -= (cb - TIGHT_MONEY_RATE) * 1.5
    inflation += (rng.random() - 0.5) * 3
    inflation += sum(s.inflation for s in shocks)
    inflation = max(0.0, inflation)

    unemployment = prev.unemployment
    if growth > BOOM_GROWTH:
        unemployment -= (growth - BOOM_GROWTH) * 0.3
    elif growth < SLUMP_GROWTH:
        unemployment += (SLUMP_GROWTH - growth) * 0.5
    unemployment = max(UNEMPLOYMENT_FLOOR, min(UNEMPLOYMENT_CEILING, unemployment))

    trade = float(prev.trade_balance)
    trade += (PARITY_EXCHANGE_RATE - ex) * 500
    trade += tariff * -20
    trade += growth * -100
    trade += sum(s.trade for s in shocks)
    trade += (rng.random() - 0.5) * 200

    # outflow is faster than inflow
    share = GOLD_INFLOW_SHARE if trade > 0 else GOLD_OUTFLOW_SHARE
    gold = max(0.0, prev.gold_reserves + trade * share)

    industrial = max(0.0, prev.industrial_output + growth * 0.5)

    record = EconomicYearRecord(
        gdp_growth=round_half_up(growth, places=1),
        unemployment=round_half_up(unemployment, places=1),
        inflation=round_half_up(inflation, places=1),
        trade_balance=int(round_half_up(trade)),
        gold_reserves=int(round_half_up(gold)),
        industrial_output=round_half_up(industrial, places=1),
    )
    raw = Indicators(gdp_growth=growth, unemployment=unemployment, inflation=inflation, trade_balance=trade)
    return YearOutcome(record=record, performance=score_performance(prev, record, raw), policy_submitted=True)


def score_performance(
    prev: EconomicYearRecord,
    record: EconomicYearRecord,
    raw: Indicators | None = None,
) -> PerformanceScore:
    """Score a year over the six bands.

    Growth, unemployment, inflation and trade are scored from ``raw`` when
    given, so 3.04% growth earns the 3-5% band even though it is published
    as 3.0. Gold and industrial output compare the published records.
    """
    if raw is None:
        raw = Indicators(
            gdp_growth=record.gdp_growth,
            unemployment=record.unemployment,
            inflation=record.inflation,
            trade_balance=record.trade_balance,
        )
    bands = PerformanceBands(
        gdp_growth=_gdp_band(raw.gdp_growth),
        unemployment=_unemployment_band(raw.unemployment),
        inflation=_inflation_band(raw.inflation),
        trade_balance=_trade_band(raw.trade_balance),
        gold_change=_gold_band(record.gold_reserves - prev.gold_reserves),
        industrial_growth=_industrial_band(prev.industrial_output, record.industrial_output),
    )
    return PerformanceScore(total=bands.total, bands=bands)


def _first_match(value: float, table: tuple[tuple[float, int], ...], *, above: bool) -> int:
    """Walk a breakpoint table; first threshold crossed wins, else 0."""
    for threshold, points in table:
        if (value > threshold) if above else (value < threshold):
            return points
    return 0


_GDP_TABLE = ((5, 5), (3, 10), (1, 5), (0, 2))
_UNEMPLOYMENT_TABLE = ((3, 10), (5, 8), (7, 4), (10, 2))
_TRADE_TABLE = ((1000, 5), (0, 3), (-1000, 1))


def _gdp_band(growth: float) -> int:
    return _first_match(growth, _GDP_TABLE, above=True)


def _unemployment_band(unemployment: float) -> int:
    return _first_match(unemployment, _UNEMPLOYMENT_TABLE, above=False)


def _trade_band(trade: float) -> int:
    return _first_match(trade, _TRADE_TABLE, above=True)


def _inflation_band(inflation: float) -> int:
    if inflation > 10:  # noqa: PLR2004
        return -5
    if inflation > 6:  # noqa: PLR2004
        return -2
    if 2 <= inflation <= 4:  # noqa: PLR2004
        return 8
    if inflation < 2:  # noqa: PLR2004
        return 4
    return 0


def _gold_band(delta: int) -> int:
    if delta > 100:  # noqa: PLR2004
        return 5
    if delta > 0:
        return 3
    if delta == 0:
        return 0
    if delta > -100:  # noqa: PLR2004
        return -1
    return -3


def _industrial_band(prev_output: float, output: float) -> int:
    if prev_output == 0:
        return 0
    change = (output - prev_output) / prev_output * 100
    if change > 3:  # noqa: PLR2004
        return 5
    if change > 1:
        return 3
    if change > 0:
        return 1
    if change < 0:
        return -2
    return 0
