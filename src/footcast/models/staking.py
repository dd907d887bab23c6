"""
Kelly-criterion staking.

    f* = (b·p − q) / b      b = decimal odds − 1,  q = 1 − p

The raw fraction is shrunk by a fractional multiplier (quarter Kelly by
default) and then capped at 25% of bankroll.  A missing or non-positive edge
is a normal "no bet" outcome and is returned as ``None``, never raised.

The value score (0–10) and risk tier are fixed step functions of the
fractional stake; the recommended stake scales the stake down further by
tier.  ``recommend`` assembles the per-market numbers into a
``StakeRecommendation``.
"""
from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from footcast.utils import Outcome, safe_num

log = logging.getLogger(__name__)

DEFAULT_FRACTION = 0.25
KELLY_CAP = 0.25

# (minimum kelly, value score), checked top-down
_VALUE_LADDER = (
    (0.25, 10),
    (0.20, 9),
    (0.15, 8),
    (0.10, 7),
    (0.08, 6),
    (0.06, 5),
    (0.04, 4),
    (0.02, 3),
    (0.01, 2),
)


class RiskTier(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"

    @property
    def level(self) -> int:
        return _TIER_ORDER.index(self)

    @property
    def stake_scale(self) -> float:
        return _TIER_STAKE_SCALE[self]


_TIER_ORDER = tuple(RiskTier)
_TIER_STAKE_SCALE = {
    RiskTier.LOW: 1.0,
    RiskTier.MEDIUM: 0.8,
    RiskTier.HIGH: 0.5,
    RiskTier.VERY_HIGH: 0.3,
}


def kelly(
    probability: float,
    decimal_odds: float,
    fractional_multiplier: float = DEFAULT_FRACTION,
    cap: float = KELLY_CAP,
) -> float | None:
    """Fractional Kelly stake, or None when there is no bet."""
    if not (math.isfinite(probability) and math.isfinite(decimal_odds)):
        log.debug("no bet: non-finite p=%s odds=%s", probability, decimal_odds)
        return None
    if not (0.0 < probability < 1.0) or not (decimal_odds > 1.0):
        log.debug("no bet: p=%s odds=%s outside valid range", probability, decimal_odds)
        return None

    b = decimal_odds - 1.0
    q = 1.0 - probability
    raw = (b * probability - q) / b
    if raw <= 0.0:
        log.debug("no bet: no edge at p=%.4f odds=%.3f (raw kelly %.4f)", probability, decimal_odds, raw)
        return None

    stake = raw * fractional_multiplier
    if not stake > 0.0:
        log.debug("no bet: multiplier %s leaves no stake", fractional_multiplier)
        return None
    return min(stake, cap)


def value_score(k: float | None) -> int:
    """0 for no bet, 1 for a tiny edge, up to 10 at the bankroll cap."""
    if k is None:
        return 0
    for threshold, score in _VALUE_LADDER:
        if k >= threshold:
            return score
    return 1


def risk_tier(k: float | None) -> RiskTier:
    # an unknown stake is treated as risky, not safe
    if k is None:
        return RiskTier.HIGH
    if k >= 0.20:
        return RiskTier.VERY_HIGH
    if k >= 0.10:
        return RiskTier.HIGH
    if k >= 0.04:
        return RiskTier.MEDIUM
    return RiskTier.LOW


def recommended_stake(k: float | None, tier: RiskTier) -> float:
    if k is None or k <= 0.0:
        return 0.0
    return k * tier.stake_scale


def implied_probabilities(home_odds, draw_odds, away_odds) -> tuple[float, float, float, float]:
    """Bookmaker-implied probabilities with the overround removed.

    Returns ``(p_home, p_draw, p_away, overround)``; all zeros when any price
    is missing or not above evens-of-stake (``<= 1``).
    """
    h, d, a = safe_num(home_odds) or 0.0, safe_num(draw_odds) or 0.0, safe_num(away_odds) or 0.0
    if h <= 1 or d <= 1 or a <= 1:
        return (0.0, 0.0, 0.0, 0.0)
    ih, id_, ia = 1 / h, 1 / d, 1 / a
    s = ih + id_ + ia
    return (ih / s, id_ / s, ia / s, s - 1.0)


def value_edge(probability: float, decimal_odds: float) -> float:
    """Our probability minus the price's raw implied probability (0 when unpriced)."""
    if not decimal_odds or decimal_odds <= 1.0:
        return 0.0
    return probability - 1.0 / decimal_odds


class StakeRecommendation(BaseModel):
    """Per-market Kelly numbers for one fixture plus the single recommended bet."""
    model_config = ConfigDict(frozen=True)

    home_kelly: Optional[float] = Field(None, gt=0.0, le=1.0)
    draw_kelly: Optional[float] = Field(None, gt=0.0, le=1.0)
    away_kelly: Optional[float] = Field(None, gt=0.0, le=1.0)
    home_value: int = Field(0, ge=0, le=10)
    draw_value: int = Field(0, ge=0, le=10)
    away_value: int = Field(0, ge=0, le=10)
    best_market: Outcome = Outcome.HOME
    risk: RiskTier = RiskTier.HIGH
    stake: float = Field(0.0, ge=0.0, le=1.0)

    def kelly_for(self, market: Outcome | str) -> float | None:
        return {
            Outcome.HOME: self.home_kelly,
            Outcome.DRAW: self.draw_kelly,
            Outcome.AWAY: self.away_kelly,
        }[Outcome(market)]

    def value_for(self, market: Outcome | str) -> int:
        return {
            Outcome.HOME: self.home_value,
            Outcome.DRAW: self.draw_value,
            Outcome.AWAY: self.away_value,
        }[Outcome(market)]

    @property
    def best_kelly(self) -> float | None:
        return self.kelly_for(self.best_market)

    @property
    def has_value_bet(self) -> bool:
        return any(k is not None for k in (self.home_kelly, self.draw_kelly, self.away_kelly))

    @property
    def overall_value_score(self) -> int:
        return max(self.home_value, self.draw_value, self.away_value)


def recommend(
    probabilities: Mapping,
    odds: Mapping,
    fractional_multiplier: float = DEFAULT_FRACTION,
    cap: float = KELLY_CAP,
) -> StakeRecommendation:
    """Build a ``StakeRecommendation`` from per-market probabilities and decimal odds.

    Both mappings are keyed by market (``Outcome`` or ``"HOME"``/``"DRAW"``/``"AWAY"``).
    A market without a price gets no Kelly fraction.  The best market is the
    one with the highest value score; ties keep home, draw, away order.
    """
    probs = {Outcome(k): v for k, v in probabilities.items()}
    prices = {Outcome(k): v for k, v in odds.items()}

    fractions: dict[Outcome, float | None] = {}
    for market in Outcome:
        p = safe_num(probs.get(market))
        price = safe_num(prices.get(market))
        if p is None or price is None:
            fractions[market] = None
            continue
        fractions[market] = kelly(p, price, fractional_multiplier, cap)

    values = {m: value_score(k) for m, k in fractions.items()}
    best_market = max(Outcome, key=lambda m: values[m])

    present = [k for k in fractions.values() if k is not None]
    best = max(present) if present else None
    tier = risk_tier(best)

    rec = StakeRecommendation(
        home_kelly=fractions[Outcome.HOME],
        draw_kelly=fractions[Outcome.DRAW],
        away_kelly=fractions[Outcome.AWAY],
        home_value=values[Outcome.HOME],
        draw_value=values[Outcome.DRAW],
        away_value=values[Outcome.AWAY],
        best_market=best_market,
        risk=tier,
        stake=recommended_stake(best, tier),
    )
    log.debug("stake recommendation: %s value=%d tier=%s stake=%.4f",
              rec.best_market.value, rec.overall_value_score, rec.risk.value, rec.stake)
    return rec
