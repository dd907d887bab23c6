"""Forecast records emitted by the three upstream engines.

Three producers feed the consensus step:

* ``ForecastSummary``   – deterministic rule engine (standings, power scores)
* ``SimulationSummary`` – Monte-Carlo simulation of the fixture
* ``ContextSummary``    – context analysis of news and other unstructured data

Each record carries a ``kind`` tag so a mixed payload can be validated
through the ``Forecast`` discriminated union.  All ranges are enforced at
construction; a bad record raises ``pydantic.ValidationError``.
"""
from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from footcast.models.staking import RiskTier
from footcast.utils import Outcome, normalize_score, winner_from_score

PROBABILITY_SUM_TOLERANCE = 0.05
NEUTRAL_CONTEXT_SCORE = 5.0


class DataSourceQuality(str, Enum):
    """Where the rule engine's standings came from, best first."""
    API_OFFICIAL = "API_OFFICIAL"
    CALCULATED = "CALCULATED"
    PREVIOUS_SEASON = "PREVIOUS_SEASON"
    DEFAULT = "DEFAULT"

    @property
    def rank(self) -> int:
        return _QUALITY_ORDER.index(self)

    @property
    def weight_factor(self) -> float:
        return QUALITY_WEIGHT_FACTORS[self]


_QUALITY_ORDER = tuple(DataSourceQuality)

QUALITY_WEIGHT_FACTORS = MappingProxyType({
    DataSourceQuality.API_OFFICIAL: 1.2,
    DataSourceQuality.CALCULATED: 1.0,
    DataSourceQuality.PREVIOUS_SEASON: 0.8,
    DataSourceQuality.DEFAULT: 0.6,
})


class ContextCategory(str, Enum):
    TEAM_MORALE = "TEAM_MORALE"
    INJURIES = "INJURIES"
    TACTICAL_CHANGES = "TACTICAL_CHANGES"
    WEATHER = "WEATHER"
    PRESSURE = "PRESSURE"
    HISTORICAL_ANOMALY = "HISTORICAL_ANOMALY"

    @property
    def default_weight(self) -> float:
        return CATEGORY_DEFAULT_WEIGHTS[self]


CATEGORY_DEFAULT_WEIGHTS = MappingProxyType({
    ContextCategory.INJURIES: 1.5,
    ContextCategory.TACTICAL_CHANGES: 1.3,
    ContextCategory.TEAM_MORALE: 1.2,
    ContextCategory.PRESSURE: 1.1,
    ContextCategory.HISTORICAL_ANOMALY: 1.0,
    ContextCategory.WEATHER: 0.8,
})


def _score(v: str) -> str:
    return normalize_score(v)


# ---------------------------------------------------------------------------
# Rule engine
# ---------------------------------------------------------------------------
class ForecastSummary(BaseModel):
    """Rule-engine forecast: a scoreline backed by 0–200 power scores."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["rule"] = "rule"
    score: str
    confidence: int = Field(..., ge=0, le=100)
    power_home: int = Field(..., ge=0, le=200)
    power_away: int = Field(..., ge=0, le=200)
    source: DataSourceQuality = DataSourceQuality.API_OFFICIAL
    confidence_adjustment: float = Field(1.0, ge=0.0, le=1.0)
    reasoning: str = ""

    @field_validator("score")
    @classmethod
    def _check_score(cls, v: str) -> str:
        return _score(v)

    @property
    def power_delta(self) -> int:
        return self.power_home - self.power_away

    @property
    def is_strong_home_win(self) -> bool:
        return self.power_delta > 30

    @property
    def is_strong_away_win(self) -> bool:
        return self.power_delta < -30

    @property
    def is_close_game(self) -> bool:
        return -15 <= self.power_delta <= 15

    @property
    def outcome(self) -> Outcome:
        return winner_from_score(self.score)

    @property
    def consensus_confidence(self) -> int:
        return self.confidence


# ---------------------------------------------------------------------------
# Simulation engine
# ---------------------------------------------------------------------------
class ScoreCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: str
    count: int = Field(..., ge=0)

    @field_validator("score")
    @classmethod
    def _check_score(cls, v: str) -> str:
        return _score(v)


class SimulationSummary(BaseModel):
    """Monte-Carlo simulation result for one fixture."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["simulation"] = "simulation"
    home_win: float = Field(..., ge=0.0, le=1.0)
    draw: float = Field(..., ge=0.0, le=1.0)
    away_win: float = Field(..., ge=0.0, le=1.0)
    most_likely_score: str
    over25_probability: float = Field(0.0, ge=0.0, le=1.0)
    btts_probability: float = Field(0.0, ge=0.0, le=1.0)
    top_scores: tuple[ScoreCount, ...] = ()
    simulation_count: int = Field(10000, gt=0)

    @field_validator("most_likely_score")
    @classmethod
    def _check_score(cls, v: str) -> str:
        return _score(v)

    @model_validator(mode="after")
    def _check_distribution(self):
        total = self.home_win + self.draw + self.away_win
        if abs(total - 1.0) > PROBABILITY_SUM_TOLERANCE:
            raise ValueError(f"outcome probabilities must sum to 1.0 ± {PROBABILITY_SUM_TOLERANCE}, got {total:.4f}")
        counts = [s.count for s in self.top_scores]
        if any(a < b for a, b in zip(counts, counts[1:])):
            raise ValueError("top_scores must be ranked by simulation count, highest first")
        if counts and max(counts) > self.simulation_count:
            raise ValueError("a score cannot occur in more simulations than were run")
        return self

    @property
    def outcome(self) -> Outcome:
        return winner_from_score(self.most_likely_score)

    @property
    def is_home_favorite(self) -> bool:
        return self.home_win > self.away_win and self.home_win > self.draw

    @property
    def is_away_favorite(self) -> bool:
        return self.away_win > self.home_win and self.away_win > self.draw

    @property
    def is_draw_favorite(self) -> bool:
        return self.draw > self.home_win and self.draw > self.away_win

    @property
    def under25_probability(self) -> float:
        return 1.0 - self.over25_probability

    @property
    def btts_no_probability(self) -> float:
        return 1.0 - self.btts_probability

    def top_scores_with_percentages(self) -> list[tuple[str, int]]:
        return [(s.score, int(s.count / self.simulation_count * 100)) for s in self.top_scores]

    @property
    def consensus_confidence(self) -> int:
        return int(self.home_win * 100)


# ---------------------------------------------------------------------------
# Context analysis
# ---------------------------------------------------------------------------
class ContextFactor(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: ContextCategory
    score: int = Field(..., ge=1, le=10)
    note: str = ""
    weight: float = Field(1.0, gt=0.0)

    @classmethod
    def of(cls, category: ContextCategory | str, score: int, note: str = "") -> "ContextFactor":
        """Factor weighted with its category's default weight."""
        category = ContextCategory(category)
        return cls(category=category, score=score, note=note, weight=category.default_weight)

    @property
    def weighted_score(self) -> float:
        return self.score * self.weight

    @property
    def is_high_impact(self) -> bool:
        return self.score >= 8

    @property
    def is_negative(self) -> bool:
        return self.score <= 4


class OutlierScenario(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str = ""
    probability: float = Field(..., ge=0.0, le=100.0)
    impact: int = Field(5, ge=1, le=10)

    @property
    def is_high_probability(self) -> bool:
        return self.probability >= 70.0

    @property
    def risk_level(self) -> RiskTier:
        if self.probability >= 70.0 and self.impact >= 8:
            return RiskTier.HIGH
        if self.probability >= 50.0 and self.impact >= 5:
            return RiskTier.MEDIUM
        return RiskTier.LOW


class ContextSummary(BaseModel):
    """Context-analysis output: weighted factors, outlier scenarios and an optional scoreline."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["context"] = "context"
    factors: tuple[ContextFactor, ...] = ()
    outliers: tuple[OutlierScenario, ...] = ()
    confidence_adjustment: int = Field(0, ge=-20, le=20)
    predicted_score: Optional[str] = None
    reasoning: str = ""

    @field_validator("predicted_score")
    @classmethod
    def _check_score(cls, v):
        return None if v is None else _score(v)

    @property
    def overall_context_score(self) -> float:
        """Weight-averaged factor score on the 1–10 scale (5.0 when empty)."""
        if not self.factors:
            return NEUTRAL_CONTEXT_SCORE
        total_weight = sum(f.weight for f in self.factors)
        return sum(f.weighted_score for f in self.factors) / total_weight

    @property
    def has_high_impact_factors(self) -> bool:
        return any(f.is_high_impact for f in self.factors)

    @property
    def has_high_probability_outliers(self) -> bool:
        return any(o.is_high_probability for o in self.outliers)

    def adjusted_confidence(self, base_confidence: int) -> int:
        return max(0, min(100, base_confidence + self.confidence_adjustment))

    def risk_level(self) -> RiskTier:
        levels = [o.risk_level for o in self.outliers]
        if self.has_high_impact_factors:
            levels.append(RiskTier.MEDIUM)
        if RiskTier.HIGH in levels:
            return RiskTier.HIGH
        if RiskTier.MEDIUM in levels:
            return RiskTier.MEDIUM
        return RiskTier.LOW

    @property
    def outcome(self) -> Outcome | None:
        return None if self.predicted_score is None else winner_from_score(self.predicted_score)

    @property
    def consensus_confidence(self) -> int:
        return int(self.overall_context_score * 10)


Forecast = Annotated[
    Union[ForecastSummary, SimulationSummary, ContextSummary],
    Field(discriminator="kind"),
]

_FORECAST_ADAPTER = TypeAdapter(Forecast)


def parse_forecast(payload: dict) -> ForecastSummary | SimulationSummary | ContextSummary:
    """Validate a tagged payload (``{"kind": "rule" | "simulation" | "context", ...}``)."""
    return _FORECAST_ADAPTER.validate_python(payload)
