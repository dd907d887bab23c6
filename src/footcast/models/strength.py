"""
Team strength records and context-modifier application.

``TeamStrength`` is the statistical (Dixon-Coles style) view of a fixture:
attack/defence multipliers per side, a home-advantage multiplier and the
league scoring averages.  ``ContextModifiers`` carries bounded multiplicative
adjustments produced by the context-analysis step (injuries, news, ...).
``apply_modifiers`` combines the two into an ``AdjustedTeamStrength``.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)

MODIFIER_MIN = 0.5
MODIFIER_MAX = 1.5
EXTREME_LOW = 0.7
EXTREME_HIGH = 1.3


def _expected_goals(home_attack: float, home_defense: float,
                    away_attack: float, away_defense: float,
                    home_advantage: float, avg_home: float, avg_away: float) -> tuple[float, float]:
    eg_home = home_attack * away_defense * home_advantage * avg_home
    eg_away = away_attack * home_defense * avg_away
    return eg_home, eg_away


class TeamStrength(BaseModel):
    """Base strengths before any context adjustment."""
    model_config = ConfigDict(frozen=True, revalidate_instances="always")

    home_attack: float = Field(..., gt=0.0)
    home_defense: float = Field(..., gt=0.0)
    away_attack: float = Field(..., gt=0.0)
    away_defense: float = Field(..., gt=0.0)
    home_advantage: float = Field(..., gt=0.0)
    league_avg_home_goals: float = Field(..., gt=0.0)
    league_avg_away_goals: float = Field(..., gt=0.0)
    confidence: float = Field(1.0, ge=0.0, le=1.0)

    def expected_goals(self) -> tuple[float, float]:
        return _expected_goals(
            self.home_attack, self.home_defense, self.away_attack, self.away_defense,
            self.home_advantage, self.league_avg_home_goals, self.league_avg_away_goals,
        )


class ContextModifiers(BaseModel):
    """Multiplicative adjustments from context analysis; 1.0 means no impact."""
    model_config = ConfigDict(frozen=True, revalidate_instances="always")

    home_attack: float = Field(1.0, ge=MODIFIER_MIN, le=MODIFIER_MAX)
    home_defense: float = Field(1.0, ge=MODIFIER_MIN, le=MODIFIER_MAX)
    away_attack: float = Field(1.0, ge=MODIFIER_MIN, le=MODIFIER_MAX)
    away_defense: float = Field(1.0, ge=MODIFIER_MIN, le=MODIFIER_MAX)
    confidence: float = Field(..., ge=0.0, le=1.0)
    chaos_factor: float = Field(0.5, ge=0.0, le=1.0)
    news_relevance: float = Field(1.0, ge=0.0, le=1.0)
    reasoning: str = ""

    @property
    def multipliers(self) -> tuple[float, float, float, float]:
        return (self.home_attack, self.home_defense, self.away_attack, self.away_defense)

    @property
    def has_impact(self) -> bool:
        return any(m != 1.0 for m in self.multipliers)

    @property
    def is_extreme(self) -> bool:
        return any(m < EXTREME_LOW or m > EXTREME_HIGH for m in self.multipliers)

    @property
    def impact_score(self) -> float:
        deviation = sum(abs(m - 1.0) for m in self.multipliers) / 4.0
        return min(1.0, max(0.0, deviation * self.confidence * self.news_relevance))


class AdjustedTeamStrength(BaseModel):
    """Base strength with the context modifiers multiplied in."""
    model_config = ConfigDict(frozen=True)

    home_attack: float = Field(..., gt=0.0)
    home_defense: float = Field(..., gt=0.0)
    away_attack: float = Field(..., gt=0.0)
    away_defense: float = Field(..., gt=0.0)
    home_advantage: float = Field(..., gt=0.0)
    league_avg_home_goals: float = Field(..., gt=0.0)
    league_avg_away_goals: float = Field(..., gt=0.0)
    base: TeamStrength
    modifiers: ContextModifiers

    def expected_goals(self) -> tuple[float, float]:
        return _expected_goals(
            self.home_attack, self.home_defense, self.away_attack, self.away_defense,
            self.home_advantage, self.league_avg_home_goals, self.league_avg_away_goals,
        )

    @property
    def prediction_confidence(self) -> float:
        return self.base.confidence * self.modifiers.confidence * (1.0 - 0.5 * self.modifiers.chaos_factor)


def apply_modifiers(
    modifiers: ContextModifiers | Mapping[str, Any],
    strength: TeamStrength | Mapping[str, Any],
) -> AdjustedTeamStrength:
    """Multiply each strength component by its matching modifier.

    Both inputs are (re)validated, so a record assembled without validation
    or a raw mapping with out-of-range values raises ``ValidationError``.
    Home advantage and league averages pass through unchanged.
    """
    mods = ContextModifiers.model_validate(modifiers)
    base = TeamStrength.model_validate(strength)

    if mods.is_extreme:
        log.warning("applying extreme context modifiers (impact %.3f): %s",
                    mods.impact_score, mods.reasoning or "no reasoning given")

    return AdjustedTeamStrength(
        home_attack=base.home_attack * mods.home_attack,
        home_defense=base.home_defense * mods.home_defense,
        away_attack=base.away_attack * mods.away_attack,
        away_defense=base.away_defense * mods.away_defense,
        home_advantage=base.home_advantage,
        league_avg_home_goals=base.league_avg_home_goals,
        league_avg_away_goals=base.league_avg_away_goals,
        base=base,
        modifiers=mods,
    )
