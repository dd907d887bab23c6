"""
Consensus reconciliation across the rule, simulation and context engines.

``reconcile`` combines up to three forecasts into a ``ConsensusResult``:

  tier          HIGH when every present score agrees, MEDIUM when three
                scores split two against one, LOW otherwise
  discrepancy   spread of the engines' 0–100 confidences
  narrative     first outcome/score disagreement found, rule engine first
  weights       0.4 / 0.3 / 0.3 scaled by confidence and source quality,
                normalised to sum to 1
  score         80/50/20 by tier, minus half the discrepancy, plus up to 20
                for balanced weights, clamped to [0, 100]

The helpers are pure and usable on their own; ``reconcile`` only wires them
together and builds the record.
"""
from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

from footcast.models.forecasts import ContextSummary, ForecastSummary, SimulationSummary
from footcast.utils import normalize_score, winner_from_score

log = logging.getLogger(__name__)

BASE_RULE_WEIGHT = 0.4
BASE_SIMULATION_WEIGHT = 0.3
BASE_CONTEXT_WEIGHT = 0.3
MISSING_ENGINE_CONFIDENCE = 50
BALANCED_DEVIATION = 0.2
VARIABLE_PREDICTION = "VARIABLE"


class AgreementTier(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def base_score(self) -> int:
        return {"HIGH": 80, "MEDIUM": 50, "LOW": 20}[self.value]


class EngineWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule: float = Field(..., ge=0.0, le=1.0)
    simulation: float = Field(..., ge=0.0, le=1.0)
    context: float = Field(..., ge=0.0, le=1.0)

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.rule, self.simulation, self.context)

    @property
    def is_balanced(self) -> bool:
        ws = self.as_tuple()
        avg = sum(ws) / 3.0
        return max(abs(w - avg) for w in ws) < BALANCED_DEVIATION

    def formatted(self) -> str:
        return (f"rule {int(self.rule * 100)}%, simulation {int(self.simulation * 100)}%, "
                f"context {int(self.context * 100)}%")


class ConsensusResult(BaseModel):
    """Immutable outcome of one reconciliation."""
    model_config = ConfigDict(frozen=True)

    rule_score: str
    simulation_score: Optional[str] = None
    context_score: Optional[str] = None
    tier: AgreementTier
    discrepancy: int = Field(..., ge=0, le=100)
    narrative: Optional[str] = None
    weights: EngineWeights
    consensus_score: int = Field(..., ge=0, le=100)

    @field_validator("rule_score")
    @classmethod
    def _check_rule_score(cls, v: str) -> str:
        return normalize_score(v)

    @field_validator("simulation_score", "context_score")
    @classmethod
    def _check_optional_score(cls, v):
        return None if v is None else normalize_score(v)

    def scores(self) -> list[str]:
        return [s for s in (self.rule_score, self.simulation_score, self.context_score) if s is not None]

    @property
    def has_outcome_agreement(self) -> bool:
        return len({winner_from_score(s) for s in self.scores()}) == 1

    @property
    def consensus_prediction(self) -> str:
        if self.tier is AgreementTier.HIGH:
            return self.rule_score
        if self.tier is AgreementTier.MEDIUM:
            totals: dict[str, float] = {}
            for score, w in zip(
                (self.rule_score, self.simulation_score, self.context_score),
                self.weights.as_tuple(),
            ):
                if score is not None:
                    totals[score] = totals.get(score, 0.0) + w
            return max(totals, key=totals.get)
        distinct = set(self.scores())
        return self.rule_score if len(distinct) == 1 else VARIABLE_PREDICTION


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------
def agreement_tier(scores: Sequence[Optional[str]]) -> AgreementTier:
    """Classify agreement among the present scores (``None`` entries are ignored).

    A single present score has nothing to agree with and is LOW.
    """
    present = [normalize_score(s) for s in scores if s is not None]
    if len(present) < 2:
        return AgreementTier.LOW
    distinct = len(set(present))
    if distinct == 1:
        return AgreementTier.HIGH
    if distinct == 2 and len(present) == 3:
        return AgreementTier.MEDIUM
    return AgreementTier.LOW


def confidence_discrepancy(confidences: Sequence[Optional[int]]) -> int:
    present = [c for c in confidences if c is not None]
    if len(present) < 2:
        return 0
    return max(present) - min(present)


def disagreement_narrative(
    rule_score: str,
    simulation_score: Optional[str] = None,
    context_score: Optional[str] = None,
) -> str | None:
    """First disagreement worth reporting; rule vs simulation outranks rule vs context."""
    rule_outcome = winner_from_score(rule_score)
    messages: list[str] = []

    if simulation_score is not None and normalize_score(simulation_score) != normalize_score(rule_score):
        sim_outcome = winner_from_score(simulation_score)
        if sim_outcome is not rule_outcome:
            messages.append(f"outcomes differ (rule engine: {rule_outcome.label}, "
                            f"simulation: {sim_outcome.label})")
        else:
            messages.append(f"rule engine and simulation differ on the score "
                            f"({rule_score} vs {simulation_score})")

    if context_score is not None:
        ctx_outcome = winner_from_score(context_score)
        if ctx_outcome is not rule_outcome:
            log.warning("rule engine (%s) and context analysis (%s) disagree on the outcome",
                        rule_score, context_score)
            if not messages:
                messages.append(f"outcomes differ (rule engine: {rule_outcome.label}, "
                                f"context analysis: {ctx_outcome.label})")

    return messages[0] if messages else None


def engine_weights(
    rule: ForecastSummary,
    simulation: Optional[SimulationSummary] = None,
    context: Optional[ContextSummary] = None,
) -> EngineWeights:
    sim_conf = simulation.consensus_confidence if simulation is not None else MISSING_ENGINE_CONFIDENCE
    ctx_conf = context.consensus_confidence if context is not None else MISSING_ENGINE_CONFIDENCE

    w_rule = BASE_RULE_WEIGHT * (rule.consensus_confidence / 100.0) * rule.source.weight_factor
    w_sim = BASE_SIMULATION_WEIGHT * (sim_conf / 100.0)
    w_ctx = BASE_CONTEXT_WEIGHT * (ctx_conf / 100.0)

    total = w_rule + w_sim + w_ctx
    if total > 0:
        w_rule, w_sim, w_ctx = w_rule / total, w_sim / total, w_ctx / total
    log.debug("engine weights rule=%.3f simulation=%.3f context=%.3f", w_rule, w_sim, w_ctx)
    return EngineWeights(rule=min(w_rule, 1.0), simulation=min(w_sim, 1.0), context=min(w_ctx, 1.0))


def consensus_score(tier: AgreementTier, discrepancy: int, weights: EngineWeights) -> int:
    balance = 1.0 - max(abs(w - 1.0 / 3.0) for w in weights.as_tuple())
    score = tier.base_score - discrepancy // 2 + math.floor(20.0 * balance)
    return max(0, min(100, score))


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------
def reconcile(
    rule: ForecastSummary,
    simulation: Optional[SimulationSummary] = None,
    context: Optional[ContextSummary] = None,
) -> ConsensusResult:
    """Reconcile the available forecasts into a single ``ConsensusResult``.

    Missing engines degrade the result instead of failing it.  With fewer than
    two present scores (a rule-only call, or a context without a
    ``predicted_score`` and no simulation) the tier is LOW.  Plain mappings
    are accepted and validated, so bad fields raise ``pydantic.ValidationError``
    before anything is computed.
    """
    rule = ForecastSummary.model_validate(rule)
    simulation = None if simulation is None else SimulationSummary.model_validate(simulation)
    context = None if context is None else ContextSummary.model_validate(context)

    sim_score = simulation.most_likely_score if simulation is not None else None
    ctx_score = context.predicted_score if context is not None else None

    tier = agreement_tier([rule.score, sim_score, ctx_score])
    discrepancy = confidence_discrepancy([
        rule.consensus_confidence,
        simulation.consensus_confidence if simulation is not None else None,
        context.consensus_confidence if context is not None else None,
    ])
    weights = engine_weights(rule, simulation, context)

    result = ConsensusResult(
        rule_score=rule.score,
        simulation_score=sim_score,
        context_score=ctx_score,
        tier=tier,
        discrepancy=min(discrepancy, 100),
        narrative=disagreement_narrative(rule.score, sim_score, ctx_score),
        weights=weights,
        consensus_score=consensus_score(tier, discrepancy, weights),
    )
    log.info("consensus %s score=%d discrepancy=%d (%s)",
             result.tier.value, result.consensus_score, result.discrepancy, weights.formatted())
    return result
