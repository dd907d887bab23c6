"""
Translate legacy forecast payloads into the canonical records.

Older producers emit camelCase records with their own field names
(``prediction`` for the rule score, ``homeWinProbability``,
``topScoreDistribution``, ``contextFactors`` ...) and nest the simulation and
context results inside the rule record.  This module is the only place that
knows those names; everything downstream sees ``ForecastSummary``,
``SimulationSummary`` and ``ContextSummary``.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from footcast.models.forecasts import (
    ContextFactor,
    ContextSummary,
    ForecastSummary,
    OutlierScenario,
    ScoreCount,
    SimulationSummary,
    parse_forecast,
)

log = logging.getLogger(__name__)

_RULE_KEYS = {
    "prediction": "score",
    "confidence": "confidence",
    "reasoning": "reasoning",
    "homePowerScore": "power_home",
    "awayPowerScore": "power_away",
    "standingsSource": "source",
    "confidenceAdjustment": "confidence_adjustment",
}

_SIMULATION_KEYS = {
    "homeWinProbability": "home_win",
    "drawProbability": "draw",
    "awayWinProbability": "away_win",
    "mostLikelyScore": "most_likely_score",
    "simulationCount": "simulation_count",
    "bttsProbability": "btts_probability",
    "over2_5Probability": "over25_probability",
}

_CONTEXT_KEYS = {
    "enhancedReasoning": "reasoning",
    "confidenceAdjustment": "confidence_adjustment",
    "predictedScore": "predicted_score",
}

# field names that only legacy producers use; anything else is read as canonical
_LEGACY_ONLY = {
    "rule": frozenset(k for k, v in _RULE_KEYS.items() if k != v),
    "simulation": frozenset(_SIMULATION_KEYS) | {"topScoreDistribution"},
    "context": frozenset(_CONTEXT_KEYS) | {"contextFactors", "outlierScenarios"},
}

# nested keys a legacy rule record may carry
_NESTED_SIMULATION = ("tesseract", "simulation")
_NESTED_CONTEXT = ("llmGradeEnhancement", "context")


def _rename(d: Mapping[str, Any], keys: Mapping[str, str]) -> dict:
    return {new: d[old] for old, new in keys.items() if old in d and d[old] is not None}


def _score_count(item) -> ScoreCount:
    # kotlinx serialises Pair as {"first": .., "second": ..}
    if isinstance(item, Mapping):
        if "first" in item:
            return ScoreCount(score=item["first"], count=item["second"])
        return ScoreCount.model_validate(item)
    score, count = item
    return ScoreCount(score=score, count=count)


def rule_forecast_from_legacy(d: Mapping[str, Any]) -> ForecastSummary:
    return ForecastSummary(**_rename(d, _RULE_KEYS))


def simulation_from_legacy(d: Mapping[str, Any]) -> SimulationSummary:
    fields = _rename(d, _SIMULATION_KEYS)
    fields["top_scores"] = tuple(_score_count(x) for x in d.get("topScoreDistribution") or ())
    return SimulationSummary(**fields)


def context_from_legacy(d: Mapping[str, Any]) -> ContextSummary:
    fields = _rename(d, _CONTEXT_KEYS)
    fields["factors"] = tuple(
        ContextFactor(
            category=f["type"],
            score=f["score"],
            note=f.get("description", ""),
            weight=f.get("weight", 1.0),
        )
        for f in d.get("contextFactors") or ()
    )
    fields["outliers"] = tuple(
        OutlierScenario(
            description=o.get("description", ""),
            probability=o["probability"],
            impact=o.get("impactScore", 5),
        )
        for o in d.get("outlierScenarios") or ()
    )
    return ContextSummary(**fields)


def _first(d: Mapping[str, Any], keys) -> Optional[Mapping[str, Any]]:
    for k in keys:
        if d.get(k) is not None:
            return d[k]
    return None


def _is_canonical(d: Mapping[str, Any]) -> bool:
    return "kind" in d


def forecasts_from_payload(
    payload: Mapping[str, Any],
) -> tuple[ForecastSummary, Optional[SimulationSummary], Optional[ContextSummary]]:
    """Split a payload into ``(rule, simulation, context)``.

    Two shapes are accepted:

    * canonical: ``{"rule": {...}, "simulation": {...}, "context": {...}}``
      where each part may carry a ``kind`` tag; missing parts become ``None``
    * legacy: a camelCase rule record with the simulation nested under
      ``tesseract`` and the context analysis under ``llmGradeEnhancement``
    """
    if "rule" in payload:
        rule = _part(payload["rule"], "rule", rule_forecast_from_legacy)
        sim = payload.get("simulation")
        ctx = payload.get("context")
        return (
            rule,
            None if sim is None else _part(sim, "simulation", simulation_from_legacy),
            None if ctx is None else _part(ctx, "context", context_from_legacy),
        )

    log.debug("translating legacy forecast payload")
    rule = rule_forecast_from_legacy(payload)
    sim = _first(payload, _NESTED_SIMULATION)
    ctx = _first(payload, _NESTED_CONTEXT)
    return (
        rule,
        None if sim is None else simulation_from_legacy(sim),
        None if ctx is None else context_from_legacy(ctx),
    )


def _part(d: Mapping[str, Any], kind: str, legacy):
    if _is_canonical(d):
        rec = parse_forecast(dict(d))
        if rec.kind != kind:
            raise ValueError(f"expected a {kind!r} forecast, got {rec.kind!r}")
        return rec
    if any(k in d for k in _LEGACY_ONLY[kind]):
        return legacy(d)
    return parse_forecast({**d, "kind": kind})
