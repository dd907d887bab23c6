"""
Retrospective grading: compare a stored prediction with the final result.

Besides outcome and exact-score correctness, each graded prediction carries
an xG verdict that separates deserved results from lucky or unlucky ones:

    DOMINANT  predicted correctly and the xG backs it up
    LUCKY     predicted correctly although the xG pointed the other way
    UNLUCKY   predicted wrongly although the xG supported the prediction
    NEUTRAL   balanced xG, or xG not available

Unlike a Kelly "no bet", an unparseable score is a data-integrity problem and
is raised, never graded as a draw.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime
from enum import Enum
from typing import Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from footcast.models.staking import RiskTier
from footcast.utils import Outcome, format_score, normalize_score, safe_num, winner_from_score

log = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({"FT", "AET", "PEN", "FINISHED", "AWARDED"})
PROBABILITY_SUM_TOLERANCE = 0.10

WIN_MARGIN = 0.3
LOSS_MARGIN = 0.5


class XgVerdict(str, Enum):
    DOMINANT = "DOMINANT"
    LUCKY = "LUCKY"
    UNLUCKY = "UNLUCKY"
    NEUTRAL = "NEUTRAL"


def xg_verdict(
    predicted: Outcome,
    actual: Outcome,
    home_xg: float | None,
    away_xg: float | None,
) -> XgVerdict:
    if home_xg is None or away_xg is None:
        return XgVerdict.NEUTRAL

    correct = predicted is actual
    diff = home_xg - away_xg

    if predicted is Outcome.HOME:
        if correct and diff > WIN_MARGIN:
            return XgVerdict.DOMINANT
        if correct and diff < -WIN_MARGIN:
            return XgVerdict.LUCKY
        if not correct and diff > LOSS_MARGIN:
            return XgVerdict.UNLUCKY
        return XgVerdict.NEUTRAL

    if predicted is Outcome.AWAY:
        if correct and diff < -WIN_MARGIN:
            return XgVerdict.DOMINANT
        if correct and diff > WIN_MARGIN:
            return XgVerdict.LUCKY
        if not correct and diff < -LOSS_MARGIN:
            return XgVerdict.UNLUCKY
        return XgVerdict.NEUTRAL

    spread = abs(diff)
    if correct and spread < WIN_MARGIN:
        return XgVerdict.DOMINANT
    if correct and spread > LOSS_MARGIN:
        return XgVerdict.LUCKY
    if not correct and spread < WIN_MARGIN:
        return XgVerdict.UNLUCKY
    return XgVerdict.NEUTRAL


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------
class StoredPrediction(BaseModel):
    """A prediction as it was logged before kick-off."""
    model_config = ConfigDict(frozen=True)

    fixture_id: int = Field(..., gt=0)
    match_name: str = ""
    predicted_score: str
    home_prob: float = Field(..., ge=0.0, le=1.0)
    draw_prob: float = Field(..., ge=0.0, le=1.0)
    away_prob: float = Field(..., ge=0.0, le=1.0)
    context_score: Optional[float] = Field(None, ge=0.0, le=10.0)
    risk: Optional[RiskTier] = None
    created_at: Optional[datetime] = None

    @field_validator("predicted_score")
    @classmethod
    def _check_score(cls, v: str) -> str:
        return normalize_score(v)

    @model_validator(mode="after")
    def _check_probabilities(self):
        total = self.home_prob + self.draw_prob + self.away_prob
        if abs(total - 1.0) > PROBABILITY_SUM_TOLERANCE:
            raise ValueError(f"prediction probabilities must sum to 1.0 ± {PROBABILITY_SUM_TOLERANCE}, got {total:.4f}")
        return self

    @property
    def favourite(self) -> Outcome:
        probs = {Outcome.HOME: self.home_prob, Outcome.DRAW: self.draw_prob, Outcome.AWAY: self.away_prob}
        return max(probs, key=probs.get)

    @property
    def favourite_percentage(self) -> int:
        return int(max(self.home_prob, self.draw_prob, self.away_prob) * 100)


class MatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    fixture_id: int = Field(..., gt=0)
    home_goals: int = Field(..., ge=0)
    away_goals: int = Field(..., ge=0)
    status: str = "FT"
    home_xg: Optional[float] = Field(None, ge=0.0)
    away_xg: Optional[float] = Field(None, ge=0.0)

    @field_validator("status")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def score(self) -> str:
        return format_score(self.home_goals, self.away_goals)

    @property
    def is_final(self) -> bool:
        return self.status in TERMINAL_STATUSES


class GradedPrediction(BaseModel):
    """Audit record of one graded prediction; never mutated after creation."""
    model_config = ConfigDict(frozen=True)

    predicted_score: str
    actual_score: str
    outcome_correct: bool
    exact_score_correct: bool
    verdict: XgVerdict
    home_xg: Optional[float] = None
    away_xg: Optional[float] = None
    prediction: Optional[StoredPrediction] = None
    result: Optional[MatchResult] = None

    @property
    def predicted_outcome(self) -> Outcome:
        return winner_from_score(self.predicted_score)

    @property
    def actual_outcome(self) -> Outcome:
        return winner_from_score(self.actual_score)

    def summary(self) -> str:
        if self.exact_score_correct:
            line = "exact score"
        elif self.outcome_correct:
            line = "correct outcome"
        else:
            line = "wrong outcome"
        text = f"predicted {self.predicted_score}, actual {self.actual_score}: {line}"
        if self.home_xg is not None and self.away_xg is not None:
            text += f" (xG {self.home_xg:.2f}-{self.away_xg:.2f}, {self.verdict.value.lower()})"
        return text


# ---------------------------------------------------------------------------
# Grading
# ---------------------------------------------------------------------------
def grade(
    predicted_score: str,
    actual_score: str,
    home_xg: float | None = None,
    away_xg: float | None = None,
) -> GradedPrediction:
    predicted = normalize_score(predicted_score)
    actual = normalize_score(actual_score)
    predicted_outcome = winner_from_score(predicted)
    actual_outcome = winner_from_score(actual)

    outcome_correct = predicted_outcome is actual_outcome
    verdict = xg_verdict(predicted_outcome, actual_outcome, home_xg, away_xg)

    return GradedPrediction(
        predicted_score=predicted,
        actual_score=actual,
        outcome_correct=outcome_correct,
        exact_score_correct=predicted == actual,
        verdict=verdict,
        home_xg=home_xg,
        away_xg=away_xg,
    )


def grade_prediction(prediction: StoredPrediction, result: MatchResult) -> GradedPrediction:
    """Grade a logged prediction once its fixture has finished."""
    if prediction.fixture_id != result.fixture_id:
        raise ValueError(f"prediction is for fixture {prediction.fixture_id}, result for {result.fixture_id}")
    if not result.is_final:
        raise ValueError(f"fixture {result.fixture_id} is not finished (status {result.status!r})")

    g = grade(prediction.predicted_score, result.score, result.home_xg, result.away_xg)
    log.info("graded fixture %d %s: %s", prediction.fixture_id, prediction.match_name, g.summary())
    return g.model_copy(update={"prediction": prediction, "result": result})


def grade_frame(df: pd.DataFrame, errors: str = "raise") -> pd.DataFrame:
    """Grade a batch of predictions.

    ``df`` needs ``predicted_score``, ``home_goals`` and ``away_goals``;
    ``home_xg``/``away_xg`` are optional.  With ``errors="skip"`` rows that
    cannot be graded are logged and dropped, otherwise the first bad row raises.

    Returns a copy with ``outcome_correct``, ``exact_score_correct`` and
    ``xg_verdict`` added.
    """
    if errors not in ("raise", "skip"):
        raise ValueError(f"errors must be 'raise' or 'skip', got {errors!r}")

    rows = []
    keep = []
    for pos, (idx, r) in enumerate(zip(df.index, df.itertuples(index=False))):
        try:
            hg, ag = safe_num(r.home_goals), safe_num(r.away_goals)
            if hg is None or ag is None:
                raise ValueError(f"missing final score for row {idx!r}")
            g = grade(
                str(r.predicted_score),
                format_score(int(hg), int(ag)),
                safe_num(getattr(r, "home_xg", None)),
                safe_num(getattr(r, "away_xg", None)),
            )
        except ValueError as e:
            if errors == "raise":
                raise
            log.warning("skipping row %r: %s", idx, e)
            continue
        keep.append(pos)
        rows.append((g.outcome_correct, g.exact_score_correct, g.verdict.value))

    out = df.iloc[keep].copy()
    out["outcome_correct"] = [r[0] for r in rows]
    out["exact_score_correct"] = [r[1] for r in rows]
    out["xg_verdict"] = [r[2] for r in rows]
    return out


def summarize_grades(graded: pd.DataFrame) -> dict:
    """Aggregate accuracy over a ``grade_frame`` result.

    When ``p_home``, ``p_draw`` and ``p_away`` columns are present, log loss
    and Brier score of the stored probabilities are included too.
    """
    n = len(graded)
    if n == 0:
        return {"n_predictions": 0, "status": "no_data"}

    n_correct = int(graded["outcome_correct"].sum())
    n_exact = int(graded["exact_score_correct"].sum())
    counts = graded["xg_verdict"].value_counts()

    summary = {
        "n_predictions": n,
        "n_correct": n_correct,
        "accuracy": n_correct / n,
        "exact_score_rate": n_exact / n,
        "verdicts": {v.value: int(counts.get(v.value, 0)) for v in XgVerdict},
    }

    if {"p_home", "p_draw", "p_away"}.issubset(graded.columns):
        total_logloss = 0.0
        total_brier = 0.0
        for r in graded.itertuples(index=False):
            probs = [float(r.p_home), float(r.p_draw), float(r.p_away)]
            actual = list(Outcome).index(winner_from_score(format_score(int(r.home_goals), int(r.away_goals))))
            total_logloss += -math.log(max(probs[actual], 1e-15))
            total_brier += sum((p - (1.0 if i == actual else 0.0)) ** 2 for i, p in enumerate(probs)) / 3
        summary["logloss"] = total_logloss / n
        summary["brier"] = total_brier / n

    return summary
