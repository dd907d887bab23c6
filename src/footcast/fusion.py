"""
Signal fusion: turn partially-missing match statistics into model inputs.

Each team is resolved on its own through the fallback chain

    1. expected goals present  -> 0.7 * xG + 0.3 * goals   ("XG" / "XG_PARTIAL")
    2. shots on target > 0     -> shots_on_target / 3.0    ("SHOTS")
    3. otherwise               -> goals                    ("GOALS")

A recorded xG of 0.0 is a real measurement (the side created nothing) and
stays on the xG branch.  Only a missing value falls through to the shot and
goal proxies, and one side missing xG never drags the other side off it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from footcast.utils import safe_num

log = logging.getLogger(__name__)

XG_WEIGHT = 0.7
GOALS_WEIGHT = 0.3
SHOTS_PER_GOAL = 3.0

SOURCE_XG = "XG"
SOURCE_XG_PARTIAL = "XG_PARTIAL"
SOURCE_SHOTS = "SHOTS"
SOURCE_GOALS = "GOALS"


class TeamMatchStats(BaseModel):
    """Raw statistics for one side of one fixture; every metric may be missing."""
    model_config = ConfigDict(frozen=True)

    goals: int = Field(..., ge=0)
    xg: Optional[float] = Field(None, ge=0.0)
    shots_on_target: Optional[int] = Field(None, ge=0)
    shots_total: Optional[int] = Field(None, ge=0)

    @property
    def has_xg(self) -> bool:
        return self.xg is not None


@dataclass(frozen=True)
class FusedScore:
    score: float
    source: str


@dataclass(frozen=True)
class FusedFixture:
    home: FusedScore
    away: FusedScore

    @property
    def sources(self) -> tuple[str, str]:
        return (self.home.source, self.away.source)

    @property
    def as_tuple(self) -> tuple[float, float]:
        return (self.home.score, self.away.score)


def fuse_team(stats: TeamMatchStats, opponent_has_xg: bool) -> FusedScore:
    """Resolve a single team's model input score and its provenance tag."""
    if stats.xg is not None:
        score = XG_WEIGHT * stats.xg + GOALS_WEIGHT * stats.goals
        source = SOURCE_XG if opponent_has_xg else SOURCE_XG_PARTIAL
    elif stats.shots_on_target is not None and stats.shots_on_target > 0:
        score = stats.shots_on_target / SHOTS_PER_GOAL
        source = SOURCE_SHOTS
    else:
        score = float(stats.goals)
        source = SOURCE_GOALS
    log.debug("fused team input %.3f from %s", score, source)
    return FusedScore(score=float(score), source=source)


def fuse_fixture(home: TeamMatchStats, away: TeamMatchStats) -> FusedFixture:
    return FusedFixture(
        home=fuse_team(home, opponent_has_xg=away.has_xg),
        away=fuse_team(away, opponent_has_xg=home.has_xg),
    )


def _int_or_none(v) -> int | None:
    x = safe_num(v)
    return None if x is None else int(x)


def fuse_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Fuse a batch of fixtures.

    ``df`` needs ``home_goals`` and ``away_goals``; ``home_xg``, ``away_xg``,
    ``home_sot``, ``away_sot``, ``home_shots`` and ``away_shots`` are optional
    and may hold NaN/None for missing data.

    Returns a copy with ``home_input``, ``away_input``, ``home_source`` and
    ``away_source`` columns added.
    """
    out = df.copy()
    n = len(out)
    home_in = [0.0] * n
    away_in = [0.0] * n
    home_src = [""] * n
    away_src = [""] * n

    for i, r in enumerate(out.itertuples(index=False)):
        h = TeamMatchStats(
            goals=int(r.home_goals),
            xg=safe_num(getattr(r, "home_xg", None)),
            shots_on_target=_int_or_none(getattr(r, "home_sot", None)),
            shots_total=_int_or_none(getattr(r, "home_shots", None)),
        )
        a = TeamMatchStats(
            goals=int(r.away_goals),
            xg=safe_num(getattr(r, "away_xg", None)),
            shots_on_target=_int_or_none(getattr(r, "away_sot", None)),
            shots_total=_int_or_none(getattr(r, "away_shots", None)),
        )
        fx = fuse_fixture(h, a)
        home_in[i], away_in[i] = fx.as_tuple
        home_src[i], away_src[i] = fx.sources

    out["home_input"] = home_in
    out["away_input"] = away_in
    out["home_source"] = home_src
    out["away_source"] = away_src
    return out
