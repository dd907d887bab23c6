"""Shared utility functions used across footcast modules."""
from __future__ import annotations

import math
import re
from enum import Enum

_SCORE_RE = re.compile(r"^(\d+)-(\d+)$")


class Outcome(str, Enum):
    """Match outcome from the home side's point of view."""
    HOME = "HOME"
    DRAW = "DRAW"
    AWAY = "AWAY"

    @property
    def label(self) -> str:
        return {"HOME": "home win", "DRAW": "draw", "AWAY": "away win"}[self.value]

    def mirrored(self) -> "Outcome":
        if self is Outcome.HOME:
            return Outcome.AWAY
        if self is Outcome.AWAY:
            return Outcome.HOME
        return self


class ScoreParseError(ValueError):
    """Raised when a scoreline is not of the form ``H-A``."""


def safe_num(v) -> float | None:
    """Convert a value to float, returning None for NaN/Inf/empty/invalid."""
    try:
        if v is None:
            return None
        if isinstance(v, str) and v.strip() == "":
            return None
        result = float(v)
        if math.isnan(result) or math.isinf(result):
            return None
        return result
    except Exception:
        return None


def outcome_label(home_goals: int, away_goals: int) -> int:
    """Return match outcome: 0 = Home win, 1 = Draw, 2 = Away win."""
    if home_goals > away_goals:
        return 0
    if home_goals == away_goals:
        return 1
    return 2


def parse_score(score: str) -> tuple[int, int]:
    """Parse ``"H-A"`` into ``(home_goals, away_goals)``.

    Surrounding whitespace is ignored.  Anything else (negative numbers,
    spaces around the dash, missing side, non-strings) raises
    :class:`ScoreParseError`.
    """
    if not isinstance(score, str):
        raise ScoreParseError(f"Score must be a string like '2-1', got {score!r}")
    m = _SCORE_RE.match(score.strip())
    if m is None:
        raise ScoreParseError(f"Score must be in format 'H-A' (e.g. '2-1'), got {score!r}")
    return int(m.group(1)), int(m.group(2))


def format_score(home_goals: int, away_goals: int) -> str:
    if home_goals < 0 or away_goals < 0:
        raise ScoreParseError(f"Goals must be non-negative, got {home_goals}-{away_goals}")
    return f"{int(home_goals)}-{int(away_goals)}"


def normalize_score(score: str) -> str:
    """Canonical form of a scoreline, e.g. ``" 02-1"`` -> ``"2-1"``."""
    return format_score(*parse_score(score))


def winner_from_score(score: str) -> Outcome:
    """Winning side of a scoreline; malformed input raises, never defaults to a draw."""
    hg, ag = parse_score(score)
    return (Outcome.HOME, Outcome.DRAW, Outcome.AWAY)[outcome_label(hg, ag)]


def mirror_score(score: str) -> str:
    hg, ag = parse_score(score)
    return format_score(ag, hg)
