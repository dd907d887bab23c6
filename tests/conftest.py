"""
Shared fixtures for the footcast test suite.

Provides:
    - Environment defaults so config.settings() is deterministic
    - Record factories for the three forecast engines, strengths and results
"""
from __future__ import annotations

import os

import pandas as pd
import pytest

# ---------------------------------------------------------------------------
# Pin settings BEFORE any footcast imports so a developer .env cannot leak in
# ---------------------------------------------------------------------------
os.environ.setdefault("FOOTCAST_KELLY_FRACTION", "0.25")
os.environ.setdefault("FOOTCAST_KELLY_CAP", "0.25")
os.environ.setdefault("FOOTCAST_DC_RHO", "-0.13")
os.environ.setdefault("FOOTCAST_MAX_GOALS", "10")
os.environ.setdefault("FOOTCAST_LOG_LEVEL", "WARNING")


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------
def _make_rule(score="2-1", confidence=70, power_home=120, power_away=90,
               source="API_OFFICIAL", **kw):
    from footcast.models.forecasts import ForecastSummary

    return ForecastSummary(score=score, confidence=confidence, power_home=power_home,
                           power_away=power_away, source=source, **kw)


def _make_simulation(home_win=0.55, draw=0.25, away_win=0.20, most_likely_score="2-1", **kw):
    from footcast.models.forecasts import SimulationSummary

    return SimulationSummary(home_win=home_win, draw=draw, away_win=away_win,
                             most_likely_score=most_likely_score, **kw)


def _make_context(scores=(6, 7), predicted_score=None, **kw):
    from footcast.models.forecasts import ContextCategory, ContextFactor, ContextSummary

    cats = list(ContextCategory)
    factors = tuple(ContextFactor(category=cats[i % len(cats)], score=s) for i, s in enumerate(scores))
    return ContextSummary(factors=factors, predicted_score=predicted_score, **kw)


def _make_strength(**kw):
    from footcast.models.strength import TeamStrength

    base = dict(home_attack=1.2, home_defense=0.9, away_attack=1.0, away_defense=1.1,
                home_advantage=1.1, league_avg_home_goals=1.5, league_avg_away_goals=1.2,
                confidence=0.8)
    base.update(kw)
    return TeamStrength(**base)


@pytest.fixture()
def rule():
    return _make_rule()


@pytest.fixture()
def simulation():
    return _make_simulation()


@pytest.fixture()
def strength():
    return _make_strength()


@pytest.fixture()
def predictions_df():
    """Five logged predictions with final scores; one lacks xG."""
    return pd.DataFrame([
        {"predicted_score": "2-0", "home_goals": 2, "away_goals": 1, "home_xg": 2.6, "away_xg": 0.9,
         "p_home": 0.6, "p_draw": 0.25, "p_away": 0.15},
        {"predicted_score": "1-1", "home_goals": 1, "away_goals": 1, "home_xg": 1.1, "away_xg": 1.0,
         "p_home": 0.35, "p_draw": 0.35, "p_away": 0.30},
        {"predicted_score": "0-1", "home_goals": 2, "away_goals": 0, "home_xg": 0.4, "away_xg": 1.6,
         "p_home": 0.25, "p_draw": 0.25, "p_away": 0.50},
        {"predicted_score": "1-0", "home_goals": 1, "away_goals": 0, "home_xg": 0.5, "away_xg": 1.5,
         "p_home": 0.5, "p_draw": 0.3, "p_away": 0.2},
        {"predicted_score": "3-1", "home_goals": 3, "away_goals": 1, "home_xg": None, "away_xg": None,
         "p_home": 0.7, "p_draw": 0.2, "p_away": 0.1},
    ])


# Factories as fixtures, for tests that need non-default records
@pytest.fixture()
def make_rule():
    return _make_rule


@pytest.fixture()
def make_simulation():
    return _make_simulation


@pytest.fixture()
def make_context():
    return _make_context


@pytest.fixture()
def make_strength():
    return _make_strength
