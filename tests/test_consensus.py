"""Unit tests — consensus reconciliation of the three engines."""
import logging

import numpy as np
import pytest


class TestAgreementTier:

    @pytest.mark.parametrize("scores,expected", [
        (["1-0", "1-0", "1-0"], "HIGH"),
        (["1-0", "1-0", None], "HIGH"),
        (["1-0", None, "1-0"], "HIGH"),
        (["1-0", "1-0", "2-0"], "MEDIUM"),
        (["1-0", "2-0", "3-0"], "LOW"),
        (["1-0", "2-0", None], "LOW"),
        (["1-0", None, None], "LOW"),
    ])
    def test_tiers(self, scores, expected):
        from footcast.models.consensus import AgreementTier, agreement_tier
        assert agreement_tier(scores) is AgreementTier(expected)

    def test_equal_scores_always_high(self):
        from footcast.models.consensus import AgreementTier, agreement_tier

        rng = np.random.default_rng(3)
        for h, a in rng.integers(0, 6, size=(30, 2)):
            s = f"{h}-{a}"
            assert agreement_tier([s, s, s]) is AgreementTier.HIGH

    def test_malformed_score_raises(self):
        from footcast.models.consensus import agreement_tier
        from footcast.utils import ScoreParseError

        with pytest.raises(ScoreParseError):
            agreement_tier(["1-0", "one-nil", None])


class TestHelpers:

    def test_discrepancy(self):
        from footcast.models.consensus import confidence_discrepancy

        assert confidence_discrepancy([70, 55, None]) == 15
        assert confidence_discrepancy([70, None, None]) == 0
        assert confidence_discrepancy([10, 90, 50]) == 80

    def test_narrative_outcome_level(self):
        from footcast.models.consensus import disagreement_narrative

        msg = disagreement_narrative("1-0", "0-2")
        assert "outcomes differ" in msg
        assert "home win" in msg and "away win" in msg

    def test_narrative_score_level(self):
        from footcast.models.consensus import disagreement_narrative

        msg = disagreement_narrative("2-1", "1-0")
        assert "score" in msg and "outcomes differ" not in msg

    def test_narrative_simulation_outranks_context(self):
        from footcast.models.consensus import disagreement_narrative

        msg = disagreement_narrative("2-1", "1-0", "0-0")
        assert "simulation" in msg

    def test_narrative_context(self, caplog):
        from footcast.models.consensus import disagreement_narrative

        with caplog.at_level(logging.WARNING, logger="footcast.models.consensus"):
            msg = disagreement_narrative("2-1", "2-1", "1-1")
        assert "context analysis" in msg
        assert "disagree" in caplog.text

    def test_narrative_none_when_agreeing(self):
        from footcast.models.consensus import disagreement_narrative

        assert disagreement_narrative("2-1", "2-1", "3-1") is None
        assert disagreement_narrative("2-1") is None

    def test_consensus_score_bounds(self):
        from footcast.models.consensus import AgreementTier, EngineWeights, consensus_score

        even = EngineWeights(rule=1 / 3, simulation=1 / 3, context=1 / 3)
        assert consensus_score(AgreementTier.HIGH, 0, even) == 100
        skewed = EngineWeights(rule=1.0, simulation=0.0, context=0.0)
        assert consensus_score(AgreementTier.LOW, 100, skewed) == 0

    def test_weights_balanced(self):
        from footcast.models.consensus import EngineWeights

        assert EngineWeights(rule=0.4, simulation=0.3, context=0.3).is_balanced
        assert not EngineWeights(rule=0.8, simulation=0.1, context=0.1).is_balanced


class TestReconcile:

    def test_agreeing_rule_and_simulation(self, rule, simulation):
        from footcast.models.consensus import AgreementTier, reconcile

        res = reconcile(rule, simulation)

        assert res.tier is AgreementTier.HIGH
        assert res.discrepancy == 15
        assert res.narrative is None
        assert res.weights.rule == pytest.approx(0.336 / 0.651)
        assert res.weights.simulation == pytest.approx(0.165 / 0.651)
        assert res.weights.context == pytest.approx(0.15 / 0.651)
        assert res.consensus_score == 89
        assert res.consensus_score >= 75
        assert res.consensus_prediction == "2-1"
        assert res.has_outcome_agreement

    def test_opposite_outcomes(self, make_rule, make_simulation):
        from footcast.models.consensus import AgreementTier, reconcile

        res = reconcile(make_rule(score="1-0"),
                        make_simulation(home_win=0.3, draw=0.2, away_win=0.5, most_likely_score="0-2"))

        assert res.tier is AgreementTier.LOW
        assert "outcomes differ" in res.narrative
        assert res.consensus_prediction == "VARIABLE"
        assert not res.has_outcome_agreement

    def test_three_engines_medium(self, rule, simulation, make_context):
        from footcast.models.consensus import AgreementTier, reconcile

        res = reconcile(rule, simulation, make_context(scores=(6, 7), predicted_score="1-1"))

        assert res.tier is AgreementTier.MEDIUM
        assert res.context_score == "1-1"
        assert res.consensus_prediction == "2-1"
        assert "context analysis" in res.narrative

    def test_rule_only(self, rule):
        from footcast.models.consensus import AgreementTier, reconcile

        res = reconcile(rule)
        assert res.tier is AgreementTier.LOW
        assert res.discrepancy == 0
        assert res.simulation_score is None
        assert res.consensus_prediction == "2-1"

    def test_context_without_score_still_weighted(self, rule, simulation, make_context):
        from footcast.models.consensus import AgreementTier, reconcile

        ctx = make_context(scores=(9, 9))
        res = reconcile(rule, simulation, ctx)
        assert res.tier is AgreementTier.HIGH
        assert res.discrepancy == 90 - 55
        assert sum(res.weights.as_tuple()) == pytest.approx(1.0)

    def test_source_quality_lowers_rule_weight(self, make_rule, simulation):
        from footcast.models.consensus import reconcile

        official = reconcile(make_rule(source="API_OFFICIAL"), simulation)
        fallback = reconcile(make_rule(source="DEFAULT"), simulation)
        assert fallback.weights.rule < official.weights.rule

    def test_score_clamped_at_zero(self, make_rule, make_simulation):
        from footcast.models.consensus import reconcile

        res = reconcile(make_rule(score="3-0", confidence=100),
                        make_simulation(home_win=0.0, draw=0.5, away_win=0.5, most_likely_score="0-1"))
        assert res.discrepancy == 100
        assert res.consensus_score == 0

    def test_accepts_mappings(self):
        from footcast.models.consensus import reconcile

        res = reconcile({"score": "1-1", "confidence": 50, "power_home": 100, "power_away": 100},
                        {"home_win": 0.3, "draw": 0.4, "away_win": 0.3, "most_likely_score": "1-1"})
        assert res.tier.value == "HIGH"

    def test_invalid_input_stops_pipeline(self):
        from pydantic import ValidationError
        from footcast.models.consensus import reconcile

        with pytest.raises(ValidationError):
            reconcile({"score": "1-1", "confidence": 150, "power_home": 100, "power_away": 100})

    def test_random_inputs_stay_bounded(self, make_rule, make_simulation, make_context):
        from footcast.models.consensus import reconcile

        rng = np.random.default_rng(2024)
        for _ in range(200):
            p = rng.dirichlet([1, 1, 1])
            res = reconcile(
                make_rule(score=f"{rng.integers(0, 4)}-{rng.integers(0, 4)}",
                          confidence=int(rng.integers(0, 101)),
                          source=str(rng.choice(["API_OFFICIAL", "CALCULATED", "PREVIOUS_SEASON", "DEFAULT"]))),
                make_simulation(home_win=float(p[0]), draw=float(p[1]), away_win=float(p[2]),
                                most_likely_score=f"{rng.integers(0, 4)}-{rng.integers(0, 4)}"),
                make_context(scores=tuple(int(x) for x in rng.integers(1, 11, size=3)),
                             predicted_score=f"{rng.integers(0, 4)}-{rng.integers(0, 4)}"),
            )
            assert 0 <= res.consensus_score <= 100
            assert 0 <= res.discrepancy <= 100
            assert sum(res.weights.as_tuple()) == pytest.approx(1.0)
