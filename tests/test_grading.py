"""Unit tests — retrospective grading and xG verdicts."""
import numpy as np
import pandas as pd
import pytest


def _prediction(**kw):
    from footcast.grading import StoredPrediction

    base = dict(fixture_id=101, match_name="Ajax vs PSV", predicted_score="2-0",
                home_prob=0.55, draw_prob=0.25, away_prob=0.20)
    base.update(kw)
    return StoredPrediction(**base)


class TestGrade:

    def test_dominant_home_win(self):
        from footcast.grading import XgVerdict, grade

        g = grade("2-0", "2-1", home_xg=2.6, away_xg=0.9)
        assert g.outcome_correct
        assert not g.exact_score_correct
        assert g.verdict is XgVerdict.DOMINANT

    def test_exact_score_after_normalisation(self):
        from footcast.grading import grade

        assert grade(" 1-1", "1-1").exact_score_correct

    def test_no_xg_is_neutral(self):
        from footcast.grading import XgVerdict, grade

        assert grade("2-0", "2-1").verdict is XgVerdict.NEUTRAL
        assert grade("2-0", "2-1", home_xg=2.0).verdict is XgVerdict.NEUTRAL

    @pytest.mark.parametrize("pred,actual,hxg,axg,expected", [
        ("2-0", "1-0", 0.6, 1.4, "LUCKY"),
        ("2-0", "0-1", 1.9, 0.7, "UNLUCKY"),
        ("2-0", "0-1", 1.2, 0.9, "NEUTRAL"),
        ("0-2", "0-1", 0.4, 1.5, "DOMINANT"),
        ("0-2", "0-1", 1.5, 0.4, "LUCKY"),
        ("0-2", "2-0", 0.4, 1.5, "UNLUCKY"),
        ("1-1", "0-0", 0.8, 0.9, "DOMINANT"),
        ("1-1", "2-2", 2.5, 0.9, "LUCKY"),
        ("1-1", "1-0", 1.0, 1.1, "UNLUCKY"),
        ("1-1", "1-0", 1.6, 1.0, "NEUTRAL"),
    ])
    def test_verdict_table(self, pred, actual, hxg, axg, expected):
        from footcast.grading import XgVerdict, grade

        assert grade(pred, actual, hxg, axg).verdict is XgVerdict(expected)

    def test_mirrored_fixture_mirrors_verdict(self):
        from footcast.grading import grade
        from footcast.utils import mirror_score

        rng = np.random.default_rng(17)
        for _ in range(300):
            pred = f"{rng.integers(0, 4)}-{rng.integers(0, 4)}"
            actual = f"{rng.integers(0, 4)}-{rng.integers(0, 4)}"
            hxg, axg = (float(x) for x in np.round(rng.uniform(0, 3.5, size=2), 2))

            g = grade(pred, actual, hxg, axg)
            m = grade(mirror_score(pred), mirror_score(actual), axg, hxg)
            assert g.verdict is m.verdict
            assert g.outcome_correct == m.outcome_correct
            assert g.exact_score_correct == m.exact_score_correct

    @pytest.mark.parametrize("pred,actual", [("2-0", "two-one"), ("2:0", "2-1"), ("", "1-1")])
    def test_unparseable_score_raises(self, pred, actual):
        from footcast.grading import grade

        with pytest.raises(ValueError):
            grade(pred, actual)

    def test_summary_text(self):
        from footcast.grading import grade

        text = grade("2-0", "2-1", 2.6, 0.9).summary()
        assert "correct outcome" in text and "dominant" in text


class TestGradePrediction:

    def test_finished_match(self):
        from footcast.grading import MatchResult, XgVerdict, grade_prediction

        pred = _prediction()
        res = MatchResult(fixture_id=101, home_goals=2, away_goals=1, status="ft", home_xg=2.6, away_xg=0.9)
        g = grade_prediction(pred, res)

        assert g.verdict is XgVerdict.DOMINANT
        assert g.prediction == pred
        assert g.result.score == "2-1"
        assert g.actual_score == "2-1"

    @pytest.mark.parametrize("status", ["NS", "1H", "HT", "PST"])
    def test_unfinished_match_rejected(self, status):
        from footcast.grading import MatchResult, grade_prediction

        with pytest.raises(ValueError, match="not finished"):
            grade_prediction(_prediction(), MatchResult(fixture_id=101, home_goals=0, away_goals=0, status=status))

    def test_fixture_mismatch_rejected(self):
        from footcast.grading import MatchResult, grade_prediction

        with pytest.raises(ValueError, match="fixture"):
            grade_prediction(_prediction(), MatchResult(fixture_id=102, home_goals=0, away_goals=0))

    def test_graded_record_immutable(self):
        from pydantic import ValidationError
        from footcast.grading import grade

        g = grade("1-0", "1-0")
        with pytest.raises(ValidationError):
            g.outcome_correct = False

    def test_stored_prediction_validation(self):
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            _prediction(home_prob=0.8, draw_prob=0.3, away_prob=0.2)
        with pytest.raises(ValidationError):
            _prediction(fixture_id=0)
        with pytest.raises(ValidationError):
            _prediction(predicted_score="2 - 0")
        with pytest.raises(ValidationError):
            _prediction(context_score=11.0)

    def test_favourite(self):
        from footcast.utils import Outcome

        p = _prediction(home_prob=0.2, draw_prob=0.3, away_prob=0.5)
        assert p.favourite is Outcome.AWAY
        assert p.favourite_percentage == 50


class TestGradeFrame:

    def test_grade_frame(self, predictions_df):
        from footcast.grading import grade_frame

        out = grade_frame(predictions_df)
        assert list(out["xg_verdict"]) == ["DOMINANT", "DOMINANT", "UNLUCKY", "LUCKY", "NEUTRAL"]
        assert list(out["outcome_correct"]) == [True, True, False, True, True]
        assert list(out["exact_score_correct"]) == [False, True, False, True, True]

    def test_summary(self, predictions_df):
        from footcast.grading import grade_frame, summarize_grades

        sm = summarize_grades(grade_frame(predictions_df))
        assert sm["n_predictions"] == 5
        assert sm["accuracy"] == pytest.approx(0.8)
        assert sm["exact_score_rate"] == pytest.approx(0.6)
        assert sm["verdicts"] == {"DOMINANT": 2, "LUCKY": 1, "UNLUCKY": 1, "NEUTRAL": 1}
        assert sm["logloss"] > 0
        assert 0 < sm["brier"] < 1

    def test_bad_rows(self, predictions_df):
        from footcast.grading import grade_frame

        df = pd.concat([predictions_df, pd.DataFrame([{"predicted_score": "??", "home_goals": 1, "away_goals": 0}])],
                       ignore_index=True)
        with pytest.raises(ValueError):
            grade_frame(df)
        out = grade_frame(df, errors="skip")
        assert len(out) == 5

    def test_bad_errors_argument(self, predictions_df):
        from footcast.grading import grade_frame

        with pytest.raises(ValueError):
            grade_frame(predictions_df, errors="ignore")

    def test_empty_summary(self):
        from footcast.grading import summarize_grades

        assert summarize_grades(pd.DataFrame())["status"] == "no_data"

    def test_duplicate_index(self, predictions_df):
        from footcast.grading import grade_frame

        doubled = pd.concat([predictions_df, predictions_df])
        out = grade_frame(doubled)
        assert len(out) == 10
        assert list(out["xg_verdict"]) == ["DOMINANT", "DOMINANT", "UNLUCKY", "LUCKY", "NEUTRAL"] * 2

    def test_duplicate_index_with_skipped_row(self, predictions_df):
        from footcast.grading import grade_frame

        bad = pd.DataFrame([{"predicted_score": "??", "home_goals": 1, "away_goals": 0}])
        out = grade_frame(pd.concat([predictions_df, bad, predictions_df]), errors="skip")
        assert len(out) == 10
        assert out["outcome_correct"].sum() == 8
