"""
Tests for finding triage.
"""

import pytest

from conftest import make_finding
from dlp_remediator.models import Decision, RemediationAction, SeverityThreshold
from dlp_remediator.triage.decision_engine import DecisionEngine


def expected_skip(score: int, threshold: SeverityThreshold) -> bool:
    return (score < 2 and threshold != SeverityThreshold.LOW) or (
        score < 3 and threshold == SeverityThreshold.HIGH
    )


class TestCategoryFilter:
    """Only classification findings are eligible."""

    @pytest.mark.parametrize("category", ["POLICY", "classification", ""])
    def test_non_classification_is_skipped(self, category):
        engine = DecisionEngine({"X": RemediationAction.AUTO}, SeverityThreshold.LOW)
        finding = make_finding(category=category, score=3, finding_type="X")

        assert engine.decide(finding) == Decision.SKIP

    def test_non_classification_skipped_even_without_score(self):
        engine = DecisionEngine({}, SeverityThreshold.LOW)
        finding = make_finding(category="POLICY", score=None)

        assert engine.decide(finding) == Decision.SKIP


class TestSeverityThreshold:
    """Tests for the severity comparison rule."""

    @pytest.mark.parametrize("threshold", list(SeverityThreshold))
    @pytest.mark.parametrize("score", [0, 1, 2, 3, 4])
    def test_skip_rule_for_every_pair(self, score, threshold):
        engine = DecisionEngine({}, threshold)
        finding = make_finding(score=score)

        decision = engine.decide(finding)

        if expected_skip(score, threshold):
            assert decision == Decision.SKIP
        else:
            assert decision != Decision.SKIP

    def test_medium_and_high_filter_identically_from_three(self):
        medium = DecisionEngine({}, SeverityThreshold.MEDIUM)
        high = DecisionEngine({}, SeverityThreshold.HIGH)

        for score in (3, 4, 5):
            assert medium.passes_threshold(score) == high.passes_threshold(score) is True

    def test_missing_score_passes(self):
        engine = DecisionEngine({}, SeverityThreshold.HIGH)

        assert engine.decide(make_finding(score=None)) == Decision.MANUAL

    def test_threshold_accepts_plain_string(self):
        engine = DecisionEngine({}, "HIGH")

        assert engine.threshold == SeverityThreshold.HIGH


class TestPolicyLookup:
    """Tests for AUTO vs MANUAL routing."""

    def test_auto_type(self):
        engine = DecisionEngine({"X": RemediationAction.AUTO}, SeverityThreshold.LOW)

        assert engine.decide(make_finding(score=5, finding_type="X")) == Decision.AUTO

    def test_manual_type(self):
        engine = DecisionEngine({"X": RemediationAction.MANUAL}, SeverityThreshold.LOW)

        assert engine.decide(make_finding(score=5, finding_type="X")) == Decision.MANUAL

    def test_unmapped_type_is_manual(self):
        engine = DecisionEngine({"X": RemediationAction.AUTO}, SeverityThreshold.LOW)

        assert engine.decide(make_finding(score=5, finding_type="Y")) == Decision.MANUAL

    def test_auto_type_below_threshold_is_skipped(self):
        engine = DecisionEngine({"X": RemediationAction.AUTO}, SeverityThreshold.HIGH)

        assert engine.decide(make_finding(score=2, finding_type="X")) == Decision.SKIP

    def test_action_for_without_type(self):
        engine = DecisionEngine({"X": RemediationAction.AUTO}, SeverityThreshold.LOW)

        assert engine.action_for(None) == RemediationAction.MANUAL
