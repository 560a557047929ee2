"""
Tests for reconciling current and legacy AI responses into one display.
"""
import pytest

from schemas import AIResponse
from services.risk_display import (
    LegacyUrgencyAssessment,
    NoAssessment,
    ScoredAssessment,
    classify_assessment,
    risk_bucket,
    risk_display,
    risk_indicator,
)


def scored(overall, **others):
    return AIResponse.model_validate({"riskScores": {"overallRisk": overall, **others}})


def legacy(urgency):
    return AIResponse.model_validate({"urgency": urgency})


# =============================================================================
# Classification
# =============================================================================

class TestClassifyAssessment:

    def test_scored(self):
        assessment = classify_assessment(scored(0.4, gdmRisk=0.2))
        assert isinstance(assessment, ScoredAssessment)
        assert assessment.overall_risk == 0.4
        assert assessment.scores.gdm_risk == 0.2

    def test_legacy(self):
        assert classify_assessment(legacy("High")) == LegacyUrgencyAssessment(urgency="High")

    def test_scores_take_precedence_over_urgency(self):
        response = AIResponse.model_validate({"riskScores": {"overallRisk": 0.1}, "urgency": "High"})
        assert isinstance(classify_assessment(response), ScoredAssessment)

    def test_scores_without_overall_risk_fall_back_to_urgency(self):
        for scores in ({}, {"overallRisk": None}, {"gdmRisk": 0.4}):
            response = AIResponse.model_validate({"riskScores": scores, "urgency": "Medium"})
            assert classify_assessment(response) == LegacyUrgencyAssessment(urgency="Medium")

    def test_scores_without_overall_risk_or_urgency(self):
        response = AIResponse.model_validate({"riskScores": {}})
        assert isinstance(classify_assessment(response), NoAssessment)

    def test_empty_response(self):
        assert isinstance(classify_assessment(AIResponse()), NoAssessment)

    def test_missing_response(self):
        assert isinstance(classify_assessment(None), NoAssessment)


# =============================================================================
# Buckets
# =============================================================================

@pytest.mark.parametrize("score,expected", [
    (1.0, ("High", "high")),
    (0.75, ("High", "high")),
    (0.7499, ("Moderate", "moderate")),
    (0.5, ("Moderate", "moderate")),
    (0.4999, ("Low", "low")),
    (0.25, ("Low", "low")),
    (0.2499, ("Normal", "normal")),
    (0.0, ("Normal", "normal")),
])
def test_risk_bucket_boundaries(score, expected):
    assert risk_bucket(score) == expected


# =============================================================================
# Display
# =============================================================================

class TestRiskDisplay:

    def test_scored_shows_percentage(self):
        display = risk_display(scored(0.3))
        assert display.label == "Low"
        assert display.style == "low"
        assert display.score_text == "30%"

    def test_percentage_is_rounded(self):
        assert risk_display(scored(0.756)).score_text == "76%"

    @pytest.mark.parametrize("urgency", ["High", "Medium", "Low", "Normal"])
    def test_legacy_urgency_shown_verbatim(self, urgency):
        display = risk_display(legacy(urgency))
        assert display.label == urgency
        assert display.style == "neutral"
        assert display.score_text == ""

    def test_legacy_medium_is_not_mapped_to_moderate(self):
        assert risk_display(legacy("Medium")).label == "Medium"

    def test_nothing_available(self):
        display = risk_display(AIResponse())
        assert display.label == "N/A"
        assert display.style == "none"


class TestRiskIndicator:

    def test_scored_two_decimals(self):
        assert risk_indicator(scored(0.3)) == "0.30"

    def test_legacy(self):
        assert risk_indicator(legacy("Medium")) == "Medium"

    def test_nothing(self):
        assert risk_indicator(AIResponse()) == "N/A"
