"""
Reconciliation of current and legacy AI responses.

Stored history contains two shapes of AIResponse: numeric riskScores (current)
and a single categorical urgency (older records). classify_assessment() turns
either into one of three variants, and risk_display() renders every variant.
All views (home summary, admin table, CSV export, prompt context) go through
these two functions so the precedence is decided in one place:

    riskScores.overallRisk  >  legacy urgency  >  nothing
"""
from dataclasses import dataclass
from typing import Optional, Union

from schemas.ai_response import AIResponse, RiskDisplay, RiskScores


@dataclass(frozen=True)
class ScoredAssessment:
    overall_risk: float
    scores: RiskScores


@dataclass(frozen=True)
class LegacyUrgencyAssessment:
    urgency: str


@dataclass(frozen=True)
class NoAssessment:
    pass


Assessment = Union[ScoredAssessment, LegacyUrgencyAssessment, NoAssessment]

# (lower bound, label, style), checked top-down
RISK_BUCKETS = (
    (0.75, "High", "high"),
    (0.5, "Moderate", "moderate"),
    (0.25, "Low", "low"),
)
NORMAL_BUCKET = ("Normal", "normal")
LEGACY_STYLE = "neutral"
NOT_AVAILABLE = "N/A"


def classify_assessment(ai_response: Optional[AIResponse]) -> Assessment:
    """Pick the variant of an AI response, preferring numeric scores."""
    if ai_response is None:
        return NoAssessment()
    if ai_response.risk_scores is not None and ai_response.risk_scores.overall_risk is not None:
        return ScoredAssessment(
            overall_risk=ai_response.risk_scores.overall_risk,
            scores=ai_response.risk_scores
        )
    if ai_response.urgency:
        return LegacyUrgencyAssessment(urgency=ai_response.urgency)
    return NoAssessment()


def risk_bucket(score: float) -> tuple:
    """Return (label, style) for an overall risk score."""
    for lower, label, style in RISK_BUCKETS:
        if score >= lower:
            return label, style
    return NORMAL_BUCKET


def risk_display(ai_response: Optional[AIResponse]) -> RiskDisplay:
    """Render an AI response for display."""
    assessment = classify_assessment(ai_response)

    if isinstance(assessment, ScoredAssessment):
        label, style = risk_bucket(assessment.overall_risk)
        return RiskDisplay(
            label=label,
            style=style,
            score_text=f"{assessment.overall_risk * 100:.0f}%"
        )
    if isinstance(assessment, LegacyUrgencyAssessment):
        # Legacy values are shown verbatim, never mapped onto the buckets
        return RiskDisplay(label=assessment.urgency, style=LEGACY_STYLE, score_text="")
    if isinstance(assessment, NoAssessment):
        return RiskDisplay(label=NOT_AVAILABLE, style="none", score_text="")

    raise TypeError(f"Unhandled assessment variant: {assessment!r}")


def risk_indicator(ai_response: Optional[AIResponse]) -> str:
    """
    Short risk text for prompt context.

    overallRisk to two decimals, else the legacy urgency, else N/A.
    """
    assessment = classify_assessment(ai_response)
    if isinstance(assessment, ScoredAssessment):
        return f"{assessment.overall_risk:.2f}"
    if isinstance(assessment, LegacyUrgencyAssessment):
        return assessment.urgency
    return NOT_AVAILABLE
