"""
Pydantic schemas for the AI assessment payload.

Two shapes of AIResponse exist in stored history:
- current: ``riskScores`` with four numeric scores in [0, 1]
- legacy: a single categorical ``urgency`` (High/Medium/Low/Normal)

Both are accepted here; services.risk_display decides how to present them.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LabResults(BaseModel):
    """Optional lab values. A value of 0 means "not entered"."""
    model_config = ConfigDict(populate_by_name=True)

    systolic_bp: Optional[float] = Field(None, alias="systolicBp", description="Systolic blood pressure (mmHg)", examples=[120])
    diastolic_bp: Optional[float] = Field(None, alias="diastolicBp", description="Diastolic blood pressure (mmHg)", examples=[80])
    fasting_glucose: Optional[float] = Field(None, alias="fastingGlucose", description="Fasting glucose (mg/dL)", examples=[90])
    hb: Optional[float] = Field(None, description="Hemoglobin (g/dL)", examples=[11.5])


class RiskScores(BaseModel):
    """Four independent likelihoods produced by the assessment model."""
    model_config = ConfigDict(populate_by_name=True)

    # Absent or null in some stored documents; new replies always carry it.
    overall_risk: Optional[float] = Field(None, alias="overallRisk", ge=0, le=1)
    preeclampsia_risk: Optional[float] = Field(None, alias="preeclampsiaRisk", ge=0, le=1)
    gdm_risk: Optional[float] = Field(None, alias="gdmRisk", ge=0, le=1)
    anemia_risk: Optional[float] = Field(None, alias="anemiaRisk", ge=0, le=1)


class AIResponse(BaseModel):
    """Assessment payload attached to every stored record."""
    model_config = ConfigDict(populate_by_name=True)

    risk_scores: Optional[RiskScores] = Field(None, alias="riskScores")
    urgency: Optional[str] = Field(None, description="Legacy categorical urgency")
    brief_summary: str = Field("", description="2-3 sentence summary in Arabic")
    detailed_report: str = Field("", description="Markdown report in Arabic")
    extracted_labs: LabResults = Field(default_factory=LabResults)


class RiskDisplay(BaseModel):
    """How a record's risk is shown in every view (home, admin table, exports)."""
    model_config = ConfigDict(populate_by_name=True)

    label: str = Field(..., description="Bucket name, legacy urgency, or N/A", examples=["Low"])
    style: str = Field(..., description="high | moderate | low | normal | neutral | none", examples=["low"])
    score_text: str = Field("", alias="scoreText", description="Overall risk as a percentage", examples=["30%"])
