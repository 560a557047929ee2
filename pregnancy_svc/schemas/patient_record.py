"""
Pydantic schemas for patient records.

Field names on the wire (and in stored documents) are camelCase; Python code
uses the snake_case attribute names. Both are accepted on input.

Range checks live in services.validation so that every violated field is
reported in one response; these models only enforce shape and types.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.ai_response import AIResponse, LabResults, RiskDisplay


class PersonalInfo(BaseModel):
    """Patient identity as entered on the first assessment step."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Patient full name", examples=["سارة أحمد"])
    age: int = Field(..., description="Age in years", examples=[30])
    pregnancy_week: Optional[int] = Field(
        None,
        alias="pregnancyWeek",
        ge=4,
        le=42,
        description="Current gestational week",
        examples=[24]
    )


class PregnancyHistory(BaseModel):
    """Obstetric history: gravidity, parity and abortions (G/P/A)."""
    g: int = Field(..., description="Gravidity (number of pregnancies)", examples=[2])
    p: int = Field(..., description="Parity (number of births)", examples=[1])
    a: int = Field(..., description="Number of abortions/miscarriages", examples=[0])


class MeasurementData(BaseModel):
    """Body measurements."""
    model_config = ConfigDict(populate_by_name=True)

    height: float = Field(..., description="Height in cm", examples=[165])
    pre_pregnancy_weight: float = Field(..., alias="prePregnancyWeight", description="Weight before pregnancy in kg", examples=[60])
    current_weight: float = Field(..., alias="currentWeight", description="Current weight in kg", examples=[68])


class Symptoms(BaseModel):
    """
    Symptom checklist grouped by the condition each flag points to.

    - Preeclampsia: headache, vision changes, upper abdominal pain, swelling
    - Gestational diabetes: excessive thirst, frequent urination
    - Anemia: fatigue, dizziness, shortness of breath
    """
    model_config = ConfigDict(populate_by_name=True)

    headache: bool = False
    vision_changes: bool = Field(False, alias="visionChanges")
    upper_abdominal_pain: bool = Field(False, alias="upperAbdominalPain")
    swelling: bool = False

    excessive_thirst: bool = Field(False, alias="excessiveThirst")
    frequent_urination: bool = Field(False, alias="frequentUrination")

    fatigue: bool = False
    dizziness: bool = False
    shortness_of_breath: bool = Field(False, alias="shortnessOfBreath")

    other_symptoms: str = Field("", alias="otherSymptoms")


class AssessmentInput(BaseModel):
    """
    A candidate record: everything the patient submits for assessment.

    The id, timestamp and AI response are added by the service.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "personalInfo": {"name": "سارة أحمد", "age": 25},
                "pregnancyHistory": {"g": 2, "p": 1, "a": 0},
                "measurementData": {"height": 165, "prePregnancyWeight": 60, "currentWeight": 68},
                "symptoms": {"headache": False, "otherSymptoms": ""},
                "labResults": {},
                "ocrText": "",
            }
        },
    )

    personal_info: PersonalInfo = Field(..., alias="personalInfo")
    pregnancy_history: PregnancyHistory = Field(..., alias="pregnancyHistory")
    measurement_data: MeasurementData = Field(..., alias="measurementData")
    symptoms: Symptoms = Field(default_factory=Symptoms)
    lab_results: LabResults = Field(default_factory=LabResults, alias="labResults")
    ocr_text: Optional[str] = Field(None, alias="ocrText", description="Text recognized from an uploaded lab report")
    known_diagnosis: bool = Field(False, alias="knownDiagnosis")


class NewPatientRecord(AssessmentInput):
    """A complete record ready to be stored, without id and timestamp."""
    user_id: Optional[str] = Field(None, alias="userId")
    ai_response: AIResponse = Field(default_factory=AIResponse, alias="aiResponse")


class PatientRecord(NewPatientRecord):
    """A stored patient record."""
    id: str = Field(..., description="Record identifier")
    user_id: str = Field(..., alias="userId")
    timestamp: datetime = Field(..., description="Server-assigned creation time (UTC)")


class PatientRecordView(PatientRecord):
    """A stored record together with its reconciled risk display."""
    risk_display: RiskDisplay = Field(..., alias="riskDisplay")


class ValidationReport(BaseModel):
    """Result of validating a candidate record without assessing it."""
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(..., alias="isValid")
    field_errors: dict = Field(default_factory=dict, alias="fieldErrors")
