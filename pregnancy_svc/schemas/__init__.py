"""
Pydantic schemas for API request/response validation and stored documents.
"""
from schemas.ai_response import AIResponse, LabResults, RiskScores, RiskDisplay
from schemas.patient_record import (
    PersonalInfo,
    PregnancyHistory,
    MeasurementData,
    Symptoms,
    AssessmentInput,
    NewPatientRecord,
    PatientRecord,
    PatientRecordView,
    ValidationReport,
)
from schemas.user import Role, UserProfile, SessionSync, IdentityErrorMessage
from schemas.upload import OcrResponse, ChatMessageRequest

__all__ = [
    # AI response schemas
    "AIResponse",
    "LabResults",
    "RiskScores",
    "RiskDisplay",
    # Patient record schemas
    "PersonalInfo",
    "PregnancyHistory",
    "MeasurementData",
    "Symptoms",
    "AssessmentInput",
    "NewPatientRecord",
    "PatientRecord",
    "PatientRecordView",
    "ValidationReport",
    # User schemas
    "Role",
    "UserProfile",
    "SessionSync",
    "IdentityErrorMessage",
    # Upload / chat schemas
    "OcrResponse",
    "ChatMessageRequest",
]
