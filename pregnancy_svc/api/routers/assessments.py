"""
Assessments router - submit health data for AI risk assessment.

All endpoints require API key authentication and a signed-in user.

Architecture:
    HTTP Request → Router (this file) → AssessmentService → GeminiService / Repository → Database

Example flow for submit_assessment:
    1. Request arrives at /api/v1/assessments (POST)
    2. Body is parsed into AssessmentInput (422 on malformed JSON/types)
    3. AssessmentService validates ranges (400 with per-field errors, no AI call)
    4. Prior records are loaded and summarized into the prompt
    5. Gemini returns the assessment; the record is stored and returned
"""
import logging

from fastapi import APIRouter, Depends, File, UploadFile

from core.auth import get_user_id, verify_api_key
from core.dependencies import get_assessment_service, get_gemini_service, get_upload_service
from schemas import AssessmentInput, OcrResponse, PatientRecordView, ValidationReport
from services import AssessmentService, UploadService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/assessments",
    tags=["Assessments"],
    dependencies=[Depends(verify_api_key)],
)


@router.post(
    "",
    response_model=PatientRecordView,
    response_model_by_alias=True,
    status_code=201,
    summary="Submit an assessment",
    description="Validate the submitted health data, request an AI risk assessment using the "
                "user's history as context, and store the resulting record."
)
async def submit_assessment(
    candidate: AssessmentInput,
    user_id: str = Depends(get_user_id),
    service: AssessmentService = Depends(get_assessment_service)
):
    """
    Submit health data for assessment.

    Raises:
    - 400 Bad Request: Field validation failed (AssessmentValidationError, errors in context.field_errors)
    - 502 Bad Gateway: The AI reply was unusable (AnalysisResponseError) or failed (AnalysisError)
    - 503 Service Unavailable: The AI service is unreachable or not configured
    """
    return await service.submit(user_id, candidate)


@router.post(
    "/validate",
    response_model=ValidationReport,
    response_model_by_alias=True,
    summary="Validate assessment input",
    description="Check the submitted health data without requesting an assessment."
)
async def validate_assessment(
    candidate: AssessmentInput,
    service: AssessmentService = Depends(get_assessment_service)
):
    field_errors = service.validate(candidate)
    return ValidationReport(is_valid=not field_errors, field_errors=field_errors)


@router.post(
    "/ocr",
    response_model=OcrResponse,
    response_model_by_alias=True,
    summary="Read a lab report image",
    description="Upload a lab report image (JPEG, PNG or WebP) and get its recognized text, "
                "to be sent back as ocrText with the assessment."
)
async def extract_lab_report_text(
    file: UploadFile = File(..., description="Lab report image"),
    user_id: str = Depends(get_user_id),
    upload_service: UploadService = Depends(get_upload_service),
    gemini_service=Depends(get_gemini_service)
):
    """
    Store the uploaded image, run OCR on it and remove it again.

    Raises:
    - 400/413/415: The upload failed validation
    - 502/503: OCR failed or the AI service is unavailable
    """
    filename, file_path = await upload_service.save_uploaded_file(file)
    logger.info(f"Running OCR on lab report {filename} for user {user_id}")
    try:
        text = await gemini_service.extract_lab_text(file_path)
    finally:
        upload_service.discard(file_path)
    return OcrResponse(filename=filename, ocr_text=text)
