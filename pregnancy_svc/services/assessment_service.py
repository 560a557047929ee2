"""
Service layer for the assessment flow.

Architecture:
    API Layer (routers) → AssessmentService → GeminiService / PatientRecordRepository → Database

Flow for one submission:
    validate → list prior records → request assessment → store record

Dependency Injection:
    Use core.dependencies.get_assessment_service() in routers with Depends().
"""
import logging
from typing import Any, Callable, List, Optional

from core.exceptions import AssessmentValidationError
from repositories.patient_record_repository import PatientRecordRepository
from schemas.patient_record import (
    AssessmentInput,
    NewPatientRecord,
    PatientRecord,
    PatientRecordView,
)
from services.risk_display import risk_display
from services.validation import validate_assessment_input

logger = logging.getLogger(__name__)


def to_view(record: PatientRecord) -> PatientRecordView:
    """Attach the reconciled risk display to a stored record."""
    return PatientRecordView(
        **record.model_dump(by_alias=True),
        riskDisplay=risk_display(record.ai_response)
    )


class AssessmentService:
    """
    Service layer for submitting assessments and reading a user's history.
    """

    def __init__(
        self,
        record_repository: PatientRecordRepository,
        gemini_service_factory: Callable[[], Any]
    ):
        """
        Initialize the assessment service.

        Args:
            record_repository: PatientRecordRepository for history and storage.
            gemini_service_factory: Returns a GeminiService. Called only on
                submission so read-only endpoints work without an API key.
        """
        self._record_repo = record_repository
        self._gemini_factory = gemini_service_factory

    async def submit(self, user_id: str, candidate: AssessmentInput) -> PatientRecordView:
        """
        Validate, assess and store a candidate record.

        Args:
            user_id: Owner of the new record.
            candidate: The submitted health data.

        Returns:
            PatientRecordView: The stored record with its risk display.

        Raises:
            AssessmentValidationError: If any field is invalid (no network call is made).
            AnalysisError: If the assessment could not be obtained (nothing is stored).
            MissingOwnerError: If user_id is empty.
        """
        field_errors = validate_assessment_input(candidate)
        if field_errors:
            raise AssessmentValidationError(field_errors=field_errors)

        history = self._record_repo.list_by_user(user_id)
        logger.info(f"Submitting assessment for user {user_id} with {len(history)} prior record(s)")

        gemini = self._gemini_factory()
        ai_response = await gemini.request_assessment(candidate, history)

        record = self._record_repo.create(NewPatientRecord(
            **candidate.model_dump(by_alias=True),
            userId=user_id,
            aiResponse=ai_response
        ))
        return to_view(record)

    def validate(self, candidate: AssessmentInput) -> dict:
        """Run validation only. Returns per-section error lists (empty when valid)."""
        return validate_assessment_input(candidate)

    def history(self, user_id: str) -> List[PatientRecordView]:
        """A user's records, newest first."""
        return [to_view(record) for record in self._record_repo.list_by_user(user_id)]

    def latest(self, user_id: str) -> Optional[PatientRecordView]:
        """The user's newest record for the home summary, or None."""
        records = self._record_repo.list_by_user(user_id)
        if not records:
            return None
        return to_view(records[0])
