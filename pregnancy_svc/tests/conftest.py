"""
Fixtures shared by the service and endpoint tests.

Every test gets its own SQLite file. Endpoint tests run the real routers on a
bare app whose dependencies point at that file, and Gemini is replaced by a
MagicMock so nothing leaves the machine.

    temp_db -> record_repo / user_repo -> services -> test_app -> client
"""
import os
import tempfile
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Settings are read at import time, so test configuration must be in place
# before any application module is imported.
TEST_API_KEY = "test-api-key-for-testing-purposes-12345678"
os.environ["PREGNANCY_SVC_API_KEY"] = TEST_API_KEY
os.environ["PREGNANCY_SVC_DB_DIR"] = tempfile.mkdtemp(prefix="pregnancy-svc-db-")
os.environ["PREGNANCY_SVC_UPLOAD_DIR"] = tempfile.mkdtemp(prefix="pregnancy-svc-uploads-")

from repositories.base import Database
from repositories import PatientRecordRepository, UserProfileRepository
from schemas import AIResponse, NewPatientRecord, Role
from services.assessment_service import AssessmentService
from services.chat_service import ChatService, ChatSessionRegistry
from services.upload_service import UploadService
from core.exceptions import setup_exception_handlers
from core import dependencies as deps
from core.auth import verify_api_key

PATIENT_ID = "patient-1"
ADMIN_ID = "admin-1"
PATIENT_HEADERS = {"X-User-ID": PATIENT_ID}
ADMIN_HEADERS = {"X-User-ID": ADMIN_ID}


class FakeStream:
    """Async-iterable stand-in for a streamed Gemini chat reply."""

    def __init__(self, fragments, error=None):
        self.fragments = list(fragments)
        self.error = error

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for fragment in self.fragments:
            yield SimpleNamespace(text=fragment)
        if self.error is not None:
            raise self.error


@pytest.fixture
def temp_db():
    """Empty record store in a throwaway file."""
    fd, db_path = tempfile.mkstemp(suffix='.db')
    os.close(fd)

    db = Database(db_path=db_path)
    yield db

    for path in (db_path, db_path + "-wal", db_path + "-shm"):
        if os.path.exists(path):
            os.unlink(path)


@pytest.fixture
def record_repo(temp_db):
    """Create a PatientRecordRepository with the test database."""
    return PatientRecordRepository(db=temp_db)


@pytest.fixture
def user_repo(temp_db):
    """Create a UserProfileRepository with the test database."""
    return UserProfileRepository(db=temp_db)


@pytest.fixture
def candidate_payload():
    """A valid first-visit submission in wire format."""
    return {
        "personalInfo": {"name": "سارة أحمد", "age": 25},
        "pregnancyHistory": {"g": 2, "p": 1, "a": 0},
        "measurementData": {"height": 165, "prePregnancyWeight": 60, "currentWeight": 68},
        "symptoms": {
            "headache": False,
            "visionChanges": False,
            "upperAbdominalPain": False,
            "swelling": False,
            "excessiveThirst": False,
            "frequentUrination": False,
            "fatigue": False,
            "dizziness": False,
            "shortnessOfBreath": False,
            "otherSymptoms": "",
        },
        "labResults": {},
    }


@pytest.fixture
def scored_reply():
    """A well-formed assessment reply with overallRisk 0.3."""
    return {
        "riskScores": {
            "overallRisk": 0.3,
            "preeclampsiaRisk": 0.2,
            "gdmRisk": 0.1,
            "anemiaRisk": 0.15,
        },
        "brief_summary": "الحالة مستقرة بشكل عام.",
        "detailed_report": "## التقييم\n- لا توجد علامات خطر واضحة.",
        "extracted_labs": {},
    }


@pytest.fixture
def make_record(record_repo, candidate_payload):
    """Factory storing a record for a user with the given aiResponse dict."""
    def _make(user_id=PATIENT_ID, ai_response=None, **overrides):
        data = {**candidate_payload, **overrides}
        data["userId"] = user_id
        data["aiResponse"] = ai_response if ai_response is not None else {
            "riskScores": {"overallRisk": 0.3},
            "brief_summary": "ملخص",
            "detailed_report": "تقرير",
        }
        return record_repo.create(NewPatientRecord.model_validate(data))
    return _make


@pytest.fixture
def fake_gemini(scored_reply):
    """MagicMock standing in for GeminiService."""
    gemini = MagicMock()
    gemini.request_assessment = AsyncMock(return_value=AIResponse.model_validate(scored_reply))
    gemini.extract_lab_text = AsyncMock(return_value="Hemoglobin (Hb): 10.8 g/dL")
    return gemini


@pytest.fixture
def chat_registry():
    return ChatSessionRegistry(max_sessions=10, idle_timeout_seconds=1800)


@pytest.fixture
def assessment_service(record_repo, fake_gemini):
    return AssessmentService(
        record_repository=record_repo,
        gemini_service_factory=lambda: fake_gemini
    )


@pytest.fixture
def chat_service(chat_registry, record_repo, fake_gemini):
    return ChatService(
        registry=chat_registry,
        record_repository=record_repo,
        gemini_service_factory=lambda: fake_gemini
    )


@pytest.fixture
def upload_service(tmp_path):
    return UploadService(upload_dir=str(tmp_path / "uploads"), max_size=1024 * 1024)


@pytest.fixture
def admin_user(user_repo):
    """Store an admin profile."""
    return user_repo.upsert_login(ADMIN_ID, name="Ahmed", role=Role.ADMIN)


@pytest.fixture
def test_app(temp_db, record_repo, user_repo, fake_gemini, assessment_service, chat_service, upload_service):
    """Real routers, test dependencies, no API key check."""
    from api.routers import (
        health_router,
        assessments_router,
        records_router,
        chat_router,
        users_router,
        admin_router,
    )

    app = FastAPI(title="Pregnancy Health Service API Test")

    setup_exception_handlers(app)

    app.dependency_overrides[deps.get_database] = lambda: temp_db
    app.dependency_overrides[deps.get_patient_record_repository] = lambda: record_repo
    app.dependency_overrides[deps.get_user_repository] = lambda: user_repo
    app.dependency_overrides[deps.get_gemini_service] = lambda: fake_gemini
    app.dependency_overrides[deps.get_assessment_service] = lambda: assessment_service
    app.dependency_overrides[deps.get_chat_service] = lambda: chat_service
    app.dependency_overrides[deps.get_upload_service] = lambda: upload_service

    # Skip API key verification; test_auth.py covers it
    async def skip_auth():
        return TEST_API_KEY
    app.dependency_overrides[verify_api_key] = skip_auth

    app.include_router(health_router)
    app.include_router(assessments_router)
    app.include_router(records_router)
    app.include_router(chat_router)
    app.include_router(users_router)
    app.include_router(admin_router)

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
def client(test_app):
    """Create a test client for the API."""
    return TestClient(test_app)
