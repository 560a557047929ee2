"""
Objects handed to routers through ``Depends()``.

The record store and the chat session registry live for the whole process;
repositories and services are built per request around them. Gemini is
never constructed up front: services receive ``get_gemini_service`` as a
factory, so a missing GEMINI_API_KEY only fails the calls that need it.

Tests swap any of these through ``app.dependency_overrides``.
"""
import logging
from typing import Optional

from core.config import settings

logger = logging.getLogger(__name__)

# Imported lazily below; repositories and services import core.
_database: Optional["Database"] = None
_chat_registry: Optional["ChatSessionRegistry"] = None


def get_database() -> "Database":
    global _database

    if _database is None:
        from repositories.base import Database

        logger.info(f"Opening record store at {settings.database_path}")
        _database = Database(
            db_path=settings.database_path,
            busy_timeout=settings.pregnancy_svc_db_busy_timeout,
        )
    return _database


def get_chat_registry() -> "ChatSessionRegistry":
    """Shared by every ChatService so conversations survive across requests."""
    global _chat_registry

    if _chat_registry is None:
        from services.chat_service import ChatSessionRegistry

        _chat_registry = ChatSessionRegistry(
            max_sessions=settings.chat_max_sessions,
            idle_timeout_seconds=settings.chat_idle_timeout_seconds,
        )
        logger.info(
            "Chat session registry created",
            extra={
                "max_sessions": settings.chat_max_sessions,
                "idle_timeout_seconds": settings.chat_idle_timeout_seconds,
            },
        )
    return _chat_registry


def reset_chat_registry() -> None:
    """Forget every open conversation (used at shutdown)."""
    global _chat_registry
    _chat_registry = None


def get_patient_record_repository() -> "PatientRecordRepository":
    from repositories import PatientRecordRepository

    return PatientRecordRepository(db=get_database())


def get_user_repository() -> "UserProfileRepository":
    from repositories import UserProfileRepository

    return UserProfileRepository(db=get_database())


def get_gemini_service() -> "GeminiService":
    """
    Raises:
        AIServiceNotConfiguredError: GEMINI_API_KEY is empty.
    """
    from services.gemini_service import GeminiService

    return GeminiService(api_key=settings.gemini_api_key, model_name=settings.gemini_model)


def get_assessment_service() -> "AssessmentService":
    from services import AssessmentService

    return AssessmentService(
        record_repository=get_patient_record_repository(),
        gemini_service_factory=get_gemini_service,
    )


def get_chat_service() -> "ChatService":
    from services.chat_service import ChatService

    return ChatService(
        registry=get_chat_registry(),
        record_repository=get_patient_record_repository(),
        gemini_service_factory=get_gemini_service,
    )


def get_upload_service() -> "UploadService":
    from services import UploadService

    return UploadService(
        upload_dir=settings.pregnancy_svc_upload_dir,
        max_size=settings.pregnancy_svc_upload_max_size,
    )
