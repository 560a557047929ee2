"""
Service layer for business logic.

Note: Gemini-backed services are not re-exported here so that importing the
package does not import the Gemini client. Import them directly:
- from services.gemini_service import GeminiService
- from services.chat_service import ChatService, ChatSessionRegistry
"""
from services.assessment_service import AssessmentService
from services.upload_service import UploadService

__all__ = [
    "AssessmentService",
    "UploadService",
]
