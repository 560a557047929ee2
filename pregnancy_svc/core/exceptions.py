"""
Error types raised by services and turned into JSON by the handlers below.

Every error carries its HTTP status and a client-facing ``detail``. Keyword
arguments given at raise time are returned under ``context``, e.g. the
per-section ``field_errors`` of a rejected assessment or the ``kind`` of an
analysis failure. User-facing messages are Arabic; operator-facing ones are
English.

Anything not derived from :class:`PregnancyServiceError` is caught by the
recovery handler, which hides the cause and tells the client to reload.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

RECOVERY_MESSAGE = "عذراً، حدث خطأ ما. يرجى إعادة تحميل الصفحة."


class PregnancyServiceError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "An unexpected error occurred"

    def __init__(self, detail: Optional[str] = None, status_code: Optional[int] = None, **context: Any):
        self.detail = detail or type(self).detail
        self.status_code = status_code or type(self).status_code
        self.context = context
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.detail}
        if self.context:
            body["context"] = self.context
        return body


# --- input -------------------------------------------------------------------

class AssessmentValidationError(PregnancyServiceError):
    """Submitted health data was rejected before any AI call was made."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "يرجى تصحيح البيانات المدخلة"

    def __init__(self, field_errors: Optional[Dict[str, List[str]]] = None, **context: Any):
        super().__init__(field_errors=field_errors or {}, **context)


class EmptyMessageError(PregnancyServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "User ID and message are required"


# --- records and access ------------------------------------------------------

class MissingOwnerError(PregnancyServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Patient record has no owning user id"


class DatabaseError(PregnancyServiceError):
    detail = "Database operation failed"

    def __init__(self, operation: Optional[str] = None, **context: Any):
        super().__init__(
            detail=f"Database error during {operation}" if operation else None,
            operation=operation,
            **context,
        )


class AdminOnlyError(PregnancyServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "هذه الصفحة مخصصة للمسؤولين فقط."


# --- uploads -----------------------------------------------------------------

class UploadError(PregnancyServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Upload failed"


class InvalidFileTypeError(UploadError):
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    detail = "Unsupported file type"


class FileTooLargeError(UploadError):
    status_code = status.HTTP_413_CONTENT_TOO_LARGE
    detail = "File size exceeds maximum allowed"


# --- Gemini ------------------------------------------------------------------

class ExternalServiceError(PregnancyServiceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    detail = "External service error"


class AnalysisError(ExternalServiceError):
    """
    The risk assessment could not be obtained.

    ``kind`` tells the client which message family applies: ``unreachable``,
    ``invalid_response`` or ``unknown`` (this class).
    """

    kind = "unknown"
    detail = "حدث خطأ غير متوقع أثناء تحليل البيانات. يرجى المحاولة مرة أخرى."

    def __init__(self, detail: Optional[str] = None, **context: Any):
        super().__init__(detail=detail, kind=self.kind, **context)


class AnalysisUnavailableError(AnalysisError):
    kind = "unreachable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "فشل الاتصال بالشبكة. يرجى التحقق من اتصالك بالإنترنت."


class AnalysisResponseError(AnalysisError):
    """Gemini answered, but not with a usable assessment object."""

    kind = "invalid_response"
    detail = "فشل في تحليل استجابة الذكاء الاصطناعي. يرجى المحاولة مرة أخرى."


class ChatServiceError(ExternalServiceError):
    detail = "حدث خطأ أثناء التواصل مع المساعد. يرجى المحاولة مرة أخرى."


class AIServiceNotConfiguredError(ExternalServiceError):
    """GEMINI_API_KEY is unset; assessment, chat and OCR are off."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "AI service is not configured"


# --- handlers ----------------------------------------------------------------

async def pregnancy_service_exception_handler(request: Request, exc: PregnancyServiceError) -> JSONResponse:
    logger.warning(
        f"{type(exc).__name__}: {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            "context": exc.context,
        },
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def recovery_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort boundary: log everything, return only the reload instruction."""
    logger.exception(
        f"Unhandled exception: {exc}",
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": RECOVERY_MESSAGE, "action": "reload"},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PregnancyServiceError, pregnancy_service_exception_handler)
    app.add_exception_handler(Exception, recovery_exception_handler)
