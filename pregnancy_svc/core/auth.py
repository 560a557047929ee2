"""
Authentication module for the Pregnancy Health Service API.

Two headers are involved:
- X-API-Key: shared secret protecting every /api/v1 endpoint
- X-User-ID: the user id issued by the identity provider, forwarded by the
  gateway after sign-in. The service trusts it and resolves the role from
  the mirrored profile.

Sign-up, sign-in and password reset happen at the identity provider. This
module only maps the provider's error codes to localized messages.
"""
import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from core.config import API_KEY
from core.dependencies import get_user_repository
from core.exceptions import AdminOnlyError
from core.logging_config import set_user_id
from schemas.user import Role, UserProfile

logger = logging.getLogger(__name__)

# Header name for API key authentication
API_KEY_HEADER_NAME = "X-API-Key"
USER_ID_HEADER_NAME = "X-User-ID"

api_key_header = APIKeyHeader(
    name=API_KEY_HEADER_NAME,
    auto_error=False,
    description="API key for authenticating requests. Include in the X-API-Key header.",
)

user_id_header = APIKeyHeader(
    name=USER_ID_HEADER_NAME,
    auto_error=False,
    description="User id issued by the identity provider.",
)

# Provider error code -> message shown to the user
IDENTITY_ERROR_MESSAGES = {
    "auth/invalid-email": "البريد الإلكتروني غير صالح.",
    "auth/user-not-found": "لا يوجد حساب مرتبط بهذا البريد الإلكتروني.",
    "auth/wrong-password": "كلمة المرور غير صحيحة.",
    "auth/invalid-credential": "البريد الإلكتروني أو كلمة المرور غير صحيحة.",
    "auth/email-already-in-use": "هذا البريد الإلكتروني مستخدم بالفعل.",
    "auth/weak-password": "كلمة المرور ضعيفة. يجب أن تتكون من 6 أحرف على الأقل.",
    "auth/too-many-requests": "تم إجراء محاولات كثيرة. يرجى المحاولة لاحقاً.",
    "auth/network-request-failed": "لا يوجد اتصال بالإنترنت. يرجى التحقق من اتصالك والمحاولة مرة أخرى.",
}

IDENTITY_ERROR_FALLBACK = "حدث خطأ في المصادقة. يرجى المحاولة مرة أخرى."


def identity_error_message(code: Optional[str]) -> str:
    """Localized message for an identity-provider error code, with a fallback."""
    if code and code in IDENTITY_ERROR_MESSAGES:
        return IDENTITY_ERROR_MESSAGES[code]
    logger.info(f"Unmapped identity error code: {code}")
    return IDENTITY_ERROR_FALLBACK


async def verify_api_key(
    api_key: Optional[str] = Security(api_key_header),
) -> str:
    """
    Verify the API key from the request header.

    Uses constant-time comparison to prevent timing attacks.

    Raises:
        HTTPException: 401 Unauthorized if key is missing.
        HTTPException: 403 Forbidden if key is invalid.
    """
    if api_key is None:
        logger.warning("API request without authentication header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Include it in the X-API-Key header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not secrets.compare_digest(api_key, API_KEY):
        logger.warning("API request with invalid API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


async def get_user_id(
    user_id: Optional[str] = Security(user_id_header),
) -> str:
    """
    Read the signed-in user's id from the X-User-ID header.

    Raises:
        HTTPException: 401 Unauthorized if the header is missing or blank.
    """
    if user_id is None or not user_id.strip():
        logger.warning("API request without user id header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing user id. Include it in the X-User-ID header.",
        )
    user_id = user_id.strip()
    set_user_id(user_id)
    return user_id


async def get_current_user(
    user_id: str = Depends(get_user_id),
    user_repo=Depends(get_user_repository),
) -> UserProfile:
    """
    Resolve the signed-in user's profile.

    A user who has never synced a profile is treated as a patient.
    """
    profile = user_repo.get(user_id)
    if profile is None:
        return UserProfile(id=user_id, role=Role.PATIENT)
    return profile


async def require_admin(
    user: UserProfile = Depends(get_current_user),
) -> UserProfile:
    """
    Gate admin endpoints.

    Raises:
        AdminOnlyError: 403 if the user is not an admin.
    """
    if user.role != Role.ADMIN:
        logger.warning(f"Non-admin user {user.id} tried to access an admin endpoint")
        raise AdminOnlyError()
    return user
