"""
Users router - profile mirroring after an identity-provider sign-in.

Sign-up and sign-in happen at the identity provider; the client calls
/session afterwards so the service knows the user's name and role.
"""
import logging

from fastapi import APIRouter, Depends

from core.auth import (
    get_current_user,
    get_user_id,
    identity_error_message,
    verify_api_key,
)
from core.dependencies import get_user_repository
from repositories import UserProfileRepository
from schemas import IdentityErrorMessage, SessionSync, UserProfile

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/users",
    tags=["Users"],
    dependencies=[Depends(verify_api_key)],
)


@router.post(
    "/session",
    response_model=UserProfile,
    response_model_by_alias=True,
    summary="Record a sign-in",
    description="Create the profile on first sign-in (role patient) or refresh lastLogin and name."
)
async def sync_session(
    body: SessionSync,
    user_id: str = Depends(get_user_id),
    user_repo: UserProfileRepository = Depends(get_user_repository)
):
    profile = user_repo.upsert_login(user_id, name=body.name)
    logger.info(f"User {user_id} signed in (role={profile.role.value})")
    return profile


@router.get(
    "/me",
    response_model=UserProfile,
    response_model_by_alias=True,
    summary="Current user",
    description="The signed-in user's profile. Users without a stored profile are patients."
)
async def current_user(user: UserProfile = Depends(get_current_user)):
    return user


@router.get(
    "/auth-errors/{code:path}",
    response_model=IdentityErrorMessage,
    summary="Localize an identity error",
    description="Map an identity-provider error code (e.g. auth/wrong-password) to the message shown to the user."
)
async def auth_error_message(code: str):
    return IdentityErrorMessage(code=code, message=identity_error_message(code))
