"""
Authentication Routes

POST /auth/login - Login with password or access code, get JWT token
GET /auth/me - Get current user info
GET /auth/check-super-admin - Is the current user a super admin
POST /auth/change-password - Change password (clears firstLogin)
POST /auth/forgot-password - Email a password reset link
POST /auth/reset-password - Set a new password with a reset token
"""

import logging
from fastapi import APIRouter, Depends

from app.core.auth import create_access_token, get_current_user, hash_password, verify_password
from app.core.exceptions import Forbidden, NotFound, Unauthorized, ValidationError
from app.services.mongo_service import (
    IdentityDirectory, ReferralCodeStore, get_identity_directory, get_referral_code_store,
    normalize_email, serialize_doc
)
from app.services.password_reset_service import (
    PasswordResetService, get_password_reset_service, validate_new_password
)
from app.utils.clock import utcnow
from app.schemas.schemas import (
    LoginRequest, TokenResponse, ChangePasswordRequest, SuperAdminCheckResponse, UserEnvelope, UserResponse,
    ForgotPasswordRequest, ResetPasswordRequest, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

RESET_REQUESTED_MESSAGE = "If an account with that email exists, a password reset link has been sent."


def _authenticate_with_code(codes: ReferralCodeStore, email: str, code_value: str) -> bool:
    """Try a one-time access code; a valid one is marked used."""
    code = codes.find_code(email, code_value)
    if not code:
        return False
    if code["expiresAt"] < utcnow():
        raise Unauthorized("This access code has expired. Please request a new one.")
    if code.get("isUsed") or not codes.mark_used(code["_id"]):
        raise Unauthorized("This access code has already been used.")
    return True


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    directory: IdentityDirectory = Depends(get_identity_directory),
    codes: ReferralCodeStore = Depends(get_referral_code_store)
):
    """
    Login and receive JWT access token.

    Job seekers and posters may use an unexpired, unused access code in
    place of the password. Include token in requests: Authorization: Bearer <token>
    """
    email = normalize_email(request.email)
    secret = request.password.strip()

    store, user = directory.find_by_email(email, include_password=True)
    if not user:
        raise Unauthorized("Invalid credentials")

    if user.get("status") == "inactive":
        raise Forbidden("Your account has been deactivated. Please contact support.")

    if user["role"] == "job_seeker":
        issued = codes.find_for_candidate(email)
        now = utcnow()
        if issued and not any(code["expiresAt"] >= now for code in issued):
            raise Forbidden(
                "All your access codes have expired. Your account is no longer accessible. "
                "Please contact support for a new access code."
            )

    authenticated = verify_password(secret, user.get("password"))
    if not authenticated and user["role"] != "job_referrer":
        authenticated = _authenticate_with_code(codes, email, secret)

    if not authenticated:
        raise Unauthorized("Invalid credentials or access code")

    logger.info(f"Login: {email} ({user['role']}) from {store.name}")
    token = create_access_token(user)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(serialize_doc(user)))


@router.get("/me", response_model=UserEnvelope)
async def get_me(
    current: dict = Depends(get_current_user),
    directory: IdentityDirectory = Depends(get_identity_directory)
):
    """Get current authenticated user's record."""
    _, user = directory.find_by_id(current["user_id"])
    if not user:
        raise NotFound("User not found in database.")
    return UserEnvelope(user=UserResponse.model_validate(serialize_doc(user)))


@router.get("/check-super-admin", response_model=SuperAdminCheckResponse)
async def check_super_admin(
    current: dict = Depends(get_current_user),
    directory: IdentityDirectory = Depends(get_identity_directory)
):
    """Report super-admin status from the stored record, not the token."""
    _, user = directory.find_by_id(current["user_id"])
    if not user:
        raise NotFound("User not found in database.")
    is_super = user.get("role") == "admin" and user.get("isSuperAdmin") is True
    return SuperAdminCheckResponse(
        is_super_admin=is_super,
        role="super_admin" if is_super else user["role"],
        user=UserResponse.model_validate(serialize_doc(user))
    )


@router.post("/change-password", response_model=TokenResponse)
async def change_password(
    data: ChangePasswordRequest,
    current: dict = Depends(get_current_user),
    directory: IdentityDirectory = Depends(get_identity_directory)
):
    """
    Change password. The current password is not asked for on first login.
    Surrounding whitespace is trimmed, as it is at login.
    Returns a fresh token carrying firstLogin=false.
    """
    new_password = validate_new_password(data.new_password)

    store, user = directory.find_by_id(current["user_id"], include_password=True)
    if not user:
        raise NotFound("User not found.")

    if not user.get("firstLogin"):
        if not (data.current_password or "").strip():
            raise ValidationError("Current password is required.")
        if not verify_password(data.current_password, user.get("password")):
            raise Unauthorized("Invalid current password.")

    updated = store.apply_update(
        current["user_id"],
        {"$set": {"password": hash_password(new_password), "firstLogin": False}}
    )
    logger.info(f"Password changed for {user['email']}")
    return TokenResponse(
        access_token=create_access_token(updated),
        user=UserResponse.model_validate(serialize_doc(updated))
    )


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    data: ForgotPasswordRequest,
    service: PasswordResetService = Depends(get_password_reset_service)
):
    """Always answers the same way so the endpoint does not reveal which emails exist."""
    service.request_reset(data.email)
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    data: ResetPasswordRequest,
    service: PasswordResetService = Depends(get_password_reset_service)
):
    service.reset_password(data.token, data.new_password)
    return MessageResponse(message="Password has been reset successfully.")
