"""
Password Reset Service

Forgot-password issues a random token (one per account, replacing older
ones) and emails a reset link. Reset-password trades a live token for a
new password and consumes the token.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional

from app.core.auth import hash_password
from app.core.config import get_settings
from app.core.exceptions import NotFound, ValidationError
from app.services.email_service import EmailService
from app.services.mongo_service import IdentityDirectory, PasswordResetTokenStore
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def validate_new_password(password: Optional[str]) -> str:
    """Trimmed password, or ValidationError when it is too short."""
    password = (password or "").strip()
    min_length = get_settings().min_password_length
    if len(password) < min_length:
        raise ValidationError(f"New password must be at least {min_length} characters long.")
    return password


class PasswordResetService:

    def __init__(
        self,
        directory: IdentityDirectory = None,
        tokens: PasswordResetTokenStore = None,
        email_service: EmailService = None
    ):
        self.directory = directory or IdentityDirectory()
        self.tokens = tokens or PasswordResetTokenStore()
        self.email_service = email_service or EmailService()

    def request_reset(self, email: str) -> bool:
        """
        Issue a reset token and email the link.

        Returns:
            True when an email went out. Callers must not reveal this to the
            client, or the endpoint becomes an account-existence oracle.
        """
        if not (email or "").strip():
            raise ValidationError("Email is required.")

        _, user = self.directory.find_by_email(email)
        if not user:
            logger.info(f"Password reset requested for unknown email {email}")
            return False

        valid_minutes = get_settings().password_reset_expire_minutes
        token = secrets.token_hex(TOKEN_BYTES)
        self.tokens.replace_for_user(user["_id"], token, utcnow() + timedelta(minutes=valid_minutes))
        logger.info(f"Password reset token issued for {user['_id']}")

        try:
            return self.email_service.send_password_reset_email(
                to=user["email"],
                name=user.get("username") or user["email"],
                token=token,
                valid_minutes=valid_minutes
            )
        except Exception as e:
            logger.error(f"Failed to send password reset email to {user['email']}: {e}")
            return False

    def reset_password(self, token: Optional[str], new_password: Optional[str]) -> dict:
        """Set a new password for the token's owner and consume the token."""
        if not token or not new_password:
            raise ValidationError("Token and new password are required.")
        password = validate_new_password(new_password)

        reset = self.tokens.find(token)
        if not reset:
            logger.warning("Password reset with unknown or already used token")
            raise ValidationError("Invalid or expired password reset token.")

        if reset["expiresAt"] < utcnow():
            self.tokens.delete(reset["_id"])
            raise ValidationError("Password reset token has expired. Please request a new one.")

        store, user = self.directory.find_by_id(str(reset["userId"]))
        if not user:
            self.tokens.delete(reset["_id"])
            raise NotFound("User not found for this token.")

        updated = store.apply_update(
            str(user["_id"]),
            {"$set": {"password": hash_password(password), "firstLogin": False}}
        )
        self.tokens.delete(reset["_id"])
        logger.info(f"Password reset for {user['email']}")
        return updated


def get_password_reset_service() -> PasswordResetService:
    return PasswordResetService()
