"""
Referral / Access Code Service

An admin (or referrer) issues a one-time access code to a candidate email.
The candidate can log in with the code instead of a password until it
expires. Unknown candidates get a job_seeker account on the spot.
"""

import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Optional, List, Tuple

from app.core.auth import hash_password
from app.core.exceptions import InternalError, ValidationError
from app.services.email_service import EmailService
from app.services.mongo_service import IdentityDirectory, ReferralCodeStore, normalize_email
from app.services.user_record_service import (
    EMAIL_PATTERN, REFERRAL_STATUSES, compute_referral_status, generate_temp_password
)
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

CODE_LENGTH = 8
CODE_ALPHABET = string.ascii_letters + string.digits
MAX_CODE_ATTEMPTS = 10

DURATION_UNITS = {
    "minutes": lambda n: timedelta(minutes=n),
    "hours": lambda n: timedelta(hours=n),
    "days": lambda n: timedelta(days=n),
}


def compute_expiry(duration_value: int, duration_unit: str, now: Optional[datetime] = None) -> datetime:
    if duration_value is None or duration_value <= 0 or duration_unit not in DURATION_UNITS:
        raise ValidationError("Valid duration value and unit are required.")
    return (now or utcnow()) + DURATION_UNITS[duration_unit](duration_value)


def status_query(status: Optional[str], now: Optional[datetime] = None) -> dict:
    """MongoDB filter selecting the codes that derive to the given status."""
    now = now or utcnow()
    for (is_used, is_expired), name in REFERRAL_STATUSES.items():
        if name == status:
            return {
                "isUsed": is_used,
                "expiresAt": {"$lt": now} if is_expired else {"$gte": now},
            }
    return {}


class ReferralCodeService:
    """
    Issues and lists access codes.
    """

    def __init__(
        self,
        codes: ReferralCodeStore = None,
        directory: IdentityDirectory = None,
        email_service: EmailService = None
    ):
        self.codes = codes or ReferralCodeStore()
        self.directory = directory or IdentityDirectory()
        self.email_service = email_service or EmailService()

    def generate_unique_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
            if not self.codes.code_exists(code):
                return code
        raise InternalError("Failed to generate a unique referral code after multiple attempts.")

    def _ensure_candidate(self, candidate_email: str, issuer_id: str) -> Tuple[bool, Optional[str]]:
        """
        Make sure the candidate has an account.

        Returns:
            (is_new_user, temporary password for new accounts)
        """
        store, user = self.directory.find_by_email(candidate_email)
        if not user:
            temp_password = generate_temp_password()
            self.directory.register(self.directory.users, {
                "username": candidate_email.split("@")[0],
                "email": candidate_email,
                "password": hash_password(temp_password),
                "role": "job_seeker",
                "status": "active",
                "isSuperAdmin": False,
                "firstLogin": True,
                "onboardingStatus": "not_started",
                "createdBy": issuer_id,
            })
            logger.info(f"Created new job_seeker {candidate_email} for access code")
            return True, temp_password

        # Past first login but never finished onboarding: send them through it again
        if not user.get("firstLogin") and user.get("onboardingStatus") != "completed":
            store.apply_update(str(user["_id"]), {"$set": {"firstLogin": True, "onboardingStatus": "not_started"}})
        return False, None

    def generate(self, issuer: dict, candidate_email: str, duration_value: int, duration_unit: str) -> Tuple[dict, bool, bool]:
        """
        Issue a code for a candidate and email it.

        Returns:
            (stored code, is_new_user, email_sent)
        """
        candidate_email = normalize_email(candidate_email)
        if not candidate_email or not EMAIL_PATTERN.match(candidate_email):
            raise ValidationError("Valid candidate email is required.")
        expires_at = compute_expiry(duration_value, duration_unit)

        _, issuer_record = self.directory.find_by_id(issuer["user_id"])
        if not issuer_record:
            raise InternalError("Generating admin user not found.")

        is_new_user, temp_password = self._ensure_candidate(candidate_email, issuer["user_id"])

        code = self.codes.insert({
            "code": self.generate_unique_code(),
            "candidateEmail": candidate_email,
            "expiresAt": expires_at,
            "isUsed": False,
            "usedAt": None,
            "generatedByAdminId": issuer["user_id"],
            "generatedByAdminUsername": issuer_record.get("username") or issuer_record.get("email"),
        })
        logger.info(f"Issued access code for {candidate_email} by {issuer['user_id']}, expires {expires_at.isoformat()}")

        try:
            email_sent = self.email_service.send_access_code_email(
                to=candidate_email,
                code=code["code"],
                duration_text=f"{duration_value} {duration_unit}",
                expires_at=expires_at,
                temp_password=temp_password
            )
        except Exception as e:
            logger.error(f"Failed to send access code email to {candidate_email}: {e}")
            email_sent = False

        return code, is_new_user, email_sent

    def list_codes(self, status: Optional[str] = None, generated_by: Optional[str] = None) -> List[dict]:
        now = utcnow()
        query = status_query(status, now)
        if generated_by and generated_by != "all":
            query["generatedByAdminId"] = generated_by

        codes = self.codes.find(query)
        for code in codes:
            code["status"] = compute_referral_status(code, now)
        return codes


def get_referral_code_service() -> ReferralCodeService:
    return ReferralCodeService()
