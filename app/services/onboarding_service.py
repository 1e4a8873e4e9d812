"""
Onboarding Service

Job seekers and referrers fill in their own role details once after their
first login. Completing it sets onboardingStatus to "completed".
"""

import logging
import re
from typing import Optional, Tuple

from app.core.exceptions import NotFound, ValidationError
from app.services.mongo_service import IdentityDirectory, RecordStore, normalize_email
from app.services.user_record_service import EMAIL_PATTERN, is_present, split_skills

logger = logging.getLogger(__name__)

SEEKER_FIELDS = ("fullName", "phone", "skills", "experience")
REFERRER_FIELDS = (
    "fullName", "mobileNumber", "personalEmail", "residentialAddress",
    "companyName", "workLocation", "designation",
)
MOBILE_DIGITS = 10


def _require_fields(payload: dict, names) -> dict:
    missing = [name for name in names if not is_present(payload.get(name))]
    if missing:
        raise ValidationError(
            "All fields are required",
            errors=[{"field": name, "message": "required"} for name in missing]
        )
    return {name: payload[name].strip() for name in names}


def validate_seeker_onboarding(payload: dict) -> dict:
    """
    Build candidateDetails from the onboarding form.

    >>> validate_seeker_onboarding({"fullName": "A", "phone": "1", "skills": "Go, SQL", "experience": "2y"})["skills"]
    ['Go', 'SQL']
    """
    fields = _require_fields(payload, SEEKER_FIELDS)
    skills = split_skills(fields["skills"])
    if not skills:
        raise ValidationError("All fields are required", errors=[{"field": "skills", "message": "required"}])
    return {**fields, "skills": skills}


def validate_referrer_onboarding(payload: dict) -> dict:
    """Build referrerDetails and workDetails from the onboarding body."""
    fields = _require_fields(payload, REFERRER_FIELDS)

    if not EMAIL_PATTERN.match(fields["personalEmail"]):
        raise ValidationError(
            "Invalid personal email format",
            errors=[{"field": "personalEmail", "message": "Invalid email format"}]
        )
    if len(re.sub(r"\D", "", fields["mobileNumber"])) != MOBILE_DIGITS:
        raise ValidationError(
            f"Mobile number must be {MOBILE_DIGITS} digits",
            errors=[{"field": "mobileNumber", "message": f"Must be {MOBILE_DIGITS} digits"}]
        )

    return {
        "referrerDetails": {
            "fullName": fields["fullName"],
            "mobileNumber": fields["mobileNumber"],
            "personalEmail": normalize_email(fields["personalEmail"]),
            "residentialAddress": fields["residentialAddress"],
        },
        "workDetails": {
            "companyName": fields["companyName"],
            "workLocation": fields["workLocation"],
            "designation": fields["designation"],
        },
    }


class OnboardingService:

    def __init__(self, directory: IdentityDirectory = None):
        self.directory = directory or IdentityDirectory()

    def _own_record(self, user_id: str) -> Tuple[RecordStore, dict]:
        store, user = self.directory.find_by_id(user_id)
        if not user:
            raise NotFound("User not found")
        return store, user

    def complete_seeker(self, user_id: str, candidate_details: dict, resume_id: str) -> Tuple[dict, Optional[str]]:
        """
        Store the seeker's details and new resume.

        Returns:
            (updated record, id of the resume it replaced, if any)
        """
        store, user = self._own_record(user_id)
        updated = store.apply_update(user_id, {"$set": {
            "candidateDetails": candidate_details,
            "resumeGridFsId": resume_id,
            "onboardingStatus": "completed",
            "firstLogin": False,
        }})
        logger.info(f"Job seeker {user['email']} completed onboarding")
        return updated, user.get("resumeGridFsId")

    def complete_referrer(self, user_id: str, details: dict) -> dict:
        store, user = self._own_record(user_id)
        updated = store.apply_update(user_id, {"$set": {**details, "onboardingStatus": "completed"}})
        logger.info(f"Referrer {user['email']} completed onboarding")
        return updated


def get_onboarding_service() -> OnboardingService:
    return OnboardingService()
