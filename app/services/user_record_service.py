"""
User Record Service - create/update/delete rules for user-like records.

Records come in four roles (job_seeker, job_poster, job_referrer, admin).
Each role owns a fixed set of role-specific sub-documents; the sets are
disjoint, so a record carries at most one role's details at a time:

    job_seeker   -> candidateDetails
    job_poster   -> jobPosterDetails
    job_referrer -> referrerDetails, workDetails
    admin        -> (none)

Admins and referrers must carry the organisational hierarchy
(milan, valaya, khanda; vibhaaga and ghata are optional).

The validate_* functions are pure: they take plain dicts and either return
the normalized result or raise an AppError. UserRecordService binds them to
storage and email.
"""

import logging
import re
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Set, Tuple, Union

from app.core.auth import hash_password
from app.core.config import get_settings
from app.core.exceptions import (
    DuplicateEmail, Forbidden, MissingHierarchyFields, NotFound, SelfDeletionForbidden, ValidationError
)
from app.services.email_service import EmailService
from app.services.mongo_service import IdentityDirectory, RecordStore, normalize_email
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


ROLES = ("job_seeker", "job_poster", "job_referrer", "admin")
STATUSES = ("active", "inactive")

# Roles a regular (non-super) admin may create
CREATABLE_BY_ADMIN = ("job_seeker", "job_poster", "job_referrer")

HIERARCHY_ROLES = ("admin", "job_referrer")
REQUIRED_HIERARCHY_FIELDS = ("milan", "valaya", "khanda")
HIERARCHY_FIELDS = ("milan", "valaya", "khanda", "vibhaaga", "ghata")

# Older clients send these names for the same concept
LEGACY_HIERARCHY_ALIASES = {
    "milanShakaBhaga": "milan",
    "valayaNagar": "valaya",
    "khandaBhaga": "khanda",
}

ROLE_DETAIL_FIELDS = {
    "job_seeker": ("candidateDetails",),
    "job_poster": ("jobPosterDetails",),
    "job_referrer": ("referrerDetails", "workDetails"),
    "admin": (),
}
ALL_DETAIL_FIELDS = tuple(f for fields in ROLE_DETAIL_FIELDS.values() for f in fields)

REQUIRED_REFERRER_DATA_FIELDS = ("name", "phone", "companyName", "designation")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

REFERRAL_STATUSES = {
    (True, False): "used and valid",
    (True, True): "used and expired",
    (False, False): "unused and valid",
    (False, True): "unused and expired",
}


# ============================================================
# HELPERS
# ============================================================

def is_present(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _compact(details: Optional[dict]) -> dict:
    """Drop unset keys from a sub-document."""
    return {k: v for k, v in (details or {}).items() if v is not None}


def migrate_legacy_hierarchy(payload: dict) -> dict:
    """
    Rename legacy hierarchy keys to the canonical ones.
    A non-empty canonical value always wins over its legacy alias.
    """
    payload = dict(payload)
    for legacy, canonical in LEGACY_HIERARCHY_ALIASES.items():
        legacy_value = payload.pop(legacy, None)
        if not is_present(payload.get(canonical)) and is_present(legacy_value):
            payload[canonical] = legacy_value
    return payload


def missing_hierarchy(source: dict) -> List[str]:
    return [name for name in REQUIRED_HIERARCHY_FIELDS if not is_present(source.get(name))]


def _require_hierarchy(source: dict, role: str):
    missing = missing_hierarchy(source)
    if missing:
        raise MissingHierarchyFields(
            errors=[{"field": name, "message": f"{name} is required for role {role}"} for name in missing]
        )


def split_skills(value: Union[str, List[str], None]) -> List[str]:
    """
    Normalize skills input to an ordered list.

    >>> split_skills("React, Node.js,  AWS ")
    ['React', 'Node.js', 'AWS']
    """
    if value is None:
        return []
    parts = value.split(",") if isinstance(value, str) else value
    return [p.strip() for p in parts if isinstance(p, str) and p.strip()]


def generate_temp_password(length: Optional[int] = None) -> str:
    length = length or get_settings().temp_password_length
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def compute_referral_status(code: dict, now: Optional[datetime] = None) -> str:
    """
    Derive an access code's status; it is never stored.

    used    iff isUsed is true
    expired iff now > expiresAt
    """
    now = now or utcnow()
    expires_at = code["expiresAt"]
    if expires_at.tzinfo is not None:
        # Stored datetimes are naive UTC
        expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)
    is_used = bool(code.get("isUsed"))
    is_expired = now > expires_at
    return REFERRAL_STATUSES[(is_used, is_expired)]


def referral_details_from_data(referrer_data: dict) -> Dict[str, dict]:
    """Build the referrer sub-documents from a referrerData payload."""
    return {
        "referrerDetails": _compact({
            "fullName": referrer_data.get("name"),
            "mobileNumber": referrer_data.get("phone"),
            "personalEmail": referrer_data.get("email"),
            "residentialAddress": referrer_data.get("address") or "",
        }),
        "workDetails": _compact({
            "companyName": referrer_data.get("companyName"),
            "workLocation": referrer_data.get("workLocation") or "",
            "designation": referrer_data.get("designation"),
        }),
    }


# ============================================================
# CREATE
# ============================================================

def validate_create(requester: dict, payload: dict) -> dict:
    """
    Validate a create request from an authenticated admin.

    Args:
        requester: token claims ({"user_id", "role", "is_super_admin"})
        payload: camelCase request body

    Returns:
        Normalized payload: email, role, isSuperAdmin, hierarchy fields
        and (for referrers) referrerData.
    """
    payload = migrate_legacy_hierarchy(payload)
    email = normalize_email(payload.get("email"))
    role = payload.get("role")

    if not email or not role:
        raise ValidationError("Email and role are required")
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email format", errors=[{"field": "email", "message": "Invalid email format"}])
    if role not in ROLES:
        raise ValidationError(f"Invalid role '{role}'", errors=[{"field": "role", "message": f"Must be one of {', '.join(ROLES)}"}])

    requester_is_super = bool(requester.get("is_super_admin"))
    wants_super = bool(payload.get("isSuperAdmin"))
    if not requester_is_super and role not in CREATABLE_BY_ADMIN:
        raise Forbidden("Insufficient privileges for this role")
    if wants_super and not requester_is_super:
        raise Forbidden("Only super admins can create super admins")

    referrer_data = payload.get("referrerData") or {}
    hierarchy = {}
    for name in HIERARCHY_FIELDS:
        value = payload.get(name)
        if role == "job_referrer" and not is_present(value):
            value = referrer_data.get(name)
        if is_present(value):
            hierarchy[name] = value.strip()

    if role in HIERARCHY_ROLES:
        _require_hierarchy(hierarchy, role)

    validated = {
        "email": email,
        "role": role,
        "isSuperAdmin": wants_super and role == "admin",
        **hierarchy,
    }
    if role == "job_referrer" and referrer_data:
        validated["referrerData"] = referrer_data
    return validated


def validate_referrer_data(referrer_data: Optional[dict]) -> dict:
    if not referrer_data:
        raise ValidationError("Referrer data is required")
    missing = [name for name in REQUIRED_REFERRER_DATA_FIELDS if not is_present(referrer_data.get(name))]
    if missing:
        raise ValidationError(
            f"Missing required referrer fields: {', '.join(missing)}",
            errors=[{"field": f"referrerData.{name}", "message": "required"} for name in missing]
        )
    return referrer_data


def build_new_record(validated: dict, created_by: Optional[str], password_hash: str) -> dict:
    """Assemble the document stored for a validated create request."""
    role = validated["role"]
    record = {
        "username": validated["email"].split("@")[0],
        "email": validated["email"],
        "password": password_hash,
        "role": role,
        "status": "active",
        "isSuperAdmin": validated.get("isSuperAdmin", False),
        "firstLogin": True,
        "onboardingStatus": "not_started" if role == "job_seeker" else "completed",
        "createdBy": created_by,
    }
    for name in HIERARCHY_FIELDS:
        if name in validated:
            record[name] = validated[name]
    if role == "job_referrer" and validated.get("referrerData"):
        record.update(referral_details_from_data(validated["referrerData"]))
    return record


# ============================================================
# UPDATE
# ============================================================

@dataclass
class UpdatePatch:
    """Fields to set and fields to remove, applied in one atomic update."""
    set_fields: Dict[str, Any] = field(default_factory=dict)
    unset_fields: Set[str] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not self.set_fields and not self.unset_fields

    def to_mongo(self) -> dict:
        update = {}
        if self.set_fields:
            update["$set"] = dict(self.set_fields)
        if self.unset_fields:
            update["$unset"] = {name: "" for name in sorted(self.unset_fields)}
        return update


EDITABLE_FIELDS = ("username", "role", "status") + HIERARCHY_FIELDS


def _details_for_role(role: str, payload: dict) -> Dict[str, dict]:
    details = {}
    for name in ROLE_DETAIL_FIELDS[role]:
        if payload.get(name) is not None:
            sub = _compact(payload[name])
            if name == "candidateDetails" and "skills" in sub:
                sub["skills"] = split_skills(sub["skills"])
            details[name] = sub
    return details


def validate_update(existing: dict, payload: dict) -> UpdatePatch:
    """
    Validate an admin edit of an existing record and build the patch.

    email and resumeGridFsId are never editable here and are dropped.
    On a role change the previous role's sub-documents are unset and the new
    role's sub-documents are set (empty if the payload carries none).
    """
    payload = {k: v for k, v in payload.items() if k not in ("email", "resumeGridFsId")}
    payload = migrate_legacy_hierarchy(payload)

    prior_role = existing.get("role")
    requested_role = payload.get("role")
    if requested_role is not None and requested_role not in ROLES:
        raise ValidationError(f"Invalid role '{requested_role}'")
    if payload.get("status") is not None and payload["status"] not in STATUSES:
        raise ValidationError(f"Invalid status '{payload['status']}'")
    target_role = requested_role or prior_role

    if requested_role in HIERARCHY_ROLES:
        _require_hierarchy(payload, requested_role)
    elif target_role in HIERARCHY_ROLES:
        merged = {**existing, **{k: payload[k] for k in REQUIRED_HIERARCHY_FIELDS if k in payload}}
        _require_hierarchy(merged, target_role)

    patch = UpdatePatch()
    for name in EDITABLE_FIELDS:
        value = payload.get(name)
        if value is None:
            continue
        patch.set_fields[name] = value.strip() if isinstance(value, str) else value

    if "username" in patch.set_fields and not patch.set_fields["username"]:
        raise ValidationError("Username cannot be empty")

    if target_role in ROLE_DETAIL_FIELDS:
        patch.set_fields.update(_details_for_role(target_role, payload))
        if target_role != prior_role:
            for name in ROLE_DETAIL_FIELDS[target_role]:
                patch.set_fields.setdefault(name, {})

    owned = ROLE_DETAIL_FIELDS.get(target_role, ())
    stale = set(ROLE_DETAIL_FIELDS.get(prior_role, ())) if target_role != prior_role else set()
    stale |= {name for name in ALL_DETAIL_FIELDS if name in existing}
    patch.unset_fields = {name for name in stale if name not in owned}
    return patch


def validate_profile_update(existing: dict, payload: dict) -> UpdatePatch:
    """
    Self-service edit: only username and hierarchy fields.
    Role, email and status are never taken from a profile edit.
    """
    payload = migrate_legacy_hierarchy(payload)
    patch = UpdatePatch()
    for name in ("username",) + HIERARCHY_FIELDS:
        value = payload.get(name)
        if value is not None:
            patch.set_fields[name] = value.strip() if isinstance(value, str) else value

    if "username" in patch.set_fields and not patch.set_fields["username"]:
        raise ValidationError("Username cannot be empty")

    role = existing.get("role")
    if role in HIERARCHY_ROLES:
        _require_hierarchy({**existing, **patch.set_fields}, role)
    return patch


# ============================================================
# DELETE
# ============================================================

def validate_delete(requester_id: str, target_id: str, target_role: Optional[str] = None):
    """
    An admin may delete any record, other admins included, except their own.
    """
    if str(requester_id) == str(target_id):
        logger.warning(f"Admin {requester_id} attempted to delete their own {target_role or 'unknown'} account")
        raise SelfDeletionForbidden()


# ============================================================
# SERVICE
# ============================================================

class UserRecordService:
    """
    Applies validated create/update/delete operations to storage.
    """

    def __init__(self, directory: IdentityDirectory = None, email_service: EmailService = None):
        self.directory = directory or IdentityDirectory()
        self.email_service = email_service or EmailService()

    def _send_welcome(self, email: str, temp_password: str) -> bool:
        try:
            sent = self.email_service.send_welcome_email(email, temp_password)
        except Exception as e:
            logger.error(f"Failed to send welcome email to {email}: {e}")
            return False
        if not sent:
            logger.error(f"Welcome email to {email} was not delivered")
        return sent

    def create_user(self, requester: dict, payload: dict) -> Tuple[dict, bool]:
        """
        Create a record and attempt the welcome email.

        Returns:
            (stored record without password, whether the email was sent)
        """
        validated = validate_create(requester, payload)
        if self.directory.email_exists(validated["email"]):
            raise DuplicateEmail()

        temp_password = generate_temp_password()
        record = build_new_record(validated, requester.get("user_id"), hash_password(temp_password))
        store = self.directory.store_for_role(record["role"])
        created = self.directory.register(store, record)
        logger.info(f"Created {record['role']} {record['email']} in {store.name} (by {requester.get('user_id')})")

        email_sent = self._send_welcome(record["email"], temp_password)
        return created, email_sent

    def create_referrer(self, requester: dict, payload: dict) -> Tuple[dict, bool]:
        validate_referrer_data(payload.get("referrerData"))
        return self.create_user(requester, {**payload, "role": "job_referrer"})

    def get_user(self, record_id: str) -> dict:
        _, doc = self.directory.find_by_id(record_id)
        if not doc:
            raise NotFound("User not found")
        return doc

    def list_users(
        self,
        requester: dict,
        search: Optional[str] = None,
        status: Optional[str] = None,
        created_by: Optional[str] = None,
        include_all: bool = False
    ) -> List[dict]:
        """
        Regular admins may only filter by their own createdBy id and never
        see admin accounts unless include_all is set.
        """
        query: Dict[str, Any] = {}
        is_super = bool(requester.get("is_super_admin"))

        if status in STATUSES:
            query["status"] = status

        if created_by:
            if not is_super and created_by != requester.get("user_id"):
                raise Forbidden("Forbidden - You can only view users you have created.")
            query["createdBy"] = created_by
        elif not is_super and not include_all:
            query["role"] = {"$ne": "admin"}

        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"email": pattern}, {"username": pattern}]

        users = []
        for store in self.directory.stores:
            users.extend(store.find(query))
        users.sort(key=lambda d: d.get("createdAt") or datetime.min, reverse=True)
        return users

    def _apply(self, store: RecordStore, existing: dict, record_id: str, patch: UpdatePatch) -> dict:
        if patch.is_empty:
            return existing
        updated = store.apply_update(record_id, patch.to_mongo())
        if not updated:
            raise NotFound("User not found or no changes applied")
        return updated

    def update_user(self, record_id: str, payload: dict) -> dict:
        store, existing = self.directory.find_by_id(record_id)
        if not existing:
            raise NotFound("User not found")
        patch = validate_update(existing, payload)
        return self._apply(store, existing, record_id, patch)

    def update_profile(self, record_id: str, payload: dict) -> dict:
        store, existing = self.directory.find_by_id(record_id)
        if not existing:
            raise NotFound("User not found")
        patch = validate_profile_update(existing, payload)
        return self._apply(store, existing, record_id, patch)

    def delete_user(self, requester: dict, record_id: str):
        validate_delete(requester.get("user_id"), record_id)
        store, target = self.directory.find_by_id(record_id)
        if not target:
            raise NotFound("User not found")
        if not self.directory.remove(store, record_id, target["email"]):
            raise NotFound("User not found or already deleted")
        logger.info(f"Admin {requester.get('user_id')} deleted {target.get('role')} {target.get('email')}")


def get_user_record_service() -> UserRecordService:
    return UserRecordService()
