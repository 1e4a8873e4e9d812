"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
JSON bodies use camelCase (the stored document field names); Python
attributes stay snake_case.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Union
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    job_seeker = "job_seeker"
    job_poster = "job_poster"
    job_referrer = "job_referrer"
    admin = "admin"


class UserStatus(str, Enum):
    active = "active"
    inactive = "inactive"


class OnboardingStatus(str, Enum):
    not_started = "not_started"
    in_progress = "in_progress"
    completed = "completed"


class ReferralStatus(str, Enum):
    used_and_valid = "used and valid"
    used_and_expired = "used and expired"
    unused_and_valid = "unused and valid"
    unused_and_expired = "unused and expired"


class DurationUnit(str, Enum):
    minutes = "minutes"
    hours = "hours"
    days = "days"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# ROLE-SPECIFIC SUB-DOCUMENTS
# ============================================================

class CandidateDetails(CamelModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    # Either a list or a comma-separated string; stored as a list
    skills: Optional[Union[List[str], str]] = None
    experience: Optional[str] = None


class JobPosterDetails(CamelModel):
    company_name: Optional[str] = None


class ReferrerDetails(CamelModel):
    full_name: Optional[str] = None
    mobile_number: Optional[str] = None
    personal_email: Optional[str] = None
    residential_address: Optional[str] = None


class WorkDetails(CamelModel):
    company_name: Optional[str] = None
    work_location: Optional[str] = None
    designation: Optional[str] = None


class ReferrerData(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    company_name: Optional[str] = None
    work_location: Optional[str] = None
    designation: Optional[str] = None
    milan: Optional[str] = None
    valaya: Optional[str] = None
    khanda: Optional[str] = None
    vibhaaga: Optional[str] = None
    ghata: Optional[str] = None


# ============================================================
# HIERARCHY
# ============================================================

class HierarchyFields(CamelModel):
    milan: Optional[str] = None
    valaya: Optional[str] = None
    khanda: Optional[str] = None
    vibhaaga: Optional[str] = None
    ghata: Optional[str] = None
    # Legacy names, migrated to milan / valaya / khanda
    milan_shaka_bhaga: Optional[str] = None
    valaya_nagar: Optional[str] = None
    khanda_bhaga: Optional[str] = None


# ============================================================
# USER SCHEMAS
# ============================================================

class CreateUserRequest(HierarchyFields):
    # Plain str: the service applies its own email pattern and answers 400
    email: str
    role: str
    is_super_admin: Optional[bool] = None
    referrer_data: Optional[ReferrerData] = None


class CreateReferrerRequest(HierarchyFields):
    email: str
    is_super_admin: Optional[bool] = None
    referrer_data: Optional[ReferrerData] = None


class UpdateUserRequest(HierarchyFields):
    username: Optional[str] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    candidate_details: Optional[CandidateDetails] = None
    job_poster_details: Optional[JobPosterDetails] = None
    referrer_details: Optional[ReferrerDetails] = None
    work_details: Optional[WorkDetails] = None
    # Accepted but always discarded by the service
    email: Optional[str] = None
    resume_grid_fs_id: Optional[str] = None


class ProfileUpdateRequest(HierarchyFields):
    username: Optional[str] = None
    # Ignored for self-service edits
    email: Optional[str] = None
    role: Optional[str] = None


class UserResponse(CamelModel):
    id: str
    email: str
    username: Optional[str] = None
    role: UserRole
    status: UserStatus = UserStatus.active
    is_super_admin: bool = False
    first_login: bool = True
    onboarding_status: Optional[OnboardingStatus] = None
    milan: Optional[str] = None
    valaya: Optional[str] = None
    khanda: Optional[str] = None
    vibhaaga: Optional[str] = None
    ghata: Optional[str] = None
    candidate_details: Optional[CandidateDetails] = None
    job_poster_details: Optional[JobPosterDetails] = None
    referrer_details: Optional[ReferrerDetails] = None
    work_details: Optional[WorkDetails] = None
    resume_grid_fs_id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CreateUserResponse(CamelModel):
    message: str
    user: UserResponse
    welcome_email_sent: bool


class UserEnvelope(CamelModel):
    message: Optional[str] = None
    user: UserResponse


class UserListResponse(CamelModel):
    message: str
    users: List[UserResponse]


# ============================================================
# AUTH SCHEMAS
# ============================================================

class LoginRequest(BaseModel):
    # Matched case-insensitively against stored addresses
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class ChangePasswordRequest(CamelModel):
    current_password: Optional[str] = None
    new_password: str


class SuperAdminCheckResponse(CamelModel):
    is_super_admin: bool
    role: str
    user: UserResponse


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(CamelModel):
    token: str
    new_password: str


# ============================================================
# REFERRAL CODE SCHEMAS
# ============================================================

class GenerateReferralCodeRequest(CamelModel):
    candidate_email: str
    duration_value: int = 7
    duration_unit: DurationUnit = DurationUnit.days


class ReferralCodeResponse(CamelModel):
    id: str
    code: str
    candidate_email: str
    expires_at: datetime
    is_used: bool
    used_at: Optional[datetime] = None
    generated_by_admin_id: Optional[str] = None
    generated_by_admin_username: Optional[str] = None
    status: ReferralStatus
    created_at: Optional[datetime] = None


class GenerateReferralCodeResponse(CamelModel):
    message: str
    referral_code: ReferralCodeResponse
    is_new_user: bool
    email_sent: bool


class ReferralCodeListResponse(CamelModel):
    referral_codes: List[ReferralCodeResponse]


# ============================================================
# ONBOARDING SCHEMAS
# ============================================================

class ReferrerOnboardingRequest(CamelModel):
    full_name: Optional[str] = None
    mobile_number: Optional[str] = None
    personal_email: Optional[str] = None
    residential_address: Optional[str] = None
    company_name: Optional[str] = None
    work_location: Optional[str] = None
    designation: Optional[str] = None


class OnboardingResponse(CamelModel):
    message: str
    access_token: str
    user: UserResponse


# ============================================================
# RESUME SCHEMAS
# ============================================================

class ResumeUploadResponse(CamelModel):
    success: bool
    message: str
    filename: str
    resume_grid_fs_id: str


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
