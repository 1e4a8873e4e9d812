"""
Referrer Routes (self-service)

PUT /referrer/onboarding - Complete onboarding: personal and work details
GET /referrer/referral-codes - Access codes this referrer issued
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.auth import create_access_token, require_role
from app.services.mongo_service import serialize_doc
from app.services.onboarding_service import OnboardingService, get_onboarding_service, validate_referrer_onboarding
from app.services.referral_service import ReferralCodeService, get_referral_code_service
from app.schemas.schemas import (
    OnboardingResponse, ReferralCodeListResponse, ReferralCodeResponse, ReferralStatus,
    ReferrerOnboardingRequest, UserResponse
)

router = APIRouter(prefix="/referrer", tags=["Referrer"])

require_referrer = require_role("job_referrer")


@router.put("/onboarding", response_model=OnboardingResponse)
async def complete_onboarding(
    data: ReferrerOnboardingRequest,
    referrer: dict = Depends(require_referrer),
    service: OnboardingService = Depends(get_onboarding_service)
):
    """All seven fields are required; mobileNumber must have 10 digits."""
    details = validate_referrer_onboarding(data.model_dump(by_alias=True))
    updated = service.complete_referrer(referrer["user_id"], details)
    return OnboardingResponse(
        message="Onboarding completed successfully",
        access_token=create_access_token(updated),
        user=UserResponse.model_validate(serialize_doc(updated))
    )


@router.get("/referral-codes", response_model=ReferralCodeListResponse)
async def list_own_referral_codes(
    status: Optional[ReferralStatus] = Query(None),
    referrer: dict = Depends(require_referrer),
    service: ReferralCodeService = Depends(get_referral_code_service)
):
    """Newest first, each with its derived status."""
    codes = service.list_codes(status=status.value if status else None, generated_by=referrer["user_id"])
    return ReferralCodeListResponse(
        referral_codes=[ReferralCodeResponse.model_validate(serialize_doc(c)) for c in codes]
    )
