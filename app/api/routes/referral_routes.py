"""
Referral Code Routes

POST /referral-codes - Issue an access code to a candidate (admin, referrer)
GET /referral-codes - List codes with derived status (admin)
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from app.core.auth import require_admin, require_role
from app.services.mongo_service import serialize_doc
from app.services.referral_service import ReferralCodeService, get_referral_code_service
from app.services.user_record_service import compute_referral_status
from app.schemas.schemas import (
    GenerateReferralCodeRequest, GenerateReferralCodeResponse, ReferralCodeListResponse,
    ReferralCodeResponse, ReferralStatus
)

router = APIRouter(prefix="/referral-codes", tags=["Referral Codes"])


@router.post("", response_model=GenerateReferralCodeResponse, status_code=201)
async def generate_referral_code(
    data: GenerateReferralCodeRequest,
    issuer: dict = Depends(require_role("admin", "job_referrer")),
    service: ReferralCodeService = Depends(get_referral_code_service)
):
    """
    Generate a one-time access code valid for durationValue durationUnit.
    Creates a job_seeker account if the candidate email is new.
    """
    code, is_new_user, email_sent = service.generate(
        issuer, data.candidate_email, data.duration_value, data.duration_unit.value
    )
    doc = serialize_doc(code)
    doc["status"] = compute_referral_status(code)
    message = "Referral code generated and emailed." if email_sent else "Referral code generated, but the email could not be sent."
    return GenerateReferralCodeResponse(
        message=message,
        referral_code=ReferralCodeResponse.model_validate(doc),
        is_new_user=is_new_user,
        email_sent=email_sent
    )


@router.get("", response_model=ReferralCodeListResponse)
async def list_referral_codes(
    status: Optional[ReferralStatus] = Query(None),
    generated_by: Optional[str] = Query(None, alias="generatedByAdminId"),
    admin: dict = Depends(require_admin),
    service: ReferralCodeService = Depends(get_referral_code_service)
):
    codes = service.list_codes(status=status.value if status else None, generated_by=generated_by)
    return ReferralCodeListResponse(
        referral_codes=[ReferralCodeResponse.model_validate(serialize_doc(c)) for c in codes]
    )
