"""
Profile Routes (self-service)

GET /profile - Get own record
PUT /profile - Update username and hierarchy fields
"""

from fastapi import APIRouter, Depends

from app.core.auth import get_current_user
from app.services.mongo_service import serialize_doc
from app.services.user_record_service import UserRecordService, get_user_record_service
from app.schemas.schemas import ProfileUpdateRequest, UserEnvelope, UserResponse

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.get("", response_model=UserEnvelope)
async def get_profile(
    current: dict = Depends(get_current_user),
    service: UserRecordService = Depends(get_user_record_service)
):
    return UserEnvelope(user=UserResponse.model_validate(serialize_doc(service.get_user(current["user_id"]))))


@router.put("", response_model=UserEnvelope)
async def update_profile(
    data: ProfileUpdateRequest,
    current: dict = Depends(get_current_user),
    service: UserRecordService = Depends(get_user_record_service)
):
    """Only username and Milan/Valaya/Khanda/Vibhaaga/Ghata can be changed here."""
    updated = service.update_profile(current["user_id"], data.model_dump(by_alias=True, exclude_none=True))
    return UserEnvelope(message="Profile updated successfully", user=UserResponse.model_validate(serialize_doc(updated)))
