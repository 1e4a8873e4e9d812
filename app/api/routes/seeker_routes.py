"""
Job Seeker Routes

POST /seeker/onboarding - Complete onboarding: candidate details plus resume
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from gridfs import GridFSBucket

from app.core.auth import create_access_token, require_role
from app.core.exceptions import AppError
from app.db.mongodb import get_resume_bucket
from app.services.mongo_service import serialize_doc
from app.services.onboarding_service import OnboardingService, get_onboarding_service, validate_seeker_onboarding
from app.utils.file_upload import delete_resume, store_resume
from app.schemas.schemas import OnboardingResponse, UserResponse

router = APIRouter(prefix="/seeker", tags=["Job Seeker"])


@router.post("/onboarding", response_model=OnboardingResponse)
async def complete_onboarding(
    full_name: Optional[str] = Form(None, alias="fullName"),
    phone: Optional[str] = Form(None),
    skills: Optional[str] = Form(None, description="Comma-separated"),
    experience: Optional[str] = Form(None),
    resume: UploadFile = File(..., description="Resume file (PDF, DOC or DOCX)"),
    seeker: dict = Depends(require_role("job_seeker")),
    bucket: GridFSBucket = Depends(get_resume_bucket),
    service: OnboardingService = Depends(get_onboarding_service)
):
    """
    Multipart form. Marks onboarding completed and returns a fresh token
    carrying the new onboardingStatus.
    """
    details = validate_seeker_onboarding({
        "fullName": full_name, "phone": phone, "skills": skills, "experience": experience
    })

    resume_id, _ = await store_resume(bucket, resume, seeker["user_id"])
    try:
        updated, previous_resume_id = service.complete_seeker(seeker["user_id"], details, resume_id)
    except AppError:
        delete_resume(bucket, resume_id)
        raise
    delete_resume(bucket, previous_resume_id)

    return OnboardingResponse(
        message="Onboarding completed successfully",
        access_token=create_access_token(updated),
        user=UserResponse.model_validate(serialize_doc(updated))
    )
