"""
Resume Routes

POST /resumes - Upload own resume (job seekers)
GET /resumes/{file_id} - Download a resume (admins, job posters, owner)
"""

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import StreamingResponse
from gridfs import GridFSBucket

from app.core.auth import get_current_user, require_role
from app.core.exceptions import Forbidden, NotFound
from app.db.mongodb import get_resume_bucket
from app.services.mongo_service import IdentityDirectory, get_identity_directory
from app.utils.file_upload import delete_resume, open_resume, store_resume
from app.schemas.schemas import ResumeUploadResponse

router = APIRouter(prefix="/resumes", tags=["Resumes"])


@router.post("", response_model=ResumeUploadResponse, status_code=201)
async def upload_resume(
    file: UploadFile = File(..., description="Resume file (PDF, DOC or DOCX)"),
    seeker: dict = Depends(require_role("job_seeker")),
    bucket: GridFSBucket = Depends(get_resume_bucket),
    directory: IdentityDirectory = Depends(get_identity_directory)
):
    """Upload a resume. Replaces (and deletes) any previous one."""
    store, user = directory.find_by_id(seeker["user_id"])
    if not user:
        raise NotFound("User not found")

    file_id, filename = await store_resume(bucket, file, seeker["user_id"])
    update = {"resumeGridFsId": file_id}
    # A resume on file means onboarding has started
    if user.get("onboardingStatus") == "not_started":
        update["onboardingStatus"] = "in_progress"
    store.apply_update(seeker["user_id"], {"$set": update})
    delete_resume(bucket, user.get("resumeGridFsId"))

    return ResumeUploadResponse(
        success=True,
        message="Resume uploaded successfully",
        filename=filename,
        resume_grid_fs_id=file_id
    )


@router.get("/{file_id}")
async def download_resume(
    file_id: str,
    current: dict = Depends(get_current_user),
    bucket: GridFSBucket = Depends(get_resume_bucket)
):
    """Stream a resume back with its original filename."""
    stream = open_resume(bucket, file_id)
    metadata = stream.metadata or {}
    if current["role"] not in ("admin", "job_poster") and metadata.get("ownerId") != current["user_id"]:
        raise Forbidden("Forbidden - Not allowed to view this resume")

    return StreamingResponse(
        iter(lambda: stream.readchunk(), b""),
        media_type=metadata.get("contentType", "application/octet-stream"),
        headers={"Content-Disposition": f'attachment; filename="{stream.filename}"'}
    )
