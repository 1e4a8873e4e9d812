"""
User Routes (admin only)

POST /users - Create user, emails a temporary password
GET /users - List users (search, status, createdBy, all)
GET /users/{user_id} - Get user
PUT /users/{user_id} - Update user
DELETE /users/{user_id} - Delete user (never your own account)
POST /referrers - Create referrer with referrer details
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from app.core.auth import require_admin
from app.services.mongo_service import serialize_doc
from app.services.user_record_service import UserRecordService, get_user_record_service
from app.schemas.schemas import (
    CreateUserRequest, CreateReferrerRequest, UpdateUserRequest,
    CreateUserResponse, UserEnvelope, UserListResponse, UserResponse, MessageResponse
)

router = APIRouter(tags=["Users"])


def to_user_response(doc: dict) -> UserResponse:
    return UserResponse.model_validate(serialize_doc(doc))


@router.post("/users", response_model=CreateUserResponse, status_code=201)
async def create_user(
    data: CreateUserRequest,
    admin: dict = Depends(require_admin),
    service: UserRecordService = Depends(get_user_record_service)
):
    """
    Create a user account with a temporary password.

    Admins and referrers need Milan, Valaya and Khanda. Only super admins can
    create admins or super admins. A failed welcome email does not fail the
    request; check `welcomeEmailSent`.
    """
    created, email_sent = service.create_user(admin, data.model_dump(by_alias=True, exclude_none=True))
    return CreateUserResponse(
        message="User created successfully",
        user=to_user_response(created),
        welcome_email_sent=email_sent
    )


@router.get("/users", response_model=UserListResponse)
async def list_users(
    search: Optional[str] = Query(None, description="Case-insensitive match on email or username"),
    status: Optional[str] = Query(None, description="active or inactive"),
    created_by: Optional[str] = Query(None, alias="createdBy"),
    include_all: bool = Query(False, alias="all"),
    admin: dict = Depends(require_admin),
    service: UserRecordService = Depends(get_user_record_service)
):
    """List users. Regular admins do not see admin accounts unless `all` is set."""
    users = service.list_users(admin, search=search, status=status, created_by=created_by, include_all=include_all)
    return UserListResponse(message="Users fetched successfully", users=[to_user_response(u) for u in users])


@router.get("/users/{user_id}", response_model=UserEnvelope)
async def get_user(
    user_id: str,
    admin: dict = Depends(require_admin),
    service: UserRecordService = Depends(get_user_record_service)
):
    """Get a single user (password never included)."""
    return UserEnvelope(user=to_user_response(service.get_user(user_id)))


@router.put("/users/{user_id}", response_model=UserEnvelope)
async def update_user(
    user_id: str,
    data: UpdateUserRequest,
    admin: dict = Depends(require_admin),
    service: UserRecordService = Depends(get_user_record_service)
):
    """
    Update a user. Email and resume are not editable here.
    Changing the role clears the previous role's details.
    """
    updated = service.update_user(user_id, data.model_dump(by_alias=True, exclude_none=True, mode="json"))
    return UserEnvelope(message="User updated successfully", user=to_user_response(updated))


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    admin: dict = Depends(require_admin),
    service: UserRecordService = Depends(get_user_record_service)
):
    """Delete a user. Admins cannot delete their own account."""
    service.delete_user(admin, user_id)
    return MessageResponse(message="User deleted successfully")


@router.post("/referrers", response_model=CreateUserResponse, status_code=201)
async def create_referrer(
    data: CreateReferrerRequest,
    admin: dict = Depends(require_admin),
    service: UserRecordService = Depends(get_user_record_service)
):
    """Create a referrer. Requires referrerData (name, phone, companyName, designation)."""
    created, email_sent = service.create_referrer(admin, data.model_dump(by_alias=True, exclude_none=True))
    return CreateUserResponse(
        message="Referrer created successfully",
        user=to_user_response(created),
        welcome_email_sent=email_sent
    )
