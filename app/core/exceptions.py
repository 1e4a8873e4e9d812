"""
Error taxonomy for the API.

Every error is an HTTPException subclass so route handlers and services can
raise them directly; app.main renders them with an extra machine-readable
`error` code.
"""

from typing import List, Optional
from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "internal_error"
    default_detail = "Internal server error"

    def __init__(self, detail: Optional[str] = None, errors: Optional[List[dict]] = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers
        )
        self.errors = errors or []


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "unauthorized"
    default_detail = "Unauthorized - No token provided"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class InvalidToken(Unauthorized):
    error_code = "invalid_token"
    default_detail = "Invalid or expired token"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "forbidden"
    default_detail = "Forbidden - Insufficient privileges"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "validation_error"
    default_detail = "Validation failed"


class MissingHierarchyFields(ValidationError):
    error_code = "missing_hierarchy_fields"
    default_detail = "Milan, Valaya and Khanda are required for Admin and Referrer roles."


class DuplicateEmail(AppError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "duplicate_email"
    default_detail = "Email already in use"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"
    default_detail = "Not found"


class SelfDeletionForbidden(Forbidden):
    error_code = "self_deletion_forbidden"
    default_detail = "Cannot delete your own admin account."


class InternalError(AppError):
    pass
