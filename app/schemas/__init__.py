"""
Schemas module - Request/Response schemas for API endpoints.

Stored documents are plain dicts (see app.services); these schemas are the
API contract (what clients send/receive).
"""

from app.schemas.schemas import UserRole, UserStatus, OnboardingStatus, ReferralStatus

__all__ = ["UserRole", "UserStatus", "OnboardingStatus", "ReferralStatus"]
