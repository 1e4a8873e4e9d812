"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from app.api.routes.auth_routes import router as auth_router
from app.api.routes.user_routes import router as user_router
from app.api.routes.profile_routes import router as profile_router
from app.api.routes.referral_routes import router as referral_router
from app.api.routes.resume_routes import router as resume_router
from app.api.routes.seeker_routes import router as seeker_router
from app.api.routes.referrer_routes import router as referrer_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(user_router)
api_router.include_router(profile_router)
api_router.include_router(referral_router)
api_router.include_router(resume_router)
api_router.include_router(seeker_router)
api_router.include_router(referrer_router)
