"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependencies for protected routes
"""

from datetime import timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.config import get_settings
from app.core.exceptions import Forbidden, InvalidToken, Unauthorized
from app.utils.clock import utcnow

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor; a missing header is reported as Unauthorized below
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt. Surrounding whitespace is not part of a password."""
    return pwd_context.hash(password.strip())


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify password against hash."""
    if not hashed_password or plain_password is None:
        return False
    return pwd_context.verify(plain_password.strip(), hashed_password)


def create_access_token(record: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token for a stored user/referrer record."""
    settings = get_settings()
    to_encode = {
        "sub": str(record.get("_id") or record.get("id")),
        "email": record.get("email"),
        "role": record.get("role"),
        "isSuperAdmin": bool(record.get("isSuperAdmin")),
        "firstLogin": bool(record.get("firstLogin")),
        "onboardingStatus": record.get("onboardingStatus"),
    }
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and verify JWT token. Raises InvalidToken on bad signature or expiry."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise InvalidToken()


async def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> dict:
    """
    FastAPI dependency - Get current authenticated user from token claims.

    Usage:
        @app.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized()

    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id or not payload.get("role"):
        raise InvalidToken()

    return {
        "user_id": user_id,
        "email": payload.get("email"),
        "role": payload["role"],
        "is_super_admin": bool(payload.get("isSuperAdmin")),
        "first_login": bool(payload.get("firstLogin")),
    }


def require_role(*roles: str):
    """Dependency factory - Require one of the given roles."""
    async def dependency(user: dict = Depends(get_current_user)) -> dict:
        if user["role"] not in roles:
            raise Forbidden(f"Forbidden - {' or '.join(roles)} access required")
        return user
    return dependency


async def require_admin(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require admin role (super admins are admins too)."""
    if user["role"] != "admin":
        raise Forbidden("Forbidden - Admin access required")
    return user
