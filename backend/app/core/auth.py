"""
Authentication for the TinyTales API
Issues and validates JWT access/refresh tokens and provides user context
"""
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from passlib.context import CryptContext
from pydantic import BaseModel

from app.core.config import settings
from app.domain.user import Role, User
from app.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

# Security scheme for bearer tokens
security = HTTPBearer(auto_error=False)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenUser(BaseModel):
    """User data resolved from an access token"""
    id: str
    email: str
    role: str = Role.USER


class AuthConfig:
    """Authentication configuration"""

    @staticmethod
    def get_auth_secret() -> str:
        """Get the JWT_SECRET from settings"""
        if not settings.JWT_SECRET:
            raise ValueError("JWT_SECRET environment variable is not set")
        return settings.JWT_SECRET

    @staticmethod
    def get_refresh_secret() -> str:
        return settings.refresh_secret or AuthConfig.get_auth_secret()


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def create_tokens(user: User) -> tuple:
    """
    Generate an access token (short lived) and a refresh token (30 days)

    Access payload: {userId, email, role}
    Refresh payload: {userId, tokenVersion}
    """
    now = datetime.now(timezone.utc)
    access_token = jwt.encode(
        {
            "userId": user.id,
            "email": user.email,
            "role": user.role or Role.USER,
            "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_MINUTES),
        },
        AuthConfig.get_auth_secret(),
        algorithm=settings.JWT_ALGORITHM,
    )
    refresh_token = jwt.encode(
        {
            "userId": user.id,
            "tokenVersion": time.time_ns(),
            "exp": now + timedelta(days=settings.REFRESH_TOKEN_DAYS),
        },
        AuthConfig.get_refresh_secret(),
        algorithm=settings.JWT_ALGORITHM,
    )
    return access_token, refresh_token


def decode_access_token(token: str) -> dict:
    """
    Decode and validate an access token.

    Raises:
        HTTPException 401 for expired or malformed tokens
    """
    try:
        return jwt.decode(token, AuthConfig.get_auth_secret(), algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        if "expired" in str(e).lower():
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"}
            )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"}
        )


def decode_refresh_token(token: str) -> Optional[dict]:
    """Decode a refresh token, returning None when invalid or expired"""
    try:
        return jwt.decode(token, AuthConfig.get_refresh_secret(), algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def resolve_role(user: User, repo: UserRepository = None) -> str:
    """
    Determine a user's role.

    Accounts created before roles existed have no role set; the configured
    ADMIN_EMAIL is promoted to admin (and persisted), everyone else is a user.
    """
    if user.role:
        return user.role

    if settings.ADMIN_EMAIL and user.email.lower() == settings.ADMIN_EMAIL.lower():
        user.role = Role.ADMIN
        (repo or UserRepository()).save(user)
        logger.info(f"Promoted legacy admin account {user.id}")
        return Role.ADMIN

    return Role.USER


def user_from_token(token: str) -> User:
    """
    Resolve the verified account behind an access token.

    Raises:
        HTTPException 401 if the token is invalid or the user is unknown/unverified
    """
    payload = decode_access_token(token)
    user_id = payload.get("userId")
    user = UserRepository().find_by_id(user_id) if user_id else None

    if not user or not user.verified:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or unverified user",
            headers={"WWW-Authenticate": "Bearer"}
        )
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenUser:
    """
    Dependency that extracts and validates the current user from the bearer token.

    Usage:
        @router.get("/protected")
        async def protected_route(user: TokenUser = Depends(get_current_user)):
            return {"message": f"Hello {user.email}"}
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
            headers={"WWW-Authenticate": "Bearer"}
        )

    user = user_from_token(credentials.credentials)
    return TokenUser(id=user.id, email=user.email, role=resolve_role(user))


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[TokenUser]:
    """
    Optional authentication - returns None if no valid token provided.
    """
    if not credentials:
        return None

    try:
        user = user_from_token(credentials.credentials)
    except HTTPException:
        return None
    return TokenUser(id=user.id, email=user.email, role=resolve_role(user))


def require_role(*allowed_roles: str):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.delete("/products/{product_id}")
        async def delete_product(
            product_id: str,
            user: TokenUser = Depends(require_role("admin"))
        ):
            pass
    """
    async def role_checker(
        user: TokenUser = Depends(get_current_user)
    ) -> TokenUser:
        if user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "Insufficient permissions",
                    "required": list(allowed_roles),
                    "current": user.role,
                }
            )

        return user

    return role_checker


# Convenience dependencies for common role requirements
require_admin = require_role(Role.ADMIN)
require_user = require_role(Role.USER, Role.ADMIN)
