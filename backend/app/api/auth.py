"""
Authentication API endpoints for TinyTales
- Sign up with email verification (OTP)
- Sign in with account lockout
- Rotating refresh tokens
- Password reset
"""
import logging
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, EmailStr, Field

from app.core.auth import (
    create_tokens,
    decode_access_token,
    decode_refresh_token,
    hash_password,
    resolve_role,
    security,
    user_from_token,
    verify_password,
)
from app.core.config import settings
from app.core.csrf import verify_csrf
from app.core.rate_limit import auth_rate_limit, record_auth_failure
from app.domain.user import LOCKOUT_MINUTES, MAX_FAILED_LOGINS, Role, User
from app.repositories.user_repository import UserRepository
from app.services.email_service import EmailService, generate_otp

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_csrf)])
# verify-token is a GET and skips CSRF
read_router = APIRouter()

OTP_MINUTES = 10
RESET_TOKEN_HOURS = 1
MIN_PASSWORD_LENGTH = 6


# =============================================================================
# Pydantic Models
# =============================================================================

class SignupRequest(BaseModel):
    email: EmailStr
    password: str


class SigninRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class VerifyEmailRequest(BaseModel):
    userId: Optional[str] = None
    otp: Optional[str] = None


class ResendCodeRequest(BaseModel):
    userId: Optional[str] = None


class RefreshRequest(BaseModel):
    refreshToken: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: Optional[str] = None
    newPassword: Optional[str] = Field(default=None)


# =============================================================================
# Helpers
# =============================================================================

def _now() -> datetime:
    return datetime.now(timezone.utc)


def _issue_tokens(repo: UserRepository, user: User) -> dict:
    """Create a token pair, store the refresh token and build the response body"""
    role = resolve_role(user, repo)
    user.role = role
    access_token, refresh_token = create_tokens(user)
    user.refresh_token = refresh_token
    repo.save(user)
    return {
        "accessToken": access_token,
        "refreshToken": refresh_token,
        "user": user.to_public(role),
    }


def _send_or_fail(sent: bool, emails: EmailService, what: str):
    if emails.enabled and not sent:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to send {what} email. Please try again."
        )


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/signup", dependencies=[Depends(auth_rate_limit)])
def signup(data: SignupRequest, request: Request):
    """Create (or re-issue) an unverified account and email a 6 digit code"""
    if len(data.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")

    repo = UserRepository()
    email = data.email.lower()
    existing = repo.find_by_email(email)
    if existing and existing.verified:
        record_auth_failure(request)
        raise HTTPException(status_code=400, detail="User already exists")

    otp = generate_otp()
    is_admin = bool(settings.ADMIN_EMAIL) and email == settings.ADMIN_EMAIL.lower()
    user = User(
        id=existing.id if existing else str(int(time.time() * 1000)),
        email=email,
        password_hash=hash_password(data.password),
        verified=False,
        role=Role.ADMIN if is_admin else Role.USER,
        otp=otp,
        otp_expiry=_now() + timedelta(minutes=OTP_MINUTES),
        created_at=existing.created_at if existing else None,
    )
    repo.save(user)

    emails = EmailService()
    _send_or_fail(emails.send_verification_email(email, otp), emails, "verification")

    logger.info(f"Signup started for user {user.id}")
    return {"message": "Verification code sent to your email", "userId": user.id}


@router.post("/verify-email")
def verify_email(data: VerifyEmailRequest):
    """Confirm the emailed code and sign the user in"""
    if not data.userId or not data.otp:
        raise HTTPException(status_code=400, detail="User ID and OTP are required")

    repo = UserRepository()
    user = repo.find_by_id(data.userId)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.verified:
        raise HTTPException(status_code=400, detail="Email already verified")
    if user.otp != data.otp:
        raise HTTPException(status_code=400, detail="Invalid verification code")
    if not user.otp_expiry or user.otp_expiry < _now():
        raise HTTPException(status_code=400, detail="Verification code expired. Please request a new one.")

    user.verified = True
    user.otp = None
    user.otp_expiry = None

    return {"message": "Email verified successfully", **_issue_tokens(repo, user)}


@router.post("/resend-code")
def resend_code(data: ResendCodeRequest):
    if not data.userId:
        raise HTTPException(status_code=400, detail="User ID is required")

    repo = UserRepository()
    user = repo.find_by_id(data.userId)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.verified:
        raise HTTPException(status_code=400, detail="Email already verified")

    user.otp = generate_otp()
    user.otp_expiry = _now() + timedelta(minutes=OTP_MINUTES)
    repo.save(user)

    emails = EmailService()
    _send_or_fail(emails.send_verification_email(user.email, user.otp), emails, "verification")
    return {"message": "Verification code resent to your email"}


@router.post("/signin", dependencies=[Depends(auth_rate_limit)])
def signin(data: SigninRequest, request: Request):
    """
    Sign in with email and password

    After 5 consecutive failures the account is locked for 30 minutes (423).
    """
    if not data.email or not data.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    repo = UserRepository()
    user = repo.find_by_email(data.email)
    if not user:
        record_auth_failure(request)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    now = _now()
    if user.is_locked(now):
        record_auth_failure(request)
        raise HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail={
                "error": "Account is temporarily locked due to too many failed login attempts",
                "lockedUntil": user.locked_until.isoformat(),
                "minutesRemaining": user.minutes_locked(now),
            }
        )

    if not user.verified:
        raise HTTPException(
            status_code=403,
            detail={
                "error": "Please verify your email first",
                "userId": user.id,
                "needsVerification": True,
            }
        )

    if not verify_password(data.password, user.password_hash):
        record_auth_failure(request)
        user.failed_login_attempts += 1
        if user.failed_login_attempts >= MAX_FAILED_LOGINS:
            user.locked_until = now + timedelta(minutes=LOCKOUT_MINUTES)
            user.failed_login_attempts = 0
            logger.warning(f"Locked account {user.id} after {MAX_FAILED_LOGINS} failed logins")
        repo.save(user)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    user.failed_login_attempts = 0
    user.locked_until = None

    return {"message": "Sign in successful", **_issue_tokens(repo, user)}


@router.post("/refresh-token")
def refresh_token(data: RefreshRequest):
    """Exchange a refresh token for a new token pair (the old refresh token stops working)"""
    if not data.refreshToken:
        raise HTTPException(status_code=400, detail="Refresh token is required")

    payload = decode_refresh_token(data.refreshToken)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    repo = UserRepository()
    user = repo.find_by_id(payload.get("userId"))
    if not user or not user.verified:
        raise HTTPException(status_code=401, detail="Invalid user")

    if not user.refresh_token or not secrets.compare_digest(user.refresh_token, data.refreshToken):
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    return _issue_tokens(repo, user)


@router.post("/forgot-password")
def forgot_password(data: ForgotPasswordRequest):
    """Email a reset link; the response never reveals whether the account exists"""
    if not data.email:
        raise HTTPException(status_code=400, detail="Email is required")

    message = {"message": "If an account with that email exists, a password reset link has been sent."}

    repo = UserRepository()
    user = repo.find_by_email(data.email)
    if not user:
        return message

    user.password_reset_token = secrets.token_hex(32)
    user.password_reset_expiry = _now() + timedelta(hours=RESET_TOKEN_HOURS)
    repo.save(user)

    emails = EmailService()
    _send_or_fail(
        emails.send_password_reset_email(user.email, user.password_reset_token), emails, "password reset"
    )
    return message


@router.post("/reset-password")
def reset_password(data: ResetPasswordRequest):
    """Set a new password from a reset token and sign out every session"""
    if not data.token or not data.newPassword:
        raise HTTPException(status_code=400, detail="Token and new password are required")
    if len(data.newPassword) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")

    repo = UserRepository()
    user = repo.find_by_reset_token(data.token)
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    user.password_hash = hash_password(data.newPassword)
    user.password_reset_token = None
    user.password_reset_expiry = None
    user.refresh_token = None
    repo.save(user)

    logger.info(f"Password reset for user {user.id}")
    return {"message": "Password reset successfully. Please sign in with your new password."}


@router.post("/logout")
def logout(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)):
    """Invalidate the stored refresh token; an expired access token is ignored"""
    if credentials:
        try:
            payload = decode_access_token(credentials.credentials)
        except HTTPException:
            payload = None

        repo = UserRepository()
        user = repo.find_by_id(payload.get("userId")) if payload else None
        if user:
            user.refresh_token = None
            repo.save(user)

    return {"message": "Logged out successfully"}


@read_router.get("/verify-token")
async def verify_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)):
    """Check an access token and return the account it belongs to"""
    if not credentials:
        raise HTTPException(status_code=401, detail="No token provided")

    user = user_from_token(credentials.credentials)
    return {"valid": True, "user": user.to_public(resolve_role(user))}
