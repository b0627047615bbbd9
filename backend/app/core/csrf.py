"""
CSRF protection for the TinyTales API

Each browser gets a random secret in the httpOnly `csrf-secret` cookie. Every
GET response carries a fresh token derived from that secret in the
X-CSRF-Token header; mutating routes require the token back (header or
`_csrf` body field) and verify it against the cookie.
"""
import base64
import hashlib
import hmac
import json
import logging
import secrets
from typing import Optional

from fastapi import HTTPException, Request, status
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings

logger = logging.getLogger(__name__)

CSRF_COOKIE = "csrf-secret"
CSRF_HEADER = "X-CSRF-Token"
CSRF_BODY_FIELD = "_csrf"
COOKIE_MAX_AGE = 24 * 60 * 60
SALT_LENGTH = 8


def generate_secret() -> str:
    return secrets.token_urlsafe(18)


def _hash(salt: str, secret: str) -> str:
    digest = hashlib.sha256(f"{salt}-{secret}".encode()).digest()
    return base64.urlsafe_b64encode(digest).decode().rstrip("=")


def create_token(secret: str) -> str:
    """Create a salted token bound to a secret"""
    salt = secrets.token_urlsafe(SALT_LENGTH)[:SALT_LENGTH]
    return f"{salt}-{_hash(salt, secret)}"


def verify_token(secret: str, token: str) -> bool:
    if not secret or not token or "-" not in token:
        return False
    salt = token[:SALT_LENGTH]
    if token[SALT_LENGTH:SALT_LENGTH + 1] != "-":
        return False
    expected = f"{salt}-{_hash(salt, secret)}"
    return hmac.compare_digest(expected.encode(), token.encode())


class CsrfTokenMiddleware(BaseHTTPMiddleware):
    """
    Issues the CSRF secret cookie (when missing) and a fresh token on GET responses.
    """

    async def dispatch(self, request: Request, call_next):
        secret = request.cookies.get(CSRF_COOKIE)
        new_secret = None
        if not secret:
            secret = new_secret = generate_secret()

        token = create_token(secret)
        request.state.csrf_token = token

        response = await call_next(request)

        if request.method in ("GET", "HEAD"):
            response.headers[CSRF_HEADER] = token

        if new_secret:
            response.set_cookie(
                CSRF_COOKIE,
                new_secret,
                max_age=COOKIE_MAX_AGE,
                httponly=True,
                secure=settings.is_production,
                samesite="strict",
            )

        return response


async def _token_from_body(request: Request) -> Optional[str]:
    if "application/json" not in request.headers.get("content-type", ""):
        return None
    try:
        body = await request.json()
    except (ValueError, UnicodeDecodeError):
        return None
    if isinstance(body, dict):
        return body.get(CSRF_BODY_FIELD)
    return None


async def verify_csrf(request: Request):
    """
    Dependency rejecting mutating requests without a valid CSRF token.

    Usage:
        @router.post("/", dependencies=[Depends(verify_csrf)])
    """
    secret = request.cookies.get(CSRF_COOKIE)
    token = request.headers.get(CSRF_HEADER) or await _token_from_body(request)

    if not secret or not token:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="CSRF token missing")

    if not verify_token(secret, token):
        logger.warning(f"Invalid CSRF token on {request.method} {request.url.path}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid CSRF token")
