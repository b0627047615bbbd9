"""
User and Cart Domain Models
"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import Field

from app.domain.product import CamelModel

MAX_FAILED_LOGINS = 5
LOCKOUT_MINUTES = 30


class Role:
    ADMIN = "admin"
    USER = "user"


class CartItem(CamelModel):
    """A cart line, as kept in the browser and persisted per account"""
    id: str
    name: str
    price: float = Field(..., ge=0)
    image: str = ""
    size: Optional[str] = None
    quantity: int = Field(1, ge=1)


class User(CamelModel):
    """
    Account record.

    Sensitive fields (password hash, OTP, refresh/reset tokens) never leave
    the API; use to_public() for responses.
    """

    id: str
    email: str
    password_hash: str = ""
    verified: bool = False
    role: Optional[str] = None
    otp: Optional[str] = None
    otp_expiry: Optional[datetime] = None
    failed_login_attempts: int = 0
    locked_until: Optional[datetime] = None
    refresh_token: Optional[str] = None
    password_reset_token: Optional[str] = None
    password_reset_expiry: Optional[datetime] = None
    saved_cart: Optional[List[CartItem]] = None
    wishlist: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_locked(self, now: datetime = None) -> bool:
        if not self.locked_until:
            return False
        now = now or datetime.now(timezone.utc)
        return now <= self.locked_until

    def minutes_locked(self, now: datetime = None) -> int:
        if not self.locked_until:
            return 0
        now = now or datetime.now(timezone.utc)
        seconds = (self.locked_until - now).total_seconds()
        return max(0, -(-int(seconds) // 60))

    def to_public(self, role: str = None) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "verified": self.verified,
            "role": role or self.role or Role.USER,
        }
