"""
Modelo de usuarios (cuentas, carrito guardado y wishlist)
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from app.core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=False)
    verified = Column(Boolean, nullable=False, server_default="false")
    role = Column(String(16))

    # Verificación por email
    otp = Column(String(6))
    otp_expiry = Column(DateTime(timezone=True))

    # Bloqueo por intentos fallidos
    failed_login_attempts = Column(Integer, nullable=False, server_default="0")
    locked_until = Column(DateTime(timezone=True))

    # Tokens
    refresh_token = Column(Text)
    password_reset_token = Column(String(64), index=True)
    password_reset_expiry = Column(DateTime(timezone=True))

    # Carrito persistido (sobrevive al logout) y wishlist
    saved_cart = Column(JSONB)
    wishlist = Column(JSONB, nullable=False, server_default="[]")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
