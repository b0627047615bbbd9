"""
Modelos relacionados con órdenes/pedidos
"""
from sqlalchemy import Column, String, DateTime, Text, ForeignKey
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from app.core.database import Base


class Order(Base):
    """
    Tabla principal de órdenes

    Items, shipping, payment and address are snapshots taken at checkout
    and stored as JSONB.
    """
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True)
    order_number = Column(String(64), nullable=False, unique=True, index=True)

    # Cliente
    email = Column(String(255), nullable=False, index=True)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="SET NULL"), index=True)

    # Checkout snapshot
    items = Column(JSONB, nullable=False, server_default="[]")
    shipping = Column(JSONB, nullable=False, server_default="{}")
    payment = Column(JSONB, nullable=False, server_default="{}")
    address = Column(JSONB, nullable=False, server_default="{}")

    # Estados
    status = Column(String(32), nullable=False, server_default="pending", index=True)
    admin_status = Column(String(100))
    shipper_name = Column(String(100))

    # Cancelación
    cancelled_at = Column(DateTime(timezone=True))
    cancelled_by = Column(String(16))
    cancel_reason = Column(Text)

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
