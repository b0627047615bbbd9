"""
Modelo de productos del catálogo
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, Numeric
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from app.core.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(String(255), primary_key=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String(50), nullable=False, index=True)
    description = Column(Text, nullable=False, server_default="")

    # [{"name": "Mint", "images": [...]}]
    colors = Column(JSONB, nullable=False, server_default="[]")
    sizes = Column(JSONB, nullable=False, server_default="[]")
    # {"0-3m-Mint": 4}
    stock = Column(JSONB, nullable=False, server_default="{}")
    badges = Column(JSONB, nullable=False, server_default="[]")

    sort_order = Column(Integer, index=True)
    image = Column(Text, nullable=False, server_default="")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
