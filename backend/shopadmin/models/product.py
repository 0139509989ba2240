from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Text, Boolean, Numeric, ForeignKey, DateTime, CheckConstraint
from typing import Optional

from .authz import Base, utcnow


class Product(Base):
    __tablename__ = 'products'
    STATUS_DRAFT = 'DRAFT'
    STATUS_ACTIVE = 'ACTIVE'
    STATUS_INACTIVE = 'INACTIVE'
    STATUS_OUT_OF_STOCK = 'OUT_OF_STOCK'
    STATUS_ARCHIVED = 'ARCHIVED'
    ALL_STATUSES = (
        STATUS_DRAFT,
        STATUS_ACTIVE,
        STATUS_INACTIVE,
        STATUS_OUT_OF_STOCK,
        STATUS_ARCHIVED
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    barcode: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    price: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False)
    cost_price: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False))
    compare_price: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    track_quantity: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_DRAFT, index=True)
    category_id: Mapped[Optional[int]] = mapped_column(ForeignKey('categories.id'), index=True)
    brand_id: Mapped[Optional[int]] = mapped_column(ForeignKey('brands.id'), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    category = relationship('Category', back_populates='products')
    brand = relationship('Brand', back_populates='products')

    __table_args__ = (CheckConstraint('quantity >= 0', name='ck_products_quantity_non_negative'),)
