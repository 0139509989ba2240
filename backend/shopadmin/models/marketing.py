from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, Numeric, JSON, DateTime
from typing import Optional, Dict

from .authz import Base, utcnow


class Coupon(Base):
    __tablename__ = 'coupons'
    TYPE_PERCENTAGE = 'PERCENTAGE'
    TYPE_FIXED = 'FIXED'
    TYPE_FREE_SHIPPING = 'FREE_SHIPPING'
    ALL_TYPES = (TYPE_PERCENTAGE, TYPE_FIXED, TYPE_FREE_SHIPPING)
    STATUS_ACTIVE = 'ACTIVE'
    STATUS_INACTIVE = 'INACTIVE'
    ALL_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    value: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    minimum_amount: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False))
    maximum_discount: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False))
    usage_limit: Mapped[Optional[int]] = mapped_column(Integer)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_ACTIVE)
    starts_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    applicable_products: Mapped[Optional[list]] = mapped_column(JSON)
    applicable_categories: Mapped[Optional[list]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return self.expires_at is not None and self.expires_at < now

    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit


class Campaign(Base):
    __tablename__ = 'campaigns'
    ALL_STATUSES = ('DRAFT', 'ACTIVE', 'PAUSED', 'COMPLETED', 'CANCELLED')
    ALL_TYPES = (
        'EMAIL_CAMPAIGN',
        'SOCIAL_MEDIA',
        'DISCOUNT_CAMPAIGN',
        'PRODUCT_LAUNCH',
        'SEASONAL',
        'RETARGETING'
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default='DRAFT', index=True)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    budget: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    spent: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    impressions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    conversions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    revenue: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    target_audience: Mapped[Optional[dict]] = mapped_column(JSON)
    channels: Mapped[Optional[list]] = mapped_column(JSON)
    products: Mapped[Optional[list]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    def metrics(self) -> Dict[str, float]:
        """Derived performance ratios, each 0 when its denominator is 0."""
        impressions = self.impressions or 0
        clicks = self.clicks or 0
        conversions = self.conversions or 0
        spent = self.spent or 0
        revenue = self.revenue or 0
        return {
            'ctr': round(clicks / impressions * 100, 2) if impressions else 0,
            'conversion_rate': round(conversions / clicks * 100, 2) if clicks else 0,
            'roas': round(revenue / spent, 2) if spent else 0,
            'cpa': round(spent / conversions, 2) if conversions else 0,
        }
