from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Text, DateTime
from typing import Optional

from .authz import Base, utcnow


class Customer(Base):
    __tablename__ = 'customers'
    STATUS_ACTIVE = 'ACTIVE'
    STATUS_INACTIVE = 'INACTIVE'
    STATUS_BLOCKED = 'BLOCKED'
    ALL_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE, STATUS_BLOCKED)
    ALL_SEGMENTS = ('NEW', 'REGULAR', 'VIP', 'WHOLESALE')

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_ACTIVE)
    segment: Mapped[str] = mapped_column(String(16), nullable=False, default='REGULAR')
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    orders = relationship('Order', back_populates='customer')

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
