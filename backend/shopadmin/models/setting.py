from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, JSON, DateTime, ForeignKey

from .authz import Base, utcnow


class Setting(Base):
    """One row per settings section; `data` overrides the section defaults."""
    __tablename__ = 'settings'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    section: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    data: Mapped[dict] = mapped_column(JSON, default=dict)
    updated_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id'))
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
