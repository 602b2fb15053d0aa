from __future__ import annotations

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from aurora.db.base import Base, UUIDPkMixin, TimestampMixin


class Tenant(UUIDPkMixin, TimestampMixin, Base):
    """A municipality; the unit of data isolation."""
    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    state: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
