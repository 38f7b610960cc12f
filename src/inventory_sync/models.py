"""Database model for the per-identity inventory row."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base
from .schemas import utcnow


class InventoryRow(Base):
    """One row per user identity holding the full inventory snapshot."""

    __tablename__ = "inventory_rows"

    identity: Mapped[str] = mapped_column(String(255), primary_key=True)
    inventory: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    custom_fields: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


__all__ = ["InventoryRow"]
