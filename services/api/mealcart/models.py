"""SQLAlchemy ORM models for mealcart.

Tables:
- grocery_list_items: One aggregated line of a user's active grocery list.
  At most one row per (user_id, name_normalized, unit); enforced by the
  aggregation code, not by a constraint.
- ingredient_unit_profiles: Curated, read-only reference data keyed by
  normalized ingredient name.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Boolean,
    Float,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func, false

from .db import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


class GroceryListItem(Base):
    """Aggregated grocery list entry."""
    __tablename__ = "grocery_list_items"
    __table_args__ = (
        Index("ix_grocery_list_items_user_id", "user_id"),
        Index("ix_grocery_list_items_aggregation_key", "user_id", "name_normalized", "unit"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    # Auth lives upstream; the id is opaque here
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)  # Display
    name_normalized: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, server_default="Other")
    is_checked: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false(), default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class IngredientUnitProfile(Base):
    """Preferred unit and packaging hints for one normalized ingredient name."""
    __tablename__ = "ingredient_unit_profiles"

    name_normalized: Mapped[str] = mapped_column(String(255), primary_key=True)
    canonical_unit: Mapped[str] = mapped_column(String(20), nullable=False)

    grams_per_count: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ml_per_count: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    pack_size_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    pack_size_unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    buy_unit_label: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    exclude_always: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false(), default=False)
    pantry_staple: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false(), default=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
