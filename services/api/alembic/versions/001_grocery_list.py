"""Grocery list items and ingredient unit profiles

Revision ID: 001_grocery_list
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_grocery_list"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Aggregated list lines; (user_id, name_normalized, unit) uniqueness is
    # kept by the aggregation code, so the index is not unique.
    op.create_table(
        "grocery_list_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("name_normalized", sa.String(255), nullable=False),
        sa.Column("amount", sa.Float, nullable=False),
        sa.Column("unit", sa.String(20), nullable=False),
        sa.Column("category", sa.String(50), nullable=False, server_default="Other"),
        sa.Column("is_checked", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_grocery_list_items_user_id", "grocery_list_items", ["user_id"])
    op.create_index(
        "ix_grocery_list_items_aggregation_key",
        "grocery_list_items",
        ["user_id", "name_normalized", "unit"],
    )

    # Curated reference data, maintained out-of-band
    op.create_table(
        "ingredient_unit_profiles",
        sa.Column("name_normalized", sa.String(255), primary_key=True),
        sa.Column("canonical_unit", sa.String(20), nullable=False),
        sa.Column("grams_per_count", sa.Float, nullable=True),
        sa.Column("ml_per_count", sa.Float, nullable=True),
        sa.Column("pack_size_amount", sa.Float, nullable=True),
        sa.Column("pack_size_unit", sa.String(20), nullable=True),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("buy_unit_label", sa.String(50), nullable=True),
        sa.Column("exclude_always", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("pantry_staple", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("ingredient_unit_profiles")
    op.drop_index("ix_grocery_list_items_aggregation_key", table_name="grocery_list_items")
    op.drop_index("ix_grocery_list_items_user_id", table_name="grocery_list_items")
    op.drop_table("grocery_list_items")
