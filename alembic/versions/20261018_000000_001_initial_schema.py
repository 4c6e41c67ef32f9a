"""Initial schema: recipes, dietary preferences, forbidden ingredients.

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Recipes: soft-deleted via deleted_at, never removed
    op.create_table(
        "recipes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("update_counter", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    # One live recipe per (owner, title); deleted titles are reusable
    op.create_index(
        "uq_recipes_user_id_title_active",
        "recipes",
        ["user_id", "title"],
        unique=True,
        postgresql_where=sa.text("deleted_at IS NULL"),
        sqlite_where=sa.text("deleted_at IS NULL"),
    )
    op.create_index(
        "ix_recipes_user_id_created_at", "recipes", ["user_id", "created_at"]
    )

    # Dietary preferences: one row per user
    op.create_table(
        "dietary_preferences",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column(
            "diet_type",
            sa.Enum("vegan", "vegetarian", "none", name="diet_type_enum"),
            nullable=False,
        ),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )

    # Forbidden ingredients: replaced wholesale on every preferences update
    op.create_table(
        "forbidden_ingredients",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("dietary_preferences_id", sa.Uuid(), nullable=False),
        sa.Column("ingredient_name", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["dietary_preferences_id"],
            ["dietary_preferences.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "dietary_preferences_id",
            "ingredient_name",
            name="uq_forbidden_ingredients_preferences_name",
        ),
    )
    op.create_index(
        "ix_forbidden_ingredients_dietary_preferences_id",
        "forbidden_ingredients",
        ["dietary_preferences_id"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_forbidden_ingredients_dietary_preferences_id",
        table_name="forbidden_ingredients",
    )
    op.drop_table("forbidden_ingredients")
    op.drop_table("dietary_preferences")
    op.drop_index("ix_recipes_user_id_created_at", table_name="recipes")
    op.drop_index("uq_recipes_user_id_title_active", table_name="recipes")
    op.drop_table("recipes")

    # Drop enum types
    op.execute("DROP TYPE IF EXISTS diet_type_enum")
