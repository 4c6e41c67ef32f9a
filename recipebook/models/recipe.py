"""Recipe model for storing user recipes."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class Recipe(Base, TimestampMixin):
    """Model for storing recipes.

    Rows are never hard-deleted. Setting ``deleted_at`` hides the recipe from
    every lookup and frees its title for reuse by the same owner.
    """

    __tablename__ = "recipes"
    __table_args__ = (
        # Authoritative title guard: one live recipe per (owner, title)
        Index(
            "uq_recipes_user_id_title_active",
            "user_id",
            "title",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("ix_recipes_user_id_created_at", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    update_counter: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Recipe(id={self.id}, title='{self.title}')>"
