"""Dietary preferences model and its forbidden ingredient children."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, utcnow


class DietType(str, enum.Enum):
    """Closed set of supported diets."""

    VEGAN = "vegan"
    VEGETARIAN = "vegetarian"
    NONE = "none"


def normalize_ingredient_name(name: str) -> str:
    """Normalize an ingredient name for storage and duplicate detection.

    " Milk " and "milk" are the same forbidden ingredient.
    """
    return name.strip().lower()


def normalize_ingredients(names: list[str]) -> list[str]:
    """Normalize names, dropping blanks and repeats (first occurrence wins)."""
    seen: dict[str, None] = {}
    for name in names:
        normalized = normalize_ingredient_name(name)
        if normalized:
            seen.setdefault(normalized, None)
    return list(seen)


class DietaryPreference(Base, TimestampMixin):
    """At most one row per user, owning its forbidden ingredient set."""

    __tablename__ = "dietary_preferences"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, unique=True)
    diet_type: Mapped[DietType] = mapped_column(
        Enum(
            DietType,
            name="diet_type_enum",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    forbidden_ingredients: Mapped[list["ForbiddenIngredient"]] = relationship(
        "ForbiddenIngredient",
        back_populates="dietary_preferences",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ForbiddenIngredient.ingredient_name",
    )

    def __repr__(self) -> str:
        return (
            f"<DietaryPreference(id={self.id}, diet_type={self.diet_type.value}, "
            f"version={self.version})>"
        )


class ForbiddenIngredient(Base):
    """An ingredient the owner never wants to see in a recipe."""

    __tablename__ = "forbidden_ingredients"
    __table_args__ = (
        UniqueConstraint(
            "dietary_preferences_id",
            "ingredient_name",
            name="uq_forbidden_ingredients_preferences_name",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    dietary_preferences_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("dietary_preferences.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ingredient_name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    dietary_preferences: Mapped["DietaryPreference"] = relationship(
        "DietaryPreference", back_populates="forbidden_ingredients"
    )

    def __repr__(self) -> str:
        return f"<ForbiddenIngredient(id={self.id}, name='{self.ingredient_name}')>"
