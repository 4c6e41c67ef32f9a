"""Database models for the recipe book."""

from .base import Base, TimestampMixin, utcnow
from .recipe import Recipe
from .preferences import (
    DietaryPreference,
    DietType,
    ForbiddenIngredient,
    normalize_ingredient_name,
    normalize_ingredients,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "utcnow",
    "normalize_ingredient_name",
    "normalize_ingredients",
    # Models
    "Recipe",
    "DietaryPreference",
    "DietType",
    "ForbiddenIngredient",
]
