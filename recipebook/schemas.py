"""Typed commands accepted by the stores and the read models they return."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from .models import DietaryPreference, DietType, Recipe


class CreateRecipeCommand(BaseModel):
    """Already-validated input for creating a recipe."""

    model_config = ConfigDict(frozen=True)

    title: str
    content: str


class UpdateRecipeCommand(BaseModel):
    """Already-validated input for replacing a recipe's title and content."""

    model_config = ConfigDict(frozen=True)

    title: str
    content: str


class UpsertPreferencesCommand(BaseModel):
    """Already-validated input for creating or replacing dietary preferences."""

    model_config = ConfigDict(frozen=True)

    diet_type: DietType
    forbidden_ingredients: list[str] = []


class RecipeView(BaseModel):
    """Recipe as seen by its owner. Never exposes owner or deletion state."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: uuid.UUID
    title: str
    content: str
    update_counter: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, recipe: Recipe) -> "RecipeView":
        return cls.model_validate(recipe)


class PaginationInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_page: int
    total_pages: int
    total_count: int
    page_size: int


class RecipeListView(BaseModel):
    model_config = ConfigDict(frozen=True)

    recipes: list[RecipeView]
    pagination: PaginationInfo


class PreferencesView(BaseModel):
    """Dietary preferences with the flattened forbidden ingredient names."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    diet_type: DietType
    forbidden_ingredients: list[str]
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, preferences: DietaryPreference) -> "PreferencesView":
        return cls(
            id=preferences.id,
            diet_type=preferences.diet_type,
            forbidden_ingredients=[
                fi.ingredient_name for fi in preferences.forbidden_ingredients
            ],
            version=preferences.version,
            created_at=preferences.created_at,
            updated_at=preferences.updated_at,
        )


class UpsertResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    preferences: PreferencesView
    was_created: bool
