"""Stores for the recipe and dietary preference aggregates."""

from ..config import Settings, get_settings
from .preference_store import PreferenceStore
from .recipe_store import RecipeStore


def get_recipe_store(settings: Settings | None = None) -> RecipeStore:
    """Recipe store bound to the application session factory."""
    settings = settings or get_settings()
    return RecipeStore(
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )


def get_preference_store() -> PreferenceStore:
    """Preference store bound to the application session factory."""
    return PreferenceStore()


__all__ = [
    "PreferenceStore",
    "RecipeStore",
    "get_preference_store",
    "get_recipe_store",
]
