"""Dietary preference persistence with atomic create-or-replace.

The preferences row and its forbidden ingredient rows are one aggregate: the
row mutation, the child delete and the child insert share a transaction, so
readers see either the old set or the new one, never a mix.
"""

import logging
import uuid

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from ..database import is_unique_violation, transaction
from ..models import (
    DietaryPreference,
    DietType,
    ForbiddenIngredient,
    normalize_ingredients,
    utcnow,
)
from ..outcomes import AlreadyExists, NotFound, Ok, Outcome, StorageError
from ..schemas import PreferencesView, UpsertPreferencesCommand, UpsertResult

logger = logging.getLogger(__name__)

PREFERENCES_NOT_FOUND = "Dietary preferences not found"


class PreferenceStore:
    """Owns the ``dietary_preferences`` aggregate, one per user."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self._session_factory = session_factory

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _insert_ingredients(
        self, db: Session, preferences_id: uuid.UUID, names: list[str]
    ) -> None:
        if not names:
            return
        db.execute(
            insert(ForbiddenIngredient),
            [
                {"dietary_preferences_id": preferences_id, "ingredient_name": name}
                for name in names
            ],
        )

    def _insert(
        self, db: Session, owner_id: uuid.UUID, diet_type: DietType, names: list[str]
    ) -> DietaryPreference:
        preferences = DietaryPreference(user_id=owner_id, diet_type=diet_type, version=1)
        db.add(preferences)
        db.flush()
        self._insert_ingredients(db, preferences.id, names)
        return preferences

    def _replace(
        self,
        db: Session,
        preferences: DietaryPreference,
        diet_type: DietType,
        names: list[str],
    ) -> None:
        preferences.diet_type = diet_type
        preferences.version = DietaryPreference.version + 1
        preferences.updated_at = utcnow()
        db.flush()
        db.execute(
            delete(ForbiddenIngredient)
            .where(ForbiddenIngredient.dietary_preferences_id == preferences.id)
            .execution_options(synchronize_session=False)
        )
        self._insert_ingredients(db, preferences.id, names)

    @staticmethod
    def _view(db: Session, preferences: DietaryPreference) -> PreferencesView:
        # Reload so the version and the ingredient set come from the database
        db.expire(preferences)
        return PreferencesView.from_model(preferences)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def get_by_owner(self, owner_id: uuid.UUID) -> Outcome[PreferencesView]:
        """Preferences with their full ingredient set.

        NotFound here means "use defaults" to most callers, not an error.
        """
        stmt = (
            select(DietaryPreference)
            .where(DietaryPreference.user_id == owner_id)
            .options(selectinload(DietaryPreference.forbidden_ingredients))
        )
        try:
            with transaction(self._session_factory) as db:
                preferences = db.scalars(stmt).first()
                if preferences is None:
                    return NotFound(PREFERENCES_NOT_FOUND)
                view = PreferencesView.from_model(preferences)
        except SQLAlchemyError:
            logger.exception("Failed to fetch dietary preferences for user %s", owner_id)
            return StorageError("Failed to fetch dietary preferences")
        return Ok(view)

    def upsert(
        self, owner_id: uuid.UUID, command: UpsertPreferencesCommand
    ) -> Outcome[UpsertResult]:
        """Create the user's preferences, or fully replace the existing ones.

        The existing row is locked for the duration of the replace. If two
        first-time upserts race, the loser hits the unique ``user_id`` and is
        retried once, which then takes the replace branch.
        """
        names = normalize_ingredients(command.forbidden_ingredients)

        for attempt in (1, 2):
            try:
                with transaction(self._session_factory) as db:
                    preferences = db.scalars(
                        select(DietaryPreference)
                        .where(DietaryPreference.user_id == owner_id)
                        .with_for_update()
                    ).first()
                    if preferences is None:
                        preferences = self._insert(db, owner_id, command.diet_type, names)
                        was_created = True
                    else:
                        self._replace(db, preferences, command.diet_type, names)
                        was_created = False
                    view = self._view(db, preferences)
            except IntegrityError as e:
                if attempt == 1 and is_unique_violation(e):
                    logger.warning(
                        "Concurrent first upsert for user %s, retrying as replace",
                        owner_id,
                    )
                    continue
                logger.exception("Failed to save dietary preferences for user %s", owner_id)
                return StorageError("Failed to save dietary preferences")
            except SQLAlchemyError:
                logger.exception("Failed to save dietary preferences for user %s", owner_id)
                return StorageError("Failed to save dietary preferences")

            logger.info(
                "%s dietary preferences %s for user %s (version=%d, %d ingredients)",
                "Created" if was_created else "Replaced",
                view.id,
                owner_id,
                view.version,
                len(view.forbidden_ingredients),
            )
            return Ok(UpsertResult(preferences=view, was_created=was_created))

        return StorageError("Failed to save dietary preferences")

    def create(
        self, owner_id: uuid.UUID, command: UpsertPreferencesCommand
    ) -> Outcome[PreferencesView]:
        """Create preferences, refusing if the user already has some."""
        names = normalize_ingredients(command.forbidden_ingredients)
        try:
            with transaction(self._session_factory) as db:
                existing = db.scalar(
                    select(DietaryPreference.id).where(DietaryPreference.user_id == owner_id)
                )
                if existing is not None:
                    logger.info("Dietary preferences already exist for user %s", owner_id)
                    return AlreadyExists()
                preferences = self._insert(db, owner_id, command.diet_type, names)
                view = self._view(db, preferences)
        except IntegrityError as e:
            if is_unique_violation(e):
                logger.info("Dietary preferences already exist for user %s", owner_id)
                return AlreadyExists()
            logger.exception("Failed to create dietary preferences for user %s", owner_id)
            return StorageError("Failed to create dietary preferences")
        except SQLAlchemyError:
            logger.exception("Failed to create dietary preferences for user %s", owner_id)
            return StorageError("Failed to create dietary preferences")

        logger.info("Created dietary preferences %s for user %s", view.id, owner_id)
        return Ok(view)
