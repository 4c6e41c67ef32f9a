"""Recipe persistence: creation, lookup, listing, update and soft delete.

Every operation runs in its own transaction and returns a typed outcome from
:mod:`recipebook.outcomes`. SQLAlchemy errors never leave this module; they
are logged and reported as :class:`StorageError`.
"""

import logging
import math
import uuid

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..database import is_unique_violation, transaction
from ..models import Recipe, utcnow
from ..outcomes import DuplicateTitle, NotFound, Ok, Outcome, StorageError
from ..schemas import (
    CreateRecipeCommand,
    PaginationInfo,
    RecipeListView,
    RecipeView,
    UpdateRecipeCommand,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
# Offsets are bound as signed 64-bit integers
MAX_OFFSET = 2**62

RECIPE_NOT_FOUND = "Recipe not found"


def _escape_like(term: str) -> str:
    """Make LIKE wildcards in a search term match literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class RecipeStore:
    """Owns the ``recipes`` aggregate for individual users."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self._session_factory = session_factory
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    # -------------------------------------------------------------------------
    # Query helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _live_filters(owner_id: uuid.UUID) -> list:
        return [Recipe.user_id == owner_id, Recipe.deleted_at.is_(None)]

    def _live_recipe(self, owner_id: uuid.UUID, recipe_id: uuid.UUID) -> Select:
        """Id, owner and liveness in a single predicate."""
        return select(Recipe).where(Recipe.id == recipe_id, *self._live_filters(owner_id))

    def _title_taken(
        self,
        db: Session,
        owner_id: uuid.UUID,
        title: str,
        exclude_id: uuid.UUID | None = None,
    ) -> bool:
        stmt = select(Recipe.id).where(Recipe.title == title, *self._live_filters(owner_id))
        if exclude_id is not None:
            stmt = stmt.where(Recipe.id != exclude_id)
        return db.execute(stmt.limit(1)).first() is not None

    def _clamp_paging(self, page: int | None, page_size: int | None) -> tuple[int, int]:
        page = max(page or 1, 1)
        if page_size is None:
            page_size = self.default_page_size
        page_size = min(max(page_size, 1), self.max_page_size)
        page = min(page, MAX_OFFSET // page_size)
        return page, page_size

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create(
        self, owner_id: uuid.UUID, command: CreateRecipeCommand
    ) -> Outcome[RecipeView]:
        """Create a recipe with ``update_counter`` 1.

        The title pre-check only fails fast; the partial unique index is what
        actually guarantees uniqueness when two creates race.
        """
        try:
            with transaction(self._session_factory) as db:
                if self._title_taken(db, owner_id, command.title):
                    logger.info("Duplicate recipe title on create for user %s", owner_id)
                    return DuplicateTitle()

                recipe = Recipe(
                    user_id=owner_id,
                    title=command.title,
                    content=command.content,
                    update_counter=1,
                )
                db.add(recipe)
                db.flush()
                view = RecipeView.from_model(recipe)
        except IntegrityError as e:
            if is_unique_violation(e):
                logger.info("Duplicate recipe title on insert for user %s", owner_id)
                return DuplicateTitle()
            logger.exception("Failed to create recipe for user %s", owner_id)
            return StorageError("Failed to create recipe")
        except SQLAlchemyError:
            logger.exception("Failed to create recipe for user %s", owner_id)
            return StorageError("Failed to create recipe")

        logger.info("Created recipe %s for user %s", view.id, owner_id)
        return Ok(view)

    def get_by_id(
        self, owner_id: uuid.UUID, recipe_id: uuid.UUID
    ) -> Outcome[RecipeView]:
        """Fetch a live recipe owned by ``owner_id``."""
        try:
            with transaction(self._session_factory) as db:
                recipe = db.scalars(self._live_recipe(owner_id, recipe_id)).first()
                if recipe is None:
                    return NotFound(RECIPE_NOT_FOUND)
                view = RecipeView.from_model(recipe)
        except SQLAlchemyError:
            logger.exception("Failed to fetch recipe %s for user %s", recipe_id, owner_id)
            return StorageError("Failed to fetch recipe")
        return Ok(view)

    def list(
        self,
        owner_id: uuid.UUID,
        page: int | None = 1,
        page_size: int | None = None,
        search: str | None = None,
    ) -> Outcome[RecipeListView]:
        """List live recipes newest first, optionally filtered by title.

        The total is computed by a window function in the same statement as
        the page, so both reflect the same snapshot.
        """
        page, page_size = self._clamp_paging(page, page_size)

        filters = self._live_filters(owner_id)
        if search is not None and search.strip():
            filters.append(Recipe.title.ilike(f"%{_escape_like(search)}%", escape="\\"))

        stmt = (
            select(Recipe, func.count().over().label("total_count"))
            .where(*filters)
            .order_by(Recipe.created_at.desc(), Recipe.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )

        try:
            with transaction(self._session_factory) as db:
                rows = db.execute(stmt).all()
                if rows:
                    total_count = rows[0].total_count
                elif page > 1:
                    # Past the last page: the window column has no row to ride on
                    total_count = db.scalar(
                        select(func.count()).select_from(Recipe).where(*filters)
                    )
                else:
                    total_count = 0
                recipes = [RecipeView.from_model(row[0]) for row in rows]
        except SQLAlchemyError:
            logger.exception("Failed to list recipes for user %s", owner_id)
            return StorageError("Failed to fetch recipes")

        pagination = PaginationInfo(
            current_page=page,
            total_pages=math.ceil(total_count / page_size),
            total_count=total_count,
            page_size=page_size,
        )
        return Ok(RecipeListView(recipes=recipes, pagination=pagination))

    def update(
        self, owner_id: uuid.UUID, recipe_id: uuid.UUID, command: UpdateRecipeCommand
    ) -> Outcome[RecipeView]:
        """Replace title and content, bumping ``update_counter`` by one.

        Existence is checked before title uniqueness so a recipe the caller
        cannot see is always reported as not found.
        """
        try:
            with transaction(self._session_factory) as db:
                recipe = db.scalars(
                    self._live_recipe(owner_id, recipe_id).with_for_update()
                ).first()
                if recipe is None:
                    logger.info("Recipe %s not found for update by user %s", recipe_id, owner_id)
                    return NotFound(RECIPE_NOT_FOUND)

                if self._title_taken(db, owner_id, command.title, exclude_id=recipe.id):
                    logger.info("Duplicate recipe title on update of %s", recipe_id)
                    return DuplicateTitle()

                recipe.title = command.title
                recipe.content = command.content
                recipe.update_counter = Recipe.update_counter + 1
                recipe.updated_at = utcnow()
                db.flush()
                view = RecipeView.from_model(recipe)
        except IntegrityError as e:
            if is_unique_violation(e):
                logger.info("Duplicate recipe title on write of %s", recipe_id)
                return DuplicateTitle()
            logger.exception("Failed to update recipe %s", recipe_id)
            return StorageError("Failed to update recipe")
        except SQLAlchemyError:
            logger.exception("Failed to update recipe %s", recipe_id)
            return StorageError("Failed to update recipe")

        logger.info("Updated recipe %s (update_counter=%d)", recipe_id, view.update_counter)
        return Ok(view)

    def soft_delete(self, owner_id: uuid.UUID, recipe_id: uuid.UUID) -> Outcome[None]:
        """Mark a live recipe deleted in one conditional UPDATE.

        Missing, foreign and already-deleted recipes all yield NotFound, so
        repeating the call is harmless.
        """
        stmt = (
            update(Recipe)
            .where(Recipe.id == recipe_id, *self._live_filters(owner_id))
            .values(deleted_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        try:
            with transaction(self._session_factory) as db:
                affected = db.execute(stmt).rowcount
        except SQLAlchemyError:
            logger.exception("Failed to delete recipe %s", recipe_id)
            return StorageError("Failed to delete recipe")

        if affected == 0:
            logger.info("Recipe %s not found for deletion by user %s", recipe_id, owner_id)
            return NotFound(RECIPE_NOT_FOUND)

        logger.info("Soft-deleted recipe %s for user %s", recipe_id, owner_id)
        return Ok(None)
