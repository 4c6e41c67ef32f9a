import uuid

import pytest
from sqlalchemy import delete, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from recipebook.database import transaction
from recipebook.models import DietaryPreference, DietType, ForbiddenIngredient
from recipebook.outcomes import AlreadyExists, ErrorKind, NotFound, Ok, StorageError
from recipebook.schemas import UpsertPreferencesCommand
from recipebook.services import PreferenceStore


def command(diet_type: str, ingredients: list[str]) -> UpsertPreferencesCommand:
    return UpsertPreferencesCommand(diet_type=diet_type, forbidden_ingredients=ingredients)


def ingredient_rows(session_factory: sessionmaker[Session]) -> int:
    with transaction(session_factory) as db:
        return db.scalar(select(func.count()).select_from(ForbiddenIngredient))


def test_get_by_owner_without_preferences(preference_store: PreferenceStore, owner: uuid.UUID) -> None:
    outcome = preference_store.get_by_owner(owner)

    assert isinstance(outcome, NotFound)
    assert outcome.kind is ErrorKind.NOT_FOUND


def test_upsert_create_then_replace_scenario(preference_store: PreferenceStore, owner: uuid.UUID) -> None:
    created = preference_store.upsert(owner, command("none", []))

    assert isinstance(created, Ok)
    assert created.value.was_created is True
    assert created.value.preferences.version == 1
    assert created.value.preferences.diet_type is DietType.NONE
    assert created.value.preferences.forbidden_ingredients == []

    replaced = preference_store.upsert(owner, command("vegan", ["honey"]))

    assert isinstance(replaced, Ok)
    assert replaced.value.was_created is False
    assert replaced.value.preferences.id == created.value.preferences.id
    assert replaced.value.preferences.version == 2
    assert replaced.value.preferences.diet_type is DietType.VEGAN
    assert replaced.value.preferences.forbidden_ingredients == ["honey"]


def test_upsert_normalizes_and_deduplicates_ingredients(
    preference_store: PreferenceStore, owner: uuid.UUID, session_factory: sessionmaker[Session]
) -> None:
    outcome = preference_store.upsert(owner, command("vegan", ["Milk", " milk ", "Eggs"]))

    assert sorted(outcome.value.preferences.forbidden_ingredients) == ["eggs", "milk"]
    assert ingredient_rows(session_factory) == 2


def test_upsert_replaces_ingredient_set_entirely(
    preference_store: PreferenceStore, owner: uuid.UUID, session_factory: sessionmaker[Session]
) -> None:
    preference_store.upsert(owner, command("vegetarian", ["meat", "fish", "gelatin"]))

    outcome = preference_store.upsert(owner, command("vegetarian", ["Fish", "anchovies"]))

    assert outcome.value.preferences.forbidden_ingredients == ["anchovies", "fish"]
    assert ingredient_rows(session_factory) == 2
    fetched = preference_store.get_by_owner(owner)
    assert fetched.value == outcome.value.preferences


def test_upsert_with_empty_list_clears_ingredients(preference_store: PreferenceStore, owner: uuid.UUID) -> None:
    preference_store.upsert(owner, command("vegan", ["honey", "milk"]))

    outcome = preference_store.upsert(owner, command("none", []))

    assert outcome.value.preferences.forbidden_ingredients == []
    assert outcome.value.preferences.version == 2


def test_upsert_version_increments_by_one(preference_store: PreferenceStore, owner: uuid.UUID) -> None:
    versions = [
        preference_store.upsert(owner, command("none", [str(n)])).value.preferences.version
        for n in range(4)
    ]

    assert versions == [1, 2, 3, 4]


def test_upsert_keeps_owners_apart(
    preference_store: PreferenceStore, owner: uuid.UUID, other_owner: uuid.UUID
) -> None:
    preference_store.upsert(owner, command("vegan", ["honey"]))
    preference_store.upsert(other_owner, command("vegetarian", ["beef"]))

    mine = preference_store.get_by_owner(owner).value
    theirs = preference_store.get_by_owner(other_owner).value

    assert mine.id != theirs.id
    assert mine.forbidden_ingredients == ["honey"]
    assert theirs.forbidden_ingredients == ["beef"]


def test_upsert_failure_leaves_previous_state_intact(
    preference_store: PreferenceStore, owner: uuid.UUID, monkeypatch: pytest.MonkeyPatch
) -> None:
    preference_store.upsert(owner, command("vegetarian", ["Milk", "eggs"]))
    before = preference_store.get_by_owner(owner).value

    def fail(db, preferences_id, names):
        # Row already updated and old children deleted at this point
        raise OperationalError("INSERT INTO forbidden_ingredients", {}, Exception("connection lost"))

    monkeypatch.setattr(preference_store, "_insert_ingredients", fail)

    outcome = preference_store.upsert(owner, command("vegan", ["honey"]))

    assert isinstance(outcome, StorageError)
    assert "connection lost" not in outcome.message
    monkeypatch.undo()
    after = preference_store.get_by_owner(owner).value
    assert after == before
    assert after.diet_type is DietType.VEGETARIAN
    assert after.version == 1
    assert after.forbidden_ingredients == ["eggs", "milk"]


def test_upsert_retries_as_replace_after_losing_first_insert_race(
    preference_store: PreferenceStore,
    owner: uuid.UUID,
    session_factory: sessionmaker[Session],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    original_insert = preference_store._insert

    def racing_insert(db, owner_id, diet_type, names):
        # Another request commits the user's first row just before ours
        with transaction(session_factory) as other:
            other.add(DietaryPreference(user_id=owner_id, diet_type=DietType.NONE, version=1))
        monkeypatch.setattr(preference_store, "_insert", original_insert)
        return original_insert(db, owner_id, diet_type, names)

    monkeypatch.setattr(preference_store, "_insert", racing_insert)

    outcome = preference_store.upsert(owner, command("vegan", ["honey"]))

    assert isinstance(outcome, Ok)
    assert outcome.value.was_created is False
    assert outcome.value.preferences.version == 2
    assert outcome.value.preferences.forbidden_ingredients == ["honey"]


def test_create_refuses_existing_preferences(preference_store: PreferenceStore, owner: uuid.UUID) -> None:
    first = preference_store.create(owner, command("vegan", ["Honey"]))
    second = preference_store.create(owner, command("none", []))

    assert isinstance(first, Ok)
    assert first.value.version == 1
    assert first.value.forbidden_ingredients == ["honey"]
    assert isinstance(second, AlreadyExists)
    assert preference_store.get_by_owner(owner).value == first.value


def test_create_race_is_caught_by_unique_owner(
    preference_store: PreferenceStore,
    owner: uuid.UUID,
    session_factory: sessionmaker[Session],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    original_insert = preference_store._insert

    def racing_insert(db, owner_id, diet_type, names):
        with transaction(session_factory) as other:
            other.add(DietaryPreference(user_id=owner_id, diet_type=DietType.NONE, version=1))
        return original_insert(db, owner_id, diet_type, names)

    monkeypatch.setattr(preference_store, "_insert", racing_insert)

    outcome = preference_store.create(owner, command("vegan", []))

    assert isinstance(outcome, AlreadyExists)


def test_deleting_preferences_cascades_to_ingredients(
    preference_store: PreferenceStore, owner: uuid.UUID, session_factory: sessionmaker[Session]
) -> None:
    preference_store.upsert(owner, command("vegan", ["honey", "milk"]))

    with transaction(session_factory) as db:
        db.execute(delete(DietaryPreference).where(DietaryPreference.user_id == owner))

    assert ingredient_rows(session_factory) == 0


def test_storage_failures_are_reported(preference_store: PreferenceStore, owner: uuid.UUID, engine) -> None:
    from recipebook.models import Base

    Base.metadata.drop_all(engine)

    for outcome in (
        preference_store.get_by_owner(owner),
        preference_store.upsert(owner, command("vegan", [])),
        preference_store.create(owner, command("vegan", [])),
    ):
        assert isinstance(outcome, StorageError)
