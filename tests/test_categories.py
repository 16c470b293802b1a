"""Tests for CategoryService: built-in/custom merge and custom CRUD."""

import pytest

from finance_tracker.errors import (
    CategoryExistsError,
    CategoryNotFoundError,
    ErrorCode,
    InvalidInputError,
    UnauthorizedError,
)
from finance_tracker.models.category import BUILT_IN_CATEGORIES, CategoryType


def _custom(name, type_="EXPENSE", icon="tag"):
    return {"name": name, "type": type_, "icon": icon}


class TestListing:
    """Built-ins first, then customs, each sorted case-insensitively."""

    async def test_built_ins_before_customs(self, tracker, owner_id):
        for name in ("zoo", "Apples", "books"):
            await tracker.categories.create(owner_id, _custom(name))
        await tracker.categories.create(owner_id, _custom("Bonus", "INCOME"))

        listed = await tracker.categories.list_by_type(CategoryType.EXPENSE, owner_id)

        built_in_count = sum(1 for c in BUILT_IN_CATEGORIES if c.type == CategoryType.EXPENSE)
        built_ins, customs = listed[:built_in_count], listed[built_in_count:]
        assert all(category.is_built_in for category in built_ins)
        assert [category.name for category in built_ins] == sorted(
            (category.name for category in built_ins), key=str.casefold
        )
        assert [category.name for category in customs] == ["Apples", "books", "zoo"]
        assert all(category.type == CategoryType.EXPENSE for category in listed)

    async def test_without_owner_only_built_ins(self, tracker, owner_id):
        await tracker.categories.create(owner_id, _custom("Pets"))
        listed = await tracker.categories.list_by_type("EXPENSE")
        assert all(category.is_built_in for category in listed)

    async def test_customs_are_owner_scoped(self, tracker, owner_id, other_owner_id):
        await tracker.categories.create(other_owner_id, _custom("Pets"))
        listed = await tracker.categories.list_by_type(CategoryType.EXPENSE, owner_id)
        assert "Pets" not in [category.name for category in listed]

    async def test_unknown_type(self, tracker, owner_id):
        with pytest.raises(InvalidInputError):
            await tracker.categories.list_by_type("SAVINGS", owner_id)

    async def test_list_all(self, tracker, owner_id):
        await tracker.categories.create(owner_id, _custom("Pets"))
        listed = await tracker.categories.list_all(owner_id)
        assert len(listed) == len(BUILT_IN_CATEGORIES) + 1
        assert listed[0].type == CategoryType.EXPENSE

    async def test_get_by_id(self, tracker, owner_id, other_owner_id):
        assert (await tracker.categories.get_by_id("default-food")).name == "Food & Dining"
        custom = await tracker.categories.create(owner_id, _custom("Pets"))
        assert (await tracker.categories.get_by_id(custom.id, owner_id)).name == "Pets"
        with pytest.raises(UnauthorizedError):
            await tracker.categories.get_by_id(custom.id, other_owner_id)
        with pytest.raises(CategoryNotFoundError):
            await tracker.categories.get_by_id("missing", owner_id)


class TestCreate:
    """Duplicate names are rejected case-insensitively within a type."""

    async def test_create_custom(self, tracker, owner_id):
        category = await tracker.categories.create(owner_id, {**_custom("Pets"), "color": "#abc"})
        assert category.is_custom is True
        assert category.owner_id == owner_id
        assert category.color == "#abc"

    async def test_collides_with_built_in(self, tracker, owner_id):
        with pytest.raises(CategoryExistsError) as exc_info:
            await tracker.categories.create(owner_id, _custom("food & DINING"))
        assert exc_info.value.code == ErrorCode.CATEGORY_EXISTS

    async def test_collides_with_custom(self, tracker, owner_id):
        await tracker.categories.create(owner_id, _custom("Pets"))
        with pytest.raises(CategoryExistsError):
            await tracker.categories.create(owner_id, _custom("PETS"))

    async def test_same_name_in_another_type(self, tracker, owner_id):
        await tracker.categories.create(owner_id, _custom("Pets"))
        other = await tracker.categories.create(owner_id, _custom("Pets", "INCOME"))
        assert other.type == CategoryType.INCOME

    async def test_same_name_for_another_owner(self, tracker, owner_id, other_owner_id):
        await tracker.categories.create(owner_id, _custom("Pets"))
        await tracker.categories.create(other_owner_id, _custom("Pets"))

    async def test_missing_fields(self, tracker, owner_id):
        with pytest.raises(InvalidInputError):
            await tracker.categories.create(owner_id, {"name": "Pets", "type": "EXPENSE"})


class TestUpdateAndDelete:
    """Only the owner's custom categories can change."""

    async def test_update(self, tracker, owner_id):
        category = await tracker.categories.create(owner_id, _custom("Pets"))
        updated = await tracker.categories.update(category.id, {"name": "Pet care", "icon": "paw"}, owner_id)
        assert updated.name == "Pet care"
        assert updated.icon == "paw"

    async def test_update_case_only_rename(self, tracker, owner_id):
        category = await tracker.categories.create(owner_id, _custom("pets"))
        updated = await tracker.categories.update(category.id, {"name": "Pets"}, owner_id)
        assert updated.name == "Pets"

    async def test_update_onto_taken_name(self, tracker, owner_id):
        category = await tracker.categories.create(owner_id, _custom("Pets"))
        with pytest.raises(CategoryExistsError):
            await tracker.categories.update(category.id, {"name": "shopping"}, owner_id)

    async def test_built_ins_are_read_only(self, tracker, owner_id):
        with pytest.raises(UnauthorizedError):
            await tracker.categories.update("default-food", {"name": "Snacks"}, owner_id)
        with pytest.raises(UnauthorizedError):
            await tracker.categories.delete("default-food", owner_id)

    async def test_foreign_custom(self, tracker, owner_id, other_owner_id):
        category = await tracker.categories.create(owner_id, _custom("Pets"))
        with pytest.raises(UnauthorizedError):
            await tracker.categories.update(category.id, {"name": "Mine"}, other_owner_id)
        with pytest.raises(UnauthorizedError):
            await tracker.categories.delete(category.id, other_owner_id)

    async def test_unknown(self, tracker, owner_id):
        with pytest.raises(CategoryNotFoundError):
            await tracker.categories.update("missing", {"name": "x"}, owner_id)
        with pytest.raises(CategoryNotFoundError):
            await tracker.categories.delete("missing", owner_id)

    async def test_delete(self, tracker, owner_id):
        category = await tracker.categories.create(owner_id, _custom("Pets"))
        await tracker.categories.delete(category.id, owner_id)
        listed = await tracker.categories.list_by_type(CategoryType.EXPENSE, owner_id)
        assert category.id not in [c.id for c in listed]
