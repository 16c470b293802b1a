"""
Category Service

Built-in categories are defined in code and never stored; custom
categories are documents owned by one user. Listings merge the two:
built-ins of the type first, then the owner's customs of the type,
each group sorted by case-insensitive name.

Names are unique case-insensitively within a type across the built-ins
and the owner's customs. (Account names, by contrast, compare
case-sensitively.)
"""

import asyncio
from typing import Any, Optional, Union

import structlog
from pydantic import BaseModel

from finance_tracker.audit import AuditLogger
from finance_tracker.errors import (
    CategoryExistsError,
    CategoryNotFoundError,
    InvalidInputError,
    UnauthorizedError,
    translate_errors,
)
from finance_tracker.ledger.transactions import require_owner
from finance_tracker.models.category import (
    BUILT_IN_CATEGORIES,
    Category,
    CategoryCreate,
    CategoryType,
    CategoryUpdate,
)
from finance_tracker.queries import owned_by
from finance_tracker.services.storage import SERVER_TIMESTAMP, DocumentStoreInterface, FieldFilter
from finance_tracker.validation import TransactionValidator


logger = structlog.get_logger(__name__)

CATEGORIES = "categories"

_BUILT_INS_BY_ID = {category.id: category for category in BUILT_IN_CATEGORIES}


def _by_name(categories: list[Category]) -> list[Category]:
    return sorted(categories, key=lambda category: category.name.casefold())


class CategoryService:

    def __init__(
        self,
        store: DocumentStoreInterface,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger

    async def _custom_of_type(self, category_type: CategoryType, owner_id: str) -> list[Category]:
        documents = await self._store.query_documents(
            CATEGORIES,
            filters=[owned_by(owner_id), FieldFilter(field="type", value=category_type)],
        )
        return [Category.from_document(doc.id, doc.data) for doc in documents]

    async def _get_custom_owned(self, category_id: str, owner_id: str) -> Category:
        """Resolve a category the caller may modify."""
        require_owner(owner_id)
        if not category_id:
            raise InvalidInputError("Category id is required")
        if category_id in _BUILT_INS_BY_ID:
            raise UnauthorizedError("Built-in categories cannot be changed")

        document = await self._store.get_document(CATEGORIES, category_id)
        if document is None:
            raise CategoryNotFoundError("Category not found")
        category = Category.from_document(document.id, document.data)
        if not category.is_custom or category.owner_id != owner_id:
            raise UnauthorizedError("You do not have access to this category")
        return category

    async def _ensure_unique_name(
        self,
        owner_id: str,
        category_type: CategoryType,
        name: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        wanted = name.casefold()
        for category in await self.list_by_type(category_type, owner_id):
            if category.name.casefold() == wanted and category.id != exclude_id:
                raise CategoryExistsError("A category with this name already exists")

    @translate_errors("Failed to fetch categories")
    async def list_by_type(
        self,
        category_type: CategoryType,
        owner_id: Optional[str] = None,
    ) -> list[Category]:
        """
        Built-ins of the type, then the owner's custom categories of the type.

        Without an owner only the built-ins are returned.
        """
        try:
            category_type = CategoryType(category_type)
        except ValueError:
            raise InvalidInputError("Unknown category type")

        built_ins = [c for c in BUILT_IN_CATEGORIES if c.type == category_type]
        custom = await self._custom_of_type(category_type, owner_id) if owner_id else []
        return _by_name(built_ins) + _by_name(custom)

    @translate_errors("Failed to fetch categories")
    async def list_all(self, owner_id: Optional[str] = None) -> list[Category]:
        """Every category visible to the owner, grouped by type."""
        groups = await asyncio.gather(*(
            self.list_by_type(category_type, owner_id) for category_type in CategoryType
        ))
        return [category for group in groups for category in group]

    @translate_errors("Failed to fetch category")
    async def get_by_id(self, category_id: str, owner_id: Optional[str] = None) -> Category:
        if category_id in _BUILT_INS_BY_ID:
            return _BUILT_INS_BY_ID[category_id]
        require_owner(owner_id)
        document = await self._store.get_document(CATEGORIES, category_id) if category_id else None
        if document is None:
            raise CategoryNotFoundError("Category not found")
        category = Category.from_document(document.id, document.data)
        if category.owner_id != owner_id:
            raise UnauthorizedError("You do not have access to this category")
        return category

    @translate_errors("Failed to create category")
    async def create(
        self,
        owner_id: str,
        data: Union[CategoryCreate, dict[str, Any]],
    ) -> Category:
        """
        Create a custom category.

        Raises:
            InvalidInputError: name, type or icon missing
            CategoryExistsError: the name is taken within the type
        """
        require_owner(owner_id)
        draft = self._validator.validate_category(data)
        await self._ensure_unique_name(owner_id, draft.type, draft.name)

        category_id = await self._store.create_document(CATEGORIES, {
            "name": draft.name,
            "type": draft.type,
            "icon": draft.icon,
            "color": draft.color or None,
            "is_custom": True,
            "owner_id": owner_id,
            "created_at": SERVER_TIMESTAMP,
            "updated_at": SERVER_TIMESTAMP,
        })
        document = await self._store.get_document(CATEGORIES, category_id)
        category = Category.from_document(document.id, document.data)

        if self._audit_logger:
            await self._audit_logger.log_category_created(
                category_id,
                owner_id,
                category.name,
                category.type.value,
            )
        return category

    @translate_errors("Failed to update category")
    async def update(
        self,
        category_id: str,
        patch: Union[CategoryUpdate, dict[str, Any]],
        owner_id: str,
    ) -> Category:
        category = await self._get_custom_owned(category_id, owner_id)

        if isinstance(patch, BaseModel):
            patch = patch.model_dump(exclude_unset=True)
        update = self._validator.validate_category_update(patch)
        changes = {field: getattr(update, field) for field in update.model_fields_set}

        new_name = changes.get("name", category.name)
        new_type = changes.get("type", category.type)
        if new_name.casefold() != category.name.casefold() or new_type != category.type:
            await self._ensure_unique_name(owner_id, new_type, new_name, exclude_id=category_id)

        if changes:
            await self._store.update_document(
                CATEGORIES,
                category_id,
                {**changes, "updated_at": SERVER_TIMESTAMP},
            )
            if self._audit_logger:
                await self._audit_logger.log_category_updated(category_id, owner_id, changes)

        document = await self._store.get_document(CATEGORIES, category_id)
        return Category.from_document(document.id, document.data)

    @translate_errors("Failed to delete category")
    async def delete(self, category_id: str, owner_id: str) -> None:
        """Delete a custom category. Transactions keep their category label."""
        await self._get_custom_owned(category_id, owner_id)
        await self._store.delete_document(CATEGORIES, category_id)

        logger.info("category_deleted", category_id=category_id, owner_id=owner_id)
        if self._audit_logger:
            await self._audit_logger.log_category_deleted(category_id, owner_id)
