"""
Category Models for Finance Tracker

Built-in categories are code-defined with stable synthetic ids and are
never persisted. Custom categories are documents owned by one user.
At read time the two sets are merged.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from finance_tracker.models.base import StoredModel


BUILT_IN_ID_PREFIX = "default-"


class CategoryType(str, Enum):
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    SELFTRANSFER = "SELFTRANSFER"


class CategoryCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    type: Optional[CategoryType] = None
    icon: str = ""
    color: Optional[str] = None


class CategoryUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = None
    type: Optional[CategoryType] = None
    icon: Optional[str] = None
    color: Optional[str] = None


class Category(StoredModel):
    id: str
    name: str
    type: CategoryType
    icon: str
    color: Optional[str] = None
    is_custom: bool = False
    owner_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_built_in(self) -> bool:
        return not self.is_custom


def _built_in(slug: str, name: str, type_: CategoryType, icon: str, color: str) -> Category:
    return Category(
        id=f"{BUILT_IN_ID_PREFIX}{slug}",
        name=name,
        type=type_,
        icon=icon,
        color=color,
        is_custom=False,
    )


BUILT_IN_CATEGORIES: tuple[Category, ...] = (
    # Expense
    _built_in("food", "Food & Dining", CategoryType.EXPENSE, "bowl", "#FF6B6B"),
    _built_in("transport", "Transportation", CategoryType.EXPENSE, "car", "#4DABF7"),
    _built_in("shopping", "Shopping", CategoryType.EXPENSE, "shopping-cart", "#FF922B"),
    _built_in("bills", "Bills & Utilities", CategoryType.EXPENSE, "receipt", "#20C997"),
    _built_in("entertainment", "Entertainment", CategoryType.EXPENSE, "movie", "#845EF7"),
    _built_in("healthcare", "Healthcare", CategoryType.EXPENSE, "heart", "#F06595"),
    _built_in("home", "Home", CategoryType.EXPENSE, "home", "#339AF0"),
    _built_in("education", "Education", CategoryType.EXPENSE, "school", "#FF922B"),
    # Income
    _built_in("salary", "Salary", CategoryType.INCOME, "wallet", "#51CF66"),
    _built_in("investments", "Investments", CategoryType.INCOME, "chart-bar", "#339AF0"),
    _built_in("freelance", "Freelance", CategoryType.INCOME, "briefcase", "#FF922B"),
    _built_in("gifts", "Gifts", CategoryType.INCOME, "gift", "#BE4BDB"),
    # Transfer
    _built_in("transfer", "Account Transfer", CategoryType.SELFTRANSFER, "arrows-right-left", "#4C6EF5"),
)
