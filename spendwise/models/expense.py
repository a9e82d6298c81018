from datetime import date as DateType, datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

EXPENSE_CATEGORIES = (
    "Food & Dining",
    "Transportation",
    "Shopping",
    "Entertainment",
    "Bills & Utilities",
    "Healthcare",
    "Education",
    "Travel",
    "Other",
)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def check_category(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in EXPENSE_CATEGORIES:
        raise ValueError(f"Unknown category '{value}'")
    return value


class ExpenseCreate(BaseModel):
    category: str
    amount: float = Field(ge=0)
    description: Optional[str] = ""
    date: DateType

    @field_validator("category")
    @classmethod
    def known_category(cls, value):
        return check_category(value)


class ExpenseUpdate(BaseModel):
    category: Optional[str] = None
    amount: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None
    date: Optional[DateType] = None

    @field_validator("category")
    @classmethod
    def known_category(cls, value):
        return check_category(value)


class ExpenseInDB(BaseModel):
    user_id: str
    expense_id: str = Field(default_factory=lambda: str(uuid4()))
    category: str
    amount: float
    description: Optional[str] = ""
    date: str  # YYYY-MM-DD
    created_at: str = Field(default_factory=utc_now_iso)


class ExpensePublic(BaseModel):
    expense_id: str
    category: str
    amount: float
    description: Optional[str] = ""
    date: str
    created_at: Optional[str] = None
