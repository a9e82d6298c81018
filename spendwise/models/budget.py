from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from spendwise.models.expense import check_category, utc_now_iso

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class BudgetCreate(BaseModel):
    category: str
    amount: float = Field(gt=0)
    month: str = Field(pattern=MONTH_PATTERN)  # YYYY-MM

    @field_validator("category")
    @classmethod
    def known_category(cls, value):
        return check_category(value)


class BudgetInDB(BaseModel):
    user_id: str
    budget_id: str = Field(default_factory=lambda: str(uuid4()))
    category: str
    amount: float
    month: str
    created_at: str = Field(default_factory=utc_now_iso)


class BudgetPublic(BaseModel):
    budget_id: str
    category: str
    month: str
    amount: float
    spent: float
    percentage: float
    remaining: float
    state: str  # ok | warning | exceeded
    created_at: Optional[str] = None
