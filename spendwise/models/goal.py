from datetime import date
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from spendwise.models.expense import utc_now_iso


class GoalCreate(BaseModel):
    name: str = Field(min_length=1)
    category: str = ""
    target_amount: float = Field(gt=0)
    current_amount: float = Field(default=0, ge=0)
    deadline: date


class GoalUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = None
    target_amount: Optional[float] = Field(default=None, gt=0)
    current_amount: Optional[float] = Field(default=None, ge=0)
    deadline: Optional[date] = None


class GoalProgressAdd(BaseModel):
    amount: float = Field(gt=0)


class GoalInDB(BaseModel):
    user_id: str
    goal_id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    category: str = ""
    target_amount: float
    current_amount: float = 0
    deadline: str  # YYYY-MM-DD
    created_at: str = Field(default_factory=utc_now_iso)


class GoalPublic(BaseModel):
    goal_id: str
    name: str
    category: str
    target_amount: float
    current_amount: float
    deadline: str
    percentage: float
    badge: str
    days_left: Optional[int] = None
