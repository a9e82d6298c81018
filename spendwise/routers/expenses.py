import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from spendwise.core.exceptions import NotFoundError, StoreError
from spendwise.db import dynamo
from spendwise.models.budget import MONTH_PATTERN
from spendwise.models.expense import ExpenseCreate, ExpenseInDB, ExpensePublic, ExpenseUpdate
from spendwise.routers.deps import get_current_user_id
from spendwise.utils.scheduler import schedule_forecast_training

router = APIRouter()
logger = logging.getLogger(__name__)


def refresh_forecasts(user_id: str):
    """Retrain forecasts from the user's full expense history."""
    schedule_forecast_training(user_id, dynamo.get_expenses_for_user(user_id))


@router.get("/", response_model=List[ExpensePublic])
def list_expenses(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    user_id: str = Depends(get_current_user_id),
):
    """
    month must follow YYYY-MM format. Example: 2025-11
    """
    return dynamo.get_expenses_for_user(user_id, month)


@router.post("/", response_model=ExpensePublic, status_code=status.HTTP_201_CREATED)
def create_expense(expense: ExpenseCreate, user_id: str = Depends(get_current_user_id)):
    expense_db = ExpenseInDB(user_id=user_id, **expense.model_dump(mode="json"))
    if not dynamo.put_expense(expense_db.model_dump()):
        raise StoreError("save expense")

    logger.info(f"Expense {expense_db.expense_id} created for user {user_id}")
    refresh_forecasts(user_id)
    return ExpensePublic(**expense_db.model_dump())


@router.get("/{expense_id}", response_model=ExpensePublic)
def get_expense(expense_id: str, user_id: str = Depends(get_current_user_id)):
    expense = dynamo.get_expense(user_id, expense_id)
    if not expense:
        raise NotFoundError("Expense")
    return expense


@router.put("/{expense_id}", response_model=ExpensePublic)
def update_expense(
    expense_id: str,
    expense_update: ExpenseUpdate,
    user_id: str = Depends(get_current_user_id),
):
    mutable_fields = {
        k: v for k, v in expense_update.model_dump(exclude_unset=True, mode="json").items()
        if v is not None
    }
    if not mutable_fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    updated = dynamo.update_expense(user_id, expense_id, mutable_fields)
    if not updated:
        raise NotFoundError("Expense")

    refresh_forecasts(user_id)
    return ExpensePublic(**updated)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(expense_id: str, user_id: str = Depends(get_current_user_id)):
    deleted = dynamo.delete_expense(user_id, expense_id)
    if not deleted:
        raise NotFoundError("Expense")

    refresh_forecasts(user_id)
    return None
