import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status

from spendwise.core.exceptions import NotFoundError, StoreError
from spendwise.db import dynamo
from spendwise.models.budget import MONTH_PATTERN, BudgetCreate, BudgetInDB, BudgetPublic
from spendwise.routers.deps import get_current_user_id
from spendwise.utils.analyzer import FinanceAnalyzer

router = APIRouter()
logger = logging.getLogger(__name__)
finance_analyzer = FinanceAnalyzer()


def _with_status(budgets: List[Dict], expenses: List[Dict]) -> List[BudgetPublic]:
    created = {b["budget_id"]: b.get("created_at") for b in budgets}
    return [
        BudgetPublic(**item.to_dict(), created_at=created.get(item.budget_id))
        for item in finance_analyzer.budget_status(budgets, expenses)
    ]


@router.get("/", response_model=List[BudgetPublic])
def list_budgets(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    user_id: str = Depends(get_current_user_id),
):
    """Budgets with spent, remaining and state, newest month first."""
    budgets = dynamo.get_budgets_for_user(user_id, month)
    expenses = dynamo.get_expenses_for_user(user_id, month)
    return _with_status(budgets, expenses)


@router.post("/", response_model=BudgetPublic)
def set_budget(budget: BudgetCreate, user_id: str = Depends(get_current_user_id)):
    """
    Create a budget, or change the amount of the one already set for this
    category and month.
    """
    existing = dynamo.get_budget_for(user_id, budget.category, budget.month)
    if existing:
        item = {**existing, "amount": budget.amount}
        logger.info(f"Updating budget {existing['budget_id']} for user {user_id}")
    else:
        item = BudgetInDB(user_id=user_id, **budget.model_dump()).model_dump()
        logger.info(f"Creating {budget.category} budget for {budget.month}, user {user_id}")

    if not dynamo.put_budget(item):
        raise StoreError("save budget")

    expenses = dynamo.get_expenses_for_user(user_id, budget.month)
    return _with_status([item], expenses)[0]


@router.delete("/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_budget(budget_id: str, user_id: str = Depends(get_current_user_id)):
    if not dynamo.delete_budget(user_id, budget_id):
        raise NotFoundError("Budget")
    return None
