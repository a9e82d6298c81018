import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from spendwise.core.exceptions import NotFoundError, StoreError
from spendwise.db import dynamo
from spendwise.models.goal import GoalCreate, GoalInDB, GoalProgressAdd, GoalPublic, GoalUpdate
from spendwise.routers.deps import get_current_user_id
from spendwise.utils.analyzer import FinanceAnalyzer

router = APIRouter()
logger = logging.getLogger(__name__)
finance_analyzer = FinanceAnalyzer()


def _public(goal: dict) -> GoalPublic:
    return GoalPublic(**finance_analyzer.goal_progress([goal])[0].to_dict())


@router.get("/", response_model=List[GoalPublic])
def list_goals(user_id: str = Depends(get_current_user_id)):
    goals = dynamo.get_goals_for_user(user_id)
    return [GoalPublic(**item.to_dict()) for item in finance_analyzer.goal_progress(goals)]


@router.post("/", response_model=GoalPublic, status_code=status.HTTP_201_CREATED)
def create_goal(goal: GoalCreate, user_id: str = Depends(get_current_user_id)):
    goal_db = GoalInDB(user_id=user_id, **goal.model_dump(mode="json"))
    if not dynamo.put_goal(goal_db.model_dump()):
        raise StoreError("save goal")
    return _public(goal_db.model_dump())


@router.get("/{goal_id}", response_model=GoalPublic)
def get_goal(goal_id: str, user_id: str = Depends(get_current_user_id)):
    goal = dynamo.get_goal(user_id, goal_id)
    if not goal:
        raise NotFoundError("Goal")
    return _public(goal)


@router.put("/{goal_id}", response_model=GoalPublic)
def update_goal(goal_id: str, goal_update: GoalUpdate, user_id: str = Depends(get_current_user_id)):
    mutable_fields = {
        k: v for k, v in goal_update.model_dump(exclude_unset=True, mode="json").items()
        if v is not None
    }
    if not mutable_fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    updated = dynamo.update_goal(user_id, goal_id, mutable_fields)
    if not updated:
        raise NotFoundError("Goal")
    return _public(updated)


@router.post("/{goal_id}/progress", response_model=GoalPublic)
def add_progress(goal_id: str, progress: GoalProgressAdd, user_id: str = Depends(get_current_user_id)):
    updated = dynamo.add_goal_progress(user_id, goal_id, progress.amount)
    if not updated:
        raise NotFoundError("Goal")

    result = _public(updated)
    if result.percentage >= 100:
        logger.info(f"Goal {goal_id} reached its target for user {user_id}")
    return result


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_goal(goal_id: str, user_id: str = Depends(get_current_user_id)):
    if not dynamo.delete_goal(user_id, goal_id):
        raise NotFoundError("Goal")
    return None
