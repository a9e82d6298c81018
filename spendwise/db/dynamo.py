import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from spendwise.core.config import settings

logger = logging.getLogger(__name__)

# Initialize DynamoDB resource
dynamodb = boto3.resource(
    "dynamodb",
    region_name=settings.DYNAMO_REGION,
    endpoint_url=settings.DYNAMO_ENDPOINT_URL,
)

# Get table references; every table is keyed by user_id + record id
expenses_table = dynamodb.Table(settings.DYNAMO_EXPENSES_TABLE)
budgets_table = dynamodb.Table(settings.DYNAMO_BUDGETS_TABLE)
goals_table = dynamodb.Table(settings.DYNAMO_GOALS_TABLE)
preferences_table = dynamodb.Table(settings.DYNAMO_PREFERENCES_TABLE)


def _error_message(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Message", str(e))


def _query_user(table, user_id: str, filter_expression=None) -> List[Dict[str, Any]]:
    """Query every item under a user's partition, following pagination."""
    kwargs: Dict[str, Any] = {"KeyConditionExpression": Key("user_id").eq(user_id)}
    if filter_expression is not None:
        kwargs["FilterExpression"] = filter_expression

    items: List[Dict[str, Any]] = []
    while True:
        response = table.query(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return [_from_dynamo(item) for item in items]
        kwargs["ExclusiveStartKey"] = last_key


def _update_item(table, key: Dict[str, str], updates: Dict[str, Any]):
    """
    Apply partial updates to an existing item. Returns the updated item or None.
    """
    if not updates:
        return None

    update_expression_parts = []
    expression_attribute_values = {}
    expression_attribute_names = {}

    for idx, (field, value) in enumerate(updates.items()):
        placeholder = f"#f{idx}"
        value_placeholder = f":v{idx}"
        update_expression_parts.append(f"{placeholder} = {value_placeholder}")
        expression_attribute_names[placeholder] = field
        expression_attribute_values[value_placeholder] = value

    response = table.update_item(
        Key=key,
        UpdateExpression="SET " + ", ".join(update_expression_parts),
        ConditionExpression=Attr("user_id").exists(),
        ExpressionAttributeNames=expression_attribute_names,
        ExpressionAttributeValues=_convert_for_dynamo(expression_attribute_values),
        ReturnValues="ALL_NEW",
    )
    attributes = response.get("Attributes")
    return _from_dynamo(attributes) if attributes else None


def _is_missing_item(e: ClientError) -> bool:
    return e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


# Expenses

def put_expense(expense_item: dict):
    """Insert or replace an expense for a user."""
    try:
        expenses_table.put_item(Item=_convert_for_dynamo(expense_item))
        return True
    except ClientError as e:
        logger.error(f"put_expense failed: {_error_message(e)}")
        return False


def get_expense(user_id: str, expense_id: str):
    """Fetch a single expense item."""
    try:
        response = expenses_table.get_item(Key={"user_id": user_id, "expense_id": expense_id})
        item = response.get("Item")
        return _from_dynamo(item) if item else None
    except ClientError as e:
        logger.error(f"get_expense failed: {_error_message(e)}")
        return None


def get_expenses_for_user(user_id: str, month_prefix: Optional[str] = None):
    """
    Query all expenses for a user, optionally limited to one month.
    month_prefix: '2024-11' matches every expense dated 2024-11-xx
    """
    filter_expression = Attr("date").begins_with(month_prefix) if month_prefix else None
    try:
        expenses = _query_user(expenses_table, user_id, filter_expression)
        return sorted(expenses, key=lambda exp: str(exp.get("date", "")), reverse=True)
    except ClientError as e:
        logger.error(f"get_expenses_for_user failed: {_error_message(e)}")
        return []


def update_expense(user_id: str, expense_id: str, updates: dict):
    try:
        return _update_item(expenses_table, {"user_id": user_id, "expense_id": expense_id}, updates)
    except ClientError as e:
        if not _is_missing_item(e):
            logger.error(f"update_expense failed: {_error_message(e)}")
        return None


def delete_expense(user_id: str, expense_id: str):
    """Delete a specific expense item."""
    try:
        response = expenses_table.delete_item(
            Key={"user_id": user_id, "expense_id": expense_id},
            ReturnValues="ALL_OLD",
        )
        return "Attributes" in response
    except ClientError as e:
        logger.error(f"delete_expense failed: {_error_message(e)}")
        return False


# Budgets

def get_budgets_for_user(user_id: str, month: Optional[str] = None):
    filter_expression = Attr("month").eq(month) if month else None
    try:
        return _query_user(budgets_table, user_id, filter_expression)
    except ClientError as e:
        logger.error(f"get_budgets_for_user failed: {_error_message(e)}")
        return []


def get_budget_for(user_id: str, category: str, month: str):
    """Find the budget a user set for one category and month, if any."""
    try:
        matches = _query_user(
            budgets_table,
            user_id,
            Attr("category").eq(category) & Attr("month").eq(month),
        )
        return matches[0] if matches else None
    except ClientError as e:
        logger.error(f"get_budget_for failed: {_error_message(e)}")
        return None


def put_budget(budget_item: dict):
    try:
        budgets_table.put_item(Item=_convert_for_dynamo(budget_item))
        return True
    except ClientError as e:
        logger.error(f"put_budget failed: {_error_message(e)}")
        return False


def delete_budget(user_id: str, budget_id: str):
    try:
        response = budgets_table.delete_item(
            Key={"user_id": user_id, "budget_id": budget_id},
            ReturnValues="ALL_OLD",
        )
        return "Attributes" in response
    except ClientError as e:
        logger.error(f"delete_budget failed: {_error_message(e)}")
        return False


# Saving goals

def get_goals_for_user(user_id: str):
    try:
        return _query_user(goals_table, user_id)
    except ClientError as e:
        logger.error(f"get_goals_for_user failed: {_error_message(e)}")
        return []


def get_goal(user_id: str, goal_id: str):
    try:
        response = goals_table.get_item(Key={"user_id": user_id, "goal_id": goal_id})
        item = response.get("Item")
        return _from_dynamo(item) if item else None
    except ClientError as e:
        logger.error(f"get_goal failed: {_error_message(e)}")
        return None


def put_goal(goal_item: dict):
    try:
        goals_table.put_item(Item=_convert_for_dynamo(goal_item))
        return True
    except ClientError as e:
        logger.error(f"put_goal failed: {_error_message(e)}")
        return False


def update_goal(user_id: str, goal_id: str, updates: dict):
    try:
        return _update_item(goals_table, {"user_id": user_id, "goal_id": goal_id}, updates)
    except ClientError as e:
        if not _is_missing_item(e):
            logger.error(f"update_goal failed: {_error_message(e)}")
        return None


def add_goal_progress(user_id: str, goal_id: str, amount: float):
    """Atomically add an amount to a goal's current_amount."""
    try:
        response = goals_table.update_item(
            Key={"user_id": user_id, "goal_id": goal_id},
            UpdateExpression="ADD current_amount :amount",
            ConditionExpression=Attr("user_id").exists(),
            ExpressionAttributeValues=_convert_for_dynamo({":amount": float(amount)}),
            ReturnValues="ALL_NEW",
        )
        attributes = response.get("Attributes")
        return _from_dynamo(attributes) if attributes else None
    except ClientError as e:
        if not _is_missing_item(e):
            logger.error(f"add_goal_progress failed: {_error_message(e)}")
        return None


def delete_goal(user_id: str, goal_id: str):
    try:
        response = goals_table.delete_item(
            Key={"user_id": user_id, "goal_id": goal_id},
            ReturnValues="ALL_OLD",
        )
        return "Attributes" in response
    except ClientError as e:
        logger.error(f"delete_goal failed: {_error_message(e)}")
        return False


# Preferences

def get_currency(user_id: str):
    """Preferred display currency for a user, or None when never set."""
    try:
        response = preferences_table.get_item(Key={"user_id": user_id})
        item = response.get("Item")
        return item.get("currency") if item else None
    except ClientError as e:
        logger.error(f"get_currency failed: {_error_message(e)}")
        return None


def save_currency(user_id: str, currency: str):
    try:
        preferences_table.put_item(Item={
            "user_id": user_id,
            "currency": currency,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        })
        return True
    except ClientError as e:
        logger.error(f"save_currency failed: {_error_message(e)}")
        return False


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
