import os

# Settings are read at import time; keep tests off the background scheduler
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("DYNAMO_REGION", "eu-west-1")

import pytest
from fastapi.testclient import TestClient

from spendwise.db import dynamo
from spendwise.utils.forecaster import forecast_cache


class FakeStore:
    """In-memory stand-in for the DynamoDB store functions."""

    def __init__(self):
        self.expenses = {}
        self.budgets = {}
        self.goals = {}
        self.currency = {}

    def _mine(self, table, user_id):
        return [dict(item) for item in table.values() if item["user_id"] == user_id]

    def get_expenses_for_user(self, user_id, month_prefix=None):
        items = self._mine(self.expenses, user_id)
        if month_prefix:
            items = [e for e in items if e["date"].startswith(month_prefix)]
        return sorted(items, key=lambda e: e["date"], reverse=True)

    def put_expense(self, item):
        self.expenses[item["expense_id"]] = dict(item)
        return True

    def get_expense(self, user_id, expense_id):
        item = self.expenses.get(expense_id)
        if not item or item["user_id"] != user_id:
            return None
        return dict(item)

    def update_expense(self, user_id, expense_id, updates):
        item = self.expenses.get(expense_id)
        if not item or item["user_id"] != user_id:
            return None
        item.update(updates)
        return dict(item)

    def delete_expense(self, user_id, expense_id):
        item = self.expenses.get(expense_id)
        if not item or item["user_id"] != user_id:
            return False
        del self.expenses[expense_id]
        return True

    def get_budgets_for_user(self, user_id, month=None):
        items = self._mine(self.budgets, user_id)
        return [b for b in items if not month or b["month"] == month]

    def get_budget_for(self, user_id, category, month):
        for budget in self.get_budgets_for_user(user_id, month):
            if budget["category"] == category:
                return budget
        return None

    def put_budget(self, item):
        self.budgets[item["budget_id"]] = dict(item)
        return True

    def delete_budget(self, user_id, budget_id):
        return self.budgets.pop(budget_id, None) is not None

    def get_goals_for_user(self, user_id):
        return self._mine(self.goals, user_id)

    def get_goal(self, user_id, goal_id):
        item = self.goals.get(goal_id)
        if not item or item["user_id"] != user_id:
            return None
        return dict(item)

    def put_goal(self, item):
        self.goals[item["goal_id"]] = dict(item)
        return True

    def update_goal(self, user_id, goal_id, updates):
        item = self.goals.get(goal_id)
        if not item:
            return None
        item.update(updates)
        return dict(item)

    def add_goal_progress(self, user_id, goal_id, amount):
        item = self.goals.get(goal_id)
        if not item:
            return None
        item["current_amount"] = item.get("current_amount", 0) + amount
        return dict(item)

    def delete_goal(self, user_id, goal_id):
        return self.goals.pop(goal_id, None) is not None

    def get_currency(self, user_id):
        return self.currency.get(user_id)

    def save_currency(self, user_id, currency):
        self.currency[user_id] = currency
        return True


STORE_FUNCTIONS = [
    name for name in vars(FakeStore) if not name.startswith("_")
]


@pytest.fixture
def store(monkeypatch):
    fake = FakeStore()
    for name in STORE_FUNCTIONS:
        monkeypatch.setattr(dynamo, name, getattr(fake, name))
    return fake


@pytest.fixture(autouse=True)
def clean_forecasts():
    forecast_cache.clear()
    yield
    forecast_cache.clear()


@pytest.fixture
def client(store):
    from spendwise.main import app

    return TestClient(app)
