from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from spendwise.utils.dates import resolve_today


@dataclass
class BudgetStatus:
    """Spending against a single monthly category budget."""

    budget_id: str
    category: str
    month: str
    amount: float
    spent: float
    percentage: float
    remaining: float
    state: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GoalProgress:
    """Progress of a saving goal towards its target."""

    goal_id: str
    name: str
    category: str
    target_amount: float
    current_amount: float
    deadline: str
    percentage: float
    badge: str
    days_left: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # Remove None values for cleaner JSON responses
        return {k: v for k, v in data.items() if v is not None}


class FinanceAnalyzer:
    """
    Budget and goal bookkeeping shared by the budget, goal and report routes.
    Trend and forecast analytics live in spendwise.utils.insights.
    """

    def __init__(self, warning_percentage: float = 90.0) -> None:
        self._warning_percentage = warning_percentage

    def monthly_total(self, expenses: List[Dict[str, Any]]) -> float:
        return round(sum(float(exp.get("amount", 0)) for exp in expenses), 2)

    def category_totals(self, expenses: List[Dict[str, Any]]) -> Dict[str, float]:
        totals: Dict[str, float] = defaultdict(float)
        for exp in expenses:
            totals[exp["category"]] += float(exp.get("amount", 0))
        return {cat: round(total, 2) for cat, total in totals.items()}

    def budget_state(self, percentage: float) -> str:
        if percentage > 100:
            return "exceeded"
        if percentage > self._warning_percentage:
            return "warning"
        return "ok"

    def budget_status(
        self,
        budgets: List[Dict[str, Any]],
        expenses: List[Dict[str, Any]],
    ) -> List[BudgetStatus]:
        """
        Spent, percentage used and remaining headroom for every budget,
        newest month first.
        """
        statuses = []
        for budget in budgets:
            amount = float(budget.get("amount", 0))
            spent = sum(
                float(exp.get("amount", 0))
                for exp in expenses
                if exp["category"] == budget["category"] and str(exp["date"]).startswith(budget["month"])
            )
            percentage = (spent / amount) * 100 if amount > 0 else 0.0
            statuses.append(
                BudgetStatus(
                    budget_id=budget["budget_id"],
                    category=budget["category"],
                    month=budget["month"],
                    amount=amount,
                    spent=round(spent, 2),
                    percentage=round(percentage, 2),
                    remaining=round(amount - spent, 2),
                    state=self.budget_state(percentage),
                )
            )
        return sorted(statuses, key=lambda status: status.month, reverse=True)

    @staticmethod
    def achievement_badge(percentage: float) -> str:
        if percentage >= 100:
            return "Achieved!"
        if percentage >= 75:
            return "Almost There!"
        if percentage >= 50:
            return "Halfway!"
        return "Getting Started"

    def goal_progress(
        self,
        goals: List[Dict[str, Any]],
        today: Optional[Union[date, datetime]] = None,
    ) -> List[GoalProgress]:
        """Goals with their completion percentage, closest to done first."""
        today = resolve_today(today)

        progress = []
        for goal in goals:
            target = float(goal.get("target_amount", 0))
            current = float(goal.get("current_amount", 0))
            percentage = min((current / target) * 100, 100.0) if target > 0 else 0.0

            days_left = None
            if goal.get("deadline"):
                deadline = date.fromisoformat(str(goal["deadline"])[:10])
                days_left = (deadline - today).days

            progress.append(
                GoalProgress(
                    goal_id=goal["goal_id"],
                    name=goal.get("name", ""),
                    category=goal.get("category", ""),
                    target_amount=target,
                    current_amount=current,
                    deadline=goal.get("deadline", ""),
                    percentage=round(percentage, 2),
                    badge=self.achievement_badge(percentage),
                    days_left=days_left,
                )
            )
        return sorted(progress, key=lambda item: item.percentage, reverse=True)
