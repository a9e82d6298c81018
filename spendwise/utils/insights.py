from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from spendwise.utils.currency import format_currency
from spendwise.utils.dates import month_key, resolve_today, shift_month

logger = logging.getLogger(__name__)

# month ("YYYY-MM") -> category -> summed amount
MonthCategoryBuckets = Dict[str, Dict[str, float]]

# category -> cached regression prediction for next month, or None
ForecastLookup = Callable[[str], Optional[float]]


class InsightType(str, Enum):
    WARNING = "warning"
    SUCCESS = "success"
    INFO = "info"
    PREDICTION = "prediction"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class Trend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class SpendingTrend:
    category: str
    current_month: float
    previous_month: float
    percentage_change: float
    trend: Trend

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "currentMonth": self.current_month,
            "previousMonth": self.previous_month,
            "percentageChange": self.percentage_change,
            "trend": self.trend.value,
        }


@dataclass
class ForecastData:
    category: str
    predicted: float
    confidence: Confidence

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "predicted": self.predicted,
            "confidence": self.confidence.value,
        }


@dataclass
class Insight:
    """A human-readable observation generated for the insights page."""

    id: str
    type: InsightType
    title: str
    description: str
    priority: Priority
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority.value,
        }
        # Overall insights carry no category
        return {k: v for k, v in data.items() if v is not None}


@dataclass
class InsightsResult:
    insights: List[Insight] = field(default_factory=list)
    trends: List[SpendingTrend] = field(default_factory=list)
    forecasts: List[ForecastData] = field(default_factory=list)
    total_current_spending: float = 0.0
    total_previous_spending: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "insights": [insight.to_dict() for insight in self.insights],
            "trends": [trend.to_dict() for trend in self.trends],
            "forecasts": [forecast.to_dict() for forecast in self.forecasts],
            "totalCurrentSpending": self.total_current_spending,
            "totalPreviousSpending": self.total_previous_spending,
        }


def bucket_by_month_category(expenses: Iterable[Dict[str, Any]]) -> MonthCategoryBuckets:
    """Sum expense amounts per calendar month, then per category."""
    buckets: MonthCategoryBuckets = {}
    for exp in expenses:
        month = month_key(exp["date"])
        by_category = buckets.setdefault(month, {})
        by_category[exp["category"]] = by_category.get(exp["category"], 0.0) + float(exp.get("amount", 0))
    return buckets


def rank_insights(insights: Iterable[Insight]) -> List[Insight]:
    """Order by priority (high first); equal priorities keep emission order."""
    return sorted(insights, key=lambda insight: insight.priority.rank)


def _no_forecast(category: str) -> Optional[float]:
    return None


def _usable(prediction: Optional[float]) -> bool:
    return prediction is not None and math.isfinite(prediction)


class InsightsEngine:
    """
    Derives trends, forecasts and ranked insights from a user's raw expense
    and budget records. Every call recomputes from scratch; nothing is cached
    here apart from the injected forecast lookup.
    """

    TREND_BAND = 5.0
    CHANGE_ALERT = 15.0
    CHANGE_ALERT_HIGH = 30.0
    BUDGET_NEAR_LIMIT = 90.0
    ANOMALY_FACTOR = 2.0
    ANOMALY_MIN_AMOUNT = 200.0
    OVERALL_INCREASE_FACTOR = 1.2
    CATEGORY_FORECAST_FACTOR = 1.2
    TOTAL_FORECAST_FACTOR = 1.15

    def __init__(
        self,
        forecast_lookup: Optional[ForecastLookup] = None,
        currency: str = "USD",
    ) -> None:
        self._forecast_lookup = forecast_lookup
        self._currency = currency

    def _money(self, amount: float) -> str:
        return format_currency(amount, self._currency)

    def compute(
        self,
        expenses: Iterable[Dict[str, Any]],
        budgets: Iterable[Dict[str, Any]],
        now: Optional[Union[date, datetime]] = None,
        forecast_lookup: Optional[ForecastLookup] = None,
    ) -> InsightsResult:
        """
        Build the insights result as of ``now`` (today when omitted).

        ``forecast_lookup`` overrides the lookup given to the constructor; when
        neither is set, forecasts fall back to the moving average.
        """
        current_month = month_key(resolve_today(now))
        previous_month = shift_month(current_month, -1)
        two_months_ago = shift_month(current_month, -2)
        lookup = forecast_lookup or self._forecast_lookup or _no_forecast

        buckets = bucket_by_month_category(expenses)
        current = buckets.get(current_month, {})
        previous = buckets.get(previous_month, {})
        older = buckets.get(two_months_ago, {})

        insights: List[Insight] = []
        trends, forecasts = self._trends_and_forecasts(current, previous, older, lookup, insights)
        insights.extend(self._budget_warnings(budgets, current, current_month))
        insights.extend(self._anomalies(current, previous))

        total_current = sum(current.values())
        total_previous = sum(previous.values())
        insights.extend(self._overall_changes(buckets, total_current, total_previous, lookup))
        insights.extend(self._category_tips(current, previous))

        return InsightsResult(
            insights=rank_insights(insights),
            trends=trends,
            forecasts=forecasts,
            total_current_spending=total_current,
            total_previous_spending=total_previous,
        )

    def _trends_and_forecasts(self, current, previous, older, lookup, insights):
        trends: List[SpendingTrend] = []
        forecasts: List[ForecastData] = []

        for category in dict.fromkeys([*current, *previous]):
            current_amount = current.get(category, 0.0)
            previous_amount = previous.get(category, 0.0)
            older_amount = older.get(category, 0.0)

            if previous_amount <= 0:
                continue

            change = (current_amount - previous_amount) / previous_amount * 100
            if change > self.TREND_BAND:
                direction = Trend.INCREASING
            elif change < -self.TREND_BAND:
                direction = Trend.DECREASING
            else:
                direction = Trend.STABLE
            trends.append(SpendingTrend(category, current_amount, previous_amount, change, direction))

            if change > self.CHANGE_ALERT:
                insights.append(
                    Insight(
                        id=f"trend_{category}",
                        type=InsightType.WARNING,
                        title=f"{category} spending increased",
                        description=(
                            f"Your {category} expenses increased by {change:.1f}% this month "
                            f"(from {self._money(previous_amount)} to {self._money(current_amount)}). "
                            "Consider reviewing these expenses or setting a stricter budget."
                        ),
                        category=category,
                        priority=Priority.HIGH if change > self.CHANGE_ALERT_HIGH else Priority.MEDIUM,
                    )
                )
            elif change < -self.CHANGE_ALERT:
                insights.append(
                    Insight(
                        id=f"savings_{category}",
                        type=InsightType.SUCCESS,
                        title=f"Great savings in {category}!",
                        description=(
                            f"You reduced {category} spending by {abs(change):.1f}% this month. "
                            "Keep up the good work!"
                        ),
                        category=category,
                        priority=Priority.LOW,
                    )
                )

            prediction = lookup(category)
            forecast = self._forecast(category, current_amount, previous_amount, older_amount, prediction)
            if forecast is None:
                continue
            forecasts.append(forecast)

            if _usable(prediction) and forecast.predicted > current_amount * self.CATEGORY_FORECAST_FACTOR:
                insights.append(
                    Insight(
                        id=f"forecast_{category}",
                        type=InsightType.PREDICTION,
                        title=f"{category} spending expected to rise",
                        description=(
                            f"Based on your recent trend, {category} spending is forecast at "
                            f"{self._money(forecast.predicted)} next month, up from "
                            f"{self._money(current_amount)} this month."
                        ),
                        category=category,
                        priority=Priority.MEDIUM,
                    )
                )

        return trends, forecasts

    def _forecast(self, category, current_amount, previous_amount, older_amount, prediction) -> Optional[ForecastData]:
        if _usable(prediction):
            return ForecastData(category, float(prediction), Confidence.HIGH)

        if older_amount <= 0:
            return None

        logger.debug(f"No regression forecast for {category}, using moving average")
        predicted = (current_amount + previous_amount + older_amount) / 3
        variance = abs(current_amount - previous_amount) + abs(previous_amount - older_amount)
        if variance < 50:
            confidence = Confidence.HIGH
        elif variance < 150:
            confidence = Confidence.MEDIUM
        else:
            confidence = Confidence.LOW
        return ForecastData(category, predicted, confidence)

    def _budget_warnings(self, budgets, current, current_month) -> List[Insight]:
        warnings: List[Insight] = []
        for budget in budgets:
            if budget.get("month") != current_month:
                continue

            amount = float(budget.get("amount", 0))
            if amount <= 0:
                continue

            category = budget["category"]
            spent = current.get(category, 0.0)
            percent_used = spent / amount * 100
            if not math.isfinite(percent_used):
                continue

            # Overruns above 100% are reported by the budget status view
            if self.BUDGET_NEAR_LIMIT < percent_used <= 100:
                warnings.append(
                    Insight(
                        id=f"budget_warning_{category}",
                        type=InsightType.WARNING,
                        title=f"{category} budget almost exhausted",
                        description=(
                            f"You've used {percent_used:.0f}% of your {category} budget "
                            f"({self._money(spent)} of {self._money(amount)}). "
                            f"Only {self._money(amount - spent)} remaining."
                        ),
                        category=category,
                        priority=Priority.HIGH,
                    )
                )
        return warnings

    def _anomalies(self, current, previous) -> List[Insight]:
        anomalies: List[Insight] = []
        for category, amount in current.items():
            previous_amount = previous.get(category, 0.0)
            baseline = previous_amount if previous_amount > 0 else amount

            if amount > baseline * self.ANOMALY_FACTOR and amount > self.ANOMALY_MIN_AMOUNT:
                anomalies.append(
                    Insight(
                        id=f"anomaly_{category}",
                        type=InsightType.INFO,
                        title=f"Unusual spending in {category}",
                        description=(
                            f"Your {category} expenses ({self._money(amount)}) are significantly higher "
                            "than usual. This might be a one-time expense or a pattern to watch."
                        ),
                        category=category,
                        priority=Priority.MEDIUM,
                    )
                )
        return anomalies

    def _overall_changes(self, buckets, total_current, total_previous, lookup) -> List[Insight]:
        changes: List[Insight] = []

        if total_current > total_previous * self.OVERALL_INCREASE_FACTOR:
            if total_previous > 0:
                increase = (total_current - total_previous) / total_previous * 100
                detail = f"Your total spending increased by {increase:.1f}% this month."
            else:
                detail = f"You spent {self._money(total_current)} this month with no spending recorded last month."
            changes.append(
                Insight(
                    id="overall_increase",
                    type=InsightType.WARNING,
                    title="Overall spending increased",
                    description=f"{detail} Review your expenses and consider adjusting budgets.",
                    priority=Priority.HIGH,
                )
            )

        categories = dict.fromkeys(category for by_category in buckets.values() for category in by_category)
        predictions = [lookup(category) for category in categories]
        predictions = [float(p) for p in predictions if _usable(p)]
        if predictions:
            total_forecast = sum(predictions)
            if total_forecast > total_current * self.TOTAL_FORECAST_FACTOR:
                changes.append(
                    Insight(
                        id="forecast_total",
                        type=InsightType.PREDICTION,
                        title="Total spending forecast to rise",
                        description=(
                            f"Your spending trend points to about {self._money(total_forecast)} next month, "
                            f"compared with {self._money(total_current)} so far this month. "
                            "Plan ahead and adjust budgets where you can."
                        ),
                        priority=Priority.HIGH,
                    )
                )

        return changes

    def _category_tips(self, current, previous) -> List[Insight]:
        tips: List[Insight] = []

        transport = current.get("Transportation", 0.0)
        previous_transport = previous.get("Transportation", 0.0)
        if transport > previous_transport * 1.15 and transport > 100:
            if previous_transport > 0:
                growth = f"increased by {(transport - previous_transport) / previous_transport * 100:.0f}%"
            else:
                growth = f"reached {self._money(transport)}"
            tips.append(
                Insight(
                    id="transport_tip",
                    type=InsightType.INFO,
                    title="Transportation Cost Optimization",
                    description=(
                        f"Your transport expenses {growth} this month. Consider carpooling, "
                        "public transit, or ride-sharing apps to reduce costs."
                    ),
                    category="Transportation",
                    priority=Priority.MEDIUM,
                )
            )

        food = current.get("Food & Dining", 0.0)
        if food > 500:
            tips.append(
                Insight(
                    id="food_tip",
                    type=InsightType.INFO,
                    title="Dining Optimization",
                    description=(
                        f"You spent {self._money(food)} on dining this month. Meal planning and "
                        "cooking at home could save you 30-40% on food expenses."
                    ),
                    category="Food & Dining",
                    priority=Priority.MEDIUM,
                )
            )

        if current.get("Shopping", 0.0) > 300:
            tips.append(
                Insight(
                    id="shopping_tip",
                    type=InsightType.INFO,
                    title="Shopping Smart Tips",
                    description=(
                        "Consider implementing a 24-hour rule before making non-essential purchases. "
                        "Use price comparison tools and wait for seasonal sales."
                    ),
                    category="Shopping",
                    priority=Priority.LOW,
                )
            )

        return tips


def compute_insights(
    expenses: Iterable[Dict[str, Any]],
    budgets: Iterable[Dict[str, Any]],
    now: Optional[Union[date, datetime]] = None,
    forecast_lookup: Optional[ForecastLookup] = None,
    currency: str = "USD",
) -> InsightsResult:
    return InsightsEngine(forecast_lookup, currency).compute(expenses, budgets, now=now)
