"""
Next-month spend forecasts per category.

A straight line is fitted to each category's trailing monthly totals with
batch gradient descent and evaluated one month ahead. Results are kept in a
per-user ForecastCache that the insights engine reads through a lookup.
"""
import itertools
import logging
import math
import threading
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from spendwise.core.config import settings
from spendwise.utils.dates import month_key, resolve_today, shift_month
from spendwise.utils.insights import ForecastLookup, MonthCategoryBuckets, bucket_by_month_category

logger = logging.getLogger(__name__)


class ForecastTrainingError(Exception):
    """The regression could not be fitted for a series."""


def monthly_series(
    buckets: MonthCategoryBuckets,
    category: str,
    anchor_month: str,
    window: Optional[int] = None,
) -> List[float]:
    """Trailing monthly totals for a category, oldest first, ending at anchor_month."""
    window = window or settings.FORECAST_WINDOW_MONTHS
    return [
        buckets.get(shift_month(anchor_month, offset - (window - 1)), {}).get(category, 0.0)
        for offset in range(window)
    ]


def fit_linear_trend(
    values: Sequence[float],
    learning_rate: Optional[float] = None,
    epochs: Optional[int] = None,
    min_points: Optional[int] = None,
) -> Tuple[float, float]:
    """
    Fit ``y = slope * x + intercept`` over x = 0..n-1 by minimising the mean
    squared error with gradient descent.

    Inputs are scaled to [0, 1] while training so one learning rate works for
    any spend magnitude; the returned coefficients are in original units.
    """
    learning_rate = settings.FORECAST_LEARNING_RATE if learning_rate is None else learning_rate
    epochs = settings.FORECAST_EPOCHS if epochs is None else epochs
    min_points = settings.FORECAST_MIN_POINTS if min_points is None else min_points

    y = np.asarray(values, dtype=float)
    if y.size < 2:
        raise ForecastTrainingError("need at least two months to fit a trend")
    if not np.all(np.isfinite(y)):
        raise ForecastTrainingError("series contains non-finite values")
    if np.count_nonzero(y) < min_points:
        raise ForecastTrainingError(f"fewer than {min_points} non-zero months")

    x_scale = float(y.size - 1)
    y_scale = float(np.max(np.abs(y)))
    if y_scale == 0:
        return 0.0, 0.0
    xs = np.arange(y.size, dtype=float) / x_scale
    ys = y / y_scale

    slope, intercept = 0.0, 0.0
    try:
        with np.errstate(over="raise", invalid="raise"):
            for _ in range(epochs):
                error = slope * xs + intercept - ys
                slope -= learning_rate * 2.0 * float(np.mean(error * xs))
                intercept -= learning_rate * 2.0 * float(np.mean(error))
    except FloatingPointError as exc:
        raise ForecastTrainingError(f"training diverged: {exc}") from exc

    if not (math.isfinite(slope) and math.isfinite(intercept)):
        raise ForecastTrainingError("training produced non-finite coefficients")

    return slope * y_scale / x_scale, intercept * y_scale


def predict_next(values: Sequence[float], **fit_options) -> float:
    """Evaluate the fitted trend one step past the series, never below zero."""
    slope, intercept = fit_linear_trend(values, **fit_options)
    return max(0.0, slope * len(values) + intercept)


def train_category_forecasts(
    expenses: Iterable[Dict[str, Any]],
    now: Optional[Union[date, datetime]] = None,
    window: Optional[int] = None,
) -> Dict[str, float]:
    """
    Train one model per category with spend in the trailing window and return
    the next-month predictions. Categories that cannot be fitted are left out.
    """
    anchor = month_key(resolve_today(now))
    buckets = bucket_by_month_category(expenses)
    window = window or settings.FORECAST_WINDOW_MONTHS

    categories = dict.fromkeys(
        category
        for offset in range(window)
        for category in buckets.get(shift_month(anchor, -offset), {})
    )

    predictions: Dict[str, float] = {}
    for category in categories:
        series = monthly_series(buckets, category, anchor, window)
        if not any(series):
            continue
        try:
            predictions[category] = predict_next(series)
        except ForecastTrainingError as exc:
            logger.debug(f"Skipping forecast for {category}: {exc}")
    logger.info(f"Trained {len(predictions)} of {len(categories)} category forecasts for {anchor}")
    return predictions


class ForecastCache:
    """
    Latest trained predictions per user, tagged with the month they were
    anchored on.

    ``begin`` hands out a generation token before training starts; ``publish``
    installs a whole table only if that token is still the newest one for the
    user, so results from superseded training runs are dropped. A table is only
    served for the month it was trained on.
    """

    def __init__(self) -> None:
        self._tables: Dict[str, Tuple[str, Dict[str, float]]] = {}
        self._latest: Dict[str, int] = {}
        self._published: Dict[str, int] = {}
        self._tokens = itertools.count(1)
        self._lock = threading.Lock()

    def begin(self, user_id: str) -> int:
        with self._lock:
            token = next(self._tokens)
            self._latest[user_id] = token
            return token

    def publish(self, user_id: str, token: int, table: Dict[str, float], anchor: str) -> bool:
        with self._lock:
            if self._latest.get(user_id) != token:
                logger.info(f"Discarding stale forecast table for user {user_id}")
                return False
            self._tables[user_id] = (anchor, dict(table))
            self._published[user_id] = token
            return True

    def in_flight(self, user_id: str) -> bool:
        """A training run was started for the user and has not published yet."""
        with self._lock:
            latest = self._latest.get(user_id)
            return latest is not None and latest != self._published.get(user_id)

    def has(self, user_id: str, anchor: Optional[str] = None) -> bool:
        entry = self._tables.get(user_id)
        return entry is not None and (anchor is None or entry[0] == anchor)

    def anchor(self, user_id: str) -> Optional[str]:
        entry = self._tables.get(user_id)
        return entry[0] if entry else None

    def snapshot(self, user_id: str) -> Dict[str, float]:
        entry = self._tables.get(user_id)
        return dict(entry[1]) if entry else {}

    def lookup(self, user_id: str, anchor: Optional[str] = None) -> ForecastLookup:
        """Lookup over the user's table; empty when it was trained for another month."""
        if not self.has(user_id, anchor):
            return {}.get
        return self._tables[user_id][1].get

    def clear(self) -> None:
        with self._lock:
            self._tables.clear()
            self._latest.clear()
            self._published.clear()


forecast_cache = ForecastCache()
