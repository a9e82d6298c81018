import logging
from datetime import date
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query

from spendwise.core.config import settings
from spendwise.db import dynamo
from spendwise.routers.deps import get_current_user_id
from spendwise.utils.dates import month_key
from spendwise.utils.forecaster import forecast_cache, train_category_forecasts
from spendwise.utils.insights import InsightsEngine
from spendwise.utils.scheduler import schedule_forecast_training, training_pending

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/")
def get_insights(
    as_of: Optional[date] = Query(None, description="Compute as of this date (YYYY-MM-DD); defaults to today"),
    user_id: str = Depends(get_current_user_id),
) -> Dict:
    """
    Ranked insights, month-over-month trends, next-month forecasts and the
    current/previous month totals for the user.
    """
    expenses = dynamo.get_expenses_for_user(user_id)
    budgets = dynamo.get_budgets_for_user(user_id)
    currency = dynamo.get_currency(user_id) or settings.DEFAULT_CURRENCY

    current_month = month_key(date.today())
    if as_of is not None and month_key(as_of) != current_month:
        # Cached tables are anchored on the current month
        forecast_lookup = train_category_forecasts(expenses, now=as_of).get
    else:
        # Missing or trained before the month rolled over; moving averages until it lands
        if not forecast_cache.has(user_id, current_month) and not training_pending(user_id):
            schedule_forecast_training(user_id, expenses)
        forecast_lookup = forecast_cache.lookup(user_id, current_month)

    result = InsightsEngine(forecast_lookup, currency).compute(expenses, budgets, now=as_of)
    logger.info(
        f"Insights for user {user_id}: {len(result.insights)} insights, "
        f"{len(result.trends)} trends, {len(result.forecasts)} forecasts"
    )
    return result.to_dict()
