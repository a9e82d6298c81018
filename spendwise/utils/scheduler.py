"""
Scheduler Service
Runs forecast training out of band using APScheduler
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from apscheduler.schedulers.background import BackgroundScheduler

from spendwise.core.config import settings
from spendwise.utils.dates import month_key, resolve_today
from spendwise.utils.forecaster import forecast_cache, train_category_forecasts

logger = logging.getLogger(__name__)

# Scheduler instance (exported for use in the health router)
scheduler: Optional[BackgroundScheduler] = None

JOB_PREFIX = "forecast_training_"


def forecast_training_job(
    user_id: str,
    token: int,
    expenses: List[Dict[str, Any]],
    now: Optional[Union[date, datetime]] = None,
):
    """Job function training every category forecast for one user"""
    anchor = month_key(resolve_today(now))
    logger.info(f"Executing forecast training for user {user_id} ({anchor})...")
    try:
        table = train_category_forecasts(expenses, now=now)
    except Exception as e:
        # Insights keep using moving averages until the next successful run
        logger.error(f"Forecast training failed for user {user_id}: {str(e)}", exc_info=True)
        table = {}

    if forecast_cache.publish(user_id, token, table, anchor):
        logger.info(f"Forecast table updated for user {user_id}: {len(table)} categories")
    return table


def schedule_forecast_training(
    user_id: str,
    expenses: List[Dict[str, Any]],
    now: Optional[Union[date, datetime]] = None,
):
    """
    Queue forecast training after a user's expenses changed.

    Runs inline when the background scheduler is not running.
    """
    token = forecast_cache.begin(user_id)
    snapshot = [dict(exp) for exp in expenses]

    if scheduler is None or not scheduler.running:
        forecast_training_job(user_id, token, snapshot, now)
        return None

    # One pending run per user; a newer request replaces the queued one
    return scheduler.add_job(
        forecast_training_job,
        args=[user_id, token, snapshot, now],
        id=f"{JOB_PREFIX}{user_id}",
        name=f"Forecast Training - {user_id}",
        replace_existing=True,
    )


def training_pending(user_id: str) -> bool:
    """A queued or running training job will still publish a table for the user."""
    if scheduler is None or not scheduler.running:
        return False
    return forecast_cache.in_flight(user_id)


def start_scheduler():
    """Start the background scheduler"""
    global scheduler

    if not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler disabled, forecast training will run inline")
        return

    if scheduler is not None:
        logger.warning("Scheduler is already running")
        return

    scheduler = BackgroundScheduler(job_defaults={"misfire_grace_time": None, "coalesce": True})
    scheduler.start()
    logger.info("Scheduler started.")


def stop_scheduler():
    """Stop the background scheduler"""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("Scheduler stopped")


def get_scheduler_status():
    """Get current scheduler status"""
    if scheduler is None:
        return {"running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": str(job.next_run_time) if job.next_run_time else None
        })

    return {
        "running": scheduler.running,
        "jobs": jobs
    }
