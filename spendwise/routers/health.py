"""
Health Check Router
Simple health check endpoint
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from spendwise.core.config import settings
from spendwise.db import dynamo
from spendwise.utils.scheduler import get_scheduler_status

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Returns API status and background scheduler state.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "scheduler": get_scheduler_status(),
    }


@router.get("/status")
def storage_status():
    """
    Check that every DynamoDB table is reachable.
    """
    tables = {
        "expenses": dynamo.expenses_table,
        "budgets": dynamo.budgets_table,
        "goals": dynamo.goals_table,
        "preferences": dynamo.preferences_table,
    }

    result = {}
    for name, table in tables.items():
        try:
            table.scan(Limit=1)
            result[name] = {"name": table.name, "status": "accessible"}
        except Exception as e:
            logger.error(f"DynamoDB check failed for {name}: {str(e)}")
            result[name] = {"name": table.name, "status": "error", "error": str(e)}

    all_accessible = all(table["status"] == "accessible" for table in result.values())
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "region": settings.DYNAMO_REGION,
        "tables": result,
        "overall_status": "healthy" if all_accessible else "degraded",
    }
