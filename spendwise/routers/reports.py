import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from spendwise.core.config import settings
from spendwise.db import dynamo
from spendwise.models.budget import MONTH_PATTERN
from spendwise.routers.deps import get_current_user_id
from spendwise.utils import pdf_report

router = APIRouter()
logger = logging.getLogger(__name__)


def _expenses_to_export(user_id: str, month: Optional[str]):
    expenses = dynamo.get_expenses_for_user(user_id, month)
    if not expenses:
        raise HTTPException(status_code=404, detail="No data to export")
    return expenses


def _download(content, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/export.csv")
def export_csv(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    title: str = Query("Expense Report", max_length=80),
    user_id: str = Depends(get_current_user_id),
):
    expenses = _expenses_to_export(user_id, month)
    logger.info(f"Exporting {len(expenses)} expenses as CSV for user {user_id}")
    return _download(pdf_report.build_csv(expenses), "text/csv", pdf_report.export_filename(title, "csv"))


@router.get("/export.pdf")
def export_pdf(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    title: str = Query("Expense Report", max_length=80),
    user_id: str = Depends(get_current_user_id),
):
    expenses = _expenses_to_export(user_id, month)
    currency = dynamo.get_currency(user_id) or settings.DEFAULT_CURRENCY
    logger.info(f"Exporting {len(expenses)} expenses as PDF for user {user_id}")
    content = pdf_report.build_pdf(expenses, title=title, currency=currency)
    return _download(content, "application/pdf", pdf_report.export_filename(title, "pdf"))
