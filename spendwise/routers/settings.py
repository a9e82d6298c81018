"""
Settings Router
Per-user preferences such as the display currency
"""
import logging
from typing import Dict

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from spendwise.core.config import settings
from spendwise.core.exceptions import StoreError, ValidationError
from spendwise.db import dynamo
from spendwise.routers.deps import get_current_user_id
from spendwise.utils.currency import CURRENCIES, UnknownCurrencyError, convert_amount, is_supported

router = APIRouter()
logger = logging.getLogger(__name__)


class CurrencyUpdate(BaseModel):
    currency: str  # ISO code, e.g. EUR


def _currency_info(code: str) -> Dict:
    info = CURRENCIES[code]
    return {"currency": code, "symbol": info["symbol"], "name": info["name"], "rate": info["rate"]}


@router.get("/currency")
def get_currency(user_id: str = Depends(get_current_user_id)) -> Dict:
    code = dynamo.get_currency(user_id) or settings.DEFAULT_CURRENCY
    return {**_currency_info(code), "supported": sorted(CURRENCIES)}


@router.put("/currency")
def update_currency(update: CurrencyUpdate, user_id: str = Depends(get_current_user_id)) -> Dict:
    code = update.currency.upper()
    if not is_supported(code):
        raise ValidationError(f"Unsupported currency: {update.currency}")

    if not dynamo.save_currency(user_id, code):
        raise StoreError("save currency")

    logger.info(f"User {user_id} switched currency to {code}")
    return _currency_info(code)


@router.get("/currency/convert")
def convert(
    amount: float = Query(...),
    to_currency: str = Query(...),
    from_currency: str = Query("USD"),
) -> Dict:
    try:
        converted = convert_amount(amount, to_currency, from_currency)
    except UnknownCurrencyError as e:
        raise ValidationError(str(e))
    return {
        "amount": amount,
        "from_currency": from_currency.upper(),
        "to_currency": to_currency.upper(),
        "converted": round(converted, 2),
    }
