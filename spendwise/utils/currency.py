from typing import Dict


class UnknownCurrencyError(ValueError):
    """Raised for a currency code missing from CURRENCIES."""


# Rates are units of the currency per 1 USD
CURRENCIES: Dict[str, Dict[str, object]] = {
    "USD": {"symbol": "$", "name": "US Dollar", "rate": 1.0},
    "EUR": {"symbol": "€", "name": "Euro", "rate": 0.92},
    "GBP": {"symbol": "£", "name": "British Pound", "rate": 0.79},
    "INR": {"symbol": "₹", "name": "Indian Rupee", "rate": 83.12},
    "JPY": {"symbol": "¥", "name": "Japanese Yen", "rate": 149.5},
    "CAD": {"symbol": "C$", "name": "Canadian Dollar", "rate": 1.36},
    "AUD": {"symbol": "A$", "name": "Australian Dollar", "rate": 1.53},
}


def _currency(code: str) -> Dict[str, object]:
    try:
        return CURRENCIES[code.upper()]
    except KeyError:
        raise UnknownCurrencyError(f"Unsupported currency: {code}") from None


def is_supported(code: str) -> bool:
    return code.upper() in CURRENCIES


def convert_amount(amount: float, to_currency: str, from_currency: str = "USD") -> float:
    from_rate = float(_currency(from_currency)["rate"])
    to_rate = float(_currency(to_currency)["rate"])
    return (amount / from_rate) * to_rate


def format_currency(amount: float, code: str = "USD") -> str:
    return f"{_currency(code)['symbol']}{amount:.2f}"
