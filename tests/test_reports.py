from datetime import date

import pytest

from spendwise.utils.currency import UnknownCurrencyError, convert_amount, format_currency
from spendwise.utils.pdf_report import build_csv, build_pdf, export_filename, report_summary

sample_expenses = [
    {"category": "Food & Dining", "amount": 12.5, "description": "Lunch, with team", "date": "2025-11-03"},
    {"category": "Travel", "amount": 300, "description": "Train", "date": "2025-11-01"},
]


def test_format_currency():
    assert format_currency(12.5) == "$12.50"
    assert format_currency(1000, "EUR") == "€1000.00"


def test_convert_amount():
    assert convert_amount(100, "USD") == 100
    assert convert_amount(92, "USD", from_currency="EUR") == pytest.approx(100)


def test_unknown_currency():
    with pytest.raises(UnknownCurrencyError):
        format_currency(1, "XYZ")


def test_build_csv():
    lines = build_csv(sample_expenses).splitlines()

    assert lines[0] == "Date,Category,Description,Amount"
    assert lines[1] == '2025-11-03,Food & Dining,"Lunch, with team",12.50'
    assert lines[2] == "2025-11-01,Travel,Train,300.00"


def test_export_filename():
    assert export_filename("Monthly Expense Report", "csv", today=date(2025, 11, 5)) == \
        "Monthly_Expense_Report_2025-11-05.csv"


def test_build_pdf():
    content = build_pdf(sample_expenses, title="November", currency="INR")

    assert content.startswith(b"%PDF")
    assert len(content) > 500


def test_report_summary():
    expenses = sample_expenses + [
        {"category": "Food & Dining", "amount": 7.25, "description": "", "date": "2025-11-04"},
    ]

    summary = report_summary(expenses)

    assert summary["total"] == 319.75
    assert summary["count"] == 3
    assert list(summary["by_category"].items()) == [("Travel", 300.0), ("Food & Dining", 19.75)]
