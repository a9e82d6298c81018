import csv
import io
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from spendwise.utils.analyzer import FinanceAnalyzer
from spendwise.utils.currency import format_currency
from spendwise.utils.dates import resolve_today

CSV_HEADERS = ["Date", "Category", "Description", "Amount"]
COLUMN_WIDTHS = [30, 45, 80, 30]
HEADER_FILL = (59, 130, 246)
STRIPE_FILL = (241, 245, 249)

finance_analyzer = FinanceAnalyzer()


def export_filename(title: str, ext: str, today: Optional[Union[date, datetime]] = None) -> str:
    stem = "_".join(title.split())
    return f"{stem}_{resolve_today(today).isoformat()}.{ext}"


def _rows(expenses: List[Dict[str, Any]]):
    for e in expenses:
        yield [
            str(e["date"])[:10],
            e["category"],
            e.get("description", "") or "",
            float(e.get("amount", 0)),
        ]


def build_csv(expenses: List[Dict[str, Any]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for day, category, description, amount in _rows(expenses):
        writer.writerow([day, category, description, f"{amount:.2f}"])
    return output.getvalue()


def report_summary(expenses: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Total, transaction count and per-category totals (largest first) for a report."""
    by_category = finance_analyzer.category_totals(expenses)
    return {
        "total": finance_analyzer.monthly_total(expenses),
        "count": len(expenses),
        "by_category": dict(sorted(by_category.items(), key=lambda item: item[1], reverse=True)),
    }


def _latin1(text: str) -> str:
    # Core PDF fonts only cover latin-1
    return text.encode("latin-1", "replace").decode("latin-1")


def _line(pdf: FPDF, text: str, height: float = 7) -> None:
    pdf.cell(0, height, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)


def build_pdf(
    expenses: List[Dict[str, Any]],
    title: str = "Expense Report",
    currency: str = "USD",
    today: Optional[Union[date, datetime]] = None,
) -> bytes:
    summary = report_summary(expenses)

    pdf = FPDF()
    pdf.add_page()
    pdf.set_font("Helvetica", "B", 18)
    _line(pdf, title, height=12)

    pdf.set_font("Helvetica", "", 12)
    _line(pdf, f"Total Expenses: {format_currency(summary['total'], currency)}")
    _line(pdf, f"Number of Transactions: {summary['count']}")
    _line(pdf, f"Report Generated: {resolve_today(today).isoformat()}")
    pdf.ln(5)

    pdf.set_font("Helvetica", "B", 12)
    _line(pdf, "Spending by Category")
    pdf.set_font("Helvetica", "", 11)
    for category, amount in summary["by_category"].items():
        _line(pdf, f"{category}: {format_currency(amount, currency)}", height=6)
    pdf.ln(5)

    pdf.set_font("Helvetica", "B", 11)
    pdf.set_fill_color(*HEADER_FILL)
    pdf.set_text_color(255, 255, 255)
    for header, width in zip(CSV_HEADERS, COLUMN_WIDTHS):
        pdf.cell(width, 8, header, border=0, fill=True)
    pdf.ln()

    pdf.set_font("Helvetica", "", 10)
    pdf.set_text_color(0, 0, 0)
    pdf.set_fill_color(*STRIPE_FILL)
    for idx, (day, category, description, amount) in enumerate(_rows(expenses)):
        striped = idx % 2 == 1
        cells = [day, category, description[:45], format_currency(amount, currency)]
        for text, width in zip(cells, COLUMN_WIDTHS):
            pdf.cell(width, 7, _latin1(text), border=0, fill=striped)
        pdf.ln()

    return bytes(pdf.output())
