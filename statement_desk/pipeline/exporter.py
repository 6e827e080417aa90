"""
Serialization of transaction lists into CSV or Excel artifacts.
Amounts are signed here and only here: debits are written negative.
"""

import csv
import io
import re
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

import structlog
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from statement_desk.config import settings
from statement_desk.models.enums import ExportFormat, ExportScope, TransactionType
from statement_desk.observability.metrics import exports_total
from statement_desk.pipeline.errors import InvalidInputError
from statement_desk.schemas.results import ExportArtifact
from statement_desk.schemas.transactions import Transaction

logger = structlog.get_logger(__name__)

CSV_MIME_TYPE = "text/csv"
XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SINGLE_COLUMNS = [
    "Date", "Description", "Normalized Merchant", "Category", "Subcategory",
    "Amount", "Balance", "Type", "Confidence %", "Anomaly Detected",
]
BULK_COLUMNS = SINGLE_COLUMNS[:-1] + ["Source File", "Anomaly Detected"]

COLUMN_WIDTHS = {
    "Date": 12,
    "Description": 40,
    "Normalized Merchant": 30,
    "Category": 15,
    "Subcategory": 15,
    "Amount": 12,
    "Balance": 12,
    "Type": 10,
    "Confidence %": 12,
    "Source File": 30,
    "Anomaly Detected": 15,
}

CATEGORY_COLUMNS = ["Category", "Transaction Count", "Total Income", "Total Expenses", "Net"]
CATEGORY_WIDTHS = [20, 18, 15, 15, 15]
UNCATEGORIZED = "Uncategorized"

MONEY_FORMAT = '#,##0.00;[Red]-#,##0.00;"-"'


def export_transactions(
    transactions: list[Transaction],
    export_format: ExportFormat,
    scope: ExportScope = ExportScope.SINGLE,
    file_stem: Optional[str] = None,
    today: Optional[date] = None,
) -> ExportArtifact:
    """
    Render transactions as a fresh CSV or Excel artifact.
    Single exports accept an empty list (header-only output); bulk exports do not.
    """
    if scope == ExportScope.BULK and not transactions:
        raise InvalidInputError("No transaction data to export")

    columns = BULK_COLUMNS if scope == ExportScope.BULK else SINGLE_COLUMNS
    rows = [_row_values(tx, scope) for tx in transactions]

    if export_format == ExportFormat.CSV:
        content = _render_csv(columns, rows)
        mime_type = CSV_MIME_TYPE
        extension = "csv"
    else:
        content = _render_xlsx(columns, rows, transactions, scope)
        mime_type = XLSX_MIME_TYPE
        extension = "xlsx"

    if scope == ExportScope.BULK:
        file_name = f"all_transactions_{(today or date.today()).isoformat()}.{extension}"
    else:
        file_name = f"{_safe_stem(file_stem)}_transactions.{extension}"

    exports_total.labels(format=export_format.value, scope=scope.value).inc()
    logger.info(
        "transactions_exported",
        format=export_format.value,
        scope=scope.value,
        rows=len(rows),
        file_name=file_name,
    )
    return ExportArtifact(content=content, mime_type=mime_type, file_name=file_name)


def _safe_stem(file_stem: Optional[str]) -> str:
    stem = (file_stem or "statement").strip()
    stem = re.sub(r"\.pdf$", "", stem, flags=re.IGNORECASE)
    stem = re.sub(r"[^\w\-]+", "_", stem).strip("_")
    return stem or "statement"


def _row_values(tx: Transaction, scope: ExportScope) -> list:
    values = [
        tx.date,
        tx.description,
        tx.normalized_merchant or tx.description,
        tx.category or "",
        tx.subcategory or "",
        tx.signed_amount,
        tx.balance,
        tx.transaction_type.value,
        tx.confidence,
    ]
    if scope == ExportScope.BULK:
        values.append(tx.source_file or "")
    values.append("Yes" if tx.anomaly is not None else "No")
    return values


def _render_csv(columns: list[str], rows: list[list]) -> bytes:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(columns)
    for values in rows:
        writer.writerow([
            v.isoformat() if isinstance(v, date) else "" if v is None else v
            for v in values
        ])
    return output.getvalue().encode("utf-8")


def _render_xlsx(
    columns: list[str],
    rows: list[list],
    transactions: list[Transaction],
    scope: ExportScope,
) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Transactions"

    # Styles
    header_font = Font(name="Arial", bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill("solid", fgColor="1F4E79")
    header_align = Alignment(horizontal="center", vertical="center", wrap_text=True)
    thin_border = Border(bottom=Side(style="thin", color="D9E2F3"))
    text_font = Font(name="Arial", size=10)
    debit_font = Font(name="Arial", size=10, color="CC0000")
    credit_font = Font(name="Arial", size=10, color="006600")

    _write_header(ws, columns, header_font, header_fill, header_align)
    ws.freeze_panes = "A2"

    amount_col = columns.index("Amount") + 1
    balance_col = columns.index("Balance") + 1
    type_col = columns.index("Type") + 1

    for row_idx, (values, tx) in enumerate(zip(rows, transactions), 2):
        direction_font = debit_font if tx.transaction_type == TransactionType.DEBIT else credit_font
        for col_idx, value in enumerate(values, 1):
            if isinstance(value, Decimal):
                value = float(value)
            c = ws.cell(row=row_idx, column=col_idx, value=value)
            c.font = direction_font if col_idx in (amount_col, type_col) else text_font
            c.border = thin_border
            if col_idx == 1:
                c.number_format = "YYYY-MM-DD"
            elif col_idx in (amount_col, balance_col):
                c.number_format = MONEY_FORMAT

    for col_idx, header in enumerate(columns, 1):
        ws.column_dimensions[ws.cell(row=1, column=col_idx).column_letter].width = COLUMN_WIDTHS.get(header, 15)
    ws.auto_filter.ref = ws.dimensions

    # ── Summary ──────────────────────────────────────────────
    summary_ws = wb.create_sheet("Summary")
    _write_header(summary_ws, ["Metric", "Value"], header_font, header_fill, header_align)
    for row_idx, (metric, value) in enumerate(summary_metrics(transactions, scope), 2):
        summary_ws.cell(row=row_idx, column=1, value=metric).font = text_font
        c = summary_ws.cell(row=row_idx, column=2, value=float(value) if isinstance(value, Decimal) else value)
        c.font = text_font
        if isinstance(value, Decimal):
            c.number_format = MONEY_FORMAT
    summary_ws.column_dimensions["A"].width = 25
    summary_ws.column_dimensions["B"].width = 20

    # ── By Category (bulk only) ──────────────────────────────
    if scope == ExportScope.BULK:
        category_ws = wb.create_sheet("By Category")
        _write_header(category_ws, CATEGORY_COLUMNS, header_font, header_fill, header_align)
        for row_idx, breakdown in enumerate(category_breakdown(transactions), 2):
            for col_idx, value in enumerate(breakdown, 1):
                c = category_ws.cell(row=row_idx, column=col_idx, value=float(value) if isinstance(value, Decimal) else value)
                c.font = text_font
                if isinstance(value, Decimal):
                    c.number_format = MONEY_FORMAT
        for col_idx, width in enumerate(CATEGORY_WIDTHS, 1):
            category_ws.column_dimensions[category_ws.cell(row=1, column=col_idx).column_letter].width = width
        category_ws.freeze_panes = "A2"

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def _write_header(ws, headers: list[str], font: Font, fill: PatternFill, align: Alignment) -> None:
    for col_idx, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = font
        cell.fill = fill
        cell.alignment = align


def summary_metrics(transactions: list[Transaction], scope: ExportScope) -> list[tuple[str, object]]:
    """Summary sheet rows. Expenses are reported as a non-positive number."""
    income = sum((t.amount for t in transactions if t.is_credit), Decimal("0"))
    expenses = -sum((t.amount for t in transactions if not t.is_credit), Decimal("0"))
    if scope == ExportScope.BULK:
        file_count = len({t.source_file for t in transactions if t.source_file})
    else:
        file_count = 1 if transactions else 0
    ai_processed = sum(1 for t in transactions if t.original_category is not None)
    high_confidence = sum(1 for t in transactions if t.confidence >= settings.HIGH_CONFIDENCE_THRESHOLD)
    average_confidence = (
        round(sum(t.confidence for t in transactions) / len(transactions), 1) if transactions else 0.0
    )
    anomalies = sum(1 for t in transactions if t.anomaly is not None)

    return [
        ("Total Transactions", len(transactions)),
        ("Total Files", file_count),
        ("Total Income", income),
        ("Total Expenses", expenses),
        ("Net Amount", income + expenses),
        ("AI Processed", ai_processed),
        ("High Confidence (90%+)", high_confidence),
        ("Average Confidence %", average_confidence),
        ("Anomalies Detected", anomalies),
    ]


def category_breakdown(transactions: list[Transaction]) -> list[tuple[str, int, Decimal, Decimal, Decimal]]:
    """(category, count, income, expenses <= 0, net) sorted by descending |net|."""
    totals: dict[str, dict] = defaultdict(lambda: {"count": 0, "income": Decimal("0"), "expenses": Decimal("0")})
    for t in transactions:
        bucket = totals[t.category or UNCATEGORIZED]
        bucket["count"] += 1
        if t.is_credit:
            bucket["income"] += t.amount
        else:
            bucket["expenses"] += t.amount

    rows = [
        (category, data["count"], data["income"], -data["expenses"], data["income"] - data["expenses"])
        for category, data in totals.items()
    ]
    rows.sort(key=lambda r: abs(r[4]), reverse=True)
    return rows
