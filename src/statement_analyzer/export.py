"""Report renderers and writers.

Every renderer consumes :meth:`AnalysisResult.to_dict` and returns a
string:

- :func:`render_text` -- human-readable summary (the default report).
- :func:`render_json` -- JSON for integration.
- :func:`render_toml` -- the project's native TOML dump.
- :func:`render_csv` -- the enriched transaction list.
- :func:`render_html` -- a standalone HTML page.

:func:`export_report` writes one format to a file and :func:`export_all`
writes every format next to a common base path.
"""

from __future__ import annotations

import csv
import html
import io
import json
import logging
from pathlib import Path
from typing import Any

import tomli_w

from statement_analyzer.models import AnalysisResult
from statement_analyzer.normalize import format_amount

logger = logging.getLogger(__name__)

# Fixed transaction column order for CSV output.
CSV_COLUMNS = [
    "date",
    "description",
    "amount",
    "category",
    "month_key",
    "year",
    "txn_type",
    "date_raw",
]

_SEPARATOR = "=" * 64


def format_currency(value: float) -> str:
    """Format *value* as Brazilian reais, e.g. ``R$ -1.234,56``."""
    return f"R$ {format_amount(value)}"


def format_percentage(value: float) -> str:
    return f"{value:.1f}%"


def _section(lines: list[str], title: str) -> None:
    lines.append("")
    lines.append(_SEPARATOR)
    lines.append(f"  {title}")
    lines.append(_SEPARATOR)


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------


def render_text(result: AnalysisResult) -> str:
    """Render a plain-text report.

    The report includes general statistics, spending by category, the
    monthly breakdown with the trend, top expenses, recurring payments,
    possible duplicates and outliers.
    """
    data = result.to_dict()
    general = data["general"]
    stats = general["stats"]
    lines: list[str] = []

    _section(lines, "STATEMENT ANALYSIS REPORT")

    # General
    _section(lines, "GENERAL STATISTICS")
    lines.append(f"  Transactions:   {general['total_transactions']}")
    lines.append(f"  Expenses:       {general['total_expenses']}")
    lines.append(f"  Income:         {general['total_income']}")
    lines.append(f"  Net total:      {format_currency(stats['total'])}")
    lines.append(f"  Mean:           {format_currency(stats['mean'])}")
    lines.append(f"  Median:         {format_currency(stats['median'])}")
    lines.append(f"  Min:            {format_currency(stats['min'])}")
    lines.append(f"  Max:            {format_currency(stats['max'])}")
    lines.append(f"  Std deviation:  {format_currency(stats['std_dev'])}")

    # Categories
    _section(lines, "SPENDING BY CATEGORY")
    for category, info in data["by_category"].items():
        cat_stats = info["stats"]
        lines.append(
            f"  {category + ':':<20} {format_currency(cat_stats['total']):>16}  "
            f"{format_percentage(cat_stats['percentage']):>6}  "
            f"({info['transactions_count']} txns)"
        )

    # Months
    _section(lines, "MONTHLY BREAKDOWN")
    for month, info in data["by_month"].items():
        total = (info["stats"] or {}).get("total", 0.0)
        lines.append(
            f"  {month:<10} {format_currency(total):>16}  ({info['transactions_count']} txns)"
        )
    trend = data["trends"]["trend"]
    lines.append("")
    lines.append(
        f"  Trend: {trend['direction']} ({trend['change_percentage']:+.1f}%)"
    )

    # Top expenses
    if data["top_expenses"]:
        _section(lines, "TOP EXPENSES")
        for entry in data["top_expenses"]:
            lines.append(
                f"  {entry['rank']:>2}. {entry['date']:<10} {entry['description'][:30]:<30} "
                f"{format_currency(entry['amount']):>16}  "
                f"{format_percentage(entry['percentage_of_total'])}"
            )

    # Recurring
    if data["recurring"]:
        _section(lines, "RECURRING PAYMENTS")
        for pattern in data["recurring"]:
            lines.append(
                f"  {pattern['description'][:30]:<30} {pattern['count']}x in "
                f"{len(pattern['months'])} months, avg "
                f"{format_currency(pattern['average_amount'])}"
            )

    # Duplicates
    if data["duplicates"]:
        _section(lines, "POSSIBLE DUPLICATES")
        for group in data["duplicates"]:
            lines.append(
                f"  {group['description'][:30]:<30} {format_currency(group['amount'])} "
                f"x{group['count']} ({group['month']})"
            )

    # Outliers
    outliers = general["outliers"]
    if outliers["transactions"]:
        _section(lines, "OUTLIERS")
        lines.append(
            f"  Bounds: {format_currency(outliers['lower_bound'])} .. "
            f"{format_currency(outliers['upper_bound'])}"
        )
        for txn in outliers["transactions"]:
            lines.append(
                f"  {txn['date']:<10} {txn['description'][:30]:<30} "
                f"{format_currency(txn['amount']):>16}"
            )

    lines.append("")
    return "\n".join(lines)


def render_json(result: AnalysisResult) -> str:
    return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)


def _drop_none(value: Any) -> Any:
    """Remove None values, which TOML cannot represent."""
    if isinstance(value, dict):
        return {str(k): _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_none(v) for v in value if v is not None]
    return value


def render_toml(result: AnalysisResult) -> str:
    return tomli_w.dumps(_drop_none(result.to_dict()))


def render_csv(result: AnalysisResult) -> str:
    """Render the enriched transactions as CSV, one row per transaction."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for txn in result.transactions:
        row = txn.as_dict()
        row["amount"] = f"{txn.amount:.2f}"
        row["year"] = txn.year or ""
        writer.writerow(row)
    return buffer.getvalue()


def _html_table(headers: list[str], rows: list[list[Any]]) -> str:
    head = "".join(f"<th>{html.escape(h)}</th>" for h in headers)
    body = "".join(
        "<tr>" + "".join(f"<td>{html.escape(str(cell))}</td>" for cell in row) + "</tr>"
        for row in rows
    )
    return f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"


def render_html(result: AnalysisResult) -> str:
    """Render a standalone HTML page with the main report tables."""
    data = result.to_dict()
    general = data["general"]
    stats = general["stats"]
    trend = data["trends"]["trend"]

    parts = [
        "<!DOCTYPE html>",
        '<html lang="en"><head><meta charset="utf-8">',
        "<title>Statement Analysis Report</title>",
        "<style>body{font-family:sans-serif;margin:2em}"
        "table{border-collapse:collapse;margin-bottom:2em}"
        "td,th{border:1px solid #ccc;padding:4px 8px;text-align:left}</style>",
        "</head><body>",
        "<h1>Statement Analysis Report</h1>",
        "<h2>General statistics</h2>",
        _html_table(
            ["Transactions", "Expenses", "Income", "Net total", "Mean", "Median"],
            [[
                general["total_transactions"],
                general["total_expenses"],
                general["total_income"],
                format_currency(stats["total"]),
                format_currency(stats["mean"]),
                format_currency(stats["median"]),
            ]],
        ),
        "<h2>Spending by category</h2>",
        _html_table(
            ["Category", "Transactions", "Total", "Share"],
            [
                [
                    category,
                    info["transactions_count"],
                    format_currency(info["stats"]["total"]),
                    format_percentage(info["stats"]["percentage"]),
                ]
                for category, info in data["by_category"].items()
            ],
        ),
        "<h2>Monthly breakdown</h2>",
        _html_table(
            ["Month", "Transactions", "Total"],
            [
                [month, info["transactions_count"], format_currency(info["stats"]["total"])]
                for month, info in data["by_month"].items()
            ],
        ),
        f"<p>Trend: {html.escape(trend['direction'])} "
        f"({trend['change_percentage']:+.1f}%)</p>",
        "<h2>Top expenses</h2>",
        _html_table(
            ["#", "Date", "Description", "Amount", "Share"],
            [
                [
                    e["rank"],
                    e["date"],
                    e["description"],
                    format_currency(e["amount"]),
                    format_percentage(e["percentage_of_total"]),
                ]
                for e in data["top_expenses"]
            ],
        ),
        "<h2>Recurring payments</h2>",
        _html_table(
            ["Description", "Count", "Months", "Average"],
            [
                [p["description"], p["count"], ", ".join(p["months"]),
                 format_currency(p["average_amount"])]
                for p in data["recurring"]
            ],
        ),
        "<h2>Possible duplicates</h2>",
        _html_table(
            ["Description", "Month", "Amount", "Count"],
            [
                [g["description"], g["month"], format_currency(g["amount"]), g["count"]]
                for g in data["duplicates"]
            ],
        ),
        "</body></html>",
    ]
    return "\n".join(parts) + "\n"


RENDERERS = {
    "txt": render_text,
    "json": render_json,
    "toml": render_toml,
    "csv": render_csv,
    "html": render_html,
}

FORMATS = tuple(RENDERERS)


# ---------------------------------------------------------------------------
# Writers
# ---------------------------------------------------------------------------


def export_report(result: AnalysisResult, fmt: str, output_path: str | Path) -> Path:
    """Render *result* in *fmt* and write it to *output_path*.

    Args:
        result: The analysis result.
        fmt: One of :data:`FORMATS`.
        output_path: Destination file; parent directories are created.

    Returns:
        The :class:`~pathlib.Path` written.

    Raises:
        ValueError: If *fmt* is not a known format.
    """
    try:
        renderer = RENDERERS[fmt]
    except KeyError:
        raise ValueError(f"unknown report format {fmt!r}; expected one of {FORMATS}") from None

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(renderer(result), encoding="utf-8")
    logger.info("Wrote %s report to %s", fmt, output_path)
    return output_path


def export_all(result: AnalysisResult, base_path: str | Path) -> list[Path]:
    """Write every format to ``base_path`` with the format as suffix.

    ``report`` becomes ``report.txt``, ``report.json`` and so on.  A
    report-format suffix on *base_path* is replaced; any other dot in the
    name is kept.
    """
    base = Path(base_path)
    if base.suffix.lstrip(".").lower() in FORMATS:
        base = base.with_suffix("")
    return [export_report(result, fmt, base.with_name(f"{base.name}.{fmt}")) for fmt in FORMATS]
