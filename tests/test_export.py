"""Tests for report renderers and writers.

Covers:
- format_currency / format_percentage.
- render_text: section headings and key figures.
- render_json / render_toml: parseable and faithful to to_dict().
- render_csv: fixed column order, one row per transaction.
- render_html: escaped content.
- export_report / export_all: files written, unknown format rejected.
"""

from __future__ import annotations

import csv
import io
import json
import sys
from pathlib import Path

import pytest

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from statement_analyzer.export import (
    CSV_COLUMNS,
    FORMATS,
    export_all,
    export_report,
    format_currency,
    format_percentage,
    render_csv,
    render_html,
    render_json,
    render_text,
    render_toml,
)
from statement_analyzer.models import Transaction
from statement_analyzer.pipeline import run


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def result(sample_transactions, sample_rules):
    """Analysis result over the shared three-month sample."""
    return run(sample_transactions, sample_rules)


class TestFormatting:
    def test_currency(self) -> None:
        assert format_currency(-1234.5) == "R$ -1.234,50"

    def test_percentage(self) -> None:
        assert format_percentage(12.345) == "12.3%"


class TestRenderText:
    def test_sections(self, result) -> None:
        text = render_text(result)
        for heading in (
            "STATEMENT ANALYSIS REPORT",
            "GENERAL STATISTICS",
            "SPENDING BY CATEGORY",
            "MONTHLY BREAKDOWN",
            "TOP EXPENSES",
            "RECURRING PAYMENTS",
            "POSSIBLE DUPLICATES",
        ):
            assert heading in text

    def test_key_figures(self, result) -> None:
        text = render_text(result)
        assert "Transactions:   10" in text
        assert "Trend: decreasing" in text
        assert "IFOOD *IFOOD" in text
        assert "R$ -250,00" in text

    def test_outlier_section_only_when_present(self, sample_rules) -> None:
        txns = [
            Transaction(date="2025-10-01", date_raw="x", description="A", amount=-10.0),
            Transaction(date="2025-10-02", date_raw="x", description="B", amount=-11.0),
        ]
        assert "OUTLIERS" not in render_text(run(txns, sample_rules))


class TestRenderJson:
    def test_matches_to_dict(self, result) -> None:
        assert json.loads(render_json(result)) == json.loads(json.dumps(result.to_dict()))

    def test_keeps_non_ascii(self, sample_rules) -> None:
        txn = Transaction(date="2025-10-01", date_raw="x", description="Açaí", amount=-9.0)
        assert "Açaí" in render_json(run([txn], sample_rules))


class TestRenderToml:
    def test_parseable(self, result) -> None:
        data = tomllib.loads(render_toml(result))
        assert data["general"]["total_transactions"] == 10
        assert list(data["by_month"]) == ["08/2025", "09/2025", "10/2025"]

    def test_none_values_dropped(self, sample_rules) -> None:
        txn = Transaction(date="garbage", date_raw="garbage", description="A", amount=-1.0)
        data = tomllib.loads(render_toml(run([txn], sample_rules)))
        assert "year" not in data["transactions"][0]
        assert list(data["by_month"]) == ["Unknown"]


class TestRenderCsv:
    def test_columns_and_rows(self, result) -> None:
        rows = list(csv.reader(io.StringIO(render_csv(result))))
        assert rows[0] == CSV_COLUMNS
        assert len(rows) == 11
        first = dict(zip(rows[0], rows[1]))
        assert first["description"] == "Netflix"
        assert first["amount"] == "-39.90"
        assert first["category"] == "Subscriptions"
        assert first["month_key"] == "08/2025"


class TestRenderHtml:
    def test_escapes_content(self, sample_rules) -> None:
        txn = Transaction(
            date="2025-10-01", date_raw="x", description="<script>x</script>", amount=-9.0
        )
        page = render_html(run([txn], sample_rules))
        assert page.startswith("<!DOCTYPE html>")
        assert "<script>x</script>" not in page
        assert "&lt;script&gt;" in page


class TestExportReport:
    def test_writes_file(self, result, tmp_path: Path) -> None:
        path = export_report(result, "json", tmp_path / "out" / "report.json")
        assert path.exists()
        assert json.loads(path.read_text(encoding="utf-8"))["general"]["total_transactions"] == 10

    def test_unknown_format(self, result, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="unknown report format"):
            export_report(result, "pdf", tmp_path / "report.pdf")

    def test_export_all(self, result, tmp_path: Path) -> None:
        paths = export_all(result, tmp_path / "report")
        assert [p.name for p in paths] == [f"report.{fmt}" for fmt in FORMATS]
        assert all(p.exists() for p in paths)

    def test_export_all_keeps_dotted_base(self, result, tmp_path: Path) -> None:
        paths = export_all(result, tmp_path / "statement.v2-report")
        assert [p.name for p in paths] == [f"statement.v2-report.{fmt}" for fmt in FORMATS]

    def test_export_all_replaces_format_suffix(self, result, tmp_path: Path) -> None:
        paths = export_all(result, tmp_path / "report.json")
        assert [p.name for p in paths] == [f"report.{fmt}" for fmt in FORMATS]
