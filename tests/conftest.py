"""Shared pytest fixtures for Statement Analyzer tests.

Provides reusable fixtures for:
- sample_transactions: Enriched Transaction objects spanning three months,
  including income, a duplicate pair and a recurring subscription.
- sample_rules: The default ordered category rules.
- Convenience fixtures for fixture file paths.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from statement_analyzer.config import default_config
from statement_analyzer.models import AppConfig, CategoryRule, Transaction
from statement_analyzer.normalize import extract_month_key, extract_year

# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

FIXTURES_DIR = Path(__file__).parent / "fixtures"
FIXTURES_CONFIG_DIR = FIXTURES_DIR / "config"


# ---------------------------------------------------------------------------
# Fixture file path helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the tests/fixtures/ directory."""
    return FIXTURES_DIR


@pytest.fixture
def sample_csv() -> Path:
    """Five-row English-header statement: one duplicate pair, one outlier."""
    return FIXTURES_DIR / "nubank_sample.csv"


@pytest.fixture
def ptbr_csv() -> Path:
    """Statement with Portuguese headers and ``R$`` amounts."""
    return FIXTURES_DIR / "nubank_ptbr.csv"


@pytest.fixture
def three_months_csv() -> Path:
    """Statement spanning August to October 2025 with recurring payments."""
    return FIXTURES_DIR / "three_months.csv"


@pytest.fixture
def bad_rows_csv() -> Path:
    """Statement mixing valid rows with blank, malformed and empty rows."""
    return FIXTURES_DIR / "bad_rows.csv"


@pytest.fixture
def custom_config_path() -> Path:
    """TOML config overriding categories, analysis and report settings."""
    return FIXTURES_CONFIG_DIR / "custom.toml"


# ---------------------------------------------------------------------------
# sample_rules / app_config
# ---------------------------------------------------------------------------


@pytest.fixture
def app_config() -> AppConfig:
    """The built-in default configuration."""
    return default_config()


@pytest.fixture
def sample_rules(app_config: AppConfig) -> list[CategoryRule]:
    """The default category rules, in evaluation order."""
    return app_config.categories


# ---------------------------------------------------------------------------
# sample_transactions
# ---------------------------------------------------------------------------


def _make_txn(
    date: str,
    description: str,
    amount: float,
    category: str = "Others",
    row_number: int = 0,
) -> Transaction:
    """Build an enriched Transaction with month_key and year derived from *date*."""
    return Transaction(
        date=date,
        date_raw=date,
        description=description,
        amount=amount,
        category=category,
        month_key=extract_month_key(date),
        year=extract_year(date),
        row_number=row_number,
    )


@pytest.fixture
def sample_transactions() -> list[Transaction]:
    """Ten enriched transactions across August, September and October 2025.

    Includes:
    - Netflix once per month (recurring, stable amount)
    - Two identical iFood charges on the same day in October (duplicate)
    - One salary credit (income)
    - One large fuel purchase
    """
    return [
        _make_txn("2025-08-05", "Netflix", -39.90, "Subscriptions", 1),
        _make_txn("2025-08-10", "Padaria Real", -20.00, "Food", 2),
        _make_txn("2025-08-30", "Salario", 5000.00, "Others", 3),
        _make_txn("2025-09-05", "Netflix", -39.90, "Subscriptions", 4),
        _make_txn("2025-09-12", "Uber *UBER", -18.50, "Transport", 5),
        _make_txn("2025-10-05", "Netflix", -39.90, "Subscriptions", 6),
        _make_txn("2025-10-15", "IFOOD *IFOOD", -30.00, "Food", 7),
        _make_txn("2025-10-15", "IFOOD *IFOOD", -30.00, "Food", 8),
        _make_txn("2025-10-20", "Posto Ipiranga", -250.00, "Transport", 9),
        _make_txn("2025-10-25", "Amazon", -120.00, "Online Shopping", 10),
    ]
