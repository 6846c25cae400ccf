"""Pipeline orchestration for Statement Analyzer.

Composes the analysis stages: enrich (categorize and attach temporal
fields), general statistics, pattern detection, and aggregation.  Every
stage receives the enriched list read-only and returns fresh structures;
the pipeline assembles them into one immutable
:class:`~statement_analyzer.models.AnalysisResult`.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import replace
from pathlib import Path

from statement_analyzer.categorizer import categorize
from statement_analyzer.errors import EmptyInputError, InvalidNumericError
from statement_analyzer.models import (
    AnalysisConfig,
    AnalysisResult,
    AppConfig,
    CategoryRule,
    FilterCriteria,
    ParseResult,
    Transaction,
)
from statement_analyzer.normalize import extract_month_key, extract_year
from statement_analyzer.parser import parse_files
from statement_analyzer.patterns import (
    analyze_merchants,
    analyze_trends,
    detect_outliers,
    find_duplicates,
    find_recurring,
    find_top_expenses,
)
from statement_analyzer.query import filter_transactions
from statement_analyzer.stats import aggregate_by_category, aggregate_by_month, basic_stats

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def enrich(transactions: list[Transaction], rules: list[CategoryRule]) -> list[Transaction]:
    """Return copies of *transactions* with category, month and year set."""
    return [
        replace(txn, month_key=extract_month_key(txn.date), year=extract_year(txn.date))
        for txn in categorize(transactions, rules)
    ]


def run(
    transactions: list[Transaction],
    rules: list[CategoryRule],
    config: AnalysisConfig | None = None,
) -> AnalysisResult:
    """Run the full analysis over *transactions*.

    Stages executed in order:

    1. **Enrich** -- classify each transaction and attach ``month_key``
       and ``year``.
    2. **General statistics** -- over every amount.
    3. **Patterns** -- outliers, top expenses, duplicates, recurring
       payments, merchant rankings.
    4. **Aggregation** -- per month and per category, then the trend over
       the monthly totals.

    The input list is never mutated.

    Args:
        transactions: Parsed transactions.
        rules: Ordered category rules.
        config: Analysis parameters; defaults when None.

    Returns:
        The immutable analysis result.

    Raises:
        EmptyInputError: If *transactions* is empty.
        InvalidNumericError: If any amount is NaN or infinite.
    """
    if not transactions:
        raise EmptyInputError("no transactions to analyze")
    if config is None:
        config = AnalysisConfig()

    started = time.perf_counter()
    logger.info("Starting analysis of %d transactions...", len(transactions))

    non_finite = [txn.amount for txn in transactions if not math.isfinite(txn.amount)]
    if non_finite:
        raise InvalidNumericError(non_finite)

    # -- Stage 1: Enrich ------------------------------------------------------
    enriched = enrich(transactions, rules)

    # -- Stage 2: General statistics ------------------------------------------
    amounts = [txn.amount for txn in enriched]
    expenses = [txn for txn in enriched if txn.amount < 0]
    outliers = detect_outliers(amounts, config.outlier_threshold)
    general = {
        "stats": basic_stats(amounts),
        "total_transactions": len(enriched),
        "total_expenses": len(expenses),
        "total_income": len(enriched) - len(expenses),
        "expense_total": sum(txn.amount for txn in expenses),
        "income_total": sum(txn.amount for txn in enriched if txn.amount >= 0),
        "outliers": {
            "lower_bound": outliers["lower_bound"],
            "upper_bound": outliers["upper_bound"],
            "values": outliers["outliers"],
            "count": len(outliers["outliers"]),
            "transactions": [
                {"date": t.date, "description": t.description, "amount": t.amount}
                for t in enriched
                if t.amount < outliers["lower_bound"] or t.amount > outliers["upper_bound"]
            ],
        },
    }
    if outliers["outliers"]:
        logger.warning("Detected %d outlier amount(s)", len(outliers["outliers"]))

    # -- Stage 3: Patterns ----------------------------------------------------
    top_expenses = find_top_expenses(expenses, config.top_expenses)
    if config.detect_duplicates:
        duplicates = find_duplicates(enriched, config.duplicate_prefix_length)
    else:
        logger.info("Duplicate detection disabled")
        duplicates = []
    recurring = find_recurring(enriched, config.min_occurrences)
    merchants = analyze_merchants(enriched, config.merchant_limit)

    # -- Stage 4: Aggregation -------------------------------------------------
    by_month = aggregate_by_month(enriched)
    by_category = aggregate_by_category(enriched)
    trends = analyze_trends(by_month, config.trend_threshold)

    logger.info("Analysis complete in %.3fs", time.perf_counter() - started)

    return AnalysisResult(
        general=general,
        by_month=by_month,
        by_category=by_category,
        top_expenses=top_expenses,
        duplicates=duplicates,
        recurring=recurring,
        trends=trends,
        merchants=merchants,
        transactions=enriched,
    )


def load_transactions(
    file_paths: Path | list[Path],
    app_config: AppConfig,
) -> ParseResult:
    """Parse statement files, failing when no valid transaction is found.

    Several files are concatenated in the given order.

    Raises:
        FileNotFoundError: If a file does not exist.
        MissingColumnError: If a required column cannot be mapped.
        EmptyInputError: If no row parses successfully.
    """
    paths = [Path(file_paths)] if isinstance(file_paths, (str, Path)) else list(file_paths)
    result = parse_files(paths, app_config.date_formats, app_config.encoding)
    if not result.transactions:
        raise EmptyInputError(
            f"no valid transactions found in {', '.join(str(p) for p in paths)}",
            total_rows=result.total_rows,
            valid_count=0,
        )
    if result.failed_count:
        logger.warning("%d row(s) failed to parse", result.failed_count)
    return result


def analyze_file(
    file_paths: Path | list[Path],
    app_config: AppConfig,
    criteria: FilterCriteria | None = None,
) -> AnalysisResult:
    """Parse, optionally filter, and analyze one or more statement files.

    Filtering happens after enrichment so category and month criteria see
    the assigned values.

    Raises:
        EmptyInputError: If the files have no valid rows or no row survives
            the filters.
    """
    parsed = load_transactions(file_paths, app_config)
    transactions = parsed.transactions

    if criteria is not None and not criteria.is_empty():
        logger.info("Applying filters: %s", criteria)
        transactions = filter_transactions(enrich(transactions, app_config.categories), criteria)
        if not transactions:
            raise EmptyInputError(
                "no transactions match the given filters",
                total_rows=parsed.total_rows,
                valid_count=parsed.valid_count,
            )
        logger.info("%d transactions after filtering", len(transactions))

    return run(transactions, app_config.categories, app_config.analysis)
