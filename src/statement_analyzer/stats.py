"""Descriptive statistics and per-month / per-category aggregation."""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from typing import Any

from statement_analyzer.errors import InvalidNumericError
from statement_analyzer.models import UNKNOWN_MONTH, Transaction


def basic_stats(values: list[float]) -> dict[str, Any] | None:
    """Compute count, total, mean, median, min, max, variance and std_dev.

    Variance is the population variance (divisor ``n``).  The median of an
    even-sized input is the average of the two middle values.  Every figure
    is computed from the same unrounded values.

    Args:
        values: Numeric values.

    Returns:
        The statistics dict, or None when *values* is empty.

    Raises:
        InvalidNumericError: If any value is NaN or infinite.
    """
    values = list(values)
    if not values:
        return None

    non_finite = [v for v in values if not math.isfinite(v)]
    if non_finite:
        raise InvalidNumericError(non_finite)

    n = len(values)
    total = sum(values)
    mean = total / n
    ordered = sorted(values)
    mid = n // 2
    if n % 2:
        median = ordered[mid]
    else:
        median = (ordered[mid - 1] + ordered[mid]) / 2
    variance = sum((v - mean) ** 2 for v in values) / n

    return {
        "count": n,
        "total": total,
        "mean": mean,
        "median": median,
        "min": ordered[0],
        "max": ordered[-1],
        "variance": variance,
        "std_dev": math.sqrt(variance),
    }


def month_sort_key(month_key: str) -> tuple[int, int, str]:
    """Sort key ordering ``MM/YYYY`` keys chronologically, unknowns last."""
    month, _, year = month_key.partition("/")
    if month.isdigit() and year.isdigit():
        return (int(year), int(month), "")
    return (10**6, 0, month_key)


def aggregate_by_month(transactions: list[Transaction]) -> dict[str, dict[str, Any]]:
    """Group transactions by ``month_key``.

    Returns:
        A chronologically ordered dict mapping each month key to
        ``transactions_count``, ``stats`` and ``categories`` (category
        label to transaction count).  ``"Unknown"`` sorts last.
    """
    by_month: dict[str, list[Transaction]] = defaultdict(list)
    for txn in transactions:
        by_month[txn.month_key or UNKNOWN_MONTH].append(txn)

    return {
        month: {
            "transactions_count": len(txns),
            "stats": basic_stats([t.amount for t in txns]),
            "categories": dict(Counter(t.category for t in txns)),
        }
        for month, txns in sorted(by_month.items(), key=lambda item: month_sort_key(item[0]))
    }


def aggregate_by_category(transactions: list[Transaction]) -> dict[str, dict[str, Any]]:
    """Group transactions by ``category``.

    Each bucket's ``stats`` carries a ``percentage``: the bucket's share of
    the grand total absolute amount across all transactions, so the
    percentages of all buckets sum to 100.

    Returns:
        A dict mapping each category to ``transactions_count``, ``stats``
        and ``merchants`` (description to transaction count), ordered by
        absolute amount descending.
    """
    by_category: dict[str, list[Transaction]] = defaultdict(list)
    for txn in transactions:
        by_category[txn.category].append(txn)

    grand_total = sum(abs(txn.amount) for txn in transactions)

    result: dict[str, dict[str, Any]] = {}
    for category, txns in by_category.items():
        stats = basic_stats([t.amount for t in txns])
        category_abs = sum(abs(t.amount) for t in txns)
        stats["absolute_total"] = category_abs
        stats["percentage"] = 100.0 * category_abs / grand_total if grand_total else 0.0
        result[category] = {
            "transactions_count": len(txns),
            "stats": stats,
            "merchants": dict(Counter(t.description for t in txns)),
        }

    return dict(
        sorted(result.items(), key=lambda item: item[1]["stats"]["absolute_total"], reverse=True)
    )
