"""Pattern detection: outliers, top expenses, duplicates, recurring
payments, spending trends and merchant rankings.

Duplicate detection groups transactions by a composite key (month, amount
in cents, normalized description prefix) rather than comparing
date-adjacent pairs, so duplicates that are not neighbours after sorting
are still found.

Recurring detection:
- A description is recurring if it appears at least ``min_occurrences``
  times *and* in at least ``min_occurrences`` distinct months, so several
  same-day purchases at one merchant are not reported.
- Each pattern also reports ``stable_amount``: whether the monthly average
  amounts stay within 20% of their median, which separates subscriptions
  and bills from habitual but variable spending.

Trend classification compares the average monthly total of the first half
of the series with that of the second half (the middle month of an odd
series is left out), which is less sensitive to a single noisy month than
comparing only the first and last months.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from statement_analyzer.models import Transaction
from statement_analyzer.normalize import normalize_description
from statement_analyzer.stats import month_sort_key

logger = logging.getLogger(__name__)

TREND_INCREASING = "increasing"
TREND_DECREASING = "decreasing"
TREND_STABLE = "stable"
TREND_INSUFFICIENT = "insufficient_data"


def _txn_summary(txn: Transaction) -> dict[str, Any]:
    return {
        "date": txn.date,
        "description": txn.description,
        "amount": txn.amount,
        "category": txn.category,
        "month": txn.month_key,
    }


# ---------------------------------------------------------------------------
# Outliers
# ---------------------------------------------------------------------------


def detect_outliers(values: list[float], threshold: float = 3.0) -> dict[str, Any]:
    """Flag values outside ``[Q1 - k*IQR, Q3 + k*IQR]``.

    Q1 and Q3 are the sorted values at indexes ``n // 4`` and
    ``3 * n // 4``.

    Args:
        values: Non-empty list of numbers.
        threshold: The IQR multiplier ``k``.

    Returns:
        A dict with ``lower_bound``, ``upper_bound`` and ``outliers`` (in
        input order).

    Raises:
        ValueError: If *values* is empty.
    """
    if not values:
        raise ValueError("cannot detect outliers in an empty list")
    ordered = sorted(values)
    n = len(ordered)
    q1 = ordered[n // 4]
    q3 = ordered[(3 * n) // 4]
    iqr = q3 - q1
    lower = q1 - threshold * iqr
    upper = q3 + threshold * iqr
    return {
        "q1": q1,
        "q3": q3,
        "iqr": iqr,
        "lower_bound": lower,
        "upper_bound": upper,
        "outliers": [v for v in values if v < lower or v > upper],
    }


# ---------------------------------------------------------------------------
# Top expenses
# ---------------------------------------------------------------------------


def find_top_expenses(transactions: list[Transaction], n: int = 10) -> list[dict[str, Any]]:
    """Rank the *n* largest expenses by absolute amount.

    Each entry carries ``percentage_of_total``: its share of the total
    absolute expense amount (income is excluded from the denominator).
    """
    expenses = [txn for txn in transactions if txn.amount < 0]
    total_expense = sum(abs(txn.amount) for txn in expenses)
    ranked = sorted(expenses, key=lambda txn: abs(txn.amount), reverse=True)[:n]

    top: list[dict[str, Any]] = []
    for rank, txn in enumerate(ranked, start=1):
        entry = _txn_summary(txn)
        entry["rank"] = rank
        entry["abs_amount"] = abs(txn.amount)
        entry["percentage_of_total"] = (
            100.0 * abs(txn.amount) / total_expense if total_expense else 0.0
        )
        top.append(entry)
    return top


# ---------------------------------------------------------------------------
# Duplicates
# ---------------------------------------------------------------------------


def duplicate_key(txn: Transaction, prefix_length: int = 20) -> tuple[str, int, str]:
    """Return the grouping key ``(month, amount in cents, description prefix)``."""
    return (
        txn.month_key,
        round(txn.amount * 100),
        normalize_description(txn.description)[:prefix_length],
    )


def find_duplicates(
    transactions: list[Transaction],
    prefix_length: int = 20,
) -> list[dict[str, Any]]:
    """Group possible duplicate transactions.

    Transactions sharing a :func:`duplicate_key` form a group; only groups
    with two or more members are reported, in order of first appearance.

    Returns:
        A list of ``{"month", "amount", "description", "count",
        "transactions"}`` dicts.
    """
    logger.info("Detecting duplicate transactions...")
    groups: dict[tuple[str, int, str], list[Transaction]] = defaultdict(list)
    for txn in transactions:
        groups[duplicate_key(txn, prefix_length)].append(txn)

    duplicates = [
        {
            "month": month,
            "amount": cents / 100,
            "description": txns[0].description,
            "count": len(txns),
            "transactions": [_txn_summary(t) for t in txns],
        }
        for (month, cents, _prefix), txns in groups.items()
        if len(txns) > 1
    ]
    logger.info("Found %d potential duplicate group(s)", len(duplicates))
    return duplicates


# ---------------------------------------------------------------------------
# Recurring
# ---------------------------------------------------------------------------


def _amounts_are_similar(amounts: list[float], variance_threshold: float = 0.20) -> bool:
    """Check if all amounts are within *variance_threshold* of their median."""
    if not amounts:
        return False

    if len(amounts) == 1:
        return True

    sorted_amounts = sorted(abs(a) for a in amounts)
    n = len(sorted_amounts)
    if n % 2 == 0:
        median = (sorted_amounts[n // 2 - 1] + sorted_amounts[n // 2]) / 2
    else:
        median = sorted_amounts[n // 2]

    if median == 0:
        return False

    return all(abs(abs(a) - median) / median <= variance_threshold for a in amounts)


def find_recurring(
    transactions: list[Transaction],
    min_occurrences: int = 2,
) -> list[dict[str, Any]]:
    """Find descriptions that recur across months.

    Descriptions are compared after lowercasing and whitespace collapsing.

    Returns:
        A list of ``{"description", "count", "months", "average_amount",
        "total_amount", "stable_amount"}`` dicts, most frequent first.
    """
    logger.info("Detecting recurring transactions...")
    by_description: dict[str, list[Transaction]] = defaultdict(list)
    for txn in transactions:
        by_description[normalize_description(txn.description)].append(txn)

    recurring: list[dict[str, Any]] = []
    for txns in by_description.values():
        if len(txns) < min_occurrences:
            continue

        # Several transactions in one month count as one month.
        months_seen: dict[str, list[float]] = defaultdict(list)
        for txn in txns:
            months_seen[txn.month_key].append(txn.amount)
        if len(months_seen) < min_occurrences:
            continue

        total = sum(t.amount for t in txns)
        monthly_amounts = [sum(a) / len(a) for a in months_seen.values()]
        recurring.append(
            {
                "description": txns[0].description,
                "count": len(txns),
                "months": sorted(months_seen, key=month_sort_key),
                "average_amount": total / len(txns),
                "total_amount": total,
                "stable_amount": _amounts_are_similar(monthly_amounts),
            }
        )

    recurring.sort(key=lambda pattern: (-pattern["count"], pattern["description"]))
    logger.info("Found %d recurring pattern(s)", len(recurring))
    return recurring


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------


def classify_trend(monthly_totals: dict[str, float], threshold: float = 10.0) -> dict[str, Any]:
    """Classify the direction of a series of monthly totals.

    Months are ordered chronologically.  The average of the first half is
    compared with the average of the second half; a change above
    *threshold* percent is ``increasing``, below ``-threshold`` is
    ``decreasing``, otherwise ``stable``.  Fewer than two months gives
    ``insufficient_data``.  The percentage is relative to the absolute
    first-half average and is 0 when that average is 0.

    Totals are net (expenses negative), so heavier spending moves the
    series downwards.
    """
    months = sorted(monthly_totals, key=month_sort_key)
    totals = [monthly_totals[m] for m in months]
    if len(totals) < 2:
        return {"direction": TREND_INSUFFICIENT, "change_percentage": 0.0}

    half = len(totals) // 2
    first_avg = sum(totals[:half]) / half
    second_avg = sum(totals[-half:]) / half
    change = second_avg - first_avg
    change_pct = 0.0 if first_avg == 0 else 100.0 * change / abs(first_avg)

    if change_pct > threshold:
        direction = TREND_INCREASING
    elif change_pct < -threshold:
        direction = TREND_DECREASING
    else:
        direction = TREND_STABLE

    return {
        "direction": direction,
        "change_percentage": change_pct,
        "first_half_average": first_avg,
        "second_half_average": second_avg,
        "first_month_total": totals[0],
        "last_month_total": totals[-1],
    }


def analyze_trends(
    by_month: dict[str, dict[str, Any]],
    threshold: float = 10.0,
) -> dict[str, Any]:
    """Build ``{"monthly_totals", "trend"}`` from a month aggregate.

    The ``"Unknown"`` bucket is not a month and is left out of the trend.
    """
    monthly_totals = {
        month: (data["stats"] or {}).get("total", 0.0)
        for month, data in by_month.items()
        if month_sort_key(month)[2] == ""
    }
    return {
        "monthly_totals": monthly_totals,
        "trend": classify_trend(monthly_totals, threshold),
    }


# ---------------------------------------------------------------------------
# Merchants
# ---------------------------------------------------------------------------


def analyze_merchants(transactions: list[Transaction], limit: int = 20) -> dict[str, Any]:
    """Rank merchants (descriptions) by net total and by frequency.

    ``by_total`` lists the most negative totals (largest spend) first;
    ``by_frequency`` lists the most frequent first.
    """
    by_merchant: dict[str, list[Transaction]] = defaultdict(list)
    for txn in transactions:
        by_merchant[txn.description].append(txn)

    merchant_stats = []
    for merchant, txns in by_merchant.items():
        total = sum(t.amount for t in txns)
        merchant_stats.append(
            {
                "merchant": merchant,
                "count": len(txns),
                "total": total,
                "average": total / len(txns),
            }
        )

    return {
        "by_total": sorted(merchant_stats, key=lambda m: m["total"])[:limit],
        "by_frequency": sorted(merchant_stats, key=lambda m: -m["count"])[:limit],
    }
