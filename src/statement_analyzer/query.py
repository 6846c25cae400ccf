"""Predicate-based filtering of transactions.

All criteria in :class:`~statement_analyzer.models.FilterCriteria` are
optional and combined with AND.  Amount bounds compare against the absolute
amount, so ``min_amount=50`` keeps both a -60 expense and a +60 credit.
Date bounds are inclusive and compared as strings, which is correct for
ISO-8601 dates.
"""

from __future__ import annotations

from statement_analyzer.models import FilterCriteria, Transaction
from statement_analyzer.normalize import extract_month_key


def matches(txn: Transaction, criteria: FilterCriteria) -> bool:
    """Return True when *txn* satisfies every set criterion."""
    if criteria.category is not None and txn.category != criteria.category:
        return False
    if criteria.min_amount is not None and abs(txn.amount) < criteria.min_amount:
        return False
    if criteria.max_amount is not None and abs(txn.amount) > criteria.max_amount:
        return False
    if criteria.start_date is not None and txn.date < criteria.start_date:
        return False
    if criteria.end_date is not None and txn.date > criteria.end_date:
        return False
    if criteria.description_pattern is not None:
        if criteria.description_pattern.lower() not in txn.description.lower():
            return False
    if criteria.month is not None and extract_month_key(txn.date) != criteria.month:
        return False
    return True


def filter_transactions(
    transactions: list[Transaction],
    criteria: FilterCriteria | None,
) -> list[Transaction]:
    """Return the transactions matching *criteria*, in input order."""
    if criteria is None or criteria.is_empty():
        return list(transactions)
    return [txn for txn in transactions if matches(txn, criteria)]
