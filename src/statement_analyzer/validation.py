"""Record validation and the validation report.

Each field check returns a tagged :class:`FieldCheck`; :func:`validate_record`
composes the three checks (date, description, amount) into one
:class:`RecordCheck`.  The parser uses the same checks to decide whether a
row is kept, and the ``validate`` command uses them to report on a file.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from statement_analyzer.models import Transaction
from statement_analyzer.normalize import is_valid_date
from statement_analyzer.patterns import detect_outliers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldCheck:
    """Result of validating one field."""

    field: str
    ok: bool
    error: str = ""


@dataclass(frozen=True)
class RecordCheck:
    """All field checks for one record."""

    checks: tuple[FieldCheck, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return all(check.ok for check in self.checks)

    @property
    def errors(self) -> list[str]:
        return [check.error for check in self.checks if not check.ok]


def check_date(date: str | None, date_formats: list[str] | None = None) -> FieldCheck:
    """Check that *date* is present and, when formats are given, parseable.

    Without *date_formats* only presence is checked; the parser relies on
    that because an unparseable date is still kept in its raw form.
    """
    if date is None or not date.strip():
        return FieldCheck("date", False, "missing date")
    if date_formats is not None and not is_valid_date(date, date_formats):
        return FieldCheck("date", False, f"invalid date format: {date!r}")
    return FieldCheck("date", True)


def check_description(description: str | None) -> FieldCheck:
    if description is None or not description.strip():
        return FieldCheck("description", False, "missing description")
    return FieldCheck("description", True)


def check_amount(amount: Any) -> FieldCheck:
    if amount is None:
        return FieldCheck("amount", False, "missing or invalid amount")
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return FieldCheck("amount", False, "amount is not a number")
    if math.isnan(amount):
        return FieldCheck("amount", False, "invalid amount (NaN)")
    if math.isinf(amount):
        return FieldCheck("amount", False, "infinite amount")
    return FieldCheck("amount", True)


def validate_record(
    date: str | None,
    description: str | None,
    amount: Any,
    date_formats: list[str] | None = None,
) -> RecordCheck:
    """Validate the three required fields of a record."""
    return RecordCheck(
        (
            check_date(date, date_formats),
            check_description(description),
            check_amount(amount),
        )
    )


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def validate_transactions(
    transactions: list[Transaction],
    date_formats: list[str],
) -> dict[str, Any]:
    """Validate parsed transactions and report the invalid ones.

    Dates are checked against *date_formats* using the raw date, so a
    transaction kept with an unparseable date is reported here.

    Returns:
        A dict with ``valid_count``, ``invalid_count``, ``all_valid`` and
        ``invalid_transactions`` (each with ``row_number``, ``errors`` and
        ``description``).
    """
    logger.info("Validating %d transactions...", len(transactions))
    invalid: list[dict[str, Any]] = []
    for txn in transactions:
        check = validate_record(txn.date_raw, txn.description, txn.amount, date_formats)
        if not check.ok:
            invalid.append(
                {
                    "row_number": txn.row_number,
                    "description": txn.description,
                    "errors": check.errors,
                }
            )

    valid_count = len(transactions) - len(invalid)
    logger.info("Validation completed: %d valid, %d invalid", valid_count, len(invalid))
    return {
        "valid_count": valid_count,
        "invalid_count": len(invalid),
        "all_valid": not invalid,
        "invalid_transactions": invalid,
    }


def amounts_distribution(
    transactions: list[Transaction],
    threshold: float = 3.0,
) -> dict[str, Any]:
    """Summarize outliers in the amount distribution."""
    amounts = [txn.amount for txn in transactions]
    if not amounts:
        return {"outlier_count": 0, "outlier_percentage": 0.0, "outlier_bounds": None}

    analysis = detect_outliers(amounts, threshold)
    outlier_count = len(analysis["outliers"])
    if outlier_count:
        logger.warning("Detected %d outlier values", outlier_count)
    return {
        "outlier_count": outlier_count,
        "outlier_percentage": 100.0 * outlier_count / len(amounts),
        "outlier_bounds": {
            "lower": analysis["lower_bound"],
            "upper": analysis["upper_bound"],
        },
    }


def validation_report(
    transactions: list[Transaction],
    date_formats: list[str],
    threshold: float = 3.0,
) -> dict[str, Any]:
    """Build the complete validation report for a parsed file."""
    validation = validate_transactions(transactions, date_formats)
    total = len(transactions)
    return {
        "validation": validation,
        "distribution": amounts_distribution(transactions, threshold),
        "summary": {
            "total_transactions": total,
            "valid_transactions": validation["valid_count"],
            "invalid_transactions": validation["invalid_count"],
            "success_rate": 100.0 * validation["valid_count"] / total if total else 0.0,
        },
    }
