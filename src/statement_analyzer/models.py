"""Core data models for Statement Analyzer.

This module defines the dataclasses shared by every stage of the analysis.
It has zero internal imports; every other module in the package depends on it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from types import MappingProxyType
from typing import Any

DEFAULT_CATEGORY = "Others"
UNKNOWN_MONTH = "Unknown"


@dataclass(frozen=True)
class Transaction:
    """A single statement line after normalization.

    Instances are immutable.  The parser fills in the base fields; the
    pipeline's enrichment step returns copies with ``category``,
    ``month_key`` and ``year`` attached.

    Attributes:
        date: ISO-8601 ``YYYY-MM-DD`` date, or the trimmed raw string when
            no configured format matched.
        date_raw: The date exactly as it appeared in the file.
        description: Trimmed free text, never empty.
        amount: Signed amount.  Negative means expense, positive means
            income or credit.
        category: Assigned category label, ``"Others"`` until classified.
        month_key: ``MM/YYYY`` grouping key, or ``"Unknown"``.
        year: Four-digit year string, or None when the date is unparseable.
        txn_type: Value of the file's type column, if any.
        row_number: 1-based data row index in the source file.
    """

    date: str
    date_raw: str
    description: str
    amount: float
    category: str = DEFAULT_CATEGORY
    month_key: str = UNKNOWN_MONTH
    year: str | None = None
    txn_type: str = ""
    row_number: int = 0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CategoryRule:
    """A keyword rule assigning a category label.

    Rules are kept in an ordered list and evaluated first-match-wins, so
    the position of a rule in the list is part of its meaning.

    Attributes:
        name: Category label, unique within a rule list.
        keywords: Lowercase substrings matched against descriptions.
    """

    name: str
    keywords: tuple[str, ...]


@dataclass(frozen=True)
class RowResult:
    """Outcome of parsing one CSV row: a transaction or a failure reason."""

    transaction: Transaction | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.transaction is not None


@dataclass
class ParseResult:
    """Return type of the parser stage.

    Like every stage, the parser processes what it can and reports what it
    could not.  Rows that fail normalization are counted and described in
    ``warnings``; they never abort the batch.

    Attributes:
        transactions: Successfully parsed transactions in file order.
        warnings: One message per dropped row.
        field_mapping: Canonical field name to column index.
        total_rows: Number of data rows read (header excluded).
    """

    transactions: list[Transaction] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    field_mapping: dict[str, int] = field(default_factory=dict)
    total_rows: int = 0

    @property
    def valid_count(self) -> int:
        return len(self.transactions)

    @property
    def failed_count(self) -> int:
        return self.total_rows - self.valid_count

    @property
    def success_rate(self) -> float:
        return 100.0 * self.valid_count / max(self.total_rows, 1)

    def stats(self) -> dict[str, Any]:
        return {
            "total_rows": self.total_rows,
            "valid_count": self.valid_count,
            "failed_count": self.failed_count,
            "success_rate": self.success_rate,
        }


@dataclass(frozen=True)
class FilterCriteria:
    """Optional, conjunctive filter criteria.

    Attributes:
        category: Exact category label.
        min_amount: Inclusive lower bound on ``abs(amount)``.
        max_amount: Inclusive upper bound on ``abs(amount)``.
        start_date: Inclusive ISO date lower bound.
        end_date: Inclusive ISO date upper bound.
        description_pattern: Case-insensitive substring of the description.
        month: ``MM/YYYY`` month key.
    """

    category: str | None = None
    min_amount: float | None = None
    max_amount: float | None = None
    start_date: str | None = None
    end_date: str | None = None
    description_pattern: str | None = None
    month: str | None = None

    def is_empty(self) -> bool:
        return all(value is None for value in asdict(self).values())


@dataclass(frozen=True)
class AnalysisConfig:
    """Tunable parameters of the analysis stage.

    Attributes:
        outlier_threshold: IQR multiplier for outlier bounds.
        min_occurrences: Minimum count and distinct months for a
            description to be reported as recurring.
        top_expenses: Number of largest expenses to rank.
        detect_duplicates: Run duplicate detection at all.
        duplicate_prefix_length: Number of normalized description
            characters compared when grouping possible duplicates.
        trend_threshold: Percentage change beyond which a trend is
            ``increasing`` or ``decreasing``.
        merchant_limit: Number of merchants kept in each ranking.
    """

    outlier_threshold: float = 3.0
    min_occurrences: int = 2
    top_expenses: int = 10
    detect_duplicates: bool = True
    duplicate_prefix_length: int = 20
    trend_threshold: float = 10.0
    merchant_limit: int = 20


@dataclass
class AppConfig:
    """Top-level application configuration loaded from ``config.toml``.

    Attributes:
        categories: Ordered category rules.
        date_formats: Ordered date patterns tried by the parser.
        encoding: Input file encoding.
        analysis: Analysis parameters.
        default_format: Report format used when none is requested.
        log_level: Logging level name used when no CLI flag overrides it.
        log_file: Optional log file path; empty string disables it.
    """

    categories: list[CategoryRule] = field(default_factory=list)
    date_formats: list[str] = field(
        default_factory=lambda: ["dd/MM/yyyy", "yyyy-MM-dd", "dd-MM-yyyy"]
    )
    encoding: str = "utf-8"
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    default_format: str = "txt"
    log_level: str = "warning"
    log_file: str = ""


# ---------------------------------------------------------------------------
# Analysis result
# ---------------------------------------------------------------------------


def _freeze(value: Any) -> Any:
    """Recursively convert dicts to read-only mappings and lists to tuples."""
    if isinstance(value, Transaction):
        return value
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    """Inverse of :func:`_freeze`, producing plain dicts and lists."""
    if isinstance(value, Transaction):
        return value.as_dict()
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class AnalysisResult:
    """Immutable output of one pipeline run.

    Nested dicts and lists passed to the constructor are frozen into
    read-only mappings and tuples, so the result cannot be mutated after
    construction.  Renderers consume :meth:`to_dict`.
    """

    general: Mapping[str, Any]
    by_month: Mapping[str, Any]
    by_category: Mapping[str, Any]
    top_expenses: tuple
    duplicates: tuple
    recurring: tuple
    trends: Mapping[str, Any]
    merchants: Mapping[str, Any]
    transactions: tuple[Transaction, ...]

    def __post_init__(self) -> None:
        for name in (
            "general",
            "by_month",
            "by_category",
            "top_expenses",
            "duplicates",
            "recurring",
            "trends",
            "merchants",
            "transactions",
        ):
            object.__setattr__(self, name, _freeze(getattr(self, name)))

    def to_dict(self) -> dict[str, Any]:
        """Return the result as plain nested dicts, lists and primitives."""
        return {
            "general": _thaw(self.general),
            "by_month": _thaw(self.by_month),
            "by_category": _thaw(self.by_category),
            "top_expenses": _thaw(self.top_expenses),
            "duplicates": _thaw(self.duplicates),
            "recurring": _thaw(self.recurring),
            "trends": _thaw(self.trends),
            "merchants": _thaw(self.merchants),
            "transactions": _thaw(self.transactions),
        }
