"""Exception types for structural failures.

Per-row problems (an unparseable amount, a blank description) are never
raised; they travel as :class:`~statement_analyzer.models.RowResult` values
and warnings.  The exceptions here abort a whole run and carry enough
context to diagnose the input without re-running.
"""

from __future__ import annotations


class AnalyzerError(Exception):
    """Base class for fatal analysis errors."""


class MissingColumnError(AnalyzerError):
    """The header row lacks a required date, description or amount column.

    Attributes:
        headers: The header row as read from the file.
        missing: Canonical field names that could not be mapped.
    """

    def __init__(self, headers: list[str], missing: list[str]) -> None:
        self.headers = list(headers)
        self.missing = list(missing)
        super().__init__(
            f"required column(s) not found: {', '.join(self.missing)} "
            f"(headers: {', '.join(self.headers) or '<none>'})"
        )


class EmptyInputError(AnalyzerError):
    """No valid transactions are available to analyze.

    Attributes:
        total_rows: Number of data rows read, when known.
        valid_count: Number of rows that parsed successfully.
    """

    def __init__(
        self,
        message: str = "no valid transactions to analyze",
        *,
        total_rows: int = 0,
        valid_count: int = 0,
    ) -> None:
        self.total_rows = total_rows
        self.valid_count = valid_count
        if total_rows:
            message = f"{message} ({valid_count}/{total_rows} rows valid)"
        super().__init__(message)


class InvalidNumericError(AnalyzerError):
    """A NaN or infinite amount reached the statistics stage."""

    def __init__(self, values: list[float]) -> None:
        self.values = list(values)
        super().__init__(
            f"{len(self.values)} non-finite amount(s) cannot be aggregated: "
            f"{', '.join(repr(v) for v in self.values[:5])}"
        )


class ConfigError(ValueError):
    """The configuration file is structurally invalid."""
