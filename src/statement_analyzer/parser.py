"""Statement CSV parser with bilingual header mapping.

Headers are matched case- and accent-insensitively against synonym sets,
so ``Data``, ``date``, ``Descrição``, ``title``, ``Valor`` and ``amount``
are all recognised:

    date         date, data
    description  description, descricao, title, estabelecimento
    amount       amount, valor, value, price
    category     category, categoria
    type         type, tipo

Unrecognised headers become pass-through fields keyed by their normalized
name.  Rows whose date, description or amount fail normalization are
skipped and counted; they never abort the file.
"""

from __future__ import annotations

import csv
import logging
import re
from pathlib import Path

from statement_analyzer.errors import MissingColumnError
from statement_analyzer.models import ParseResult, RowResult, Transaction
from statement_analyzer.normalize import parse_amount, parse_date
from statement_analyzer.validation import validate_record

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("date", "description", "amount")

# Checked in order; the first synonym set that matches wins.
FIELD_SYNONYMS: list[tuple[str, tuple[str, ...]]] = [
    ("date", ("date", "data")),
    ("description", ("description", "descricao", "title", "estabelecimento")),
    ("amount", ("amount", "valor", "value", "price")),
    ("category", ("category", "categoria")),
    ("type", ("type", "tipo")),
]

_ACCENT_FOLDS = [
    (re.compile(r"[áàâãä]"), "a"),
    (re.compile(r"[éèêë]"), "e"),
    (re.compile(r"[íìîï]"), "i"),
    (re.compile(r"[óòôõö]"), "o"),
    (re.compile(r"[úùûü]"), "u"),
    (re.compile(r"ç"), "c"),
]


# ---------------------------------------------------------------------------
# Header mapping
# ---------------------------------------------------------------------------


def normalize_header(name: str) -> str:
    """Trim, lowercase, hyphenate whitespace and fold accented letters.

    ``" Descrição  do Item "`` becomes ``"descricao-do-item"``.
    """
    normalized = re.sub(r"\s+", "-", name.strip().lower())
    for pattern, replacement in _ACCENT_FOLDS:
        normalized = pattern.sub(replacement, normalized)
    return normalized


def map_header_to_field(name: str) -> str:
    """Map a raw header to a canonical field name.

    Returns one of ``date``, ``description``, ``amount``, ``category`` or
    ``type``, or the normalized header itself when nothing matches.
    """
    normalized = normalize_header(name)
    for field_name, synonyms in FIELD_SYNONYMS:
        if any(synonym in normalized for synonym in synonyms):
            return field_name
    return normalized


def build_field_mapping(headers: list[str]) -> dict[str, int]:
    """Map canonical field names to column indexes.

    When two headers map to the same field, the first one wins.
    """
    mapping: dict[str, int] = {}
    for index, header in enumerate(headers):
        mapping.setdefault(map_header_to_field(header), index)
    return mapping


def require_columns(headers: list[str]) -> dict[str, int]:
    """Build the field mapping, failing if a required field is unmapped.

    Raises:
        MissingColumnError: If no header maps to date, description or
            amount.
    """
    mapping = build_field_mapping(headers)
    missing = [name for name in REQUIRED_FIELDS if name not in mapping]
    if missing:
        raise MissingColumnError(headers, missing)
    return mapping


# ---------------------------------------------------------------------------
# Row parsing
# ---------------------------------------------------------------------------


def _cell(row: list[str], mapping: dict[str, int], field_name: str) -> str | None:
    index = mapping.get(field_name)
    if index is None or index >= len(row):
        return None
    return row[index]


def parse_row(
    row: list[str],
    mapping: dict[str, int],
    date_formats: list[str],
    row_number: int = 0,
) -> RowResult:
    """Parse one CSV row into a :class:`RowResult`.

    The row is kept only when the date is present, the description is not
    blank, and the amount normalizes to a finite number.  A date that
    matches no format is kept in its trimmed raw form.

    Args:
        row: Cell values.
        mapping: Field mapping from :func:`build_field_mapping`.
        date_formats: Ordered date patterns.
        row_number: 1-based data row index, used in messages.

    Returns:
        A RowResult holding either the transaction or the failure reason.
    """
    date_raw = _cell(row, mapping, "date")
    description = _cell(row, mapping, "description")
    amount_raw = _cell(row, mapping, "amount")

    date = parse_date(date_raw, date_formats)
    amount = parse_amount(amount_raw)

    check = validate_record(date, description, amount)
    if not check.ok:
        details = "; ".join(check.errors)
        if amount is None and amount_raw:
            details += f" ({amount_raw!r})"
        return RowResult(reason=details)

    return RowResult(
        transaction=Transaction(
            date=date,
            date_raw=date_raw,
            description=description.strip(),
            amount=amount,
            txn_type=(_cell(row, mapping, "type") or "").strip(),
            row_number=row_number,
        )
    )


def parse_rows(
    rows: list[list[str]],
    mapping: dict[str, int],
    date_formats: list[str],
    source: str = "<rows>",
) -> ParseResult:
    """Parse data rows, skipping and counting the ones that fail."""
    transactions: list[Transaction] = []
    warnings: list[str] = []

    for row_number, row in enumerate(rows, start=1):
        if not any(cell.strip() for cell in row):
            warnings.append(f"{source}: skipped row {row_number} (empty row)")
            continue
        result = parse_row(row, mapping, date_formats, row_number)
        if result.ok:
            transactions.append(result.transaction)
        else:
            message = f"{source}: skipped row {row_number} ({result.reason})"
            logger.warning(message)
            warnings.append(message)

    parse_result = ParseResult(
        transactions=transactions,
        warnings=warnings,
        field_mapping=dict(mapping),
        total_rows=len(rows),
    )
    logger.info(
        "Parsed %s: %d/%d valid transactions (%.1f%%)",
        source,
        parse_result.valid_count,
        parse_result.total_rows,
        parse_result.success_rate,
    )
    return parse_result


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def read_csv(file_path: Path, encoding: str = "utf-8") -> tuple[list[str], list[list[str]]]:
    """Read a CSV file and return ``(headers, rows)``.

    Raises:
        FileNotFoundError: If the file does not exist.
        MissingColumnError: If the file has no header row.
    """
    logger.info("Reading CSV: %s (encoding: %s)", file_path, encoding)
    with open(file_path, newline="", encoding=encoding) as f:
        reader = csv.reader(f)
        headers = next(reader, None)
        if headers is None:
            raise MissingColumnError([], list(REQUIRED_FIELDS))
        rows = list(reader)
    logger.debug("Headers found: %s", ", ".join(headers))
    logger.debug("Total rows: %d", len(rows))
    return headers, rows


def parse_file(
    file_path: Path,
    date_formats: list[str],
    encoding: str = "utf-8",
) -> ParseResult:
    """Read and parse one statement CSV.

    The header row is validated before any data row is parsed.

    Raises:
        FileNotFoundError: If the file does not exist.
        MissingColumnError: If a required column cannot be mapped.
    """
    headers, rows = read_csv(file_path, encoding)
    mapping = require_columns(headers)
    logger.debug("Field mapping: %s", mapping)
    return parse_rows(rows, mapping, date_formats, source=str(file_path))


def parse_files(
    file_paths: list[Path],
    date_formats: list[str],
    encoding: str = "utf-8",
) -> ParseResult:
    """Parse several statement CSVs and concatenate the results in order."""
    logger.info("Parsing %d file(s)...", len(file_paths))
    combined = ParseResult()
    for file_path in file_paths:
        result = parse_file(file_path, date_formats, encoding)
        combined.transactions.extend(result.transactions)
        combined.warnings.extend(result.warnings)
        combined.total_rows += result.total_rows
        if not combined.field_mapping:
            combined.field_mapping = result.field_mapping
    return combined
