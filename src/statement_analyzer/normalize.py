"""Value normalization for amounts, dates and descriptions.

Statement exports mix conventions: Brazilian files write ``R$ -1.234,56``
while international ones write ``-1,234.56`` or the accounting form
``(1,234.56)``.  Dates arrive in any of a configured list of patterns.
Everything here is a pure function of its input.  Failures are reported by
returning ``None``, never by raising.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime

logger = logging.getLogger(__name__)

_CURRENCY_RE = re.compile(r"R\$|[$€£\s()]")
_COMMA_DECIMAL_RE = re.compile(r",\d{2}$")
_ISO_MONTH_RE = re.compile(r"(\d{4})-(\d{2})")
_DATE_TOKEN_RE = re.compile(r"y+|M+|d+|H+|m+|s+")

# Java-style pattern tokens to strptime directives.
_DATE_TOKENS = {
    "yyyy": "%Y",
    "yy": "%y",
    "MMMM": "%B",
    "MMM": "%b",
    "MM": "%m",
    "M": "%m",
    "dd": "%d",
    "d": "%d",
    "HH": "%H",
    "mm": "%M",
    "ss": "%S",
}


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


def parse_amount(text: str | None) -> float | None:
    """Convert a currency-like string to a signed float.

    Supported forms include ``R$ -1.234,56``, ``-1234.56``, ``1.234,56``,
    ``-45,50`` and ``(1,234.56)``.  A trailing comma followed by exactly
    two digits selects the Brazilian convention (dot thousands, comma
    decimal); anything else is read as international (comma thousands,
    dot decimal).  Parentheses force a negative result.

    Args:
        text: Raw amount string.

    Returns:
        The parsed value, or None for blank input, non-numeric residue, or
        a non-finite result.
    """
    if text is None:
        return None
    stripped = str(text).strip()
    if not stripped:
        return None

    in_parens = stripped.startswith("(") and stripped.endswith(")")
    clean = _CURRENCY_RE.sub("", stripped)

    if _COMMA_DECIMAL_RE.search(clean):
        numeral = clean.replace(".", "").replace(",", ".")
    else:
        numeral = clean.replace(",", "")

    if "_" in numeral:
        logger.warning("Could not parse amount %r", text)
        return None
    try:
        value = float(numeral)
    except ValueError:
        logger.warning("Could not parse amount %r", text)
        return None

    if not math.isfinite(value):
        logger.warning("Rejected non-finite amount %r", text)
        return None

    if in_parens:
        return -abs(value)
    return value


def format_amount(value: float, convention: str = "br") -> str:
    """Format *value* with two decimals, e.g. ``-1.234,50`` (br) or ``-1,234.50`` (intl)."""
    intl = f"{value:,.2f}"
    if convention == "intl":
        return intl
    if convention != "br":
        raise ValueError(f"unknown amount convention: {convention!r}")
    return intl.replace(",", "_").replace(".", ",").replace("_", ".")


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def to_strptime(pattern: str) -> str:
    """Translate a Java-style date pattern (``dd/MM/yyyy``) to strptime form.

    Patterns that already contain ``%`` are returned unchanged.
    """
    if "%" in pattern:
        return pattern

    def _replace(match: re.Match[str]) -> str:
        token = match.group(0)
        try:
            return _DATE_TOKENS[token]
        except KeyError:
            raise ValueError(
                f"unsupported date pattern token {token!r} in {pattern!r}"
            ) from None

    return _DATE_TOKEN_RE.sub(_replace, pattern)


def _try_parse_date(text: str, pattern: str) -> str | None:
    try:
        return datetime.strptime(text, to_strptime(pattern)).date().isoformat()
    except ValueError:
        return None


def parse_date(text: str | None, formats: list[str]) -> str | None:
    """Convert a date string to ISO-8601 using the first matching format.

    When no format matches, the trimmed original is returned unchanged so
    later month/year extraction can still make a best effort.

    Args:
        text: Raw date string.
        formats: Ordered list of patterns, Java-style or strptime-style.

    Returns:
        The ISO date, the trimmed original when unparseable, or None when
        *text* is blank.
    """
    if text is None or not str(text).strip():
        return None
    trimmed = str(text).strip()
    for pattern in formats:
        parsed = _try_parse_date(trimmed, pattern)
        if parsed is not None:
            return parsed
    logger.debug("Date %r did not match any known format", trimmed)
    return trimmed


def is_valid_date(text: str | None, formats: list[str]) -> bool:
    """Return True when *text* parses with at least one of *formats*."""
    if text is None or not str(text).strip():
        return False
    trimmed = str(text).strip()
    return any(_try_parse_date(trimmed, pattern) is not None for pattern in formats)


def extract_month_key(date: str | None) -> str:
    """Return the ``MM/YYYY`` month key of an ISO date, or ``"Unknown"``."""
    if not date or not isinstance(date, str):
        return "Unknown"
    match = _ISO_MONTH_RE.search(date)
    if match is None:
        return "Unknown"
    year, month = match.groups()
    if not 1 <= int(month) <= 12:
        return "Unknown"
    return f"{month}/{year}"


def extract_year(date: str | None) -> str | None:
    """Return the first four characters of *date* when they form a year."""
    if not date or len(date) < 4 or not date[:4].isdigit():
        return None
    return date[:4]


# ---------------------------------------------------------------------------
# Descriptions
# ---------------------------------------------------------------------------


def normalize_description(text: str) -> str:
    """Lowercase *text* and collapse whitespace runs to single spaces."""
    return " ".join(text.lower().split())
