"""Categorization engine: ordered keyword rules.

A transaction's lowercased description is matched against each rule in
declared order; a rule matches when any of its keywords is a substring of
the description.  The first matching rule wins, and descriptions that
match nothing fall back to ``"Others"``.

Rule order is part of the configuration.  A description such as
``"uber eats"`` matches both ``Food`` (``"uber eats"``) and ``Transport``
(``"uber"``); whichever rule is listed first decides.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from statement_analyzer.errors import ConfigError
from statement_analyzer.models import DEFAULT_CATEGORY, CategoryRule, Transaction

logger = logging.getLogger(__name__)


def classify(description: str, rules: list[CategoryRule]) -> str:
    """Return the name of the first rule matching *description*.

    Args:
        description: Transaction description (any case).
        rules: Ordered rule list.

    Returns:
        The matching rule's name, or ``"Others"``.
    """
    text = (description or "").lower()
    for rule in rules:
        if any(keyword in text for keyword in rule.keywords):
            return rule.name
    return DEFAULT_CATEGORY


def categorize(
    transactions: list[Transaction],
    rules: list[CategoryRule],
) -> list[Transaction]:
    """Return copies of *transactions* with ``category`` assigned.

    The input list and its transactions are left untouched.
    """
    logger.info("Categorizing %d transactions...", len(transactions))
    categorized = [
        replace(txn, category=classify(txn.description, rules)) for txn in transactions
    ]
    unmatched = sum(1 for txn in categorized if txn.category == DEFAULT_CATEGORY)
    logger.info(
        "Categorization complete: %d matched, %d fell back to %s",
        len(categorized) - unmatched,
        unmatched,
        DEFAULT_CATEGORY,
    )
    return categorized


def make_rule(name: str, keywords: Iterable[str]) -> CategoryRule:
    """Build a :class:`CategoryRule`, lowercasing and validating keywords.

    Raises:
        ConfigError: If the name is blank or no non-blank keyword is given.
    """
    if not name or not name.strip():
        raise ConfigError("category name must not be empty")
    cleaned = tuple(k.strip().lower() for k in keywords if k and k.strip())
    if not cleaned:
        raise ConfigError(f"category {name!r} has no keywords")
    return CategoryRule(name=name.strip(), keywords=cleaned)


def build_rules(pairs: Iterable[tuple[str, Iterable[str]]]) -> list[CategoryRule]:
    """Build an ordered rule list from ``(name, keywords)`` pairs.

    The order of *pairs* becomes the evaluation order.  Pass
    ``mapping.items()`` to build rules from an ordered mapping.

    Raises:
        ConfigError: On a duplicate name or a rule without keywords.
    """
    rules: list[CategoryRule] = []
    seen: set[str] = set()
    for name, keywords in pairs:
        rule = make_rule(name, keywords)
        if rule.name in seen:
            raise ConfigError(f"duplicate category name: {rule.name!r}")
        seen.add(rule.name)
        rules.append(rule)
    return rules
