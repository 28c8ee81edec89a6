"""Work-package filter encoding for the OpenProject ``filters`` query parameter.

OpenProject expects a JSON array of single-key objects:
``[{"status": {"operator": "=", "values": ["1"]}}, ...]``.
"""

from __future__ import annotations

import json
import re
from typing import Any

TEXT_FIELDS = frozenset({"subject", "description"})
DATE_FIELDS = frozenset({"createdAt", "updatedAt", "startDate", "dueDate"})

_LEGACY_RANGE = re.compile(r">=(.+?)T\d{2}:\d{2}:\d{2}Z<(.+?)T\d{2}:\d{2}:\d{2}Z")


def _condition(field: str, operator: str, values: list[str]) -> dict[str, Any]:
    return {field: {"operator": operator, "values": values}}


def date_condition(field: str, value: str) -> dict[str, Any] | None:
    """Encode one date filter expression.

    Accepted forms: ``<>d:start,end``, ``>=date``, ``<date``, a plain date, and
    the older concatenated ``>=...T..Z<...T..Z`` form (normalised to a range).
    Returns None for a malformed range.
    """
    if "<>d:" in value:
        start, _, end = value.split("<>d:", 1)[1].partition(",")
        if start and end:
            return _condition(field, "<>d", [start, end])
        return None
    if ">=" in value and "<" in value:
        match = _LEGACY_RANGE.search(value)
        if match:
            start, end = match.groups()
            return _condition(field, "<>d", [f"{start}T00:00:00Z", f"{end}T23:59:59Z"])
        return None
    if value.startswith(">="):
        return _condition(field, ">=", [value[2:]])
    if value.startswith("<"):
        return _condition(field, "<", [value[1:]])
    return _condition(field, "=d", [value])


def build_filters(filters: dict[str, Any]) -> list[dict[str, Any]]:
    """Translate a field -> value mapping into OpenProject filter objects."""
    result: list[dict[str, Any]] = []
    for field, value in filters.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            result.append(_condition(field, "=", [str(v) for v in value]))
            continue

        text = str(value)
        if field in TEXT_FIELDS:
            result.append(_condition(field, "**", [text]))
        elif field in DATE_FIELDS:
            condition = date_condition(field, text)
            if condition is not None:
                result.append(condition)
        else:
            result.append(_condition(field, "=", [text]))
    return result


def encode_filters(filters: dict[str, Any] | None) -> str | None:
    """JSON value for the ``filters`` query parameter, or None when nothing applies."""
    built = build_filters(filters or {})
    if not built:
        return None
    return json.dumps(built)
