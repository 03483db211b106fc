"""
Row access and rendering for graph query results.

Backends return each row either as a mapping of column name to value or as a
positional sequence. Every read goes through :func:`field`, which tries the
name first and the known column offset second.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Final

__all__ = [
    "NO_RESULTS",
    "DEFAULT_DISPLAY_CAP",
    "Row",
    "field",
    "format_row",
    "format_rows",
]

_logger = logging.getLogger(__name__)

NO_RESULTS: Final = "Query returned no results."
DEFAULT_DISPLAY_CAP: Final = 50

Row = Mapping[str, Any] | Sequence[Any]

_MISSING = object()


def _is_positional(row: Any) -> bool:
    return isinstance(row, Sequence) and not isinstance(row, (str, bytes, bytearray))


def field(row: Any, name: str, index: int, default: Any = None) -> Any:
    """Read column *name* from *row*, falling back to position *index*.

    A named value of ``None`` counts as absent, so the positional slot is tried.
    """
    if isinstance(row, Mapping):
        value = row.get(name, _MISSING)
        if value is not _MISSING and value is not None:
            return value
        # some drivers key positional columns by their offset
        for key in (index, str(index)):
            value = row.get(key, _MISSING)
            if value is not _MISSING and value is not None:
                return value
        return default
    if _is_positional(row):
        try:
            value = row[index]
        except (IndexError, TypeError):
            return default
        return default if value is None else value
    value = getattr(row, name, None)
    return default if value is None else value


def _scalar_text(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def format_row(row: Any) -> str:
    """Render one row; never raises."""
    try:
        if isinstance(row, Mapping):
            return json.dumps(dict(row), separators=(",", ":"), default=str)
        if _is_positional(row):
            return ", ".join(_scalar_text(value) for value in row)
        return str(row)
    except Exception:
        _logger.debug("Falling back to repr for unrenderable row", exc_info=True)
        try:
            return repr(row)
        except Exception:
            return f"<unrenderable {type(row).__name__}>"


def format_rows(rows: Iterable[Any] | None, display_cap: int = DEFAULT_DISPLAY_CAP) -> str:
    """
    Render a result set as numbered text lines for the model.

    Returns :data:`NO_RESULTS` for an empty result set. At most *display_cap*
    rows are shown; a trailing line counts the rows left out.
    """
    if rows is None:
        return NO_RESULTS
    try:
        rows = list(rows)
    except TypeError:
        return f"Query returned an unrecognised result: {format_row(rows)}"
    if not rows:
        return NO_RESULTS

    total = len(rows)
    cap = max(display_cap, 0)
    lines = [f"[{i + 1}] {format_row(row)}" for i, row in enumerate(rows[:cap])]

    text = f"Query returned {total} results:"
    if lines:
        text += "\n" + "\n".join(lines)
    if total > cap:
        text += f"\n... ({total - cap} more results truncated)"
    return text
