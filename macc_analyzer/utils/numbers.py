"""Numeric coercion helpers shared by the calculation engine.

Measure inputs arrive from spreadsheets, CSV files and form fields, so any
cell may be blank, a numeric string, or garbage. The engine never lets such
a value turn into NaN: everything is read through these helpers.
"""

import logging
import math
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)


def is_blank(value) -> bool:
    """Return True for None and empty/whitespace strings."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def to_float(value, default: float = 0.0) -> float:
    """Coerce a cell value to a finite float.

    Args:
        value: Number, numeric string, bool, None or anything else.
        default: Value returned when the input is blank, malformed or
            non-finite.

    Returns:
        A finite float.

    Example:
        >>> to_float("12.5")
        12.5
        >>> to_float("n/a")
        0.0
        >>> to_float(float("inf"))
        0.0
    """
    if is_blank(value):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        logger.debug("Could not parse %r as a number, using %s", value, default)
        return default
    if not math.isfinite(result):
        logger.debug("Non-finite value %r replaced with %s", value, default)
        return default
    return result


def to_optional_float(value) -> Optional[float]:
    """Coerce a cell to a float, keeping blanks as None.

    Used for override fields where "no override" and "override of 0" must
    stay distinct.
    """
    if is_blank(value):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def series_value(series: Optional[Sequence], index: int, default: float = 0.0) -> float:
    """Read position `index` of a per-year series, 0 when missing."""
    if series is None or index < 0 or index >= len(series):
        return default
    return to_float(series[index], default)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def interpolate_series(series: Sequence) -> List:
    """Linearly fill blanks between known points of a sparse series.

    Blank or non-numeric cells lying between two numeric anchors are
    replaced by straight-line values. Leading and trailing blanks have only
    one anchor and are returned unchanged. The input is not modified.

    Args:
        series: Per-year values, possibly containing None or "".

    Returns:
        New list of the same length.

    Example:
        >>> interpolate_series([0, "", "", 30])
        [0, 10.0, 20.0, 30]
    """
    out = list(series)
    last_idx = None
    for i, raw in enumerate(out):
        if to_optional_float(raw) is None:
            continue
        if last_idx is not None and i - last_idx > 1:
            start = float(out[last_idx])
            step = (float(raw) - start) / (i - last_idx)
            for k in range(last_idx + 1, i):
                out[k] = start + step * (k - last_idx)
        last_idx = i
    return out
