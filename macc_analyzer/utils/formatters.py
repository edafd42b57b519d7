"""Number and currency formatting utilities for MACC Analyzer."""

import math
from typing import Optional

MISSING = "—"


def _is_missing(value) -> bool:
    if value is None:
        return True
    try:
        return math.isnan(float(value))
    except (TypeError, ValueError):
        return True


def format_number(value: Optional[float], decimals: int = 2) -> str:
    """Format a number with a k/M/B suffix.

    Args:
        value: The numeric value to format, or None.
        decimals: Number of decimal places.

    Returns:
        Formatted string (e.g., "1.23M"), or "—" if the value is missing.
    """
    if _is_missing(value):
        return MISSING
    n = float(value)
    if not math.isfinite(n):
        return str(n)
    if abs(n) >= 1e9:
        return f"{n / 1e9:.{decimals}f}B"
    if abs(n) >= 1e6:
        return f"{n / 1e6:.{decimals}f}M"
    if abs(n) >= 1e3:
        return f"{n / 1e3:.{decimals}f}k"
    return f"{n:.{decimals}f}"


def format_currency(value: Optional[float], prefix: str = "₹", decimals: int = 2) -> str:
    """Format a number as an abbreviated currency string.

    Args:
        value: The numeric value to format.
        prefix: Currency symbol prefix.
        decimals: Number of decimal places.

    Returns:
        Formatted currency string (e.g., "₹ 4.50M").
    """
    if _is_missing(value):
        return MISSING
    return f"{prefix} {format_number(value, decimals)}"


def format_percent(value: Optional[float], decimals: int = 1) -> str:
    """Format a decimal as percentage string.

    Args:
        value: Decimal value (e.g., 0.07 for 7%).
        decimals: Number of decimal places.

    Returns:
        Formatted percentage string (e.g., "7.0%").
    """
    if _is_missing(value):
        return MISSING
    return f"{float(value) * 100:,.{decimals}f}%"


def format_irr(value: Optional[float], decimals: int = 1) -> str:
    """Format an IRR, rendering "not found" as N/A instead of 0%."""
    if value is None:
        return "N/A"
    return format_percent(value, decimals)


def format_tonnes(value: Optional[float]) -> str:
    if _is_missing(value):
        return MISSING
    return f"{format_number(value)} tCO₂"
