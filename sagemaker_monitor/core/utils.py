"""Formatting helpers shared by the report renderers."""

from datetime import timedelta
from typing import Optional, Union

# Monetary values are rounded only at display time
MONEY_DECIMALS = 4


def round_money(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return round(value, MONEY_DECIMALS)


def format_currency(value: Optional[float]) -> str:
    """
    Format value as USD with four decimals.

    Args:
        value: Amount in USD, or None for "not applicable"

    Returns:
        Formatted string
    """
    if value is None:
        return "-"
    return f"${value:,.{MONEY_DECIMALS}f}"


def format_duration(duration: Union[timedelta, int, float]) -> str:
    """
    Format a running time as hours and minutes, e.g. ``26h5m``.

    Args:
        duration: timedelta or number of seconds

    Returns:
        Formatted string
    """
    seconds = duration.total_seconds() if isinstance(duration, timedelta) else float(duration)
    minutes = int(round(max(seconds, 0) / 60.0))
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h{minutes}m"


def truncate(text: str, max_len: int) -> str:
    """Shorten ``text`` to ``max_len`` characters, ending in '...' when cut."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
