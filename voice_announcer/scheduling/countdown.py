"""Countdown strings shown next to each scheduler."""

from __future__ import annotations

from datetime import timedelta


def format_countdown(remaining: timedelta, with_hours: bool = False) -> str:
    """Format time left as ``M:SS``, or ``H:MM:SS`` past an hour.

    Overdue or due-now values render as ``"0:00"``. Partial seconds are
    truncated, so 125.9s shows as ``"2:05"``.

    Args:
        remaining: Time until the trigger.
        with_hours: Split off hours when at least one hour remains.
            Otherwise minutes may exceed 59.
    """
    total = remaining.total_seconds()
    if total <= 0:
        return "0:00"

    whole = int(total)
    if with_hours:
        hours, rest = divmod(whole, 3600)
        minutes, seconds = divmod(rest, 60)
        if hours > 0:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"

    minutes, seconds = divmod(whole, 60)
    return f"{minutes}:{seconds:02d}"


__all__ = ["format_countdown"]
