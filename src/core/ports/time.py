"""
Time port.

All stored timestamps are UTC. Monthly usage buckets and free-grant months are
resolved in a configurable reference timezone so the month boundary is fixed
regardless of where the process runs.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TimePort(Protocol):
    """Time/timezone adapter interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...

    def to_local(self, utc_dt: datetime) -> datetime:
        """
        Convert UTC to the reference timezone.

        Args:
            utc_dt: Datetime in UTC (naive treated as UTC)

        Returns:
            Datetime in reference timezone (timezone-aware)
        """
        ...

    def month_start(self, utc_dt: datetime | None = None) -> datetime:
        """
        First instant of the calendar month containing ``utc_dt``.

        The boundary is midnight on the 1st in the reference timezone,
        returned as a UTC datetime. Defaults to the current month.
        """
        ...

    def month_key(self, utc_dt: datetime | None = None) -> str:
        """Month bucket of ``utc_dt`` as ``YYYY-MM-01`` in the reference timezone."""
        ...

    @property
    def timezone_name(self) -> str:
        """Reference timezone name (e.g., 'UTC')."""
        ...
