"""
Reference-timezone time adapter.

Implements the TimePort interface for a fixed IANA timezone (default UTC).
Month boundaries are computed in local time and converted back to UTC, so DST
offsets at the boundary are handled by zoneinfo.
"""

from __future__ import annotations

from datetime import UTC, datetime
from zoneinfo import ZoneInfo


class ReferenceTimeAdapter:
    """Time adapter bound to one reference timezone."""

    def __init__(self, tz_name: str = "UTC") -> None:
        self._tz_name = tz_name
        self._tz = ZoneInfo(tz_name)
        self._utc = UTC

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        return datetime.now(self._utc)

    def to_local(self, utc_dt: datetime) -> datetime:
        """
        Convert UTC to the reference timezone.

        If utc_dt is naive, it's assumed to be UTC.
        """
        if utc_dt.tzinfo is None:
            utc_dt = utc_dt.replace(tzinfo=self._utc)
        return utc_dt.astimezone(self._tz)

    def month_start(self, utc_dt: datetime | None = None) -> datetime:
        """First instant of the month containing utc_dt, as UTC."""
        local = self.to_local(utc_dt or self.now_utc())
        start_local = local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        return start_local.astimezone(self._utc)

    def month_key(self, utc_dt: datetime | None = None) -> str:
        """Month bucket of utc_dt rendered as ``YYYY-MM-01``."""
        return self.to_local(utc_dt or self.now_utc()).strftime("%Y-%m-01")

    @property
    def timezone_name(self) -> str:
        return self._tz_name


class FrozenTimeAdapter(ReferenceTimeAdapter):
    """
    Time adapter that returns a fixed time.

    Useful for deterministic testing.
    """

    def __init__(self, frozen_utc: datetime, tz_name: str = "UTC") -> None:
        super().__init__(tz_name)
        if frozen_utc.tzinfo is None:
            frozen_utc = frozen_utc.replace(tzinfo=UTC)
        self._frozen_utc = frozen_utc.astimezone(UTC)

    def now_utc(self) -> datetime:
        """Get frozen UTC time."""
        return self._frozen_utc

    def set_now(self, frozen_utc: datetime) -> None:
        if frozen_utc.tzinfo is None:
            frozen_utc = frozen_utc.replace(tzinfo=UTC)
        self._frozen_utc = frozen_utc.astimezone(UTC)
