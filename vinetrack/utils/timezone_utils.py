from __future__ import annotations

from datetime import date, datetime, timezone as dt_timezone


class TimezoneUtils:
    """UTC helpers shared by models and maintenance schedulers."""

    @staticmethod
    def utc_now() -> datetime:
        """Return the current UTC timestamp (timezone aware)."""
        return datetime.now(dt_timezone.utc)

    @staticmethod
    def utc_today() -> date:
        return TimezoneUtils.utc_now().date()

    @staticmethod
    def as_date(value) -> date | None:
        """Coerce datetimes and ISO strings to a plain date; None passes through."""
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value.strip()[:10])
            except ValueError as exc:
                raise ValueError(f"Invalid date {value!r}; expected YYYY-MM-DD") from exc
        raise ValueError(f"Invalid date {value!r}")

    @staticmethod
    def days_between(start, end) -> int:
        """Whole days elapsed from start to end (negative when start is later)."""
        return (TimezoneUtils.as_date(end) - TimezoneUtils.as_date(start)).days
