"""
Deadline Utilities

Default deadlines are counted in business days; date-only deadlines close
at the end of that day (UTC).
"""

from datetime import UTC, date, datetime, time, timedelta

END_OF_DAY = time(23, 59, 59, tzinfo=UTC)


def add_business_days(days: int, start: datetime | date) -> datetime | date:
    """Return the date ``days`` business days after ``start``, skipping weekends."""
    result = start
    added = 0
    while added < days:
        result = result + timedelta(days=1)
        # Monday=0 .. Friday=4
        if result.weekday() < 5:
            added += 1
    return result


def default_deadline(now: datetime, business_days: int = 5) -> datetime:
    """End of the day ``business_days`` business days after ``now``."""
    target = add_business_days(business_days, now.astimezone(UTC).date())
    return datetime.combine(target, END_OF_DAY)


def parse_deadline(value: datetime | date | str) -> datetime:
    """
    Normalize a deadline to a timezone-aware datetime.

    Accepts datetimes (naive values are taken as UTC), dates and strings in
    ISO-8601 or ``YYYY-MM-DD`` form. A bare date means the end of that day.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime.combine(value, END_OF_DAY)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid deadline: {value!r}")

    text = value.strip()
    if len(text) == 10:
        return datetime.combine(date.fromisoformat(text), END_OF_DAY)
    return parse_deadline(datetime.fromisoformat(text.replace("Z", "+00:00")))
