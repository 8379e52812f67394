# nabolag/utils/clock.py
"""
UTC clock helpers.

All lifecycle timestamps are stored and compared as naive UTC, the same
representation the DateTime columns hand back on both Postgres and SQLite.
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware timestamp to naive UTC; naive input is assumed UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)
