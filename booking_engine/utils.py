"""Shared time and contact helpers used across the booking engine."""

import re
from datetime import datetime, timedelta, timezone


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def minutes(value: int) -> timedelta:
    return timedelta(minutes=value)


def duration_minutes(start: datetime, end: datetime) -> float:
    """Length of ``[start, end)`` in minutes (negative if reversed)."""
    return (end - start).total_seconds() / 60


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Half-open overlap test: ``[a_start, a_end)`` meets ``[b_start, b_end)``.

    Intervals that only touch (``a_end == b_start``) do not overlap.
    """
    return a_start < b_end and b_start < a_end


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("0412 345 678")
        '0412345678'
        >>> normalize_phone("+61 (412) 345-678")
        '+61412345678'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def normalize_contact(value: str) -> str:
    """Normalize a phone number or e-mail address for the booking snapshot.

    Examples:
        >>> normalize_contact(" Jane@Example.com ")
        'jane@example.com'
        >>> normalize_contact("+1-555-0101")
        '+15550101'
    """
    value = value.strip()
    if "@" in value:
        return value.lower()
    normalized = normalize_phone(value)
    return normalized if normalized.lstrip("+") else value
