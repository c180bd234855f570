"""Conversions between Active Directory timestamps and datetimes.

Active Directory stores logon times as FILETIME values: the number of
100-nanosecond intervals since 1601-01-01 00:00 UTC. A value of ``0`` or
``0x7FFFFFFFFFFFFFFF`` means the attribute was never set.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

FILETIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)
FILETIME_NEVER = 0x7FFFFFFFFFFFFFFF
TICKS_PER_SECOND = 10_000_000

DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"


def filetime_to_datetime(filetime: int) -> datetime:
    """Convert a Windows FILETIME to an aware UTC datetime."""
    return FILETIME_EPOCH + timedelta(microseconds=filetime // 10)


def datetime_to_filetime(dt: datetime) -> int:
    """Convert a datetime to a Windows FILETIME. Naive values are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    delta = dt - FILETIME_EPOCH
    return (delta.days * 86400 + delta.seconds) * TICKS_PER_SECOND + delta.microseconds * 10


def _unwrap(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def parse_logon_value(value: Any) -> Optional[datetime]:
    """
    Normalize a logon attribute value as returned by ldap3.

    ldap3 hands back raw integers, digit strings, or (when the schema is
    known) already-formatted datetimes. Unset values, including the
    1601 epoch and the "never" sentinel, become ``None``.

    Args:
        value: Raw attribute value, possibly a single-element list

    Returns:
        Aware UTC datetime, or None when no logon is recorded
    """
    value = _unwrap(value)
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        if value <= FILETIME_EPOCH or value.year >= 9999:
            return None
        return value.astimezone(timezone.utc)

    try:
        filetime = int(value)
    except (TypeError, ValueError):
        return None

    if filetime <= 0 or filetime >= FILETIME_NEVER:
        return None
    try:
        return filetime_to_datetime(filetime)
    except OverflowError:
        return None


def parse_generalized_time(value: Any) -> Optional[datetime]:
    """
    Normalize a GeneralizedTime attribute such as ``whenCreated``.

    Accepts datetimes or strings like ``20240131120000.0Z``.
    """
    value = _unwrap(value)
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    text = str(value).strip()
    for fmt in ("%Y%m%d%H%M%S.%fZ", "%Y%m%d%H%M%SZ"):
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(dt: Optional[datetime], missing: str) -> str:
    """Render a datetime for display, or ``missing`` when absent."""
    if dt is None:
        return missing
    return dt.strftime(DISPLAY_FORMAT)
