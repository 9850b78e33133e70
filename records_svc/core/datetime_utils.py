"""
UTC-first datetime utilities for the Medical Records API.

Conventions:
- Internal processing: timezone-aware datetimes in UTC
- Database storage: ISO 8601 strings in UTC (SQLite stores as TEXT)
- API responses: ISO 8601 strings with 'Z' suffix
- Visit dates and dates of birth are accepted in any ISO 8601 form and
  normalized to UTC before they are stored

Usage:
    from core.datetime_utils import utc_now, format_iso, parse_datetime

    now = utc_now()
    stored = to_db_string(now)           # "2024-01-15T05:00:00Z"
    dt = parse_datetime("2024-01-15T10:30:00+05:30")
"""
from datetime import date, datetime, timezone
from typing import Optional, Union

# =============================================================================
# CORE UTILITIES
# =============================================================================

def utc_now() -> datetime:
    """Get current datetime in UTC with timezone info."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    Naive datetimes are assumed to already be UTC; aware datetimes are
    converted.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# =============================================================================
# PARSING
# =============================================================================

def parse_datetime(value: Union[str, datetime, date]) -> datetime:
    """
    Parse a datetime value to a UTC datetime.

    Accepts datetime and date objects as well as ISO 8601 strings with or
    without a timezone (a trailing 'Z' is understood as UTC).

    Raises:
        ValueError: If the value cannot be parsed.

    Examples:
        >>> parse_datetime("2024-01-15T10:30:00Z")
        datetime.datetime(2024, 1, 15, 10, 30, tzinfo=datetime.timezone.utc)

        >>> parse_datetime("2024-01-15")
        datetime.datetime(2024, 1, 15, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if isinstance(value, datetime):
        return to_utc(value)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if not isinstance(value, str):
        raise ValueError(f"Expected datetime or string, got {type(value).__name__}")

    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    try:
        return to_utc(datetime.fromisoformat(value))
    except ValueError:
        pass

    try:
        parsed = datetime.strptime(value, "%Y-%m-%d %H:%M:%S")
        return parsed.replace(tzinfo=timezone.utc)
    except ValueError:
        raise ValueError(f"Cannot parse datetime: '{value}'")


# =============================================================================
# FORMATTING
# =============================================================================

def format_iso(dt: datetime) -> str:
    """
    Format datetime to ISO 8601 string with UTC timezone.

    Example:
        >>> format_iso(datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc))
        '2024-01-15T10:30:00Z'
    """
    return to_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


# =============================================================================
# DATABASE HELPERS
# =============================================================================

def to_db_string(dt: Union[datetime, date, None]) -> Optional[str]:
    """Convert a datetime (or date) to the ISO string stored in SQLite."""
    if dt is None:
        return None
    return format_iso(parse_datetime(dt))


def calculate_age(date_of_birth: date, today: Optional[date] = None) -> int:
    """
    Age in whole years on ``today`` (defaults to the current UTC date).

    The birthday has to have passed this year for it to count.
    """
    today = today or utc_now().date()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age
