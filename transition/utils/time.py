from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def today() -> date:
    """Return the local calendar date used for end-date comparisons."""
    return datetime.now().date()
