from datetime import date, datetime

import pandas as pd

from config import MAX_RANGE_DAYS
from errors import ValidationError

# ============================================================
# DATE PARSING
# ============================================================

def to_date(value):
    """
    Coerce a picker value to a plain ``date``.

    Accepts ``date``/``datetime``/``pd.Timestamp`` or an ISO string
    (``dcc.DatePickerSingle`` sends "YYYY-MM-DD", sometimes with a time part).
    Time-of-day is dropped. Returns None for empty or unparseable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError):
        return None
    if pd.isna(ts):
        return None
    return ts.date()


def to_iso(value):
    """Format as YYYY-MM-DD for the request body. Empty string if missing."""
    d = to_date(value)
    return d.isoformat() if d else ""


# ============================================================
# VALIDATION
# ============================================================

def range_days(from_date, to_date_):
    """Whole calendar days between the two dates, or None if either is missing."""
    start = to_date(from_date)
    end = to_date(to_date_)
    if start is None or end is None:
        return None
    return (end - start).days


def is_valid_range(from_date, to_date_, max_days=MAX_RANGE_DAYS):
    """True when both dates exist, to >= from and the span is at most ``max_days``."""
    days = range_days(from_date, to_date_)
    if days is None:
        return False
    return 0 <= days <= max_days


def check_range(from_date, to_date_, max_days=MAX_RANGE_DAYS):
    """Raises ValidationError with the user-facing message when the range is unusable."""
    if is_valid_range(from_date, to_date_, max_days=max_days):
        return
    days = range_days(from_date, to_date_)
    if days is None:
        raise ValidationError("Please select From Date and To Date")
    if days < 0:
        raise ValidationError("To Date must not be before From Date")
    raise ValidationError(f"Date range must not be more than {max_days} days")


def validate_range(from_date, to_date_, max_days=MAX_RANGE_DAYS):
    """Returns the inline error message for a bad range, or None when the fetch may go ahead."""
    try:
        check_range(from_date, to_date_, max_days=max_days)
    except ValidationError as e:
        return e.message
    return None
