"""
Date parsing and the inclusive day count used for leave requests.
"""

import logging
from datetime import date, datetime

from dateutil.parser import isoparse

logger = logging.getLogger(__name__)


def parse_date(value: date | datetime | str | None) -> date | None:
    """
    Parse a calendar date.

    Accepts ``date``/``datetime`` objects or ISO strings (``YYYY-MM-DD``).
    Returns None for empty or unparseable input instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    try:
        return isoparse(text).date()
    except (ValueError, OverflowError):
        logger.info(f"Unparseable date: {text!r}")
        return None


def days_between_inclusive(start: date, end: date) -> int:
    """
    Number of leave days from start to end, both included.

    A single-day leave counts as 1. When end is before start the result
    is zero or negative; callers treat that as an invalid range.
    """
    return (end - start).days + 1
