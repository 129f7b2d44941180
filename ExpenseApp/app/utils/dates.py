import re
from datetime import date as date_cls, datetime
from typing import Any, Optional

from dateutil.parser import isoparse

MONTH_NAMES = [
    "Gennaio", "Febbraio", "Marzo", "Aprile", "Maggio", "Giugno",
    "Luglio", "Agosto", "Settembre", "Ottobre", "Novembre", "Dicembre",
]

# isoparse also accepts "2024" and "2024-03"; entries need a full calendar date
FULL_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")


def parse_iso_date(value: Any) -> Optional[date_cls]:
    """Parse an ISO-8601 date (YYYY-MM-DD, or a timestamp) into a datetime.date."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_cls):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not FULL_DATE_RE.match(text):
            return None
        try:
            return isoparse(text).date()
        except (ValueError, OverflowError):
            return None
    return None


def month_label(year: int, month: int) -> str:
    return f"{MONTH_NAMES[month - 1]} {year}"
