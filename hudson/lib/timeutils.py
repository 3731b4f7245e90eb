"""
Clock, calendar and id helpers.
"today" is always the calendar date in the property's timezone.
"""

import os
import uuid
from datetime import date, datetime
from typing import Optional

import pytz
from dateutil.relativedelta import relativedelta


def get_default_timezone() -> str:
    return os.environ.get("HUDSON_DEFAULT_TIMEZONE", "America/New_York")


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


def localize(moment: datetime, timezone: Optional[str] = None) -> datetime:
    """The same instant on the given timezone's wall clock. Naive values are taken as UTC."""
    if moment.tzinfo is None:
        moment = pytz.UTC.localize(moment)
    return moment.astimezone(pytz.timezone(timezone or get_default_timezone()))


def get_today_date(timezone: Optional[str] = None, now: Optional[datetime] = None) -> date:
    """Get today's date in the given timezone."""
    return localize(now or utc_now(), timezone).date()


def add_months(moment: datetime, months: int) -> datetime:
    """Calendar-month arithmetic, clamping to the end of shorter months."""
    return moment + relativedelta(months=months)


def quarter_label(moment: datetime) -> str:
    return f"Q{(moment.month - 1) // 3 + 1}"


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"
