from calendar import monthrange
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo
from app.config import settings

# Stand-in end date for open-ended reservations
FAR_FUTURE = date(9999, 12, 31)

def today() -> date:
    """Current calendar date in the business timezone"""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()

def effective_end(end_date: Optional[date]) -> date:
    return end_date if end_date is not None else FAR_FUTURE

def ranges_overlap(
    start1: date,
    end1: Optional[date],
    start2: date,
    end2: Optional[date]
) -> bool:
    """
    Inclusive calendar-day overlap check.
    A missing end date means the range never ends.
    """
    return start1 <= effective_end(end2) and start2 <= effective_end(end1)

def covers(start: date, end: Optional[date], day: date) -> bool:
    """True if the inclusive range contains the given day"""
    return start <= day <= effective_end(end)

def add_months(day: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month"""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))
