"""
Opening-hours parsing for Google's weekday_text strings
"""

import re
import logging
from typing import List, Optional
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

MIN_DAYS_OPEN = 5
MIN_AVERAGE_HOURS = 9

DAYS_OF_WEEK = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']

OPEN_24_HOURS = 'open 24 hours'

# Google separates ranges with en dashes and pads times with narrow no-break spaces
_RANGE_SPLIT = re.compile(r'\s*[\u2013\u2014\u2212-]\s*')
_SPACES = re.compile(r'[\u00a0\u2009\u202f]')
_TIME = re.compile(r'^(\d{1,2})(?::(\d{2}))?\s*(AM|PM)?$', re.IGNORECASE)

@dataclass
class DaySchedule:
    day: str
    hours: str
    is_open: bool
    hours_count: float

    def to_dict(self):
        return {
            'day': self.day,
            'hours': self.hours,
            'isOpen': self.is_open,
            'hoursCount': self.hours_count
        }

@dataclass
class StoreHours:
    """Weekly schedule and whether it meets the operating-hours requirement"""
    days_open: int
    average_hours_per_day: float
    meets_requirements: bool
    weekly_schedule: List[DaySchedule] = field(default_factory=list)

    def to_dict(self):
        return {
            'daysOpen': self.days_open,
            'averageHoursPerDay': self.average_hours_per_day,
            'meetsRequirements': self.meets_requirements,
            'weeklySchedule': [day.to_dict() for day in self.weekly_schedule]
        }


def parse_time(time_str: str, default_period: Optional[str] = None) -> Optional[float]:
    """
    Convert '9:30 PM' to 21.5

    Args:
        time_str: Clock time with optional minutes and AM/PM
        default_period: AM/PM to assume when time_str has none

    Returns:
        Hours since midnight, or None if the string is not a time
    """
    match = _TIME.match(_SPACES.sub(' ', time_str).strip())
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    period = (match.group(3) or default_period or '').upper()
    if not period or hours > 12 or minutes > 59:
        return None

    if period == 'PM' and hours != 12:
        hours += 12
    if period == 'AM' and hours == 12:
        hours = 0

    return hours + minutes / 60


def _period_of(time_str: str) -> Optional[str]:
    match = _TIME.match(_SPACES.sub(' ', time_str).strip())
    return match.group(3).upper() if match and match.group(3) else None


def parse_range_hours(time_range: str) -> float:
    """
    Length in hours of a single 'start – end' range

    Ranges whose end is not after the start run past midnight.
    Unparseable ranges count as zero.
    """
    times = _RANGE_SPLIT.split(time_range.strip())
    if len(times) != 2:
        return 0

    # '9:00 – 11:00 PM': the start shares the end's period
    end_period = _period_of(times[1])
    start = parse_time(times[0], default_period=end_period)
    end = parse_time(times[1])
    if start is None or end is None:
        logger.debug(f"Could not parse time range: {time_range}")
        return 0

    if end > start:
        return end - start
    return 24 - start + end


def parse_day(day_text: str) -> DaySchedule:
    """Parse one 'Monday: 9:00 AM – 5:00 PM' entry"""
    day, _, hours = _SPACES.sub(' ', day_text).partition(': ')
    hours = hours.strip() or 'Closed'
    is_open = hours.lower() != 'closed'

    hours_count = 0.0
    if is_open:
        if hours.lower() == OPEN_24_HOURS:
            hours_count = 24.0
        else:
            hours_count = float(sum(parse_range_hours(r) for r in hours.split(',')))

    return DaySchedule(day=day.strip(), hours=hours, is_open=is_open, hours_count=hours_count)


def default_schedule() -> List[DaySchedule]:
    """Schedule shown when a place publishes no hours"""
    return [DaySchedule(day=day, hours='Hours not available', is_open=False, hours_count=0) for day in DAYS_OF_WEEK]


def parse_store_hours(weekday_text: Optional[List[str]]) -> StoreHours:
    """
    Parse weekday_text into a schedule and check it against the minimums

    A location passes with at least MIN_DAYS_OPEN open days averaging at
    least MIN_AVERAGE_HOURS hours per open day.
    """
    if not weekday_text:
        return StoreHours(days_open=0, average_hours_per_day=0, meets_requirements=False,
                          weekly_schedule=default_schedule())

    schedule = [parse_day(day_text) for day_text in weekday_text]

    days_open = sum(1 for s in schedule if s.is_open)
    total_hours = sum(s.hours_count for s in schedule)
    average_hours_per_day = total_hours / days_open if days_open > 0 else 0
    meets_requirements = days_open >= MIN_DAYS_OPEN and average_hours_per_day >= MIN_AVERAGE_HOURS

    return StoreHours(
        days_open=days_open,
        average_hours_per_day=average_hours_per_day,
        meets_requirements=meets_requirements,
        weekly_schedule=schedule
    )
