"""
Pure expense helpers: recurrence date arithmetic.

Month-based steps clamp to the last day of the target month, so a monthly
rent due on 31 January falls due on 29 February in a leap year and on
31 March after that.  The anchor day is not carried across occurrences:
each step starts from the previous due date.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta

from club_modules.expenses.models import RecurrenceFrequency, RecurringSchedule

_MONTHS_PER_STEP = {
    RecurrenceFrequency.MONTHLY: 1,
    RecurrenceFrequency.QUARTERLY: 3,
    RecurrenceFrequency.YEARLY: 12,
}


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def next_occurrence_date(current: datetime, schedule: RecurringSchedule) -> datetime | None:
    """
    Due date of the occurrence after ``current``, or None when it would fall
    after the schedule's end date.
    """
    if schedule.frequency is RecurrenceFrequency.WEEKLY:
        nxt = current + timedelta(weeks=schedule.interval)
    else:
        nxt = add_months(current, _MONTHS_PER_STEP[schedule.frequency] * schedule.interval)
    if schedule.end_date is not None and nxt > schedule.end_date:
        return None
    return nxt
