"""Calendar arithmetic for bill recurrences.

Bill dates are plain calendar dates (proleptic Gregorian, no time of day, no
zone), so an occurrence's day-key is a pure function of its date. The only
zone-dependent question is what "today" is, answered in the configured
reference zone (UTC unless ``PENNYWISE_TIMEZONE`` says otherwise).
"""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from pennywise.errors import InvalidOperationError
from pennywise.models.schedule import BillStatus, Frequency
from pennywise.settings import settings

DAY_KEY_FORMAT = "%Y-%m-%d"

_PERIODS: dict[Frequency, relativedelta] = {
    Frequency.DAILY: relativedelta(days=1),
    Frequency.WEEKLY: relativedelta(weeks=1),
    Frequency.BIWEEKLY: relativedelta(weeks=2),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.ANNUALLY: relativedelta(years=1),
}


def day_key(value: date) -> str:
    return value.strftime(DAY_KEY_FORMAT)


def parse_day_key(key: str) -> date:
    return datetime.strptime(key, DAY_KEY_FORMAT).date()


def today(tz: ZoneInfo | None = None) -> date:
    return datetime.now(tz or settings.get_timezone()).date()


def shift(anchor: date, frequency: Frequency, steps: int) -> date:
    """Return the ``steps``-th occurrence after ``anchor``.

    Counting from a fixed anchor keeps month-end dates from drifting:
    Jan 31 -> Feb 28 -> Mar 31, not Jan 31 -> Feb 28 -> Mar 28.
    """
    period = _PERIODS.get(frequency)
    if period is None:
        raise InvalidOperationError(f"{frequency.value} bills do not recur")
    return anchor + period * steps


def advance(value: date, frequency: Frequency) -> date:
    return shift(value, frequency, 1)


def classify(due_date: date, reference: date) -> BillStatus:
    if due_date < reference:
        return BillStatus.OVERDUE
    if due_date == reference:
        return BillStatus.DUE
    return BillStatus.UPCOMING
