from __future__ import annotations

from enum import Enum


class Frequency(str, Enum):
    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    ANNUALLY = "annually"


class BillStatus(str, Enum):
    OVERDUE = "overdue"
    DUE = "due"
    UPCOMING = "upcoming"
    PAID = "paid"
