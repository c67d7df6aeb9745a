from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel


class CategoryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class Account(BaseModel):
    id: int | None = None
    uuid: str = ""
    owner_id: int
    name: str
    balance: int = 0  # cents
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Category(BaseModel):
    id: int | None = None
    uuid: str = ""
    owner_id: int
    name: str
    category_type: CategoryType = CategoryType.EXPENSE
    created_at: datetime | None = None

    def signed(self, amount: int) -> int:
        """Amount as it moves an account balance: expenses debit, income credits."""
        if self.category_type == CategoryType.EXPENSE:
            return -amount
        return amount


class LedgerRecord(BaseModel):
    id: int | None = None
    uuid: str = ""
    owner_id: int
    amount: int  # cents, already signed
    record_date: date
    description: str = ""
    account_id: int
    category_id: int
    bill_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
