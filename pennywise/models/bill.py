from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel

from pennywise.models.schedule import BillStatus, Frequency
from pennywise.recurrence.clock import day_key, parse_day_key


class BillChanges(BaseModel):
    """A partial edit of one occurrence.

    Only fields the caller explicitly sets take part in a merge. Setting a
    field to ``None`` explicitly clears a previous override of it.
    """

    name: str | None = None
    amount: int | None = None  # cents
    due_date: date | None = None
    end_date: date | None = None
    frequency: Frequency | None = None
    category_id: int | None = None
    account_id: int | None = None
    is_deleted: bool | None = None

    @property
    def changes_shape(self) -> bool:
        return self.end_date is not None or self.frequency is not None

    @property
    def touches_ledger(self) -> bool:
        # Explicitly clearing one of these moves the ledger too.
        return bool({"amount", "account_id", "category_id"} & self.model_fields_set)


class Override(BillChanges):
    is_paid: bool = False
    paid_date: date | None = None
    transaction_id: int | None = None
    apply_to_future: bool = False
    # Fields copied in by a payment rather than set by an edit.
    pinned_fields: list[str] = []

    def merge(self, changes: BillChanges) -> Override:
        update = changes.model_dump(exclude_unset=True)
        # An explicit edit of a pinned field makes it a real edit.
        update["pinned_fields"] = [name for name in self.pinned_fields if name not in update]
        return self.model_copy(update=update)

    def with_payment(self, paid_date: date, transaction_id: int, pinned: dict | None = None) -> Override:
        """Stamp a payment, copying ``pinned`` values into fields no edit has set."""
        update = {"is_paid": True, "paid_date": paid_date, "transaction_id": transaction_id}
        pinned_fields = list(self.pinned_fields)
        for name, value in (pinned or {}).items():
            if getattr(self, name) is None:
                update[name] = value
                pinned_fields.append(name)
        update["pinned_fields"] = sorted(set(pinned_fields))
        return self.model_copy(update=update)

    def without_payment(self) -> Override:
        update = {name: None for name in self.pinned_fields}
        update.update({"is_paid": False, "paid_date": None, "transaction_id": None, "pinned_fields": []})
        return self.model_copy(update=update)

    def edited(self, name: str) -> object | None:
        """Value of ``name`` set by an edit, ignoring payment pins."""
        if name in self.pinned_fields:
            return None
        return getattr(self, name)

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", exclude_defaults=True)


class Bill(BaseModel):
    id: int | None = None
    uuid: str = ""
    owner_id: int
    name: str
    amount: int  # cents
    due_date: date
    end_date: date | None = None
    frequency: Frequency
    category_id: int
    account_id: int
    overrides: dict[str, Override] = {}
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    def override_at(self, target: date) -> Override | None:
        return self.overrides.get(day_key(target))

    def with_override(self, target: date, override: Override) -> Bill:
        overrides = dict(self.overrides)
        overrides[day_key(target)] = override
        return self.model_copy(update={"overrides": overrides})

    def without_unpaid_overrides_after(self, target: date) -> Bill:
        overrides = {
            key: override
            for key, override in self.overrides.items()
            if parse_day_key(key) <= target or override.is_paid
        }
        return self.model_copy(update={"overrides": overrides})

    def paid_overrides_after(self, target: date) -> list[str]:
        return sorted(
            key for key, override in self.overrides.items() if override.is_paid and parse_day_key(key) > target
        )


class BillInstance(BaseModel):
    bill_id: int | None = None
    bill_uuid: str = ""
    target_date: date  # original occurrence date, stable across edits
    name: str
    amount: int  # cents
    due_date: date
    end_date: date | None = None
    frequency: Frequency
    category_id: int
    account_id: int
    status: BillStatus
    paid_date: date | None = None
    transaction_id: int | None = None
    apply_to_future: bool = False

    @property
    def is_paid(self) -> bool:
        return self.status == BillStatus.PAID

    @property
    def key(self) -> str:
        return day_key(self.target_date)
