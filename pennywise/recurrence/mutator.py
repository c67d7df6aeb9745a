"""Pure edits of a bill's override map.

Each function returns a new ``Bill``; the caller decides when (and inside
which unit of work) to persist it.
"""

from __future__ import annotations

import logging
from datetime import date

from pennywise.errors import InvalidOperationError, NotPaidError
from pennywise.models.bill import Bill, BillChanges, BillInstance, Override

logger = logging.getLogger(__name__)


def update_instance(bill: Bill, target_date: date, changes: BillChanges, apply_to_future: bool) -> Bill:
    existing = bill.override_at(target_date)

    if apply_to_future:
        if changes.changes_shape:
            raise InvalidOperationError(
                "end_date and frequency cannot be changed for future occurrences; edit the bill instead"
            )
        if existing is not None and existing.is_paid:
            raise InvalidOperationError("A paid occurrence cannot be applied to future occurrences")
        if changes.due_date is not None:
            paid_later = bill.paid_overrides_after(target_date)
            if paid_later:
                raise InvalidOperationError(
                    f"Cannot move future due dates: occurrence {paid_later[0]} is already paid"
                )
        before = len(bill.overrides)
        bill = bill.without_unpaid_overrides_after(target_date)
        pruned = before - len(bill.overrides)
        if pruned:
            logger.debug("Pruned %d superseded overrides after %s on bill=%s", pruned, target_date, bill.id)

    override = (existing or Override()).merge(changes)
    override = override.model_copy(update={"apply_to_future": apply_to_future})
    return bill.with_override(target_date, override)


def delete_instance(bill: Bill, target_date: date, apply_to_future: bool) -> Bill:
    return update_instance(bill, target_date, BillChanges(is_deleted=True), apply_to_future)


def mark_paid(bill: Bill, instance: BillInstance, paid_date: date, transaction_id: int) -> Bill:
    """Stamp the payment and pin the paid amount, account and category.

    Pinning keeps a later cascade from changing what this occurrence shows
    once its ledger record exists. Pinned fields are dropped again when the
    payment is cleared, so the occurrence follows its baseline once more.
    """
    existing = bill.override_at(instance.target_date) or Override()
    paid = existing.with_payment(
        paid_date,
        transaction_id,
        pinned={"amount": instance.amount, "account_id": instance.account_id, "category_id": instance.category_id},
    )
    return bill.with_override(instance.target_date, paid)


def clear_payment(bill: Bill, target_date: date) -> Bill:
    existing = bill.override_at(target_date)
    if existing is None or not existing.is_paid:
        raise NotPaidError(f"Occurrence {target_date} is not paid")
    return bill.with_override(target_date, existing.without_payment())
