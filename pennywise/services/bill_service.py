from __future__ import annotations

import logging
from datetime import date

from pennywise.errors import AlreadyPaidError, InvalidOperationError, NotFoundError, NotPaidError
from pennywise.models.bill import Bill, BillChanges, BillInstance
from pennywise.models.ledger import Account, Category, LedgerRecord
from pennywise.models.schedule import Frequency
from pennywise.recurrence import mutator
from pennywise.recurrence.clock import today
from pennywise.recurrence.materializer import Occurrence, find_occurrence, instance_at, materialize
from pennywise.repositories.base import UnitOfWork

logger = logging.getLogger(__name__)


class BillService:
    """Recurring bills, their occurrences and the payments made against them.

    Every public method runs inside one ``UnitOfWork.transaction()``: the bill
    save and any ledger/balance mutation commit together or not at all.
    """

    def __init__(self, uow: UnitOfWork) -> None:
        self.uow = uow

    def _load(self, bill_id: int, owner_id: int) -> Bill:
        bill = self.uow.bills.load(bill_id, owner_id)
        if bill is None:
            raise NotFoundError(f"Bill {bill_id} not found")
        return bill

    @staticmethod
    def _occurrence(bill: Bill, target_date: date) -> Occurrence:
        occurrence = find_occurrence(bill, target_date)
        if occurrence is None:
            raise NotFoundError(f"Bill {bill.id} has no occurrence on {target_date}")
        return occurrence

    def create_bill(
        self,
        *,
        owner_id: int,
        name: str,
        amount: int,
        due_date: date,
        frequency: Frequency,
        account_id: int,
        category_id: int,
        end_date: date | None = None,
    ) -> Bill:
        if end_date is not None and end_date < due_date:
            raise InvalidOperationError("end_date must not precede due_date")
        with self.uow.transaction():
            if self.uow.accounts.get_for_owner(account_id, owner_id) is None:
                raise NotFoundError(f"Account {account_id} not found")
            if self.uow.categories.get_for_owner(category_id, owner_id) is None:
                raise NotFoundError(f"Category {category_id} not found")
            bill = self.uow.bills.create(
                Bill(
                    owner_id=owner_id,
                    name=name,
                    amount=amount,
                    due_date=due_date,
                    end_date=end_date,
                    frequency=frequency,
                    account_id=account_id,
                    category_id=category_id,
                )
            )
        logger.info(
            "Bill created: id=%s, name=%s, frequency=%s, amount=%d",
            bill.id,
            bill.name,
            bill.frequency.value,
            bill.amount,
        )
        return bill

    def get_bill(self, bill_id: int, owner_id: int) -> Bill:
        with self.uow.transaction():
            bill = self._load(bill_id, owner_id)
        logger.debug("get_bill id=%s owner=%s", bill_id, owner_id)
        return bill

    def list_accounts(self, owner_id: int) -> list[Account]:
        with self.uow.transaction():
            return self.uow.accounts.list_for_owner(owner_id)

    def list_categories(self, owner_id: int) -> list[Category]:
        with self.uow.transaction():
            return self.uow.categories.list_for_owner(owner_id)

    def list_bills(self, owner_id: int) -> list[Bill]:
        with self.uow.transaction():
            bills = self.uow.bills.list_for_owner(owner_id)
        logger.debug("Listed %d bills for owner=%s", len(bills), owner_id)
        return bills

    def list_instances(
        self,
        owner_id: int,
        range_start: date,
        range_end: date,
        bill_id: int | None = None,
    ) -> list[BillInstance]:
        """Occurrences in the window, each bill's carried-over overdue ones first."""
        if range_start > range_end:
            raise InvalidOperationError("range_start must not be after range_end")
        with self.uow.transaction():
            if bill_id is not None:
                bills = [self._load(bill_id, owner_id)]
            else:
                bills = self.uow.bills.list_for_owner(owner_id)
        reference = today()
        instances = [instance for bill in bills for instance in materialize(bill, range_start, range_end, reference)]
        logger.debug(
            "Listed %d instances for owner=%s range=%s..%s",
            len(instances),
            owner_id,
            range_start,
            range_end,
        )
        return instances

    def pay_instance(self, bill_id: int, owner_id: int, target_date: date, paid_date: date) -> BillInstance:
        with self.uow.transaction():
            bill = self._load(bill_id, owner_id)
            occurrence = self._occurrence(bill, target_date)
            if occurrence.is_paid:
                raise AlreadyPaidError(f"Bill {bill_id} occurrence {target_date} is already paid")
            if occurrence.is_deleted:
                raise NotFoundError(f"Bill {bill_id} occurrence {target_date} was deleted")

            instance = instance_at(bill, target_date)
            record = self.uow.ledger.create(
                owner_id=owner_id,
                amount=instance.amount,
                record_date=paid_date,
                description=instance.name,
                account_id=instance.account_id,
                category_id=instance.category_id,
                bill_id=bill.id,
            )
            if record.id is None:
                raise ValueError("Ledger returned a record without an id")
            bill = self.uow.bills.save(mutator.mark_paid(bill, instance, paid_date, record.id))

        logger.info(
            "Bill %s occurrence %s paid: record=%s amount=%d account=%s",
            bill_id,
            target_date,
            record.id,
            record.amount,
            record.account_id,
        )
        return instance_at(bill, target_date)

    def cancel_instance_payment(self, bill_id: int, owner_id: int, target_date: date) -> BillInstance:
        with self.uow.transaction():
            bill = self._load(bill_id, owner_id)
            override = bill.override_at(target_date)
            if override is None or not override.is_paid:
                raise NotPaidError(f"Bill {bill_id} occurrence {target_date} is not paid")
            if override.transaction_id is not None:
                self.uow.ledger.delete(override.transaction_id)
            bill = self.uow.bills.save(mutator.clear_payment(bill, target_date))

        logger.info(
            "Bill %s occurrence %s payment cancelled: record=%s removed",
            bill_id,
            target_date,
            override.transaction_id,
        )
        return instance_at(bill, target_date)

    def update_instance(
        self,
        bill_id: int,
        owner_id: int,
        target_date: date,
        changes: BillChanges,
        apply_to_future: bool = False,
    ) -> BillInstance:
        with self.uow.transaction():
            bill = self._load(bill_id, owner_id)
            self._occurrence(bill, target_date)
            before = instance_at(bill, target_date)
            bill = mutator.update_instance(bill, target_date, changes, apply_to_future)
            after = instance_at(bill, target_date)
            if before.is_paid and before.transaction_id is not None and changes.touches_ledger:
                self._sync_ledger(before.transaction_id, before, after)
            bill = self.uow.bills.save(bill)

        logger.info(
            "Bill %s occurrence %s updated: fields=%s apply_to_future=%s",
            bill_id,
            target_date,
            sorted(changes.model_fields_set),
            apply_to_future,
        )
        return instance_at(bill, target_date)

    def _sync_ledger(self, record_id: int, before: BillInstance, after: BillInstance) -> None:
        """Keep a paid occurrence's ledger record in line with its visible state."""
        patch: dict[str, int] = {}
        if after.amount != before.amount:
            patch["amount"] = after.amount
        if after.account_id != before.account_id:
            patch["account_id"] = after.account_id
        if after.category_id != before.category_id:
            patch["category_id"] = after.category_id
        if not patch:
            return
        self.uow.ledger.update(record_id, **patch)
        logger.debug("Ledger record %s patched with %s", record_id, patch)

    def delete_instance(
        self,
        bill_id: int,
        owner_id: int,
        target_date: date,
        apply_to_future: bool = False,
    ) -> None:
        with self.uow.transaction():
            bill = self._load(bill_id, owner_id)
            self._occurrence(bill, target_date)
            self.uow.bills.save(mutator.delete_instance(bill, target_date, apply_to_future))
        logger.info(
            "Bill %s occurrence %s deleted (apply_to_future=%s)",
            bill_id,
            target_date,
            apply_to_future,
        )

    def delete_bill(self, bill_id: int, owner_id: int) -> None:
        with self.uow.transaction():
            bill = self._load(bill_id, owner_id)
            if bill.id is None:
                raise ValueError("Cannot delete bill without an id")
            self.uow.bills.delete(bill.id)
        logger.info("Bill %s soft-deleted", bill_id)

    def list_payments(self, bill_id: int, owner_id: int) -> list[LedgerRecord]:
        with self.uow.transaction():
            bill = self._load(bill_id, owner_id)
            if bill.id is None:
                raise ValueError("Bill has no id")
            records = self.uow.ledger.list_by_bill(bill.id)
        logger.debug("Listed %d payments for bill=%s", len(records), bill_id)
        return records
