"""Expand a bill's recurrence into dated instances.

Nothing here is stored or cached: instances are derived on every read from
the bill definition and its sparse override map. The walk threads an
immutable ``Baseline`` through each occurrence; an override flagged
``apply_to_future`` is folded into it and becomes the template for every
later occurrence, while plain overrides only affect their own date.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import date
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict

from pennywise.errors import InvalidOperationError
from pennywise.models.bill import Bill, BillInstance, Override
from pennywise.models.schedule import BillStatus, Frequency
from pennywise.recurrence.clock import classify, day_key, shift, today

logger = logging.getLogger(__name__)

CASCADING_FIELDS = (
    "name",
    "amount",
    "due_date",
    "end_date",
    "frequency",
    "category_id",
    "account_id",
    "is_deleted",
)


class Baseline(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    amount: int
    due_date: date
    end_date: date | None = None
    frequency: Frequency
    category_id: int
    account_id: int
    is_deleted: bool = False
    # Occurrences are computed as ``anchor + index * period``.
    anchor: date
    index: int = 0

    @classmethod
    def from_bill(cls, bill: Bill) -> Baseline:
        return cls(
            name=bill.name,
            amount=bill.amount,
            due_date=bill.due_date,
            end_date=bill.end_date,
            frequency=bill.frequency,
            category_id=bill.category_id,
            account_id=bill.account_id,
            anchor=bill.due_date,
        )

    def covers(self, until: date) -> bool:
        if self.due_date > until:
            return False
        return self.end_date is None or self.due_date <= self.end_date

    def absorb(self, override: Override) -> Baseline:
        update = {}
        for field in CASCADING_FIELDS:
            # Payment pins belong to their own occurrence only.
            value = override.edited(field)
            if value is not None:
                update[field] = value
        shifted = self.model_copy(update=update)
        if shifted.due_date != self.due_date or shifted.frequency != self.frequency:
            shifted = shifted.model_copy(update={"anchor": shifted.due_date, "index": 0})
        return shifted

    def following(self, original: date) -> Baseline:
        """Advance to the first occurrence strictly after ``original``.

        A cascade may move the series backwards; skipping past ``original``
        keeps keys strictly increasing so the walk always terminates.
        """
        index = self.index + 1
        due = shift(self.anchor, self.frequency, index)
        while due <= original:
            index += 1
            due = shift(self.anchor, self.frequency, index)
        return self.model_copy(update={"due_date": due, "index": index})


class Occurrence(NamedTuple):
    original_date: date
    baseline: Baseline
    override: Override | None

    @property
    def key(self) -> str:
        return day_key(self.original_date)

    @property
    def is_paid(self) -> bool:
        return self.override is not None and self.override.is_paid

    @property
    def is_deleted(self) -> bool:
        # Money already moved for a paid occurrence, so it stays visible.
        if self.is_paid:
            return False
        if self.override is not None and self.override.is_deleted:
            return True
        return self.baseline.is_deleted


def walk(bill: Bill, until: date) -> Iterator[Occurrence]:
    """Yield every occurrence whose original date is on or before ``until``."""
    baseline = Baseline.from_bill(bill)
    while baseline.covers(until):
        original = baseline.due_date
        override = bill.overrides.get(day_key(original))
        if override is not None and override.apply_to_future:
            baseline = baseline.absorb(override)
        yield Occurrence(original, baseline, override)
        if baseline.frequency == Frequency.ONCE:
            return
        baseline = baseline.following(original)


def _pick(value, fallback):
    return fallback if value is None else value


def build_instance(
    bill: Bill,
    original_date: date,
    baseline: Baseline,
    override: Override | None,
    reference: date,
) -> BillInstance:
    override = override or Override()
    due_date = _pick(override.due_date, original_date)
    if override.is_paid:
        status = BillStatus.PAID
    else:
        status = classify(due_date, reference)
    return BillInstance(
        bill_id=bill.id,
        bill_uuid=bill.uuid,
        target_date=original_date,
        name=_pick(override.name, baseline.name),
        amount=_pick(override.amount, baseline.amount),
        due_date=due_date,
        end_date=_pick(override.end_date, baseline.end_date),
        frequency=_pick(override.frequency, baseline.frequency),
        category_id=_pick(override.category_id, baseline.category_id),
        account_id=_pick(override.account_id, baseline.account_id),
        status=status,
        paid_date=override.paid_date,
        transaction_id=override.transaction_id,
        apply_to_future=override.apply_to_future,
    )


def materialize(
    bill: Bill,
    range_start: date,
    range_end: date,
    reference: date | None = None,
) -> list[BillInstance]:
    """Instances whose original date falls in ``[range_start, range_end]``.

    Unpaid overdue occurrences from before ``range_start`` are carried over
    and returned first. Both groups come out in date order.
    """
    if range_start > range_end:
        raise InvalidOperationError("range_start must not be after range_end")
    reference = reference or today()

    carried: list[BillInstance] = []
    in_range: list[BillInstance] = []
    for occurrence in walk(bill, range_end):
        if occurrence.is_deleted:
            continue
        instance = build_instance(bill, occurrence.original_date, occurrence.baseline, occurrence.override, reference)
        if occurrence.original_date < range_start:
            if instance.status == BillStatus.OVERDUE:
                carried.append(instance)
        else:
            in_range.append(instance)

    logger.debug(
        "Materialized bill=%s range=%s..%s carried=%d in_range=%d",
        bill.id,
        range_start,
        range_end,
        len(carried),
        len(in_range),
    )
    return carried + in_range


def find_occurrence(bill: Bill, target_date: date) -> Occurrence | None:
    for occurrence in walk(bill, target_date):
        if occurrence.original_date == target_date:
            return occurrence
    return None


def instance_at(bill: Bill, target_date: date, reference: date | None = None) -> BillInstance:
    """Instance for one known occurrence, without walking the series.

    The baseline is rebuilt by folding the cascading overrides dated on or
    before ``target_date``; the occurrence's own override is applied on top.
    """
    baseline = Baseline.from_bill(bill)
    target_key = day_key(target_date)
    for key in sorted(bill.overrides):
        if key > target_key:
            break
        override = bill.overrides[key]
        if override.apply_to_future:
            baseline = baseline.absorb(override)
    return build_instance(bill, target_date, baseline, bill.overrides.get(target_key), reference or today())
