from datetime import date

import pytest

from pennywise.errors import DependencyFailureError
from pennywise.models.ledger import CategoryType


def _create(uow, account, category, amount=10000, **overrides):
    fields = dict(
        owner_id=1,
        amount=amount,
        record_date=date(2025, 2, 15),
        description="Electricity",
        account_id=account.id,
        category_id=category.id,
    )
    fields.update(overrides)
    return uow.ledger.create(**fields)


def _balance(uow, account) -> int:
    return uow.accounts.get_by_id(account.id).balance


class TestLedgerCreate:
    def test_expense_is_negated_and_debited(self, uow, account, category):
        record = _create(uow, account, category)

        assert record.id is not None
        assert record.amount == -10000
        assert record.record_date == date(2025, 2, 15)
        assert _balance(uow, account) == account.balance - 10000

    def test_income_is_credited(self, uow, account, sample_category):
        salary = uow.categories.create(sample_category(name="Salary", category_type=CategoryType.INCOME))
        record = _create(uow, account, salary, amount=420000)

        assert record.amount == 420000
        assert _balance(uow, account) == account.balance + 420000

    def test_unknown_category(self, uow, account, category):
        with pytest.raises(DependencyFailureError, match="Category"):
            _create(uow, account, category, category_id=9999)

    def test_unknown_account(self, uow, account, category):
        with pytest.raises(DependencyFailureError, match="Account"):
            _create(uow, account, category, account_id=9999)

    def test_other_owners_account_rejected(self, uow, account, category, sample_account):
        foreign = uow.accounts.create(sample_account(owner_id=2))
        with pytest.raises(DependencyFailureError):
            _create(uow, account, category, account_id=foreign.id)


class TestLedgerUpdate:
    def test_amount_change_adjusts_balance(self, uow, account, category):
        record = _create(uow, account, category)
        updated = uow.ledger.update(record.id, amount=12500)

        assert updated.amount == -12500
        assert _balance(uow, account) == account.balance - 12500

    def test_move_to_other_account(self, uow, account, category, sample_account):
        savings = uow.accounts.create(sample_account(name="Savings", balance=50000))
        record = _create(uow, account, category)
        updated = uow.ledger.update(record.id, account_id=savings.id)

        assert updated.account_id == savings.id
        assert _balance(uow, account) == account.balance
        assert _balance(uow, savings) == 40000

    def test_switch_to_income_category(self, uow, account, category, sample_category):
        refund = uow.categories.create(sample_category(name="Refunds", category_type=CategoryType.INCOME))
        record = _create(uow, account, category)
        updated = uow.ledger.update(record.id, category_id=refund.id)

        assert updated.amount == 10000
        assert _balance(uow, account) == account.balance + 10000

    def test_unknown_record(self, uow):
        with pytest.raises(DependencyFailureError):
            uow.ledger.update(9999, amount=1)


class TestLedgerDelete:
    def test_delete_reverses_balance(self, uow, account, category):
        record = _create(uow, account, category)
        uow.ledger.delete(record.id)

        assert uow.ledger.get_by_id(record.id) is None
        assert _balance(uow, account) == account.balance

    def test_delete_unknown(self, uow):
        with pytest.raises(DependencyFailureError):
            uow.ledger.delete(9999)


class TestLedgerListByBill:
    def test_list_by_bill(self, uow, account, category, sample_bill):
        bill = uow.bills.create(sample_bill(account_id=account.id, category_id=category.id))
        _create(uow, account, category, bill_id=bill.id, record_date=date(2025, 3, 15))
        _create(uow, account, category, bill_id=bill.id, record_date=date(2025, 2, 15))
        _create(uow, account, category)

        records = uow.ledger.list_by_bill(bill.id)
        assert [r.record_date for r in records] == [date(2025, 2, 15), date(2025, 3, 15)]
