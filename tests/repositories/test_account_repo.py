import pytest

from pennywise.errors import DependencyFailureError
from pennywise.models.ledger import CategoryType


class TestAccountRepo:
    def test_create_and_get(self, uow, sample_account):
        created = uow.accounts.create(sample_account(balance=2500))

        assert created.id is not None
        assert len(created.uuid) == 26
        assert created.balance == 2500
        assert created.created_at is not None

    def test_get_by_id_not_found(self, uow):
        assert uow.accounts.get_by_id(9999) is None

    def test_get_for_owner_scopes_by_owner(self, uow, sample_account):
        created = uow.accounts.create(sample_account(owner_id=2))

        assert uow.accounts.get_for_owner(created.id, 2) is not None
        assert uow.accounts.get_for_owner(created.id, 1) is None

    def test_list_for_owner_sorted_by_name(self, uow, sample_account):
        uow.accounts.create(sample_account(name="Savings"))
        uow.accounts.create(sample_account(name="Checking"))
        uow.accounts.create(sample_account(name="Other owner", owner_id=2))

        assert [a.name for a in uow.accounts.list_for_owner(1)] == ["Checking", "Savings"]

    def test_add_balance(self, uow, account):
        uow.accounts.add_balance(account.id, -2500)
        uow.accounts.add_balance(account.id, 1000)
        assert uow.accounts.get_by_id(account.id).balance == account.balance - 1500

    def test_add_balance_unknown_account(self, uow):
        with pytest.raises(DependencyFailureError):
            uow.accounts.add_balance(9999, 100)


class TestCategoryRepo:
    def test_create_and_get(self, uow, sample_category):
        created = uow.categories.create(sample_category(category_type=CategoryType.INCOME))

        fetched = uow.categories.get_by_id(created.id)
        assert fetched is not None
        assert fetched.category_type == CategoryType.INCOME

    def test_get_for_owner_scopes_by_owner(self, uow, category):
        assert uow.categories.get_for_owner(category.id, 1) is not None
        assert uow.categories.get_for_owner(category.id, 2) is None

    def test_list_for_owner(self, uow, sample_category):
        uow.categories.create(sample_category(name="Utilities"))
        uow.categories.create(sample_category(name="Housing"))
        assert [c.name for c in uow.categories.list_for_owner(1)] == ["Housing", "Utilities"]
