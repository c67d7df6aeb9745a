import pytest


@pytest.fixture()
def account(uow, sample_account):
    return uow.accounts.create(sample_account())


@pytest.fixture()
def category(uow, sample_category):
    return uow.categories.create(sample_category())
