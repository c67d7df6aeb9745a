from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date

from pennywise.models.bill import Bill
from pennywise.models.ledger import Account, Category, LedgerRecord


class AccountRepository(ABC):
    @abstractmethod
    def create(self, account: Account) -> Account: ...

    @abstractmethod
    def get_by_id(self, account_id: int) -> Account | None: ...

    @abstractmethod
    def get_for_owner(self, account_id: int, owner_id: int) -> Account | None: ...

    @abstractmethod
    def list_for_owner(self, owner_id: int) -> list[Account]: ...

    @abstractmethod
    def add_balance(self, account_id: int, delta: int) -> None: ...


class CategoryRepository(ABC):
    @abstractmethod
    def create(self, category: Category) -> Category: ...

    @abstractmethod
    def get_by_id(self, category_id: int) -> Category | None: ...

    @abstractmethod
    def get_for_owner(self, category_id: int, owner_id: int) -> Category | None: ...

    @abstractmethod
    def list_for_owner(self, owner_id: int) -> list[Category]: ...


class LedgerRepository(ABC):
    """Financial records plus the running account balances they move.

    Every mutation adjusts the affected account balance as part of the same
    call. Unknown accounts, categories or records raise
    ``DependencyFailureError``.
    """

    @abstractmethod
    def create(
        self,
        *,
        owner_id: int,
        amount: int,
        record_date: date,
        description: str,
        account_id: int,
        category_id: int,
        bill_id: int | None = None,
    ) -> LedgerRecord: ...

    @abstractmethod
    def get_by_id(self, record_id: int) -> LedgerRecord | None: ...

    @abstractmethod
    def update(
        self,
        record_id: int,
        *,
        amount: int | None = None,
        account_id: int | None = None,
        category_id: int | None = None,
    ) -> LedgerRecord: ...

    @abstractmethod
    def delete(self, record_id: int) -> None: ...

    @abstractmethod
    def list_by_bill(self, bill_id: int) -> list[LedgerRecord]: ...


class BillRepository(ABC):
    @abstractmethod
    def create(self, bill: Bill) -> Bill: ...

    @abstractmethod
    def load(self, bill_id: int, owner_id: int) -> Bill | None: ...

    @abstractmethod
    def get_by_uuid(self, uuid: str, owner_id: int) -> Bill | None: ...

    @abstractmethod
    def list_for_owner(self, owner_id: int) -> list[Bill]: ...

    @abstractmethod
    def save(self, bill: Bill) -> Bill:
        """Persist definition and overrides; raises ``ConcurrentModificationError``
        when the stored version no longer matches ``bill.version``."""

    @abstractmethod
    def delete(self, bill_id: int) -> None: ...


class UnitOfWork(ABC):
    """Repositories sharing one atomic scope.

    Everything done inside ``transaction()`` commits together or not at all.
    """

    accounts: AccountRepository
    categories: CategoryRepository
    ledger: LedgerRepository
    bills: BillRepository

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]: ...
