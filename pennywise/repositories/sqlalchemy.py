from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime

from sqlalchemy import Connection, text
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import SQLAlchemyError
from ulid import ULID

from pennywise.errors import ConcurrentModificationError, DependencyFailureError
from pennywise.models.bill import Bill
from pennywise.models.ledger import Account, Category, CategoryType, LedgerRecord
from pennywise.models.schedule import Frequency
from pennywise.repositories.base import (
    AccountRepository,
    BillRepository,
    CategoryRepository,
    LedgerRepository,
    UnitOfWork,
)
from pennywise.settings import settings

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(settings.get_timezone())


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


class SQLAlchemyAccountRepository(AccountRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    @staticmethod
    def _row_to_account(row: RowMapping) -> Account:
        return Account(
            id=row["id"],
            uuid=row["uuid"],
            owner_id=row["owner_id"],
            name=row["name"],
            balance=row["balance"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def create(self, account: Account) -> Account:
        now = _now()
        result = self.conn.execute(
            text(
                "INSERT INTO accounts (uuid, owner_id, name, balance, created_at, updated_at) "
                "VALUES (:uuid, :owner_id, :name, :balance, :created_at, :updated_at)"
            ),
            {
                "uuid": str(ULID()),
                "owner_id": account.owner_id,
                "name": account.name,
                "balance": account.balance,
                "created_at": now,
                "updated_at": now,
            },
        )
        account_id = result.lastrowid
        created = self.get_by_id(account_id)
        if created is None:
            raise RuntimeError(f"Failed to retrieve account after create (id={account_id})")
        return created

    def get_by_id(self, account_id: int) -> Account | None:
        row = (
            self.conn.execute(text("SELECT * FROM accounts WHERE id = :id"), {"id": account_id})
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_account(row)

    def get_for_owner(self, account_id: int, owner_id: int) -> Account | None:
        row = (
            self.conn.execute(
                text("SELECT * FROM accounts WHERE id = :id AND owner_id = :owner_id"),
                {"id": account_id, "owner_id": owner_id},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_account(row)

    def list_for_owner(self, owner_id: int) -> list[Account]:
        rows = (
            self.conn.execute(
                text("SELECT * FROM accounts WHERE owner_id = :owner_id ORDER BY name"),
                {"owner_id": owner_id},
            )
            .mappings()
            .fetchall()
        )
        return [self._row_to_account(row) for row in rows]

    def add_balance(self, account_id: int, delta: int) -> None:
        result = self.conn.execute(
            text("UPDATE accounts SET balance = balance + :delta, updated_at = :updated_at WHERE id = :id"),
            {"delta": delta, "updated_at": _now(), "id": account_id},
        )
        if result.rowcount == 0:
            raise DependencyFailureError(f"Account {account_id} not found")


class SQLAlchemyCategoryRepository(CategoryRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    @staticmethod
    def _row_to_category(row: RowMapping) -> Category:
        return Category(
            id=row["id"],
            uuid=row["uuid"],
            owner_id=row["owner_id"],
            name=row["name"],
            category_type=CategoryType(row["category_type"]),
            created_at=row["created_at"],
        )

    def create(self, category: Category) -> Category:
        result = self.conn.execute(
            text(
                "INSERT INTO categories (uuid, owner_id, name, category_type, created_at) "
                "VALUES (:uuid, :owner_id, :name, :category_type, :created_at)"
            ),
            {
                "uuid": str(ULID()),
                "owner_id": category.owner_id,
                "name": category.name,
                "category_type": category.category_type.value,
                "created_at": _now(),
            },
        )
        category_id = result.lastrowid
        created = self.get_by_id(category_id)
        if created is None:
            raise RuntimeError(f"Failed to retrieve category after create (id={category_id})")
        return created

    def get_by_id(self, category_id: int) -> Category | None:
        row = (
            self.conn.execute(text("SELECT * FROM categories WHERE id = :id"), {"id": category_id})
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_category(row)

    def get_for_owner(self, category_id: int, owner_id: int) -> Category | None:
        row = (
            self.conn.execute(
                text("SELECT * FROM categories WHERE id = :id AND owner_id = :owner_id"),
                {"id": category_id, "owner_id": owner_id},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_category(row)

    def list_for_owner(self, owner_id: int) -> list[Category]:
        rows = (
            self.conn.execute(
                text("SELECT * FROM categories WHERE owner_id = :owner_id ORDER BY name"),
                {"owner_id": owner_id},
            )
            .mappings()
            .fetchall()
        )
        return [self._row_to_category(row) for row in rows]


class SQLAlchemyLedgerRepository(LedgerRepository):
    def __init__(
        self,
        conn: Connection,
        accounts: AccountRepository,
        categories: CategoryRepository,
    ) -> None:
        self.conn = conn
        self.accounts = accounts
        self.categories = categories

    @staticmethod
    def _row_to_record(row: RowMapping) -> LedgerRecord:
        return LedgerRecord(
            id=row["id"],
            uuid=row["uuid"],
            owner_id=row["owner_id"],
            amount=row["amount"],
            record_date=row["record_date"],
            description=row["description"],
            account_id=row["account_id"],
            category_id=row["category_id"],
            bill_id=row["bill_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _category(self, category_id: int, owner_id: int) -> Category:
        category = self.categories.get_for_owner(category_id, owner_id)
        if category is None:
            raise DependencyFailureError(f"Category {category_id} not found")
        return category

    def _require_account(self, account_id: int, owner_id: int) -> None:
        if self.accounts.get_for_owner(account_id, owner_id) is None:
            raise DependencyFailureError(f"Account {account_id} not found")

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
    ) -> LedgerRecord:
        category = self._category(category_id, owner_id)
        self._require_account(account_id, owner_id)
        signed = category.signed(amount)
        now = _now()
        result = self.conn.execute(
            text(
                "INSERT INTO ledger_records (uuid, owner_id, amount, record_date, description, "
                "account_id, category_id, bill_id, created_at, updated_at) "
                "VALUES (:uuid, :owner_id, :amount, :record_date, :description, "
                ":account_id, :category_id, :bill_id, :created_at, :updated_at)"
            ),
            {
                "uuid": str(ULID()),
                "owner_id": owner_id,
                "amount": signed,
                "record_date": _iso(record_date),
                "description": description,
                "account_id": account_id,
                "category_id": category_id,
                "bill_id": bill_id,
                "created_at": now,
                "updated_at": now,
            },
        )
        record_id = result.lastrowid
        self.accounts.add_balance(account_id, signed)
        logger.debug("Ledger record %s created: account=%s amount=%d", record_id, account_id, signed)
        created = self.get_by_id(record_id)
        if created is None:
            raise RuntimeError(f"Failed to retrieve ledger record after create (id={record_id})")
        return created

    def get_by_id(self, record_id: int) -> LedgerRecord | None:
        row = (
            self.conn.execute(text("SELECT * FROM ledger_records WHERE id = :id"), {"id": record_id})
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_record(row)

    def _require_record(self, record_id: int) -> LedgerRecord:
        record = self.get_by_id(record_id)
        if record is None:
            raise DependencyFailureError(f"Ledger record {record_id} not found")
        return record

    def update(
        self,
        record_id: int,
        *,
        amount: int | None = None,
        account_id: int | None = None,
        category_id: int | None = None,
    ) -> LedgerRecord:
        record = self._require_record(record_id)
        old_category = self._category(record.category_id, record.owner_id)
        new_category = old_category
        if category_id is not None and category_id != record.category_id:
            new_category = self._category(category_id, record.owner_id)
        new_account_id = record.account_id if account_id is None else account_id
        if new_account_id != record.account_id:
            self._require_account(new_account_id, record.owner_id)

        # signed() is its own inverse, so it also recovers the unsigned amount.
        unsigned = old_category.signed(record.amount) if amount is None else amount
        new_signed = new_category.signed(unsigned)

        self.conn.execute(
            text(
                "UPDATE ledger_records SET amount = :amount, account_id = :account_id, "
                "category_id = :category_id, updated_at = :updated_at WHERE id = :id"
            ),
            {
                "amount": new_signed,
                "account_id": new_account_id,
                "category_id": new_category.id,
                "updated_at": _now(),
                "id": record_id,
            },
        )
        if new_account_id == record.account_id:
            if new_signed != record.amount:
                self.accounts.add_balance(record.account_id, new_signed - record.amount)
        else:
            self.accounts.add_balance(record.account_id, -record.amount)
            self.accounts.add_balance(new_account_id, new_signed)
        logger.debug("Ledger record %s updated: account=%s amount=%d", record_id, new_account_id, new_signed)
        return self._require_record(record_id)

    def delete(self, record_id: int) -> None:
        record = self._require_record(record_id)
        self.conn.execute(text("DELETE FROM ledger_records WHERE id = :id"), {"id": record_id})
        self.accounts.add_balance(record.account_id, -record.amount)
        logger.debug("Ledger record %s deleted, reversed %d on account=%s", record_id, record.amount, record.account_id)

    def list_by_bill(self, bill_id: int) -> list[LedgerRecord]:
        rows = (
            self.conn.execute(
                text("SELECT * FROM ledger_records WHERE bill_id = :bill_id ORDER BY record_date, id"),
                {"bill_id": bill_id},
            )
            .mappings()
            .fetchall()
        )
        return [self._row_to_record(row) for row in rows]


class SQLAlchemyBillRepository(BillRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    @staticmethod
    def _row_to_bill(row: RowMapping) -> Bill:
        overrides = row["overrides"]
        if isinstance(overrides, str):
            overrides = json.loads(overrides)
        return Bill(
            id=row["id"],
            uuid=row["uuid"],
            owner_id=row["owner_id"],
            name=row["name"],
            amount=row["amount"],
            due_date=row["due_date"],
            end_date=row["end_date"],
            frequency=Frequency(row["frequency"]),
            category_id=row["category_id"],
            account_id=row["account_id"],
            overrides=overrides or {},
            version=row["version"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            deleted_at=row["deleted_at"],
        )

    @staticmethod
    def _dump_overrides(bill: Bill) -> str:
        return json.dumps({key: override.to_storage() for key, override in sorted(bill.overrides.items())})

    def _get_by_id(self, bill_id: int) -> Bill | None:
        row = (
            self.conn.execute(
                text("SELECT * FROM bills WHERE id = :id AND deleted_at IS NULL"),
                {"id": bill_id},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_bill(row)

    def create(self, bill: Bill) -> Bill:
        now = _now()
        result = self.conn.execute(
            text(
                "INSERT INTO bills (uuid, owner_id, name, amount, due_date, end_date, frequency, "
                "category_id, account_id, overrides, version, created_at, updated_at) "
                "VALUES (:uuid, :owner_id, :name, :amount, :due_date, :end_date, :frequency, "
                ":category_id, :account_id, :overrides, 0, :created_at, :updated_at)"
            ),
            {
                "uuid": str(ULID()),
                "owner_id": bill.owner_id,
                "name": bill.name,
                "amount": bill.amount,
                "due_date": _iso(bill.due_date),
                "end_date": _iso(bill.end_date),
                "frequency": bill.frequency.value,
                "category_id": bill.category_id,
                "account_id": bill.account_id,
                "overrides": self._dump_overrides(bill),
                "created_at": now,
                "updated_at": now,
            },
        )
        bill_id = result.lastrowid
        created = self._get_by_id(bill_id)
        if created is None:
            raise RuntimeError(f"Failed to retrieve bill after create (id={bill_id})")
        return created

    def load(self, bill_id: int, owner_id: int) -> Bill | None:
        row = (
            self.conn.execute(
                text("SELECT * FROM bills WHERE id = :id AND owner_id = :owner_id AND deleted_at IS NULL"),
                {"id": bill_id, "owner_id": owner_id},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_bill(row)

    def get_by_uuid(self, uuid: str, owner_id: int) -> Bill | None:
        row = (
            self.conn.execute(
                text("SELECT * FROM bills WHERE uuid = :uuid AND owner_id = :owner_id AND deleted_at IS NULL"),
                {"uuid": uuid, "owner_id": owner_id},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_bill(row)

    def list_for_owner(self, owner_id: int) -> list[Bill]:
        rows = (
            self.conn.execute(
                text("SELECT * FROM bills WHERE owner_id = :owner_id AND deleted_at IS NULL ORDER BY due_date, id"),
                {"owner_id": owner_id},
            )
            .mappings()
            .fetchall()
        )
        return [self._row_to_bill(row) for row in rows]

    def save(self, bill: Bill) -> Bill:
        if bill.id is None:
            raise ValueError("Cannot save bill without an id")
        result = self.conn.execute(
            text(
                "UPDATE bills SET name = :name, amount = :amount, due_date = :due_date, "
                "end_date = :end_date, frequency = :frequency, category_id = :category_id, "
                "account_id = :account_id, overrides = :overrides, version = version + 1, "
                "updated_at = :updated_at "
                "WHERE id = :id AND version = :version AND deleted_at IS NULL"
            ),
            {
                "name": bill.name,
                "amount": bill.amount,
                "due_date": _iso(bill.due_date),
                "end_date": _iso(bill.end_date),
                "frequency": bill.frequency.value,
                "category_id": bill.category_id,
                "account_id": bill.account_id,
                "overrides": self._dump_overrides(bill),
                "updated_at": _now(),
                "id": bill.id,
                "version": bill.version,
            },
        )
        if result.rowcount == 0:
            raise ConcurrentModificationError(f"Bill {bill.id} was modified concurrently (version {bill.version})")
        saved = self._get_by_id(bill.id)
        if saved is None:
            raise RuntimeError(f"Failed to retrieve bill after save (id={bill.id})")
        return saved

    def delete(self, bill_id: int) -> None:
        self.conn.execute(
            text("UPDATE bills SET deleted_at = :deleted_at WHERE id = :id"),
            {"deleted_at": _now(), "id": bill_id},
        )


class SQLAlchemyUnitOfWork(UnitOfWork):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn
        self.accounts = SQLAlchemyAccountRepository(conn)
        self.categories = SQLAlchemyCategoryRepository(conn)
        self.ledger = SQLAlchemyLedgerRepository(conn, self.accounts, self.categories)
        self.bills = SQLAlchemyBillRepository(conn)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.conn.rollback()
            logger.exception("Storage error, unit of work rolled back")
            raise DependencyFailureError("Storage operation failed") from exc
        except Exception:
            self.conn.rollback()
            raise
        try:
            self.conn.commit()
        except SQLAlchemyError as exc:
            self.conn.rollback()
            logger.exception("Commit failed, unit of work rolled back")
            raise DependencyFailureError("Storage commit failed") from exc
