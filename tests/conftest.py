"""Root conftest: in-memory SQLite engine and fixtures for the full schema."""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import Connection, create_engine, event, text
from sqlalchemy.engine import Engine

from pennywise.models.bill import Bill
from pennywise.models.ledger import Account, Category, CategoryType
from pennywise.models.schedule import Frequency
from pennywise.repositories.sqlalchemy import SQLAlchemyUnitOfWork

# Matches Alembic head: 3f1a9c2e7b40 (create ledger and bills)
SCHEMA_DDL = """
CREATE TABLE accounts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uuid VARCHAR(26) NOT NULL UNIQUE,
    owner_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    balance INTEGER NOT NULL DEFAULT 0,
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL
);

CREATE TABLE categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uuid VARCHAR(26) NOT NULL UNIQUE,
    owner_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    category_type TEXT NOT NULL,
    created_at DATETIME NOT NULL
);

CREATE TABLE bills (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uuid VARCHAR(26) NOT NULL UNIQUE,
    owner_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    amount INTEGER NOT NULL,
    due_date VARCHAR(10) NOT NULL,
    end_date VARCHAR(10),
    frequency VARCHAR(10) NOT NULL,
    category_id INTEGER NOT NULL REFERENCES categories(id),
    account_id INTEGER NOT NULL REFERENCES accounts(id),
    overrides TEXT NOT NULL DEFAULT '{}',
    version INTEGER NOT NULL DEFAULT 0,
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL,
    deleted_at DATETIME
);

CREATE TABLE ledger_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uuid VARCHAR(26) NOT NULL UNIQUE,
    owner_id INTEGER NOT NULL,
    amount INTEGER NOT NULL,
    record_date VARCHAR(10) NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    account_id INTEGER NOT NULL REFERENCES accounts(id),
    category_id INTEGER NOT NULL REFERENCES categories(id),
    bill_id INTEGER REFERENCES bills(id),
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL
);
"""


@pytest.fixture()
def db_engine() -> Engine:
    engine = create_engine("sqlite:///:memory:")

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    return engine


@pytest.fixture()
def db_connection(db_engine: Engine) -> Connection:
    conn = db_engine.connect()
    for statement in SCHEMA_DDL.strip().split(";"):
        stmt = statement.strip()
        if stmt:
            conn.execute(text(stmt))
    conn.commit()
    yield conn
    conn.close()


@pytest.fixture()
def uow(db_connection: Connection) -> SQLAlchemyUnitOfWork:
    return SQLAlchemyUnitOfWork(db_connection)


def _sample_account(**overrides) -> Account:
    defaults = dict(owner_id=1, name="Checking", balance=100000)
    defaults.update(overrides)
    return Account(**defaults)


def _sample_category(**overrides) -> Category:
    defaults = dict(owner_id=1, name="Utilities", category_type=CategoryType.EXPENSE)
    defaults.update(overrides)
    return Category(**defaults)


def _sample_bill(account_id: int = 1, category_id: int = 1, **overrides) -> Bill:
    defaults = dict(
        owner_id=1,
        name="Electricity",
        amount=10000,
        due_date=date(2025, 1, 15),
        frequency=Frequency.MONTHLY,
        account_id=account_id,
        category_id=category_id,
    )
    defaults.update(overrides)
    return Bill(**defaults)


@pytest.fixture()
def sample_account():
    return _sample_account


@pytest.fixture()
def sample_category():
    return _sample_category


@pytest.fixture()
def sample_bill():
    return _sample_bill
