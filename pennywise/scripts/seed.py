"""Seed the database with demo accounts, categories and bills.

Usage:
    python -m pennywise.scripts.seed
"""

from __future__ import annotations

import random
from datetime import timedelta

from faker import Faker
from rich.console import Console
from rich.table import Table
from sqlalchemy import text

from pennywise.db import close_connection, get_connection, initialize_db
from pennywise.models import format_amount
from pennywise.models.ledger import Account, Category, CategoryType
from pennywise.models.schedule import Frequency
from pennywise.recurrence.clock import shift, today
from pennywise.repositories.sqlalchemy import SQLAlchemyUnitOfWork
from pennywise.services.bill_service import BillService
from pennywise.settings import settings

console = Console()
fake = Faker()

TABLES_TO_TRUNCATE = [
    "ledger_records",
    "bills",
    "categories",
    "accounts",
]

NUM_EXTRA_BILLS = 3

ACCOUNT_NAMES = ["Checking", "Savings", "Credit card"]

CATEGORY_TEMPLATES = [
    ("Housing", CategoryType.EXPENSE),
    ("Utilities", CategoryType.EXPENSE),
    ("Subscriptions", CategoryType.EXPENSE),
    ("Insurance", CategoryType.EXPENSE),
    ("Salary", CategoryType.INCOME),
]

# (name, amount_cents, frequency, category name)
BILL_TEMPLATES = [
    ("Rent", 185000, Frequency.MONTHLY, "Housing"),
    ("Electricity", 9400, Frequency.MONTHLY, "Utilities"),
    ("Water", 4200, Frequency.MONTHLY, "Utilities"),
    ("Internet", 6999, Frequency.MONTHLY, "Utilities"),
    ("Streaming", 1549, Frequency.MONTHLY, "Subscriptions"),
    ("Gym", 2500, Frequency.BIWEEKLY, "Subscriptions"),
    ("Car insurance", 98000, Frequency.ANNUALLY, "Insurance"),
    ("Paycheck", 420000, Frequency.BIWEEKLY, "Salary"),
    ("Cleaning service", 6000, Frequency.WEEKLY, "Housing"),
    ("Property tax", 230000, Frequency.ONCE, "Housing"),
]


def _truncate_all(conn) -> None:
    console.print("\n[yellow]Truncating all tables...[/yellow]")
    for table in TABLES_TO_TRUNCATE:
        conn.execute(text(f"DELETE FROM {table}"))  # noqa: S608
        console.print(f"  Truncated [dim]{table}[/dim]")
    conn.commit()
    console.print("[green]All tables truncated.[/green]\n")


def _create_ledger_setup(uow: SQLAlchemyUnitOfWork, owner_id: int) -> tuple[list[Account], dict[str, Category]]:
    console.print("[cyan]Creating accounts and categories...[/cyan]")
    with uow.transaction():
        accounts = [
            uow.accounts.create(Account(owner_id=owner_id, name=name, balance=random.randint(50000, 900000)))
            for name in ACCOUNT_NAMES
        ]
        categories = {
            name: uow.categories.create(Category(owner_id=owner_id, name=name, category_type=category_type))
            for name, category_type in CATEGORY_TEMPLATES
        }
    for account in accounts:
        console.print(f"  Account: {account.name} ({format_amount(account.balance)})")
    console.print(f"[green]{len(accounts)} accounts, {len(categories)} categories created.[/green]\n")
    return accounts, categories


def _create_bills(
    bill_service: BillService,
    owner_id: int,
    accounts: list[Account],
    categories: dict[str, Category],
) -> int:
    """Create bills anchored a few months back and pay the older occurrences."""
    console.print("[cyan]Creating bills...[/cyan]")
    reference = today()
    paid = 0

    table = Table(title="Bills created")
    table.add_column("Bill", style="bold")
    table.add_column("Frequency")
    table.add_column("Amount", justify="right")
    table.add_column("First due")
    table.add_column("Paid")

    templates = BILL_TEMPLATES + [
        (f"{fake.company()} subscription", random.randint(500, 5000), Frequency.MONTHLY, "Subscriptions")
        for _ in range(NUM_EXTRA_BILLS)
    ]
    for name, amount, frequency, category_name in templates:
        if frequency == Frequency.ONCE:
            due_date = reference + timedelta(days=random.randint(5, 40))
        else:
            due_date = reference - timedelta(days=random.randint(60, 120))
        account = random.choice(accounts)
        category = categories[category_name]
        assert account.id is not None
        assert category.id is not None
        bill = bill_service.create_bill(
            owner_id=owner_id,
            name=name,
            amount=amount,
            due_date=due_date,
            frequency=frequency,
            account_id=account.id,
            category_id=category.id,
        )
        assert bill.id is not None

        paid_for_bill = 0
        if frequency != Frequency.ONCE:
            index = 0
            occurrence = due_date
            while occurrence < reference - timedelta(days=10):
                # Leave a few old occurrences unpaid so they show up as overdue
                if random.random() > 0.15:
                    paid_date = occurrence + timedelta(days=random.randint(-3, 2))
                    bill_service.pay_instance(bill.id, owner_id, occurrence, paid_date)
                    paid_for_bill += 1
                index += 1
                occurrence = shift(due_date, frequency, index)

        if random.random() > 0.6:
            instances = bill_service.list_instances(owner_id, reference, reference + timedelta(days=60), bill.id)
            if instances:
                target = instances[-1]
                bill_service.delete_instance(bill.id, owner_id, target.target_date)

        table.add_row(
            bill.name,
            bill.frequency.value,
            format_amount(bill.amount),
            bill.due_date.isoformat(),
            str(paid_for_bill),
        )
        paid += paid_for_bill

    console.print(table)
    console.print(f"[green]{len(templates)} bills created, {paid} occurrences paid.[/green]\n")
    return paid


def main() -> None:
    console.print("[bold]Pennywise seed[/bold]", style="cyan")
    initialize_db()

    owner_id = settings.owner_id
    conn = get_connection()
    _truncate_all(conn)

    uow = SQLAlchemyUnitOfWork(conn)
    accounts, categories = _create_ledger_setup(uow, owner_id)
    bill_service = BillService(uow)
    _create_bills(bill_service, owner_id, accounts, categories)
    close_connection()

    console.print(f"[bold green]Done.[/bold green] Demo data for owner {owner_id} is ready.")


if __name__ == "__main__":
    main()
