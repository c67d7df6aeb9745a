from __future__ import annotations

import calendar
from datetime import date, datetime

import questionary
from rich.console import Console
from rich.table import Table

from pennywise.errors import BillEngineError
from pennywise.models import format_amount, parse_amount
from pennywise.models.bill import BillChanges, BillInstance
from pennywise.models.schedule import BillStatus, Frequency
from pennywise.recurrence.clock import today
from pennywise.services.bill_service import BillService

console = Console()

STATUS_STYLES = {
    BillStatus.OVERDUE: "red",
    BillStatus.DUE: "yellow",
    BillStatus.UPCOMING: "cyan",
    BillStatus.PAID: "green",
}


def _parse_date(text: str) -> date | None:
    try:
        return datetime.strptime(text.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def _month_range(text: str) -> tuple[date, date] | None:
    """'2025-03' -> (2025-03-01, 2025-03-31)"""
    try:
        first = datetime.strptime(text.strip(), "%Y-%m").date()
    except ValueError:
        return None
    last_day = calendar.monthrange(first.year, first.month)[1]
    return first, first.replace(day=last_day)


def _instance_label(instance: BillInstance) -> str:
    return f"{instance.due_date.isoformat()}  {instance.name}  {format_amount(instance.amount)}  [{instance.status.value}]"


def _show_instances(instances: list[BillInstance], range_start: date) -> None:
    table = Table()
    table.add_column("Due")
    table.add_column("Bill")
    table.add_column("Amount", justify="right")
    table.add_column("Status", justify="center")
    table.add_column("Paid on")

    for instance in instances:
        style = STATUS_STYLES.get(instance.status, "")
        due = instance.due_date.isoformat()
        if instance.target_date < range_start:
            due = f"{due} (carried over)"
        table.add_row(
            due,
            instance.name,
            format_amount(instance.amount),
            f"[{style}]{instance.status.value}[/{style}]",
            instance.paid_date.isoformat() if instance.paid_date else "",
        )
    console.print(table)


def _ask_date(prompt: str, default: str = "") -> date | None:
    while True:
        answer = questionary.text(prompt, default=default).ask()
        if answer is None:
            return None
        parsed = _parse_date(answer)
        if parsed is not None:
            return parsed
        console.print("[red]Invalid date. Use YYYY-MM-DD.[/red]")


def _ask_changes() -> BillChanges | None:
    changes: dict = {}
    name = questionary.text("New name (blank to keep):").ask()
    if name is None:
        return None
    if name.strip():
        changes["name"] = name.strip()

    amount_text = questionary.text("New amount (blank to keep):").ask() or ""
    if amount_text.strip():
        amount = parse_amount(amount_text)
        if amount is None:
            console.print("[red]Invalid amount.[/red]")
            return None
        changes["amount"] = amount

    due_text = questionary.text("New due date YYYY-MM-DD (blank to keep):").ask() or ""
    if due_text.strip():
        due_date = _parse_date(due_text)
        if due_date is None:
            console.print("[red]Invalid date.[/red]")
            return None
        changes["due_date"] = due_date
    return BillChanges(**changes)


def pay_instance_menu(instance: BillInstance, bill_service: BillService, owner_id: int) -> None:
    paid_date = _ask_date("Paid on (YYYY-MM-DD):", default=today().isoformat())
    if paid_date is None or instance.bill_id is None:
        return
    try:
        result = bill_service.pay_instance(instance.bill_id, owner_id, instance.target_date, paid_date)
    except BillEngineError as exc:
        console.print(f"[red]{exc}[/red]")
        return
    console.print(f"[green]Paid: {_instance_label(result)}[/green]")


def cancel_payment_menu(instance: BillInstance, bill_service: BillService, owner_id: int) -> None:
    if instance.bill_id is None:
        return
    if not questionary.confirm(f"Cancel payment of '{instance.name}' on {instance.paid_date}?", default=False).ask():
        return
    try:
        result = bill_service.cancel_instance_payment(instance.bill_id, owner_id, instance.target_date)
    except BillEngineError as exc:
        console.print(f"[red]{exc}[/red]")
        return
    console.print(f"[yellow]Payment cancelled: {_instance_label(result)}[/yellow]")


def edit_instance_menu(instance: BillInstance, bill_service: BillService, owner_id: int) -> None:
    if instance.bill_id is None:
        return
    changes = _ask_changes()
    if changes is None or not changes.model_fields_set:
        console.print("[dim]Nothing to change.[/dim]")
        return
    scope = questionary.select(
        "Apply to",
        choices=["This occurrence only", "This and all future occurrences"],
    ).ask()
    if scope is None:
        return
    apply_to_future = scope.startswith("This and all")
    try:
        result = bill_service.update_instance(
            instance.bill_id, owner_id, instance.target_date, changes, apply_to_future=apply_to_future
        )
    except BillEngineError as exc:
        console.print(f"[red]{exc}[/red]")
        return
    console.print(f"[green]Updated: {_instance_label(result)}[/green]")


def delete_instance_menu(instance: BillInstance, bill_service: BillService, owner_id: int) -> None:
    if instance.bill_id is None:
        return
    scope = questionary.select(
        f"Delete '{instance.name}' due {instance.due_date}",
        choices=["This occurrence only", "This and all future occurrences", "Back"],
    ).ask()
    if scope is None or scope == "Back":
        return
    try:
        bill_service.delete_instance(
            instance.bill_id, owner_id, instance.target_date, apply_to_future=scope.startswith("This and all")
        )
    except BillEngineError as exc:
        console.print(f"[red]{exc}[/red]")
        return
    console.print("[yellow]Deleted.[/yellow]")


def _instance_actions(instance: BillInstance, bill_service: BillService, owner_id: int) -> None:
    if instance.status == BillStatus.PAID:
        choices = ["Cancel payment", "Edit", "Delete", "Back"]
    else:
        choices = ["Pay", "Edit", "Delete", "Back"]
    action = questionary.select(_instance_label(instance), choices=choices).ask()
    if action == "Pay":
        pay_instance_menu(instance, bill_service, owner_id)
    elif action == "Cancel payment":
        cancel_payment_menu(instance, bill_service, owner_id)
    elif action == "Edit":
        edit_instance_menu(instance, bill_service, owner_id)
    elif action == "Delete":
        delete_instance_menu(instance, bill_service, owner_id)


def list_instances_menu(bill_service: BillService, owner_id: int) -> None:
    month = questionary.text("Month (YYYY-MM):", default=today().strftime("%Y-%m")).ask()
    if month is None:
        return
    window = _month_range(month)
    if window is None:
        console.print("[red]Invalid month. Use YYYY-MM (e.g. 2025-03).[/red]")
        return
    range_start, range_end = window

    while True:
        try:
            instances = bill_service.list_instances(owner_id, range_start, range_end)
        except BillEngineError as exc:
            console.print(f"[red]{exc}[/red]")
            return
        if not instances:
            console.print("[dim]No bills in this period.[/dim]")
            return
        _show_instances(instances, range_start)

        choices = [questionary.Choice(_instance_label(i), value=idx) for idx, i in enumerate(instances)]
        choices.append(questionary.Choice("Back", value=None))
        selected = questionary.select("Select an occurrence", choices=choices).ask()
        if selected is None:
            return
        _instance_actions(instances[selected], bill_service, owner_id)


def create_bill_menu(bill_service: BillService, owner_id: int) -> None:
    console.print()
    console.print("[bold]New bill[/bold]", style="cyan")

    accounts = bill_service.list_accounts(owner_id)
    categories = bill_service.list_categories(owner_id)
    if not accounts or not categories:
        console.print("[red]Create at least one account and one category first.[/red]")
        return

    name = questionary.text("Name:").ask()
    if not name:
        return

    while True:
        amount = parse_amount(questionary.text("Amount (e.g. 85.50):").ask() or "")
        if amount is not None and amount > 0:
            break
        console.print("[red]Invalid amount. Try again.[/red]")

    due_date = _ask_date("First due date (YYYY-MM-DD):", default=today().isoformat())
    if due_date is None:
        return
    frequency = questionary.select("Frequency", choices=[f.value for f in Frequency]).ask()
    if frequency is None:
        return
    end_date = None
    if frequency != Frequency.ONCE.value and questionary.confirm("Set an end date?", default=False).ask():
        end_date = _ask_date("End date (YYYY-MM-DD):")

    account_id = questionary.select(
        "Account", choices=[questionary.Choice(a.name, value=a.id) for a in accounts]
    ).ask()
    category_id = questionary.select(
        "Category", choices=[questionary.Choice(c.name, value=c.id) for c in categories]
    ).ask()
    if account_id is None or category_id is None:
        return

    try:
        bill = bill_service.create_bill(
            owner_id=owner_id,
            name=name,
            amount=amount,
            due_date=due_date,
            frequency=Frequency(frequency),
            account_id=account_id,
            category_id=category_id,
            end_date=end_date,
        )
    except BillEngineError as exc:
        console.print(f"[red]{exc}[/red]")
        return
    console.print(f"[green]Bill created: {bill.name} ({bill.frequency.value}) from {bill.due_date}[/green]")
