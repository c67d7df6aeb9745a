import questionary
from rich.console import Console

from pennywise.cli.bill_menu import create_bill_menu, list_instances_menu
from pennywise.repositories.factory import get_unit_of_work
from pennywise.services.bill_service import BillService
from pennywise.settings import settings

console = Console()


def _build_service() -> BillService:
    return BillService(get_unit_of_work())


def main_menu() -> None:
    bill_service = _build_service()
    owner_id = settings.owner_id

    console.print()
    console.print("[bold]Pennywise bills[/bold]", style="cyan")
    console.print()

    while True:
        choice = questionary.select(
            "Main menu",
            choices=[
                "List bills",
                "New bill",
                "Quit",
            ],
        ).ask()

        if choice is None or choice == "Quit":
            console.print("[bold]Bye![/bold]")
            break
        elif choice == "List bills":
            list_instances_menu(bill_service, owner_id)
        elif choice == "New bill":
            create_bill_menu(bill_service, owner_id)
