"""``caprover list``: show stored machines."""

from __future__ import annotations

from typing import Any

from caprover_cli.cli import exit_codes
from caprover_cli.cli.commands.base import Command
from caprover_cli.cli.console import escape, out, print_message
from caprover_cli.core.options import ParamSet
from caprover_cli.exceptions import EnvironmentError


def _import_rich_table() -> type[Any]:
    """Import rich table lazily for machine rendering."""
    try:
        from rich.table import Table
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Table


class ListCommand(Command):
    name = "list"
    aliases = ("ls",)
    description = "List all CapRover machines currently logged in."

    def pre_action(self, flags: dict) -> dict | None:
        print_message("Logged in CapRover Machines:\n")
        return flags

    def action(self, params: ParamSet) -> int:
        machines = self.services.storage.get_machines()
        if not machines:
            print_message("No machines. Use [bold]caprover login[/bold] to add one.\n")
            return exit_codes.SUCCESS

        table_class = _import_rich_table()
        table = table_class(show_header=True, header_style="bold magenta", border_style="dim")
        table.add_column("Name", style="bright_green")
        table.add_column("URL", style="bold yellow")
        for machine in machines:
            table.add_row(escape(machine.name), escape(machine.base_url))
        out.print(table)
        return exit_codes.SUCCESS
