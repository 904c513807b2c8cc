"""CLI console helpers with optional Rich support.

This module intentionally avoids module-level imports of optional UI
dependencies so bootstrap paths (``--help``, ``--version``) remain
functional even when Rich is not installed.

Two proxies are exported: :data:`console` writes status messages to
stderr, :data:`out` writes command results (``list``, ``api``) to stdout
so they can be piped.
"""

from __future__ import annotations

import sys
from typing import Any

from caprover_cli.core.models import Machine
from caprover_cli.exceptions import EnvironmentError


def _load_rich_console_class() -> type[Any]:
    """Return ``rich.console.Console`` class or raise ``EnvironmentError``."""
    try:
        from rich.console import Console
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Console


def get_rich_console(*, stderr: bool = True) -> Any:
    """Create a Rich console instance targeting stderr (or stdout)."""
    console_class = _load_rich_console_class()
    return console_class(stderr=stderr, highlight=False)


class _ConsoleProxy:
    """Minimal ``print``-compatible proxy with Rich fallback."""

    def __init__(self, *, stderr: bool) -> None:
        self._stderr = stderr

    def print(self, *objects: object) -> None:
        """Render with Rich when available, else plain print."""
        try:
            rich_console = get_rich_console(stderr=self._stderr)
        except EnvironmentError:
            print(*objects, file=sys.stderr if self._stderr else sys.stdout)
            return
        rich_console.print(*objects)


console = _ConsoleProxy(stderr=True)
out = _ConsoleProxy(stderr=False)


# ---------------------------------------------------------------------------
# Markup helpers (pure string transforms)
# ---------------------------------------------------------------------------

def escape(text: object) -> str:
    """Escape Rich markup in user-supplied *text*."""
    return str(text).replace("[", r"\[")


def machine_name(name: str) -> str:
    return f"[bright_green]{escape(name)}[/bright_green]"


def machine_url(url: str) -> str:
    return f"[bold yellow]{escape(url)}[/bold yellow]"


def app_name(name: str) -> str:
    return f"[magenta]{escape(name)}[/magenta]"


def machine_label(machine: Machine) -> str:
    return f"{machine_name(machine.name)} at {machine_url(machine.base_url)}"


# ---------------------------------------------------------------------------
# Message shortcuts
# ---------------------------------------------------------------------------

def print_message(message: str) -> None:
    console.print(message)


def print_success(message: str) -> None:
    console.print(f"[green]{message}[/green]")


def print_tip(message: str) -> None:
    console.print(f"[bold green]{message}[/bold green]")


def print_warning(message: str) -> None:
    console.print(f"[yellow]{message}[/yellow]")
