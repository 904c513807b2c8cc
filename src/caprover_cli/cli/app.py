"""CLI application entry point and command routing for caprover-cli.

This module is the **sole error boundary** for the entire application.
It catches :class:`~caprover_cli.exceptions.CaproverCliError`,
``KeyboardInterrupt``, and any unexpected ``Exception``, rendering
user-friendly messages via Rich and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here; commands resolve their parameters and
  delegate to the core and infrastructure layers.
* Collaborators are built once in :func:`build_services` and injected
  into every command.
* This module is the only place that translates between the domain world
  and the OS process exit code.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

from caprover_cli.cli import exit_codes
from caprover_cli.cli.commands import COMMANDS, Services
from caprover_cli.cli.console import console, escape
from caprover_cli.core.cancellation import CancelToken
from caprover_cli.exceptions import CaproverCliError, UserCancelledError
from caprover_cli.settings import Settings
from caprover_cli.version import __version__

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

def build_services(
    environ: Mapping[str, str] | None = None,
    cwd: Path | None = None,
) -> Services:
    """Create the collaborators shared by every command."""
    from caprover_cli.cli.progress import RichDeployReporter
    from caprover_cli.cli.prompts import QuestionaryPrompter
    from caprover_cli.infra.api_client import ApiClientFactory
    from caprover_cli.infra.config_file import ParamsFileLoader
    from caprover_cli.infra.git import GitArchiver
    from caprover_cli.infra.storage import JsonStorage

    environ = os.environ if environ is None else environ
    settings = Settings.from_env(environ)
    storage = JsonStorage(settings.storage_path)
    cancel_token = CancelToken()
    return Services(
        settings=settings,
        storage=storage,
        api_factory=ApiClientFactory(
            storage,
            cancel_token=cancel_token,
            timeout=settings.http_timeout,
        ),
        prompter=QuestionaryPrompter(),
        config_loader=ParamsFileLoader(),
        archiver=GitArchiver(),
        cancel_token=cancel_token,
        cwd=cwd or Path.cwd(),
        environ=environ,
        reporter_factory=RichDeployReporter,
    )


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser(services: Services) -> argparse.ArgumentParser:
    """Construct the top-level parser with one sub-parser per command."""
    parser = argparse.ArgumentParser(
        prog="caprover",
        description="CLI tool for CapRover. See CapRover.com for more details.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="print debug messages on stderr",
    )
    subparsers = parser.add_subparsers(title="commands", metavar="<command>")
    for command_class in COMMANDS:
        command_class(services).register(subparsers)
    return parser


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None, *, services: Services | None = None) -> int:
    """Run the caprover CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.
    services:
        Pre-built collaborators; built from the process environment when
        omitted.

    Returns
    -------
    int
        OS process exit code.
    """
    if services is None:
        services = build_services()
    parser = _build_parser(services)
    args = parser.parse_args(argv)

    _configure_logging(services.settings.debug or args.verbose)

    command = getattr(args, "handler", None)
    if command is None:
        parser.print_help()
        return exit_codes.SUCCESS

    flags = command.flags_from(args)
    logger.debug("Running %s with flags %s", command.name, sorted(flags))
    return command.run(flags)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    services: Services | None = None
    try:
        services = build_services()
        code = main(services=services)
        sys.exit(code)
    except UserCancelledError as exc:
        console.print(f"\n[yellow]{escape(exc)}[/yellow]")
        sys.exit(exit_codes.USER_CANCELLED)
    except CaproverCliError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(exc)}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {escape(exc.hint)}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        if services is not None:
            services.cancel_token.cancel()
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {escape(exc)}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
