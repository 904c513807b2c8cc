"""Rich rendering of deploy progress.

:class:`RichDeployReporter` implements
:class:`~caprover_cli.core.protocols.DeployReporter`: an upload bar
while the archive is streamed, then a spinner while the build runs, with
build-log lines printed above it.

Shutdown-safe: :meth:`RichDeployReporter.stop` is idempotent and every
event after it only prints.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from caprover_cli.cli.console import app_name, escape, get_rich_console, machine_name, machine_url
from caprover_cli.core.build_logs import TRUNCATED_MARKER
from caprover_cli.core.models import DeployTarget
from caprover_cli.exceptions import EnvironmentError


class RichDeployReporter:
    """Deploy progress display.

    Usage::

        with RichDeployReporter() as reporter:
            pipeline = DeployPipeline(..., reporter=reporter, ...)
            pipeline.deploy(target, source)
    """

    def __init__(self) -> None:
        try:
            from rich.progress import (
                BarColumn,
                DownloadColumn,
                Progress,
                TextColumn,
                TimeRemainingColumn,
            )
        except ModuleNotFoundError as exc:
            raise EnvironmentError(
                "rich is not installed. Install with: pip install rich",
            ) from exc

        self._console: Any = get_rich_console()
        self._progress: Any = Progress(
            TextColumn("[bold blue]Uploading"),
            BarColumn(),
            DownloadColumn(),
            TimeRemainingColumn(),
            console=self._console,
            transient=False,
        )
        self._task_id: int | None = None
        self._uploading: bool = False
        self._status: Any = None

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> RichDeployReporter:
        return self

    def __exit__(self, *_args: object) -> None:
        self.stop()

    def stop(self) -> None:
        """Stop any live display (idempotent)."""
        self._stop_upload()
        if self._status is not None:
            self._status.stop()
            self._status = None

    # ------------------------------------------------------------------
    # DeployReporter events
    # ------------------------------------------------------------------

    def archive_created(self, path: Path, git_hash: str) -> None:
        self._console.print(f'Saving tar file to: "{escape(path)}"')
        self._console.print(f"Using last commit: {escape(git_hash)}\n")

    def deploy_started(self, target: DeployTarget) -> None:
        where = (
            machine_name(target.machine.name)
            if target.machine.name
            else machine_url(target.machine.base_url)
        )
        self._console.print(f"Deploying {app_name(target.app_name)} to {where}...\n")

    def upload_progress(self, sent: int, total: int) -> None:
        if self._task_id is None:
            self._progress.start()
            self._uploading = True
            self._task_id = self._progress.add_task("upload", total=total or None)
        if self._uploading:
            self._progress.update(self._task_id, completed=sent)

    def upload_finished(self) -> None:
        self._stop_upload()
        self._console.print("[green]Upload done.[/green]\n")

    def build_started(self) -> None:
        self._stop_upload()
        if self._status is None:
            self._console.print("This might take several minutes. PLEASE BE PATIENT...\n")
            self._status = self._console.status(
                "[yellow]Building your source code...[/yellow]",
                spinner="dots",
            )
            self._status.start()

    def log_lines(self, lines: tuple[str, ...]) -> None:
        for line in lines:
            self._console.print(escape(line))

    def log_truncated(self) -> None:
        self._console.print(escape(TRUNCATED_MARKER))

    def fetch_failed(self, error: Exception) -> None:
        self._console.print(
            f"[bold red]Something bad happened while retrieving build logs.[/bold red]\n"
            f"{escape(error)}"
        )

    def build_succeeded(self, app_url: str) -> None:
        self.stop()
        self._console.print("\n[green]Deployed successfully.[/green]")
        self._console.print(f"[green]App is available at[/green] {machine_url(app_url)}\n")

    def build_failed(self) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _stop_upload(self) -> None:
        if self._uploading:
            self._progress.stop()
            self._uploading = False
