"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters and the CLI
layer must satisfy.  Core code depends ONLY on these protocols, never
on concrete implementations.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import IO, Any, Protocol

from caprover_cli.core.models import (
    AppDefinition,
    BuildLogSnapshot,
    DeployedDirectory,
    DeployTarget,
    Machine,
)
from caprover_cli.core.options import Question


class Prompter(Protocol):
    """Asks the user one question at a time."""

    def ask(self, question: Question) -> Any:
        """Prompt for *question* and return the filtered, validated answer.

        Implementations apply ``question.filter`` to the raw answer and
        re-ask until ``question.validate`` returns ``True``.

        Raises
        ------
        UserCancelledError
            When the user aborts the prompt (Ctrl+C or Escape).
        """
        ...  # pragma: no cover


class ConfigLoader(Protocol):
    """Reads a parameter file into a flat mapping."""

    def load(self, path: Path) -> Mapping[str, Any]:
        """Parse *path* as JSON (leading ``{``/``[``) or YAML.

        Raises
        ------
        ConfigFileError
            When the file is missing, empty or malformed.
        """
        ...  # pragma: no cover


class DeployApi(Protocol):
    """The slice of the CapRover API the deploy pipeline needs."""

    def get_all_apps(self) -> list[AppDefinition]:
        ...  # pragma: no cover

    def fetch_build_logs(self, app_name: str) -> BuildLogSnapshot:
        ...  # pragma: no cover

    def upload_app_data(
        self,
        app_name: str,
        stream: IO[bytes],
        git_hash: str,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> None:
        ...  # pragma: no cover

    def upload_captain_definition_content(
        self,
        app_name: str,
        definition: Mapping[str, Any],
        git_hash: str,
        *,
        detached: bool,
    ) -> None:
        ...  # pragma: no cover


class ApiFactory(Protocol):
    def for_machine(self, machine: Machine) -> DeployApi:
        ...  # pragma: no cover


class SourceArchiver(Protocol):
    """Turns a git branch into a tar archive on disk."""

    def archive(self, branch: str, output: Path, cwd: Path) -> None:
        """Write ``git archive`` of *branch* to *output*.

        Raises
        ------
        SourceArchiveError
            When ``git`` fails or is not installed.
        """
        ...  # pragma: no cover

    def rev_parse(self, branch: str, cwd: Path) -> str:
        """Return the full commit hash of *branch*."""
        ...  # pragma: no cover


class DeployReporter(Protocol):
    """Receives user-facing progress events from the deploy pipeline."""

    def archive_created(self, path: Path, git_hash: str) -> None:
        ...  # pragma: no cover

    def deploy_started(self, target: DeployTarget) -> None:
        ...  # pragma: no cover

    def upload_progress(self, sent: int, total: int) -> None:
        ...  # pragma: no cover

    def upload_finished(self) -> None:
        """Called once when the whole archive has been read."""
        ...  # pragma: no cover

    def build_started(self) -> None:
        ...  # pragma: no cover

    def log_lines(self, lines: tuple[str, ...]) -> None:
        ...  # pragma: no cover

    def log_truncated(self) -> None:
        ...  # pragma: no cover

    def fetch_failed(self, error: Exception) -> None:
        ...  # pragma: no cover

    def build_succeeded(self, app_url: str) -> None:
        ...  # pragma: no cover

    def build_failed(self) -> None:
        ...  # pragma: no cover


class StorageProtocol(Protocol):
    """Persisted machines and deployed directories."""

    def get_machines(self) -> list[Machine]:
        ...  # pragma: no cover

    def find_machine(self, name: str) -> Machine | None:
        ...  # pragma: no cover

    def save_machine(self, machine: Machine) -> None:
        ...  # pragma: no cover

    def remove_machine(self, name: str) -> Machine:
        ...  # pragma: no cover

    def get_deployed_directories(self) -> list[DeployedDirectory]:
        ...  # pragma: no cover

    def save_deployed_directory(self, directory: DeployedDirectory) -> None:
        ...  # pragma: no cover
