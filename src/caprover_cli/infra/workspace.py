"""Pre-flight checks on the working directory before a branch deploy."""

from __future__ import annotations

import json
from pathlib import Path

from caprover_cli.exceptions import DeploySourceError
from caprover_cli.infra.git import git_available
from caprover_cli.utils.constants import CAPTAIN_DEFINITION_FILE

_MORE_OPTIONS = 'Run "caprover deploy --help" to know more deployment options (e.g. tar file or image name).'


def validate_is_git_repository(cwd: Path) -> None:
    """Require *cwd* to be a git root and ``git`` to be installed."""
    if not (cwd / ".git").exists():
        raise DeploySourceError(
            "You are not in a git root directory: this command will only deploy the current directory.",
            hint=_MORE_OPTIONS,
        )
    if not git_available():
        raise DeploySourceError(
            '"git" command not found: CapRover needs "git" to create tar file from your branch source files.',
            hint=_MORE_OPTIONS,
        )


def validate_definition_file(cwd: Path) -> str | None:
    """Check ``captain-definition`` in *cwd*.

    Returns
    -------
    str | None
        A warning to show the user when the file is absent, else ``None``.

    Raises
    ------
    DeploySourceError
        When the file exists but is not JSON or lacks ``schemaVersion``.
    """
    definition = cwd / CAPTAIN_DEFINITION_FILE
    if not definition.is_file():
        if (cwd / "Dockerfile").is_file():
            return "No captain-definition was found in main directory: falling back to Dockerfile."
        return (
            "No captain-definition was found in main directory: unless you have specified "
            "a special path for your captain-definition, this build will fail!"
        )
    try:
        content = json.loads(definition.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise DeploySourceError(f"captain-definition file is not a valid JSON!\n{exc}") from exc
    if not isinstance(content, dict) or not content.get("schemaVersion"):
        raise DeploySourceError(
            'captain-definition needs "schemaVersion": please see docs!',
        )
    return None
