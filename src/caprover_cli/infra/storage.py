"""JSON file storage for logged-in machines and deployed directories.

Layout::

    {
      "machines": [{"name": ..., "baseUrl": ..., "authToken": ...}],
      "deployedDirectories": [{"appName": ..., "cwd": ..., ...}]
    }

Every operation re-reads the file, so concurrent CLI processes see each
other's writes, but two processes writing at the same moment can lose
one update.  Writes go to a sibling temp file which then replaces the
original.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from caprover_cli.core.models import DeployedDirectory, Machine
from caprover_cli.exceptions import ConfigFileError, UserInputError

logger = logging.getLogger(__name__)

_MACHINES_KEY = "machines"
_DIRS_KEY = "deployedDirectories"


class JsonStorage:
    """Concrete :class:`~caprover_cli.core.protocols.StorageProtocol`."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Machines
    # ------------------------------------------------------------------

    def get_machines(self) -> list[Machine]:
        return [Machine.from_dict(raw) for raw in self._read().get(_MACHINES_KEY, [])]

    def find_machine(self, name: str) -> Machine | None:
        return next((machine for machine in self.get_machines() if machine.name == name), None)

    def save_machine(self, machine: Machine) -> None:
        """Insert *machine*, replacing a stored machine with the same name."""
        data = self._read()
        machines = [raw for raw in data.get(_MACHINES_KEY, []) if raw.get("name") != machine.name]
        machines.append(machine.to_dict())
        data[_MACHINES_KEY] = machines
        self._write(data)

    def remove_machine(self, name: str) -> Machine:
        data = self._read()
        machines = data.get(_MACHINES_KEY, [])
        removed = next((raw for raw in machines if raw.get("name") == name), None)
        if removed is None:
            raise UserInputError(f"{name} CapRover machine not exist.")
        data[_MACHINES_KEY] = [raw for raw in machines if raw is not removed]
        self._write(data)
        return Machine.from_dict(removed)

    # ------------------------------------------------------------------
    # Deployed directories
    # ------------------------------------------------------------------

    def get_deployed_directories(self) -> list[DeployedDirectory]:
        return [DeployedDirectory.from_dict(raw) for raw in self._read().get(_DIRS_KEY, [])]

    def save_deployed_directory(self, directory: DeployedDirectory) -> None:
        """Remember *directory*, replacing any entry for the same ``cwd``."""
        if not directory.app_name or not directory.cwd:
            return
        data = self._read()
        dirs = [raw for raw in data.get(_DIRS_KEY, []) if raw.get("cwd") != directory.cwd]
        dirs.append(directory.to_dict())
        data[_DIRS_KEY] = dirs
        self._write(data)

    # ------------------------------------------------------------------
    # File access
    # ------------------------------------------------------------------

    def _read(self) -> dict[str, Any]:
        try:
            content = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise ConfigFileError(f"Cannot read {self._path}: {exc}") from exc
        if not content.strip():
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ConfigFileError(
                f"Storage file {self._path} is not valid JSON: {exc}",
                hint="Fix or delete the file, then log in again.",
            ) from exc
        if not isinstance(data, dict):
            raise ConfigFileError(f"Storage file {self._path} has an unexpected format.")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        logger.debug("Writing storage file %s", self._path)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise ConfigFileError(f"Cannot write {self._path}: {exc}") from exc
