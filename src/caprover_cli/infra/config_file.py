"""Readers for parameter files and ``cap-rover.config.json``.

This module is the only place that imports ``yaml``.  JSON and YAML
errors are re-raised as :class:`~caprover_cli.exceptions.ConfigFileError`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from caprover_cli.core.captain_config import CaptainConfig
from caprover_cli.exceptions import ConfigFileError
from caprover_cli.utils.constants import CAPTAIN_CONFIG_FILE

logger = logging.getLogger(__name__)


class ParamsFileLoader:
    """Concrete :class:`~caprover_cli.core.protocols.ConfigLoader`."""

    def load(self, path: Path) -> Mapping[str, Any]:
        if not path.is_file():
            raise ConfigFileError(f"File not found: {path}")
        try:
            content = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigFileError(f"Error reading config file: {exc}") from exc

        config: Any = None
        try:
            if content:
                if content.startswith(("{", "[")):
                    config = json.loads(content)
                else:
                    config = yaml.safe_load(content)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ConfigFileError(f"Error reading config file: {exc}") from exc

        if not config:
            raise ConfigFileError("Error reading config file: Config file is empty!!")
        if not isinstance(config, Mapping):
            raise ConfigFileError(
                "Error reading config file: expected a map of parameter names to values.",
            )
        logger.debug("Loaded %d parameters from %s", len(config), path)
        return config


def find_captain_config(directory: Path) -> Path | None:
    """Return the ``cap-rover.config.json`` path in *directory*, if present."""
    candidate = directory / CAPTAIN_CONFIG_FILE
    return candidate if candidate.is_file() else None


def load_captain_config(directory: Path) -> CaptainConfig:
    """Parse ``cap-rover.config.json`` from *directory*.

    Raises
    ------
    ConfigFileError
        When the file is missing or is not valid JSON.
    """
    path = directory / CAPTAIN_CONFIG_FILE
    if not path.is_file():
        raise ConfigFileError(
            f'No CapRover config file found! Make sure the config file is there: "{path}"',
        )
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigFileError(f"CapRover config file is not a valid JSON!\n{exc}") from exc
    except OSError as exc:
        raise ConfigFileError(f"Cannot read {path}: {exc}") from exc
    return CaptainConfig.from_dict(raw)
