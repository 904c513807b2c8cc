"""Project-level deployment config (``cap-rover.config.json``).

The file describes one app deployment plus optional named
environments::

    {
      "definition": {"schemaVersion": 2, "dockerfilePath": "./Dockerfile"},
      "capRoverUrl": "https://captain.example.com",
      "appName": "web",
      "files": {"include": ["dist/**", "Dockerfile"]},
      "environments": {
        "staging": {"appName": "web-staging"}
      }
    }

Selecting an environment overlays each of its truthy fields on the
base values.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from caprover_cli.exceptions import ConfigFileError

_OVERLAY_KEYS: tuple[str, ...] = ("definition", "capRoverUrl", "appName", "files")


@dataclass(frozen=True, slots=True)
class CaptainEnvironment:
    """Effective settings for one deployment."""

    definition: dict[str, Any]
    cap_rover_url: str
    app_name: str
    include: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class CaptainConfig:
    base: Mapping[str, Any]
    environments: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Any) -> CaptainConfig:
        if not isinstance(raw, Mapping):
            raise ConfigFileError("CapRover config file must contain a JSON object.")
        environments = raw.get("environments") or {}
        if not isinstance(environments, Mapping):
            raise ConfigFileError('"environments" in the CapRover config file must be an object.')
        base = {key: value for key, value in raw.items() if key != "environments"}
        return cls(base=base, environments=dict(environments))

    @property
    def environment_names(self) -> list[str]:
        return list(self.environments)

    def for_environment(self, name: str | None = None) -> CaptainEnvironment:
        """Return the base config with environment *name* overlaid.

        Raises
        ------
        ConfigFileError
            When *name* is not declared, or a required field is missing.
        """
        merged = dict(self.base)
        if name:
            if name not in self.environments:
                raise ConfigFileError(
                    f'The environment "{name}" does not exist in the config file!',
                    hint=f"Known environments: {', '.join(self.environment_names) or 'none'}.",
                )
            overlay = self.environments[name] or {}
            for key, value in overlay.items():
                if value:
                    merged[key] = value
        return _build_environment(merged)


def _build_environment(merged: Mapping[str, Any]) -> CaptainEnvironment:
    missing = [key for key in _OVERLAY_KEYS if not merged.get(key)]
    if missing:
        raise ConfigFileError(
            f"CapRover config file is missing: {', '.join(missing)}.",
        )
    definition = merged["definition"]
    files = merged["files"]
    if not isinstance(definition, Mapping):
        raise ConfigFileError('"definition" in the CapRover config file must be an object.')
    include = files.get("include") if isinstance(files, Mapping) else None
    if not isinstance(include, list) or not include:
        raise ConfigFileError('"files.include" in the CapRover config file must be a non-empty list.')
    return CaptainEnvironment(
        definition=dict(definition),
        cap_rover_url=str(merged["capRoverUrl"]),
        app_name=str(merged["appName"]),
        include=tuple(str(pattern) for pattern in include),
    )
