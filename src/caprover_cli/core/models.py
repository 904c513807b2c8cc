"""Domain models for caprover-cli.

Value objects are **frozen** dataclasses with no behaviour beyond data
access and small invariant checks.  :class:`Machine` is the one
exception: its auth token is refreshed in place whenever the API client
re-authenticates, so every holder sees the new token.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from caprover_cli.exceptions import DeploySourceError


# ---------------------------------------------------------------------------
# Machines and apps
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class Machine:
    """A CapRover machine the user can talk to."""

    name: str
    """Local alias under which credentials are stored.  Empty when unsaved."""

    base_url: str
    """Root URL of the dashboard, e.g. ``https://captain.example.com``."""

    auth_token: str = ""
    """Current API token.  Empty when not authenticated."""

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "baseUrl": self.base_url, "authToken": self.auth_token}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Machine:
        return cls(
            name=str(raw.get("name", "")),
            base_url=str(raw.get("baseUrl", "")),
            auth_token=str(raw.get("authToken", "")),
        )


@dataclass(frozen=True, slots=True)
class AppDefinition:
    """The subset of a remote app definition the CLI cares about."""

    app_name: str
    is_app_building: bool = False
    has_default_sub_domain_ssl: bool = False

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> AppDefinition:
        return cls(
            app_name=str(raw.get("appName", "")),
            is_app_building=bool(raw.get("isAppBuilding", False)),
            has_default_sub_domain_ssl=bool(raw.get("hasDefaultSubDomainSsl", False)),
        )


# ---------------------------------------------------------------------------
# Deployment
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class DeploySource:
    """What to deploy.  Exactly one field must be set."""

    branch: str | None = None
    tar_file_path: str | None = None
    image_name: str | None = None

    def count_set(self) -> int:
        return sum(1 for value in (self.branch, self.tar_file_path, self.image_name) if value)

    def validate(self) -> None:
        """Raise :class:`DeploySourceError` unless exactly one source is set."""
        if self.count_set() != 1:
            raise DeploySourceError(
                "Can't deploy: only one of branch, tarFile or imageName can be present.",
                hint="Use exactly one of --branch, --tarFile or --imageName.",
            )

    def to_dict(self) -> dict[str, str]:
        raw: dict[str, str] = {}
        if self.branch:
            raw["branchToPush"] = self.branch
        if self.tar_file_path:
            raw["tarFilePath"] = self.tar_file_path
        if self.image_name:
            raw["imageName"] = self.image_name
        return raw

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> DeploySource:
        return cls(
            branch=raw.get("branchToPush") or None,
            tar_file_path=raw.get("tarFilePath") or None,
            image_name=raw.get("imageName") or None,
        )


@dataclass(frozen=True, slots=True)
class DeployTarget:
    """A validated pairing of a machine and an app that exists on it."""

    app_name: str
    machine: Machine
    ssl: bool = False
    """Whether the app is served over HTTPS on its default sub-domain."""

    @property
    def machine_label(self) -> str:
        return self.machine.name or self.machine.base_url


@dataclass(frozen=True, slots=True)
class DeployedDirectory:
    """Per working-directory memory of the last successful deployment."""

    app_name: str
    cwd: str
    deploy_source: DeploySource
    machine_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "appName": self.app_name,
            "cwd": self.cwd,
            "deploySource": self.deploy_source.to_dict(),
            "machineNameToDeploy": self.machine_name,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> DeployedDirectory:
        source = raw.get("deploySource")
        return cls(
            app_name=str(raw.get("appName", "")),
            cwd=str(raw.get("cwd", "")),
            deploy_source=DeploySource.from_dict(source if isinstance(source, dict) else {}),
            machine_name=str(raw.get("machineNameToDeploy", "")),
        )


# ---------------------------------------------------------------------------
# Build logs
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class BuildLogSnapshot:
    """One poll result of the remote build-log ring buffer."""

    lines: tuple[str, ...]
    first_line_number: int
    is_app_building: bool
    is_build_failed: bool

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> BuildLogSnapshot:
        logs = raw.get("logs") or {}
        lines = logs.get("lines") or []
        return cls(
            lines=tuple(str(line) if line is not None else "" for line in lines),
            first_line_number=int(logs.get("firstLineNumber", 0)),
            is_app_building=bool(raw.get("isAppBuilding", False)),
            is_build_failed=bool(raw.get("isBuildFailed", False)),
        )


@dataclass(frozen=True, slots=True)
class LogBatch:
    """Lines selected for printing from one snapshot."""

    lines: tuple[str, ...] = field(default_factory=tuple)
    truncated: bool = False
    """``True`` when the buffer rotated past the watermark and lines were lost."""
