"""Runtime settings read from the process environment.

Settings are resolved once at start-up and passed down explicitly;
no module reads ``os.environ`` on its own except through
:meth:`Settings.from_env`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from caprover_cli.exceptions import UserInputError

ENV_STORAGE: str = "CAPROVER_CLI_STORAGE"
ENV_DEBUG: str = "CAPROVER_CLI_DEBUG"
ENV_POLL_INTERVAL: str = "CAPROVER_BUILD_LOG_INTERVAL"
ENV_MAX_ATTEMPTS: str = "CAPROVER_BUILD_LOG_MAX_ATTEMPTS"
ENV_HTTP_TIMEOUT: str = "CAPROVER_HTTP_TIMEOUT"

_TRUTHY: frozenset[str] = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class Settings:
    """Immutable process-wide configuration."""

    storage_path: Path
    """JSON file holding logged-in machines and deployed directories."""

    debug: bool = False
    """Emit debug log records on stderr."""

    poll_interval: float = 2.0
    """Seconds between two build-log fetches."""

    max_poll_attempts: int | None = None
    """Upper bound on build-log fetches; ``None`` polls until a terminal state."""

    http_timeout: float = 60.0
    """Per-request timeout in seconds."""

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> Settings:
        """Build settings from *environ*, falling back to defaults."""
        max_attempts = _parse_int(environ, ENV_MAX_ATTEMPTS, 0)
        return cls(
            storage_path=_storage_path(environ),
            debug=environ.get(ENV_DEBUG, "").strip().lower() in _TRUTHY,
            poll_interval=_parse_float(environ, ENV_POLL_INTERVAL, 2.0),
            max_poll_attempts=max_attempts if max_attempts > 0 else None,
            http_timeout=_parse_float(environ, ENV_HTTP_TIMEOUT, 60.0),
        )


def _storage_path(environ: Mapping[str, str]) -> Path:
    explicit = environ.get(ENV_STORAGE)
    if explicit:
        return Path(explicit).expanduser()
    config_home = environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / "caprover-cli" / "storage.json"


def _parse_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise UserInputError(
            f"{key} must be a number, got {raw!r}.",
        ) from exc
    if value <= 0:
        raise UserInputError(f"{key} must be greater than zero, got {raw!r}.")
    return value


def _parse_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise UserInputError(
            f"{key} must be an integer, got {raw!r}.",
        ) from exc
