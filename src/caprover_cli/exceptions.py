"""Custom exception hierarchy for caprover-cli.

All exceptions that cross layer boundaries must inherit from
:class:`CaproverCliError`.  Raw third-party exceptions (``requests``,
``yaml``, ``subprocess``) must NEVER propagate beyond the infrastructure
layer; they must be caught and re-raised as a typed subclass defined here.

Hierarchy
---------
CaproverCliError
├── UserInputError
├── ConfigFileError
├── ApiError
│   └── AuthError
├── RemoteStateError
├── TransientIOError
├── DeployError
│   ├── DeploySourceError
│   ├── SourceArchiveError
│   ├── BuildFailedError
│   └── BuildLogTimeoutError
├── UserCancelledError
│   └── OperationCancelledError
└── EnvironmentError
"""

from __future__ import annotations


class CaproverCliError(Exception):
    """Base exception for all caprover-cli errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Parameter resolution --------------------------------------------------

class UserInputError(CaproverCliError):
    """Raised when a flag, config-file or prompt value fails validation."""


class ConfigFileError(CaproverCliError):
    """Raised when the parameters config file is missing or malformed."""


# --- Remote API ------------------------------------------------------------

class ApiError(CaproverCliError):
    """Raised when the control-plane API answers with a non-OK status."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status: int | None = status
        """Captain status code from the response envelope, if any."""


class AuthError(ApiError):
    """Raised when authentication fails (wrong password, invalid token)."""


class RemoteStateError(CaproverCliError):
    """Raised when the remote machine is not in a usable state.

    Examples: app not found, app already building, root domain
    verification failed.
    """


class TransientIOError(CaproverCliError):
    """Raised on network hiccups talking to the control-plane API."""


# --- Deployment ------------------------------------------------------------

class DeployError(CaproverCliError):
    """Raised when a deployment cannot be carried out."""


class DeploySourceError(DeployError):
    """Raised when zero or several deploy sources are given."""


class SourceArchiveError(DeployError):
    """Raised when the source tree cannot be packaged into a tar file."""


class BuildFailedError(DeployError):
    """Raised when the remote build reports a failure."""


class BuildLogTimeoutError(DeployError):
    """Raised when build-log polling exceeds its configured attempt cap."""


# --- User interaction ------------------------------------------------------

class UserCancelledError(CaproverCliError):
    """Raised when the user cancels an operation from a prompt."""


class OperationCancelledError(UserCancelledError):
    """Raised when a cancel token aborts an in-flight operation."""


# --- Environment / tooling -------------------------------------------------

class EnvironmentError(CaproverCliError):
    """Raised when a required runtime dependency is not available."""
