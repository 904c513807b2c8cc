"""Core layer: parameter resolution, validation and the deploy pipeline.

Rules
-----
* No ``print()`` calls; user-facing output goes through protocols.
* No network I/O.  Filesystem access is limited to the deploy archive.
* No imports from ``cli`` or ``infra``.
"""

from caprover_cli.core.cancellation import CancelToken
from caprover_cli.core.deploy import DeployPipeline
from caprover_cli.core.models import (
    AppDefinition,
    BuildLogSnapshot,
    DeployedDirectory,
    DeploySource,
    DeployTarget,
    Machine,
)
from caprover_cli.core.options import OptionContext, OptionSpec, ParamSet, ParamSource
from caprover_cli.core.resolver import ParameterResolver

__all__: list[str] = [
    "AppDefinition",
    "BuildLogSnapshot",
    "CancelToken",
    "DeployPipeline",
    "DeploySource",
    "DeployTarget",
    "DeployedDirectory",
    "Machine",
    "OptionContext",
    "OptionSpec",
    "ParamSet",
    "ParamSource",
    "ParameterResolver",
]
