"""Sub-commands of the ``caprover`` CLI.

Rules
-----
* One module per command; each exposes a single :class:`Command` subclass.
* Commands talk to the outside world only through
  :class:`~caprover_cli.cli.commands.base.Services`.
"""

from __future__ import annotations

from caprover_cli.cli.commands.api import ApiCommand
from caprover_cli.cli.commands.base import Command, Services
from caprover_cli.cli.commands.config_deploy import ConfigDeployCommand
from caprover_cli.cli.commands.deploy import DeployCommand
from caprover_cli.cli.commands.list_machines import ListCommand
from caprover_cli.cli.commands.login import LoginCommand
from caprover_cli.cli.commands.logout import LogoutCommand
from caprover_cli.cli.commands.serversetup import ServerSetupCommand

COMMANDS: tuple[type[Command], ...] = (
    LoginCommand,
    LogoutCommand,
    ListCommand,
    DeployCommand,
    ConfigDeployCommand,
    ServerSetupCommand,
    ApiCommand,
)
"""Registration order, which is also the order shown by ``--help``."""

__all__: list[str] = [
    "COMMANDS",
    "ApiCommand",
    "Command",
    "ConfigDeployCommand",
    "DeployCommand",
    "ListCommand",
    "LoginCommand",
    "LogoutCommand",
    "ServerSetupCommand",
    "Services",
]
