"""``caprover login``: store credentials for a CapRover machine."""

from __future__ import annotations

from caprover_cli.cli import exit_codes
from caprover_cli.cli.commands.auth import find_default_captain_name, login_machine
from caprover_cli.cli.commands.base import Command
from caprover_cli.cli.console import print_message
from caprover_cli.core.models import Machine
from caprover_cli.core.options import OptionAlias, OptionContext, OptionSpec, ParamSet, ResolvedParam
from caprover_cli.core.urls import clean_admin_domain_url
from caprover_cli.core.validations import (
    get_error_for_domain,
    get_error_for_machine_name,
    get_error_for_password,
)
from caprover_cli.exceptions import UserInputError
from caprover_cli.utils.constants import ADMIN_DOMAIN, KEY_NAME, KEY_PASSWORD, KEY_URL, SAMPLE_DOMAIN


class LoginCommand(Command):
    name = "login"
    description = "Login to a CapRover machine. You can be logged in to multiple machines simultaneously."

    def options(self, ctx: OptionContext) -> list[OptionSpec]:
        storage = self.services.storage
        asking = ctx.params is not None
        return [
            self.config_file_option(self._check_name),
            OptionSpec(
                name=KEY_URL,
                char="u",
                env="CAPROVER_URL",
                aliases=(OptionAlias(name="host"),),
                message=(
                    f'CapRover machine URL address, it is "[http[s]://][{ADMIN_DOMAIN}.]'
                    'your-captain-root.domain"'
                ),
                default=SAMPLE_DOMAIN if asking else None,
                filter=lambda url: clean_admin_domain_url(url) or url,
                validate=lambda url: get_error_for_domain(url, storage.get_machines()),
            ),
            OptionSpec(
                name=KEY_PASSWORD,
                char="p",
                env="CAPROVER_PASSWORD",
                aliases=(OptionAlias(name="pass"),),
                type="password",
                message="CapRover machine password",
                validate=get_error_for_password,
            ),
            OptionSpec(
                name=KEY_NAME,
                char="n",
                env="CAPROVER_NAME",
                message="CapRover machine name, with whom the login credentials are stored locally",
                default=(lambda: find_default_captain_name(self.services)) if asking else None,
                filter=lambda name: name.strip(),
                validate=lambda name: get_error_for_machine_name(name, storage.get_machines()),
            ),
        ]

    def pre_action(self, flags: dict) -> dict | None:
        print_message("Login to a CapRover machine...\n")
        return flags

    def _check_name(self, _param: ResolvedParam | None) -> None:
        params = self.context.params
        name = params.find(KEY_NAME) if params is not None else None
        if name is None:
            return
        error = get_error_for_machine_name(name.value, self.services.storage.get_machines())
        if error is not True:
            raise UserInputError(str(error or "Error!"))

    def action(self, params: ParamSet) -> int:
        machine = Machine(name=params.value(KEY_NAME), base_url=params.value(KEY_URL))
        login_machine(self.services, machine, params.value(KEY_PASSWORD))
        return exit_codes.SUCCESS
