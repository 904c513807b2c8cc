"""``caprover logout``: forget a stored machine."""

from __future__ import annotations

from caprover_cli.cli import exit_codes
from caprover_cli.cli.commands.auth import machine_choices
from caprover_cli.cli.commands.base import Command
from caprover_cli.cli.console import machine_label, print_message
from caprover_cli.core.options import OptionContext, OptionSpec, ParamSet, ParamSource
from caprover_cli.core.validations import get_error_for_machine_name, user_cancel_operation
from caprover_cli.utils.constants import KEY_NAME


class LogoutCommand(Command):
    name = "logout"
    description = "Logout from a CapRover machine and clear auth info."

    def options(self, ctx: OptionContext) -> list[OptionSpec]:
        params = ctx.params
        storage = self.services.storage
        provided = params is not None and params.find(KEY_NAME) is not None

        def filter_name(name: str) -> str:
            if provided:
                return name.strip()
            user_cancel_operation(not name)
            return name

        return [
            self.config_file_option(),
            OptionSpec(
                name=KEY_NAME,
                char="n",
                env="CAPROVER_NAME",
                type="list",
                message=(
                    "select the CapRover machine name you want to logout from"
                    if params is not None
                    else "CapRover machine name to logout from"
                ),
                choices=lambda: machine_choices(self.services),
                filter=filter_name,
                validate=lambda name: get_error_for_machine_name(
                    name, storage.get_machines(), check_existing=True
                ),
            ),
            OptionSpec(
                name="confirmedToLogout",
                type="confirm",
                message=lambda: "are you sure you want to logout from this CapRover machine?",
                default=False,
                hidden=True,
                when=lambda: params is not None and params.source(KEY_NAME) is ParamSource.QUESTION,
                on_resolved=lambda param: param is not None and user_cancel_operation(not param.value),
            ),
        ]

    def pre_action(self, flags: dict) -> dict | None:
        print_message("Logout from a CapRover machine...\n")
        return flags

    def action(self, params: ParamSet) -> int:
        removed = self.services.storage.remove_machine(params.value(KEY_NAME))
        print_message(f"You are now logged out from {machine_label(removed)}.\n")
        return exit_codes.SUCCESS
