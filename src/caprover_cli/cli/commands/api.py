"""``caprover api``: call an arbitrary endpoint of a CapRover machine."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from caprover_cli.cli import exit_codes
from caprover_cli.cli.commands.auth import (
    api_method_choices,
    api_methods_description,
    ensure_authentication_option,
    machine_choices,
    require_machine,
)
from caprover_cli.cli.commands.base import Command, Services
from caprover_cli.cli.console import (
    escape,
    machine_name,
    machine_url,
    out,
    print_message,
    print_success,
    print_warning,
)
from caprover_cli.core.models import Machine
from caprover_cli.core.options import OptionContext, OptionSpec, ParamSet, ParamSource
from caprover_cli.core.urls import clean_admin_domain_url
from caprover_cli.core.validations import (
    get_error_for_domain,
    get_error_for_machine_name,
    get_error_for_password,
    user_cancel_operation,
)
from caprover_cli.exceptions import ApiError, CaproverCliError
from caprover_cli.utils.constants import ADMIN_DOMAIN, API_METHODS, KEY_NAME, KEY_PASSWORD, KEY_URL

K_PATH = "path"
K_METHOD = "method"
K_DATA = "data"
K_OUTPUT = "output"


def parse_data(data: Any) -> Any:
    """Decode a JSON string; anything else is returned unchanged."""
    if data and isinstance(data, str):
        try:
            return json.loads(data)
        except ValueError:
            pass
    return data


def check_data(data: Any) -> bool | str:
    if data and isinstance(data, str):
        try:
            json.loads(data)
        except ValueError as exc:
            return f"Invalid JSON data: {exc}"
    return True


class ApiCommand(Command):
    name = "api"
    description = (
        "Call a generic API on a specific CapRover machine. "
        "Use carefully only if you really know what you are doing!"
    )
    usage = (
        "%(prog)s [options]\n"
        "       %(prog)s -c file\n"
        "       %(prog)s [-c file] [-n name] [-t path] [-m method] [-d dataJsonString]\n"
        "       %(prog)s [-c file] -u url [-p password] [-n name] [-t path] [-m method] [-d dataJsonString]\n"
        "  Use --caproverName to use an already logged in CapRover machine\n"
        "  Use --caproverUrl and --caproverPassword to login on the fly to a CapRover machine, "
        "if also --caproverName is present, login credentials are stored locally"
    )

    def __init__(self, services: Services) -> None:
        super().__init__(services)
        self.machine: Machine | None = None

    def options(self, ctx: OptionContext) -> list[OptionSpec]:
        params = ctx.params
        storage = self.services.storage

        def has(key: str) -> bool:
            return params is not None and params.find(key) is not None

        def from_question(key: str) -> bool:
            return params is not None and params.source(key) is ParamSource.QUESTION

        name_given = has(KEY_NAME)
        method_given = has(K_METHOD)

        return [
            self.config_file_option(),
            OptionSpec(
                name=KEY_URL,
                char="u",
                env="CAPROVER_URL",
                message=(
                    f'CapRover machine URL address, it is "[http[s]://][{ADMIN_DOMAIN}.]'
                    'your-captain-root.domain"'
                ),
                when=False,
                filter=lambda url: clean_admin_domain_url(url) or url,
                validate=lambda url: get_error_for_domain(url, skip_already_stored=True),
            ),
            OptionSpec(
                name=KEY_PASSWORD,
                char="p",
                env="CAPROVER_PASSWORD",
                type="password",
                message="CapRover machine password",
                when=has(KEY_URL),
                validate=get_error_for_password,
            ),
            OptionSpec(
                name=KEY_NAME,
                char="n",
                env="CAPROVER_NAME",
                type="list",
                message=(
                    "select the CapRover machine name you want to call API to"
                    if params is not None
                    else "CapRover machine name, to load/store credentials"
                ),
                choices=lambda: machine_choices(self.services),
                when=not has(KEY_URL),
                filter=lambda name: name.strip() if name_given else _cancel_if_empty(name),
                validate=(
                    None
                    if has(KEY_URL)
                    else lambda name: get_error_for_machine_name(
                        name, storage.get_machines(), check_existing=True
                    )
                ),
            ),
            ensure_authentication_option(
                self.services,
                url=lambda: params.value(KEY_URL) if params is not None else None,
                password=lambda: params.value(KEY_PASSWORD) if params is not None else None,
                name=lambda: params.value(KEY_NAME) if params is not None else None,
                done=self._authenticated,
            ),
            OptionSpec(
                name=K_PATH,
                char="t",
                env="CAPROVER_API_PATH",
                message='API path to call, starting with / (eg. "/user/system/info")',
                default="/user/system/info" if params is not None else None,
                filter=lambda path: str(path).strip(),
                validate=lambda path: True if path and path.startswith("/") else "Please enter a valid path.",
            ),
            OptionSpec(
                name=K_METHOD,
                char="m",
                env="CAPROVER_API_METHOD",
                type="list",
                message=(
                    "select the API method you want to call"
                    if params is not None
                    else f"API method to call, one of: {api_methods_description()}"
                ),
                default="GET" if params is not None else None,
                choices=api_method_choices,
                filter=lambda method: method.strip() if method_given else _cancel_if_empty(method),
                validate=lambda method: (
                    True
                    if method in API_METHODS
                    else f"Please enter a valid method, one of: {api_methods_description()}"
                ),
            ),
            OptionSpec(
                name=K_DATA,
                char="d",
                env="CAPROVER_API_DATA",
                message="API data JSON string"
                + (
                    ""
                    if params is not None
                    else ' (or also JSON object from config file), for "GET" method they are '
                    "interpreted as querystring values to be appended to the path"
                ),
                filter=parse_data,
                validate=check_data,
            ),
            OptionSpec(
                name=K_OUTPUT,
                char="o",
                env="CAPROVER_API_OUTPUT",
                message=(
                    'where to log API response output: if "true" log to console, if "false" '
                    "suppress output, otherwise log to specified file (overwrite already existing)"
                ),
                default="true",
                when=False,
                filter=self._output_target,
            ),
            OptionSpec(
                name="confirmedToCall",
                type="confirm",
                message="are you sure you want to proceed?",
                default=True,
                hidden=True,
                when=lambda: from_question(KEY_NAME) or from_question(K_PATH) or from_question(K_DATA),
                on_resolved=lambda param: param is not None and user_cancel_operation(not param.value),
            ),
        ]

    def _authenticated(self, machine: Machine) -> None:
        self.machine = machine
        try:
            self.services.api_factory.for_machine(machine).get_captain_info()
        except CaproverCliError as exc:
            raise ApiError(
                f"Something bad happened during calling API to {machine.base_url}.\n{exc}",
                hint=exc.hint,
            ) from exc

    def _output_target(self, output: Any) -> str:
        if not output:
            return "false"
        output = str(output).strip() or "false"
        if output in ("true", "false") or Path(output).is_absolute():
            return output
        return str(self.services.cwd / output)

    def pre_action(self, flags: dict) -> dict | None:
        print_message("Call generic CapRover API [Experimental Feature]...\n")
        return flags

    def action(self, params: ParamSet) -> int:
        machine = require_machine(self.machine)
        path = params.value(K_PATH)
        try:
            response = self.services.api_factory.for_machine(machine).call_api(
                path,
                params.value(K_METHOD),
                params.value(K_DATA),
            )
        except CaproverCliError:
            where = machine_name(machine.name) if machine.name else machine_url(machine.base_url)
            print_message(f"\n[bold red]Something bad happened calling API {machine_url(path)} at {where}.[/bold red]")
            raise

        print_success("API call completed successfully!\n")
        target = params.value(K_OUTPUT, "true")
        data = json.dumps(response, indent=2)
        if target == "true":
            out.print(escape(data) + "\n")
        elif target != "false":
            try:
                Path(target).write_text(data, encoding="utf-8")
            except OSError as exc:
                print_warning(f'Error writing API response to file: "{escape(target)}".\n{escape(exc)}\n')
        return exit_codes.SUCCESS


def _cancel_if_empty(value: str) -> str:
    user_cancel_operation(not value)
    return value
