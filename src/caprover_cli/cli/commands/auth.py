"""Authentication step and choice lists shared by several commands."""

from __future__ import annotations

from collections.abc import Callable

from caprover_cli.cli.commands.base import Services
from caprover_cli.cli.console import machine_label, print_message, print_warning
from caprover_cli.core.models import AppDefinition, Machine
from caprover_cli.core.options import Choice, OptionSpec
from caprover_cli.core.validations import (
    get_error_for_domain,
    get_error_for_machine_name,
    get_error_for_password,
)
from caprover_cli.exceptions import AuthError, CaproverCliError, UserInputError
from caprover_cli.utils.constants import API_METHODS, CANCEL_STRING

ValueGetter = Callable[[], "str | None"]


# ---------------------------------------------------------------------------
# Choice lists
# ---------------------------------------------------------------------------

def machine_choices(services: Services) -> list[Choice]:
    return [Choice(title=CANCEL_STRING, value="")] + [
        Choice(title=f"{machine.name} at {machine.base_url}", value=machine.name)
        for machine in services.storage.get_machines()
    ]


def app_choices(apps: list[AppDefinition]) -> list[Choice]:
    return [Choice(title=CANCEL_STRING, value="")] + [
        Choice(title=app.app_name, value=app.app_name) for app in apps
    ]


def api_method_choices() -> list[Choice]:
    return [Choice(title=CANCEL_STRING, value="")] + [
        Choice(title=method, value=method) for method in API_METHODS
    ]


def api_methods_description() -> str:
    return ", ".join(f'"{method}"' for method in API_METHODS)


def captain_full_name(suffix: int) -> str:
    return f"captain-{suffix:02d}"


def find_default_captain_name(services: Services) -> str:
    """Return the first ``captain-NN`` name not used by a stored machine."""
    names = {machine.name for machine in services.storage.get_machines()}
    suffix = 1
    while captain_full_name(suffix) in names:
        suffix += 1
    return captain_full_name(suffix)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def login_machine(services: Services, machine: Machine, password: str) -> None:
    """Log in and report where the token was saved."""
    services.api_factory.for_machine(machine).login(password)
    print_message("[green]Logged in successfully.[/green]")
    print_message(f"Authorization token is now saved as {machine_label(machine)}.\n")


def require_machine(machine: Machine | None) -> Machine:
    """Return *machine*, or fail when no authentication step has run."""
    if machine is None:
        raise UserInputError(
            "No authenticated machine for this command.",
            hint='Pass --caproverUrl with --caproverPassword, or --caproverName after "caprover login".',
        )
    return machine


def ensure_authentication(
    services: Services,
    url: str | None,
    password: str | None,
    name: str | None,
) -> Machine:
    """Return a machine to talk to, logging in when credentials are given.

    With *url*, a fresh machine is built (named *name* when that name can
    be stored).  Without it, the stored machine *name* is used and its
    token checked; an expired token is cleared and, with *password*,
    replaced.

    Raises
    ------
    UserInputError
        When neither *url* nor *name* is given, or *name* is unknown.
    """
    storage = services.storage
    if url:
        machine = Machine(name="", base_url=url)
        if name:
            error = get_error_for_domain(url, storage.get_machines())
            if error is True:
                error = get_error_for_machine_name(name, storage.get_machines())
            if error is True:
                machine.name = name
            else:
                print_warning(f"\nCan't store login credentials: {error or 'error!'}\n")
        if password:
            services.api_factory.for_machine(machine).login(password)
        return machine

    if name:
        machine = storage.find_machine(name)
        if machine is None:
            raise UserInputError(f'Can\'t find stored machine "{name}"')
        try:
            services.api_factory.for_machine(machine).get_all_apps()
        except CaproverCliError:
            print_warning(
                f"Your auth token for {machine_label(machine)} is not valid anymore, "
                "try to login again..."
            )
            machine.auth_token = ""
            if password:
                services.api_factory.for_machine(machine).login(password)
        return machine

    raise UserInputError("Too few arguments, no url or machine name")


def ensure_authentication_option(
    services: Services,
    url: ValueGetter,
    password: ValueGetter,
    name: ValueGetter,
    done: Callable[[Machine], None],
) -> OptionSpec:
    """Hidden option that authenticates and asks for a password only if needed.

    Its ``when`` performs the authentication; the password prompt appears
    only when no valid token is available, and its ``validate`` logs in
    with the typed password.  *done* receives the authenticated machine.
    """
    state: dict[str, Machine] = {}

    def when() -> bool:
        print_message("Ensuring authentication...")
        target_url, target_name = url(), name()
        try:
            state["machine"] = ensure_authentication(services, target_url, password(), target_name)
        except CaproverCliError as exc:
            where = target_url or target_name or ""
            raise AuthError(
                f"Something bad happened during authentication to {where}.\n{exc}",
                hint=exc.hint,
            ) from exc
        return not state["machine"].auth_token

    def validate(value: str) -> bool | str:
        error = get_error_for_password(value)
        if error is not True:
            return error
        machine = state["machine"]
        try:
            services.api_factory.for_machine(machine).login(value)
        except CaproverCliError as exc:
            raise AuthError(
                f"Something bad happened during authentication to {machine.base_url}.\n{exc}",
            ) from exc
        return True

    return OptionSpec(
        name="ensureAuthenticationPlaceholder",
        type="password",
        message="CapRover machine password",
        hidden=True,
        when=when,
        validate=validate,
        on_resolved=lambda _param: done(state["machine"]),
    )
