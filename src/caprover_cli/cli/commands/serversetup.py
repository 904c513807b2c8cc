"""``caprover serversetup``: first-time setup of a freshly installed machine.

The steps run as the matching parameters settle: log in on the setup
port with the default password, set the root domain, enable HTTPS,
change the password, then store the machine under a name.
"""

from __future__ import annotations

from caprover_cli.cli import exit_codes
from caprover_cli.cli.commands.auth import find_default_captain_name
from caprover_cli.cli.commands.base import Command, Services
from caprover_cli.cli.console import get_rich_console, machine_label, machine_url, print_message, print_success
from caprover_cli.core.models import Machine
from caprover_cli.core.options import (
    OptionAlias,
    OptionContext,
    OptionSpec,
    ParamSet,
    ParamSource,
    ResolvedParam,
)
from caprover_cli.core.urls import clean_admin_domain_url, clean_domain
from caprover_cli.core.validations import (
    get_error_for_email,
    get_error_for_ip,
    get_error_for_machine_name,
    get_error_for_password,
)
from caprover_cli.exceptions import ApiError, AuthError, CaproverCliError, RemoteStateError, UserInputError
from caprover_cli.infra.api_client import CaptainApi
from caprover_cli.infra.http_client import STATUS_VERIFICATION_FAILED, STATUS_WRONG_PASSWORD
from caprover_cli.utils.constants import (
    ADMIN_DOMAIN,
    DEFAULT_PASSWORD,
    KEY_NAME,
    KEY_PASSWORD,
    MIN_CHARS_FOR_PASSWORD,
    SAMPLE_IP,
    SETUP_PORT,
)

K_IP = "caproverIP"
K_ROOT = "caproverRootDomain"
K_NEW_PASSWORD = "newPassword"
K_NEW_PASSWORD_CHECK = "newPasswordCheck"
K_EMAIL = "certificateEmail"

DOCKER_RUN = (
    "docker run -p 80:80 -p 443:443 -p 3000:3000 "
    "-v /var/run/docker.sock:/var/run/docker.sock -v /captain:/captain caprover/caprover"
)


class ServerSetupCommand(Command):
    name = "serversetup"
    aliases = ("setup",)
    description = "Performs necessary actions to prepare CapRover on your server."

    def __init__(self, services: Services) -> None:
        super().__init__(services)
        self.machine = Machine(name="", base_url="")
        self.setup_machine = Machine(name="", base_url="")
        self.ip = ""
        self.password = DEFAULT_PASSWORD

    def options(self, ctx: OptionContext) -> list[OptionSpec]:
        params = ctx.params
        asking = params is not None
        storage = self.services.storage

        return [
            self.config_file_option(self._check_name),
            OptionSpec(
                name="assumeYes",
                char="y",
                type="confirm",
                message=lambda: (
                    "have you already started CapRover container on your server?"
                    if asking
                    else "assume you have already started CapRover container on your server"
                ),
                default=True if asking else None,
                when=not ctx.config_file_provided,
                on_resolved=self._check_container_started,
            ),
            OptionSpec(
                name=K_IP,
                char="i",
                env="CAPROVER_IP",
                aliases=(OptionAlias(name="ipAddress", hidden=True),),
                message="IP address of your server",
                default=SAMPLE_IP if asking else None,
                filter=lambda ip: str(ip).strip(),
                validate=get_error_for_ip,
                on_resolved=self._ip_resolved,
            ),
            OptionSpec(
                name=KEY_PASSWORD,
                char="p",
                env="CAPROVER_PASSWORD",
                aliases=(OptionAlias(name="currentPassword", hidden=True),),
                type="password",
                message="current CapRover password",
                when=lambda: not self.setup_machine.auth_token,
                validate=get_error_for_password,
                on_resolved=self._password_resolved,
            ),
            OptionSpec(
                name=K_ROOT,
                char="r",
                env="CAPROVER_ROOT_DOMAIN",
                aliases=(OptionAlias(name="rootDomain", hidden=True),),
                message="CapRover server root domain",
                when=self._check_fresh_installation,
                filter=lambda domain: clean_domain(domain) or "",
                validate=lambda domain: (
                    True
                    if domain
                    else 'Please enter a valid root domain, for example use "test.yourdomain.com" '
                    'if you setup your DNS to point "*.test.yourdomain.com" to the ip address '
                    "of your server."
                ),
                on_resolved=self._root_domain_resolved,
            ),
            OptionSpec(
                name=K_NEW_PASSWORD,
                char="w",
                env="CAPROVER_NEW_PASSWORD",
                type="password",
                message=f"new CapRover password (min {MIN_CHARS_FOR_PASSWORD} characters)",
                when=lambda: self.password == DEFAULT_PASSWORD,
                validate=lambda password: get_error_for_password(password, MIN_CHARS_FOR_PASSWORD),
            ),
            OptionSpec(
                name=K_NEW_PASSWORD_CHECK,
                type="password",
                message="enter new CapRover password again",
                hidden=True,
                when=lambda: params is not None
                and params.source(K_NEW_PASSWORD) is ParamSource.QUESTION,
                validate=lambda password: get_error_for_password(
                    password,
                    params.value(K_NEW_PASSWORD, "") if params is not None else "",
                ),
            ),
            OptionSpec(
                name=K_EMAIL,
                char="e",
                env="CAPROVER_CERTIFICATE_EMAIL",
                aliases=(OptionAlias(name="emailForHttps", hidden=True),),
                message='"valid" email address to get certificate and enable HTTPS',
                filter=lambda email: str(email).strip(),
                validate=get_error_for_email,
                on_resolved=lambda param: param is not None
                and self.enable_ssl_and_change_password(
                    param.value,
                    params.value(K_NEW_PASSWORD) if params is not None else None,
                ),
            ),
            OptionSpec(
                name=KEY_NAME,
                char="n",
                env="CAPROVER_NAME",
                aliases=(OptionAlias(name="machineName", hidden=True),),
                message="CapRover machine name, with whom the login credentials are stored locally",
                default=(lambda: find_default_captain_name(self.services)) if asking else None,
                filter=lambda name: str(name).strip(),
                validate=lambda name: get_error_for_machine_name(name, storage.get_machines()),
                on_resolved=self._name_resolved,
            ),
        ]

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _check_name(self, _param: ResolvedParam | None) -> None:
        params = self.context.params
        name = params.find(KEY_NAME) if params is not None else None
        if name is None:
            return
        error = get_error_for_machine_name(name.value, self.services.storage.get_machines())
        if error is not True:
            raise UserInputError(str(error or "Error!"))

    @staticmethod
    def _check_container_started(param: ResolvedParam | None) -> None:
        if param is not None and not param.value:
            raise UserInputError(
                "Cannot setup CapRover if container is not started!",
                hint=(
                    f"Start it by running the following line:\n{DOCKER_RUN}\n"
                    "Please read tutorial on CapRover.com to learn how to install CapRover on a server."
                ),
            )

    def _ip_resolved(self, param: ResolvedParam | None) -> None:
        if param is None:
            return
        self.ip = param.value
        self.setup_machine = Machine(name="", base_url=f"http://{self.ip}:{SETUP_PORT}")
        params = self.context.params
        if params is None or params.find(KEY_PASSWORD) is None:
            self.token_from_ip(first_try=True)

    def _password_resolved(self, param: ResolvedParam | None) -> None:
        if param is not None:
            self.password = param.value
            self.token_from_ip()

    def _root_domain_resolved(self, param: ResolvedParam | None) -> None:
        if param is not None:
            self.update_root_domain(param.value)

    def _name_resolved(self, param: ResolvedParam | None) -> None:
        if param is not None:
            self.machine.name = param.value

    # ------------------------------------------------------------------
    # Remote steps
    # ------------------------------------------------------------------

    def _setup_api(self) -> CaptainApi:
        return self.services.api_factory.for_machine(self.setup_machine)

    def token_from_ip(self, *, first_try: bool = False) -> str:
        """Log in on the setup port; on the first try a wrong password yields ``""``."""
        try:
            return self._setup_api().login(self.password)
        except AuthError as exc:
            if first_try and exc.status == STATUS_WRONG_PASSWORD:
                self.setup_machine.auth_token = ""
                return ""
            raise
        except CaproverCliError as exc:
            if "Found. Redirecting to https://" in str(exc):
                hint = "You may have already setup the server! Use caprover login to log into an existing server."
            else:
                hint = (
                    "You may have specified a wrong IP address or not already started "
                    "CapRover container on your server!"
                )
            raise RemoteStateError(
                f"Cannot reach CapRover at {self.setup_machine.base_url}.\n{exc}",
                hint=hint,
            ) from exc

    def _check_fresh_installation(self) -> bool:
        root_domain = self._setup_api().get_captain_info().get("rootDomain")
        if root_domain:
            raise RemoteStateError(
                f"You may have already setup the server with root domain: {root_domain}!",
                hint="Use caprover login to log into an existing server.",
            )
        return True

    def update_root_domain(self, root_domain: str) -> None:
        try:
            self._setup_api().update_root_domain(root_domain)
        except ApiError as exc:
            if exc.status == STATUS_VERIFICATION_FAILED:
                raise RemoteStateError(
                    f"Cannot verify that {root_domain} points to your server IP.",
                    hint=(
                        f'Are you sure that you setup your DNS to point "*.{root_domain}" to {self.ip}? '
                        "Double check your DNS, if everything looks correct note that DNS changes "
                        "take up to 24 hours to work properly. Check with your Domain Provider."
                    ),
                ) from exc
            raise
        self.machine.base_url = f"http://{ADMIN_DOMAIN}.{root_domain}"
        self.machine.auth_token = self.setup_machine.auth_token

    def enable_ssl_and_change_password(self, email: str, new_password: str | None) -> None:
        """Enable HTTPS, force it, and replace the default password.

        Once HTTPS is forced the setup cannot be repeated, so a failure
        after that point carries instructions for finishing by hand.
        """
        factory = self.services.api_factory
        forced_ssl = False
        try:
            with get_rich_console().status("Enabling SSL... Takes a few seconds..."):
                factory.for_machine(self.machine).enable_root_ssl(email)
                self.machine.base_url = clean_admin_domain_url(self.machine.base_url, True) or ""
                api = factory.for_machine(self.machine)
                api.force_ssl(True)
                forced_ssl = True

                if new_password is not None:
                    api.change_password(self.password, new_password)
                    self.password = new_password
                    api.login(self.password)
        except CaproverCliError as exc:
            if not forced_ssl:
                raise
            raise RemoteStateError(
                "Server is setup, but password was not changed due to an error. "
                f"You cannot use serversetup again.\n{exc}",
                hint=(
                    f"Go to {self.machine.base_url} and change your password on settings page. "
                    "Then use <caprover login> command to connect to your server."
                ),
            ) from exc

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def pre_action(self, flags: dict) -> dict | None:
        print_message("Setup CapRover machine on your server...\n")
        return flags

    def action(self, params: ParamSet) -> int:
        self.services.storage.save_machine(self.machine)
        print_success(f"CapRover server setup completed: it is available as {machine_label(self.machine)}\n")
        print_message(f"For more details and docs see {machine_url('CapRover.com')}\n")
        return exit_codes.SUCCESS
