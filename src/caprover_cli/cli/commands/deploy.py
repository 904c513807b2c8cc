"""``caprover deploy``: push a branch, tar file or image to an app."""

from __future__ import annotations

from caprover_cli.cli import exit_codes
from caprover_cli.cli.commands.auth import (
    app_choices,
    ensure_authentication_option,
    machine_choices,
    require_machine,
)
from caprover_cli.cli.commands.base import Command, Services
from caprover_cli.cli.console import app_name, machine_name, print_message, print_tip, print_warning
from caprover_cli.core.deploy import DeployPipeline
from caprover_cli.core.models import (
    AppDefinition,
    DeployedDirectory,
    DeploySource,
    DeployTarget,
    Machine,
)
from caprover_cli.core.options import (
    OptionAlias,
    OptionContext,
    OptionSpec,
    ParamSet,
    ParamSource,
)
from caprover_cli.core.urls import clean_admin_domain_url
from caprover_cli.core.validations import (
    get_error_for_app_name,
    get_error_for_branch_name,
    get_error_for_domain,
    get_error_for_machine_name,
    get_error_for_password,
    user_cancel_operation,
)
from caprover_cli.exceptions import (
    BuildFailedError,
    CaproverCliError,
    DeployError,
    DeploySourceError,
    RemoteStateError,
    UserCancelledError,
    UserInputError,
)
from caprover_cli.infra.workspace import validate_definition_file, validate_is_git_repository
from caprover_cli.utils.constants import ADMIN_DOMAIN, KEY_APP, KEY_NAME, KEY_PASSWORD, KEY_URL

K_DEFAULT = "default"
K_BRANCH = "branch"
K_TAR = "tarFile"
K_IMAGE = "imageName"


def run_deploy(services: Services, target: DeployTarget, source: DeploySource) -> bool:
    """Deploy through :class:`DeployPipeline`, adding app and machine context to errors.

    Build failures and cancellations propagate unchanged.
    """
    try:
        with services.reporter_factory() as reporter:
            pipeline = DeployPipeline(
                services.api_factory,
                services.archiver,
                reporter,
                services.cwd,
                services.settings,
                services.cancel_token,
            )
            return pipeline.deploy(target, source)
    except (BuildFailedError, UserCancelledError):
        raise
    except CaproverCliError as exc:
        raise DeployError(
            f"Something bad happened: cannot deploy {target.app_name} at {target.machine_label}.\n{exc}",
            hint=exc.hint,
        ) from exc


def load_apps(services: Services, machine: Machine) -> list[AppDefinition]:
    try:
        return services.api_factory.for_machine(machine).get_all_apps()
    except CaproverCliError as exc:
        raise DeployError(
            f"Something bad happened during deployment to {machine.name or machine.base_url}.\n{exc}",
            hint=exc.hint,
        ) from exc


class DeployCommand(Command):
    name = "deploy"
    description = "Deploy your app to a specific CapRover machine. You'll be prompted for missing parameters."
    usage = (
        "%(prog)s [options]\n"
        "       %(prog)s -d\n"
        "       %(prog)s -c file\n"
        "       %(prog)s [-c file] [-n name] [-a app] [-b branch | -t tarFile | -i image]\n"
        "       %(prog)s [-c file] -u url [-p password] [-n name] [-a app] [-b branch | -t tarFile | -i image]"
    )

    def __init__(self, services: Services) -> None:
        super().__init__(services)
        self.apps: list[AppDefinition] = []
        self.machine: Machine | None = None
        self.previous: DeployedDirectory | None = None

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def options(self, ctx: OptionContext) -> list[OptionSpec]:
        if self.previous is not None:
            return [self._previous_deploy_option(ctx, self.previous)]

        params = ctx.params
        storage = self.services.storage

        def has(key: str) -> bool:
            return params is not None and params.find(key) is not None

        def from_question(key: str) -> bool:
            return params is not None and params.source(key) is ParamSource.QUESTION

        def select_filter(key: str):
            provided = has(key)

            def _filter(value: str) -> str:
                if provided:
                    return value.strip()
                user_cancel_operation(not value)
                return value

            return _filter

        return [
            OptionSpec(
                name=K_DEFAULT,
                char="d",
                type="confirm",
                message=(
                    "use previously entered values for the current directory, "
                    "no others options are considered"
                ),
                when=False,
            ),
            self.config_file_option(lambda _param: self.validate_deploy_source(ctx.params)),
            OptionSpec(
                name=KEY_URL,
                char="u",
                env="CAPROVER_URL",
                aliases=(OptionAlias(name="host"),),
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
                aliases=(OptionAlias(name="pass"),),
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
                    "select the CapRover machine name you want to deploy to"
                    if params is not None
                    else "CapRover machine name, to load/store credentials"
                ),
                choices=lambda: machine_choices(self.services),
                when=not has(KEY_URL),
                filter=select_filter(KEY_NAME),
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
                name=KEY_APP,
                char="a",
                env="CAPROVER_APP",
                aliases=(OptionAlias(name="appName"),),
                type="list",
                message=(
                    "select the app name you want to deploy to"
                    if params is not None
                    else "app name to deploy to"
                ),
                choices=lambda: app_choices(self.apps),
                filter=select_filter(KEY_APP),
                validate=lambda app: get_error_for_app_name(self.apps, app),
            ),
            OptionSpec(
                name=K_BRANCH,
                char="b",
                env="CAPROVER_BRANCH",
                message="git branch name to be deployed"
                + ("" if params is not None else ", current directory must be git root directory"),
                default="master" if params is not None else None,
                when=not has(K_TAR) and not has(K_IMAGE),
                validate=lambda branch: get_error_for_branch_name(
                    branch,
                    lambda name: self.services.archiver.rev_parse(name, self.services.cwd),
                ),
            ),
            OptionSpec(
                name=K_TAR,
                char="t",
                env="CAPROVER_TAR_FILE",
                message="tar file to be uploaded, must contain captain-definition file",
                when=False,
            ),
            OptionSpec(
                name=K_IMAGE,
                char="i",
                env="CAPROVER_IMAGE_NAME",
                message=(
                    "image name to be deployed, it should either exist on server, or it has to be "
                    "public, or on a private repository that CapRover has access to"
                ),
                when=False,
            ),
            OptionSpec(
                name="confirmedToDeploy",
                type="confirm",
                message=lambda: (
                    "note that uncommitted and gitignored files (if any) will not be pushed "
                    "to server! Are you sure you want to deploy?"
                    if has(K_BRANCH)
                    else "are you sure you want to deploy?"
                ),
                default=True,
                hidden=True,
                when=lambda: from_question(KEY_NAME) or from_question(KEY_APP) or from_question(K_BRANCH),
                on_resolved=lambda param: param is not None and user_cancel_operation(not param.value),
            ),
        ]

    def _authenticated(self, machine: Machine) -> None:
        self.machine = machine
        self.apps = load_apps(self.services, machine)

    def _previous_deploy_option(self, ctx: OptionContext, previous: DeployedDirectory) -> OptionSpec:

        def done(machine: Machine) -> None:
            self._authenticated(machine)
            error = get_error_for_app_name(self.apps, previous.app_name)
            if error is not True:
                raise RemoteStateError(str(error or "Error!"))
            params = ctx.params
            if params is None:
                return
            params.put(KEY_APP, previous.app_name, ParamSource.DEFAULT)
            source = previous.deploy_source
            if source.branch:
                params.put(K_BRANCH, source.branch, ParamSource.DEFAULT)
            elif source.tar_file_path:
                params.put(K_TAR, source.tar_file_path, ParamSource.DEFAULT)
            else:
                params.put(K_IMAGE, source.image_name, ParamSource.DEFAULT)
            self.validate_deploy_source(params)

        return ensure_authentication_option(
            self.services,
            url=lambda: None,
            password=lambda: None,
            name=lambda: previous.machine_name,
            done=done,
        )

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def validate_deploy_source(self, params: ParamSet | None) -> None:
        """Reject several sources; check the git workspace for branch deploys."""
        if params is None:
            return
        count = sum(1 for key in (K_BRANCH, K_TAR, K_IMAGE) if params.find(key) is not None)
        if count > 1:
            raise DeploySourceError(
                "Only one of branch, tarFile or imageName can be present in deploy.",
            )
        if params.find(K_TAR) is None and params.find(K_IMAGE) is None:
            validate_is_git_repository(self.services.cwd)
            warning = validate_definition_file(self.services.cwd)
            if warning:
                print_warning("**** Warning ****")
                print_message(warning + "\n")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def pre_action(self, flags: dict) -> dict | None:
        print_message("Preparing deployment to CapRover...\n")
        storage = self.services.storage
        cwd = str(self.services.cwd)
        previous = next(
            (entry for entry in storage.get_deployed_directories() if entry.cwd == cwd),
            None,
        )

        if flags.get(K_DEFAULT):
            if previous is not None and previous.machine_name:
                if storage.find_machine(previous.machine_name) is None:
                    raise UserInputError(
                        f"You have to first login to {previous.machine_name} CapRover machine "
                        "to use previously saved deploy options from this directory with --default.",
                    )
                self.previous = previous
                return {}
            print_message(
                "[bold red]Can't find previously saved deploy options from this directory, "
                "can't use --default.[/bold red]"
            )
            print_message("Falling back to asking questions...\n")
        elif (
            previous is not None
            and previous.machine_name
            and storage.find_machine(previous.machine_name) is not None
        ):
            print_tip("**** Protip ****")
            print_message(
                f"You seem to have deployed {app_name(previous.app_name)} to "
                f"{machine_name(previous.machine_name)} from this directory in the past, "
                "use --default flag to avoid having to re-enter the information.\n"
            )
        return flags

    def action(self, params: ParamSet) -> int:
        machine = require_machine(self.machine)
        target_app = params.value(KEY_APP)
        app = next((candidate for candidate in self.apps if candidate.app_name == target_app), None)
        target = DeployTarget(
            app_name=target_app,
            machine=machine,
            ssl=bool(app and app.has_default_sub_domain_ssl),
        )
        source = DeploySource(
            branch=params.value(K_BRANCH) or None,
            tar_file_path=params.value(K_TAR) or None,
            image_name=params.value(K_IMAGE) or None,
        )
        if run_deploy(self.services, target, source):
            self.services.storage.save_deployed_directory(
                DeployedDirectory(
                    app_name=target.app_name,
                    cwd=str(self.services.cwd),
                    deploy_source=source,
                    machine_name=machine.name,
                )
            )
        return exit_codes.SUCCESS
