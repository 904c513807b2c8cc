"""``caprover config-deploy``: deploy what ``cap-rover.config.json`` describes."""

from __future__ import annotations

from pathlib import Path

from caprover_cli.cli import exit_codes
from caprover_cli.cli.commands.base import Command, Services
from caprover_cli.cli.commands.deploy import load_apps, run_deploy
from caprover_cli.cli.console import print_message
from caprover_cli.core.captain_config import CaptainConfig, CaptainEnvironment
from caprover_cli.core.models import AppDefinition, DeploySource, DeployTarget, Machine
from caprover_cli.core.options import Choice, OptionAlias, OptionContext, OptionSpec, ParamSet
from caprover_cli.core.urls import clean_admin_domain_url
from caprover_cli.core.validations import get_error_for_app_name, get_error_for_domain
from caprover_cli.exceptions import ConfigFileError, RemoteStateError, UserInputError
from caprover_cli.infra.config_file import load_captain_config
from caprover_cli.infra.tar_packer import create_tar_archive

K_DIRECTORY = "directory"
K_ENVIRONMENT = "environment"


class ConfigDeployCommand(Command):
    name = "config-deploy"
    description = (
        "Deployment via CapRover config file (cap-rover.config.json). "
        'To use this command, you have to be logged in to one machine via "caprover login".'
    )
    usage = "%(prog)s [-d directory] [-e environment]"

    def __init__(self, services: Services) -> None:
        super().__init__(services)
        self.config: CaptainConfig | None = None
        self.directory: Path = services.cwd

    def options(self, ctx: OptionContext) -> list[OptionSpec]:
        return [
            OptionSpec(
                name=K_DIRECTORY,
                char="d",
                env="CAPROVER_CONFIG_DIR",
                message="CapRover config file directory",
                when=self._config_missing_in_cwd,
                filter=lambda directory: str(directory).strip(),
                validate=self._load_directory,
            ),
            OptionSpec(
                name=K_ENVIRONMENT,
                char="e",
                env="CAPROVER_ENVIRONMENT",
                aliases=(OptionAlias(name="env"),),
                type="list",
                message="choose environment",
                choices=self._environment_choices,
                when=lambda: bool(self.config and self.config.environment_names),
                filter=lambda environment: str(environment).strip(),
            ),
        ]

    def _config_missing_in_cwd(self) -> bool:
        try:
            self.config = load_captain_config(self.services.cwd)
        except ConfigFileError as exc:
            print_message(str(exc))
            return True
        self.directory = self.services.cwd
        return False

    def _load_directory(self, directory: str) -> bool | str:
        path = Path(directory).expanduser()
        if not path.is_absolute():
            path = self.services.cwd / path
        if not path.is_dir():
            return f"{path} is not a directory."
        try:
            self.config = load_captain_config(path)
        except ConfigFileError as exc:
            return str(exc)
        self.directory = path
        return True

    def _environment_choices(self) -> list[Choice]:
        names = self.config.environment_names if self.config else []
        return [Choice(title="DEFAULT", value="")] + [Choice(title=name, value=name) for name in names]

    def pre_action(self, flags: dict) -> dict | None:
        print_message("Preparing deployment to CapRover...\n")
        return flags

    # ------------------------------------------------------------------
    # Deploy
    # ------------------------------------------------------------------

    def resolve_target(self, environment: CaptainEnvironment) -> tuple[Machine, AppDefinition]:
        """Find the logged-in machine and the app named by *environment*.

        Raises
        ------
        ConfigFileError
            When the URL or app name in the config is invalid.
        UserInputError
            When no stored machine matches the configured URL.
        """
        url = environment.cap_rover_url
        error = get_error_for_domain(url, skip_already_stored=True)
        if error is not True:
            raise ConfigFileError(f'The capRoverUrl "{url}" is not valid!\n{error}')

        wanted = clean_admin_domain_url(url)
        machine = next(
            (
                candidate
                for candidate in self.services.storage.get_machines()
                if candidate.base_url == url or clean_admin_domain_url(candidate.base_url) == wanted
            ),
            None,
        )
        if machine is None:
            raise UserInputError(
                f"Please login first into {url}.",
                hint='Use "caprover login".',
            )

        apps = load_apps(self.services, machine)
        if not apps:
            raise RemoteStateError(
                f"No apps found on {url}.",
                hint='Create the app on the dashboard, or check "caprover login".',
            )
        error = get_error_for_app_name(apps, environment.app_name)
        if error is not True:
            raise ConfigFileError(f"AppName property in config file is wrong: {error}")
        app = next(app for app in apps if app.app_name == environment.app_name)
        return machine, app

    def action(self, params: ParamSet) -> int:
        if self.config is None:
            raise ConfigFileError("No CapRover config file found!")
        environment = self.config.for_environment(params.value(K_ENVIRONMENT) or None)
        machine, app = self.resolve_target(environment)

        tar_path = create_tar_archive(self.directory, environment.include, environment.definition)
        try:
            run_deploy(
                self.services,
                DeployTarget(
                    app_name=app.app_name,
                    machine=machine,
                    ssl=app.has_default_sub_domain_ssl,
                ),
                DeploySource(tar_file_path=str(tar_path)),
            )
        finally:
            tar_path.unlink(missing_ok=True)
        return exit_codes.SUCCESS
