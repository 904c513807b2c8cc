"""Base class shared by every sub-command.

A command declares its parameters through :meth:`Command.options`,
which the :class:`~caprover_cli.core.resolver.ParameterResolver` calls
repeatedly with the shared :class:`~caprover_cli.core.options.OptionContext`.
The same schema, evaluated with an empty context, produces the
``argparse`` flags.
"""

from __future__ import annotations

import argparse
from collections.abc import Callable, Mapping
from contextlib import AbstractContextManager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from caprover_cli.cli import exit_codes
from caprover_cli.cli.console import print_message
from caprover_cli.core.cancellation import CancelToken
from caprover_cli.core.options import (
    OptionContext,
    OptionSpec,
    ParamSet,
    ResolvedParam,
    build_alias_table,
)
from caprover_cli.core.protocols import ConfigLoader, DeployReporter, Prompter, SourceArchiver
from caprover_cli.core.resolver import ParameterResolver
from caprover_cli.infra.api_client import ApiClientFactory
from caprover_cli.infra.storage import JsonStorage
from caprover_cli.settings import Settings
from caprover_cli.utils.constants import KEY_CONFIG_FILE


@dataclass(slots=True)
class Services:
    """Collaborators built once per process by :mod:`caprover_cli.cli.app`."""

    settings: Settings
    storage: JsonStorage
    api_factory: ApiClientFactory
    prompter: Prompter
    config_loader: ConfigLoader
    archiver: SourceArchiver
    cancel_token: CancelToken
    cwd: Path
    environ: Mapping[str, str]
    reporter_factory: Callable[[], AbstractContextManager[DeployReporter]]


class Command:
    """One ``caprover <command>``.

    Subclasses set :attr:`name` and :attr:`description`, override
    :meth:`options` and :meth:`action`, and optionally :meth:`pre_action`.
    """

    name: str = ""
    aliases: tuple[str, ...] = ()
    description: str = ""
    usage: str | None = None

    def __init__(self, services: Services) -> None:
        self.services = services
        self.context = OptionContext()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def options(self, ctx: OptionContext) -> list[OptionSpec]:
        return []

    def config_file_option(
        self,
        on_resolved: Callable[[ResolvedParam | None], None] | None = None,
    ) -> OptionSpec:
        return OptionSpec(
            name=KEY_CONFIG_FILE,
            char="c",
            env="CAPROVER_CONFIG_FILE",
            message=(
                "path of the file where all parameters are defined in JSON or YAML format, "
                "see other options to know config file parameters' names; "
                "this is mainly for automation purposes"
            ),
            on_resolved=on_resolved,
        )

    # ------------------------------------------------------------------
    # argparse integration
    # ------------------------------------------------------------------

    def register(self, subparsers: Any) -> argparse.ArgumentParser:
        """Add this command and its visible flags to *subparsers*."""
        parser = subparsers.add_parser(
            self.name,
            aliases=list(self.aliases),
            help=self.description,
            description=self.description,
            usage=self.usage,
        )
        taken = {"-h", "--help"}
        for option in self.options(OptionContext()):
            if not option.name or option.hidden:
                continue
            help_text = option.resolve_message()
            self._add_flag(parser, taken, option.name, option.char, option.type, help_text, option.env)
            for alias in option.aliases:
                if alias.name and not alias.hidden:
                    self._add_flag(
                        parser,
                        taken,
                        alias.name,
                        alias.char,
                        option.type,
                        f"same as --{option.name}",
                        alias.env,
                    )
        parser.set_defaults(handler=self)
        return parser

    @staticmethod
    def _add_flag(
        parser: argparse.ArgumentParser,
        taken: set[str],
        name: str,
        char: str | None,
        option_type: str,
        help_text: str,
        env: str | None,
    ) -> None:
        flags = [f"--{name}"]
        if char and f"-{char}" not in taken:
            flags.insert(0, f"-{char}")
        taken.update(flags)
        if env:
            help_text = f"{help_text} (env: {env})"
        kwargs: dict[str, Any] = {
            "dest": name,
            "default": argparse.SUPPRESS,
            "help": help_text.replace("%", "%%"),
        }
        if option_type == "confirm":
            kwargs["action"] = "store_true"
        else:
            kwargs["metavar"] = "<value>"
        parser.add_argument(*flags, **kwargs)

    def flags_from(self, namespace: argparse.Namespace) -> dict[str, Any]:
        """Return only the flags actually present in *namespace*."""
        table = build_alias_table(self.options(OptionContext()))
        return {
            entry.name: getattr(namespace, entry.name)
            for entry in table
            if hasattr(namespace, entry.name)
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self, flags: Mapping[str, Any]) -> int:
        """Resolve parameters and run :meth:`action`."""
        prepared = self.pre_action(dict(flags))
        if prepared is None:
            return exit_codes.SUCCESS
        resolver = ParameterResolver(
            self.services.prompter,
            self.services.config_loader,
            self.services.environ,
            self.services.cwd,
        )
        params = resolver.resolve(self.options, prepared, self.context)
        return self.action(params)

    def pre_action(self, flags: dict[str, Any]) -> dict[str, Any] | None:
        """Hook run before resolution.  Returning ``None`` skips the command."""
        if self.description:
            print_message(self.description + "\n")
        return flags

    def action(self, params: ParamSet) -> int:
        raise NotImplementedError
