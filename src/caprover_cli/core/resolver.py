"""Layered parameter resolution.

Values are merged in increasing priority::

    Default < Env < ConfigFile < CommandLine

then every option is *finalized* in declaration order: present values
are filtered and validated, absent ones are asked through the
:class:`~caprover_cli.core.protocols.Prompter` (unless their ``when``
rule says they are not needed), and the option's ``on_resolved`` hook
runs last.

The resolver performs no I/O of its own: environment, config file and
prompts all come in through constructor arguments.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from caprover_cli.core.options import (
    AliasEntry,
    OptionContext,
    OptionSpec,
    ParamSet,
    ParamSource,
    Question,
    Schema,
    build_alias_table,
)
from caprover_cli.core.protocols import ConfigLoader, Prompter
from caprover_cli.exceptions import UserInputError
from caprover_cli.utils.constants import KEY_CONFIG_FILE

logger = logging.getLogger(__name__)


class ParameterResolver:
    """Resolve a command's parameters from every available source.

    Parameters
    ----------
    prompter:
        Used for options that are still missing after the merge.
    config_loader:
        Parses the file named by the ``configFile`` option.
    environ:
        Environment mapping, normally ``os.environ``.
    cwd:
        Base directory for relative config-file paths.
    """

    def __init__(
        self,
        prompter: Prompter,
        config_loader: ConfigLoader,
        environ: Mapping[str, str],
        cwd: Path,
    ) -> None:
        self._prompter = prompter
        self._config_loader = config_loader
        self._environ = environ
        self._cwd = cwd

    def resolve(
        self,
        schema: Schema,
        cli_flags: Mapping[str, Any],
        context: OptionContext | None = None,
    ) -> ParamSet:
        """Return the resolved :class:`ParamSet` for *schema*.

        Parameters
        ----------
        schema:
            The command's schema function.
        cli_flags:
            Flags actually present on the command line, keyed by option or
            alias name.  Absent flags must not appear.
        context:
            Shared with the schema function.  A fresh one is created when
            omitted.

        Raises
        ------
        ConfigFileError
            When the config file is missing or unreadable.
        UserInputError
            When a supplied value fails validation.
        UserCancelledError
            When the user aborts a prompt or a hook cancels.
        """
        if context is None:
            context = OptionContext()
        params = ParamSet()
        table = build_alias_table(schema(OptionContext(config_file_provided=False)))

        self._seed_from_env(params, table)

        config_path = self._config_file_path(params, table, cli_flags)
        params.pop(KEY_CONFIG_FILE, None)
        table = [entry for entry in table if entry.alias_of != KEY_CONFIG_FILE]

        if config_path:
            self._apply_config_file(params, table, config_path)
            context.config_file_provided = True

        for entry in table:
            if entry.name in cli_flags:
                params.put(entry.alias_of, cli_flags[entry.name], ParamSource.COMMAND_LINE)

        context.params = params
        self._finalize(schema, context, params)
        return params

    # ------------------------------------------------------------------
    # Merge steps
    # ------------------------------------------------------------------

    def _seed_from_env(self, params: ParamSet, table: list[AliasEntry]) -> None:
        for entry in table:
            if entry.env and entry.env in self._environ:
                params.put(entry.alias_of, self._environ[entry.env], ParamSource.ENV)

    @staticmethod
    def _config_file_path(
        params: ParamSet,
        table: list[AliasEntry],
        cli_flags: Mapping[str, Any],
    ) -> str | None:
        path: str | None = None
        for entry in table:
            if entry.alias_of == KEY_CONFIG_FILE and entry.name in cli_flags:
                path = cli_flags[entry.name]
        if path is None:
            path = params.value(KEY_CONFIG_FILE)
        return path or None

    def _apply_config_file(
        self,
        params: ParamSet,
        table: list[AliasEntry],
        raw_path: str,
    ) -> None:
        path = Path(raw_path).expanduser()
        if not path.is_absolute():
            path = self._cwd / path
        logger.debug("Reading parameters from %s", path)
        config = self._config_loader.load(path)
        for entry in table:
            if entry.name in config:
                params.put(entry.alias_of, config[entry.name], ParamSource.CONFIG_FILE)

    # ------------------------------------------------------------------
    # Finalize
    # ------------------------------------------------------------------

    def _finalize(self, schema: Schema, context: OptionContext, params: ParamSet) -> None:
        index = 0
        while True:
            options = [option for option in schema(context) if option.name]
            if index >= len(options):
                return
            self._finalize_option(options[index], params)
            index += 1

    def _finalize_option(self, option: OptionSpec, params: ParamSet) -> None:
        param = params.get(option.name)
        if param is not None:
            if option.filter is not None:
                param.value = option.filter(param.value)
            if option.validate is not None:
                result = option.validate(param.value)
                if result is not True:
                    raise UserInputError(str(result or "Error!"))
        elif option.name != KEY_CONFIG_FILE and option.is_asked():
            message = option.resolve_message()
            if not callable(option.message):
                message += ":"
            answer = self._prompter.ask(
                Question(
                    name=option.name,
                    type=option.type,
                    message=message,
                    default=option.resolve_default(),
                    choices=tuple(option.resolve_choices()),
                    filter=option.filter,
                    validate=option.validate,
                )
            )
            param = params.put(option.name, answer, ParamSource.QUESTION)

        if option.on_resolved is not None:
            option.on_resolved(param)
