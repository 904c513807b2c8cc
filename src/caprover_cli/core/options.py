"""Option schema consumed by the parameter resolver.

A command describes its parameters as a list of :class:`OptionSpec`
values produced by a *schema function* ``(OptionContext) -> list``.
The function is called once with an empty context to build the
command-line flags and then again at every finalize step, so later
options can depend on values resolved by earlier ones.

Everything here is pure data: no I/O, no prompting.
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Literal

OptionType = Literal["input", "password", "confirm", "list"]

Validator = Callable[[Any], "bool | str"]
Filter = Callable[[Any], Any]


class ParamSource(enum.Enum):
    """Where a resolved value came from."""

    DEFAULT = "default"
    ENV = "env"
    CONFIG_FILE = "config-file"
    COMMAND_LINE = "command-line"
    QUESTION = "question"


@dataclass(slots=True)
class ResolvedParam:
    """A resolved value and its origin.  ``value`` is rewritten by filters."""

    value: Any
    source: ParamSource


class ParamSet(dict):
    """Mapping of canonical option name to :class:`ResolvedParam`."""

    def find(self, name: str) -> ResolvedParam | None:
        """Return the entry for *name* when its value is truthy."""
        param = self.get(name)
        if param is None or not param.value:
            return None
        return param

    def value(self, name: str, default: Any = None) -> Any:
        param = self.get(name)
        return default if param is None else param.value

    def source(self, name: str) -> ParamSource | None:
        param = self.get(name)
        return None if param is None else param.source

    def put(self, name: str, value: Any, source: ParamSource) -> ResolvedParam:
        param = ResolvedParam(value=value, source=source)
        self[name] = param
        return param


@dataclass(slots=True)
class OptionContext:
    """State shared between the resolver and a command's schema function."""

    params: ParamSet | None = None
    """Values resolved so far.  ``None`` while flags and help are built."""

    config_file_provided: bool = False


@dataclass(frozen=True, slots=True)
class Choice:
    """One entry of a ``list`` option."""

    title: str
    value: str


@dataclass(frozen=True, slots=True)
class OptionAlias:
    name: str
    char: str | None = None
    env: str | None = None
    hidden: bool = False


@dataclass(frozen=True, slots=True)
class OptionSpec:
    """Declarative description of one command parameter.

    ``message``, ``default``, ``choices`` and ``when`` accept either a
    value or a zero-argument callable evaluated when the option is
    finalized.  ``validate`` returns ``True`` or an error message.
    ``on_resolved`` runs after the option is settled, with the resolved
    entry or ``None`` when the option stayed absent.
    """

    name: str
    char: str | None = None
    env: str | None = None
    aliases: tuple[OptionAlias, ...] = ()
    type: OptionType = "input"
    message: str | Callable[[], str] = ""
    default: Any = None
    choices: Sequence[Choice] | Callable[[], Sequence[Choice]] | None = None
    filter: Filter | None = None
    validate: Validator | None = None
    when: bool | Callable[[], bool] = True
    hidden: bool = False
    on_resolved: Callable[[ResolvedParam | None], None] | None = None

    def resolve_message(self) -> str:
        return self.message() if callable(self.message) else self.message

    def resolve_default(self) -> Any:
        return self.default() if callable(self.default) else self.default

    def resolve_choices(self) -> list[Choice]:
        choices = self.choices() if callable(self.choices) else self.choices
        return list(choices or ())

    def is_asked(self) -> bool:
        return bool(self.when() if callable(self.when) else self.when)


@dataclass(frozen=True, slots=True)
class AliasEntry:
    """Flat view of an option name or alias, pointing at its canonical name."""

    name: str
    char: str | None
    env: str | None
    hidden: bool
    alias_of: str


@dataclass(frozen=True, slots=True)
class Question:
    """What the resolver hands to a :class:`~caprover_cli.core.protocols.Prompter`."""

    name: str
    type: OptionType
    message: str
    default: Any = None
    choices: tuple[Choice, ...] = ()
    filter: Filter | None = None
    validate: Validator | None = None


Schema = Callable[[OptionContext], "list[OptionSpec]"]


def build_alias_table(options: Iterable[OptionSpec]) -> list[AliasEntry]:
    """Flatten *options* so every alias directly follows its canonical name."""
    table: list[AliasEntry] = []
    for option in options:
        if not option.name:
            continue
        table.append(
            AliasEntry(
                name=option.name,
                char=option.char,
                env=option.env,
                hidden=option.hidden,
                alias_of=option.name,
            )
        )
        for alias in option.aliases:
            if not alias.name:
                continue
            table.append(
                AliasEntry(
                    name=alias.name,
                    char=alias.char,
                    env=alias.env,
                    hidden=alias.hidden,
                    alias_of=option.name,
                )
            )
    return table
