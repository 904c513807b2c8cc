"""questionary-backed :class:`~caprover_cli.core.protocols.Prompter`.

Free-text and password answers are validated inline (questionary keeps
the prompt open and shows the message).  Selections and confirmations
cannot be validated inline, so they are re-asked after printing the
error.
"""

from __future__ import annotations

from typing import Any

from caprover_cli.cli.console import console
from caprover_cli.core.options import Question
from caprover_cli.exceptions import EnvironmentError, UserCancelledError


def _import_questionary() -> Any:
    """Import questionary lazily for interactive prompts."""
    try:
        import questionary
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "questionary is not installed. Install with: pip install questionary",
        ) from exc
    return questionary


class QuestionaryPrompter:
    """Ask :class:`Question` objects on the terminal."""

    def ask(self, question: Question) -> Any:
        questionary = _import_questionary()

        if question.type in ("input", "password"):
            return self._ask_text(questionary, question)

        while True:
            if question.type == "confirm":
                answer = questionary.confirm(
                    question.message,
                    default=True if question.default is None else bool(question.default),
                ).ask()
            else:
                answer = questionary.select(
                    question.message,
                    choices=[
                        questionary.Choice(title=choice.title, value=choice.value)
                        for choice in question.choices
                    ],
                    use_arrow_keys=True,
                    use_shortcuts=False,
                ).ask()
            if answer is None:
                raise UserCancelledError("Operation cancelled by the user!")

            value = question.filter(answer) if question.filter else answer
            error = _check(question, value)
            if error is None:
                return value
            console.print(f"[bold red]{error}[/bold red]")

    @staticmethod
    def _ask_text(questionary: Any, question: Question) -> Any:
        def validate(raw: str) -> bool | str:
            value = question.filter(raw) if question.filter else raw
            error = _check(question, value)
            return True if error is None else error

        kwargs: dict[str, Any] = {"validate": validate}
        if question.type == "password":
            prompt = questionary.password(question.message, **kwargs)
        else:
            if question.default is not None:
                kwargs["default"] = str(question.default)
            prompt = questionary.text(question.message, **kwargs)

        answer = prompt.ask()
        if answer is None:
            raise UserCancelledError("Operation cancelled by the user!")
        return question.filter(answer) if question.filter else answer


def _check(question: Question, value: Any) -> str | None:
    if question.validate is None:
        return None
    result = question.validate(value)
    if result is True:
        return None
    return str(result or "Error!")
