"""Tests for :class:`QuestionaryPrompter` with ``questionary`` mocked out."""

from __future__ import annotations

import sys
from typing import Any
from unittest.mock import MagicMock

import pytest

from caprover_cli.cli.prompts import QuestionaryPrompter
from caprover_cli.core.options import Choice, Question
from caprover_cli.exceptions import UserCancelledError


@pytest.fixture
def questionary(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    fake = MagicMock()
    monkeypatch.setitem(sys.modules, "questionary", fake)
    return fake


def _answers(prompt: MagicMock, *values: Any) -> None:
    prompt.return_value.ask.side_effect = list(values)


class TestTextPrompts:
    def test_input_applies_filter_and_default(self, questionary: MagicMock) -> None:
        _answers(questionary.text, "  prod  ")
        question = Question(
            name="caproverName",
            type="input",
            message="name:",
            default="captain-01",
            filter=str.strip,
        )
        assert QuestionaryPrompter().ask(question) == "prod"
        kwargs = questionary.text.call_args.kwargs
        assert kwargs["default"] == "captain-01"

    def test_inline_validation_uses_filtered_value(self, questionary: MagicMock) -> None:
        _answers(questionary.text, "x")
        seen: list[str] = []

        def validate(value: str) -> bool | str:
            seen.append(value)
            return True if value == "X" else "upper case only"

        QuestionaryPrompter().ask(
            Question(name="n", type="input", message="n:", filter=str.upper, validate=validate)
        )
        inline = questionary.text.call_args.kwargs["validate"]
        assert inline("a") == "upper case only"
        assert inline("x") is True
        assert seen == ["A", "X"]

    def test_password_has_no_default(self, questionary: MagicMock) -> None:
        _answers(questionary.password, "secret")
        answer = QuestionaryPrompter().ask(
            Question(name="caproverPassword", type="password", message="pw:", default="nope")
        )
        assert answer == "secret"
        assert "default" not in questionary.password.call_args.kwargs

    def test_ctrl_c_cancels(self, questionary: MagicMock) -> None:
        _answers(questionary.text, None)
        with pytest.raises(UserCancelledError):
            QuestionaryPrompter().ask(Question(name="n", type="input", message="n:"))


class TestChoicePrompts:
    def test_select_returns_choice_value(self, questionary: MagicMock) -> None:
        _answers(questionary.select, "web")
        question = Question(
            name="caproverApp",
            type="list",
            message="app:",
            choices=(Choice(title="-- CANCEL --", value=""), Choice(title="web", value="web")),
        )
        assert QuestionaryPrompter().ask(question) == "web"
        assert questionary.Choice.call_count == 2

    def test_invalid_selection_is_asked_again(self, questionary: MagicMock) -> None:
        _answers(questionary.select, "busy", "web")
        question = Question(
            name="caproverApp",
            type="list",
            message="app:",
            choices=(Choice(title="busy", value="busy"), Choice(title="web", value="web")),
            validate=lambda app: True if app == "web" else "app is building",
        )
        assert QuestionaryPrompter().ask(question) == "web"
        assert questionary.select.call_count == 2

    def test_confirm_default(self, questionary: MagicMock) -> None:
        _answers(questionary.confirm, False)
        answer = QuestionaryPrompter().ask(
            Question(name="sure", type="confirm", message="sure?", default=False)
        )
        assert answer is False
        assert questionary.confirm.call_args.kwargs["default"] is False

    def test_escape_cancels_selection(self, questionary: MagicMock) -> None:
        _answers(questionary.select, None)
        with pytest.raises(UserCancelledError):
            QuestionaryPrompter().ask(Question(name="a", type="list", message="a:"))
