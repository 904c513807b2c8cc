"""Smoke tests for the package wiring.

These tests prove that:
* The CLI entry point is importable and callable.
* The exception hierarchy is correctly structured.
* Version is accessible.
* Exit codes are defined and :func:`cli` maps errors onto them.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from caprover_cli import __version__
from caprover_cli.cli import exit_codes
from caprover_cli.cli.app import cli, main
from caprover_cli.exceptions import (
    ApiError,
    AuthError,
    BuildFailedError,
    BuildLogTimeoutError,
    CaproverCliError,
    ConfigFileError,
    DeployError,
    DeploySourceError,
    OperationCancelledError,
    RemoteStateError,
    SourceArchiveError,
    TransientIOError,
    UserCancelledError,
    UserInputError,
)


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------

class TestVersion:
    def test_version_is_string(self) -> None:
        assert isinstance(__version__, str)

    def test_version_is_semver_like(self) -> None:
        parts = __version__.split(".")
        assert len(parts) == 3
        assert all(part.isdigit() for part in parts)


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------

class TestExceptions:
    @pytest.mark.parametrize(
        "exc_class",
        [
            UserInputError,
            ConfigFileError,
            ApiError,
            AuthError,
            RemoteStateError,
            TransientIOError,
            DeployError,
            UserCancelledError,
        ],
    )
    def test_all_exceptions_inherit_from_base(
        self, exc_class: type[CaproverCliError]
    ) -> None:
        assert issubclass(exc_class, CaproverCliError)

    @pytest.mark.parametrize(
        "exc_class",
        [DeploySourceError, SourceArchiveError, BuildFailedError, BuildLogTimeoutError],
    )
    def test_deploy_errors(self, exc_class: type[DeployError]) -> None:
        assert issubclass(exc_class, DeployError)

    def test_auth_is_an_api_error(self) -> None:
        assert issubclass(AuthError, ApiError)
        assert AuthError("nope", status=1105).status == 1105

    def test_cancellation_is_a_user_cancel(self) -> None:
        assert issubclass(OperationCancelledError, UserCancelledError)

    def test_hint_is_stored(self) -> None:
        err = CaproverCliError("boom", hint="try this")
        assert str(err) == "boom"
        assert err.hint == "try this"

    def test_hint_defaults_to_none(self) -> None:
        err = CaproverCliError("boom")
        assert err.hint is None


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

class TestExitCodes:
    def test_success_is_zero(self) -> None:
        assert exit_codes.SUCCESS == 0

    def test_user_cancel_is_not_a_failure(self) -> None:
        assert exit_codes.USER_CANCELLED == 0

    def test_general_error_is_one(self) -> None:
        assert exit_codes.GENERAL_ERROR == 1

    def test_keyboard_interrupt_is_130(self) -> None:
        assert exit_codes.KEYBOARD_INTERRUPT == 130

    def test_unexpected_error_is_two(self) -> None:
        assert exit_codes.UNEXPECTED_ERROR == 2


# ---------------------------------------------------------------------------
# CLI routing
# ---------------------------------------------------------------------------

class TestCLIRouting:
    def test_no_args_prints_help(self, make_services: Any, capsys: pytest.CaptureFixture[str]) -> None:
        code = main([], services=make_services())
        assert code == exit_codes.SUCCESS
        assert "deploy" in capsys.readouterr().out

    def test_version_flag(self, make_services: Any) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"], services=make_services())
        assert exc_info.value.code == 0

    def test_command_alias(self, make_services: Any) -> None:
        assert main(["ls"], services=make_services()) == exit_codes.SUCCESS

    def test_hidden_options_are_not_flags(self, make_services: Any) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["deploy", "--confirmedToDeploy"], services=make_services())
        assert exc_info.value.code == 2

    def test_flags_reach_the_command(self, make_services: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        from caprover_cli.cli.commands.logout import LogoutCommand

        seen: list[dict[str, Any]] = []

        def fake_run(self: LogoutCommand, flags: dict[str, Any]) -> int:
            seen.append(flags)
            return exit_codes.SUCCESS

        monkeypatch.setattr(LogoutCommand, "run", fake_run)
        main(["logout", "-n", "prod"], services=make_services())
        assert seen == [{"caproverName": "prod"}]


# ---------------------------------------------------------------------------
# Error boundary
# ---------------------------------------------------------------------------

class TestErrorBoundary:
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (UserCancelledError("Operation cancelled by the user!"), exit_codes.USER_CANCELLED),
            (DeploySourceError("two sources", hint="pick one"), exit_codes.GENERAL_ERROR),
            (KeyboardInterrupt(), exit_codes.KEYBOARD_INTERRUPT),
            (RuntimeError("bug"), exit_codes.UNEXPECTED_ERROR),
        ],
    )
    def test_errors_map_to_exit_codes(self, error: BaseException, expected: int) -> None:
        services = MagicMock()
        with patch("caprover_cli.cli.app.build_services", return_value=services), patch(
            "caprover_cli.cli.app.main", side_effect=error
        ):
            with pytest.raises(SystemExit) as exc_info:
                cli()
        assert exc_info.value.code == expected

    def test_keyboard_interrupt_cancels_token(self) -> None:
        services = MagicMock()
        with patch("caprover_cli.cli.app.build_services", return_value=services), patch(
            "caprover_cli.cli.app.main", side_effect=KeyboardInterrupt()
        ):
            with pytest.raises(SystemExit):
                cli()
        services.cancel_token.cancel.assert_called_once_with()

    def test_hint_is_printed(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("caprover_cli.cli.app.build_services", return_value=MagicMock()), patch(
            "caprover_cli.cli.app.main", side_effect=ConfigFileError("bad file", hint="fix it")
        ):
            with pytest.raises(SystemExit):
                cli()
        err = capsys.readouterr().err
        assert "bad file" in err
        assert "fix it" in err

    def test_success_exit(self) -> None:
        with patch("caprover_cli.cli.app.build_services", return_value=MagicMock()), patch(
            "caprover_cli.cli.app.main", return_value=exit_codes.SUCCESS
        ):
            with pytest.raises(SystemExit) as exc_info:
                cli()
        assert exc_info.value.code == exit_codes.SUCCESS
