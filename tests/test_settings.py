"""Tests for :class:`Settings` and the git wrapper."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from caprover_cli.exceptions import SourceArchiveError, UserInputError
from caprover_cli.infra.git import GitArchiver
from caprover_cli.settings import Settings


class TestSettings:
    def test_defaults(self, tmp_path: Path) -> None:
        settings = Settings.from_env({"XDG_CONFIG_HOME": str(tmp_path)})
        assert settings.storage_path == tmp_path / "caprover-cli" / "storage.json"
        assert settings.debug is False
        assert settings.poll_interval == 2.0
        assert settings.max_poll_attempts is None
        assert settings.http_timeout == 60.0

    def test_overrides(self, tmp_path: Path) -> None:
        settings = Settings.from_env(
            {
                "CAPROVER_CLI_STORAGE": str(tmp_path / "s.json"),
                "CAPROVER_CLI_DEBUG": "yes",
                "CAPROVER_BUILD_LOG_INTERVAL": "0.5",
                "CAPROVER_BUILD_LOG_MAX_ATTEMPTS": "30",
                "CAPROVER_HTTP_TIMEOUT": "5",
            }
        )
        assert settings.storage_path == tmp_path / "s.json"
        assert settings.debug is True
        assert settings.poll_interval == 0.5
        assert settings.max_poll_attempts == 30
        assert settings.http_timeout == 5.0

    def test_zero_attempts_means_unlimited(self) -> None:
        settings = Settings.from_env({"CAPROVER_BUILD_LOG_MAX_ATTEMPTS": "0", "CAPROVER_CLI_STORAGE": "x"})
        assert settings.max_poll_attempts is None

    @pytest.mark.parametrize(
        ("key", "raw"),
        [
            ("CAPROVER_BUILD_LOG_INTERVAL", "fast"),
            ("CAPROVER_BUILD_LOG_INTERVAL", "-1"),
            ("CAPROVER_BUILD_LOG_MAX_ATTEMPTS", "many"),
            ("CAPROVER_HTTP_TIMEOUT", "0"),
        ],
    )
    def test_bad_values(self, key: str, raw: str) -> None:
        with pytest.raises(UserInputError, match=key):
            Settings.from_env({key: raw, "CAPROVER_CLI_STORAGE": "x"})


class TestGitArchiver:
    def test_rev_parse_strips_output(self, tmp_path: Path) -> None:
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="abc\n", stderr="")
        with patch("caprover_cli.infra.git.subprocess.run", return_value=completed) as run:
            assert GitArchiver().rev_parse("master", tmp_path) == "abc"
        assert run.call_args.args[0] == ["git", "rev-parse", "master"]
        assert run.call_args.kwargs["cwd"] == tmp_path

    def test_archive_command(self, tmp_path: Path) -> None:
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="", stderr="")
        with patch("caprover_cli.infra.git.subprocess.run", return_value=completed) as run:
            GitArchiver().archive("main", tmp_path / "out.tar", tmp_path)
        assert run.call_args.args[0] == [
            "git", "archive", "--format", "tar", "--output", str(tmp_path / "out.tar"), "main",
        ]

    def test_failure_carries_stderr(self, tmp_path: Path) -> None:
        completed = subprocess.CompletedProcess(
            args=[], returncode=128, stdout="", stderr="fatal: bad revision 'nope'"
        )
        with patch("caprover_cli.infra.git.subprocess.run", return_value=completed):
            with pytest.raises(SourceArchiveError, match="bad revision"):
                GitArchiver().rev_parse("nope", tmp_path)

    def test_missing_git(self, tmp_path: Path) -> None:
        with patch("caprover_cli.infra.git.subprocess.run", MagicMock(side_effect=FileNotFoundError)):
            with pytest.raises(SourceArchiveError, match='"git" command not found') as exc_info:
                GitArchiver().archive("main", tmp_path / "out.tar", tmp_path)
        assert exc_info.value.hint is not None
