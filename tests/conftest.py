"""Shared pytest fixtures and fakes for the caprover-cli test suite.

Guidelines
----------
* No network access in any test: the API is faked at the factory seam
  or ``requests.Session`` is mocked.
* No real prompts: :class:`FakePrompter` answers from a dict.
* Storage lives in ``tmp_path``; tests must not depend on OS state.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import pytest

from caprover_cli.cli.commands.base import Services
from caprover_cli.core.cancellation import CancelToken
from caprover_cli.core.models import AppDefinition, BuildLogSnapshot, DeployTarget, Machine
from caprover_cli.core.options import Question
from caprover_cli.exceptions import AuthError, SourceArchiveError
from caprover_cli.infra.config_file import ParamsFileLoader
from caprover_cli.infra.storage import JsonStorage
from caprover_cli.settings import Settings

GIT_HASH = "0123456789abcdef0123456789abcdef01234567"


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

class FakePrompter:
    """Answers questions from *answers*; an unexpected question fails the test."""

    def __init__(self, answers: Mapping[str, Any] | None = None) -> None:
        self.answers = dict(answers or {})
        self.asked: list[Question] = []

    @property
    def asked_names(self) -> list[str]:
        return [question.name for question in self.asked]

    def ask(self, question: Question) -> Any:
        self.asked.append(question)
        if question.name not in self.answers:
            raise AssertionError(f"unexpected question: {question.name}")
        value = self.answers[question.name]
        if question.filter is not None:
            value = question.filter(value)
        if question.validate is not None:
            result = question.validate(value)
            assert result is True, result
        return value


# ---------------------------------------------------------------------------
# Remote API
# ---------------------------------------------------------------------------

class FakeApi:
    """In-memory stand-in for :class:`~caprover_cli.infra.api_client.CaptainApi`."""

    def __init__(
        self,
        apps: Iterable[AppDefinition] = (),
        snapshots: Iterable[BuildLogSnapshot] = (),
    ) -> None:
        self.apps = list(apps)
        self.snapshots = list(snapshots)
        self.calls: list[tuple[Any, ...]] = []
        self.uploaded: bytes | None = None
        self.captain_info: dict[str, Any] = {}
        self.api_response: Any = {"ok": True}
        self.password = "secret"
        self.machine: Machine | None = None

    def login(self, password: str) -> str:
        self.calls.append(("login", password))
        if password != self.password:
            raise AuthError("Wrong password (status 1105)", status=1105)
        token = f"token-for-{password}"
        if self.machine is not None:
            self.machine.auth_token = token
        return token

    def get_all_apps(self) -> list[AppDefinition]:
        self.calls.append(("get_all_apps",))
        return list(self.apps)

    def get_captain_info(self) -> dict[str, Any]:
        self.calls.append(("get_captain_info",))
        return self.captain_info

    def fetch_build_logs(self, app_name: str) -> BuildLogSnapshot:
        self.calls.append(("fetch_build_logs", app_name))
        if len(self.snapshots) > 1:
            return self.snapshots.pop(0)
        return self.snapshots[0]

    def upload_app_data(
        self,
        app_name: str,
        stream: Any,
        git_hash: str,
        on_progress: Any = None,
    ) -> None:
        self.calls.append(("upload_app_data", app_name, git_hash))
        self.uploaded = stream.read()
        if on_progress is not None:
            on_progress(len(self.uploaded), len(self.uploaded))

    def upload_captain_definition_content(
        self,
        app_name: str,
        definition: Mapping[str, Any],
        git_hash: str,
        *,
        detached: bool,
    ) -> None:
        self.calls.append(("upload_captain_definition_content", app_name, dict(definition), detached))

    def call_api(self, path: str, method: str, data: Any) -> Any:
        self.calls.append(("call_api", path, method, data))
        return self.api_response

    def update_root_domain(self, root_domain: str) -> None:
        self.calls.append(("update_root_domain", root_domain))

    def enable_root_ssl(self, email_address: str) -> None:
        self.calls.append(("enable_root_ssl", email_address))

    def force_ssl(self, is_enabled: bool) -> None:
        self.calls.append(("force_ssl", is_enabled))

    def change_password(self, old_password: str, new_password: str) -> None:
        self.calls.append(("change_password", old_password, new_password))
        self.password = new_password

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


class FakeApiFactory:
    def __init__(self, api: FakeApi) -> None:
        self.api = api
        self.machines: list[Machine] = []

    def for_machine(self, machine: Machine) -> FakeApi:
        self.machines.append(machine)
        self.api.machine = machine
        return self.api


# ---------------------------------------------------------------------------
# Deploy collaborators
# ---------------------------------------------------------------------------

class FakeArchiver:
    def __init__(self, git_hash: str = GIT_HASH, known_branches: Iterable[str] = ("master", "main")) -> None:
        self.git_hash = git_hash
        self.known_branches = set(known_branches)
        self.archived: list[tuple[str, Path]] = []

    def archive(self, branch: str, output: Path, cwd: Path) -> None:
        self.archived.append((branch, output))
        output.write_bytes(b"tar-bytes-for-" + branch.encode())

    def rev_parse(self, branch: str, cwd: Path) -> str:
        if branch not in self.known_branches:
            raise SourceArchiveError(f'Cannot find hash of last commit on branch "{branch}"')
        return self.git_hash


class RecordingReporter:
    """DeployReporter that records events by name."""

    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []
        self.printed: list[str] = []

    def __enter__(self) -> RecordingReporter:
        return self

    def __exit__(self, *_args: object) -> None:
        self.events.append(("stop",))

    def names(self) -> list[str]:
        return [event[0] for event in self.events]

    def archive_created(self, path: Path, git_hash: str) -> None:
        self.events.append(("archive_created", path, git_hash))

    def deploy_started(self, target: DeployTarget) -> None:
        self.events.append(("deploy_started", target.app_name))

    def upload_progress(self, sent: int, total: int) -> None:
        self.events.append(("upload_progress", sent, total))

    def upload_finished(self) -> None:
        self.events.append(("upload_finished",))

    def build_started(self) -> None:
        self.events.append(("build_started",))

    def log_lines(self, lines: tuple[str, ...]) -> None:
        self.printed.extend(lines)
        self.events.append(("log_lines", lines))

    def log_truncated(self) -> None:
        self.events.append(("log_truncated",))

    def fetch_failed(self, error: Exception) -> None:
        self.events.append(("fetch_failed", str(error)))

    def build_succeeded(self, app_url: str) -> None:
        self.events.append(("build_succeeded", app_url))

    def build_failed(self) -> None:
        self.events.append(("build_failed",))


def snapshot(
    lines: Iterable[str] = (),
    first: int = 0,
    *,
    building: bool = False,
    failed: bool = False,
) -> BuildLogSnapshot:
    return BuildLogSnapshot(
        lines=tuple(lines),
        first_line_number=first,
        is_app_building=building,
        is_build_failed=failed,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        storage_path=tmp_path / "config" / "storage.json",
        poll_interval=0.001,
        max_poll_attempts=50,
    )


@pytest.fixture
def storage(settings: Settings) -> JsonStorage:
    return JsonStorage(settings.storage_path)


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi(
        apps=[
            AppDefinition(app_name="web", is_app_building=False, has_default_sub_domain_ssl=True),
            AppDefinition(app_name="busy", is_app_building=True, has_default_sub_domain_ssl=False),
        ],
        snapshots=[snapshot(["Step 1/2", "Step 2/2"], first=-2)],
    )


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def make_services(
    settings: Settings,
    storage: JsonStorage,
    fake_api: FakeApi,
    workdir: Path,
):
    """Build :class:`Services` wired to fakes.  Keyword arguments override.

    ``services.reporter_factory()`` always returns the same
    :class:`RecordingReporter`.
    """

    def _make(
        answers: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> Services:
        reporter = RecordingReporter()
        values: dict[str, Any] = {
            "settings": settings,
            "storage": storage,
            "api_factory": FakeApiFactory(fake_api),
            "prompter": FakePrompter(answers),
            "config_loader": ParamsFileLoader(),
            "archiver": FakeArchiver(),
            "cancel_token": CancelToken(),
            "cwd": workdir,
            "environ": dict(environ or {}),
            "reporter_factory": lambda: reporter,
        }
        values.update(overrides)
        return Services(**values)

    return _make
