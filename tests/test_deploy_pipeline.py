"""Tests for the deploy pipeline (package, upload, tail).

The API, archiver and reporter are fakes; archives are written under
``tmp_path``.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import GIT_HASH, FakeApi, FakeApiFactory, FakeArchiver, RecordingReporter, snapshot

from caprover_cli.core.cancellation import CancelToken
from caprover_cli.core.deploy import DeployPipeline
from caprover_cli.core.models import DeploySource, DeployTarget, Machine
from caprover_cli.exceptions import BuildFailedError, DeploySourceError, SourceArchiveError
from caprover_cli.settings import Settings
from caprover_cli.utils.constants import TEMP_BRANCH_TAR_NAME


def _target() -> DeployTarget:
    return DeployTarget(
        app_name="web",
        machine=Machine(name="captain-01", base_url="https://captain.example.com", auth_token="t"),
    )


@pytest.fixture
def api() -> FakeApi:
    return FakeApi(snapshots=[snapshot(["built"], first=-1)])


def _pipeline(
    api: FakeApi,
    settings: Settings,
    cwd: Path,
    archiver: FakeArchiver | None = None,
) -> tuple[DeployPipeline, RecordingReporter]:
    reporter = RecordingReporter()
    pipeline = DeployPipeline(
        FakeApiFactory(api),
        archiver or FakeArchiver(),
        reporter,
        cwd,
        settings,
        CancelToken(),
    )
    return pipeline, reporter


# ---------------------------------------------------------------------------
# Source validation
# ---------------------------------------------------------------------------

class TestDeploySource:
    @pytest.mark.parametrize(
        "source",
        [
            DeploySource(),
            DeploySource(branch="master", tar_file_path="a.tar"),
            DeploySource(branch="master", image_name="nginx"),
            DeploySource(branch="master", tar_file_path="a.tar", image_name="nginx"),
        ],
    )
    def test_invalid_cardinality_fails_before_any_call(
        self, source: DeploySource, api: FakeApi, settings: Settings, tmp_path: Path
    ) -> None:
        pipeline, reporter = _pipeline(api, settings, tmp_path)
        with pytest.raises(DeploySourceError):
            pipeline.deploy(_target(), source)
        assert api.calls == []
        assert reporter.events == []

    def test_round_trip_keeps_only_set_field(self) -> None:
        source = DeploySource(tar_file_path="dist/app.tar")
        assert source.to_dict() == {"tarFilePath": "dist/app.tar"}
        assert DeploySource.from_dict(source.to_dict()) == source


# ---------------------------------------------------------------------------
# Branch deploys
# ---------------------------------------------------------------------------

class TestBranchDeploy:
    def test_branch_is_archived_uploaded_and_cleaned_up(
        self, api: FakeApi, settings: Settings, tmp_path: Path
    ) -> None:
        archiver = FakeArchiver()
        pipeline, reporter = _pipeline(api, settings, tmp_path, archiver)

        assert pipeline.deploy(_target(), DeploySource(branch="master")) is True

        assert archiver.archived == [("master", tmp_path / TEMP_BRANCH_TAR_NAME)]
        assert ("upload_app_data", "web", GIT_HASH) in api.calls
        assert api.uploaded == b"tar-bytes-for-master"
        assert not (tmp_path / TEMP_BRANCH_TAR_NAME).exists()
        assert reporter.names()[:2] == ["archive_created", "deploy_started"]
        assert reporter.names().count("upload_finished") == 1

    def test_temp_archive_removed_when_build_fails(
        self, settings: Settings, tmp_path: Path
    ) -> None:
        api = FakeApi(snapshots=[snapshot(["error"], first=-1, failed=True)])
        pipeline, _ = _pipeline(api, settings, tmp_path)
        with pytest.raises(BuildFailedError):
            pipeline.deploy(_target(), DeploySource(branch="master"))
        assert not (tmp_path / TEMP_BRANCH_TAR_NAME).exists()

    def test_bad_commit_hash_rejected(self, api: FakeApi, settings: Settings, tmp_path: Path) -> None:
        pipeline, _ = _pipeline(api, settings, tmp_path, FakeArchiver(git_hash="not-a-hash"))
        with pytest.raises(SourceArchiveError, match="Cannot find hash"):
            pipeline.deploy(_target(), DeploySource(branch="master"))
        assert "upload_app_data" not in api.call_names()
        assert not (tmp_path / TEMP_BRANCH_TAR_NAME).exists()

    def test_stale_archive_is_replaced(self, api: FakeApi, settings: Settings, tmp_path: Path) -> None:
        (tmp_path / TEMP_BRANCH_TAR_NAME).write_bytes(b"stale")
        pipeline, _ = _pipeline(api, settings, tmp_path)
        pipeline.deploy(_target(), DeploySource(branch="main"))
        assert api.uploaded == b"tar-bytes-for-main"


# ---------------------------------------------------------------------------
# Tar file and image deploys
# ---------------------------------------------------------------------------

class TestOtherSources:
    def test_relative_tar_file_resolved_against_cwd(
        self, api: FakeApi, settings: Settings, tmp_path: Path
    ) -> None:
        (tmp_path / "app.tar").write_bytes(b"given-tar")
        pipeline, _ = _pipeline(api, settings, tmp_path)
        pipeline.deploy(_target(), DeploySource(tar_file_path="app.tar"))
        assert api.uploaded == b"given-tar"
        assert ("upload_app_data", "web", "") in api.calls
        assert (tmp_path / "app.tar").exists()

    def test_missing_tar_file_raises(self, api: FakeApi, settings: Settings, tmp_path: Path) -> None:
        pipeline, _ = _pipeline(api, settings, tmp_path)
        with pytest.raises(SourceArchiveError, match="Cannot read tar file"):
            pipeline.deploy(_target(), DeploySource(tar_file_path="missing.tar"))

    def test_image_is_sent_as_captain_definition(
        self, api: FakeApi, settings: Settings, tmp_path: Path
    ) -> None:
        pipeline, reporter = _pipeline(api, settings, tmp_path)
        pipeline.deploy(_target(), DeploySource(image_name="nginx:latest"))
        assert (
            "upload_captain_definition_content",
            "web",
            {"schemaVersion": 2, "imageName": "nginx:latest"},
            True,
        ) in api.calls
        assert "upload_app_data" not in api.call_names()
        assert "build_started" in reporter.names()




# ---------------------------------------------------------------------------
# Upload progress
# ---------------------------------------------------------------------------

class TestUploadProgress:
    def test_upload_finished_only_after_request_returns(
        self, settings: Settings, tmp_path: Path
    ) -> None:
        (tmp_path / "app.tar").write_bytes(b"0123456789")
        seen_during_upload: list[list[str]] = []

        class SlowApi(FakeApi):
            def upload_app_data(self, app_name, stream, git_hash, on_progress=None):
                on_progress(4, 10)
                seen_during_upload.append(reporter.names())
                super().upload_app_data(app_name, stream, git_hash, on_progress)

        api = SlowApi(snapshots=[snapshot(["built"], first=-1)])
        pipeline, reporter = _pipeline(api, settings, tmp_path)
        pipeline.deploy(_target(), DeploySource(tar_file_path="app.tar"))

        assert "upload_finished" not in seen_during_upload[0]
        assert "build_started" not in seen_during_upload[0]
        names = reporter.names()
        assert names.index("upload_finished") < names.index("build_started")
        assert names.count("upload_finished") == 1
        progress = [event for event in reporter.events if event[0] == "upload_progress"]
        assert progress == [("upload_progress", 4, 10), ("upload_progress", 10, 10)]

    def test_image_deploy_reports_no_upload(
        self, api: FakeApi, settings: Settings, tmp_path: Path
    ) -> None:
        pipeline, reporter = _pipeline(api, settings, tmp_path)
        pipeline.deploy(_target(), DeploySource(image_name="nginx"))
        assert "upload_progress" not in reporter.names()
        assert "upload_finished" not in reporter.names()


class TestMaterialize:
    def test_empty_source_is_a_typed_error(
        self, api: FakeApi, settings: Settings, tmp_path: Path
    ) -> None:
        pipeline, _ = _pipeline(api, settings, tmp_path)
        with pytest.raises(DeploySourceError):
            with pipeline.materialize(DeploySource()):
                pass
        assert not (tmp_path / TEMP_BRANCH_TAR_NAME).exists()
