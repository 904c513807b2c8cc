"""Deployment pipeline: package, upload, then tail the build.

Flow
----
1. Validate the :class:`~caprover_cli.core.models.DeploySource`
   (exactly one of branch, tar file, image name) before any I/O.
2. Materialize the source: ``git archive`` a branch into a temporary tar
   in the working directory, or use a given tar file as-is.  Image
   deploys need no archive.
3. Upload the archive (or the inline captain definition for images).
4. Poll the build log until the server reports success or failure.

A temporary archive created in step 2 is always removed, whatever
happens in steps 3 and 4.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from caprover_cli.core.build_logs import BuildLogTailer
from caprover_cli.core.cancellation import CancelToken
from caprover_cli.core.models import DeploySource, DeployTarget
from caprover_cli.core.protocols import ApiFactory, DeployApi, DeployReporter, SourceArchiver
from caprover_cli.exceptions import DeploySourceError, SourceArchiveError
from caprover_cli.settings import Settings
from caprover_cli.utils.constants import TEMP_BRANCH_TAR_NAME

logger = logging.getLogger(__name__)

_GIT_HASH_RE = re.compile(r"^[a-f0-9]{40}$")


@dataclass(frozen=True, slots=True)
class MaterializedSource:
    """An archive ready for upload.  ``tar_path`` is ``None`` for image deploys."""

    tar_path: Path | None
    git_hash: str = ""
    image_name: str | None = None


class DeployPipeline:
    """Run one deployment end to end.

    Parameters
    ----------
    api_factory:
        Provides a client bound to the target machine.
    archiver:
        Creates tar archives from git branches.
    reporter:
        Receives user-facing progress events.
    cwd:
        Working directory; relative tar paths and the temporary archive
        live here.
    settings:
        Supplies the build-log poll interval and attempt cap.
    cancel_token:
        Aborts the build-log wait.
    """

    def __init__(
        self,
        api_factory: ApiFactory,
        archiver: SourceArchiver,
        reporter: DeployReporter,
        cwd: Path,
        settings: Settings,
        cancel_token: CancelToken,
    ) -> None:
        self._api_factory = api_factory
        self._archiver = archiver
        self._reporter = reporter
        self._cwd = cwd
        self._settings = settings
        self._cancel_token = cancel_token

    def deploy(self, target: DeployTarget, source: DeploySource) -> bool:
        """Deploy *source* to *target* and wait for the build.

        Returns
        -------
        bool
            ``True`` once the build succeeded.

        Raises
        ------
        DeploySourceError
            When *source* does not name exactly one source.
        SourceArchiveError
            When the branch cannot be archived.
        BuildFailedError
            When the remote build fails.
        """
        source.validate()
        api = self._api_factory.for_machine(target.machine)

        with self.materialize(source) as materialized:
            self._reporter.deploy_started(target)
            if materialized.tar_path is None:
                api.upload_captain_definition_content(
                    target.app_name,
                    {"schemaVersion": 2, "imageName": materialized.image_name},
                    "",
                    detached=True,
                )
            else:
                self._upload(api, target.app_name, materialized.tar_path, materialized.git_hash)
            self._reporter.build_started()

            tailer = BuildLogTailer(
                api,
                self._reporter,
                self._cancel_token,
                interval=self._settings.poll_interval,
                max_attempts=self._settings.max_poll_attempts,
            )
            tailer.tail(target)
        return True

    @contextmanager
    def materialize(self, source: DeploySource) -> Iterator[MaterializedSource]:
        """Yield the archive for *source*, deleting it afterwards if created here."""
        if source.image_name:
            yield MaterializedSource(tar_path=None, image_name=source.image_name)
            return

        if source.tar_file_path:
            yield MaterializedSource(tar_path=self._resolve(source.tar_file_path))
            return

        if not source.branch:
            raise DeploySourceError("No deploy source given.")
        tar_path = self._cwd / TEMP_BRANCH_TAR_NAME
        try:
            git_hash = self._archive_branch(source.branch, tar_path)
            yield MaterializedSource(tar_path=tar_path, git_hash=git_hash)
        finally:
            if tar_path.exists():
                logger.debug("Removing temporary archive %s", tar_path)
                tar_path.unlink()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, raw: str) -> Path:
        path = Path(raw).expanduser()
        return path if path.is_absolute() else self._cwd / path

    def _archive_branch(self, branch: str, tar_path: Path) -> str:
        if tar_path.exists():
            tar_path.unlink()
        self._archiver.archive(branch, tar_path, self._cwd)
        git_hash = self._archiver.rev_parse(branch, self._cwd).strip()
        if not _GIT_HASH_RE.match(git_hash):
            raise SourceArchiveError(
                f'Cannot find hash of last commit on branch "{branch}": {git_hash}',
            )
        self._reporter.archive_created(tar_path, git_hash)
        return git_hash

    def _upload(self, api: DeployApi, app_name: str, tar_path: Path, git_hash: str) -> None:
        try:
            stream = tar_path.open("rb")
        except OSError as exc:
            raise SourceArchiveError(
                f"Cannot read tar file {tar_path}: {exc}",
                hint="Check that the tar file exists and is readable.",
            ) from exc
        with stream:
            api.upload_app_data(
                app_name, stream, git_hash, on_progress=self._reporter.upload_progress
            )
        self._reporter.upload_finished()
