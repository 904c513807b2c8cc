"""``git`` subprocess wrapper used to package branches for deployment.

Satisfies :class:`~caprover_cli.core.protocols.SourceArchiver`.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from caprover_cli.exceptions import SourceArchiveError

logger = logging.getLogger(__name__)


def git_available() -> bool:
    """Return ``True`` when a ``git`` executable is on ``PATH``."""
    return shutil.which("git") is not None


class GitArchiver:
    def archive(self, branch: str, output: Path, cwd: Path) -> None:
        self._run(
            ["git", "archive", "--format", "tar", "--output", str(output), branch],
            cwd,
            failure="TAR file failed",
        )

    def rev_parse(self, branch: str, cwd: Path) -> str:
        result = self._run(
            ["git", "rev-parse", branch],
            cwd,
            failure=f'Cannot find hash of last commit on branch "{branch}"',
        )
        return result.strip()

    @staticmethod
    def _run(args: list[str], cwd: Path, *, failure: str) -> str:
        logger.debug("Running %s in %s", " ".join(args), cwd)
        try:
            completed = subprocess.run(
                args,
                cwd=cwd,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise SourceArchiveError(
                '"git" command not found.',
                hint="Install git, or deploy with --tarFile or --imageName instead.",
            ) from exc
        except OSError as exc:
            raise SourceArchiveError(f"{failure}: {exc}") from exc

        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout or "").strip()
            raise SourceArchiveError(f"{failure}: {detail}" if detail else f"{failure}.")
        return completed.stdout
