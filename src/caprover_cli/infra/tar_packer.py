"""Build the upload archive for ``config-deploy``.

The archive holds every file matched by the include globs plus a
``captain-definition`` generated from the config's ``definition``
block.  The generated file is written next to the sources only for the
duration of packing.
"""

from __future__ import annotations

import glob
import json
import logging
import tarfile
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from caprover_cli.exceptions import SourceArchiveError
from caprover_cli.utils.constants import CAPTAIN_DEFINITION_FILE, TEMP_CONFIG_TAR_NAME

logger = logging.getLogger(__name__)


def find_files(directory: Path, patterns: Iterable[str]) -> list[str]:
    """Expand *patterns* relative to *directory*, keeping first-seen order.

    Only regular files are returned; directories matched by ``**`` are
    represented by the files below them.
    """
    seen: dict[str, None] = {}
    for pattern in patterns:
        for match in sorted(glob.glob(pattern, root_dir=directory, recursive=True)):
            if (directory / match).is_file():
                seen.setdefault(Path(match).as_posix(), None)
    return list(seen)


def create_tar_archive(directory: Path, include: Iterable[str], definition: Mapping[str, Any]) -> Path:
    """Write ``tmp-cap-rover-deploy.tar`` in *directory* and return its path.

    Raises
    ------
    SourceArchiveError
        When the include globs match nothing or the archive cannot be written.
    """
    tar_path = directory / TEMP_CONFIG_TAR_NAME
    definition_path = directory / CAPTAIN_DEFINITION_FILE
    for stale in (tar_path, definition_path):
        if stale.exists():
            stale.unlink()

    files = [name for name in find_files(directory, include) if name != TEMP_CONFIG_TAR_NAME]
    if not files:
        raise SourceArchiveError(
            "Could not create tar file! No files matched files.include.",
            hint="Check the glob patterns in cap-rover.config.json.",
        )

    try:
        definition_path.write_text(json.dumps(dict(definition)), encoding="utf-8")
        with tarfile.open(tar_path, "w") as archive:
            for name in files:
                archive.add(directory / name, arcname=name, recursive=False)
            archive.add(definition_path, arcname=CAPTAIN_DEFINITION_FILE, recursive=False)
    except (OSError, tarfile.TarError) as exc:
        if tar_path.exists():
            tar_path.unlink()
        raise SourceArchiveError(f"Could not create tar file! Message: {exc}") from exc
    finally:
        if definition_path.exists():
            definition_path.unlink()

    logger.debug("Packed %d files into %s", len(files), tar_path)
    return tar_path
