"""Incremental tailing of the remote build log.

The server keeps a ring buffer of build-log lines and returns a window
of it on every poll together with the absolute number of the window's
first line.  :class:`BuildLogCursor` remembers how far printing got and
selects only the lines not yet shown; :class:`BuildLogTailer` drives the
polling loop until the build reaches a terminal state.
"""

from __future__ import annotations

import logging

from caprover_cli.core.cancellation import CancelToken
from caprover_cli.core.models import BuildLogSnapshot, DeployTarget, LogBatch
from caprover_cli.core.protocols import DeployApi, DeployReporter
from caprover_cli.core.urls import app_public_url
from caprover_cli.exceptions import (
    BuildFailedError,
    BuildLogTimeoutError,
    CaproverCliError,
)

logger = logging.getLogger(__name__)

INITIAL_WATERMARK: int = -10000
TRUNCATED_MARKER: str = "[[ TRUNCATED ]]"


class BuildLogCursor:
    """De-duplicates overlapping build-log windows.

    ``last_line_number_printed`` is the absolute number one past the last
    line already printed.  It starts far in the negative so the first
    window is always printed in full.
    """

    def __init__(self, last_line_number_printed: int = INITIAL_WATERMARK) -> None:
        self.last_line_number_printed = last_line_number_printed

    def reconcile(self, snapshot: BuildLogSnapshot) -> LogBatch:
        """Return the lines of *snapshot* that have not been printed yet."""
        first = snapshot.first_line_number
        lines = snapshot.lines
        truncated = False
        if first > self.last_line_number_printed:
            # either the first fetch of a fresh buffer or the buffer rotated
            # past the watermark; every line in the window is new
            truncated = first >= 0
            skip = 0
        else:
            skip = self.last_line_number_printed - first
        self.last_line_number_printed = first + len(lines)
        selected = tuple(line.strip() for line in lines[max(skip, 0):])
        return LogBatch(lines=selected, truncated=truncated)


class BuildLogTailer:
    """Poll build logs for one app until success, failure or cancellation.

    Parameters
    ----------
    api:
        Client bound to the target machine.
    reporter:
        Receives printed lines and state changes.
    cancel_token:
        Aborts the sleep between two polls.
    interval:
        Seconds between polls.
    max_attempts:
        Maximum number of polls; ``None`` polls forever.
    """

    def __init__(
        self,
        api: DeployApi,
        reporter: DeployReporter,
        cancel_token: CancelToken,
        *,
        interval: float = 2.0,
        max_attempts: int | None = None,
    ) -> None:
        self._api = api
        self._reporter = reporter
        self._cancel_token = cancel_token
        self._interval = interval
        self._max_attempts = max_attempts
        self._cursor = BuildLogCursor()

    def tail(self, target: DeployTarget) -> str:
        """Block until the build of *target* finishes and return its public URL.

        Raises
        ------
        BuildFailedError
            When the server reports a failed build.
        BuildLogTimeoutError
            When *max_attempts* polls pass without a terminal state.
        OperationCancelledError
            When the cancel token fires.
        """
        attempts = 0
        while True:
            self._cancel_token.raise_if_cancelled()
            attempts += 1
            logger.debug("Fetching build logs for %s (attempt %d)", target.app_name, attempts)
            snapshot = self._fetch(target.app_name)

            if snapshot is not None:
                batch = self._cursor.reconcile(snapshot)
                if batch.truncated:
                    self._reporter.log_truncated()
                if batch.lines:
                    self._reporter.log_lines(batch.lines)

                if not snapshot.is_app_building:
                    if snapshot.is_build_failed:
                        self._reporter.build_failed()
                        raise BuildFailedError(
                            f"Cannot deploy {target.app_name} at {target.machine_label}: "
                            "the build failed.",
                            hint="Check the build output above for the failing step.",
                        )
                    url = app_public_url(target.machine.base_url, target.app_name, target.ssl)
                    self._reporter.build_succeeded(url)
                    return url

            if self._max_attempts is not None and attempts >= self._max_attempts:
                raise BuildLogTimeoutError(
                    f"Gave up waiting for the build of {target.app_name} "
                    f"after {attempts} attempts.",
                    hint="Raise CAPROVER_BUILD_LOG_MAX_ATTEMPTS or check the dashboard.",
                )
            if self._cancel_token.wait(self._interval):
                self._cancel_token.raise_if_cancelled()

    def _fetch(self, app_name: str) -> BuildLogSnapshot | None:
        try:
            return self._api.fetch_build_logs(app_name)
        except CaproverCliError as exc:
            if self._cancel_token.cancelled:
                raise
            logger.debug("Build log fetch failed: %s", exc)
            self._reporter.fetch_failed(exc)
            return None
