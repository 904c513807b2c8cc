"""``requests``-backed transport for the CapRover control-plane API.

Every response is an envelope ``{"status", "description", "data"}``.
Status 100 (OK) and 101 (build started) are successes; anything else
becomes an :class:`~caprover_cli.exceptions.ApiError`.  An
invalid-token status triggers exactly one re-authentication followed by
one retry of the same request.

This module is the **only** place in the codebase that imports
``requests`` and ``requests_toolbelt``; the latter streams multipart
uploads from disk instead of buffering them.  Transport failures are
re-raised as :class:`~caprover_cli.exceptions.TransientIOError`.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from typing import Any

import requests
from requests_toolbelt.multipart.encoder import MultipartEncoder, MultipartEncoderMonitor

from caprover_cli.core.cancellation import CancelToken
from caprover_cli.exceptions import ApiError, AuthError, TransientIOError

logger = logging.getLogger(__name__)

TOKEN_HEADER: str = "x-captain-auth"
NAMESPACE_HEADER: str = "x-namespace"
NAMESPACE: str = "captain"

GET: str = "GET"
POST: str = "POST"
POST_DATA: str = "POST_DATA"

STATUS_OKAY: int = 100
STATUS_OKAY_BUILD_STARTED: int = 101
STATUS_ERROR_GENERIC: int = 1000
STATUS_NOT_AUTHORIZED: int = 1102
STATUS_WRONG_PASSWORD: int = 1105
STATUS_AUTH_TOKEN_INVALID: int = 1106
STATUS_VERIFICATION_FAILED: int = 1107
STATUS_UNKNOWN_ERROR: int = 1999

_AUTH_STATUSES: frozenset[int] = frozenset(
    {STATUS_NOT_AUTHORIZED, STATUS_WRONG_PASSWORD, STATUS_AUTH_TOKEN_INVALID}
)


class HttpClient:
    """Thin JSON-envelope client bound to one base URL.

    Parameters
    ----------
    base_url:
        API root, e.g. ``https://captain.example.com/api/v2``.
    auth_token:
        Initial token; may be empty.
    on_auth_failure:
        Called once when the server rejects the token.  Expected to log in
        again and call :meth:`set_auth_token`.
    cancel_token:
        Checked before each request.  Cancelling closes the session.
    timeout:
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        auth_token: str,
        on_auth_failure: Callable[[], None],
        *,
        cancel_token: CancelToken | None = None,
        timeout: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth_token = auth_token
        self._on_auth_failure = on_auth_failure
        self._cancel_token = cancel_token or CancelToken()
        self._timeout = timeout
        self._session = session or requests.Session()
        self._cancel_token.on_cancel(self._session.close)

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_auth_token(self, auth_token: str) -> None:
        self._auth_token = auth_token

    def create_headers(self) -> dict[str, str]:
        headers = {NAMESPACE_HEADER: NAMESPACE}
        if self._auth_token:
            headers[TOKEN_HEADER] = self._auth_token
        return headers

    def fetch(
        self,
        method: str,
        endpoint: str,
        variables: Mapping[str, Any] | None = None,
        *,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> Any:
        """Send one request and return the ``data`` field of the envelope.

        *on_progress* is called with ``(bytes_sent, total_bytes)`` while a
        ``POST_DATA`` body is streamed to the server.

        Raises
        ------
        AuthError
            When the server still rejects credentials after re-authentication.
        ApiError
            For any other non-OK status or a malformed response.
        TransientIOError
            When the request fails at the transport level.
        OperationCancelledError
            When the cancel token has fired.
        """
        envelope = self._send(method, endpoint, variables, on_progress)
        if envelope.get("status") == STATUS_AUTH_TOKEN_INVALID:
            logger.debug("Auth token rejected on %s, re-authenticating", endpoint)
            self._on_auth_failure()
            _rewind(variables)
            envelope = self._send(method, endpoint, variables, on_progress)

        status = envelope.get("status")
        if status not in (STATUS_OKAY, STATUS_OKAY_BUILD_STARTED):
            code = status if isinstance(status, int) else STATUS_UNKNOWN_ERROR
            description = envelope.get("description") or ""
            error_cls = AuthError if code in _AUTH_STATUSES else ApiError
            raise error_cls(
                f"{description or 'Request failed'} (status {code})",
                status=code,
            )
        return envelope.get("data")

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _send(
        self,
        method: str,
        endpoint: str,
        variables: Mapping[str, Any] | None,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> dict[str, Any]:
        self._cancel_token.raise_if_cancelled()
        url = self._base_url + endpoint
        headers = self.create_headers()
        logger.debug("%s %s", method, url)

        try:
            if method == GET:
                response = self._session.get(
                    url, headers=headers, params=variables or None, timeout=self._timeout
                )
            elif method == POST:
                response = self._session.post(
                    url, headers=headers, json=dict(variables or {}), timeout=self._timeout
                )
            elif method == POST_DATA:
                body = _multipart_body(variables or {}, on_progress)
                headers["Content-Type"] = body.content_type
                response = self._session.post(
                    url, headers=headers, data=body, timeout=self._timeout
                )
            else:
                raise ValueError(f"Unknown method: {method}")
            response.raise_for_status()
        except requests.RequestException as exc:
            self._cancel_token.raise_if_cancelled()
            raise TransientIOError(
                f"Request to {url} failed: {exc}",
                hint="Check the machine URL and your network connection.",
            ) from exc

        try:
            envelope = response.json()
        except ValueError as exc:
            raise ApiError(
                f"Unexpected response from {url}: not JSON.",
                hint="Is this URL a CapRover dashboard?",
            ) from exc
        if not isinstance(envelope, dict):
            raise ApiError(f"Unexpected response from {url}: {envelope!r}")
        return envelope


def _multipart_body(
    variables: Mapping[str, Any],
    on_progress: Callable[[int, int], None] | None,
) -> MultipartEncoder | MultipartEncoderMonitor:
    """Encode *variables* as a lazily read multipart body.

    File-like values (anything with ``read``) become file parts; the
    encoder reads them chunk by chunk while the request is being sent.
    """
    fields: dict[str, Any] = {}
    for key, value in variables.items():
        if hasattr(value, "read"):
            filename = os.path.basename(getattr(value, "name", None) or key)
            fields[key] = (filename, value, "application/octet-stream")
        else:
            fields[key] = str(value)
    encoder = MultipartEncoder(fields=fields)
    if on_progress is None:
        return encoder
    return MultipartEncoderMonitor(
        encoder, lambda monitor: on_progress(monitor.bytes_read, monitor.len)
    )


def _rewind(variables: Mapping[str, Any] | None) -> None:
    for value in (variables or {}).values():
        if hasattr(value, "read") and hasattr(value, "seek"):
            value.seek(0)
