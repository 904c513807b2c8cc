"""Typed CapRover API client and its per-machine factory."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import IO, Any

from caprover_cli.core.cancellation import CancelToken
from caprover_cli.core.models import AppDefinition, BuildLogSnapshot, Machine
from caprover_cli.core.protocols import StorageProtocol
from caprover_cli.exceptions import ApiError
from caprover_cli.infra.http_client import GET, POST, POST_DATA, HttpClient
from caprover_cli.utils.constants import BASE_API_PATH, DEFAULT_PASSWORD

logger = logging.getLogger(__name__)


class CaptainApi:
    """One method per control-plane endpoint the CLI uses.

    Parameters
    ----------
    base_url:
        Dashboard URL of the machine (without the API path).
    token_saver:
        Called with every freshly obtained token.
    """

    def __init__(
        self,
        base_url: str,
        token_saver: Callable[[str], None],
        *,
        cancel_token: CancelToken | None = None,
        timeout: float = 60.0,
        http: HttpClient | None = None,
    ) -> None:
        self._token_saver = token_saver
        self._last_known_password = DEFAULT_PASSWORD
        self._http = http or HttpClient(
            base_url.rstrip("/") + BASE_API_PATH,
            "",
            self._reauthenticate,
            cancel_token=cancel_token,
            timeout=timeout,
        )

    def set_auth_token(self, auth_token: str) -> None:
        self._http.set_auth_token(auth_token)

    def _reauthenticate(self) -> None:
        self.login(self._last_known_password)

    # ------------------------------------------------------------------
    # Authentication and system
    # ------------------------------------------------------------------

    def login(self, password: str) -> str:
        """Exchange *password* for a token, store it and return it."""
        self._last_known_password = password
        data = self._http.fetch(POST, "/login", {"password": password})
        token = (data or {}).get("token") if isinstance(data, Mapping) else None
        if not token:
            raise ApiError("Login succeeded but no token was returned.")
        self.set_auth_token(token)
        self._token_saver(token)
        return token

    def get_captain_info(self) -> dict[str, Any]:
        return self._http.fetch(GET, "/user/system/info", {}) or {}

    def update_root_domain(self, root_domain: str) -> None:
        self._http.fetch(POST, "/user/system/changerootdomain", {"rootDomain": root_domain})

    def enable_root_ssl(self, email_address: str) -> None:
        self._http.fetch(POST, "/user/system/enablessl", {"emailAddress": email_address})

    def force_ssl(self, is_enabled: bool) -> None:
        self._http.fetch(POST, "/user/system/forcessl", {"isEnabled": is_enabled})

    def change_password(self, old_password: str, new_password: str) -> None:
        self._http.fetch(
            POST,
            "/user/changepassword",
            {"oldPassword": old_password, "newPassword": new_password},
        )

    # ------------------------------------------------------------------
    # Apps
    # ------------------------------------------------------------------

    def get_all_apps(self) -> list[AppDefinition]:
        data = self._http.fetch(GET, "/user/apps/appDefinitions", {}) or {}
        return [AppDefinition.from_dict(raw) for raw in data.get("appDefinitions") or []]

    def fetch_build_logs(self, app_name: str) -> BuildLogSnapshot:
        data = self._http.fetch(GET, f"/user/apps/appData/{app_name}", {}) or {}
        return BuildLogSnapshot.from_dict(data)

    def upload_app_data(
        self,
        app_name: str,
        stream: IO[bytes],
        git_hash: str,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> None:
        self._http.fetch(
            POST_DATA,
            f"/user/apps/appData/{app_name}?detached=1",
            {"sourceFile": stream, "gitHash": git_hash},
            on_progress=on_progress,
        )

    def upload_captain_definition_content(
        self,
        app_name: str,
        definition: Mapping[str, Any],
        git_hash: str,
        *,
        detached: bool,
    ) -> None:
        self._http.fetch(
            POST,
            f"/user/apps/appData/{app_name}" + ("?detached=1" if detached else ""),
            {"captainDefinitionContent": json.dumps(definition), "gitHash": git_hash},
        )

    def call_api(self, path: str, method: str, data: Mapping[str, Any] | None) -> Any:
        """Call an arbitrary endpoint below the API root."""
        if not path.startswith("/"):
            path = f"/{path}"
        return self._http.fetch(method, path, data or {})


class ApiClientFactory:
    """Hand out one :class:`CaptainApi` per machine base URL.

    The returned client is re-bound to the latest machine object on every
    call: its token is pushed into the client, and refreshed tokens are
    written back to that machine (and to storage when it has a name).
    """

    def __init__(
        self,
        storage: StorageProtocol,
        *,
        cancel_token: CancelToken | None = None,
        timeout: float = 60.0,
    ) -> None:
        self._storage = storage
        self._cancel_token = cancel_token
        self._timeout = timeout
        self._clients: dict[str, CaptainApi] = {}
        self._machines: dict[str, Machine] = {}

    def for_machine(self, machine: Machine) -> CaptainApi:
        key = machine.base_url
        self._machines[key] = machine
        client = self._clients.get(key)
        if client is None:
            client = CaptainApi(
                machine.base_url,
                lambda token, key=key: self._save_token(key, token),
                cancel_token=self._cancel_token,
                timeout=self._timeout,
            )
            self._clients[key] = client
        client.set_auth_token(machine.auth_token)
        return client

    def _save_token(self, key: str, token: str) -> None:
        machine = self._machines[key]
        machine.auth_token = token
        if machine.name:
            logger.debug("Persisting refreshed token for %s", machine.name)
            self._storage.save_machine(machine)
