"""Infrastructure layer: HTTP, storage, git and filesystem integration.

Every raw third-party exception must be caught here and re-raised as a
:class:`~caprover_cli.exceptions.CaproverCliError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
"""

from caprover_cli.infra.api_client import ApiClientFactory, CaptainApi
from caprover_cli.infra.config_file import ParamsFileLoader, load_captain_config
from caprover_cli.infra.git import GitArchiver
from caprover_cli.infra.http_client import HttpClient
from caprover_cli.infra.storage import JsonStorage

__all__: list[str] = [
    "ApiClientFactory",
    "CaptainApi",
    "GitArchiver",
    "HttpClient",
    "JsonStorage",
    "ParamsFileLoader",
    "load_captain_config",
]
