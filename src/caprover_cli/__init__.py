"""caprover-cli: command-line client for CapRover-style PaaS machines.

Login, deploy, server setup and generic API calls, built with a strict
layered architecture.
"""

from caprover_cli.version import __version__

__all__: list[str] = ["__version__"]
