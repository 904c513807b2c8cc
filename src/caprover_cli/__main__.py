"""``python -m caprover_cli``: same entry point as the ``caprover`` script."""

from __future__ import annotations

from caprover_cli.cli.app import cli

if __name__ == "__main__":
    cli()
