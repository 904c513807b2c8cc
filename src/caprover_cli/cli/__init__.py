"""Terminal front end of caprover-cli.

Rules
-----
* Builds the ``argparse`` tree from each command's option schema.
* Owns every rich and questionary import; both are loaded lazily.
* :func:`caprover_cli.cli.app.cli` is the only place exceptions become
  exit codes.
* Nothing in ``core`` or ``infra`` imports from this package.
"""
