"""Constants shared by every layer.

Values mirror what a CapRover machine expects on the wire and what the
CLI shows to users as placeholders.
"""

from __future__ import annotations

ADMIN_DOMAIN: str = "captain"
"""Sub-domain under which the CapRover dashboard and API are served."""

SAMPLE_DOMAIN: str = f"{ADMIN_DOMAIN}.captainroot.yourdomain.com"
"""Placeholder URL shown in prompts.  Never accepted as a real value."""

SAMPLE_IP: str = "123.123.123.123"
"""Placeholder IP shown in prompts.  Never accepted as a real value."""

DEFAULT_PASSWORD: str = "captain42"
"""Password of a freshly installed CapRover machine."""

CANCEL_STRING: str = "-- CANCEL --"
"""Label of the sentinel choice that cancels a selection prompt."""

SETUP_PORT: int = 3000
"""Port the CapRover container listens on before root-domain setup."""

MIN_CHARS_FOR_PASSWORD: int = 8

BASE_API_PATH: str = "/api/v2"

API_METHODS: tuple[str, ...] = ("GET", "POST")

# Canonical option names shared by several commands.
KEY_APP: str = "caproverApp"
KEY_CONFIG_FILE: str = "configFile"
KEY_NAME: str = "caproverName"
KEY_PASSWORD: str = "caproverPassword"
KEY_URL: str = "caproverUrl"

CAPTAIN_DEFINITION_FILE: str = "captain-definition"
CAPTAIN_CONFIG_FILE: str = "cap-rover.config.json"
TEMP_BRANCH_TAR_NAME: str = "temporary-captain-to-deploy.tar"
TEMP_CONFIG_TAR_NAME: str = "tmp-cap-rover-deploy.tar"
