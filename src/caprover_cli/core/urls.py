"""URL, host name and address helpers."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from caprover_cli.utils.constants import ADMIN_DOMAIN

_IP_OCTET = r"(25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)"
_IP_RE = re.compile(rf"^{_IP_OCTET}\.{_IP_OCTET}\.{_IP_OCTET}\.{_IP_OCTET}$")
_EMAIL_RE = re.compile(
    r'^(([^<>()\[\]\\.,;:\s@"]+(\.[^<>()\[\]\\.,;:\s@"]+)*)|(".+"))@'
    r"((\[[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\])|(([a-zA-Z\-0-9]+\.)+[a-zA-Z]{2,}))$"
)
_NAME_RE = re.compile(r"^[-\w]+$")


def clean_domain(url: str | None) -> str | None:
    """Return the lower-cased host name of *url*, with or without a scheme."""
    if not url:
        return None
    candidate = url.strip()
    if "://" not in candidate and not candidate.startswith("//"):
        candidate = f"//{candidate}"
    try:
        host = urlsplit(candidate).hostname
    except ValueError:
        return None
    return host or None


def clean_admin_domain_url(url: str | None, https: bool | None = None) -> str | None:
    """Normalise *url* to ``http[s]://captain.<root>``.

    The scheme is HTTPS unless *url* explicitly starts with ``http://``;
    *https* overrides the detection either way.
    """
    if not url:
        return None
    is_http = url.lower().startswith("http://")
    host = clean_domain(url)
    if not host:
        return None
    if not host.startswith(f"{ADMIN_DOMAIN}."):
        host = f"{ADMIN_DOMAIN}.{host}"
    use_https = https if https is not None else not is_http
    return ("https://" if use_https else "http://") + host


def app_public_url(base_url: str, app_name: str, ssl: bool = False) -> str:
    """Derive the public URL of *app_name* from a machine's dashboard URL."""
    url = base_url.replace("https://", "http://").replace(
        f"//{ADMIN_DOMAIN}.", f"//{app_name}."
    )
    if ssl:
        url = url.replace("http://", "https://")
    return url


def is_ip_address(value: str) -> bool:
    return bool(_IP_RE.match(value))


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(str(value).lower()))


def is_name_valid(value: str | None) -> bool:
    """Letters, digits, underscores and single hyphens only."""
    return bool(value and _NAME_RE.match(value) and "--" not in value)
