"""Validators used as ``OptionSpec.validate`` callbacks.

Each ``get_error_for_*`` function returns ``True`` when the value is
acceptable and a human-readable error message otherwise.  Anything the
check depends on (stored machines, remote apps, git) is passed in.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from caprover_cli.core.models import AppDefinition, Machine
from caprover_cli.core.urls import (
    clean_admin_domain_url,
    clean_domain,
    is_ip_address,
    is_name_valid,
    is_valid_email,
)
from caprover_cli.exceptions import CaproverCliError, UserCancelledError
from caprover_cli.utils.constants import SAMPLE_DOMAIN, SAMPLE_IP


def get_error_for_ip(value: str) -> bool | str:
    value = value.strip()
    if value == SAMPLE_IP:
        return "Enter a valid IP."
    if not is_ip_address(value):
        return f"This is an invalid IP: {value}."
    return True


def get_error_for_domain(
    value: str,
    machines: Iterable[Machine] = (),
    *,
    skip_already_stored: bool = False,
) -> bool | str:
    """Reject the sample domain, unparsable URLs and URLs already stored."""
    if value == SAMPLE_DOMAIN or clean_domain(value) == SAMPLE_DOMAIN:
        return "Enter a valid URL."
    cleaned = clean_admin_domain_url(value)
    if not cleaned:
        return f"This is an invalid URL: {value}."
    if not skip_already_stored:
        for machine in machines:
            if clean_admin_domain_url(machine.base_url) == cleaned:
                return (
                    f"{cleaned} already exist as {machine.name} in your currently "
                    "logged in machines. If you want to replace the existing entry, "
                    "you have to first use <logout> command, and then re-login."
                )
    return True


def get_error_for_password(value: str | None, constraint: int | str | None = None) -> bool | str:
    """Check a password.

    An ``int`` *constraint* is a minimum length; a ``str`` one is the
    value the password must repeat.
    """
    if not value or not value.strip():
        return "Please enter password."
    if isinstance(constraint, int) and len(value) < constraint:
        return f"Password is too short, min {constraint} characters."
    if isinstance(constraint, str) and value != constraint:
        return "Passwords do not match."
    return True


def get_error_for_machine_name(
    value: str,
    machines: Iterable[Machine],
    *,
    check_existing: bool = False,
) -> bool | str:
    """Validate a machine name for saving, or for lookup with *check_existing*."""
    value = (value or "").strip()
    exists = any(machine.name == value for machine in machines)
    if exists and not check_existing:
        return (
            f"{value} already exist. If you want to replace the existing entry, "
            "you have to first use <logout> command, and then re-login."
        )
    if check_existing and not exists:
        return f"{value} CapRover machine not exist."
    if check_existing or is_name_valid(value):
        return True
    return "Please enter a valid CapRover machine name: small letters, numbers, single hyphen."


def get_error_for_app_name(apps: Iterable[AppDefinition], value: str) -> bool | str:
    value = (value or "").strip()
    app = next((candidate for candidate in apps if candidate.app_name == value), None)
    if app is None:
        return f"{value} app not exist on this CapRover machine."
    if app.is_app_building:
        return f"{value} app is currently in a building process."
    return True


def get_error_for_branch_name(value: str | None, rev_parse: Callable[[str], str]) -> bool | str:
    """Accept *value* when *rev_parse* can resolve it to a commit."""
    if not value or not value.strip():
        return "Please enter branch name."
    value = value.strip()
    try:
        rev_parse(value)
    except CaproverCliError:
        return f'Cannot find hash of last commit on branch "{value}".'
    return True


def get_error_for_email(value: str | None) -> bool | str:
    if not value or not value.strip():
        return "Please enter email."
    if not is_valid_email(value):
        return "Please enter a valid email."
    return True


def user_cancel_operation(cancel: bool) -> None:
    """Raise :class:`UserCancelledError` when *cancel* is truthy."""
    if cancel:
        raise UserCancelledError("Operation cancelled by the user!")
