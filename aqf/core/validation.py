# Author: Kemal Sebzeci
# Description: Shared validation helpers for acquisition configuration and
#              device connection parameters.

import os
import re

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def validate_target_address(address: str) -> tuple[bool, str]:
    """Validate a device address (IPv4, IPv6, or hostname).

    Returns (ok, error_message). If ok is True, error_message is empty.
    """
    if not address:
        return False, "Device address is required."

    ipv4_re = r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
    ipv6_re = r"^([0-9a-fA-F]{0,4}:){2,7}[0-9a-fA-F]{0,4}$"
    hostname_re = r"^(?=.{1,253}$)([a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?\.)*[a-zA-Z]{2,}$"

    if re.match(ipv4_re, address) or re.match(ipv6_re, address) or re.match(hostname_re, address):
        return True, ""
    return False, "Invalid device address. Enter a valid IPv4, IPv6, or hostname."


def validate_ssh_username(user: str) -> tuple[bool, str]:
    """Validate an SSH username.

    Returns (ok, error_message).
    """
    if not user:
        return False, "SSH username is required."
    if not re.match(r"^[a-z_][a-z0-9_-]{0,31}$", user):
        return False, "Invalid SSH username format."
    return True, ""


def validate_storage_base(path: str) -> tuple[bool, str]:
    """Validate that the evidence base folder exists and is writable."""
    if not path:
        return False, "Storage base folder is required."
    if not os.path.isdir(path):
        return False, f"Storage base folder does not exist: {path}"
    if not os.access(path, os.W_OK):
        return False, f"Storage base folder lacks write permissions: {path}"
    return True, ""


def validate_signing_key(path: str) -> tuple[bool, str]:
    """Validate that a signing key file exists and is readable.

    Returns (ok, error_message). If path is empty, returns True (optional).
    """
    if not path:
        return True, ""
    if not os.path.isfile(path):
        return False, f"Signing key not found: {path}"
    if not os.access(path, os.R_OK):
        return False, f"Signing key is not readable: {path}"
    return True, ""


def validate_log_level(level: str) -> tuple[bool, str]:
    if str(level).upper() not in LOG_LEVELS:
        return False, f"Unknown log level {level!r}. Use one of: {', '.join(LOG_LEVELS)}."
    return True, ""
