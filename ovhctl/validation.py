"""
Input validation utilities for ovhctl.

Provides validation for endpoints and access rules, and a helper to
mask sensitive API keys for display purposes.
"""

import logging
from urllib.parse import urlparse

from ovhctl.constants import ACCESS_RULE_METHODS

logger = logging.getLogger(__name__)


def mask_key(key: str) -> str:
    """
    Mask a sensitive key, showing only the last 4 characters.

    Parameters:
        key: The key to mask

    Returns:
        The masked key (e.g. "***abcd")
    """
    if not key or len(key) <= 4:
        return "***"
    return "***" + key[-4:]


def validate_endpoint(endpoint: str) -> bool:
    """
    Validate an API base URL.

    Parameters:
        endpoint: The URL to validate

    Returns:
        True if the endpoint is an http(s) URL with a host
    """
    parsed = urlparse(endpoint)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_access_rule(method: str, path: str) -> tuple[bool, str]:
    """
    Validate a single access rule.

    Parameters:
        method: HTTP verb the rule grants
        path: API path pattern, "*" acting as a wildcard

    Returns:
        Tuple of (is_valid, error_message). error_message is empty if valid.
    """
    if method not in ACCESS_RULE_METHODS:
        return False, f"Method must be one of {', '.join(ACCESS_RULE_METHODS)}, got '{method}'"

    if not path.startswith("/"):
        return False, f"Path must start with '/', got '{path}'"

    return True, ""


def parse_access_rule(value: str) -> tuple[str, str]:
    """
    Parse an access rule written as METHOD:/path.

    Parameters:
        value: The rule, e.g. "GET:/domain/*"

    Returns:
        Tuple of (method, path), the method upper-cased

    Raises:
        ValueError: If the rule is malformed or invalid
    """
    method, sep, path = value.strip().partition(":")
    if not sep:
        raise ValueError(f"Access rule must be 'METHOD:/path' (e.g. 'GET:/*'), got '{value}'")

    method = method.strip().upper()
    path = path.strip()

    is_valid, error_msg = validate_access_rule(method, path)
    if not is_valid:
        raise ValueError(error_msg)

    return method, path
