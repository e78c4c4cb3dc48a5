"""Header redaction utilities for logging."""

import re


# Headers that must never appear in logs
SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "cookie",
        "proxy-authorization",
        "set-cookie",
    }
)

REDACTED_VALUE = "[REDACTED]"

# Digest parameters that are safe to log from a challenge or response
_SAFE_DIGEST_PARAMS = ("realm", "qop", "algorithm", "stale")


def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Redact sensitive headers for logging.

    Replaces the values of Authorization, Cookie, and other
    sensitive headers with [REDACTED] for safe logging.

    Args:
        headers: Original headers dictionary.

    Returns:
        New dictionary with sensitive values redacted.
    """
    result: dict[str, str] = {}
    for key, value in headers.items():
        if is_sensitive_header(key):
            result[key] = REDACTED_VALUE
        else:
            result[key] = value
    return result


def is_sensitive_header(header_name: str) -> bool:
    """Check if a header name is sensitive.

    Args:
        header_name: The header name to check.

    Returns:
        True if the header should be redacted.
    """
    return header_name.lower() in SENSITIVE_HEADERS


def summarize_digest_header(value: str) -> dict[str, str]:
    """Extract the loggable parameters of a Digest header.

    Nonces, opaque values, usernames and response hashes are dropped.

    Args:
        value: A WWW-Authenticate or Authorization header value.

    Returns:
        Mapping of safe parameter names to their values.
    """
    summary: dict[str, str] = {}
    for name in _SAFE_DIGEST_PARAMS:
        match = re.search(rf'(?:^|[\s,]){name}=("([^"]*)"|[^\s,]+)', value, re.I)
        if match:
            summary[name] = match.group(2) if match.group(2) is not None else match.group(1)
    return summary
