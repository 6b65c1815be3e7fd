"""Masking of credentials and personal data in log output.

The portal handles Supabase anon keys and session JWTs, completion API keys,
passwords typed into the login and registration forms, and e-mail addresses.
None of these may reach a log sink in clear text.
"""

from __future__ import annotations

import re
from typing import Any

MASK = "***MASKED***"

# Patterns whose first group is the key part; the value after it is masked
_KEY_VALUE_PATTERNS: dict[str, re.Pattern[str]] = {
    "password": re.compile(
        r'(["\']?(?:confirm[_-]?)?password["\']?\s*[:=]\s*)["\']?[^"\'\s,}\]]+["\']?',
        re.IGNORECASE,
    ),
    "api_key": re.compile(
        r'(["\']?\b(?:anon[_-]?|service[_-]?role[_-]?)?(?:api[_-]?)?key["\']?\s*[:=]\s*)["\']?[a-zA-Z0-9_\-\.]{8,}["\']?',
        re.IGNORECASE,
    ),
    "token": re.compile(
        r'(["\']?(?:(?:auth|access|refresh)[_-]?)?token["\']?\s*[:=]\s*)["\']?[a-zA-Z0-9_\-\.]+["\']?',
        re.IGNORECASE,
    ),
    "secret": re.compile(
        r'(["\']?(?:client[_-]?)?secret["\']?\s*[:=]\s*)["\']?[a-zA-Z0-9_\-]+["\']?', re.IGNORECASE
    ),
    "bearer": re.compile(r"(bearer\s+)[a-zA-Z0-9_\-\.]+", re.IGNORECASE),
}

# Values that are recognisable on their own, without a key in front
_BARE_VALUE_PATTERNS: dict[str, re.Pattern[str]] = {
    "jwt": re.compile(r"\beyJ[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+"),
    "openai_key": re.compile(r"\bsk-[a-zA-Z0-9_\-]{8,}"),
}

_URL_CREDENTIALS = re.compile(r"(https?://)[^:/\s]+:[^@/\s]+(@)", re.IGNORECASE)
_EMAIL = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

SENSITIVE_KEYWORDS: set[str] = {
    "password",
    "passwd",
    "secret",
    "token",
    "api_key",
    "apikey",
    "anon_key",
    "service_role",
    "credential",
    "private_key",
    "authorization",
    "bearer",
}


def _mask_email(match: re.Match[str]) -> str:
    local, domain = match.group(0).split("@", 1)
    return f"{local[:2]}***@{domain}"


def mask_sensitive_string(text: str) -> str:
    """Mask sensitive values in a free-form string.

    E-mail addresses keep their first two characters and the domain so that
    login problems remain traceable to a tenant.

    Args:
        text: Text to mask

    Returns:
        Text with sensitive values replaced
    """
    if not text:
        return text

    result = _URL_CREDENTIALS.sub(r"\1" + MASK + r"\2", text)

    for pattern in _KEY_VALUE_PATTERNS.values():
        result = pattern.sub(r"\g<1>" + MASK, result)

    for pattern in _BARE_VALUE_PATTERNS.values():
        result = pattern.sub(MASK, result)

    return _EMAIL.sub(_mask_email, result)


def is_sensitive_key(key: str) -> bool:
    """Return True if a mapping key names a credential."""
    lower_key = key.lower()
    return any(keyword in lower_key for keyword in SENSITIVE_KEYWORDS)


def mask_dict(data: dict[str, Any], depth: int = 0, max_depth: int = 10) -> dict[str, Any]:
    """Recursively mask a mapping destined for structured log output.

    Args:
        data: Mapping to mask
        depth: Current recursion depth
        max_depth: Depth at which nested values are returned untouched

    Returns:
        New mapping with sensitive values masked
    """
    if depth >= max_depth:
        return data

    result: dict[str, Any] = {}

    for key, value in data.items():
        if is_sensitive_key(str(key)):
            result[key] = MASK
        elif isinstance(value, dict):
            result[key] = mask_dict(value, depth + 1, max_depth)
        elif isinstance(value, list):
            result[key] = [
                mask_dict(item, depth + 1, max_depth) if isinstance(item, dict) else item
                for item in value
            ]
        elif isinstance(value, str):
            result[key] = mask_sensitive_string(value)
        else:
            result[key] = value

    return result


class SensitiveValue:
    """Wrapper that renders as MASK when formatted.

    Usage:
        key = SensitiveValue(config.supabase_anon_key)
        logger.debug("Connecting with %s", key)
    """

    def __init__(self, value: Any) -> None:
        self._value = value

    def get(self) -> Any:
        return self._value

    def __str__(self) -> str:
        return MASK

    def __repr__(self) -> str:
        return f"SensitiveValue({MASK})"

    def __bool__(self) -> bool:
        return bool(self._value)
