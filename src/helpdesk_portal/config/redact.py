"""Keep the helpdesk API key (and the portal's own form tokens) out of dumps and logs."""
from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import SecretStr

REDACTED_VALUE = "[redacted]"

_SENSITIVE_KEYS = frozenset(
    {
        "api_key",
        "freescout_api_key",
        "x-freescout-api-key",
        "csrf_token",
    }
)
_SENSITIVE_KEY_FRAGMENTS = ("password", "secret", "token", "authorization", "api_key", "apikey")

# FreeScout accepts the key as a header, as `?api_key=` or via HTTP auth.
_TEXT_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?i)\b(X-FreeScout-API-Key)\s*[:=]\s*[^\s,;]+"), r"\1: " + REDACTED_VALUE),
    (
        re.compile(r"(?i)\b(authorization)\s*[:=]\s*(basic|bearer)\s+[^\s,;]+"),
        r"\1: \2 " + REDACTED_VALUE,
    ),
    (re.compile(r"(?i)([?&]api[_-]?key=)[^&\s]+"), r"\1" + REDACTED_VALUE),
    (
        re.compile(
            r"(?i)\b(api[_-]?key|csrf[_-]?token|password|secret)\s*[:=]\s*"
            r"(?!\[redacted\])[^\s,;&]+"
        ),
        r"\1=" + REDACTED_VALUE,
    ),
)


def scrub_secrets_in_text(text: str) -> str:
    """Best-effort masking of credentials inside exception messages and request lines."""
    if not text:
        return text
    for pattern, replacement in _TEXT_RULES:
        text = pattern.sub(replacement, text)
    return text


def _is_sensitive_key(key: str) -> bool:
    normalized = key.strip().lower()
    return normalized in _SENSITIVE_KEYS or any(
        fragment in normalized for fragment in _SENSITIVE_KEY_FRAGMENTS
    )


def _redact_value(value: Any) -> Any:
    if isinstance(value, SecretStr):
        return REDACTED_VALUE
    if isinstance(value, str):
        return scrub_secrets_in_text(value)
    if isinstance(value, Mapping):
        return redact_settings_dict(value)
    if isinstance(value, (list, tuple)):
        return type(value)(_redact_value(item) for item in value)
    return value


def redact_settings_dict(data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Deep copy of `data` with secrets masked; the input is left untouched.

    Values under sensitive keys and any SecretStr become REDACTED_VALUE; other strings are
    scrubbed with scrub_secrets_in_text.
    """
    return {
        str(key): REDACTED_VALUE if _is_sensitive_key(str(key)) else _redact_value(value)
        for key, value in data.items()
    }
