"""Flat environment variable names for the nested settings.

The portal historically read `FREESCOUT_API_URL`, `FREESCOUT_API_KEY` and friends from the
process environment; those names stay supported and are mapped onto the settings tree here.
Deprecated names emit a DeprecationWarning.
"""
from __future__ import annotations

import os
import warnings
from collections.abc import Iterable, Mapping
from typing import Any

# Mapping of deprecated env vars to their canonical names
_DEPRECATED_ALIASES: dict[str, str] = {
    "FREESCOUT_URL": "FREESCOUT_API_URL",
    "APP_LOG_LEVEL": "LOG_LEVEL",
}


def _warn_deprecated_env_var(old_name: str, new_name: str) -> None:
    warnings.warn(
        f"Environment variable '{old_name}' is deprecated. Use '{new_name}' instead. "
        f"Support for '{old_name}' will be removed in a future version.",
        DeprecationWarning,
        stacklevel=3,
    )


def _set_nested(data: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    node = data
    for part in path[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[path[-1]] = value


def _apply_alias_mappings(
    env: Mapping[str, str],
    data: dict[str, Any],
    mappings: Iterable[tuple[str, tuple[str, ...]]],
) -> None:
    for env_name, path in mappings:
        value = env.get(env_name)
        if value:
            _set_nested(data, path, value)


def _apply_deprecated_aliases(
    env: Mapping[str, str],
    data: dict[str, Any],
    deprecated_mappings: Iterable[tuple[str, str, tuple[str, ...]]],
) -> None:
    for old_name, new_name, path in deprecated_mappings:
        old_value = env.get(old_name)
        if not old_value:
            continue
        if env.get(new_name):
            continue
        _warn_deprecated_env_var(old_name, new_name)
        _set_nested(data, path, old_value)


_CANONICAL_MAPPINGS: tuple[tuple[str, tuple[str, ...]], ...] = (
    # Server
    ("SERVER_HOST", ("server", "host")),
    ("SERVER_PORT", ("server", "port")),
    # FreeScout
    ("FREESCOUT_API_URL", ("freescout", "base_url")),
    ("FREESCOUT_API_KEY", ("freescout", "api_key")),
    ("FREESCOUT_MAILBOX_ID", ("freescout", "mailbox_id")),
    ("FREESCOUT_TIMEOUT_SECONDS", ("freescout", "timeout_seconds")),
    ("FREESCOUT_VERIFY_TLS", ("freescout", "verify_tls")),
    # Form schema
    ("FORM_SCHEMA_PATH", ("form", "schema_path")),
    # Attachments
    ("UPLOAD_MAX_SIZE", ("attachments", "max_bytes_per_file")),
    # Custom field cache
    ("CUSTOM_FIELD_CACHE_TTL_SECONDS", ("custom_field_cache", "ttl_seconds")),
    # Observability
    ("LOG_LEVEL", ("observability", "log_level")),
    ("LOG_FORMAT", ("observability", "log_format")),
    ("LOG_JSON", ("observability", "json_logs")),
    ("METRICS_ENABLED", ("observability", "metrics_enabled")),
    ("HEALTHZ_OMIT_VERSION", ("observability", "healthz_omit_version")),
    # Hardening
    ("HARDENING_TRANSPORT_TRUST_ENV", ("hardening", "transport", "trust_env")),
    (
        "HARDENING_TRANSPORT_ALLOW_INSECURE_HTTP",
        ("hardening", "transport", "allow_insecure_http"),
    ),
    (
        "HARDENING_TRANSPORT_ALLOW_INSECURE_TLS",
        ("hardening", "transport", "allow_insecure_tls"),
    ),
)

_DEPRECATED_VALUE_MAPPINGS: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("FREESCOUT_URL", "FREESCOUT_API_URL", ("freescout", "base_url")),
    ("APP_LOG_LEVEL", "LOG_LEVEL", ("observability", "log_level")),
)


def get_flat_env_settings_source() -> dict[str, Any]:
    env = os.environ
    data: dict[str, Any] = {}

    _apply_alias_mappings(env, data, _CANONICAL_MAPPINGS)
    _apply_deprecated_aliases(env, data, _DEPRECATED_VALUE_MAPPINGS)

    return data
