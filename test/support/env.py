from __future__ import annotations

import pytest

_CONFIG_ENV_KEYS = (
    "CONFIG_PATH",
    "SERVER_HOST",
    "SERVER_PORT",
    "FREESCOUT_API_URL",
    "FREESCOUT_URL",
    "FREESCOUT_API_KEY",
    "FREESCOUT_MAILBOX_ID",
    "FREESCOUT_TIMEOUT_SECONDS",
    "FREESCOUT_VERIFY_TLS",
    "FORM_SCHEMA_PATH",
    "UPLOAD_MAX_SIZE",
    "CUSTOM_FIELD_CACHE_TTL_SECONDS",
    "LOG_LEVEL",
    "APP_LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_JSON",
    "METRICS_ENABLED",
    # Nested form (supported by pydantic-settings)
    "FREESCOUT__BASE_URL",
    "FREESCOUT__API_KEY",
    "FREESCOUT__MAILBOX_ID",
)


def clear_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _CONFIG_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
