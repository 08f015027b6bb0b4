from __future__ import annotations

from copy import deepcopy
from typing import Any

from helpdesk_portal.config.settings import Settings

BASE_URL = "https://helpdesk.example.local/api"


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def make_settings(
    *,
    mailbox_id: int | None = None,
    schema_path: str | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    data: dict[str, Any] = {
        "freescout": {"base_url": BASE_URL, "api_key": "test-key"},
    }
    if mailbox_id is not None:
        data["freescout"]["mailbox_id"] = mailbox_id
    if schema_path is not None:
        data["form"] = {"schema_path": schema_path}
    if overrides:
        data = _deep_merge(data, overrides)
    return Settings.from_mapping(data)
