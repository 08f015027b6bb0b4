"""Assemble Settings from `.env`, the optional YAML file and the process environment."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from helpdesk_portal.config.settings import Settings
from helpdesk_portal.config.validate import (
    ConfigValidationError,
    ConfigValidationIssue,
    issues_from_pydantic_error,
    validate_settings,
)

DEFAULT_CONFIG_PATH = Path("config/config.yaml")


def _resolve_config_path(config_path: str | Path | None) -> tuple[Path | None, bool]:
    """
    Returns (path, explicit). An explicit path (argument or CONFIG_PATH) must exist; the
    default `config/config.yaml` is optional.
    """
    if config_path is not None:
        return Path(config_path), True
    if env_path := os.environ.get("CONFIG_PATH"):
        return Path(env_path), True
    return (DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.exists() else None), False


def _load_yaml_config(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigValidationError(
            [ConfigValidationIssue(str(path), f"Unable to read config file: {exc}")]
        ) from exc
    except yaml.YAMLError as exc:
        raise ConfigValidationError(
            [ConfigValidationIssue(str(path), f"Config file is not valid YAML: {exc}")]
        ) from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigValidationError(
            [ConfigValidationIssue(str(path), "YAML root must be a mapping/object")]
        )
    return raw


def load_settings(*, config_path: str | Path | None = None) -> Settings:
    dotenv_path = Path(".env")
    if dotenv_path.is_file():
        load_dotenv(dotenv_path=dotenv_path, override=False)

    path, explicit = _resolve_config_path(config_path)
    yaml_data: dict[str, Any] = {}
    if path is not None and path.exists():
        yaml_data = _load_yaml_config(path)
    elif path is not None and explicit:
        raise ConfigValidationError(
            [ConfigValidationIssue("CONFIG_PATH", f"Config file not found: {path}")]
        )

    try:
        settings = Settings(**yaml_data)
    except ValidationError as exc:
        issues = _add_hints(_expand_sections(issues_from_pydantic_error(exc)))
        raise ConfigValidationError(issues) from exc

    validate_settings(settings)
    return settings


_HINTS: dict[str, str] = {
    "freescout.base_url": "Set `FREESCOUT_API_URL` (or YAML `freescout.base_url`).",
    "freescout.api_key": "Set `FREESCOUT_API_KEY` (or YAML `freescout.api_key`).",
    "freescout.mailbox_id": "`FREESCOUT_MAILBOX_ID` must be a positive integer.",
    "freescout.timeout_seconds": "`FREESCOUT_TIMEOUT_SECONDS` must be a positive number.",
    "form.schema_path": "Set `FORM_SCHEMA_PATH` to the form fields YAML file.",
    "attachments.max_bytes_per_file": "`UPLOAD_MAX_SIZE` is a byte count; 0 disables the limit.",
    "custom_field_cache.ttl_seconds": (
        "`CUSTOM_FIELD_CACHE_TTL_SECONDS` must be >= 0; 0 refetches definitions per ticket."
    ),
    "mappings.custom_fields": "Expected `form_field: Helpdesk Field Name` pairs.",
    "mappings.request_types": "Expected `request_type_key: Dropdown option label` pairs.",
    "mappings.tags": "Expected `request_type_key: [tag, ...]` lists.",
    "mappings.subject_templates": "Expected `request_type_key: Subject with {field}` pairs.",
}


def _hint_for(path: str) -> str | None:
    # `mappings.tags.onboarding.0` falls back to the `mappings.tags` hint.
    parts = path.split(".")
    while parts:
        hint = _HINTS.get(".".join(parts))
        if hint:
            return hint
        parts.pop()
    return None


def _add_hints(issues: list[ConfigValidationIssue]) -> list[ConfigValidationIssue]:
    enriched: list[ConfigValidationIssue] = []
    for issue in issues:
        hint = _hint_for(issue.path)
        if hint and hint not in issue.message:
            issue = ConfigValidationIssue(issue.path, f"{issue.message} {hint}")
        enriched.append(issue)
    return enriched


def _section_model(name: str) -> type[BaseModel] | None:
    field = Settings.model_fields.get(name)
    annotation = field.annotation if field is not None else None
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    return None


def _expand_sections(issues: list[ConfigValidationIssue]) -> list[ConfigValidationIssue]:
    """
    Replace section-level errors with per-key ones.

    A missing `freescout` section becomes one issue per required key so the env var hints
    apply; a section given as a scalar (`form: x`) lists the keys the section accepts.
    """
    expanded: list[ConfigValidationIssue] = []
    for issue in issues:
        section = _section_model(issue.path)
        if section is None:
            expanded.append(issue)
            continue
        if "Field required" in issue.message:
            expanded.extend(
                ConfigValidationIssue(f"{issue.path}.{key}", "Field required")
                for key, field in section.model_fields.items()
                if field.is_required()
            )
            continue
        keys = ", ".join(section.model_fields)
        expanded.append(
            ConfigValidationIssue(issue.path, f"{issue.message}. Expected a mapping with: {keys}")
        )
    return expanded
