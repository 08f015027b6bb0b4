from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic.networks import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

from helpdesk_portal.config.env_aliases import get_flat_env_settings_source


class _BaseSection(BaseModel):
    model_config = {"extra": "forbid"}


class ServerSettings(_BaseSection):
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)


class FreeScoutSettings(_BaseSection):
    base_url: AnyHttpUrl
    api_key: SecretStr
    # Unset = first mailbox reported by the API is used.
    mailbox_id: int | None = Field(default=None, gt=0)
    timeout_seconds: float = Field(default=30.0, gt=0)
    verify_tls: bool = True


class FormSettings(_BaseSection):
    schema_path: Path = Path("config/form_fields.yaml")

    @field_validator("schema_path")
    @classmethod
    def _expand_schema_path(cls, value: Path) -> Path:
        return value.expanduser()


def _default_tags() -> dict[str, list[str]]:
    return {
        "jdedwards": ["jde", "erp"],
        "problem": ["technical-issue"],
        "software_request": ["software"],
        "access_request": ["access", "permissions"],
        "onboarding": ["onboarding", "new-hire"],
        "change": ["change-request"],
        "other": [],
    }


def _default_subject_templates() -> dict[str, str]:
    return {
        "onboarding": "New Employee Onboarding - {employee_name}",
        "problem": "Technical Problem - {device_type}",
        "change": "Change Request - {subject}",
        "software_request": "Software Request - {application_name}",
        "access_request": "Access Request - {system_name}",
        "jdedwards": "JD Edwards Issue - {subject}",
        "other": "IT Request - {subject}",
        "_default": "IT Request",
    }


def _default_exclude_from_body() -> list[str]:
    return [
        "requester_name",
        "requester_email",
        "department",
        "priority",
        "request_type",
        "subject",
        "csrf_token",
        "auth_method",
        "autosave_session_id",
    ]


class MappingsSettings(_BaseSection):
    """Static field mapping tables; the form schema overrides `custom_fields` per field."""

    # form field name -> FreeScout custom field name
    custom_fields: dict[str, str] = Field(default_factory=lambda: {"priority": "Priority"})
    # internal request type key -> value sent for the mapped `request_type` field
    request_types: dict[str, str] = Field(default_factory=lambda: {"problem": "Problem"})
    tags: dict[str, list[str]] = Field(default_factory=_default_tags)
    subject_templates: dict[str, str] = Field(default_factory=_default_subject_templates)
    exclude_from_body: list[str] = Field(default_factory=_default_exclude_from_body)


class AttachmentSettings(_BaseSection):
    # 0 disables the limit.
    max_bytes_per_file: int = Field(default=10 * 1024 * 1024, ge=0)


class CustomFieldCacheSettings(_BaseSection):
    # 0 = fetch definitions once per ticket (no sharing between submissions).
    ttl_seconds: float = Field(default=0.0, ge=0)


class ObservabilitySettings(_BaseSection):
    log_level: str = "INFO"
    log_format: str | None = None  # json|human (overrides LOG_FORMAT/env when set)
    json_logs: bool = False
    metrics_enabled: bool = False
    # When true, GET /healthz omits version and service name (reduces fingerprinting).
    healthz_omit_version: bool = False

    @field_validator("log_format")
    @classmethod
    def _validate_log_format(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized in {"json", "human"}:
            return normalized
        raise ValueError("observability.log_format must be 'json' or 'human'")


class TransportHardeningSettings(_BaseSection):
    # If true, allow httpx to read HTTP_PROXY/HTTPS_PROXY/NO_PROXY and other env settings.
    trust_env: bool = False
    # Allow plaintext HTTP for the helpdesk API. Strongly discouraged.
    allow_insecure_http: bool = False
    # Allow disabling TLS verification for the helpdesk API. Strongly discouraged.
    allow_insecure_tls: bool = False


class HardeningSettings(_BaseSection):
    transport: TransportHardeningSettings = Field(default_factory=TransportHardeningSettings)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="forbid",
    )

    server: ServerSettings = Field(default_factory=ServerSettings)
    freescout: FreeScoutSettings
    form: FormSettings = Field(default_factory=FormSettings)
    mappings: MappingsSettings = Field(default_factory=MappingsSettings)
    attachments: AttachmentSettings = Field(default_factory=AttachmentSettings)
    custom_field_cache: CustomFieldCacheSettings = Field(default_factory=CustomFieldCacheSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    hardening: HardeningSettings = Field(default_factory=HardeningSettings)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Settings:
        """
        Construct Settings from a mapping without reading environment variables.

        Useful in tests where we want to pass nested dicts and keep mypy happy.
        """
        class _InitOnlySettings(Settings):
            @classmethod
            def settings_customise_sources(
                cls,
                settings_cls,
                init_settings,
                env_settings,
                dotenv_settings,
                file_secret_settings,
            ):
                return (init_settings,)

        return _InitOnlySettings(**dict(data))

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            env_settings,
            get_flat_env_settings_source,
            init_settings,
            dotenv_settings,
            file_secret_settings,
        )
