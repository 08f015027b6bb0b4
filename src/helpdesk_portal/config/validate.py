"""Semantic checks that run after Settings parsed successfully."""
from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import ValidationError

if TYPE_CHECKING:
    from helpdesk_portal.config.settings import Settings

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
_BRACED_RE = re.compile(r"\{([^{}]*)\}")
# Same alphabet the subject resolver substitutes; anything else is never replaced.
_PLACEHOLDER_NAME_RE = re.compile(r"[a-z_]+")


@dataclass(frozen=True)
class ConfigValidationIssue:
    path: str
    message: str


class ConfigValidationError(ValueError):
    def __init__(self, issues: Iterable[ConfigValidationIssue]):
        self.issues = list(issues)
        lines = ["Configuration is invalid:"]
        lines.extend(f"- {issue.path}: {issue.message}" for issue in self.issues)
        super().__init__("\n".join(lines))


def issues_from_pydantic_error(error: ValidationError) -> list[ConfigValidationIssue]:
    return [
        ConfigValidationIssue(
            path=".".join(str(part) for part in item.get("loc", ())) or "<root>",
            message=item.get("msg", "Invalid value"),
        )
        for item in error.errors(include_url=False)
    ]


def _check_log_level(settings: Settings) -> Iterator[ConfigValidationIssue]:
    level = settings.observability.log_level
    if level.upper() not in _LOG_LEVELS:
        yield ConfigValidationIssue(
            "observability.log_level",
            f"Unsupported log level {level!r} (allowed: {', '.join(_LOG_LEVELS)})",
        )


def _check_transport(settings: Settings) -> Iterator[ConfigValidationIssue]:
    transport = settings.hardening.transport
    if settings.freescout.base_url.scheme == "http" and not transport.allow_insecure_http:
        yield ConfigValidationIssue(
            "freescout.base_url",
            "The helpdesk API key would travel in clear text. "
            "Use https:// or set hardening.transport.allow_insecure_http=true.",
        )
    if not settings.freescout.verify_tls and not transport.allow_insecure_tls:
        yield ConfigValidationIssue(
            "freescout.verify_tls",
            "Disabling TLS verification requires hardening.transport.allow_insecure_tls=true.",
        )


def _check_subject_templates(settings: Settings) -> Iterator[ConfigValidationIssue]:
    for request_type, template in settings.mappings.subject_templates.items():
        for name in _BRACED_RE.findall(template):
            if not _PLACEHOLDER_NAME_RE.fullmatch(name):
                yield ConfigValidationIssue(
                    f"mappings.subject_templates.{request_type}",
                    f"Placeholder {{{name}}} is never substituted; "
                    "use the lower_snake_case form field name.",
                )


def _check_mapping_values(settings: Settings) -> Iterator[ConfigValidationIssue]:
    mappings = settings.mappings
    for form_field, external_field in mappings.custom_fields.items():
        if not external_field.strip():
            yield ConfigValidationIssue(
                f"mappings.custom_fields.{form_field}", "Custom field name must not be blank."
            )
    for request_type, value in mappings.request_types.items():
        if not value.strip():
            yield ConfigValidationIssue(
                f"mappings.request_types.{request_type}", "Request type value must not be blank."
            )
    for request_type, tags in mappings.tags.items():
        if any(not tag.strip() for tag in tags):
            yield ConfigValidationIssue(
                f"mappings.tags.{request_type}", "Tags must not be blank."
            )


_CHECKS = (_check_log_level, _check_transport, _check_subject_templates, _check_mapping_values)


def validate_settings(settings: Settings) -> None:
    issues = [issue for check in _CHECKS for issue in check(settings)]
    if issues:
        raise ConfigValidationError(issues)
