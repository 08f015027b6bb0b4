"""Form schema (form_fields.yaml) loading.

The schema declares the fields of every request type. Two per-field attributes matter to
ticket building: `freescout_field` (target custom field) and `include_in_body`.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
    field_validator,
)

from helpdesk_portal.config.validate import (
    ConfigValidationError,
    ConfigValidationIssue,
    issues_from_pydantic_error,
)


class _SchemaModel(BaseModel):
    # Form schemas also carry rendering attributes (label, type, required, ...).
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class FieldDefinition(_SchemaModel):
    name: str = Field(min_length=1)
    external_field: str | None = Field(default=None, alias="freescout_field")
    include_in_body: bool = True
    label: str | None = None
    type: str = "text"


def _reject_duplicate_names(fields: list[FieldDefinition]) -> list[FieldDefinition]:
    seen: set[str] = set()
    for field in fields:
        if field.name in seen:
            raise ValueError(f"duplicate field name {field.name!r}")
        seen.add(field.name)
    return fields


class RequestTypeDefinition(_SchemaModel):
    name: str | None = None
    description: str | None = None
    freescout_tags: list[str] = Field(default_factory=list)
    fields: list[FieldDefinition] = Field(default_factory=list)

    @field_validator("fields")
    @classmethod
    def _unique_fields(cls, value: list[FieldDefinition]) -> list[FieldDefinition]:
        return _reject_duplicate_names(value)


class _FormFields(_SchemaModel):
    common: list[FieldDefinition] = Field(default_factory=list)
    request_types: dict[str, RequestTypeDefinition] = Field(default_factory=dict)

    @field_validator("common")
    @classmethod
    def _unique_common(cls, value: list[FieldDefinition]) -> list[FieldDefinition]:
        return _reject_duplicate_names(value)


class FormSchema(_SchemaModel):
    form_fields: _FormFields = Field(default_factory=_FormFields)

    _index: dict[str, FieldDefinition] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        index: dict[str, FieldDefinition] = {}
        for field in self._iter_fields():
            index.setdefault(field.name, field)
        self._index = index

    def _iter_fields(self) -> Iterator[FieldDefinition]:
        yield from self.form_fields.common
        for request_type in self.form_fields.request_types.values():
            yield from request_type.fields

    def all_field_definitions(self) -> list[FieldDefinition]:
        """Common fields first, then per-type fields; the first definition of a name wins."""
        return list(self._index.values())

    def field(self, name: str) -> FieldDefinition | None:
        return self._index.get(name)

    def request_types(self) -> list[str]:
        return list(self.form_fields.request_types)

    def request_type_tags(self, request_type: str) -> list[str]:
        definition = self.form_fields.request_types.get(request_type)
        return list(definition.freescout_tags) if definition is not None else []

    def tags_by_request_type(self) -> dict[str, list[str]]:
        return {key: self.request_type_tags(key) for key in self.form_fields.request_types}


def load_form_schema(path: str | Path) -> FormSchema:
    schema_path = Path(path)
    try:
        raw = yaml.safe_load(schema_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigValidationError(
            [ConfigValidationIssue(path=str(schema_path), message=f"Unable to read form schema: {exc}")]
        ) from exc
    except yaml.YAMLError as exc:
        raise ConfigValidationError(
            [ConfigValidationIssue(path=str(schema_path), message=f"Invalid YAML: {exc}")]
        ) from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigValidationError(
            [ConfigValidationIssue(path=str(schema_path), message="YAML root must be a mapping/object")]
        )

    try:
        return FormSchema.model_validate(raw)
    except ValidationError as exc:
        issues = [
            ConfigValidationIssue(f"{schema_path}:{issue.path}", issue.message)
            for issue in issues_from_pydantic_error(exc)
        ]
        raise ConfigValidationError(issues) from exc
