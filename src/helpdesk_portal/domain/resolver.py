"""Pure helpers that turn configuration plus form data into ticket parts.

Nothing here performs I/O; the ticket builder feeds in the static mapping tables, the form
schema and the submitted values.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from html import escape
from typing import TYPE_CHECKING, Any, Final

if TYPE_CHECKING:
    from helpdesk_portal.config.form_schema import FieldDefinition

DEFAULT_TEMPLATE_KEY: Final[str] = "_default"
FALLBACK_SUBJECT: Final[str] = "IT Request"

_PLACEHOLDER_RE = re.compile(r"\{([a-z_]+)\}")


def resolve_custom_field_mapping(
    static_mapping: Mapping[str, str],
    field_definitions: Iterable[FieldDefinition],
) -> dict[str, str]:
    """Merge static `form field -> custom field` pairs with schema-declared ones (schema wins)."""
    mapping = dict(static_mapping)
    for definition in field_definitions:
        if definition.external_field:
            mapping[definition.name] = definition.external_field
    return mapping


def resolve_tags(
    request_type: str,
    schema_tags: Iterable[str],
    static_tags_by_type: Mapping[str, Iterable[str]],
) -> list[str]:
    """Schema tags first, then static tags for the type; duplicates keep their first position."""
    merged = [*schema_tags, *static_tags_by_type.get(request_type, ())]
    return list(dict.fromkeys(merged))


def _as_text(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(item for item in value if isinstance(item, str))
    if value is None:
        return ""
    return str(value)


def resolve_subject(
    request_type: str,
    form_data: Mapping[str, Any],
    templates_by_type: Mapping[str, str],
) -> str:
    user_subject = _as_text(form_data.get("subject")).strip()
    if user_subject:
        return user_subject

    template = templates_by_type.get(
        request_type, templates_by_type.get(DEFAULT_TEMPLATE_KEY, FALLBACK_SUBJECT)
    )

    # Unknown placeholders are left verbatim.
    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in form_data:
            return match.group(0)
        return _as_text(form_data[name])

    return _PLACEHOLDER_RE.sub(_substitute, template)


def field_inclusion_map(field_definitions: Iterable[FieldDefinition]) -> dict[str, bool]:
    return {definition.name: definition.include_in_body for definition in field_definitions}


def body_label(field_name: str) -> str:
    label = field_name.replace("_", " ")
    return label[:1].upper() + label[1:]


def resolve_body(
    form_data: Mapping[str, Any],
    excluded_fields: Iterable[str],
    inclusion_map: Mapping[str, bool],
) -> str:
    """
    Render one `<p><strong>Label:</strong> value</p>` line per field, in submission order.

    Existing helpdesk agents rely on this exact layout; do not sort.
    """
    excluded = set(excluded_fields)
    lines: list[str] = []
    for name, value in form_data.items():
        if name in excluded or inclusion_map.get(name) is False:
            continue
        if isinstance(value, bool):
            if not value:
                continue
            value = "Yes"
        elif not isinstance(value, (str, int, float, list, tuple)):
            # Attachment references and other objects are not rendered.
            continue
        text = _as_text(value)
        if not text.strip():
            continue
        lines.append(f"<p><strong>{body_label(name)}:</strong> {escape(text)}</p>\n")
    return "".join(lines)


def split_requester_name(name: str) -> tuple[str, str]:
    """Everything before the first space is the first name; the rest is the last name."""
    first, _, last = name.partition(" ")
    return first, last
