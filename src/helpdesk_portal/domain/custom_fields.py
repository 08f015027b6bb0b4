"""Form value -> helpdesk custom field resolution.

Custom field definitions are fetched per mailbox through a small cache port so the builder
can scope them to one ticket (default) or share them for a bounded time.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from helpdesk_portal.domain.errors import CustomFieldUnmappable
from helpdesk_portal.domain.payload import CustomFieldValue

if TYPE_CHECKING:
    from helpdesk_portal.adapters.freescout.models import ExternalCustomField

log = structlog.get_logger(__name__)

REQUEST_TYPE_FIELD = "request_type"

FieldFetcher = Callable[[int], Sequence["ExternalCustomField"]]


class CustomFieldCache(Protocol):
    def get(self, mailbox_id: int) -> Sequence[ExternalCustomField]: ...


class PerCallCustomFieldCache:
    """Fetches definitions at most once per mailbox for the lifetime of this object."""

    def __init__(self, fetch: FieldFetcher) -> None:
        self._fetch = fetch
        self._fields: dict[int, Sequence[ExternalCustomField]] = {}

    def get(self, mailbox_id: int) -> Sequence[ExternalCustomField]:
        if mailbox_id not in self._fields:
            self._fields[mailbox_id] = tuple(self._fetch(mailbox_id))
        return self._fields[mailbox_id]


class TTLCustomFieldCache:
    """
    Shares definitions between submissions for `ttl_seconds`, keyed by mailbox id.

    Writers publish a fresh dict instead of mutating the current one, so concurrent readers
    always see a complete snapshot. Two simultaneous misses both fetch; the last write wins.
    """

    def __init__(
        self,
        fetch: FieldFetcher,
        *,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self._fetch = fetch
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._entries: dict[int, tuple[float, tuple[ExternalCustomField, ...]]] = {}

    def get(self, mailbox_id: int) -> Sequence[ExternalCustomField]:
        now = self._clock()
        entry = self._entries.get(mailbox_id)
        if entry is not None and now - entry[0] < self._ttl:
            return entry[1]

        fields = tuple(self._fetch(mailbox_id))
        self._entries = {**self._entries, mailbox_id: (now, fields)}
        return fields

    def invalidate(self, mailbox_id: int | None = None) -> None:
        if mailbox_id is None:
            self._entries = {}
            return
        self._entries = {k: v for k, v in self._entries.items() if k != mailbox_id}


@dataclass(frozen=True)
class CustomFieldResolution:
    values: tuple[CustomFieldValue, ...] = ()
    dropped: tuple[CustomFieldUnmappable, ...] = ()


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return not value
    return False


def match_dropdown_option(options: Mapping[str, str], value: Any) -> int | None:
    """Return the option id whose label equals `value` ignoring case and outer whitespace."""
    wanted = str(value).strip().casefold()
    for option_id, label in options.items():
        if str(label).strip().casefold() == wanted:
            try:
                return int(option_id)
            except ValueError:
                return None
    return None


def map_custom_fields(
    form_data: Mapping[str, Any],
    mapping: Mapping[str, str],
    definitions: Sequence[ExternalCustomField],
    *,
    request_type_values: Mapping[str, str] | None = None,
) -> CustomFieldResolution:
    by_name: dict[str, ExternalCustomField] = {}
    for definition in definitions:
        by_name.setdefault(definition.name, definition)

    values: list[CustomFieldValue] = []
    dropped: list[CustomFieldUnmappable] = []
    translations = request_type_values or {}

    for form_field, external_field in mapping.items():
        value = form_data.get(form_field)
        if _is_empty(value):
            continue

        custom_field = by_name.get(external_field)
        if custom_field is None:
            log.warning(
                "custom_fields.field_not_found",
                field_name=external_field,
                form_field=form_field,
            )
            dropped.append(CustomFieldUnmappable(form_field, external_field, "missing_field", value))
            continue

        if form_field == REQUEST_TYPE_FIELD and isinstance(value, str) and value in translations:
            value = translations[value]

        if custom_field.is_dropdown and custom_field.options is not None:
            option_id = match_dropdown_option(custom_field.options, value)
            if option_id is None:
                log.warning(
                    "custom_fields.dropdown_option_not_found",
                    field=external_field,
                    value=value,
                    available_options=list(custom_field.options.values()),
                )
                dropped.append(CustomFieldUnmappable(form_field, external_field, "no_option", value))
                continue
            value = option_id

        values.append(CustomFieldValue(id=custom_field.id, value=value))

    return CustomFieldResolution(values=tuple(values), dropped=tuple(dropped))
