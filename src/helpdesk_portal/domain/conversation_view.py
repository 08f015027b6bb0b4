"""Customer-facing projection of helpdesk conversations.

Agents' internal notes, assignee details and other administrative data must never reach
the portal user, so conversations are reduced to an allowlist before they leave the client.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final

_CONVERSATION_FIELDS: Final[tuple[str, ...]] = (
    "id",
    "number",
    "subject",
    "status",
    "state",
    "createdAt",
    "updatedAt",
    "customer",
    "customFields",
    "assignee",
    "_embedded",
)

_THREAD_FIELDS: Final[tuple[str, ...]] = (
    "id",
    "type",
    "body",
    "createdAt",
    "createdBy",
    "attachments",
)

_VISIBLE_THREAD_TYPES: Final[frozenset[str]] = frozenset({"customer", "message"})

# FreeScout conversation states hidden from customers.
STATE_SPAM: Final[int] = 4
STATE_DELETED: Final[int] = 5


def _pick(data: Mapping[str, Any], keys: tuple[str, ...]) -> dict[str, Any]:
    return {key: data[key] for key in keys if key in data}


def _filter_thread(thread: Mapping[str, Any]) -> dict[str, Any]:
    out = _pick(thread, _THREAD_FIELDS)
    created_by = out.get("createdBy")
    if isinstance(created_by, Mapping):
        out["createdBy"] = {
            "firstName": created_by.get("firstName") or "",
            "lastName": created_by.get("lastName") or "",
        }
    attachments = out.get("attachments")
    if isinstance(attachments, list):
        out["attachments"] = [
            {
                "fileName": item.get("fileName") or "",
                "mimeType": item.get("mimeType") or "",
                "size": item.get("size") or 0,
            }
            for item in attachments
            if isinstance(item, Mapping)
        ]
    return out


def filter_for_customer(conversation: Mapping[str, Any]) -> dict[str, Any]:
    filtered = _pick(conversation, _CONVERSATION_FIELDS)

    embedded = filtered.get("_embedded")
    if isinstance(embedded, Mapping) and isinstance(embedded.get("threads"), list):
        threads = [
            _filter_thread(thread)
            for thread in embedded["threads"]
            if isinstance(thread, Mapping) and thread.get("type") in _VISIBLE_THREAD_TYPES
        ]
        filtered["_embedded"] = {**embedded, "threads": threads}

    customer = filtered.get("customer")
    if isinstance(customer, Mapping):
        filtered["customer"] = {
            "firstName": customer.get("firstName") or "",
            "lastName": customer.get("lastName") or "",
            "email": customer.get("email") or "",
        }

    custom_fields = filtered.get("customFields")
    if isinstance(custom_fields, list):
        filtered["customFields"] = [
            {"name": field.get("name") or "", "value": field.get("value") or ""}
            for field in custom_fields
            if isinstance(field, Mapping)
        ]

    return filtered


def is_visible_to_customer(conversation: Mapping[str, Any]) -> bool:
    return conversation.get("state") not in (STATE_SPAM, STATE_DELETED)
