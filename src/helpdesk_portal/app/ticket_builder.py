"""Form submission -> FreeScout conversation payload.

The builder is the only place that knows how a loosely typed form maps onto the helpdesk
schema. It calls the API for customer find-or-create, mailbox discovery (only when no id
is configured) and custom field definitions; everything else is pure resolution.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from helpdesk_portal.domain.custom_fields import (
    CustomFieldCache,
    PerCallCustomFieldCache,
    map_custom_fields,
)
from helpdesk_portal.domain.errors import InvalidSubmission
from helpdesk_portal.domain.mailbox import MailboxResolver
from helpdesk_portal.domain.payload import PayloadCustomer, Thread, TicketPayload
from helpdesk_portal.domain.resolver import (
    field_inclusion_map,
    resolve_body,
    resolve_custom_field_mapping,
    resolve_subject,
    resolve_tags,
    split_requester_name,
)
from helpdesk_portal.observability.metrics import custom_fields_dropped_total, tickets_built_total

if TYPE_CHECKING:
    from helpdesk_portal.adapters.freescout.models import Customer, ExternalCustomField, Mailbox
    from helpdesk_portal.config.form_schema import FieldDefinition, FormSchema
    from helpdesk_portal.config.settings import Settings

log = structlog.get_logger(__name__)


class TicketingClient(Protocol):
    def find_customer_by_email(self, email: str) -> Customer | None: ...

    def create_customer(self, first_name: str, last_name: str, email: str) -> Customer: ...

    def list_mailbox_custom_fields(self, mailbox_id: int) -> list[ExternalCustomField]: ...

    def list_mailboxes(self) -> list[Mailbox]: ...


@dataclass(frozen=True)
class BuilderConfig:
    """Everything the builder needs from configuration, resolved once at startup."""

    static_custom_fields: Mapping[str, str] = field(default_factory=dict)
    request_type_values: Mapping[str, str] = field(default_factory=dict)
    static_tags: Mapping[str, Sequence[str]] = field(default_factory=dict)
    subject_templates: Mapping[str, str] = field(default_factory=dict)
    exclude_from_body: Sequence[str] = ()
    field_definitions: Sequence[FieldDefinition] = ()
    schema_tags: Mapping[str, Sequence[str]] = field(default_factory=dict)
    mailbox_id: int | None = None

    @classmethod
    def from_settings(cls, settings: Settings, schema: FormSchema | None = None) -> BuilderConfig:
        mappings = settings.mappings
        return cls(
            static_custom_fields=dict(mappings.custom_fields),
            request_type_values=dict(mappings.request_types),
            static_tags={key: tuple(tags) for key, tags in mappings.tags.items()},
            subject_templates=dict(mappings.subject_templates),
            exclude_from_body=tuple(mappings.exclude_from_body),
            field_definitions=tuple(schema.all_field_definitions()) if schema else (),
            schema_tags=schema.tags_by_request_type() if schema else {},
            mailbox_id=settings.freescout.mailbox_id,
        )

    def custom_field_mapping(self) -> dict[str, str]:
        return resolve_custom_field_mapping(self.static_custom_fields, self.field_definitions)


class TicketBuilder:
    def __init__(
        self,
        client: TicketingClient,
        config: BuilderConfig,
        *,
        custom_field_cache: CustomFieldCache | None = None,
    ) -> None:
        self._client = client
        self._config = config
        # None = fresh definitions for every ticket.
        self._shared_cache = custom_field_cache
        self._mailboxes = MailboxResolver(client, config.mailbox_id)
        self._mapping = config.custom_field_mapping()
        self._inclusion = field_inclusion_map(config.field_definitions)

    @property
    def custom_field_mapping(self) -> dict[str, str]:
        return dict(self._mapping)

    def get_configured_mailbox_id(self) -> int:
        return self._mailboxes.get_configured_mailbox_id()

    def validate_mailbox_id(self) -> bool:
        return self._mailboxes.validate_mailbox_id()

    def build_ticket_data(self, form_data: Mapping[str, Any], request_type: str) -> TicketPayload:
        requester_email = str(form_data.get("requester_email") or "").strip()
        requester_name = str(form_data.get("requester_name") or "").strip()
        if not requester_email:
            raise InvalidSubmission("requester_email is required")
        if not requester_name:
            raise InvalidSubmission("requester_name is required")

        with structlog.contextvars.bound_contextvars(request_type=request_type):
            first_name, last_name = split_requester_name(requester_name)

            self._ensure_customer(requester_email, first_name, last_name)
            mailbox_id = self._mailboxes.get_configured_mailbox_id()

            subject = resolve_subject(request_type, form_data, self._config.subject_templates)
            body = resolve_body(form_data, self._config.exclude_from_body, self._inclusion)

            cache = self._shared_cache or PerCallCustomFieldCache(
                self._client.list_mailbox_custom_fields
            )
            resolution = map_custom_fields(
                form_data,
                self._mapping,
                cache.get(mailbox_id),
                request_type_values=self._config.request_type_values,
            )
            for dropped in resolution.dropped:
                custom_fields_dropped_total.labels(reason=dropped.reason).inc()

            tags = resolve_tags(
                request_type,
                self._config.schema_tags.get(request_type, ()),
                self._config.static_tags,
            )

            customer = PayloadCustomer(
                email=requester_email, first_name=first_name, last_name=last_name
            )
            payload = TicketPayload(
                subject=subject,
                mailbox_id=mailbox_id,
                customer=customer,
                threads=(Thread(customer=customer, text=body),),
                tags=tuple(tags),
                custom_fields=resolution.values,
            )

            tickets_built_total.labels(request_type=request_type).inc()
            log.info(
                "ticket_builder.built",
                mailbox_id=mailbox_id,
                custom_field_count=len(resolution.values),
                dropped_custom_field_count=len(resolution.dropped),
                tag_count=len(tags),
            )
            return payload

    def _ensure_customer(self, email: str, first_name: str, last_name: str) -> Customer:
        # Not atomic upstream: two first-time submissions for one email can both create.
        customer = self._client.find_customer_by_email(email)
        if customer is not None:
            return customer
        log.info("ticket_builder.create_customer")
        return self._client.create_customer(first_name, last_name, email)
