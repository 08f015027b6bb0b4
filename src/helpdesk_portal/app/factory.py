"""Construct the helpdesk client and ticket builder from Settings."""

from __future__ import annotations

import structlog

from helpdesk_portal.adapters.freescout.client import FreeScoutClient
from helpdesk_portal.app.ticket_builder import BuilderConfig, TicketBuilder
from helpdesk_portal.config.form_schema import FormSchema, load_form_schema
from helpdesk_portal.config.settings import Settings
from helpdesk_portal.domain.custom_fields import TTLCustomFieldCache

log = structlog.get_logger(__name__)


def build_client(settings: Settings) -> FreeScoutClient:
    return FreeScoutClient(
        base_url=str(settings.freescout.base_url),
        api_key=settings.freescout.api_key.get_secret_value(),
        timeout_seconds=settings.freescout.timeout_seconds,
        verify_tls=settings.freescout.verify_tls,
        trust_env=settings.hardening.transport.trust_env,
    )


def load_schema_if_present(settings: Settings) -> FormSchema | None:
    path = settings.form.schema_path
    if not path.is_file():
        log.warning("factory.form_schema_missing", path=str(path))
        return None
    return load_form_schema(path)


def build_ticket_builder(
    settings: Settings,
    client: FreeScoutClient,
    *,
    schema: FormSchema | None = None,
) -> TicketBuilder:
    if schema is None:
        schema = load_schema_if_present(settings)

    cache = None
    ttl = settings.custom_field_cache.ttl_seconds
    if ttl > 0:
        cache = TTLCustomFieldCache(client.list_mailbox_custom_fields, ttl_seconds=ttl)

    return TicketBuilder(
        client,
        BuilderConfig.from_settings(settings, schema),
        custom_field_cache=cache,
    )
