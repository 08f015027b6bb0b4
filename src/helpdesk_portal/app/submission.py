"""Submit a form: build the payload, attach uploads, create the conversation."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from time import perf_counter
from typing import TYPE_CHECKING, Protocol

import structlog

from helpdesk_portal.adapters.attachments import prepare_inline_attachment
from helpdesk_portal.domain.errors import TicketCreationAmbiguous, is_retryable
from helpdesk_portal.domain.payload import InlineAttachment, TicketPayload
from helpdesk_portal.observability.metrics import (
    conversations_created_total,
    submit_seconds,
    ticketing_errors_total,
)

if TYPE_CHECKING:
    from helpdesk_portal.adapters.freescout.models import ConversationCreated
    from helpdesk_portal.app.ticket_builder import TicketBuilder
    from helpdesk_portal.domain.submission import Attachment, FormSubmission

log = structlog.get_logger(__name__)


class ConversationSink(Protocol):
    def create_conversation(self, payload: TicketPayload) -> ConversationCreated: ...


@dataclass(frozen=True)
class SubmissionResult:
    ticket_id: int
    payload: TicketPayload


def _inline_attachments(
    attachments: Iterable[Attachment], *, max_bytes: int
) -> list[InlineAttachment]:
    prepared: list[InlineAttachment] = []
    for attachment in attachments:
        inline = prepare_inline_attachment(
            attachment.path, attachment.original_filename, max_bytes=max_bytes
        )
        if inline is not None:
            prepared.append(inline)
    return prepared


def submit_ticket(
    builder: TicketBuilder,
    client: ConversationSink,
    submission: FormSubmission,
    attachments: Iterable[Attachment] = (),
    *,
    max_attachment_bytes: int = 0,
) -> SubmissionResult:
    """
    Create one conversation for `submission` and return its id.

    Errors propagate unchanged; the caller decides what the user sees and marks its own
    submission record as failed.
    """
    started = perf_counter()
    with structlog.contextvars.bound_contextvars(request_type=submission.request_type):
        try:
            payload = builder.build_ticket_data(submission.as_form_data(), submission.request_type)
            payload = payload.with_attachments(
                _inline_attachments(attachments, max_bytes=max_attachment_bytes)
            )
            created = client.create_conversation(payload)
        except TicketCreationAmbiguous as exc:
            ticketing_errors_total.labels(kind="ambiguous").inc()
            log.error("submission.ticket_id_missing", response=exc.response)
            raise
        except Exception as exc:
            ticketing_errors_total.labels(kind=type(exc).__name__).inc()
            log.error(
                "submission.failed",
                error=str(exc),
                error_type=type(exc).__name__,
                retryable=is_retryable(exc),
            )
            raise
        finally:
            submit_seconds.observe(perf_counter() - started)

        conversations_created_total.inc()
        log.info("submission.created", ticket_id=created.id)
        return SubmissionResult(ticket_id=created.id, payload=payload)
