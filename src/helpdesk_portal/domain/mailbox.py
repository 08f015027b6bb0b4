from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

import structlog
from pydantic import ValidationError

from helpdesk_portal.adapters.freescout.errors import ClientError
from helpdesk_portal.domain.errors import MailboxUnresolvable

if TYPE_CHECKING:
    from helpdesk_portal.adapters.freescout.models import Mailbox

log = structlog.get_logger(__name__)


class MailboxSource(Protocol):
    def list_mailboxes(self) -> Sequence[Mailbox]: ...


class MailboxResolver:
    """
    Picks the mailbox new conversations are created in.

    A configured id is used as-is without any API call. Without one, the first mailbox the
    API lists (in API order) is used.
    """

    def __init__(self, source: MailboxSource, mailbox_id: int | None = None) -> None:
        self._source = source
        self._mailbox_id = mailbox_id

    @property
    def configured_mailbox_id(self) -> int | None:
        return self._mailbox_id

    def get_configured_mailbox_id(self) -> int:
        if self._mailbox_id is not None:
            log.debug("mailbox.configured", mailbox_id=self._mailbox_id)
            return self._mailbox_id

        log.warning("mailbox.not_configured_fallback_to_api")
        mailboxes = self._source.list_mailboxes()
        if not mailboxes:
            raise MailboxUnresolvable(
                "No mailbox configured and none discoverable: the helpdesk API lists no "
                "mailboxes. Set FREESCOUT_MAILBOX_ID."
            )

        first = mailboxes[0].id
        if first is None:
            raise MailboxUnresolvable("Could not determine mailbox id from helpdesk API response.")
        return int(first)

    def validate_mailbox_id(self) -> bool:
        """True iff the configured id is listed by the API. Never raises."""
        if self._mailbox_id is None:
            log.warning("mailbox.validate_not_configured")
            return False

        try:
            mailboxes = self._source.list_mailboxes()
        except (ClientError, ValidationError) as exc:
            log.error(
                "mailbox.validate_failed",
                mailbox_id=self._mailbox_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False

        available = [mailbox.id for mailbox in mailboxes if mailbox.id is not None]
        if self._mailbox_id in available:
            log.info("mailbox.validated", mailbox_id=self._mailbox_id)
            return True

        log.error(
            "mailbox.configured_id_not_found",
            configured_mailbox_id=self._mailbox_id,
            available_mailboxes=available,
        )
        return False
