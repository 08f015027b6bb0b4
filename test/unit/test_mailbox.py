from __future__ import annotations

import pytest

from helpdesk_portal.adapters.freescout.errors import TicketingUnavailable
from helpdesk_portal.adapters.freescout.models import Mailbox
from helpdesk_portal.domain.errors import MailboxUnresolvable
from helpdesk_portal.domain.mailbox import MailboxResolver


class _Source:
    def __init__(self, mailboxes: list[Mailbox] | None = None, error: Exception | None = None):
        self.mailboxes = mailboxes or []
        self.error = error
        self.calls = 0

    def list_mailboxes(self) -> list[Mailbox]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.mailboxes


def test_configured_mailbox_id_makes_no_api_call() -> None:
    source = _Source()
    resolver = MailboxResolver(source, 5)
    assert resolver.get_configured_mailbox_id() == 5
    assert source.calls == 0


def test_unconfigured_uses_first_listed_mailbox() -> None:
    source = _Source([Mailbox(id=10, name="HR"), Mailbox(id=1, name="Support")])
    assert MailboxResolver(source).get_configured_mailbox_id() == 10


def test_unconfigured_and_no_mailboxes_is_unresolvable() -> None:
    with pytest.raises(MailboxUnresolvable):
        MailboxResolver(_Source([])).get_configured_mailbox_id()


def test_first_mailbox_without_id_is_unresolvable() -> None:
    with pytest.raises(MailboxUnresolvable):
        MailboxResolver(_Source([Mailbox(name="broken")])).get_configured_mailbox_id()


def test_validate_mailbox_id_true_when_listed() -> None:
    source = _Source([Mailbox(id=1), Mailbox(id=5), Mailbox(id=10)])
    assert MailboxResolver(source, 5).validate_mailbox_id() is True


def test_validate_mailbox_id_false_when_not_listed() -> None:
    source = _Source([Mailbox(id=1), Mailbox(id=10)])
    assert MailboxResolver(source, 999).validate_mailbox_id() is False


def test_validate_mailbox_id_false_when_not_configured() -> None:
    source = _Source([Mailbox(id=1)])
    assert MailboxResolver(source).validate_mailbox_id() is False
    assert source.calls == 0


def test_validate_mailbox_id_false_on_api_error() -> None:
    source = _Source(error=TicketingUnavailable("down"))
    assert MailboxResolver(source, 5).validate_mailbox_id() is False
