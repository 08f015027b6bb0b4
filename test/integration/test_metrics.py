from __future__ import annotations

from fastapi.testclient import TestClient

from helpdesk_portal.adapters.freescout.models import Mailbox
from helpdesk_portal.app.server import create_app
from helpdesk_portal.app.submission import submit_ticket
from helpdesk_portal.app.ticket_builder import BuilderConfig, TicketBuilder
from helpdesk_portal.domain.submission import FormSubmission
from test.support.fake_helpdesk import FakeHelpdesk
from test.support.settings_factory import make_settings


def _builder(helpdesk: FakeHelpdesk) -> TicketBuilder:
    return TicketBuilder(helpdesk, BuilderConfig.from_settings(make_settings(mailbox_id=1)))


def test_metrics_endpoint_exposes_ticket_counters() -> None:
    helpdesk = FakeHelpdesk(mailboxes=[Mailbox(id=1)])
    builder = _builder(helpdesk)
    submit_ticket(
        builder,
        helpdesk,
        FormSubmission(
            request_type="problem",
            requester_name="Jane Doe",
            requester_email="jane@example.com",
            fields={"device_type": "Printer"},
        ),
    )

    settings = make_settings(overrides={"observability": {"metrics_enabled": True}})
    client = TestClient(create_app(settings, ticket_builder=builder))

    response = client.get("/metrics")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    text = response.text
    assert 'tickets_built_total{request_type="problem"}' in text
    assert "conversations_created_total" in text
    assert "submit_seconds_count" in text


def test_metrics_endpoint_disabled_by_default() -> None:
    helpdesk = FakeHelpdesk(mailboxes=[Mailbox(id=1)])
    client = TestClient(create_app(make_settings(), ticket_builder=_builder(helpdesk)))

    assert client.get("/metrics").status_code == 404
