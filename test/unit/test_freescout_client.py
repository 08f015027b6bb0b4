from __future__ import annotations

import json

import httpx
import pytest
import respx

from helpdesk_portal.adapters.freescout.client import API_KEY_HEADER, FreeScoutClient
from helpdesk_portal.adapters.freescout.errors import (
    AuthError,
    ClientError,
    NotFoundError,
    RateLimitError,
    TicketingUnavailable,
)
from helpdesk_portal.domain.errors import TicketCreationAmbiguous
from helpdesk_portal.domain.mailbox import MailboxResolver
from helpdesk_portal.domain.payload import PayloadCustomer, Thread, TicketPayload

BASE = "https://helpdesk.example/api"


def _client() -> FreeScoutClient:
    return FreeScoutClient(base_url=BASE, api_key="test-key")


def _payload() -> TicketPayload:
    customer = PayloadCustomer(email="jane@example.com", first_name="Jane", last_name="Doe")
    return TicketPayload(
        subject="Printer broken",
        mailbox_id=3,
        customer=customer,
        threads=(Thread(customer=customer, text="<p>help</p>\n"),),
        tags=("technical-issue",),
    )


def test_rejects_base_url_without_scheme() -> None:
    with pytest.raises(ValueError):
        FreeScoutClient(base_url="helpdesk.example", api_key="k")


def test_find_customer_by_email_sends_api_key_header() -> None:
    with respx.mock:
        route = respx.get(f"{BASE}/customers", params={"email": "jane@example.com"}).mock(
            return_value=httpx.Response(
                200,
                json={
                    "_embedded": {
                        "customers": [
                            {"id": 12, "firstName": "Jane", "lastName": "Doe", "extra": 1}
                        ]
                    }
                },
            )
        )
        with _client() as client:
            customer = client.find_customer_by_email("jane@example.com")

    assert customer is not None
    assert customer.id == 12
    assert customer.first_name == "Jane"
    request = route.calls.last.request
    assert request.headers[API_KEY_HEADER] == "test-key"
    assert request.headers["Accept"] == "application/json"


def test_find_customer_by_email_returns_none_when_not_found() -> None:
    with respx.mock:
        respx.get(f"{BASE}/customers").mock(
            return_value=httpx.Response(200, json={"_embedded": {"customers": []}})
        )
        with _client() as client:
            assert client.find_customer_by_email("nobody@example.com") is None


def test_create_customer_posts_camel_case_names() -> None:
    with respx.mock:
        route = respx.post(f"{BASE}/customers").mock(
            return_value=httpx.Response(
                201, json={"id": 5, "firstName": "Jane", "lastName": "", "email": "j@example.com"}
            )
        )
        with _client() as client:
            customer = client.create_customer("Jane", "", "j@example.com")

    assert customer.id == 5
    assert json.loads(route.calls.last.request.content) == {
        "firstName": "Jane",
        "lastName": "",
        "email": "j@example.com",
    }


def test_list_mailboxes_keeps_api_order() -> None:
    with respx.mock:
        respx.get(f"{BASE}/mailboxes").mock(
            return_value=httpx.Response(
                200,
                json={"_embedded": {"mailboxes": [{"id": 10, "name": "HR"}, {"id": 1}]}},
            )
        )
        with _client() as client:
            mailboxes = client.list_mailboxes()

    assert [m.id for m in mailboxes] == [10, 1]


def test_list_mailbox_custom_fields_normalizes_options() -> None:
    with respx.mock:
        respx.get(f"{BASE}/mailboxes/3/custom_fields").mock(
            return_value=httpx.Response(
                200,
                json={
                    "_embedded": {
                        "custom_fields": [
                            {
                                "id": 7,
                                "name": "Priority",
                                "type": "dropdown",
                                "options": {"1": "Low", "2": "High"},
                            },
                            {
                                "id": 8,
                                "name": "Request Type",
                                "type": "dropdown",
                                "options": [{"id": 4, "value": "Problem"}],
                            },
                            {"id": 9, "name": "Department", "type": "text", "options": None},
                        ]
                    }
                },
            )
        )
        with _client() as client:
            fields = client.list_mailbox_custom_fields(3)

    assert [f.name for f in fields] == ["Priority", "Request Type", "Department"]
    assert fields[0].options == {"1": "Low", "2": "High"}
    assert fields[1].options == {"4": "Problem"}
    assert fields[2].options is None
    assert fields[0].is_dropdown and not fields[2].is_dropdown


def test_list_mailbox_custom_fields_rejects_malformed_items() -> None:
    with respx.mock:
        respx.get(f"{BASE}/mailboxes/3/custom_fields").mock(
            return_value=httpx.Response(
                200, json={"_embedded": {"custom_fields": [{"name": "no id"}]}}
            )
        )
        with _client() as client, pytest.raises(ClientError):
            client.list_mailbox_custom_fields(3)


def test_create_conversation_posts_wire_payload() -> None:
    with respx.mock:
        route = respx.post(f"{BASE}/conversations").mock(
            return_value=httpx.Response(201, json={"id": 4242, "number": 17})
        )
        with _client() as client:
            created = client.create_conversation(_payload())

    assert created.id == 4242
    assert created.shape == "top_level"
    body = json.loads(route.calls.last.request.content)
    assert body["mailboxId"] == 3
    assert body["type"] == "email"
    assert body["status"] == "active"
    assert body["customer"] == {
        "email": "jane@example.com",
        "first_name": "Jane",
        "last_name": "Doe",
    }
    assert body["threads"][0]["type"] == "customer"
    assert body["tags"] == ["technical-issue"]
    assert "customFields" not in body


def test_create_conversation_decodes_embedded_id() -> None:
    with respx.mock:
        respx.post(f"{BASE}/conversations").mock(
            return_value=httpx.Response(201, json={"_embedded": {"conversation": {"id": 99}}})
        )
        with _client() as client:
            created = client.create_conversation(_payload())

    assert created.id == 99
    assert created.shape == "embedded"


def test_create_conversation_without_id_is_ambiguous() -> None:
    with respx.mock:
        respx.post(f"{BASE}/conversations").mock(
            return_value=httpx.Response(201, json={"status": "ok"})
        )
        with _client() as client, pytest.raises(TicketCreationAmbiguous) as exc:
            client.create_conversation(_payload())

    assert exc.value.response == {"status": "ok"}


@pytest.mark.parametrize(
    ("status", "error"),
    [
        (401, AuthError),
        (403, AuthError),
        (404, NotFoundError),
        (422, ClientError),
        (429, RateLimitError),
        (500, TicketingUnavailable),
        (503, TicketingUnavailable),
    ],
)
def test_http_errors_map_to_client_errors(status: int, error: type[Exception]) -> None:
    with respx.mock:
        respx.get(f"{BASE}/mailboxes").mock(return_value=httpx.Response(status))
        with _client() as client, pytest.raises(error):
            client.list_mailboxes()


def test_timeout_is_ticketing_unavailable_and_not_retried() -> None:
    with respx.mock:
        route = respx.post(f"{BASE}/conversations").mock(
            side_effect=httpx.ReadTimeout("timed out")
        )
        with _client() as client, pytest.raises(TicketingUnavailable):
            client.create_conversation(_payload())

    assert route.call_count == 1


def test_invalid_json_is_client_error() -> None:
    with respx.mock:
        respx.get(f"{BASE}/mailboxes").mock(
            return_value=httpx.Response(200, content=b"<html>oops</html>")
        )
        with _client() as client, pytest.raises(ClientError) as exc:
            client.list_mailboxes()

    assert not isinstance(exc.value, TicketingUnavailable)


def test_get_conversation_filters_internal_data() -> None:
    with respx.mock:
        respx.get(f"{BASE}/conversations/5", params={"embed": "threads"}).mock(
            return_value=httpx.Response(
                200,
                json={
                    "id": 5,
                    "subject": "Printer",
                    "folderId": 2,
                    "customer": {"id": 1, "firstName": "Jane", "email": "j@example.com"},
                    "_embedded": {
                        "threads": [
                            {"id": 1, "type": "customer", "body": "hi", "state": "published"},
                            {"id": 2, "type": "note", "body": "internal"},
                            {
                                "id": 3,
                                "type": "message",
                                "body": "reply",
                                "createdBy": {"id": 9, "firstName": "Agent", "email": "a@x"},
                            },
                        ]
                    },
                },
            )
        )
        with _client() as client:
            conversation = client.get_conversation(5)

    assert "folderId" not in conversation
    assert conversation["customer"] == {"firstName": "Jane", "lastName": "", "email": "j@example.com"}
    threads = conversation["_embedded"]["threads"]
    assert [t["id"] for t in threads] == [1, 3]
    assert "state" not in threads[0]
    assert threads[1]["createdBy"] == {"firstName": "Agent", "lastName": ""}


def test_list_customer_conversations_hides_spam_and_deleted() -> None:
    with respx.mock:
        route = respx.get(f"{BASE}/conversations").mock(
            return_value=httpx.Response(
                200,
                json={
                    "_embedded": {
                        "conversations": [
                            {"id": 1, "state": 2},
                            {"id": 2, "state": 4},
                            {"id": 3, "state": 5},
                            {"id": 4, "state": 1},
                        ]
                    }
                },
            )
        )
        with _client() as client:
            conversations = client.list_customer_conversations("jane@example.com")

    assert [c["id"] for c in conversations] == [1, 4]
    params = route.calls.last.request.url.params
    assert params["customerEmail"] == "jane@example.com"
    assert params["sortField"] == "updatedAt"
    assert params["sortOrder"] == "desc"


def test_add_thread_posts_to_conversation() -> None:
    with respx.mock:
        route = respx.post(f"{BASE}/conversations/5/threads").mock(
            return_value=httpx.Response(201, json={"id": 77})
        )
        with _client() as client:
            result = client.add_thread(5, {"type": "customer", "text": "more info"})

    assert result == {"id": 77}
    assert json.loads(route.calls.last.request.content)["text"] == "more info"


def test_test_connection_never_raises() -> None:
    with respx.mock:
        respx.get(f"{BASE}/mailboxes").mock(side_effect=httpx.ConnectError("refused"))
        with _client() as client:
            assert client.test_connection() is False

    with respx.mock:
        respx.get(f"{BASE}/mailboxes").mock(
            return_value=httpx.Response(200, json={"_embedded": {"mailboxes": []}})
        )
        with _client() as client:
            assert client.test_connection() is True


def test_decoding_error_is_ticketing_unavailable() -> None:
    with respx.mock:
        respx.get(f"{BASE}/mailboxes").mock(side_effect=httpx.DecodingError("bad gzip"))
        with _client() as client:
            with pytest.raises(TicketingUnavailable):
                client.list_mailboxes()
            assert MailboxResolver(client, 5).validate_mailbox_id() is False


@pytest.mark.parametrize(("seconds", "connect"), [(30.0, 5.0), (2.0, 2.0)])
def test_connect_timeout_is_capped(seconds: float, connect: float) -> None:
    with FreeScoutClient(base_url=BASE, api_key="k", timeout_seconds=seconds) as client:
        timeout = client._http.timeout
    assert timeout.read == seconds
    assert timeout.connect == connect
    assert timeout.pool == connect
