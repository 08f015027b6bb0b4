from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal, NoReturn

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from helpdesk_portal.adapters.freescout.errors import (
    AuthError,
    ClientError,
    NotFoundError,
    RateLimitError,
    TicketingUnavailable,
)
from helpdesk_portal.adapters.freescout.models import (
    ConversationCreated,
    Customer,
    ExternalCustomField,
    Mailbox,
    decode_conversation_created,
)
from helpdesk_portal.domain.conversation_view import filter_for_customer, is_visible_to_customer
from helpdesk_portal.domain.payload import TicketPayload

log = structlog.get_logger(__name__)

API_KEY_HEADER = "X-FreeScout-API-Key"

_Method = Literal["GET", "POST"]

# Connect and pool waits are capped so an unreachable helpdesk fails fast.
_MAX_CONNECT_SECONDS = 5.0


def _timeout(seconds: float) -> httpx.Timeout:
    connect = min(_MAX_CONNECT_SECONDS, seconds)
    return httpx.Timeout(seconds, connect=connect, pool=connect)


class FreeScoutClient:
    """
    Blocking client for the FreeScout REST API.

    Calls are never retried: timeouts, transport errors and 5xx responses surface as
    TicketingUnavailable and the caller owns any retry policy.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 30.0,
        verify_tls: bool = True,
        trust_env: bool = False,
        http_client: httpx.Client | None = None,
    ) -> None:
        url = httpx.URL(base_url)
        if not url.scheme or not url.host:
            raise ValueError("base_url must include scheme and host, e.g. https://helpdesk.example/api")

        # Ensure a trailing slash to make httpx base_url joining unambiguous.
        base_path = url.path.rstrip("/") + "/"
        self._base_url = url.copy_with(path=base_path)

        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(
            base_url=self._base_url,
            headers={
                API_KEY_HEADER: api_key,
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            timeout=_timeout(timeout_seconds),
            verify=verify_tls,
            trust_env=trust_env,
            follow_redirects=False,
        )

    def close(self) -> None:
        if self._owns_http_client:
            self._http.close()

    def __enter__(self) -> FreeScoutClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: Any,
    ) -> None:
        self.close()

    # Customers

    def find_customer_by_email(self, email: str) -> Customer | None:
        resp = self._request_json("GET", "customers", params={"email": email})
        customers = _embedded_list(resp, "customers")
        if not customers:
            return None
        return Customer.model_validate(customers[0])

    def create_customer(self, first_name: str, last_name: str, email: str) -> Customer:
        resp = self._request_json(
            "POST",
            "customers",
            json={"firstName": first_name, "lastName": last_name, "email": email},
        )
        return Customer.model_validate(resp)

    # Mailboxes

    def list_mailboxes(self) -> list[Mailbox]:
        resp = self._request_json("GET", "mailboxes")
        return [Mailbox.model_validate(item) for item in _embedded_list(resp, "mailboxes")]

    def list_mailbox_custom_fields(self, mailbox_id: int) -> list[ExternalCustomField]:
        resp = self._request_json("GET", f"mailboxes/{mailbox_id}/custom_fields")
        items = _embedded_list(resp, "custom_fields")
        try:
            return TypeAdapter(list[ExternalCustomField]).validate_python(items)
        except ValidationError as exc:
            raise ClientError(
                f"Custom fields response format unexpected for mailbox {mailbox_id}: {exc!s}"
            ) from exc

    # Conversations

    def create_conversation(self, payload: TicketPayload) -> ConversationCreated:
        log.info(
            "freescout.create_conversation",
            mailbox_id=payload.mailbox_id,
            custom_field_count=len(payload.custom_fields),
            attachment_count=sum(len(t.attachments) for t in payload.threads),
        )
        resp = self._request_json("POST", "conversations", json=payload.to_wire())
        created = decode_conversation_created(resp)
        log.info("freescout.conversation_created", ticket_id=created.id, shape=created.shape)
        return created

    def get_conversation(self, conversation_id: int) -> dict[str, Any]:
        resp = self._request_json(
            "GET", f"conversations/{conversation_id}", params={"embed": "threads"}
        )
        if not isinstance(resp, Mapping):
            raise ClientError(f"Conversation {conversation_id} response is not an object")
        return filter_for_customer(resp)

    def list_customer_conversations(self, email: str) -> list[dict[str, Any]]:
        resp = self._request_json(
            "GET",
            "conversations",
            params={
                "customerEmail": email,
                "sortField": "updatedAt",
                "sortOrder": "desc",
                "pageSize": "100",
            },
        )
        return [
            filter_for_customer(item)
            for item in _embedded_list(resp, "conversations")
            if isinstance(item, Mapping) and is_visible_to_customer(item)
        ]

    def add_thread(self, conversation_id: int, thread: Mapping[str, Any]) -> dict[str, Any]:
        log.info(
            "freescout.add_thread",
            conversation_id=conversation_id,
            thread_type=thread.get("type", "unknown"),
            has_attachments=bool(thread.get("attachments")),
        )
        resp = self._request_json("POST", f"conversations/{conversation_id}/threads", json=thread)
        return resp if isinstance(resp, dict) else {}

    def test_connection(self) -> bool:
        """Return True when `GET mailboxes` answers 200; never raises."""
        try:
            response = self._request("GET", "mailboxes")
        except ClientError as exc:
            log.error("freescout.connection_failed", error=str(exc), error_type=type(exc).__name__)
            return False
        log.info("freescout.connection_ok", status_code=response.status_code)
        return response.status_code == 200

    def _request_json(
        self,
        method: _Method,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any | None = None,
    ) -> Any:
        response = self._request(method, path, params=params, json=json)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise ClientError(
                "Invalid JSON from helpdesk API "
                f"(status={response.status_code}) at {response.request.url!s}"
            ) from exc

    def _request(
        self,
        method: _Method,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any | None = None,
    ) -> httpx.Response:
        try:
            response = self._http.request(method, path, params=params, json=json)
        except httpx.TimeoutException as exc:
            raise TicketingUnavailable(f"Helpdesk API timeout at {path}") from exc
        except httpx.RequestError as exc:
            raise TicketingUnavailable(f"Network error talking to helpdesk API at {path}") from exc

        if 200 <= response.status_code < 300:
            return response

        self._raise_for_status(response)

    def _raise_for_status(self, response: httpx.Response) -> NoReturn:
        status = response.status_code
        url = str(response.request.url)

        if status in (401, 403):
            raise AuthError(f"Helpdesk API auth failed (status={status}) at {url}")
        if status == 404:
            raise NotFoundError(f"Helpdesk API resource not found (status=404) at {url}")
        if status == 429:
            raise RateLimitError(f"Helpdesk API rate limit (status=429) at {url}")
        if status >= 500:
            raise TicketingUnavailable(f"Helpdesk API server error (status={status}) at {url}")
        if status >= 400:
            raise ClientError(f"Helpdesk API client error (status={status}) at {url}")

        raise ClientError(f"Unexpected helpdesk API HTTP status={status} at {url}")


def _embedded_list(resp: Any, key: str) -> list[Any]:
    """Return `resp["_embedded"][key]`, or [] when the envelope is missing."""
    if not isinstance(resp, Mapping):
        return []
    embedded = resp.get("_embedded")
    if not isinstance(embedded, Mapping):
        return []
    items = embedded.get(key)
    return list(items) if isinstance(items, list) else []
