from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class _PayloadModel(BaseModel):
    # Payloads are built once per submission and handed to the client verbatim.
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)


class PayloadCustomer(_PayloadModel):
    email: str
    # Conversation payloads use snake_case here, unlike `POST customers`.
    first_name: str
    last_name: str = ""


class InlineAttachment(_PayloadModel):
    file_name: str = Field(alias="fileName")
    mime_type: str = Field(alias="mimeType")
    data: str


class Thread(_PayloadModel):
    type: Literal["customer"] = "customer"
    customer: PayloadCustomer
    text: str
    attachments: tuple[InlineAttachment, ...] = ()


class CustomFieldValue(_PayloadModel):
    id: int
    value: Any


class TicketPayload(_PayloadModel):
    subject: str
    mailbox_id: int = Field(alias="mailboxId")
    customer: PayloadCustomer
    type: Literal["email"] = "email"
    status: Literal["active"] = "active"
    threads: tuple[Thread, ...]
    tags: tuple[str, ...] = ()
    custom_fields: tuple[CustomFieldValue, ...] = Field(default=(), alias="customFields")

    def with_attachments(self, attachments: list[InlineAttachment]) -> TicketPayload:
        """Return a copy whose first (customer) thread carries `attachments`."""
        if not attachments or not self.threads:
            return self
        first = self.threads[0].model_copy(update={"attachments": tuple(attachments)})
        return self.model_copy(update={"threads": (first, *self.threads[1:])})

    def to_wire(self) -> dict[str, Any]:
        """JSON body for `POST conversations`; `customFields` is omitted when empty."""
        data = self.model_dump(mode="json", by_alias=True)
        if not data.get("customFields"):
            data.pop("customFields", None)
        return data
