from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from helpdesk_portal.domain.errors import TicketCreationAmbiguous


class _FreeScoutModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Customer(_FreeScoutModel):
    id: int
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    email: str | None = None


class Mailbox(_FreeScoutModel):
    id: int | None = None
    name: str | None = None
    email: str | None = None


class ExternalCustomField(_FreeScoutModel):
    id: int
    name: str
    type: str = ""
    # None = the API sent no options at all; {} = a dropdown with no choices.
    options: dict[str, str] | None = None

    @field_validator("options", mode="before")
    @classmethod
    def _normalize_options(cls, value: Any) -> Any:
        # FreeScout sends {"1": "Low", ...}; some versions send a list of objects.
        if value is None:
            return None
        if isinstance(value, list):
            normalized: dict[str, str] = {}
            for item in value:
                if not isinstance(item, dict) or item.get("id") is None:
                    continue
                label = item.get("value", item.get("label", item.get("name", "")))
                normalized[str(item["id"])] = "" if label is None else str(label)
            return normalized
        if isinstance(value, dict):
            return {str(k): "" if v is None else str(v) for k, v in value.items()}
        return value

    @property
    def is_dropdown(self) -> bool:
        return self.type.strip().lower() == "dropdown"


ResponseShape = Literal["top_level", "embedded"]


class ConversationCreated(_FreeScoutModel):
    """Decoded `POST conversations` response."""

    id: int
    shape: ResponseShape
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)


class _TopLevelIdResponse(_FreeScoutModel):
    id: int


class _EmbeddedConversation(_FreeScoutModel):
    conversation: _TopLevelIdResponse


class _EmbeddedIdResponse(_FreeScoutModel):
    embedded: _EmbeddedConversation = Field(alias="_embedded")


def decode_conversation_created(payload: Any) -> ConversationCreated:
    """
    Decode the conversation id from one of the two known response shapes.

    - `{"id": 42, ...}`
    - `{"_embedded": {"conversation": {"id": 42, ...}}}`

    The top-level shape is checked first. Anything else raises TicketCreationAmbiguous:
    the conversation may exist upstream, so the caller must not report success.
    """
    if isinstance(payload, dict):
        try:
            top = _TopLevelIdResponse.model_validate(payload)
        except ValidationError:
            pass
        else:
            return ConversationCreated(id=top.id, shape="top_level", raw=payload)

        try:
            nested = _EmbeddedIdResponse.model_validate(payload)
        except ValidationError:
            pass
        else:
            return ConversationCreated(
                id=nested.embedded.conversation.id, shape="embedded", raw=payload
            )

    raise TicketCreationAmbiguous(
        "Conversation created but no id found in response", response=payload
    )
