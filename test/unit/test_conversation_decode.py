from __future__ import annotations

import pytest

from helpdesk_portal.adapters.freescout.models import decode_conversation_created
from helpdesk_portal.domain.errors import PermanentError, TicketCreationAmbiguous


def test_top_level_id() -> None:
    created = decode_conversation_created({"id": 42, "number": 7})
    assert created.id == 42
    assert created.shape == "top_level"
    assert created.raw == {"id": 42, "number": 7}


def test_embedded_id() -> None:
    created = decode_conversation_created({"_embedded": {"conversation": {"id": 43}}})
    assert created.id == 43
    assert created.shape == "embedded"


def test_top_level_id_is_checked_first() -> None:
    created = decode_conversation_created({"id": 1, "_embedded": {"conversation": {"id": 2}}})
    assert created.id == 1
    assert created.shape == "top_level"


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"success": True},
        {"_embedded": {}},
        {"_embedded": {"conversation": {}}},
        {"id": None},
        [],
        None,
        "created",
    ],
)
def test_unknown_shapes_are_ambiguous(payload: object) -> None:
    with pytest.raises(TicketCreationAmbiguous) as exc:
        decode_conversation_created(payload)

    assert isinstance(exc.value, PermanentError)
    assert exc.value.response == payload
