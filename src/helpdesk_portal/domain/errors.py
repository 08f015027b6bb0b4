from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from helpdesk_portal.adapters.freescout.errors import RateLimitError, TicketingUnavailable


class TransientError(Exception):
    """An error that is likely to succeed when retried (e.g. network issues)."""


class PermanentError(Exception):
    """An error that should not be retried automatically."""


class MailboxUnresolvable(PermanentError):
    """No mailbox id is configured and none could be discovered via the API."""


class TicketCreationAmbiguous(PermanentError):
    """The conversation was (probably) created but its id is not in the response."""

    def __init__(self, message: str, *, response: Any = None) -> None:
        super().__init__(message)
        self.response = response


class InvalidSubmission(ValueError):
    """The form submission lacks data the ticket cannot be built without."""


@dataclass(frozen=True)
class CustomFieldUnmappable:
    """A form value that was dropped from `customFields` (recorded, never raised)."""

    form_field: str
    external_field: str
    reason: Literal["missing_field", "no_option"]
    value: Any = None


def is_retryable(exc: BaseException) -> bool:
    """Whether the caller may retry the submission that raised `exc`."""
    return isinstance(exc, (TransientError, TicketingUnavailable, RateLimitError))


__all__ = [
    "CustomFieldUnmappable",
    "InvalidSubmission",
    "MailboxUnresolvable",
    "PermanentError",
    "TicketCreationAmbiguous",
    "TicketingUnavailable",
    "TransientError",
    "is_retryable",
]
