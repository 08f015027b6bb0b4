from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class Attachment:
    """An uploaded file already stored by the caller."""

    path: Path
    original_filename: str


@dataclass(frozen=True)
class FormSubmission:
    """One submitted form; `fields` keeps the order the browser sent them in."""

    request_type: str
    requester_name: str
    requester_email: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    def as_form_data(self) -> dict[str, Any]:
        """Flat field mapping as the ticket builder consumes it (requester and type keys included)."""
        data: dict[str, Any] = {
            "requester_name": self.requester_name,
            "requester_email": self.requester_email,
            "request_type": self.request_type,
        }
        for name, value in self.fields.items():
            if name in data:
                continue
            data[name] = value
        return data
