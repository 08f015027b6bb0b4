"""Inline (base64) attachments for conversation threads."""

from __future__ import annotations

import base64
import mimetypes
from pathlib import Path

import structlog

from helpdesk_portal.domain.payload import InlineAttachment

log = structlog.get_logger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


def prepare_inline_attachment(
    path: str | Path,
    original_name: str,
    *,
    max_bytes: int = 0,
) -> InlineAttachment | None:
    """
    Read `path` and encode it for a thread's `attachments` list.

    Returns None (and logs) when the file is missing, unreadable or larger than `max_bytes`
    (0 disables the limit); one bad upload must not block the ticket.
    """
    file_path = Path(path)
    try:
        content = file_path.read_bytes()
    except FileNotFoundError:
        log.error("attachments.file_not_found", file=str(file_path))
        return None
    except OSError as exc:
        log.error("attachments.read_failed", file=original_name, error=str(exc))
        return None

    if max_bytes and len(content) > max_bytes:
        log.warning(
            "attachments.too_large",
            file=original_name,
            size=len(content),
            max_bytes=max_bytes,
        )
        return None

    mime_type, _ = mimetypes.guess_type(original_name)
    return InlineAttachment(
        file_name=original_name,
        mime_type=mime_type or DEFAULT_MIME_TYPE,
        data=base64.b64encode(content).decode("ascii"),
    )
