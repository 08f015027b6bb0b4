from __future__ import annotations

from datetime import UTC, datetime
from importlib import metadata
from typing import Any

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

router = APIRouter()


def _service_version() -> str:
    try:
        return metadata.version("helpdesk-portal")
    except metadata.PackageNotFoundError:
        return "0.0.0"


@router.get("/healthz")
def healthz(request: Request) -> dict[str, str]:
    out: dict[str, str] = {"status": "ok", "time": datetime.now(UTC).isoformat()}
    settings = getattr(request.app.state, "settings", None)
    if settings is None or not getattr(settings.observability, "healthz_omit_version", False):
        out["service"] = "helpdesk-portal"
        out["version"] = _service_version()
    return out


def _not_ready(code: str, detail: str, *, hint: str | None = None) -> JSONResponse:
    content = {"status": "not_ready", "code": code, "detail": detail}
    if hint is not None:
        content["hint"] = hint
    return JSONResponse(status_code=503, content=content)


@router.get("/readyz", response_model=None)
def readyz(request: Request) -> dict[str, Any] | JSONResponse:
    """Ready when the configured mailbox exists in the helpdesk."""
    builder = getattr(request.app.state, "ticket_builder", None)
    if builder is None:
        return _not_ready("not_configured", "Ticket builder is not configured.")
    if not builder.validate_mailbox_id():
        return _not_ready(
            "mailbox_invalid",
            "Configured mailbox is missing or not listed by the helpdesk.",
            hint="Set FREESCOUT_MAILBOX_ID to an existing mailbox id.",
        )
    return {"status": "ready"}
