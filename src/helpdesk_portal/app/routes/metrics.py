from __future__ import annotations

from fastapi import APIRouter
from starlette.responses import Response

from helpdesk_portal.observability.metrics import render_latest

router = APIRouter()


@router.get("/metrics")
def metrics() -> Response:
    payload, content_type = render_latest()
    return Response(content=payload, headers={"Content-Type": content_type})
