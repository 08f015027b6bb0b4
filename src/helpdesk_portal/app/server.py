from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from starlette.concurrency import run_in_threadpool
from starlette.responses import JSONResponse

from helpdesk_portal._version import __version__
from helpdesk_portal.app.factory import build_client, build_ticket_builder
from helpdesk_portal.app.routes.healthz import router as healthz_router
from helpdesk_portal.app.ticket_builder import TicketBuilder
from helpdesk_portal.config.settings import Settings

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = getattr(app.state, "settings", None)
    client = None
    if settings is not None and getattr(app.state, "ticket_builder", None) is None:
        client = build_client(settings)
        app.state.ticket_builder = build_ticket_builder(settings, client)
        if not await run_in_threadpool(app.state.ticket_builder.validate_mailbox_id):
            log.warning("server.mailbox_not_validated")
    yield
    if client is not None:
        client.close()


async def _global_exception_handler(request, exc):
    log.error("server.unhandled_exception", error_type=type(exc).__name__, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal server error occurred.", "code": "internal_error"},
    )


def _wire_app(
    app: FastAPI, *, settings: Settings | None, ticket_builder: TicketBuilder | None
) -> None:
    app.state.settings = settings
    app.state.ticket_builder = ticket_builder

    app.add_exception_handler(Exception, _global_exception_handler)

    app.include_router(healthz_router)
    if settings is not None and settings.observability.metrics_enabled:
        from helpdesk_portal.app.routes.metrics import router as metrics_router

        app.include_router(metrics_router)


def create_app(
    settings: Settings | None = None,
    *,
    ticket_builder: TicketBuilder | None = None,
) -> FastAPI:
    app = FastAPI(title="helpdesk-portal", version=__version__, lifespan=lifespan)
    _wire_app(app, settings=settings, ticket_builder=ticket_builder)
    return app
