"""Run the portal's health and metrics service under uvicorn.

`helpdesk-portal-serve` is the console entry point; process managers that prefer to own the
uvicorn invocation can use `uvicorn --factory helpdesk_portal.runtime:build_app`.
"""
from __future__ import annotations

import argparse
import sys

import uvicorn
from fastapi import FastAPI

from helpdesk_portal.app.server import create_app
from helpdesk_portal.config.load import load_settings
from helpdesk_portal.config.settings import Settings
from helpdesk_portal.config.validate import ConfigValidationError
from helpdesk_portal.observability.logger import configure_from_settings


def _prepare(settings: Settings) -> FastAPI:
    configure_from_settings(settings.observability)
    return create_app(settings)


def build_app() -> FastAPI:
    return _prepare(load_settings())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="helpdesk-portal-serve",
        description="Serve /healthz, /readyz and /metrics for the helpdesk portal",
    )
    parser.add_argument("--config", default=None, help="YAML config file (default: CONFIG_PATH)")
    parser.add_argument("--host", default=None, help="Bind address (default: server.host)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: server.port)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(config_path=args.config)
    except ConfigValidationError as exc:
        print(exc, file=sys.stderr)
        return 2

    uvicorn.run(
        _prepare(settings),
        host=args.host or settings.server.host,
        port=args.port or settings.server.port,
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
