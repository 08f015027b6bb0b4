"""CLI commands for helpdesk-portal.

This module provides command-line utilities for:
- Validating configuration
- Dumping configuration (with secrets redacted)
- Showing deprecated environment variables
- Checking the configured mailbox against the helpdesk
- Listing the custom fields of a mailbox
"""
from __future__ import annotations

import argparse
import json
import os
import sys

import structlog

from helpdesk_portal.app.factory import build_client, build_ticket_builder
from helpdesk_portal.config.env_aliases import _DEPRECATED_ALIASES
from helpdesk_portal.config.load import load_settings
from helpdesk_portal.config.redact import redact_settings_dict
from helpdesk_portal.observability.logger import configure_logging

log = structlog.get_logger(__name__)


def cmd_validate_config(args: argparse.Namespace) -> int:
    """Validate configuration and exit with appropriate code.

    Exit codes:
        0: Configuration is valid
        1: Configuration is invalid
    """
    try:
        settings = load_settings()
    except Exception as e:
        print(f"✗ Configuration is invalid: {e}", file=sys.stderr)
        return 1
    print("✓ Configuration is valid")
    print(f"  - Helpdesk URL: {settings.freescout.base_url}")
    print(f"  - Mailbox id: {settings.freescout.mailbox_id or '(discover via API)'}")
    print(f"  - Form schema: {settings.form.schema_path}")
    print(f"  - Metrics enabled: {settings.observability.metrics_enabled}")
    return 0


def cmd_dump_config(args: argparse.Namespace) -> int:
    """Dump current configuration as JSON (with secrets redacted)."""
    try:
        settings = load_settings()
    except Exception as e:
        print(f"✗ Failed to load configuration: {e}", file=sys.stderr)
        return 1
    data = settings.model_dump(mode="json")
    print(json.dumps(redact_settings_dict(data), indent=2, default=str))
    return 0


def cmd_show_deprecated(args: argparse.Namespace) -> int:
    """Show deprecated environment variables that are in use."""
    found = []
    for old_name, new_name in _DEPRECATED_ALIASES.items():
        if old_name in os.environ:
            found.append((old_name, new_name, os.environ.get(new_name) is None))

    if not found:
        print("No deprecated environment variables in use.")
        return 0

    print("Deprecated environment variables detected:")
    print()
    for old_name, new_name, needs_migration in found:
        status = "NEEDS MIGRATION" if needs_migration else "has canonical override"
        print(f"  {old_name} -> {new_name} ({status})")
    return 0


def cmd_check_mailbox(args: argparse.Namespace) -> int:
    """Exit 0 iff the configured mailbox id is listed by the helpdesk."""
    try:
        settings = load_settings()
    except Exception as e:
        print(f"✗ Failed to load configuration: {e}", file=sys.stderr)
        return 1
    configure_logging(log_level=settings.observability.log_level, log_format="human")

    with build_client(settings) as client:
        builder = build_ticket_builder(settings, client)
        if builder.validate_mailbox_id():
            print(f"✓ Mailbox {settings.freescout.mailbox_id} exists")
            return 0
    print("✗ Mailbox id is not configured or not found in the helpdesk", file=sys.stderr)
    return 1


def cmd_list_custom_fields(args: argparse.Namespace) -> int:
    """Print the custom field definitions of a mailbox as JSON."""
    try:
        settings = load_settings()
        with build_client(settings) as client:
            mailbox_id = args.mailbox_id
            if mailbox_id is None:
                mailbox_id = build_ticket_builder(settings, client).get_configured_mailbox_id()
            fields = client.list_mailbox_custom_fields(mailbox_id)
    except Exception as e:
        print(f"✗ Failed to list custom fields: {e}", file=sys.stderr)
        return 1

    payload = {
        "mailbox_id": mailbox_id,
        "custom_fields": [field.model_dump(mode="json") for field in fields],
    }
    print(json.dumps(payload, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="helpdesk-portal",
        description="Helpdesk portal CLI utilities",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    validate_parser = subparsers.add_parser(
        "validate-config",
        help="Validate configuration and exit",
    )
    validate_parser.set_defaults(func=cmd_validate_config)

    dump_parser = subparsers.add_parser(
        "dump-config",
        help="Dump configuration as JSON (secrets redacted)",
    )
    dump_parser.set_defaults(func=cmd_dump_config)

    deprecated_parser = subparsers.add_parser(
        "show-deprecated",
        help="Show deprecated environment variables in use",
    )
    deprecated_parser.set_defaults(func=cmd_show_deprecated)

    mailbox_parser = subparsers.add_parser(
        "check-mailbox",
        help="Verify the configured mailbox id exists in the helpdesk",
    )
    mailbox_parser.set_defaults(func=cmd_check_mailbox)

    fields_parser = subparsers.add_parser(
        "list-custom-fields",
        help="Show custom field definitions of a mailbox",
    )
    fields_parser.add_argument(
        "--mailbox-id",
        type=int,
        default=None,
        help="Mailbox to inspect (default: configured or first available mailbox)",
    )
    fields_parser.set_defaults(func=cmd_list_custom_fields)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
