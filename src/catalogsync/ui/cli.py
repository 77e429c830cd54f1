# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from catalogsync.app import Backend, explain_entity, open_services
from catalogsync.config import ConfigurationError, configure_logging
from catalogsync.domain.errors import IntegrationLinkError
from catalogsync.domain.model import MISSING, IntegrationType

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from catalogsync.app import CatalogServices, EntityExplanation

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect and edit catalog integration links")
    parser.add_argument(
        "--backend",
        choices=[backend.value for backend in Backend],
        default=Backend.SQL.value,
        help="Backing store (default: %(default)s)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Resolve field values of an entity")
    resolve.add_argument("entity_id", help="Product or category id")
    resolve.add_argument(
        "--field",
        dest="fields",
        action="append",
        default=[],
        help="Field to resolve; repeatable (default: every known field)",
    )

    sync_state = subparsers.add_parser("sync-state", help="Show per-field sync state")
    sync_state.add_argument("entity_id", help="Product or category id")
    sync_state.add_argument("--field", dest="fields", action="append", default=[])

    link = subparsers.add_parser("link", help="Link an entity or one of its options")
    link.add_argument("entity_id", help="Product or category id")
    link.add_argument("--mapping-id", required=True, help="External record mapping id")
    link.add_argument(
        "--source-id",
        help="Integration source id (entity links only; options use the product's source)",
    )
    link.add_argument(
        "--type",
        dest="integration_type",
        choices=[kind.value for kind in IntegrationType],
        default=IntegrationType.PRODUCT.value,
    )
    link.add_argument("--option", dest="option_id", help="Link this option instead")

    unlink = subparsers.add_parser("unlink", help="Unlink an entity or one of its options")
    unlink.add_argument("entity_id", help="Product or category id")
    unlink.add_argument("--option", dest="option_id", help="Unlink this option instead")

    args = parser.parse_args(list(argv))
    if args.command == "link" and args.option_id is None and not args.source_id:
        raise ValueError("--source-id is required when linking an entity")
    return args


def _format_value(value: object) -> str:
    if value is MISSING:
        return "<missing>"
    return json.dumps(value, default=str)


def _print_resolved(explanation: EntityExplanation) -> None:
    print(f"# {explanation.entity_id} ({explanation.product_type.label})")
    for row in explanation.fields:
        resolved = row.resolved
        ancestors = ",".join(resolved.ancestor_ids)
        suffix = f" via {ancestors}" if ancestors else ""
        print(f"{row.field_name}\t{resolved.source}{suffix}\t{_format_value(resolved.value)}")


def _print_sync_states(explanation: EntityExplanation) -> None:
    for row in explanation.fields:
        print(f"{row.field_name}\t{row.sync_state}")


async def _dispatch(services: CatalogServices, args: argparse.Namespace) -> None:
    try:
        match args.command:
            case "resolve":
                _print_resolved(await explain_entity(services, args.entity_id, fields=args.fields))
            case "sync-state":
                _print_sync_states(
                    await explain_entity(services, args.entity_id, fields=args.fields)
                )
            case "link" if args.option_id is not None:
                await services.links.link_option(
                    args.entity_id, args.option_id, args.mapping_id, args.integration_type
                )
            case "link":
                await services.links.link_entity(
                    args.entity_id, args.mapping_id, args.source_id, args.integration_type
                )
            case "unlink" if args.option_id is not None:
                await services.links.unlink_option(args.entity_id, args.option_id)
            case "unlink":
                await services.links.unlink_entity(args.entity_id)
            case _:
                raise ValueError(f"Unsupported command: {args.command}")
    finally:
        await services.aclose()


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        configure_logging(verbose=parsed_args.verbose)
        services = open_services(parsed_args.backend)
        asyncio.run(_dispatch(services, parsed_args))
    except (IntegrationLinkError, ConfigurationError) as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
