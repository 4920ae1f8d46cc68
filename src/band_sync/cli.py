from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
from pathlib import Path
from typing import Optional, Sequence

import httpx

from .config import AppSettings, get_settings
from .core.config import CACHE_FILE, IDENTITY_FILE, ensure_data_dir
from .logging import configure_logging
from .services import IdentityProvider, MemberIdentity, ServiceContext
from .services.http import run_local_server

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Band Sync command line interface.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Start the remote store API server.")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8787)
    serve_parser.add_argument("--store", type=Path, default=None, help="Path of the JSON record store.")

    sync_parser = subparsers.add_parser("sync", help="Run one sync against the remote store and print a summary.")
    sync_parser.add_argument("--member", default=None, help="Select the band member for this device before syncing.")
    sync_parser.add_argument("--base-url", default=None)

    return parser


def _with_overrides(settings: AppSettings, *, store: Optional[Path] = None, base_url: Optional[str] = None) -> AppSettings:
    if store is not None:
        settings = dataclasses.replace(settings, server=dataclasses.replace(settings.server, store_path=store))
    if base_url:
        settings = dataclasses.replace(
            settings,
            transport=dataclasses.replace(settings.transport, base_url=base_url.rstrip("/")),
        )
    return settings


async def run_sync_once(
    settings: AppSettings,
    identity: IdentityProvider,
    *,
    cache_path: Optional[Path] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> int:
    context = ServiceContext(settings=settings, identity=identity, client=client, cache_path=cache_path)
    try:
        ok = await context.orchestrator.request_sync()
    finally:
        await context.aclose()

    if not ok:
        print("Sync failed; see log for details.")
        return 1

    events, availability = context.view.snapshot()
    print(f"Events: {len(events)}  Availability: {len(availability)}")
    for conflict in context.orchestrator.last_conflicts:
        own, other = conflict.own_event, conflict.other_event
        print(f"Conflict: '{own.title}' overlaps '{other.title}' by {conflict.other_member}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    settings = get_settings()
    configure_logging(settings.log)
    logger.info("Band Sync CLI starting")
    parser = build_parser()
    args = parser.parse_args(argv)
    ensure_data_dir()

    if args.command == "serve":
        run_local_server(host=args.host, port=args.port, settings=_with_overrides(settings, store=args.store))
        return 0
    if args.command == "sync":
        identity = MemberIdentity.from_roster(
            settings.identity.members,
            path=IDENTITY_FILE,
            max_length=settings.identity.max_nickname_length,
        )
        if args.member:
            try:
                identity.select(args.member)
            except ValueError as exc:
                parser.error(str(exc))
        if identity.display_name() is None:
            parser.error("No member selected on this device; pass --member NAME.")
        return asyncio.run(
            run_sync_once(_with_overrides(settings, base_url=args.base_url), identity, cache_path=CACHE_FILE)
        )
    parser.print_help()  # pragma: no cover - argparse enforces choices
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
