"""
shopsync CLI - inspect and drive the offline sync queue.

Usage:
    shopsync status [--json]
    shopsync queue [--limit N] [--json]
    shopsync push [--json]
    shopsync pull [--json]
    shopsync sync [--json]
    shopsync prune [--days N]
"""

import argparse
import asyncio
import logging
import sys

from shopsync.cli.commands import (
    cmd_prune,
    cmd_pull,
    cmd_push,
    cmd_queue,
    cmd_status,
    cmd_sync,
)
from shopsync.config import Settings, get_settings
from shopsync.connectivity import HttpConnectivityProbe, ManualConnectivity
from shopsync.engine import SyncEngine
from shopsync.errors import ShopSyncError
from shopsync.remote import SupabaseRemote, get_supabase_client
from shopsync.storage import SQLiteStore

logger = logging.getLogger(__name__)

REMOTE_COMMANDS = {"push": cmd_push, "pull": cmd_pull, "sync": cmd_sync}


def build_connectivity(settings: Settings):
    """Probe the health URL when configured, otherwise assume online."""
    if settings.health_url:
        headers = {"apikey": settings.supabase_key} if settings.supabase_key else None
        return HttpConnectivityProbe(
            settings.health_url,
            interval=settings.connectivity_interval,
            timeout=settings.connectivity_timeout,
            headers=headers,
        )
    return ManualConnectivity(online=True)


async def run_remote_command(args, settings: Settings, store: SQLiteStore) -> int:
    connectivity = build_connectivity(settings)
    if isinstance(connectivity, HttpConnectivityProbe):
        await connectivity.check()

    remote = SupabaseRemote(get_supabase_client(settings))
    async with SyncEngine(store, remote, connectivity) as engine:
        return await REMOTE_COMMANDS[args.command](args, engine)


async def probe_once(settings: Settings):
    if not settings.health_url:
        return None
    return await build_connectivity(settings).check()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shopsync",
        description="Offline-first sync for shop data",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_status = subparsers.add_parser("status", help="Show connectivity and queue status")
    p_status.add_argument("--json", "-j", action="store_true")

    p_queue = subparsers.add_parser("queue", help="List pending queue items")
    p_queue.add_argument("--limit", "-n", type=int, default=50)
    p_queue.add_argument("--json", "-j", action="store_true")

    for name, help_text in (
        ("push", "Push queued changes to the remote"),
        ("pull", "Pull remote tables into the local store"),
        ("sync", "Push, then pull (fails when offline)"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("--json", "-j", action="store_true")

    p_prune = subparsers.add_parser("prune", help="Delete old synced queue entries")
    p_prune.add_argument("--days", type=int, default=7)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    try:
        store = SQLiteStore(settings.resolved_db_path)

        if args.command == "status":
            cmd_status(args, store, online=asyncio.run(probe_once(settings)))
        elif args.command == "queue":
            cmd_queue(args, store)
        elif args.command == "prune":
            cmd_prune(args, store)
        elif args.command in REMOTE_COMMANDS:
            sys.exit(asyncio.run(run_remote_command(args, settings, store)))
    except (ShopSyncError, ValueError) as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
