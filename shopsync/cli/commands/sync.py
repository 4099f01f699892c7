"""Sync commands for the shopsync CLI."""

import json
import logging
from typing import TYPE_CHECKING, Optional

from shopsync.errors import ConnectivityError
from shopsync.types import SyncResult, parse_datetime

if TYPE_CHECKING:
    from shopsync.engine import SyncEngine
    from shopsync.storage import SQLiteStore

logger = logging.getLogger(__name__)


def _print_result(label: str, result: SyncResult, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
        return

    if result.skipped:
        print(f"ℹ {label} skipped: {result.skipped}")
        return

    mark = "✓" if result.success else "⚠"
    print(f"{mark} {label}: {result.pushed} pushed, {result.pulled} pulled")
    for error in result.errors:
        print(f"  ✗ {error}")


def _format_time(value: Optional[str]) -> str:
    dt = parse_datetime(value)
    return dt.strftime("%Y-%m-%d %H:%M:%S UTC") if dt else "never"


def cmd_status(args, store: "SQLiteStore", online: Optional[bool] = None):
    """Show connectivity and sync queue status."""
    status = store.get_sync_status()
    status["online"] = online

    if args.json:
        print(json.dumps(status, indent=2, default=str))
        return

    if online is None:
        print("Connection: unknown (no health URL configured)")
    else:
        print(f"Connection: {'online' if online else 'offline'}")
    print(f"Pending:    {status['pending']}")
    if status["failing"]:
        print(f"Failing:    {status['failing']}")
    print(f"Synced:     {status['synced']}")
    for table, count in sorted(status["by_table"].items()):
        print(f"  {table}: {count}")
    print(f"Last push:  {_format_time(status['last_push_at'])}")
    print(f"Last pull:  {_format_time(status['last_pull_at'])}")


def cmd_queue(args, store: "SQLiteStore"):
    """List pending queue items, oldest first."""
    items = store.get_sync_queue(limit=args.limit)

    if args.json:
        print(
            json.dumps(
                [
                    {
                        "id": item.id,
                        "store_name": item.store_name,
                        "operation": item.operation.value,
                        "record_id": item.record_id,
                        "created_at": item.created_at,
                        "retry_count": item.retry_count,
                        "last_error": item.last_error,
                    }
                    for item in items
                ],
                indent=2,
            )
        )
        return

    if not items:
        print("Queue is empty")
        return

    for item in items:
        line = f"#{item.id} {item.operation.value:<6} {item.store_name}:{item.record_id}"
        if item.retry_count:
            line += f"  (retries: {item.retry_count}, last error: {item.last_error})"
        print(line)


def cmd_prune(args, store: "SQLiteStore"):
    """Delete synced queue rows older than --days."""
    count = store.prune_synced(older_than_days=args.days)
    print(f"✓ Pruned {count} synced queue entries")


async def cmd_push(args, engine: "SyncEngine") -> int:
    result = await engine.push()
    _print_result("Push", result, args.json)
    return 0 if result.success else 1


async def cmd_pull(args, engine: "SyncEngine") -> int:
    result = await engine.pull()
    _print_result("Pull", result, args.json)
    return 0 if result.success else 1


async def cmd_sync(args, engine: "SyncEngine") -> int:
    """Push then pull; fails when offline."""
    try:
        result = await engine.manual_sync()
    except ConnectivityError as e:
        print(f"✗ {e}")
        return 1
    _print_result("Sync", result, args.json)
    return 0 if result.success else 1
