"""CLI command modules for shopsync.

Each module contains related command handlers used by __main__.py.
"""

from shopsync.cli.commands.sync import (
    cmd_prune,
    cmd_pull,
    cmd_push,
    cmd_queue,
    cmd_status,
    cmd_sync,
)

__all__ = [
    "cmd_prune",
    "cmd_pull",
    "cmd_push",
    "cmd_queue",
    "cmd_status",
    "cmd_sync",
]
