"""
shopsync - offline-first synchronization for shop data.

Work against a local SQLite store while disconnected; queued changes are
replayed to Supabase when connectivity returns.
"""

from .connectivity import ConnectivityObserver, HttpConnectivityProbe, ManualConnectivity
from .engine import SyncEngine
from .errors import (
    ConnectivityError,
    EntityValidationError,
    LocalStoreError,
    RemoteApplyError,
    RemoteError,
    RemoteFetchError,
    ShopSyncError,
)
from .facade import EntityFacade
from .remote import RemoteService, SupabaseRemote
from .storage import LocalStore, SQLiteStore

try:
    from importlib.metadata import version

    __version__ = version("shopsync")
except Exception:
    __version__ = "0.0.0"

__all__ = [
    "SyncEngine",
    "EntityFacade",
    "LocalStore",
    "SQLiteStore",
    "RemoteService",
    "SupabaseRemote",
    "ConnectivityObserver",
    "ManualConnectivity",
    "HttpConnectivityProbe",
    "ShopSyncError",
    "ConnectivityError",
    "RemoteError",
    "RemoteApplyError",
    "RemoteFetchError",
    "LocalStoreError",
    "EntityValidationError",
]
