"""Sync engine for shopsync.

SyncEngine drains the local sync queue to the remote service (push),
replaces local snapshots of the synchronized tables (pull), and tracks
connectivity through an injected observer. Push is single-flight: a push
requested while another is running returns immediately without queueing
a retry.

Local store calls run in worker threads so a busy SQLite database never
blocks the event loop. Connectivity callbacks may arrive from any thread;
pushes they trigger are handed to the loop the engine was started on.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from .connectivity import ConnectivityObserver
from .errors import ConnectivityError, LocalStoreError, RemoteApplyError, RemoteFetchError
from .remote import RemoteService
from .storage.base import LocalStore
from .types import (
    SOFT_DELETE_FLAG,
    SOFT_DELETE_TABLES,
    SYNCED_TABLES,
    SyncOperation,
    SyncQueueItem,
    SyncResult,
    utc_now,
)

logger = logging.getLogger(__name__)


class SyncEngine:
    """Reconciles the local store with the remote service.

    Args:
        store: Local store holding records and the sync queue.
        remote: Remote service the queue is replayed against.
        connectivity: Source of online/offline state and transitions.
        tables: Tables fetched by pull, in order.
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteService,
        connectivity: ConnectivityObserver,
        tables: Iterable[str] = SYNCED_TABLES,
    ):
        self._store = store
        self._remote = remote
        self._connectivity = connectivity
        self._tables = tuple(tables)
        self._online = False
        self._sync_in_progress = False
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._tasks: Set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # === Lifecycle ===

    async def start(self) -> None:
        """Adopt the observer's current state and subscribe to transitions."""
        if self._unsubscribe is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._online = self._connectivity.is_online()
        self._unsubscribe = self._connectivity.subscribe(self._on_connectivity_change)
        logger.debug(f"Sync engine started ({'online' if self._online else 'offline'})")

    async def stop(self) -> None:
        """Unsubscribe and cancel any outstanding background pushes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._loop = None
        logger.debug("Sync engine stopped")

    async def __aenter__(self) -> "SyncEngine":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # === Connectivity ===

    @property
    def sync_in_progress(self) -> bool:
        return self._sync_in_progress

    def get_connection_status(self) -> bool:
        return self._online

    def _on_connectivity_change(self, online: bool) -> None:
        """Observer callback; may be invoked from any thread."""
        was_online = self._online
        self._online = online
        if online and not was_online:
            self._call_in_loop(self.schedule_push)

    def _call_in_loop(self, callback: Callable[[], Any]) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if self._loop is None or running is self._loop:
            callback()
            return
        try:
            self._loop.call_soon_threadsafe(callback)
        except RuntimeError:
            logger.warning("Event loop closed, push after reconnect not scheduled")

    # === Write-then-notify ===

    def schedule_push(self) -> Optional[asyncio.Task]:
        """Start a background push if online.

        Returns:
            The push task, or None when offline or outside a running loop.
        """
        if not self._online:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, push not scheduled")
            return None

        task = loop.create_task(self.push())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait until every scheduled push has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # === Push ===

    async def push(self) -> SyncResult:
        """Drain the sync queue to the remote service in FIFO order.

        Stops at the first item that fails; it and everything after it stay
        pending for the next push. Failures are logged and reported in the
        result, never raised.
        """
        if not self._online:
            logger.debug("Offline - push skipped, changes stay queued")
            return SyncResult(skipped="offline")
        if self._sync_in_progress:
            logger.debug("Push already in progress, skipping")
            return SyncResult(skipped="in_progress")

        self._sync_in_progress = True
        result = SyncResult()
        logger.info("Starting push to remote...")

        try:
            queue = await asyncio.to_thread(self._store.get_sync_queue)
            for item in queue:
                await self._apply(item)
                await asyncio.to_thread(self._store.mark_synced, item.id)
                result.pushed += 1

            await asyncio.to_thread(self._store.set_meta, "last_push_at", utc_now())
            logger.info(f"Push complete: pushed={result.pushed}")
        except RemoteApplyError as e:
            logger.error(f"Push aborted at queue item {e.item_id}: {e}", exc_info=True)
            result.errors.append(str(e))
            await self._record_failure(e.item_id, str(e))
        except LocalStoreError as e:
            logger.error(f"Push aborted by local store failure: {e}", exc_info=True)
            result.errors.append(str(e))
        finally:
            self._sync_in_progress = False

        return result

    async def _apply(self, item: SyncQueueItem) -> None:
        """Apply one queue item remotely, raising RemoteApplyError on failure."""
        table = item.store_name
        operation = item.operation
        try:
            if operation is SyncOperation.UPSERT:
                await self._remote.upsert(table, item.data)
            elif operation is SyncOperation.DELETE:
                record_id = item.record_id
                if not record_id:
                    raise ValueError("delete queued without a record id")
                if table in SOFT_DELETE_TABLES:
                    await self._remote.update(table, {SOFT_DELETE_FLAG: False}, record_id)
                else:
                    await self._remote.delete(table, record_id)
            else:
                raise ValueError(f"unsupported operation {operation!r}")
        except Exception as e:
            raise RemoteApplyError(
                f"Failed to sync {operation.value} for {table}: {e}",
                item_id=item.id,
                table=table,
                operation=operation.value,
            ) from e

    async def _record_failure(self, item_id: int, error: str) -> None:
        try:
            retries = await asyncio.to_thread(self._store.record_sync_failure, item_id, error)
            logger.debug(f"Queue item {item_id} failed {retries} time(s)")
        except LocalStoreError as e:
            logger.warning(f"Could not record failure for queue item {item_id}: {e}")

    # === Pull ===

    async def pull(self) -> SyncResult:
        """Fetch every synchronized table and overwrite local copies.

        Each table is independent: a failure is logged, reported in the
        result, and the next table is still fetched.
        """
        if not self._online:
            logger.debug("Offline - pull skipped")
            return SyncResult(skipped="offline")

        result = SyncResult()
        logger.info("Pulling from remote...")

        for table in self._tables:
            try:
                rows = await self._fetch(table)
                result.pulled += await asyncio.to_thread(self._store.apply_remote, table, rows)
            except (RemoteFetchError, LocalStoreError) as e:
                logger.error(f"Failed to pull {table}: {e}", exc_info=True)
                result.errors.append(f"Failed to pull {table}: {e}")
                result.failed_tables.append(table)

        if not result.failed_tables:
            try:
                await asyncio.to_thread(self._store.set_meta, "last_pull_at", utc_now())
            except LocalStoreError as e:
                logger.warning(f"Could not record pull time: {e}")

        logger.info(f"Pull complete: pulled={result.pulled}, failed_tables={result.failed_tables}")
        return result

    async def _fetch(self, table: str) -> List[Dict[str, Any]]:
        try:
            return await self._remote.select_all(table)
        except Exception as e:
            raise RemoteFetchError(f"select on {table} failed: {e}", table) from e

    # === Manual sync ===

    async def manual_sync(self) -> SyncResult:
        """Push, then pull.

        Raises:
            ConnectivityError: If offline.
        """
        if not self._online:
            raise ConnectivityError()
        push_result = await self.push()
        pull_result = await self.pull()
        return push_result.merge(pull_result)

    def status(self) -> Dict[str, Any]:
        """Connectivity plus local queue status."""
        status = {
            "online": self._online,
            "sync_in_progress": self._sync_in_progress,
        }
        status.update(self._store.get_sync_status())
        return status
