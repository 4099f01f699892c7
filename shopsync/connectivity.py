"""
Connectivity observers - tell the sync engine when the remote is reachable.

The engine only depends on ``ConnectivityObserver``: a current state and a
way to subscribe to transitions. Two implementations are provided:

  * ``ManualConnectivity``: the host application reports state changes
    (e.g. from OS network events) by calling ``set_online``.
  * ``HttpConnectivityProbe``: polls a health URL with httpx and reports
    transitions itself.
"""

import asyncio
import contextlib
import logging
from typing import Callable, Dict, List, Optional, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)

ConnectivityCallback = Callable[[bool], None]


@runtime_checkable
class ConnectivityObserver(Protocol):
    def is_online(self) -> bool:
        ...

    def subscribe(self, on_change: ConnectivityCallback) -> Callable[[], None]:
        """Register a transition callback. Returns the unsubscribe function."""
        ...


class _ObserverBase:
    """Holds state and subscribers; notifies on transitions only."""

    def __init__(self, online: bool = False) -> None:
        self._online = online
        self._callbacks: List[ConnectivityCallback] = []

    def is_online(self) -> bool:
        return self._online

    def subscribe(self, on_change: ConnectivityCallback) -> Callable[[], None]:
        self._callbacks.append(on_change)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._callbacks.remove(on_change)

        return unsubscribe

    def _set(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        logger.info(f"Connectivity changed: {'online' if online else 'offline'}")
        for callback in list(self._callbacks):
            try:
                callback(online)
            except Exception as e:
                logger.error(f"Connectivity callback failed: {e}", exc_info=True)


class ManualConnectivity(_ObserverBase):
    """Connectivity state driven by the host application."""

    def set_online(self, online: bool) -> None:
        self._set(bool(online))


class HttpConnectivityProbe(_ObserverBase):
    """Poll a health endpoint and report reachability.

    Any HTTP response below 500 counts as online (a 401 still proves the
    service is reachable). Transport errors and timeouts count as offline.
    """

    def __init__(
        self,
        url: str,
        interval: float = 30.0,
        timeout: float = 5.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(online=False)
        self.url = url
        self.interval = interval
        self.timeout = timeout
        self._headers = headers or {}
        self._transport = transport
        self._task: Optional[asyncio.Task] = None

    async def check(self) -> bool:
        """Probe once, update state, and return it."""
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(self.url, headers=self._headers)
            online = response.status_code < 500
            if not online:
                logger.debug(f"Health check returned HTTP {response.status_code}")
        except httpx.HTTPError as e:
            logger.debug(f"Health check failed: {e}")
            online = False
        self._set(online)
        return online

    async def _poll(self) -> None:
        while True:
            await self.check()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._poll())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
