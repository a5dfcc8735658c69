"""Network connectivity monitoring."""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, List, Optional

import httpx

from core.log import NETWORK, get_logger
from core.settings import CONNECTIVITY, ConnectivitySettings


class ConnectivityStatus(str, Enum):
    online = "online"
    offline = "offline"


StatusCallback = Callable[[ConnectivityStatus], None]


class ConnectivityMonitor(ABC):
    """Answers "are we online?" and notifies subscribers on every change."""

    def __init__(self, initial: ConnectivityStatus = ConnectivityStatus.online) -> None:
        self._status = initial
        self._listeners: List[StatusCallback] = []
        self.logger = get_logger(NETWORK)

    @property
    def status(self) -> ConnectivityStatus:
        """Last known status, without probing."""
        return self._status

    @abstractmethod
    async def check(self) -> ConnectivityStatus:
        """Probe the network and return the fresh status."""

    async def is_connected(self) -> bool:
        return await self.check() is ConnectivityStatus.online

    def subscribe(self, callback: StatusCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _update(self, status: ConnectivityStatus) -> None:
        if status is self._status:
            return
        self.logger.info("Connectivity changed: %s -> %s", self._status.value, status.value)
        self._status = status
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception:
                self.logger.exception("Connectivity listener crashed")

    def dispose(self) -> None:
        self._listeners.clear()


class ManualConnectivity(ConnectivityMonitor):
    """Status pushed in by the host application (platform callbacks, tests)."""

    async def check(self) -> ConnectivityStatus:
        return self._status

    def set_status(self, status: ConnectivityStatus) -> None:
        self._update(status)

    def set_online(self, online: bool) -> None:
        self._update(ConnectivityStatus.online if online else ConnectivityStatus.offline)


class HttpConnectivityMonitor(ConnectivityMonitor):
    """Treats the backend as reachable when ``GET {health_url}/health`` answers 200."""

    def __init__(
        self,
        settings: Optional[ConnectivitySettings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        initial: ConnectivityStatus = ConnectivityStatus.offline,
    ) -> None:
        super().__init__(initial)
        self.settings = settings or CONNECTIVITY
        if not self.settings.health_url:
            raise ValueError("HttpConnectivityMonitor needs a health_url")
        self._client = client or httpx.AsyncClient(timeout=self.settings.timeout_sec)
        self._owns_client = client is None
        self._poll_task: Optional[asyncio.Task] = None

    @property
    def probe_url(self) -> str:
        return f"{self.settings.health_url.rstrip('/')}/health"

    async def check(self) -> ConnectivityStatus:
        try:
            response = await self._client.get(self.probe_url, timeout=self.settings.timeout_sec)
            online = response.status_code == 200
        except httpx.HTTPError as exc:
            self.logger.debug("Health probe failed: %s", exc)
            online = False
        status = ConnectivityStatus.online if online else ConnectivityStatus.offline
        self._update(status)
        return status

    def start(self) -> None:
        if self._poll_task and not self._poll_task.done():
            return
        self._poll_task = asyncio.get_running_loop().create_task(self._poll_loop())

    async def _poll_loop(self) -> None:
        while True:
            await self.check()
            await asyncio.sleep(self.settings.poll_interval_sec)

    async def stop(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def aclose(self) -> None:
        await self.stop()
        self.dispose()
        if self._owns_client:
            await self._client.aclose()


__all__ = [
    "ConnectivityMonitor",
    "ConnectivityStatus",
    "HttpConnectivityMonitor",
    "ManualConnectivity",
]
