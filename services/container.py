"""Composition root: builds the sync layer's collaborators explicitly."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from core.log import configure_logging
from services.connectivity import ConnectivityMonitor, HttpConnectivityMonitor, ManualConnectivity
from services.document_store import DocumentStore
from services.offline_queue_manager import OfflineQueueManager
from services.queue_store import QueueStore
from services.sync_service import SyncService
from storage.config import AppConfig, connectivity_settings, logging_settings, queue_settings


@dataclass
class AppContainer:
    connectivity: ConnectivityMonitor
    store: QueueStore
    sync_service: SyncService
    queue: OfflineQueueManager

    async def start(self) -> None:
        await self.queue.initialize()
        if isinstance(self.connectivity, HttpConnectivityMonitor):
            self.connectivity.start()

    async def shutdown(self) -> None:
        if isinstance(self.connectivity, HttpConnectivityMonitor):
            await self.connectivity.stop()
        await self.queue.drain()
        self.queue.dispose()
        if isinstance(self.connectivity, HttpConnectivityMonitor):
            await self.connectivity.aclose()
        else:
            self.connectivity.dispose()


def build_container(
    config: Optional[AppConfig] = None,
    *,
    documents: DocumentStore,
    current_user: Callable[[], Optional[str]],
    connectivity: Optional[ConnectivityMonitor] = None,
    database_url: Optional[str] = None,
    setup_logging: bool = True,
) -> AppContainer:
    cfg = config or AppConfig()
    if setup_logging:
        configure_logging(logging_settings(cfg))

    if connectivity is None:
        net = connectivity_settings(cfg)
        connectivity = HttpConnectivityMonitor(net) if net.health_url else ManualConnectivity()

    store = QueueStore(database_url)
    sync_service = SyncService(documents, current_user)
    queue = OfflineQueueManager(
        connectivity=connectivity,
        executor=sync_service.execute,
        store=store,
        settings=queue_settings(cfg),
    )
    return AppContainer(connectivity=connectivity, store=store, sync_service=sync_service, queue=queue)


__all__ = ["AppContainer", "build_container"]
