"""Offline operation queue with connectivity-triggered synchronization."""
from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Mapping, Optional, Set, Union

from core.errors import OperationNotFoundError, StorageError
from core.log import SYNC, get_logger
from core.settings import QUEUE, QueueSettings
from datetime_utils import utc_now
from models.commands import validate_target
from models.offline_operation import OfflineOperation, OperationStatus, OperationType
from services.connectivity import ConnectivityMonitor, ConnectivityStatus
from services.queue_store import QueueStore
from services.status_channel import StatusChannel


class SyncStatus(str, Enum):
    idle = "idle"
    syncing = "syncing"
    error = "error"
    completed = "completed"


OperationExecutor = Callable[[OfflineOperation], Awaitable[Any]]


class OfflineQueueManager:
    """Buffers mutations while offline and replays them once connected.

    One pass at a time walks the pending records oldest first and hands each
    to the injected executor. A failed attempt puts the record back in line
    until ``retry_limit`` attempts have failed, after which it stays
    ``failed`` until :meth:`retry_operation` is called. Executor failures
    never leave a pass; storage failures do. A trigger that arrives while a
    pass is running (enqueue, retry, reconnect) starts one more pass after it.
    """

    def __init__(
        self,
        *,
        connectivity: ConnectivityMonitor,
        executor: OperationExecutor,
        store: Optional[QueueStore] = None,
        settings: Optional[QueueSettings] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.connectivity = connectivity
        self.executor = executor
        self.store = store or QueueStore()
        self.settings = settings or QUEUE
        self._clock = clock
        self.logger = get_logger(SYNC)

        self._status = SyncStatus.idle
        self._channel: StatusChannel[SyncStatus] = StatusChannel()
        self._processing = False
        self._rerun_requested = False
        self._unsubscribe_connectivity: Optional[Callable[[], None]] = None
        self._idle_reset: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._last_created_at: Optional[datetime] = None
        self._disposed = False
        self.logger.debug("OfflineQueueManager created")

    # ------------------------------------------------------------------
    # Read-only projections
    @property
    def current_status(self) -> SyncStatus:
        return self._status

    @property
    def retry_limit(self) -> int:
        return self.settings.retry_limit

    @property
    def pending_operations(self) -> List[OfflineOperation]:
        return self.store.by_status(OperationStatus.pending)

    @property
    def failed_operations(self) -> List[OfflineOperation]:
        return self.store.by_status(OperationStatus.failed)

    @property
    def pending_count(self) -> int:
        return self.store.count(OperationStatus.pending)

    def sync_status_stream(self) -> AsyncIterator[SyncStatus]:
        """A fresh iterator of status changes; each observer calls this once."""
        return self._channel.stream(self._channel.subscribe())

    def subscribe_status(self, callback: Callable[[SyncStatus], None]) -> Callable[[], None]:
        return self._channel.listen(callback)

    # ------------------------------------------------------------------
    # Lifecycle
    async def initialize(self) -> None:
        self.logger.info("Initializing offline queue")
        self.store.open()
        existing = self.store.all()
        if existing:
            self._last_created_at = max(op.created_at for op in existing)
        self.logger.debug("Operation store ready, %d pending", self.pending_count)
        if self._unsubscribe_connectivity is None:
            self._unsubscribe_connectivity = self.connectivity.subscribe(self._on_connectivity_changed)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self.logger.debug("Disposing offline queue manager")
        if self._unsubscribe_connectivity is not None:
            self._unsubscribe_connectivity()
            self._unsubscribe_connectivity = None
        self._cancel_idle_reset()
        self._channel.close()
        if not self._processing:
            self.store.close()

    async def drain(self) -> None:
        """Wait for passes started in the background (enqueue, reconnect, retry)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Mutations
    async def enqueue(
        self,
        op_type: Union[OperationType, str],
        payload: Optional[Mapping[str, Any]] = None,
        entity_id: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> str:
        op_type = OperationType(op_type)
        data: Dict[str, Any] = dict(payload or {})
        validate_target(op_type, data, entity_id, group_id)

        operation = OfflineOperation(
            id=uuid.uuid4().hex,
            type=op_type,
            payload=data,
            created_at=self._next_timestamp(),
            entity_id=entity_id,
            group_id=group_id,
        )
        self.logger.info(
            "Enqueueing operation %s (%s, entity=%s, group=%s)",
            operation.id,
            op_type.value,
            entity_id,
            group_id,
        )
        self.store.put(operation)

        if await self.connectivity.is_connected():
            self.logger.debug("Online, processing queue immediately")
            self._schedule_processing()
        else:
            self.logger.debug("Offline, operation %s queued for later", operation.id)
        return operation.id

    async def process_queue(self) -> None:
        if self._processing or self._status is SyncStatus.syncing:
            self.logger.debug("Already syncing, skipping")
            return
        self._processing = True
        try:
            await self._run_pass()
        finally:
            self._processing = False
            if self._disposed:
                self.store.close()
            elif self._rerun_requested:
                self._rerun_requested = False
                self._schedule_processing()

    async def retry_operation(self, operation_id: str) -> None:
        self.logger.info("Retrying operation %s", operation_id)
        operation = self.store.get(operation_id)
        if operation is None:
            raise OperationNotFoundError(operation_id)
        self.store.put(operation.reset_for_retry())
        self._schedule_processing()

    async def clear_completed(self) -> int:
        completed = self.store.by_status(OperationStatus.completed)
        self.logger.info("Clearing %d completed operations", len(completed))
        for operation in completed:
            self.store.delete(operation.id)
        return len(completed)

    async def clear_failed(self, operation_id: str) -> bool:
        self.logger.info("Clearing failed operation %s", operation_id)
        return self.store.delete(operation_id)

    # ------------------------------------------------------------------
    # Processing
    async def _run_pass(self) -> None:
        if not await self.connectivity.is_connected():
            self.logger.debug("Offline, cannot process queue")
            return

        pending = self.store.by_status(OperationStatus.pending)
        if not pending:
            self.logger.debug("No pending operations")
            return

        self.logger.info("Processing queue, %d pending", len(pending))
        self._cancel_idle_reset()
        self._set_status(SyncStatus.syncing)

        success_count = 0
        fail_count = 0
        try:
            for queued in pending:
                # retried or cleared while an earlier record was executing
                operation = self.store.get(queued.id)
                if operation is None or operation.status is not OperationStatus.pending:
                    continue
                if await self._execute(operation):
                    success_count += 1
                else:
                    fail_count += 1
        except StorageError:
            self.logger.exception("Operation store failed during sync pass")
            self._finish_pass(SyncStatus.error)
            raise

        self.logger.info(
            "Queue processing complete: %d succeeded, %d failed", success_count, fail_count
        )
        self._finish_pass(SyncStatus.error if fail_count else SyncStatus.completed)

    async def _execute(self, operation: OfflineOperation) -> bool:
        self.logger.debug("Processing operation %s (%s)", operation.id, operation.type.value)
        running = operation.mark_in_progress()
        self.store.put(running)
        try:
            await self.executor(running)
        except Exception as exc:
            reason = str(exc) or type(exc).__name__
            self.logger.error(
                "Operation %s failed (attempt %d): %s", operation.id, running.retry_count + 1, reason
            )
            updated = running.increment_retry()
            if updated.has_exceeded(self.retry_limit):
                self.logger.warning(
                    "Operation %s exceeded %d retries, marking as failed", operation.id, self.retry_limit
                )
                self.store.put(updated.mark_failed(reason))
            else:
                self.store.put(updated.recycle())
            return False

        self.store.put(running.mark_completed())
        self.logger.debug("Operation %s completed", operation.id)
        return True

    def _finish_pass(self, status: SyncStatus) -> None:
        self._set_status(status)
        if self._disposed:
            return
        loop = asyncio.get_running_loop()
        self._idle_reset = loop.call_later(self.settings.idle_reset_delay_sec, self._reset_to_idle)

    def _reset_to_idle(self) -> None:
        self._idle_reset = None
        if self._status is not SyncStatus.syncing:
            self._set_status(SyncStatus.idle)

    def _cancel_idle_reset(self) -> None:
        if self._idle_reset is not None:
            self._idle_reset.cancel()
            self._idle_reset = None

    def _set_status(self, status: SyncStatus) -> None:
        self.logger.debug("Sync status updated: %s", status.value)
        self._status = status
        self._channel.publish(status)

    # ------------------------------------------------------------------
    # Triggers
    def _on_connectivity_changed(self, status: ConnectivityStatus) -> None:
        self.logger.debug("Connectivity status in queue: %s", status.value)
        if status is ConnectivityStatus.online:
            self._schedule_processing()

    def _schedule_processing(self) -> None:
        if self._disposed:
            return
        if self._processing:
            # records added mid-pass are not in its snapshot
            self.logger.debug("Pass running, another one will follow it")
            self._rerun_requested = True
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.warning("No running event loop, queue processing not scheduled")
            return
        task = loop.create_task(self.process_queue())
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error("Background queue pass failed: %s", exc)

    def _next_timestamp(self) -> datetime:
        now = self._clock()
        if self._last_created_at is not None and now <= self._last_created_at:
            now = self._last_created_at + timedelta(microseconds=1)
        self._last_created_at = now
        return now


__all__ = ["OfflineQueueManager", "OperationExecutor", "SyncStatus"]
