"""Persistent store of offline operation records."""

from __future__ import annotations

from typing import Callable, List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from core.errors import StorageError
from core.log import STORAGE, get_logger
from models.offline_operation import OfflineOperation, OperationStatus
from models.operation_row import OfflineOperationRow
from storage.db import create_db_engine, init_db, session_factory


class QueueStore:
    """Records keyed by id in SQLite; reads come back oldest first.

    Every SQLAlchemy failure is re-raised as :class:`StorageError`, and so is
    any access before :meth:`open` or after :meth:`close`.
    """

    def __init__(self, url: Optional[str] = None, *, engine: Optional[Engine] = None) -> None:
        self._url = url
        self._engine = engine
        self._owns_engine = engine is None
        self._session_factory: Optional[Callable[[], Session]] = None
        self.logger = get_logger(STORAGE)

    @property
    def is_open(self) -> bool:
        return self._session_factory is not None

    def open(self) -> None:
        if self.is_open:
            return
        try:
            if self._engine is None:
                self._engine = create_db_engine(self._url)
            init_db(self._engine)
        except (SQLAlchemyError, OSError) as exc:
            self.logger.error("Cannot open operation store: %s", exc)
            raise StorageError(f"Cannot open operation store: {exc}") from exc
        self._session_factory = session_factory(self._engine)
        self.logger.debug("Operation store opened (%s)", self._engine.url)

    def close(self) -> None:
        if not self.is_open:
            return
        self._session_factory = None
        if self._owns_engine and self._engine is not None:
            self._engine.dispose()
            self._engine = None
        self.logger.debug("Operation store closed")

    def _session(self) -> Session:
        if self._session_factory is None:
            raise StorageError("Operation store is not open")
        return self._session_factory()

    # ------------------------------------------------------------------
    def all(self) -> List[OfflineOperation]:
        return self._select()

    def by_status(self, status: OperationStatus) -> List[OfflineOperation]:
        return self._select(status)

    def count(self, status: OperationStatus) -> int:
        return len(self._select(status))

    def get(self, operation_id: str) -> Optional[OfflineOperation]:
        try:
            with self._session() as session:
                row = session.get(OfflineOperationRow, operation_id)
                return row.to_operation() if row else None
        except SQLAlchemyError as exc:
            raise StorageError(f"Cannot read operation {operation_id}: {exc}") from exc

    def put(self, operation: OfflineOperation) -> None:
        row = OfflineOperationRow.from_operation(operation)
        try:
            with self._session() as session:
                session.merge(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Cannot write operation {operation.id}: {exc}") from exc

    def delete(self, operation_id: str) -> bool:
        try:
            with self._session() as session:
                row = session.get(OfflineOperationRow, operation_id)
                if not row:
                    return False
                session.delete(row)
                session.commit()
                return True
        except SQLAlchemyError as exc:
            raise StorageError(f"Cannot delete operation {operation_id}: {exc}") from exc

    def _select(self, status: Optional[OperationStatus] = None) -> List[OfflineOperation]:
        stmt = select(OfflineOperationRow)
        if status is not None:
            stmt = stmt.where(OfflineOperationRow.status == status.value)
        stmt = stmt.order_by(OfflineOperationRow.created_at.asc(), OfflineOperationRow.id.asc())
        try:
            with self._session() as session:
                rows = list(session.exec(stmt))
        except SQLAlchemyError as exc:
            raise StorageError(f"Cannot read operation store: {exc}") from exc
        return [row.to_operation() for row in rows]


__all__ = ["QueueStore"]
