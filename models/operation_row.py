"""SQLModel table backing the offline operation queue."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from core.errors import InvalidOperationError, StorageError
from datetime_utils import ensure_utc, utc_now
from models.offline_operation import OfflineOperation, OperationStatus, OperationType


class OfflineOperationRow(SQLModel, table=True):
    __tablename__ = "offline_operation"

    id: str = Field(primary_key=True)
    type: str
    status: str = Field(default=OperationStatus.pending.value, index=True)
    payload: str = "{}"
    entity_id: Optional[str] = None
    group_id: Optional[str] = None
    retry_count: int = Field(default=0)
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now, index=True)

    @classmethod
    def from_operation(cls, operation: OfflineOperation) -> "OfflineOperationRow":
        try:
            payload = json.dumps(operation.payload, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise InvalidOperationError(
                f"Operation {operation.id}: payload is not JSON serializable ({exc})"
            ) from exc
        return cls(
            id=operation.id,
            type=operation.type.value,
            status=operation.status.value,
            payload=payload,
            entity_id=operation.entity_id,
            group_id=operation.group_id,
            retry_count=operation.retry_count,
            error_message=operation.error_message,
            created_at=operation.created_at,
        )

    def to_operation(self) -> OfflineOperation:
        try:
            payload = json.loads(self.payload or "{}")
            op_type = OperationType(self.type)
            status = OperationStatus(self.status)
        except (json.JSONDecodeError, ValueError) as exc:
            raise StorageError(f"Corrupt operation row {self.id}: {exc}") from exc
        return OfflineOperation(
            id=self.id,
            type=op_type,
            payload=payload if isinstance(payload, dict) else {},
            created_at=ensure_utc(self.created_at),
            status=status,
            retry_count=self.retry_count or 0,
            error_message=self.error_message if status is OperationStatus.failed else None,
            entity_id=self.entity_id,
            group_id=self.group_id,
        )


__all__ = ["OfflineOperationRow"]
