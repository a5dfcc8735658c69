"""Operation records queued while the device is offline.

A record is an immutable value. Every status change goes through one of the
``mark_*`` / ``recycle`` / ``reset_for_retry`` helpers, which return a new
record and refuse edges outside the lifecycle::

    pending -> inProgress -> completed
                          -> pending    (failed attempt, retries left)
                          -> failed     (failed attempt, limit reached)
    failed  -> pending                  (user retry)
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from core.errors import InvalidTransitionError
from datetime_utils import ensure_utc, parse_iso, to_iso


class OperationStatus(str, Enum):
    pending = "pending"
    in_progress = "inProgress"
    completed = "completed"
    failed = "failed"


class OperationType(str, Enum):
    create_expense = "createExpense"
    update_expense = "updateExpense"
    delete_expense = "deleteExpense"
    create_group = "createGroup"
    update_group = "updateGroup"
    create_settlement = "createSettlement"
    update_settlement = "updateSettlement"
    update_profile = "updateProfile"
    add_group_member = "addGroupMember"
    remove_group_member = "removeGroupMember"


_TRANSITIONS = {
    (OperationStatus.pending, OperationStatus.in_progress),
    (OperationStatus.in_progress, OperationStatus.completed),
    (OperationStatus.in_progress, OperationStatus.pending),
    (OperationStatus.in_progress, OperationStatus.failed),
    (OperationStatus.failed, OperationStatus.pending),
}


def _parse_enum(enum_cls, value, fallback):
    try:
        return enum_cls(value)
    except ValueError:
        return fallback


@dataclass(frozen=True)
class OfflineOperation:
    id: str
    type: OperationType
    created_at: datetime
    payload: Dict[str, Any] = field(default_factory=dict)
    status: OperationStatus = OperationStatus.pending
    retry_count: int = 0
    error_message: Optional[str] = None
    entity_id: Optional[str] = None
    group_id: Optional[str] = None

    # ------------------------------------------------------------------
    # Transitions
    def _move(self, target: OperationStatus, **changes: Any) -> "OfflineOperation":
        if (self.status, target) not in _TRANSITIONS:
            raise InvalidTransitionError(
                f"Operation {self.id}: cannot move from {self.status.value} to {target.value}"
            )
        return replace(self, status=target, **changes)

    def mark_in_progress(self) -> "OfflineOperation":
        return self._move(OperationStatus.in_progress)

    def mark_completed(self) -> "OfflineOperation":
        return self._move(OperationStatus.completed)

    def mark_failed(self, reason: str) -> "OfflineOperation":
        return self._move(OperationStatus.failed, error_message=reason or "Unknown error")

    def recycle(self) -> "OfflineOperation":
        """Put an attempted operation back in line, keeping its retry count."""
        return self._move(OperationStatus.pending)

    def increment_retry(self) -> "OfflineOperation":
        return replace(self, retry_count=self.retry_count + 1)

    def reset_for_retry(self) -> "OfflineOperation":
        if self.status is OperationStatus.pending:
            return replace(self, retry_count=0, error_message=None)
        if self.status is not OperationStatus.failed:
            raise InvalidTransitionError(
                f"Operation {self.id}: only failed or pending operations can be retried"
            )
        return self._move(OperationStatus.pending, retry_count=0, error_message=None)

    def has_exceeded(self, retry_limit: int) -> bool:
        return self.retry_count >= retry_limit

    # ------------------------------------------------------------------
    # Serialization
    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "data": dict(self.payload),
            "createdAt": to_iso(self.created_at),
            "retryCount": self.retry_count,
            "status": self.status.value,
            "errorMessage": self.error_message,
            "entityId": self.entity_id,
            "groupId": self.group_id,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "OfflineOperation":
        """Rebuild a record from :meth:`to_json` output.

        Unknown ``type`` values fall back to ``createExpense`` and unknown
        ``status`` values to ``pending``. A missing id or an unparsable
        ``createdAt`` raises ``ValueError``.
        """
        op_id = data.get("id")
        if not op_id:
            raise ValueError("Operation record without id")
        created_at = parse_iso(data.get("createdAt"))
        if created_at is None:
            raise ValueError(f"Operation {op_id}: invalid createdAt {data.get('createdAt')!r}")

        status = _parse_enum(OperationStatus, data.get("status"), OperationStatus.pending)
        error_message = data.get("errorMessage")
        if status is OperationStatus.failed:
            error_message = error_message or "Unknown error"
        else:
            error_message = None

        return cls(
            id=str(op_id),
            type=_parse_enum(OperationType, data.get("type"), OperationType.create_expense),
            payload=dict(data.get("data") or {}),
            created_at=ensure_utc(created_at),
            retry_count=max(int(data.get("retryCount") or 0), 0),
            status=status,
            error_message=error_message,
            entity_id=data.get("entityId"),
            group_id=data.get("groupId"),
        )

    def __str__(self) -> str:
        return (
            f"OfflineOperation(id: {self.id}, type: {self.type.value}, "
            f"status: {self.status.value}, retryCount: {self.retry_count})"
        )


__all__ = ["OfflineOperation", "OperationStatus", "OperationType"]
