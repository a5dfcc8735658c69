from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from core.errors import NotAuthenticatedError, RemoteError
from core.log import SYNC, get_logger
from models.commands import (
    AddGroupMember,
    Command,
    CreateExpense,
    CreateGroup,
    CreateSettlement,
    DeleteExpense,
    RemoveGroupMember,
    UpdateExpense,
    UpdateGroup,
    UpdateProfile,
    UpdateSettlement,
    command_for,
)
from models.offline_operation import OfflineOperation
from services.document_store import SERVER_TIMESTAMP, ArrayRemove, ArrayUnion, DocumentStore


def _expenses(group_id: str) -> str:
    return f"groups/{group_id}/expenses"


def _settlements(group_id: str) -> str:
    return f"groups/{group_id}/settlements"


class SyncService:
    """Applies queued operations against the remote document store.

    Used as the queue manager's executor: ``execute`` raises on any failure
    and the queue decides whether the operation is retried.
    """

    def __init__(
        self,
        documents: DocumentStore,
        current_user: Callable[[], Optional[str]],
    ) -> None:
        self.documents = documents
        self._current_user = current_user
        self.logger = get_logger(SYNC)

    def _user_id(self) -> str:
        user_id = self._current_user()
        if not user_id:
            self.logger.error("User not authenticated for sync")
            raise NotAuthenticatedError()
        return user_id

    async def execute(self, operation: OfflineOperation) -> None:
        self.logger.info(
            "Executing offline operation %s (%s, entity=%s, group=%s)",
            operation.id,
            operation.type.value,
            operation.entity_id,
            operation.group_id,
        )
        user_id = self._user_id()
        try:
            await self._apply(command_for(operation), user_id)
        except Exception as exc:
            self.logger.error(
                "Operation %s (%s) execution failed: %s", operation.id, operation.type.value, exc
            )
            raise
        self.logger.info("Operation %s executed successfully", operation.id)

    __call__ = execute

    # ------------------------------------------------------------------
    async def _apply(self, command: Command, user_id: str) -> None:
        if isinstance(command, CreateExpense):
            data = _with(command.fields, createdAt=SERVER_TIMESTAMP, createdBy=user_id, status="active")
            doc_id = await self.documents.add(_expenses(command.group_id), data)
            self.logger.debug("Expense %s created via sync", doc_id)
            return

        if isinstance(command, UpdateExpense):
            data = _with(command.fields, updatedAt=SERVER_TIMESTAMP)
            await self.documents.update(f"{_expenses(command.group_id)}/{command.expense_id}", data)
            return

        if isinstance(command, DeleteExpense):
            # expenses are soft deleted so balances can still be audited
            await self.documents.update(
                f"{_expenses(command.group_id)}/{command.expense_id}",
                {"status": "deleted", "deletedAt": SERVER_TIMESTAMP, "deletedBy": user_id},
            )
            return

        if isinstance(command, CreateGroup):
            data = _with(
                command.fields,
                createdAt=SERVER_TIMESTAMP,
                createdBy=user_id,
                memberIds=[user_id],
                admins=[user_id],
            )
            doc_id = await self.documents.add("groups", data)
            self.logger.debug("Group %s created via sync", doc_id)
            return

        if isinstance(command, UpdateGroup):
            data = _with(command.fields, updatedAt=SERVER_TIMESTAMP)
            await self.documents.update(f"groups/{command.group_id}", data)
            return

        if isinstance(command, CreateSettlement):
            data = _with(command.fields, createdAt=SERVER_TIMESTAMP, status="pending")
            doc_id = await self.documents.add(_settlements(command.group_id), data)
            self.logger.debug("Settlement %s created via sync", doc_id)
            return

        if isinstance(command, UpdateSettlement):
            data = dict(command.fields)
            if data.get("status") == "confirmed":
                data["confirmedAt"] = SERVER_TIMESTAMP
                data["confirmedBy"] = user_id
            await self.documents.update(
                f"{_settlements(command.group_id)}/{command.settlement_id}", data
            )
            return

        if isinstance(command, UpdateProfile):
            data = _with(command.fields, updatedAt=SERVER_TIMESTAMP)
            await self.documents.update(f"users/{user_id}", data)
            return

        if isinstance(command, AddGroupMember):
            member_id = await self.documents.find_one("users", "email", command.email)
            if member_id is None:
                self.logger.warning("User not found for email %s", command.email)
                raise RemoteError(f"User not found with email: {command.email}")
            await self.documents.update(
                f"groups/{command.group_id}", {"memberIds": ArrayUnion([member_id])}
            )
            self.logger.info("Member %s added to group %s", member_id, command.group_id)
            return

        if isinstance(command, RemoveGroupMember):
            await self.documents.update(
                f"groups/{command.group_id}", {"memberIds": ArrayRemove([command.user_id])}
            )
            self.logger.info("Member %s removed from group %s", command.user_id, command.group_id)
            return

        raise TypeError(f"Unhandled command: {command!r}")


def _with(fields: Dict[str, Any], **extra: Any) -> Dict[str, Any]:
    data = dict(fields)
    data.update(extra)
    return data


__all__ = ["SyncService"]
