"""Typed commands decoded from queued operation records.

Records carry an untyped payload so they can be stored as JSON; the
executor works on these dataclasses instead. Each operation type has
exactly one command class and :func:`command_for` checks that the ids the
command needs are present.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Union

from core.errors import InvalidOperationError
from models.offline_operation import OfflineOperation, OperationType


@dataclass(frozen=True)
class CreateExpense:
    group_id: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UpdateExpense:
    group_id: str
    expense_id: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeleteExpense:
    group_id: str
    expense_id: str


@dataclass(frozen=True)
class CreateGroup:
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UpdateGroup:
    group_id: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CreateSettlement:
    group_id: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UpdateSettlement:
    group_id: str
    settlement_id: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UpdateProfile:
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AddGroupMember:
    group_id: str
    email: str


@dataclass(frozen=True)
class RemoveGroupMember:
    group_id: str
    user_id: str


Command = Union[
    CreateExpense,
    UpdateExpense,
    DeleteExpense,
    CreateGroup,
    UpdateGroup,
    CreateSettlement,
    UpdateSettlement,
    UpdateProfile,
    AddGroupMember,
    RemoveGroupMember,
]


def _require(value: Optional[str], message: str) -> str:
    if not value:
        raise InvalidOperationError(message)
    return str(value)


def _create_expense(payload, entity_id, group_id):
    return CreateExpense(_require(group_id, "Group ID required"), dict(payload))


def _update_expense(payload, entity_id, group_id):
    if not entity_id or not group_id:
        raise InvalidOperationError("Expense ID and Group ID required")
    return UpdateExpense(group_id, entity_id, dict(payload))


def _delete_expense(payload, entity_id, group_id):
    if not entity_id or not group_id:
        raise InvalidOperationError("Expense ID and Group ID required")
    return DeleteExpense(group_id, entity_id)


def _create_group(payload, entity_id, group_id):
    return CreateGroup(dict(payload))


def _update_group(payload, entity_id, group_id):
    return UpdateGroup(_require(entity_id, "Group ID required"), dict(payload))


def _create_settlement(payload, entity_id, group_id):
    return CreateSettlement(_require(group_id, "Group ID required"), dict(payload))


def _update_settlement(payload, entity_id, group_id):
    if not entity_id or not group_id:
        raise InvalidOperationError("Settlement ID and Group ID required")
    return UpdateSettlement(group_id, entity_id, dict(payload))


def _update_profile(payload, entity_id, group_id):
    return UpdateProfile(dict(payload))


def _add_group_member(payload, entity_id, group_id):
    group = _require(entity_id, "Group ID required")
    return AddGroupMember(group, _require(payload.get("email"), "Email required"))


def _remove_group_member(payload, entity_id, group_id):
    if not entity_id or not payload.get("userId"):
        raise InvalidOperationError("Group ID and User ID required")
    return RemoveGroupMember(entity_id, str(payload["userId"]))


_DECODERS: Dict[OperationType, Callable[..., Command]] = {
    OperationType.create_expense: _create_expense,
    OperationType.update_expense: _update_expense,
    OperationType.delete_expense: _delete_expense,
    OperationType.create_group: _create_group,
    OperationType.update_group: _update_group,
    OperationType.create_settlement: _create_settlement,
    OperationType.update_settlement: _update_settlement,
    OperationType.update_profile: _update_profile,
    OperationType.add_group_member: _add_group_member,
    OperationType.remove_group_member: _remove_group_member,
}


def build_command(
    op_type: OperationType,
    payload: Mapping[str, Any],
    entity_id: Optional[str] = None,
    group_id: Optional[str] = None,
) -> Command:
    """Decode raw operation fields into the command for ``op_type``."""
    decoder = _DECODERS.get(op_type)
    if decoder is None:
        raise InvalidOperationError(f"Unsupported operation type: {op_type}")
    return decoder(payload or {}, entity_id, group_id)


def command_for(operation: OfflineOperation) -> Command:
    return build_command(operation.type, operation.payload, operation.entity_id, operation.group_id)


def validate_target(
    op_type: OperationType,
    payload: Mapping[str, Any],
    entity_id: Optional[str] = None,
    group_id: Optional[str] = None,
) -> None:
    build_command(op_type, payload, entity_id, group_id)


__all__ = [
    "AddGroupMember",
    "Command",
    "CreateExpense",
    "CreateGroup",
    "CreateSettlement",
    "DeleteExpense",
    "RemoveGroupMember",
    "UpdateExpense",
    "UpdateGroup",
    "UpdateProfile",
    "UpdateSettlement",
    "build_command",
    "command_for",
    "validate_target",
]
