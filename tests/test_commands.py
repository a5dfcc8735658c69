from datetime import datetime, timezone

import pytest

from core.errors import InvalidOperationError
from models import OfflineOperation, OperationType
from models.commands import (
    AddGroupMember,
    CreateExpense,
    CreateGroup,
    CreateSettlement,
    DeleteExpense,
    RemoveGroupMember,
    UpdateExpense,
    UpdateGroup,
    UpdateProfile,
    UpdateSettlement,
    build_command,
    command_for,
    validate_target,
)


def test_every_operation_type_decodes_to_its_command():
    cases = {
        OperationType.create_expense: ({}, None, "g1", CreateExpense),
        OperationType.update_expense: ({}, "e1", "g1", UpdateExpense),
        OperationType.delete_expense: ({}, "e1", "g1", DeleteExpense),
        OperationType.create_group: ({"name": "Trip"}, None, None, CreateGroup),
        OperationType.update_group: ({}, "g1", None, UpdateGroup),
        OperationType.create_settlement: ({}, None, "g1", CreateSettlement),
        OperationType.update_settlement: ({}, "s1", "g1", UpdateSettlement),
        OperationType.update_profile: ({"displayName": "A"}, None, None, UpdateProfile),
        OperationType.add_group_member: ({"email": "a@b.com"}, "g1", None, AddGroupMember),
        OperationType.remove_group_member: ({"userId": "u2"}, "g1", None, RemoveGroupMember),
    }
    assert set(cases) == set(OperationType)
    for op_type, (payload, entity_id, group_id, expected) in cases.items():
        assert isinstance(build_command(op_type, payload, entity_id, group_id), expected)


def test_command_carries_typed_fields():
    op = OfflineOperation(
        id="op-1",
        type=OperationType.update_settlement,
        payload={"status": "confirmed"},
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        entity_id="s1",
        group_id="g1",
    )
    command = command_for(op)
    assert command == UpdateSettlement(group_id="g1", settlement_id="s1", fields={"status": "confirmed"})


@pytest.mark.parametrize(
    "op_type, payload, entity_id, group_id",
    [
        (OperationType.create_expense, {}, None, None),
        (OperationType.update_expense, {}, "e1", None),
        (OperationType.delete_expense, {}, None, "g1"),
        (OperationType.update_group, {}, None, "g1"),
        (OperationType.create_settlement, {}, "s1", None),
        (OperationType.update_settlement, {}, None, "g1"),
        (OperationType.add_group_member, {}, "g1", None),
        (OperationType.add_group_member, {"email": "a@b.com"}, None, None),
        (OperationType.remove_group_member, {}, "g1", None),
    ],
)
def test_missing_targets_are_rejected(op_type, payload, entity_id, group_id):
    with pytest.raises(InvalidOperationError):
        validate_target(op_type, payload, entity_id, group_id)


def test_invalid_operation_is_a_value_error():
    with pytest.raises(ValueError):
        validate_target(OperationType.create_expense, {})
