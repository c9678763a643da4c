import dataclasses
import uuid

import pytest

from opschat.core.context import OperatorContext, OperatorRole


@pytest.mark.parametrize(
    "role_name, expected",
    [
        ("Super Admin", OperatorRole.SUPER_ADMIN),
        ("super admin", OperatorRole.SUPER_ADMIN),
        ("SUPER_ADMIN", OperatorRole.SUPER_ADMIN),
        ("super-admin", OperatorRole.SUPER_ADMIN),
        ("  Admin ", OperatorRole.ADMIN),
        ("member", OperatorRole.MEMBER),
        ("Operator", OperatorRole.MEMBER),
        ("", OperatorRole.MEMBER),
        (None, OperatorRole.MEMBER),
    ],
)
def test_role_names_normalize_to_closed_enum(role_name, expected):
    assert OperatorRole.from_role_name(role_name) is expected


def test_admin_tier():
    assert OperatorRole.ADMIN.is_admin_tier
    assert OperatorRole.SUPER_ADMIN.is_admin_tier
    assert not OperatorRole.MEMBER.is_admin_tier


def test_context_flags():
    ctx = OperatorContext(operator_id=uuid.uuid4(), role=OperatorRole.ADMIN)
    assert ctx.is_admin_tier
    assert not ctx.is_super_admin

    with pytest.raises(dataclasses.FrozenInstanceError):
        ctx.role = OperatorRole.SUPER_ADMIN
