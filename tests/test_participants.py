import uuid

import pytest

from opschat.core.context import OperatorRole
from opschat.core.exceptions import AlreadyParticipant, Forbidden, NotFound, NotParticipant
from opschat.model.chat_message import ChatMessage, MessageType
from opschat.model.chat_participant import ChatParticipant
from opschat.service.participants import ParticipantRegistry
from opschat.service.rooms import GroupMembershipManager, RoomLifecycle


@pytest.fixture
def group(db, ctx, super_admin, member):
    return RoomLifecycle(db).create_group(ctx(super_admin), "Ops", [member.id])


def test_add_snapshots_role_at_add_time(db, ctx, group, super_admin, admin):
    participant = GroupMembershipManager(db).add_member(ctx(super_admin), group.id, admin.id)
    assert participant.role == OperatorRole.ADMIN.value
    assert participant.added_by == super_admin.id

    admin.role_name = "Operator"
    db.commit()
    db.refresh(participant)
    assert participant.role == OperatorRole.ADMIN.value


def test_add_announces_in_room(db, ctx, group, super_admin, other_member):
    GroupMembershipManager(db).add_member(ctx(super_admin), group.id, other_member.id)
    last = (
        db.query(ChatMessage)
        .filter(ChatMessage.room_id == group.id)
        .order_by(ChatMessage.created_at.desc())
        .first()
    )
    assert last.body == "carl was added to the group"
    assert last.message_type == MessageType.SYSTEM.value


def test_add_twice_conflicts(db, ctx, group, super_admin, member):
    with pytest.raises(AlreadyParticipant):
        GroupMembershipManager(db).add_member(ctx(super_admin), group.id, member.id)


def test_only_super_admin_adds(db, ctx, group, admin, other_member):
    with pytest.raises(Forbidden):
        GroupMembershipManager(db).add_member(ctx(admin), group.id, other_member.id)


def test_add_unknown_operator(db, ctx, group, super_admin):
    with pytest.raises(NotFound):
        GroupMembershipManager(db).add_member(ctx(super_admin), group.id, uuid.uuid4())


def test_registry_refuses_non_group_rooms(db, ctx, super_admin, member, other_member):
    room = RoomLifecycle(db).create_support_room(ctx(member), "Billing issue")
    with pytest.raises(Forbidden):
        ParticipantRegistry(db).add_participant(room, other_member, ctx(super_admin))


def test_remove_is_soft_and_second_call_fails(db, ctx, group, super_admin, member):
    manager = GroupMembershipManager(db)
    removed = manager.remove_member(ctx(super_admin), group.id, member.id)
    assert removed.left_at is not None
    assert db.query(ChatParticipant).filter(ChatParticipant.operator_id == member.id).count() == 1

    with pytest.raises(NotParticipant):
        manager.remove_member(ctx(super_admin), group.id, member.id)


def test_readd_creates_new_active_row(db, ctx, group, super_admin, member):
    manager = GroupMembershipManager(db)
    manager.remove_member(ctx(super_admin), group.id, member.id)
    manager.add_member(ctx(super_admin), group.id, member.id)

    rows = (
        db.query(ChatParticipant)
        .filter(ChatParticipant.room_id == group.id, ChatParticipant.operator_id == member.id)
        .all()
    )
    assert len(rows) == 2
    assert sum(1 for r in rows if r.is_active) == 1


def test_list_active_excludes_left(db, ctx, group, super_admin, member):
    registry = ParticipantRegistry(db)
    assert {p.operator_id for p in registry.list_active(group.id)} == {super_admin.id, member.id}

    registry.remove_participant(group.id, member.id)
    assert {p.operator_id for p in registry.list_active(group.id)} == {super_admin.id}
