import uuid

import pytest

from opschat.core.context import OperatorContext, OperatorRole
from opschat.core.exceptions import Gone, NotFound
from opschat.crud import chat_room_crud
from opschat.model.chat_room import ChatRoom, RoomType
from opschat.service.rooms import GroupMembershipManager, RoomLifecycle
from opschat.service.visibility import RoomVisibilityResolver, room_is_visible


def _room(room_type, created_by, is_deleted=False):
    return ChatRoom(id=uuid.uuid4(), room_type=room_type.value, created_by=created_by, is_deleted=is_deleted)


@pytest.mark.parametrize(
    "role, own, participant, expected",
    [
        (OperatorRole.MEMBER, True, False, True),
        (OperatorRole.MEMBER, False, False, False),
        (OperatorRole.MEMBER, False, True, True),
        (OperatorRole.ADMIN, False, False, True),
        (OperatorRole.SUPER_ADMIN, False, False, True),
    ],
)
def test_support_room_visibility_rule(role, own, participant, expected):
    me = uuid.uuid4()
    room = _room(RoomType.SUPPORT, me if own else uuid.uuid4())
    assert room_is_visible(room, OperatorContext(me, role), participant) is expected


@pytest.mark.parametrize("room_type", [RoomType.PERSONAL, RoomType.GROUP])
@pytest.mark.parametrize("role", list(OperatorRole))
def test_personal_and_group_rooms_need_participation(room_type, role):
    me = uuid.uuid4()
    room = _room(room_type, me)
    ctx = OperatorContext(me, role)
    assert room_is_visible(room, ctx, True)
    assert not room_is_visible(room, ctx, False)


def test_deleted_room_is_never_visible():
    me = uuid.uuid4()
    room = _room(RoomType.SUPPORT, me, is_deleted=True)
    assert not room_is_visible(room, OperatorContext(me, OperatorRole.SUPER_ADMIN), True)


def _visible_ids(db, context):
    scope = RoomVisibilityResolver(db, context).visible_clause()
    return {room.id for room in chat_room_crud.list_in_scope(db, scope=scope)}


def test_scope_matches_rule_across_operators(db, ctx, member, other_member, admin, super_admin):
    lifecycle = RoomLifecycle(db)
    mine = lifecycle.create_support_room(ctx(member), "Billing issue")
    theirs = lifecycle.create_support_room(ctx(other_member), "Printer on fire")
    personal, _ = lifecycle.open_personal_chat(ctx(member), super_admin.id)
    group = lifecycle.create_group(ctx(super_admin), "Ops", [other_member.id])

    assert _visible_ids(db, ctx(member)) == {mine.id, personal.id}
    assert _visible_ids(db, ctx(other_member)) == {theirs.id, group.id}
    assert _visible_ids(db, ctx(admin)) == {mine.id, theirs.id}
    assert _visible_ids(db, ctx(super_admin)) == {mine.id, theirs.id, personal.id, group.id}


def test_member_without_rooms_sees_nothing(db, ctx, member, other_member):
    RoomLifecycle(db).create_support_room(ctx(other_member), "Not yours")
    assert _visible_ids(db, ctx(member)) == set()


def test_removal_takes_effect_on_next_read(db, ctx, super_admin, other_member):
    group = RoomLifecycle(db).create_group(ctx(super_admin), "Ops", [other_member.id])
    assert group.id in _visible_ids(db, ctx(other_member))

    GroupMembershipManager(db).remove_member(ctx(super_admin), group.id, other_member.id)

    assert group.id not in _visible_ids(db, ctx(other_member))


def test_require_visible_errors(db, ctx, member, other_member, super_admin):
    lifecycle = RoomLifecycle(db)
    room = lifecycle.create_support_room(ctx(member), "Billing issue")
    resolver = RoomVisibilityResolver(db, ctx(other_member))

    with pytest.raises(NotFound):
        resolver.require_visible(uuid.uuid4())
    with pytest.raises(NotFound):
        resolver.require_visible(room.id)
    assert RoomVisibilityResolver(db, ctx(member)).require_visible(room.id).id == room.id

    lifecycle.soft_delete(ctx(super_admin), room.id)
    with pytest.raises(Gone):
        RoomVisibilityResolver(db, ctx(member)).require_visible(room.id)
