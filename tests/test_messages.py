import uuid
from datetime import datetime

import pytest

from opschat.core.context import OperatorRole
from opschat.core.exceptions import Forbidden, Gone, NotFound, ValidationError
from opschat.model.chat_message import ChatMessage, MessageType
from opschat.model.chat_participant import ChatParticipant
from opschat.model.chat_room import ChatRoom, RoomType
from opschat.service.messages import MessageGateway, can_send
from opschat.service.rooms import RoomLifecycle


def _lookup(participant):
    return lambda room_id, operator_id: participant


def test_support_creator_can_send_without_participant_row():
    creator = uuid.uuid4()
    room = ChatRoom(id=uuid.uuid4(), room_type=RoomType.SUPPORT.value, created_by=creator)
    assert can_send(room, creator, OperatorRole.MEMBER, _lookup(None))


@pytest.mark.parametrize(
    "role, expected",
    [(OperatorRole.MEMBER, False), (OperatorRole.ADMIN, True), (OperatorRole.SUPER_ADMIN, True)],
)
def test_support_non_creator_depends_on_role(role, expected):
    room = ChatRoom(id=uuid.uuid4(), room_type=RoomType.SUPPORT.value, created_by=uuid.uuid4())
    assert can_send(room, uuid.uuid4(), role, _lookup(None)) is expected


@pytest.mark.parametrize("room_type", [RoomType.PERSONAL, RoomType.GROUP])
def test_non_support_rooms_follow_participant_row(room_type):
    me = uuid.uuid4()
    room = ChatRoom(id=uuid.uuid4(), room_type=room_type.value, created_by=me)
    active = ChatParticipant(operator_id=me, can_send_messages=True, left_at=None)
    muted = ChatParticipant(operator_id=me, can_send_messages=False, left_at=None)
    gone = ChatParticipant(operator_id=me, can_send_messages=True, left_at=datetime(2024, 1, 1))

    assert can_send(room, me, OperatorRole.MEMBER, _lookup(active))
    assert not can_send(room, me, OperatorRole.MEMBER, _lookup(muted))
    assert not can_send(room, me, OperatorRole.MEMBER, _lookup(gone))
    # being the creator or a super admin does not matter outside support rooms
    assert not can_send(room, me, OperatorRole.SUPER_ADMIN, _lookup(None))


def _count(db, room_id):
    return db.query(ChatMessage).filter(ChatMessage.room_id == room_id).count()


def test_send_message_persists_and_bumps_room(db, ctx, member, admin):
    room = RoomLifecycle(db).create_support_room(ctx(member), "Billing issue")
    msg = MessageGateway(db).send_message(room.id, ctx(admin), "  On it  ")

    assert msg.body == "On it"
    assert msg.message_type == MessageType.TEXT.value
    assert msg.is_read is False
    db.refresh(room)
    assert room.last_message_at == msg.created_at


def test_sender_gets_last_read_at_upserted(db, ctx, member, admin):
    room = RoomLifecycle(db).create_support_room(ctx(member), "Billing issue")
    msg = MessageGateway(db).send_message(room.id, ctx(admin), "On it")

    row = (
        db.query(ChatParticipant)
        .filter(ChatParticipant.room_id == room.id, ChatParticipant.operator_id == admin.id)
        .one()
    )
    assert row.last_read_at == msg.created_at
    assert row.role == OperatorRole.ADMIN.value


def test_rejected_send_creates_no_row(db, ctx, member, other_member):
    room = RoomLifecycle(db).create_support_room(ctx(member), "Billing issue")
    before = _count(db, room.id)

    with pytest.raises(Forbidden):
        MessageGateway(db).send_message(room.id, ctx(other_member), "let me in")

    assert _count(db, room.id) == before


def test_blank_body_is_rejected(db, ctx, member):
    room = RoomLifecycle(db).create_support_room(ctx(member), "Billing issue")
    with pytest.raises(ValidationError) as exc:
        MessageGateway(db).send_message(room.id, ctx(member), "   ")
    assert exc.value.code == "EMPTY_CONTENT"


def test_unknown_and_deleted_rooms(db, ctx, member, super_admin):
    gateway = MessageGateway(db)
    with pytest.raises(NotFound):
        gateway.send_message(uuid.uuid4(), ctx(member), "hello")

    room = RoomLifecycle(db).create_support_room(ctx(member), "Billing issue")
    RoomLifecycle(db).soft_delete(ctx(super_admin), room.id)
    with pytest.raises(Gone):
        gateway.send_message(room.id, ctx(member), "hello")


def test_system_messages_skip_permission_check(db, ctx, member, other_member):
    room = RoomLifecycle(db).create_support_room(ctx(member), "Billing issue")
    msg = MessageGateway(db).send_message(
        room.id, ctx(other_member), "automated note", message_type=MessageType.SYSTEM
    )
    assert msg.message_type == MessageType.SYSTEM.value


def test_attachment_only_by_sender(db, ctx, member, admin):
    room = RoomLifecycle(db).create_support_room(ctx(member), "Billing issue")
    gateway = MessageGateway(db)
    msg = gateway.send_message(room.id, ctx(member), "see screenshot")

    attachment = gateway.add_attachment(
        msg.id, ctx(member), file_name="shot.png", file_url="https://files.example.com/shot.png",
        file_type="image/png", file_size=1024,
    )
    assert attachment.message_id == msg.id
    assert attachment.uploaded_by == member.id

    with pytest.raises(Forbidden):
        gateway.add_attachment(msg.id, ctx(admin), file_name="x", file_url="https://x")
    with pytest.raises(NotFound):
        gateway.add_attachment(uuid.uuid4(), ctx(member), file_name="x", file_url="https://x")
