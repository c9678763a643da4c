"""
Message gateway: permission-gated message creation and its read-state side effects.
"""
from typing import Callable, Optional
import uuid
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opschat.core.context import OperatorContext, OperatorRole
from opschat.core.database import utcnow
from opschat.core.exceptions import Forbidden, Gone, NotFound, StorageError, ValidationError
from opschat.crud import chat_attachment_crud, chat_message_crud, chat_room_crud
from opschat.model.chat_attachment import ChatAttachment
from opschat.model.chat_message import ChatMessage, MessageType
from opschat.model.chat_participant import ChatParticipant
from opschat.model.chat_room import Active, ChatRoom, RoomType
from opschat.service.participants import ParticipantRegistry

logger = logging.getLogger(__name__)

ParticipantLookup = Callable[[uuid.UUID, uuid.UUID], Optional[ChatParticipant]]


def can_send(
    room: ChatRoom,
    operator_id: uuid.UUID,
    role: OperatorRole,
    participant_lookup: ParticipantLookup,
) -> bool:
    """
    Whether an operator may post a text message into a room.

    Support rooms: the creator, or anyone admin-tier. Personal and group rooms: an
    active participant whose can_send_messages flag is set.
    """
    if room.room_type == RoomType.SUPPORT.value:
        return room.created_by == operator_id or role.is_admin_tier
    participant = participant_lookup(room.id, operator_id)
    return bool(participant and participant.left_at is None and participant.can_send_messages)


class MessageGateway:
    def __init__(self, db: Session):
        self.db = db
        self.participants = ParticipantRegistry(db)

    def _load_live_room(self, room_id: uuid.UUID) -> ChatRoom:
        room = chat_room_crud.get_by_id(self.db, room_id=room_id)
        if not room:
            raise NotFound("Room")
        if not isinstance(room.state, Active):
            raise Gone()
        return room

    def send_message(
        self,
        room_id: uuid.UUID,
        context: OperatorContext,
        body: str,
        message_type: MessageType = MessageType.TEXT,
    ) -> ChatMessage:
        """
        Persist a message from the caller.

        Raises:
            ValidationError: blank body
            NotFound: room absent
            Gone: room soft-deleted
            Forbidden: caller may not post here (system messages skip this check)
        """
        content = (body or "").strip()
        if not content:
            raise ValidationError("Message content cannot be empty or whitespace only.", code="EMPTY_CONTENT")
        room = self._load_live_room(room_id)
        if message_type is not MessageType.SYSTEM and not can_send(
            room, context.operator_id, context.role, self.participants.active_participant
        ):
            raise Forbidden("You don't have permission to send messages in this chat.")
        msg = self._persist(room, context.operator_id, content, message_type, pre_read=False)
        self.participants.touch_last_read(room.id, context, at=msg.created_at)
        return msg

    def post_system_message(
        self,
        room: ChatRoom,
        context: OperatorContext,
        body: str,
        pre_read: bool = False,
    ) -> ChatMessage:
        """Trusted internal writer for lifecycle events. No permission check."""
        if not isinstance(room.state, Active):
            raise Gone()
        msg = self._persist(room, context.operator_id, body, MessageType.SYSTEM, pre_read=pre_read)
        self.participants.touch_last_read(room.id, context, at=msg.created_at, upsert=False)
        return msg

    def _persist(
        self,
        room: ChatRoom,
        sender_id: uuid.UUID,
        body: str,
        message_type: MessageType,
        pre_read: bool,
    ) -> ChatMessage:
        now = utcnow()
        try:
            msg = ChatMessage(
                room_id=room.id,
                sender_id=sender_id,
                body=body,
                message_type=message_type.value,
                is_read=pre_read,
                read_at=now if pre_read else None,
                created_at=now,
            )
            self.db.add(msg)
            room.last_message_at = now
            self.db.add(room)
            self.db.commit()
            self.db.refresh(msg)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Failed to save chat message: %s", e)
            raise StorageError("Failed to save message. Please try again.")
        return msg

    def add_attachment(
        self,
        message_id: uuid.UUID,
        context: OperatorContext,
        file_name: str,
        file_url: str,
        file_type: Optional[str] = None,
        file_size: Optional[int] = None,
    ) -> ChatAttachment:
        """Record an externally stored file against one of the caller's own messages."""
        msg = chat_message_crud.get_by_id(self.db, message_id=message_id)
        if not msg:
            raise NotFound("Message")
        self._load_live_room(msg.room_id)
        if msg.sender_id != context.operator_id:
            raise Forbidden("Only the sender can attach files to a message.")
        try:
            return chat_attachment_crud.create_from_dict(
                self.db,
                obj_in={
                    "message_id": msg.id,
                    "file_name": file_name,
                    "file_url": file_url,
                    "file_type": file_type,
                    "file_size": file_size,
                    "uploaded_by": context.operator_id,
                },
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Failed to save attachment: %s", e)
            raise StorageError()
