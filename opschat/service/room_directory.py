"""
Read side of the chat: room list, room detail and the combined dashboard payload.
"""
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy.orm import Session

from opschat.core.context import OperatorContext, OperatorRole
from opschat.crud import chat_message_crud, chat_participant_crud, chat_room_crud, operator_crud
from opschat.model.chat_room import ChatRoom, RoomType
from opschat.service.notifications import NotificationAssembler
from opschat.service.unread import UnreadAggregator
from opschat.service.visibility import RoomVisibilityResolver


class RoomDirectory:
    def __init__(self, db: Session, context: OperatorContext):
        self.db = db
        self.context = context
        self.visibility = RoomVisibilityResolver(db, context)
        self.unread = UnreadAggregator(db, context)

    def list_rooms(self, room_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Visible rooms, newest activity first, each with its last message, the
        caller's unread count and the active participant count. Personal rooms
        also carry the other participant.

        A fixed number of grouped queries regardless of how many rooms are returned.
        """
        rooms = chat_room_crud.list_in_scope(
            self.db, scope=self.visibility.visible_clause(), room_type=room_type
        )
        room_ids = [room.id for room in rooms]
        latest = chat_message_crud.latest_by_room(self.db, room_ids=room_ids)
        unread = self.unread.unread_by_room(room_ids)
        members = chat_participant_crud.count_active_by_room(self.db, room_ids=room_ids)
        others = chat_participant_crud.counterparts_by_room(
            self.db,
            room_ids=[room.id for room in rooms if room.room_type == RoomType.PERSONAL.value],
            operator_id=self.context.operator_id,
        )
        items = []
        for room in rooms:
            last = latest.get(room.id)
            items.append(
                {
                    "room": room,
                    "last_message": {
                        "body": last.body,
                        "created_at": last.created_at,
                        "sender_id": last.sender_id,
                    } if last else None,
                    "unread_count": unread.get(room.id, 0),
                    "participant_count": members.get(room.id, 0),
                    "other_participant": others.get(room.id),
                }
            )
        return items

    def room_detail(self, room_id: uuid.UUID) -> Dict[str, Any]:
        """Room, full history (oldest first) and active participants. Marks the room read."""
        room: ChatRoom = self.visibility.require_visible(room_id)
        self.unread.mark_read(room.id)
        return {
            "room": room,
            "messages": chat_message_crud.list_by_room(self.db, room_id=room.id),
            "participants": chat_participant_crud.list_active(self.db, room_id=room.id),
        }

    def chat_partners(self) -> List[Dict[str, Any]]:
        """Operators the caller may start a chat with: everyone for admin-tier, else super admins."""
        partners = []
        for op in operator_crud.list_active(self.db, exclude_id=self.context.operator_id):
            role = OperatorRole.from_role_name(op.role_name)
            if self.context.is_admin_tier or role is OperatorRole.SUPER_ADMIN:
                partners.append({"id": op.id, "username": op.username, "email": op.email, "role": role})
        return partners

    def dashboard(self) -> Dict[str, Any]:
        return {
            "rooms": self.list_rooms(),
            "unread_count": self.unread.unread_count(),
            "notifications": NotificationAssembler(self.db, self.context).recent(),
            "operators": self.chat_partners(),
            "operator_info": {
                "id": self.context.operator_id,
                "role": self.context.role,
                "is_admin": self.context.is_admin_tier,
                "is_super_admin": self.context.is_super_admin,
            },
        }
