"""
Chat room CRUD.
"""
from typing import Any, Dict, List, Optional
import uuid
from sqlalchemy.orm import Session
from sqlalchemy import desc, func, select

from opschat.model.chat_room import ChatRoom, RoomType
from opschat.model.chat_participant import ChatParticipant
from opschat.crud.base import CRUDBase


class CRUDChatRoom(CRUDBase[ChatRoom, Dict[str, Any], Dict[str, Any]]):
    def get_by_id(self, db: Session, *, room_id: uuid.UUID) -> Optional[ChatRoom]:
        return db.query(self.model).filter(self.model.id == room_id).first()

    def list_in_scope(
        self,
        db: Session,
        *,
        scope: Any,
        room_type: Optional[str] = None,
    ) -> List[ChatRoom]:
        """Rooms matching a visibility scope, newest activity first."""
        base = db.query(self.model).filter(scope)
        if room_type:
            base = base.filter(self.model.room_type == room_type)
        return (
            base.order_by(
                desc(self.model.last_message_at),
                desc(self.model.created_at),
            )
            .all()
        )

    def find_personal_room(
        self, db: Session, *, operator_a: uuid.UUID, operator_b: uuid.UUID
    ) -> Optional[ChatRoom]:
        """Live personal room whose active participants are exactly the two operators."""
        pair = (
            select(ChatParticipant.room_id)
            .where(
                ChatParticipant.left_at.is_(None),
                ChatParticipant.operator_id.in_([operator_a, operator_b]),
            )
            .group_by(ChatParticipant.room_id)
            .having(func.count(func.distinct(ChatParticipant.operator_id)) == 2)
        )
        candidates = (
            db.query(self.model)
            .filter(
                self.model.active_clause(),
                self.model.room_type == RoomType.PERSONAL.value,
                self.model.id.in_(pair),
            )
            .order_by(self.model.created_at)
            .all()
        )
        for room in candidates:
            members = (
                db.query(func.count(ChatParticipant.id))
                .filter(ChatParticipant.room_id == room.id, ChatParticipant.left_at.is_(None))
                .scalar()
            )
            if members == 2:
                return room
        return None


chat_room_crud = CRUDChatRoom(ChatRoom)
