"""
Chat message CRUD. Aggregates are single grouped queries, never per-message loops.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
import uuid
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import false, func, select

from opschat.model.chat_message import ChatMessage
from opschat.model.chat_room import ChatRoom
from opschat.crud.base import CRUDBase


class CRUDChatMessage(CRUDBase[ChatMessage, Dict[str, Any], Dict[str, Any]]):
    def get_by_id(self, db: Session, *, message_id: uuid.UUID) -> Optional[ChatMessage]:
        return db.query(self.model).filter(self.model.id == message_id).first()

    def list_by_room(self, db: Session, *, room_id: uuid.UUID) -> List[ChatMessage]:
        """Full history, oldest first, attachments eagerly loaded."""
        return (
            db.query(self.model)
            .options(selectinload(self.model.attachments))
            .filter(self.model.room_id == room_id)
            .order_by(self.model.created_at.asc(), self.model.id.asc())
            .all()
        )

    def latest_by_room(self, db: Session, *, room_ids: List[uuid.UUID]) -> Dict[uuid.UUID, ChatMessage]:
        if not room_ids:
            return {}
        ranked = (
            select(
                self.model.id.label("id"),
                func.row_number()
                .over(
                    partition_by=self.model.room_id,
                    order_by=(self.model.created_at.desc(), self.model.id.desc()),
                )
                .label("rn"),
            )
            .where(self.model.room_id.in_(room_ids))
            .subquery()
        )
        rows = (
            db.query(self.model)
            .join(ranked, ranked.c.id == self.model.id)
            .filter(ranked.c.rn == 1)
            .all()
        )
        return {m.room_id: m for m in rows}

    def _unread_for(self, db: Session, operator_id: uuid.UUID, *columns):
        return (
            db.query(*columns)
            .select_from(self.model)
            .join(ChatRoom, ChatRoom.id == self.model.room_id)
            .filter(
                self.model.sender_id != operator_id,
                self.model.is_read == false(),
            )
        )

    def count_unread(self, db: Session, *, operator_id: uuid.UUID, scope: Any) -> int:
        return (
            self._unread_for(db, operator_id, func.count(self.model.id))
            .filter(scope)
            .scalar()
            or 0
        )

    def count_unread_by_room(
        self, db: Session, *, operator_id: uuid.UUID, room_ids: List[uuid.UUID]
    ) -> Dict[uuid.UUID, int]:
        if not room_ids:
            return {}
        rows = (
            self._unread_for(db, operator_id, self.model.room_id, func.count(self.model.id))
            .filter(self.model.room_id.in_(room_ids))
            .group_by(self.model.room_id)
            .all()
        )
        return {room_id: count for room_id, count in rows}

    def recent_unread(
        self, db: Session, *, operator_id: uuid.UUID, scope: Any, limit: int
    ) -> List[Tuple[ChatMessage, ChatRoom]]:
        return (
            self._unread_for(db, operator_id, self.model, ChatRoom)
            .filter(scope)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
            .limit(limit)
            .all()
        )

    def mark_room_read(
        self, db: Session, *, room_id: uuid.UUID, operator_id: uuid.UUID, at: datetime
    ) -> int:
        """Flip every unread message from others in the room. Caller commits."""
        return (
            db.query(self.model)
            .filter(
                self.model.room_id == room_id,
                self.model.sender_id != operator_id,
                self.model.is_read == false(),
            )
            .update({self.model.is_read: True, self.model.read_at: at}, synchronize_session="fetch")
        )

    def unread_in_scope(
        self,
        db: Session,
        *,
        message_ids: List[uuid.UUID],
        operator_id: uuid.UUID,
        scope: Any,
    ) -> List[Tuple[uuid.UUID, uuid.UUID]]:
        """(message_id, room_id) pairs among message_ids the operator may flip."""
        if not message_ids:
            return []
        rows = (
            self._unread_for(db, operator_id, self.model.id, self.model.room_id)
            .filter(self.model.id.in_(message_ids))
            .filter(scope)
            .all()
        )
        return [(row[0], row[1]) for row in rows]

    def mark_ids_read(self, db: Session, *, message_ids: List[uuid.UUID], at: datetime) -> int:
        if not message_ids:
            return 0
        return (
            db.query(self.model)
            .filter(self.model.id.in_(message_ids), self.model.is_read == false())
            .update({self.model.is_read: True, self.model.read_at: at}, synchronize_session="fetch")
        )


chat_message_crud = CRUDChatMessage(ChatMessage)
