"""
Chat participant CRUD.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func, select

from opschat.model.chat_participant import ChatParticipant
from opschat.model.operator import Operator
from opschat.crud.base import CRUDBase


class CRUDChatParticipant(CRUDBase[ChatParticipant, Dict[str, Any], Dict[str, Any]]):
    def get_active(
        self, db: Session, *, room_id: uuid.UUID, operator_id: uuid.UUID
    ) -> Optional[ChatParticipant]:
        return (
            db.query(self.model)
            .filter(
                self.model.room_id == room_id,
                self.model.operator_id == operator_id,
                self.model.left_at.is_(None),
            )
            .first()
        )

    def active_room_ids(self, operator_id: uuid.UUID):
        """SELECT of room ids where the operator currently participates."""
        return select(self.model.room_id).where(
            self.model.operator_id == operator_id,
            self.model.left_at.is_(None),
        )

    def list_active(self, db: Session, *, room_id: uuid.UUID) -> List[ChatParticipant]:
        return (
            db.query(self.model)
            .options(joinedload(self.model.operator))
            .filter(self.model.room_id == room_id, self.model.left_at.is_(None))
            .order_by(self.model.joined_at)
            .all()
        )

    def count_active_by_room(self, db: Session, *, room_ids: List[uuid.UUID]) -> Dict[uuid.UUID, int]:
        if not room_ids:
            return {}
        rows = (
            db.query(self.model.room_id, func.count(self.model.id))
            .filter(self.model.room_id.in_(room_ids), self.model.left_at.is_(None))
            .group_by(self.model.room_id)
            .all()
        )
        return {room_id: count for room_id, count in rows}

    def counterparts_by_room(
        self, db: Session, *, room_ids: List[uuid.UUID], operator_id: uuid.UUID
    ) -> Dict[uuid.UUID, Dict[str, Any]]:
        """
        Earliest-joined active participant other than the operator, per room,
        as ``{id, username}``. One query for every room.
        """
        if not room_ids:
            return {}
        rows = (
            db.query(self.model.room_id, Operator.id, Operator.username)
            .join(Operator, Operator.id == self.model.operator_id)
            .filter(
                self.model.room_id.in_(room_ids),
                self.model.operator_id != operator_id,
                self.model.left_at.is_(None),
            )
            .order_by(self.model.joined_at, self.model.id)
            .all()
        )
        counterparts: Dict[uuid.UUID, Dict[str, Any]] = {}
        for room_id, other_id, username in rows:
            counterparts.setdefault(room_id, {"id": other_id, "username": username})
        return counterparts

    def touch_last_read(
        self,
        db: Session,
        *,
        operator_id: uuid.UUID,
        room_ids: List[uuid.UUID],
        at: datetime,
    ) -> int:
        """Bump last_read_at on the operator's active rows. Caller commits."""
        if not room_ids:
            return 0
        return (
            db.query(self.model)
            .filter(
                self.model.operator_id == operator_id,
                self.model.room_id.in_(room_ids),
                self.model.left_at.is_(None),
            )
            .update({self.model.last_read_at: at}, synchronize_session="fetch")
        )


chat_participant_crud = CRUDChatParticipant(ChatParticipant)
