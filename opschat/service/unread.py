"""
Unread aggregation. Counts are advisory: a mark-read racing a fresh send may be off
by the in-flight messages until the next read.
"""
from typing import Dict, List
import uuid
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opschat.core.context import OperatorContext
from opschat.core.database import utcnow
from opschat.core.exceptions import StorageError
from opschat.crud import chat_message_crud
from opschat.service.participants import ParticipantRegistry
from opschat.service.visibility import RoomVisibilityResolver

logger = logging.getLogger(__name__)


class UnreadAggregator:
    def __init__(self, db: Session, context: OperatorContext):
        self.db = db
        self.context = context
        self.visibility = RoomVisibilityResolver(db, context)
        self.participants = ParticipantRegistry(db)

    def unread_count(self) -> int:
        """Messages in visible rooms, not authored by the caller, not yet read."""
        return chat_message_crud.count_unread(
            self.db,
            operator_id=self.context.operator_id,
            scope=self.visibility.visible_clause(),
        )

    def unread_by_room(self, room_ids: List[uuid.UUID]) -> Dict[uuid.UUID, int]:
        """Grouped counts for rooms already resolved as visible."""
        return chat_message_crud.count_unread_by_room(
            self.db, operator_id=self.context.operator_id, room_ids=room_ids
        )

    def mark_read(self, room_id: uuid.UUID) -> int:
        """
        Mark every unread message from others in the room as read.

        Returns the number of messages flipped; a repeated call returns 0.
        """
        now = utcnow()
        try:
            flipped = chat_message_crud.mark_room_read(
                self.db, room_id=room_id, operator_id=self.context.operator_id, at=now
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Failed to mark room %s read: %s", room_id, e)
            raise StorageError()
        self.participants.touch_last_read(room_id, self.context, at=now)
        if flipped:
            logger.info(f"Operator {self.context.operator_id} read {flipped} message(s) in room {room_id}")
        return flipped
