"""
Notification feed: the most recent unread messages across the caller's visible rooms.
"""
from typing import Any, Dict, List, Optional
import uuid
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opschat.core.config import settings
from opschat.core.context import OperatorContext
from opschat.core.database import utcnow
from opschat.core.exceptions import StorageError
from opschat.crud import chat_message_crud, chat_participant_crud, operator_crud
from opschat.service.visibility import RoomVisibilityResolver

logger = logging.getLogger(__name__)


class NotificationAssembler:
    def __init__(self, db: Session, context: OperatorContext):
        self.db = db
        self.context = context
        self.visibility = RoomVisibilityResolver(db, context)

    def recent(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Newest unread messages from others, enriched with sender and room names."""
        limit = settings.NOTIFICATION_LIMIT if limit is None else limit
        rows = chat_message_crud.recent_unread(
            self.db,
            operator_id=self.context.operator_id,
            scope=self.visibility.visible_clause(),
            limit=limit,
        )
        usernames = operator_crud.usernames_by_id(
            self.db, operator_ids=[msg.sender_id for msg, _ in rows]
        )
        return [
            {
                "id": msg.id,
                "message": msg.body,
                "message_type": msg.message_type,
                "created_at": msg.created_at,
                "sender_id": msg.sender_id,
                "sender_username": usernames.get(msg.sender_id, "Unknown"),
                "room_id": room.id,
                "room_type": room.room_type,
                "room_name": room.display_name,
            }
            for msg, room in rows
        ]

    def mark_read(self, message_ids: List[uuid.UUID]) -> int:
        """
        Flip the given messages to read for the caller.

        Ids authored by the caller, already read, or outside the caller's visible
        rooms are ignored, so resubmitting the same ids is a no-op. Every room
        touched gets the caller's last_read_at bumped. Returns the flipped count.
        """
        pairs = chat_message_crud.unread_in_scope(
            self.db,
            message_ids=list(set(message_ids)),
            operator_id=self.context.operator_id,
            scope=self.visibility.visible_clause(),
        )
        if not pairs:
            return 0
        now = utcnow()
        room_ids = list({room_id for _, room_id in pairs})
        try:
            flipped = chat_message_crud.mark_ids_read(
                self.db, message_ids=[message_id for message_id, _ in pairs], at=now
            )
            chat_participant_crud.touch_last_read(
                self.db, operator_id=self.context.operator_id, room_ids=room_ids, at=now
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Failed to mark notifications read: %s", e)
            raise StorageError()
        logger.info(f"Operator {self.context.operator_id} dismissed {flipped} notification(s)")
        return flipped
