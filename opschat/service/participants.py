"""
Participant registry: membership facts per room.
"""
from datetime import datetime
from typing import List, Optional
import uuid
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from opschat.core.context import OperatorContext, OperatorRole
from opschat.core.database import utcnow
from opschat.core.exceptions import AlreadyParticipant, Forbidden, NotParticipant, StorageError
from opschat.crud import chat_participant_crud
from opschat.model.chat_participant import ChatParticipant
from opschat.model.chat_room import ChatRoom, RoomType
from opschat.model.operator import Operator

logger = logging.getLogger(__name__)


class ParticipantRegistry:
    """Adds, soft-removes and looks up participants. Nothing is hard-deleted."""

    def __init__(self, db: Session):
        self.db = db

    def active_participant(self, room_id: uuid.UUID, operator_id: uuid.UUID) -> Optional[ChatParticipant]:
        return chat_participant_crud.get_active(self.db, room_id=room_id, operator_id=operator_id)

    def list_active(self, room_id: uuid.UUID) -> List[ChatParticipant]:
        return chat_participant_crud.list_active(self.db, room_id=room_id)

    def enroll(
        self,
        room: ChatRoom,
        operator: Operator,
        added_by: uuid.UUID,
        commit: bool = True,
    ) -> ChatParticipant:
        """
        Insert an active row with the operator's role snapshot, no authorization.

        Used by room creation (creator and initial members) and by add_participant
        once it has authorized the caller.
        """
        if self.active_participant(room.id, operator.id):
            raise AlreadyParticipant()
        snapshot = OperatorRole.from_role_name(operator.role_name)
        try:
            return chat_participant_crud.create_from_dict(
                self.db,
                obj_in={
                    "room_id": room.id,
                    "operator_id": operator.id,
                    "role": snapshot.value,
                    "added_by": added_by,
                },
                commit=commit,
            )
        except IntegrityError:
            # lost a race with a concurrent add for the same operator
            self.db.rollback()
            raise AlreadyParticipant()

    def add_participant(
        self,
        room: ChatRoom,
        operator: Operator,
        acting: OperatorContext,
    ) -> ChatParticipant:
        if not acting.is_super_admin:
            raise Forbidden("Only Super Admin can add participants.")
        if room.room_type != RoomType.GROUP.value:
            raise Forbidden("Participants can only be added to group chats.")
        participant = self.enroll(room, operator, added_by=acting.operator_id)
        logger.info(f"Operator {operator.id} added to room {room.id} by {acting.operator_id}")
        return participant

    def remove_participant(self, room_id: uuid.UUID, operator_id: uuid.UUID) -> ChatParticipant:
        """Soft leave. A second call for the same operator fails with NotParticipant."""
        participant = self.active_participant(room_id, operator_id)
        if not participant:
            raise NotParticipant()
        participant.left_at = utcnow()
        try:
            self.db.add(participant)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Failed to remove participant: %s", e)
            raise StorageError()
        logger.info(f"Operator {operator_id} left room {room_id}")
        return participant

    def touch_last_read(
        self,
        room_id: uuid.UUID,
        context: OperatorContext,
        at: Optional[datetime] = None,
        upsert: bool = True,
    ) -> None:
        """
        Record that the operator has read the room up to now.

        Best-effort: a failure is logged and leaves last_read_at stale; the next
        successful read or mark-read repairs it.
        """
        at = at or utcnow()
        try:
            updated = chat_participant_crud.touch_last_read(
                self.db, operator_id=context.operator_id, room_ids=[room_id], at=at
            )
            if not updated and upsert:
                self.db.add(
                    ChatParticipant(
                        room_id=room_id,
                        operator_id=context.operator_id,
                        role=context.role.value,
                        added_by=context.operator_id,
                        last_read_at=at,
                    )
                )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("last_read_at not updated for %s in %s: %s", context.operator_id, room_id, e)
