"""
Room visibility: which rooms an operator may see.

Admin-tier operators see every support room plus rooms they actively participate in.
Everyone else sees the support rooms they opened plus rooms they actively participate
in. Soft-deleted rooms are never visible.
"""
import uuid

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from opschat.core.context import OperatorContext
from opschat.core.exceptions import Gone, NotFound
from opschat.crud import chat_participant_crud, chat_room_crud
from opschat.model.chat_room import Active, ChatRoom, RoomType


def room_is_visible(room: ChatRoom, context: OperatorContext, is_active_participant: bool) -> bool:
    """Pure form of the visibility rule, evaluated on a loaded room."""
    if not isinstance(room.state, Active):
        return False
    if is_active_participant:
        return True
    if room.room_type != RoomType.SUPPORT.value:
        return False
    return context.is_admin_tier or room.created_by == context.operator_id


class RoomVisibilityResolver:
    """Builds the per-request room scope used by every read and write path."""

    def __init__(self, db: Session, context: OperatorContext):
        self.db = db
        self.context = context

    def active_room_ids(self):
        return chat_participant_crud.active_room_ids(self.context.operator_id)

    def visible_clause(self):
        """SQL predicate over ChatRoom; always includes the soft-delete tag."""
        is_support = ChatRoom.room_type == RoomType.SUPPORT.value
        participates = ChatRoom.id.in_(self.active_room_ids())
        if self.context.is_admin_tier:
            scope = or_(is_support, participates)
        else:
            scope = or_(
                and_(is_support, ChatRoom.created_by == self.context.operator_id),
                participates,
            )
        return and_(ChatRoom.active_clause(), scope)

    def can_view(self, room: ChatRoom) -> bool:
        participant = chat_participant_crud.get_active(
            self.db, room_id=room.id, operator_id=self.context.operator_id
        )
        return room_is_visible(room, self.context, participant is not None)

    def require_visible(self, room_id: uuid.UUID) -> ChatRoom:
        """
        Load a room the caller may see.

        Raises:
            NotFound: room absent or outside the caller's scope
            Gone: room soft-deleted
        """
        room = chat_room_crud.get_by_id(self.db, room_id=room_id)
        if not room:
            raise NotFound("Room")
        if not isinstance(room.state, Active):
            raise Gone()
        if not self.can_view(room):
            raise NotFound("Room")
        return room
