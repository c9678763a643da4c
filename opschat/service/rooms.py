"""
Room lifecycle and group membership: creation, metadata/status updates, soft delete,
participant add/remove. Every lifecycle event is recorded as a system message.
"""
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
import uuid
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opschat.core.context import OperatorContext, OperatorRole
from opschat.core.database import utcnow
from opschat.core.exceptions import Forbidden, Gone, NotFound, StorageError, ValidationError
from opschat.crud import chat_room_crud, operator_crud
from opschat.model.chat_participant import ChatParticipant
from opschat.model.chat_room import Active, ChatRoom, Deleted, RoomPriority, RoomStatus, RoomType
from opschat.model.operator import Operator
from opschat.service.messages import MessageGateway
from opschat.service.participants import ParticipantRegistry
from opschat.service.visibility import RoomVisibilityResolver

logger = logging.getLogger(__name__)

# update_support_room default for "leave the assignee as it is"
UNCHANGED = object()


class RoomStatusPolicy:
    """
    Support-room status and assignment rules.

    With ``transitions`` unset every jump is allowed. Assigning a table of
    ``{current: {allowed next, ...}}`` enforces it without touching callers.
    ``assignable`` likewise limits the statuses in which the assignee may change.
    """

    def __init__(
        self,
        transitions: Optional[Dict[RoomStatus, Set[RoomStatus]]] = None,
        assignable: Optional[Set[RoomStatus]] = None,
    ):
        self.transitions = transitions
        self.assignable = assignable

    def check_transition(self, current: RoomStatus, new: RoomStatus) -> None:
        if self.transitions is None or current == new:
            return
        if new not in self.transitions.get(current, set()):
            raise ValidationError(
                f"Cannot change status from {current.value} to {new.value}.",
                code="INVALID_STATUS_TRANSITION",
            )

    def check_assignment(self, current: RoomStatus) -> None:
        if self.assignable is None or current in self.assignable:
            return
        raise ValidationError(
            f"Cannot change the assignee of a {current.value} chat.",
            code="ASSIGNMENT_NOT_ALLOWED",
        )


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to %s: %s", what, e)
        raise StorageError()


class RoomLifecycle:
    def __init__(self, db: Session, status_policy: Optional[RoomStatusPolicy] = None):
        self.db = db
        self.status_policy = status_policy or RoomStatusPolicy()
        self.participants = ParticipantRegistry(db)
        self.messages = MessageGateway(db)

    def require_operator(self, operator_id: uuid.UUID) -> Operator:
        operator = operator_crud.get(self.db, operator_id)
        if not operator:
            raise NotFound("Operator")
        return operator

    def require_operators(self, operator_ids: Iterable[uuid.UUID]) -> List[Operator]:
        """Load operators in the given order; any unknown id is a 404."""
        ordered = list(dict.fromkeys(operator_ids))
        found = {op.id: op for op in operator_crud.get_many(self.db, ordered)}
        missing = [i for i in ordered if i not in found]
        if missing:
            raise NotFound("Operator")
        return [found[i] for i in ordered]

    def _open_room(self, creator: OperatorContext, members: List[Operator], **fields) -> ChatRoom:
        """Insert the room and its initial participants in one commit."""
        room = chat_room_crud.create_from_dict(
            self.db,
            obj_in={"created_by": creator.operator_id, "status": RoomStatus.OPEN.value, **fields},
            commit=False,
        )
        for operator in members:
            self.participants.enroll(room, operator, added_by=creator.operator_id, commit=False)
        _commit(self.db, "create chat room")
        self.db.refresh(room)
        return room

    def load_live(self, room_id: uuid.UUID, room_type: Optional[RoomType] = None) -> ChatRoom:
        room = chat_room_crud.get_by_id(self.db, room_id=room_id)
        if not room or (room_type and room.room_type != room_type.value):
            raise NotFound("Group" if room_type is RoomType.GROUP else "Room")
        if not isinstance(room.state, Active):
            raise Gone()
        return room

    # --- creation ---

    def create_support_room(
        self,
        context: OperatorContext,
        subject: str,
        description: Optional[str] = None,
        priority: RoomPriority = RoomPriority.NORMAL,
    ) -> ChatRoom:
        subject = (subject or "").strip()
        if not subject:
            raise ValidationError("Subject is required.")
        creator = self.require_operator(context.operator_id)
        room = self._open_room(
            context,
            [creator],
            room_type=RoomType.SUPPORT.value,
            subject=subject,
            description=description,
            priority=priority.value,
        )
        self.messages.post_system_message(room, context, f"Support chat created: {subject}", pre_read=True)
        logger.info(f"Support room {room.id} opened by {context.operator_id}")
        return room

    def create_group(
        self,
        context: OperatorContext,
        group_name: str,
        participant_ids: List[uuid.UUID],
        description: Optional[str] = None,
    ) -> ChatRoom:
        if not context.is_super_admin:
            raise Forbidden("Only Super Admin can create group chats.")
        group_name = (group_name or "").strip()
        if not group_name:
            raise ValidationError("Group name is required.")
        if not participant_ids:
            raise ValidationError("At least one participant is required.")
        members = self.require_operators([context.operator_id, *participant_ids])
        room = self._open_room(
            context,
            members,
            room_type=RoomType.GROUP.value,
            group_name=group_name,
            subject=group_name,
            description=description,
        )
        self.messages.post_system_message(
            room, context, f'Group "{group_name}" created with {len(members)} members', pre_read=True
        )
        logger.info(f"Group {room.id} created by {context.operator_id} with {len(members)} members")
        return room

    def open_personal_chat(
        self, context: OperatorContext, target_operator_id: uuid.UUID
    ) -> Tuple[ChatRoom, bool]:
        """Get or create the personal room between the caller and target. Returns (room, created)."""
        if target_operator_id == context.operator_id:
            raise ValidationError("Cannot create personal chat with yourself.")
        initiator = self.require_operator(context.operator_id)
        target = self.require_operator(target_operator_id)
        target_role = OperatorRole.from_role_name(target.role_name)
        if not context.is_super_admin and target_role is not OperatorRole.SUPER_ADMIN:
            raise Forbidden("You can only create personal chats with Super Admin.")
        existing = chat_room_crud.find_personal_room(
            self.db, operator_a=initiator.id, operator_b=target.id
        )
        if existing:
            return existing, False
        room = self._open_room(
            context,
            [initiator, target],
            room_type=RoomType.PERSONAL.value,
            subject=f"Personal Chat with {target.username}",
        )
        self.messages.post_system_message(room, context, "Personal chat started", pre_read=True)
        logger.info(f"Personal room {room.id} opened between {initiator.id} and {target.id}")
        return room, True

    # --- updates ---

    def update_support_room(
        self,
        context: OperatorContext,
        room_id: uuid.UUID,
        status: Optional[RoomStatus] = None,
        assigned_to: Any = UNCHANGED,
        priority: Optional[RoomPriority] = None,
    ) -> ChatRoom:
        """
        Apply the given changes. ``assigned_to=None`` clears the assignee; leaving
        it as ``UNCHANGED`` keeps the current one.
        """
        room = RoomVisibilityResolver(self.db, context).require_visible(room_id)
        if room.room_type != RoomType.SUPPORT.value:
            raise ValidationError("Only support chats have a status or assignee.")
        changes = {}
        if assigned_to is not UNCHANGED and assigned_to != room.assigned_to:
            self.status_policy.check_assignment(RoomStatus(room.status))
            if assigned_to is not None:
                self.require_operator(assigned_to)
            changes["assigned_to"] = assigned_to
        status_changed = status is not None and status.value != room.status
        if status_changed:
            self.status_policy.check_transition(RoomStatus(room.status), status)
            changes["status"] = status.value
        if priority is not None:
            changes["priority"] = priority.value
        chat_room_crud.update(self.db, db_obj=room, obj_in=changes, commit=False)
        _commit(self.db, "update chat room")
        self.db.refresh(room)
        if status_changed:
            self.messages.post_system_message(room, context, f"Status changed to: {status.value}")
            logger.info(f"Room {room.id} status -> {status.value} by {context.operator_id}")
        return room

    def update_group(
        self,
        context: OperatorContext,
        room_id: uuid.UUID,
        group_name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ChatRoom:
        if not context.is_super_admin:
            raise Forbidden("Only Super Admin can update groups.")
        room = self.load_live(room_id, RoomType.GROUP)
        changes = {}
        if group_name is not None:
            group_name = group_name.strip()
            if not group_name:
                raise ValidationError("Group name cannot be empty.")
            changes["group_name"] = group_name
            changes["subject"] = group_name
        if description is not None:
            changes["description"] = description
        chat_room_crud.update(self.db, db_obj=room, obj_in=changes, commit=False)
        _commit(self.db, "update group")
        self.db.refresh(room)
        return room

    def soft_delete(
        self,
        context: OperatorContext,
        room_id: uuid.UUID,
        room_type: Optional[RoomType] = None,
    ) -> ChatRoom:
        """Mark the room deleted. Participant rows stay for audit."""
        if not context.is_super_admin:
            raise Forbidden("Only Super Admin can delete chat rooms.")
        room = self.load_live(room_id, room_type)
        room.state = Deleted(at=utcnow(), by=context.operator_id)
        self.db.add(room)
        _commit(self.db, "delete chat room")
        logger.info(f"Room {room.id} soft-deleted by {context.operator_id}")
        return room


class GroupMembershipManager:
    """Super-admin-only membership changes on group rooms, each announced in the room."""

    def __init__(self, db: Session):
        self.db = db
        self.lifecycle = RoomLifecycle(db)
        self.participants = self.lifecycle.participants
        self.messages = self.lifecycle.messages

    def add_member(
        self, context: OperatorContext, room_id: uuid.UUID, operator_id: uuid.UUID
    ) -> ChatParticipant:
        if not context.is_super_admin:
            raise Forbidden("Only Super Admin can add participants.")
        room = self.lifecycle.load_live(room_id, RoomType.GROUP)
        operator = self.lifecycle.require_operator(operator_id)
        participant = self.participants.add_participant(room, operator, context)
        self.messages.post_system_message(room, context, f"{operator.username} was added to the group")
        return participant

    def remove_member(
        self, context: OperatorContext, room_id: uuid.UUID, operator_id: uuid.UUID
    ) -> ChatParticipant:
        if not context.is_super_admin:
            raise Forbidden("Only Super Admin can remove participants.")
        room = self.lifecycle.load_live(room_id, RoomType.GROUP)
        operator = self.lifecycle.require_operator(operator_id)
        participant = self.participants.remove_participant(room.id, operator.id)
        self.messages.post_system_message(room, context, f"{operator.username} was removed from the group")
        return participant
