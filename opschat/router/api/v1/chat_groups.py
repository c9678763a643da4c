"""
Group chat API (Super Admin managed).
"""
import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from opschat.core.context import OperatorContext
from opschat.core.database import get_db
from opschat.core.dependencies import get_operator_context
from opschat.core.exceptions import NotFound
from opschat.model.chat_room import RoomType
from opschat.schema.chat import (
    GroupCreateBody,
    GroupDetailResponse,
    GroupUpdateBody,
    ParticipantAddBody,
    ParticipantResponse,
    RoomResponse,
    SuccessResponse,
)
from opschat.service.participants import ParticipantRegistry
from opschat.service.rooms import GroupMembershipManager, RoomLifecycle
from opschat.service.visibility import RoomVisibilityResolver

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    body: GroupCreateBody,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """Create a group chat with the given members (creator always included)."""
    room = RoomLifecycle(db).create_group(
        context,
        group_name=body.group_name,
        participant_ids=body.participant_ids,
        description=body.description,
    )
    return RoomResponse.model_validate(room)


@router.get("/{room_id}", response_model=GroupDetailResponse)
async def get_group(
    room_id: uuid.UUID,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """Group details with its active participants."""
    room = RoomVisibilityResolver(db, context).require_visible(room_id)
    if room.room_type != RoomType.GROUP.value:
        raise NotFound("Group")
    participants = ParticipantRegistry(db).list_active(room.id)
    return GroupDetailResponse(
        **RoomResponse.model_validate(room).model_dump(),
        participants=[ParticipantResponse.from_participant(p) for p in participants],
    )


@router.patch("/{room_id}", response_model=RoomResponse)
async def update_group(
    room_id: uuid.UUID,
    body: GroupUpdateBody,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    room = RoomLifecycle(db).update_group(
        context, room_id, group_name=body.group_name, description=body.description
    )
    return RoomResponse.model_validate(room)


@router.delete("/{room_id}", response_model=SuccessResponse)
async def delete_group(
    room_id: uuid.UUID,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    RoomLifecycle(db).soft_delete(context, room_id, RoomType.GROUP)
    return SuccessResponse()


@router.post(
    "/{room_id}/participants",
    response_model=ParticipantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_participant(
    room_id: uuid.UUID,
    body: ParticipantAddBody,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """Add an operator to the group. 409 if already an active participant."""
    participant = GroupMembershipManager(db).add_member(context, room_id, body.participant_id)
    return ParticipantResponse.from_participant(participant)


@router.delete("/{room_id}/participants/{operator_id}", response_model=ParticipantResponse)
async def remove_participant(
    room_id: uuid.UUID,
    operator_id: uuid.UUID,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """Remove an operator from the group (soft leave). 409 if not an active participant."""
    participant = GroupMembershipManager(db).remove_member(context, room_id, operator_id)
    return ParticipantResponse.from_participant(participant)
