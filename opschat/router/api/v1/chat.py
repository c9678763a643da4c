"""
Chat API: rooms, messages, personal chats, unread count and dashboard (REST, polling).
"""
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from opschat.core.context import OperatorContext
from opschat.core.database import get_db
from opschat.core.dependencies import get_operator_context
from opschat.model.chat_message import MessageType
from opschat.model.chat_room import RoomType
from opschat.schema.chat import (
    AttachmentCreateBody,
    AttachmentResponse,
    DashboardResponse,
    MarkReadResponse,
    MessageCreateBody,
    MessageResponse,
    MessageWithAttachments,
    ParticipantResponse,
    PersonalChatBody,
    PersonalChatResponse,
    RoomDetailResponse,
    RoomListItem,
    RoomListResponse,
    RoomResponse,
    SuccessResponse,
    SupportRoomCreateBody,
    SupportRoomUpdateBody,
    UnreadCountResponse,
)
from opschat.service.messages import MessageGateway
from opschat.service.room_directory import RoomDirectory
from opschat.service.rooms import UNCHANGED, RoomLifecycle
from opschat.service.unread import UnreadAggregator
from opschat.service.visibility import RoomVisibilityResolver

router = APIRouter()
logger = logging.getLogger(__name__)


def room_list_item(entry: Dict[str, Any]) -> RoomListItem:
    """Flatten a RoomDirectory.list_rooms entry into the wire shape."""
    room = RoomResponse.model_validate(entry["room"])
    return RoomListItem(
        **room.model_dump(),
        last_message=entry["last_message"],
        unread_count=entry["unread_count"],
        participant_count=entry["participant_count"],
        other_participant=entry["other_participant"],
    )


# --- REST: Rooms ---

@router.get("/rooms", response_model=RoomListResponse)
async def list_rooms(
    room_type: Optional[RoomType] = None,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """List rooms visible to the current operator, newest activity first."""
    entries = RoomDirectory(db, context).list_rooms(room_type.value if room_type else None)
    items = [room_list_item(e) for e in entries]
    return RoomListResponse(items=items, total=len(items))


@router.post("/rooms", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_support_room(
    body: SupportRoomCreateBody,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """Open a support chat. The caller becomes its first participant."""
    room = RoomLifecycle(db).create_support_room(
        context, subject=body.subject, description=body.description, priority=body.priority
    )
    return RoomResponse.model_validate(room)


@router.get("/rooms/{room_id}", response_model=RoomDetailResponse)
async def get_room(
    room_id: uuid.UUID,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """Room with full message history and attachments. Marks the room read for the caller."""
    detail = RoomDirectory(db, context).room_detail(room_id)
    room = RoomResponse.model_validate(detail["room"])
    return RoomDetailResponse(
        **room.model_dump(),
        messages=[MessageWithAttachments.model_validate(m) for m in detail["messages"]],
        participants=[ParticipantResponse.from_participant(p) for p in detail["participants"]],
    )


@router.patch("/rooms/{room_id}", response_model=RoomResponse)
async def update_support_room(
    room_id: uuid.UUID,
    body: SupportRoomUpdateBody,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """Change status, assignee or priority of a support chat. `"assigned_to": null` unassigns."""
    room = RoomLifecycle(db).update_support_room(
        context,
        room_id,
        status=body.status,
        assigned_to=body.assigned_to if "assigned_to" in body.model_fields_set else UNCHANGED,
        priority=body.priority,
    )
    return RoomResponse.model_validate(room)


@router.delete("/rooms/{room_id}", response_model=SuccessResponse)
async def delete_room(
    room_id: uuid.UUID,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """Soft delete any chat room (Super Admin only)."""
    RoomLifecycle(db).soft_delete(context, room_id)
    return SuccessResponse()


@router.post("/rooms/{room_id}/read", response_model=MarkReadResponse)
async def mark_room_read(
    room_id: uuid.UUID,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """Mark every message from others in the room as read. Idempotent."""
    RoomVisibilityResolver(db, context).require_visible(room_id)
    affected = UnreadAggregator(db, context).mark_read(room_id)
    return MarkReadResponse(affected=affected)


# --- REST: Messages ---

@router.post("/rooms/{room_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def create_message(
    room_id: uuid.UUID,
    body: MessageCreateBody,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """Post a text message. 404 unknown room, 410 deleted room, 403 not allowed to post."""
    msg = MessageGateway(db).send_message(room_id, context, body.message, MessageType(body.message_type))
    return MessageResponse.model_validate(msg)


@router.post(
    "/messages/{message_id}/attachments",
    response_model=AttachmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_attachment(
    message_id: uuid.UUID,
    body: AttachmentCreateBody,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """Attach an externally stored file to one of the caller's messages."""
    attachment = MessageGateway(db).add_attachment(
        message_id,
        context,
        file_name=body.file_name,
        file_url=body.file_url,
        file_type=body.file_type,
        file_size=body.file_size,
    )
    return AttachmentResponse.model_validate(attachment)


# --- REST: Personal chats ---

@router.post("/personal", response_model=PersonalChatResponse, status_code=status.HTTP_201_CREATED)
async def open_personal_chat(
    body: PersonalChatBody,
    response: Response,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """Get or create a personal chat. 201 when created, 200 when it already existed."""
    room, created = RoomLifecycle(db).open_personal_chat(context, body.target_operator_id)
    if not created:
        response.status_code = status.HTTP_200_OK
    return PersonalChatResponse(id=room.id, is_new=created, room=RoomResponse.model_validate(room))


# --- REST: Unread / dashboard ---

@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    return UnreadCountResponse(unread_count=UnreadAggregator(db, context).unread_count())


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """Rooms, unread count, notifications and chat partners in one round trip."""
    data = RoomDirectory(db, context).dashboard()
    data["rooms"] = [room_list_item(e) for e in data["rooms"]]
    return DashboardResponse(**data)
