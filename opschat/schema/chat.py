"""
Chat schemas: rooms, participants, messages, notifications.
"""
from datetime import datetime
from typing import List, Literal, Optional
import uuid
from pydantic import BaseModel, Field

from opschat.core.context import OperatorRole
from opschat.model.chat_room import RoomPriority, RoomStatus, RoomType


# --- Room ---


class RoomResponse(BaseModel):
    """Room attributes as stored."""
    id: uuid.UUID
    room_type: RoomType
    subject: Optional[str] = None
    group_name: Optional[str] = None
    description: Optional[str] = None
    status: RoomStatus
    priority: RoomPriority
    created_by: uuid.UUID
    assigned_to: Optional[uuid.UUID] = None
    last_message_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SupportRoomCreateBody(BaseModel):
    """Body for POST /chat/rooms."""
    subject: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    priority: RoomPriority = RoomPriority.NORMAL


class SupportRoomUpdateBody(BaseModel):
    """Body for PATCH /chat/rooms/{room_id}. Omitted fields are left unchanged; a null assigned_to unassigns."""
    status: Optional[RoomStatus] = None
    assigned_to: Optional[uuid.UUID] = None
    priority: Optional[RoomPriority] = None


class LastMessage(BaseModel):
    """Last message of a room in the room list."""
    body: str
    created_at: datetime
    sender_id: uuid.UUID


class OtherParticipant(BaseModel):
    """The operator on the other side of a personal chat."""
    id: uuid.UUID
    username: str


class RoomListItem(RoomResponse):
    """Room in list with unread count and last message."""
    last_message: Optional[LastMessage] = None
    unread_count: int = 0
    participant_count: int = 0
    other_participant: Optional[OtherParticipant] = None


class RoomListResponse(BaseModel):
    items: List[RoomListItem]
    total: int = Field(..., description="Number of visible rooms.")


# --- Participant ---


class ParticipantResponse(BaseModel):
    operator_id: uuid.UUID
    username: Optional[str] = None
    email: Optional[str] = None
    role: OperatorRole
    can_send_messages: bool
    joined_at: Optional[datetime] = None
    left_at: Optional[datetime] = None
    last_read_at: Optional[datetime] = None
    added_by: Optional[uuid.UUID] = None

    @classmethod
    def from_participant(cls, participant) -> "ParticipantResponse":
        operator = participant.operator
        return cls(
            operator_id=participant.operator_id,
            username=operator.username if operator else None,
            email=operator.email if operator else None,
            role=OperatorRole(participant.role),
            can_send_messages=participant.can_send_messages,
            joined_at=participant.joined_at,
            left_at=participant.left_at,
            last_read_at=participant.last_read_at,
            added_by=participant.added_by,
        )


class ParticipantAddBody(BaseModel):
    """Body for POST /chat/groups/{room_id}/participants."""
    participant_id: uuid.UUID


# --- Message ---


class MessageCreateBody(BaseModel):
    """Body for POST /chat/rooms/{room_id}/messages. System messages are internal only."""
    message: str = Field(..., min_length=1, max_length=10_000)
    message_type: Literal["text"] = "text"


class AttachmentCreateBody(BaseModel):
    """Reference to a file already uploaded to external storage."""
    file_name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1)
    file_type: Optional[str] = None
    file_size: Optional[int] = Field(None, ge=0)


class AttachmentResponse(BaseModel):
    id: uuid.UUID
    message_id: uuid.UUID
    file_name: str
    file_url: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    uploaded_by: uuid.UUID
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    """Single message."""
    id: uuid.UUID
    room_id: uuid.UUID
    sender_id: uuid.UUID
    body: str
    message_type: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MessageWithAttachments(MessageResponse):
    attachments: List[AttachmentResponse] = []


class RoomDetailResponse(RoomResponse):
    messages: List[MessageWithAttachments]
    participants: List[ParticipantResponse]


# --- Group / personal ---


class GroupCreateBody(BaseModel):
    """Body for POST /chat/groups."""
    group_name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    participant_ids: List[uuid.UUID] = Field(..., min_length=1)


class GroupUpdateBody(BaseModel):
    group_name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None


class GroupDetailResponse(RoomResponse):
    participants: List[ParticipantResponse]


class PersonalChatBody(BaseModel):
    """Body for POST /chat/personal."""
    target_operator_id: uuid.UUID


class PersonalChatResponse(BaseModel):
    id: uuid.UUID
    is_new: bool
    room: RoomResponse


# --- Unread / notifications ---


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkReadResponse(BaseModel):
    success: bool = True
    affected: int


class NotificationItem(BaseModel):
    id: uuid.UUID
    message: str
    message_type: str
    created_at: Optional[datetime] = None
    sender_id: uuid.UUID
    sender_username: str
    room_id: uuid.UUID
    room_type: RoomType
    room_name: Optional[str] = None


class NotificationListResponse(BaseModel):
    items: List[NotificationItem]
    count: int


class NotificationReadBody(BaseModel):
    message_ids: List[uuid.UUID]


# --- Dashboard ---


class ChatPartner(BaseModel):
    id: uuid.UUID
    username: str
    email: str
    role: OperatorRole


class OperatorInfo(BaseModel):
    id: uuid.UUID
    role: OperatorRole
    is_admin: bool
    is_super_admin: bool


class DashboardResponse(BaseModel):
    rooms: List[RoomListItem]
    unread_count: int
    notifications: List[NotificationItem]
    operators: List[ChatPartner]
    operator_info: OperatorInfo


class SuccessResponse(BaseModel):
    success: bool = True
