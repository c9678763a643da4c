"""
Chat room model. One conversation scope: support ticket, personal chat or group.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union
import uuid

from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, false
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from opschat.core.database import Base, utcnow


class RoomType(str, Enum):
    SUPPORT = "support"
    PERSONAL = "personal"
    GROUP = "group"


class RoomStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class RoomPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


@dataclass(frozen=True)
class Active:
    pass


@dataclass(frozen=True)
class Deleted:
    at: Optional[datetime]
    by: Optional[uuid.UUID]


RoomState = Union[Active, Deleted]


class ChatRoom(Base):
    __tablename__ = "chat_rooms"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    room_type = Column(String, nullable=False, default=RoomType.SUPPORT.value, index=True)
    subject = Column(String, nullable=True)
    group_name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=RoomStatus.OPEN.value)
    priority = Column(String, nullable=False, default=RoomPriority.NORMAL.value)
    created_by = Column(UUID(as_uuid=True), ForeignKey("operators.id"), nullable=False, index=True)
    assigned_to = Column(UUID(as_uuid=True), ForeignKey("operators.id"), nullable=True)
    last_message_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)
    # Soft delete: is_deleted is the tag, deleted_at/deleted_by its payload.
    is_deleted = Column(Boolean, nullable=False, default=False, server_default=false())
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(UUID(as_uuid=True), ForeignKey("operators.id"), nullable=True)

    participants = relationship("ChatParticipant", back_populates="room")
    messages = relationship("ChatMessage", back_populates="room", order_by="ChatMessage.created_at")

    @property
    def state(self) -> RoomState:
        if self.is_deleted:
            return Deleted(at=self.deleted_at, by=self.deleted_by)
        return Active()

    @state.setter
    def state(self, value: RoomState) -> None:
        if isinstance(value, Deleted):
            self.is_deleted = True
            self.deleted_at = value.at
            self.deleted_by = value.by
        else:
            self.is_deleted = False
            self.deleted_at = None
            self.deleted_by = None

    @property
    def display_name(self) -> Optional[str]:
        if self.room_type == RoomType.GROUP.value:
            return self.group_name
        return self.subject

    @classmethod
    def active_clause(cls):
        """SQL side of the soft-delete tag; every room query filters through this."""
        return cls.is_deleted == false()
