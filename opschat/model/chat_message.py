"""
Chat message model. One message in a room; only is_read/read_at ever change.
"""
from enum import Enum
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, false
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
from opschat.core.database import Base, utcnow


class MessageType(str, Enum):
    TEXT = "text"
    SYSTEM = "system"


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    room_id = Column(UUID(as_uuid=True), ForeignKey("chat_rooms.id"), nullable=False, index=True)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("operators.id"), nullable=False, index=True)
    body = Column(Text, nullable=False)
    message_type = Column(String, nullable=False, default=MessageType.TEXT.value)
    is_read = Column(Boolean, nullable=False, default=False, server_default=false())
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)

    room = relationship("ChatRoom", back_populates="messages")
    attachments = relationship("ChatAttachment", back_populates="message", order_by="ChatAttachment.created_at")
