"""
Chat attachment model. Reference to a file kept in external storage.
"""
from sqlalchemy import Column, String, BigInteger, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
from opschat.core.database import Base, utcnow


class ChatAttachment(Base):
    __tablename__ = "chat_attachments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    message_id = Column(UUID(as_uuid=True), ForeignKey("chat_messages.id"), nullable=False, index=True)
    file_name = Column(String, nullable=False)
    file_url = Column(String, nullable=False)
    file_type = Column(String, nullable=True)
    file_size = Column(BigInteger, nullable=True)
    uploaded_by = Column(UUID(as_uuid=True), ForeignKey("operators.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    message = relationship("ChatMessage", back_populates="attachments")
