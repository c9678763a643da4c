"""
Chat participant model. Links an operator to a room; left_at set means soft-removed.
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Index, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
from opschat.core.database import Base, utcnow


class ChatParticipant(Base):
    __tablename__ = "chat_participants"
    # At most one active row per (room, operator); history rows keep left_at.
    __table_args__ = (
        Index(
            "uq_chat_participants_active",
            "room_id",
            "operator_id",
            unique=True,
            postgresql_where=text("left_at IS NULL"),
            sqlite_where=text("left_at IS NULL"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    room_id = Column(UUID(as_uuid=True), ForeignKey("chat_rooms.id"), nullable=False, index=True)
    operator_id = Column(UUID(as_uuid=True), ForeignKey("operators.id"), nullable=False, index=True)
    role = Column(String, nullable=False, default="member")  # snapshot of the operator's role at add-time
    can_send_messages = Column(Boolean, nullable=False, default=True)
    joined_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    left_at = Column(DateTime(timezone=True), nullable=True)
    last_read_at = Column(DateTime(timezone=True), nullable=True)
    added_by = Column(UUID(as_uuid=True), ForeignKey("operators.id"), nullable=True)

    room = relationship("ChatRoom", back_populates="participants")
    operator = relationship("Operator", foreign_keys=[operator_id])

    @property
    def is_active(self) -> bool:
        return self.left_at is None
