from opschat.model.operator import Operator
from opschat.model.chat_room import ChatRoom
from opschat.model.chat_participant import ChatParticipant
from opschat.model.chat_message import ChatMessage
from opschat.model.chat_attachment import ChatAttachment

__all__ = ["Operator", "ChatRoom", "ChatParticipant", "ChatMessage", "ChatAttachment"]
