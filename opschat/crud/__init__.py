from opschat.crud.operator_crud import operator_crud
from opschat.crud.chat_room_crud import chat_room_crud
from opschat.crud.chat_participant_crud import chat_participant_crud
from opschat.crud.chat_message_crud import chat_message_crud
from opschat.crud.chat_attachment_crud import chat_attachment_crud

__all__ = [
    "operator_crud",
    "chat_room_crud",
    "chat_participant_crud",
    "chat_message_crud",
    "chat_attachment_crud",
]
