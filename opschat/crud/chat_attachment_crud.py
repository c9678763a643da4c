"""
Chat attachment CRUD.
"""
from typing import Any, Dict
from opschat.model.chat_attachment import ChatAttachment
from opschat.crud.base import CRUDBase


class CRUDChatAttachment(CRUDBase[ChatAttachment, Dict[str, Any], Dict[str, Any]]):
    pass


chat_attachment_crud = CRUDChatAttachment(ChatAttachment)
