"""
API Router - all endpoints.
"""
from fastapi import APIRouter
from opschat.router.api.v1 import chat, chat_groups, chat_notifications

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(
    chat.router,
    prefix="/chat",
    tags=["Chat"],
)

api_router.include_router(
    chat_groups.router,
    prefix="/chat/groups",
    tags=["Chat Groups"],
)

api_router.include_router(
    chat_notifications.router,
    prefix="/chat/notifications",
    tags=["Chat Notifications"],
)
