"""
Chat notifications API: recent unread messages across visible rooms.
"""
import logging

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from opschat.core.context import OperatorContext
from opschat.core.database import get_db
from opschat.core.dependencies import get_operator_context
from opschat.schema.chat import (
    MarkReadResponse,
    NotificationItem,
    NotificationListResponse,
    NotificationReadBody,
)
from opschat.service.notifications import NotificationAssembler

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    items = [NotificationItem(**n) for n in NotificationAssembler(db, context).recent()]
    return NotificationListResponse(items=items, count=len(items))


@router.post("/read", response_model=MarkReadResponse)
async def mark_notifications_read(
    body: NotificationReadBody,
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """Mark the given messages read. Resubmitting the same ids is a no-op."""
    affected = NotificationAssembler(db, context).mark_read(body.message_ids)
    return MarkReadResponse(affected=affected)


@router.delete("", response_model=MarkReadResponse)
async def dismiss_notifications(
    body: NotificationReadBody = Body(...),
    context: OperatorContext = Depends(get_operator_context),
    db: Session = Depends(get_db),
):
    """Dismiss notifications; same effect as marking them read."""
    affected = NotificationAssembler(db, context).mark_read(body.message_ids)
    return MarkReadResponse(affected=affected)
