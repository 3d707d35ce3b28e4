from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from socialhub.api.deps import get_broker
from socialhub.core.auth import get_current_user_id
from socialhub.core.db import get_db
from socialhub.schemas.message import MarkAsReadRequest, MessageOut, MessageSendRequest
from socialhub.services import messages as message_service
from socialhub.services.broker import NotificationBroker

router = APIRouter(prefix="/message", tags=["message"])


@router.post("/send", response_model=MessageOut)
def send_message(
    payload: MessageSendRequest,
    db: Session = Depends(get_db),
    broker: NotificationBroker = Depends(get_broker),
    user_id: int = Depends(get_current_user_id),
):
    return message_service.send_message(db, broker, user_id, payload.to_user_id, payload.text)


@router.put("/mark-as-read", status_code=204)
def mark_as_read(
    payload: MarkAsReadRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    message_service.mark_read_range(db, user_id, payload.from_id, payload.to_id)
    return Response(status_code=204)
