from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from socialhub.core.errors import MessageRangeError, UserNotFoundError, WrongMessageTargetError
from socialhub.models.message import Message
from socialhub.schemas.message import MessageOut
from socialhub.services.broker import NotificationBroker
from socialhub.services.users import get_user


def serialize_message(message: Message) -> dict:
    return MessageOut.model_validate(message).model_dump(by_alias=True, mode="json")


# ---------- SEND ----------

def send_message(
    db: Session,
    broker: NotificationBroker,
    from_user_id: int,
    to_user_id: Optional[int],
    text: str,
) -> Message:
    if from_user_id == to_user_id:
        raise WrongMessageTargetError("You can not send a message to yourself")

    try:
        get_user(db, to_user_id)
    except UserNotFoundError:
        raise WrongMessageTargetError("Wrong target user id specified")

    msg = Message(
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        text=text,
        is_read=False,
    )
    db.add(msg)
    db.commit()
    db.refresh(msg)

    logger.info(f"Message sent | id={msg.id} from={from_user_id} to={to_user_id}")

    broker.publish(msg.to_user_id, [serialize_message(msg)])
    return msg


# ---------- READ STATE ----------

def mark_read_range(db: Session, acting_user_id: int, from_id: Optional[int], to_id: Optional[int]) -> int:
    if from_id is None or to_id is None:
        raise MessageRangeError('Fields "fromId" and "toId" should be specified')

    if from_id > to_id:
        raise MessageRangeError('Value of "fromId" should be less than value of "toId"')

    # messages in range sent to other users are left alone
    updated = (
        db.query(Message)
        .filter(
            Message.id.between(from_id, to_id),
            Message.to_user_id == acting_user_id,
            Message.is_read.is_(False),
        )
        .update({Message.is_read: True}, synchronize_session=False)
    )
    db.commit()

    logger.info(f"Messages marked read | user={acting_user_id} range=[{from_id}, {to_id}] updated={updated}")
    return updated


def get_unread(db: Session, user_id: int, limit: int = 100) -> list[Message]:
    return (
        db.query(Message)
        .filter(Message.to_user_id == user_id, Message.is_read.is_(False))
        .order_by(Message.id.asc())
        .limit(limit)
        .all()
    )
