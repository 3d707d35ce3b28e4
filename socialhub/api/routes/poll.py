from fastapi import APIRouter, Depends, Request
from loguru import logger
from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool

from socialhub.api.deps import get_broker, get_session_factory
from socialhub.core.auth import get_current_user_id
from socialhub.core.config import POLL_BATCH_LIMIT
from socialhub.core.errors import NotAuthorizedError
from socialhub.schemas.message import MessageOut
from socialhub.services.broker import NotificationBroker
from socialhub.services.messages import get_unread, serialize_message

router = APIRouter(prefix="/poll", tags=["poll"])


async def _client_disconnected(request: Request) -> None:
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


def _load_unread(session_factory: sessionmaker, user_id: int) -> list[dict]:
    # short-lived session: a parked poll holds no pooled connection
    with session_factory() as db:
        return [serialize_message(m) for m in get_unread(db, user_id, POLL_BATCH_LIMIT)]


async def _fetch_unread(session_factory: sessionmaker, user_id: int) -> list[dict]:
    return await run_in_threadpool(_load_unread, session_factory, user_id)


@router.get("/{polled_user_id}", response_model=list[MessageOut])
async def poll(
    polled_user_id: int,
    request: Request,
    session_factory: sessionmaker = Depends(get_session_factory),
    broker: NotificationBroker = Depends(get_broker),
    user_id: int = Depends(get_current_user_id),
):
    if polled_user_id != user_id:
        raise NotAuthorizedError()

    # anything already waiting is returned without parking
    unread = await _fetch_unread(session_factory, user_id)
    if unread:
        return unread

    subscription = broker.subscribe(user_id)
    try:
        # catch messages sent between the first check and subscribe
        unread = await _fetch_unread(session_factory, user_id)
    except Exception:
        broker.unsubscribe(subscription)
        subscription.expire()
        raise

    if unread and subscription.expire():
        broker.unsubscribe(subscription)
        return unread

    payload = await broker.wait(subscription, disconnected=_client_disconnected(request))
    if payload is None:
        logger.debug(f"Poll finished empty | user={user_id}")
        return []

    return payload
