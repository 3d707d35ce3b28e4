from fastapi import Request
from sqlalchemy.orm import sessionmaker

from socialhub.core.db import SessionLocal
from socialhub.services.broker import NotificationBroker


def get_broker(request: Request) -> NotificationBroker:
    return request.app.state.broker


# For routes that must not pin a pooled connection for the whole request.
def get_session_factory() -> sessionmaker:
    return SessionLocal
