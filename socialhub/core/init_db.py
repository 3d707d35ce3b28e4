from loguru import logger
from socialhub.core.db import engine, Base

# Import all models so SQLAlchemy registers them
from socialhub.models.user import User  # noqa: F401
from socialhub.models.friendship import Friendship  # noqa: F401
from socialhub.models.message import Message  # noqa: F401


def init_db(bind=None):
    logger.info("Creating database tables")
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables created")
