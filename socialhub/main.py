from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from socialhub.core.config import (
    POLL_MAX_SUBSCRIPTIONS_PER_USER,
    POLL_TIMEOUT_SECONDS,
)
from socialhub.core.errors import register_error_handlers
from socialhub.core.init_db import init_db
from socialhub.core.logging import setup_logging
from socialhub.api.router import api_router
from socialhub.services.broker import NotificationBroker

setup_logging()
logger.info("Starting SocialHub backend")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield
    logger.info(f"Shutting down | parked polls={app.state.broker.waiting_count()}")


app = FastAPI(
    title="SocialHub Backend",
    version="0.1.0",
    lifespan=lifespan,
)

# one broker per process; parked polls live here
app.state.broker = NotificationBroker(
    timeout=POLL_TIMEOUT_SECONDS,
    max_subscriptions_per_user=POLL_MAX_SUBSCRIPTIONS_PER_USER,
)

register_error_handlers(app)

app.include_router(api_router)


@app.get("/health")
def health():
    logger.debug("Health check hit")
    return {"status": "ok"}
