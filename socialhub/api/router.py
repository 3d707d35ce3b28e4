from fastapi import APIRouter

from socialhub.api.routes import friendships
from socialhub.api.routes import messages
from socialhub.api.routes import poll
from socialhub.api.routes import users

api_router = APIRouter()

api_router.include_router(users.router)
api_router.include_router(friendships.router)
api_router.include_router(messages.router)
api_router.include_router(poll.router)
