import os
from dotenv import load_dotenv
from loguru import logger

load_dotenv()

ENVIRONMENTS = ("development", "test", "production")


def _get_env(key: str, default: str | None = None) -> str:
    val = os.getenv(key, default)
    if val is None:
        raise RuntimeError(f"Missing required env var: {key}")
    return val


def _get_app_env() -> str:
    env = _get_env("APP_ENV", "development").lower()
    return env if env in ENVIRONMENTS else "development"


APP_ENV = _get_app_env()
DATABASE_URL = _get_env("DATABASE_URL", "sqlite:///./socialhub.db")
LOG_LEVEL = _get_env("LOG_LEVEL", "DEBUG")
LOG_FILE = _get_env("LOG_FILE", "logs/app.log")
SQL_ECHO = _get_env("SQL_ECHO", "false").lower() in ("1", "true", "yes")

# Tokens carry no expiry; logout is client-side discard only.
JWT_SECRET = _get_env("JWT_SECRET", "change-me")
JWT_ALGORITHM = _get_env("JWT_ALGORITHM", "HS256")
BCRYPT_ROUNDS = int(_get_env("BCRYPT_ROUNDS", "10"))

POLL_TIMEOUT_SECONDS = float(_get_env("POLL_TIMEOUT_SECONDS", "30"))
POLL_BATCH_LIMIT = int(_get_env("POLL_BATCH_LIMIT", "100"))
POLL_MAX_SUBSCRIPTIONS_PER_USER = int(_get_env("POLL_MAX_SUBSCRIPTIONS_PER_USER", "16"))

logger.debug(f"Config loaded: APP_ENV={APP_ENV}, DATABASE_URL={DATABASE_URL}, LOG_LEVEL={LOG_LEVEL}")
