from enum import Enum

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException


GENERIC_ERROR_MESSAGE = "Something went wrong"


class ErrorKind(str, Enum):
    validation = "validation"
    not_found = "not_found"
    conflict = "conflict"
    unauthorized = "unauthorized"


STATUS_BY_KIND = {
    ErrorKind.validation: 400,
    ErrorKind.not_found: 404,
    ErrorKind.conflict: 400,
    ErrorKind.unauthorized: 401,
}


class AppError(Exception):
    """Domain failure carrying the kind it maps to and a client-facing message."""

    kind: ErrorKind = ErrorKind.validation
    message: str = GENERIC_ERROR_MESSAGE

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


class ValidationError(AppError):
    kind = ErrorKind.validation
    message = "Validation error"


class NotAuthorizedError(AppError):
    kind = ErrorKind.unauthorized
    message = "Not authorized"


# ---------- user ----------

class BadCredentialsError(AppError):
    kind = ErrorKind.unauthorized
    message = "Bad credentials"


class UserAlreadyExistsError(AppError):
    kind = ErrorKind.conflict
    message = "User with such email already exists"


class UserNotFoundError(AppError):
    kind = ErrorKind.not_found
    message = "User not found"


# ---------- friendship ----------

class WrongFriendshipTargetError(AppError):
    kind = ErrorKind.conflict
    message = "Wrong friendship target"


class FriendshipAlreadyExistsError(AppError):
    kind = ErrorKind.conflict
    message = "Friendship already exists"


class FriendshipNotFoundError(AppError):
    kind = ErrorKind.not_found
    message = "Friendship not found"


class FriendshipAlreadyAcceptedError(AppError):
    kind = ErrorKind.conflict
    message = "Friendship already accepted"


class FriendshipAlreadyRejectedError(AppError):
    kind = ErrorKind.conflict
    message = "Friendship already rejected"


# ---------- message ----------

class WrongMessageTargetError(AppError):
    kind = ErrorKind.conflict
    message = "Wrong message target"


class MessageRangeError(AppError):
    kind = ErrorKind.validation
    message = "Message range error"


# ---------- handlers ----------

def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return ValidationError.message

    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    msg = first.get("msg", ValidationError.message)
    return f'"{location}" {msg}' if location else msg


async def app_error_handler(request: Request, exc: AppError):
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.message}")
    return _error_response(exc.status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    message = _first_validation_message(exc)
    logger.info(f"{request.method} {request.url.path} -> 400 {message}")
    return _error_response(400, message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, str(exc.detail))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    return _error_response(500, GENERIC_ERROR_MESSAGE)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
