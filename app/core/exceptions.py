"""Password reset errors and their HTTP mapping."""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

VALIDATION_ERROR = "VALIDATION_ERROR"
INVALID_CODE = "INVALID_CODE"
INVALID_SESSION = "INVALID_SESSION"
CODE_EXPIRED = "CODE_EXPIRED"
SESSION_EXPIRED = "SESSION_EXPIRED"
ALREADY_USED = "ALREADY_USED"
RATE_LIMITED = "RATE_LIMITED"
PASSWORD_POLICY = "PASSWORD_POLICY"
NOT_VERIFIED = "NOT_VERIFIED"
ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
INTERNAL_ERROR = "INTERNAL_ERROR"


class PasswordResetError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = VALIDATION_ERROR
    default_message: str = "Invalid request"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PasswordResetError):
    code = VALIDATION_ERROR
    default_message = "Invalid request"


class InvalidCodeError(PasswordResetError):
    code = INVALID_CODE
    default_message = "Invalid code"


class InvalidSessionError(PasswordResetError):
    code = INVALID_SESSION
    default_message = "Invalid or expired session"


class ExpiredError(PasswordResetError):
    code = CODE_EXPIRED
    default_message = "Code expired"


class SessionExpiredError(PasswordResetError):
    code = SESSION_EXPIRED
    default_message = "Reset session expired"


class AlreadyUsedError(PasswordResetError):
    code = ALREADY_USED
    default_message = "Code already used"


class RateLimitedError(PasswordResetError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = RATE_LIMITED
    default_message = "Too many attempts. Try again later."


class PolicyError(PasswordResetError):
    code = PASSWORD_POLICY
    default_message = "Password does not meet the requirements."


class NotVerifiedError(PasswordResetError):
    code = NOT_VERIFIED
    default_message = "Code not verified"


class AccountNotFoundError(PasswordResetError):
    """Kept generic on the wire so the reset endpoint does not reveal which accounts exist."""

    code = ACCOUNT_NOT_FOUND
    default_message = "Unable to reset password"


class InternalError(PasswordResetError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = INTERNAL_ERROR
    default_message = "Something went wrong"


def error_body(message: str, code: str) -> dict:
    return {"error": message, "code": code}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PasswordResetError)
    async def password_reset_error_handler(request: Request, exc: PasswordResetError):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.code),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info("Rejected malformed body on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(ValidationError.default_message, VALIDATION_ERROR),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(InternalError.default_message, INTERNAL_ERROR),
        )
