"""Auth endpoints: forgot password, verify OTP, reset password."""

from fastapi import APIRouter

from app.dependencies import ResetService
from app.schemas.auth import (
    ErrorResponse,
    ForgotPasswordRequest,
    OkResponse,
    ResetPasswordRequest,
    VerifyOtpRequest,
    VerifyOtpResponse,
)

router = APIRouter(prefix="/auth", tags=["auth"])

_ERRORS = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


@router.post("/forgot", response_model=OkResponse, responses=_ERRORS)
def forgot_password(body: ForgotPasswordRequest, service: ResetService):
    """Email a 6-digit reset code. Always 200 for well-formed emails to avoid user enumeration."""
    return service.request_reset(body.email)


@router.post(
    "/verify-otp",
    response_model=VerifyOtpResponse,
    responses={**_ERRORS, 429: {"model": ErrorResponse}},
)
def verify_otp(body: VerifyOtpRequest, service: ResetService):
    """Exchange a valid code for a single-use reset session token."""
    return service.verify_code(body.email, body.code)


@router.post("/reset-password", response_model=OkResponse, responses=_ERRORS)
def reset_password(body: ResetPasswordRequest, service: ResetService):
    return service.reset_password(body.email, body.password, body.sessionToken)
