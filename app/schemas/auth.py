"""Password reset request/response schemas.

Fields are optional strings; presence and format are checked by the service so
that every rejection comes back as a 400 with an ``error`` message.
"""

from typing import Optional

from pydantic import BaseModel


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class VerifyOtpRequest(BaseModel):
    email: Optional[str] = None
    code: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    sessionToken: Optional[str] = None


class OkResponse(BaseModel):
    ok: bool = True


class VerifyOtpResponse(BaseModel):
    ok: bool = True
    sessionToken: str


class ErrorResponse(BaseModel):
    error: str
    code: str
