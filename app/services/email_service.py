"""Send transactional email (password reset codes).

Delivery is best-effort: nothing here raises. Callers get a ``DeliveryResult``
and decide what to do with it; the reset flow only logs it so the response
never reveals whether an account exists or whether mail went out.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Protocol

import httpx

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)

RESET_CODE_SUBJECT = "Cortexa Affect password reset code"


@dataclass(frozen=True)
class DeliveryResult:
    delivered: bool
    provider: str
    error: Optional[str] = None


class Mailer(Protocol):
    def send_password_reset_code(
        self, email: str, code: str, expires_in_minutes: int
    ) -> DeliveryResult: ...


def render_reset_code_body(code: str, expires_in_minutes: int) -> str:
    return (
        f"Your Cortexa Affect password reset code is {code}. "
        f"It expires in {expires_in_minutes} minutes. "
        "If you did not request this, please ignore the message."
    )


class ResendMailer:
    """Resend HTTP API (https://resend.com/docs/api-reference/emails/send-email)."""

    provider = "resend"

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None):
        self.settings = settings
        self.client = client

    def send_password_reset_code(
        self, email: str, code: str, expires_in_minutes: int
    ) -> DeliveryResult:
        payload = {
            "from": self.settings.reset_email_from,
            "to": [email],
            "subject": RESET_CODE_SUBJECT,
            "text": render_reset_code_body(code, expires_in_minutes),
        }
        headers = {
            "Authorization": f"Bearer {self.settings.resend_api_key}",
            "Content-Type": "application/json",
        }
        try:
            if self.client is not None:
                resp = self.client.post(self.settings.resend_api_url, json=payload, headers=headers)
            else:
                resp = httpx.post(
                    self.settings.resend_api_url,
                    json=payload,
                    headers=headers,
                    timeout=self.settings.email_timeout_seconds,
                )
        except httpx.HTTPError as e:
            logger.error("OTP email send failed for %s: %s", email, e, exc_info=True)
            return DeliveryResult(delivered=False, provider=self.provider, error=str(e))
        if resp.status_code >= 400:
            logger.error(
                "Failed to send OTP email via Resend (status=%s): %s", resp.status_code, resp.text
            )
            return DeliveryResult(
                delivered=False,
                provider=self.provider,
                error=f"HTTP {resp.status_code}",
            )
        logger.info("Sent password reset code to %s via Resend", email)
        return DeliveryResult(delivered=True, provider=self.provider)


class SmtpMailer:
    provider = "smtp"

    def __init__(self, settings: Settings):
        self.settings = settings

    def send_password_reset_code(
        self, email: str, code: str, expires_in_minutes: int
    ) -> DeliveryResult:
        settings = self.settings
        msg = MIMEMultipart("alternative")
        msg["Subject"] = RESET_CODE_SUBJECT
        msg["From"] = settings.reset_email_from
        msg["To"] = email
        msg.attach(MIMEText(render_reset_code_body(code, expires_in_minutes), "plain"))
        try:
            with smtplib.SMTP(
                settings.smtp_host, settings.smtp_port, timeout=settings.email_timeout_seconds
            ) as smtp:
                if settings.smtp_use_tls:
                    smtp.starttls()
                if settings.smtp_user and settings.smtp_password:
                    smtp.login(settings.smtp_user, settings.smtp_password)
                smtp.sendmail(settings.reset_email_from, [email], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error("OTP email send failed for %s: %s", email, e, exc_info=True)
            return DeliveryResult(delivered=False, provider=self.provider, error=str(e))
        logger.info("Sent password reset code to %s via SMTP", email)
        return DeliveryResult(delivered=True, provider=self.provider)


class LogMailer:
    """No provider configured. Only development builds print the code."""

    provider = "log"

    def __init__(self, settings: Settings):
        self.settings = settings

    def send_password_reset_code(
        self, email: str, code: str, expires_in_minutes: int
    ) -> DeliveryResult:
        if self.settings.environment == "development":
            logger.warning("[OTP EMAIL - NO PROVIDER] %s: %s", email, code)
        else:
            logger.warning("No email provider configured; reset code for %s not sent", email)
        return DeliveryResult(delivered=False, provider=self.provider, error="no provider configured")


def build_mailer(settings: Optional[Settings] = None) -> Mailer:
    settings = settings or get_settings()
    if settings.resend_api_key:
        return ResendMailer(settings)
    if settings.smtp_host:
        return SmtpMailer(settings)
    return LogMailer(settings)
