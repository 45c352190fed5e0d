"""Password reset by emailed one-time code: request, verify, reset.

request_reset  -> challenge row with a hashed 6-digit code, code emailed
verify_code    -> lock / expiry / constant-time hash check, mints a session token
reset_password -> session token authorizes exactly one credential change
"""

import logging
from datetime import timedelta
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import SQLAlchemyError

from app.config import Settings, get_settings
from app.core.clock import Clock, SystemClock, ensure_utc
from app.core.exceptions import (
    AccountNotFoundError,
    AlreadyUsedError,
    ExpiredError,
    InternalError,
    InvalidCodeError,
    InvalidSessionError,
    NotVerifiedError,
    PolicyError,
    RateLimitedError,
    SessionExpiredError,
    ValidationError,
)
from app.core.password_policy import password_policy_violation
from app.core.security import generate_session_token, issue_otp, verify_otp_code
from app.db.models.password_reset import PasswordResetChallenge
from app.services.email_service import Mailer
from app.services.identity_service import IdentityProvider, IdentityProviderError
from app.services.reset_store import PasswordResetStore

logger = logging.getLogger(__name__)


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class PasswordResetService:
    def __init__(
        self,
        store: PasswordResetStore,
        identity: IdentityProvider,
        mailer: Mailer,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.identity = identity
        self.mailer = mailer
        self.clock = clock or SystemClock()
        self.settings = settings or get_settings()

    def request_reset(self, email: Optional[str]) -> dict:
        """Start a reset. Returns ok for unknown addresses too, so accounts can't be enumerated."""
        normalized = normalize_email(email)
        if not normalized:
            raise ValidationError("Email is required")
        try:
            validate_email(normalized, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError("Email is invalid") from e

        try:
            account = self.identity.find_account_by_email(normalized)
        except IdentityProviderError:
            logger.exception("Account lookup failed during password reset request")
            raise InternalError("Something went wrong")
        if not account:
            logger.info("Password reset requested for unknown email")
            return {"ok": True}

        settings = self.settings
        now = self.clock.now()
        code, salt, code_hash = issue_otp(settings.otp_length)
        challenge = PasswordResetChallenge(
            user_id=account.id,
            email=normalized,
            code_hash=code_hash,
            code_salt=salt,
            expires_at=now + timedelta(minutes=settings.otp_expire_minutes),
            attempts=0,
            locked_until=None,
            verified_at=None,
            session_token=None,
            session_token_expires_at=now
            + timedelta(minutes=settings.reset_session_expire_minutes),
            consumed_at=None,
            created_at=now,
        )
        try:
            self.store.replace_for_user(challenge)
        except SQLAlchemyError:
            logger.exception("Failed to insert password reset challenge for user %s", account.id)
            raise InternalError("Password reset could not be started")

        # Best-effort: the caller sees success whether or not the mail went out.
        result = self.mailer.send_password_reset_code(
            normalized, code, settings.otp_expire_minutes
        )
        if not result.delivered:
            logger.warning(
                "Password reset code for %s not delivered (provider=%s): %s",
                normalized,
                result.provider,
                result.error,
            )
        return {"ok": True}

    def verify_code(self, email: Optional[str], code: Optional[str]) -> dict:
        normalized = normalize_email(email)
        candidate = (code or "").strip()
        if not normalized or len(candidate) != self.settings.otp_length:
            raise ValidationError("Invalid request")

        try:
            challenge = self.store.find_latest_by_email(normalized)
        except SQLAlchemyError:
            logger.exception("OTP lookup failed")
            raise InternalError("Unable to verify code")
        if not challenge:
            raise InvalidCodeError()
        challenge_id = challenge.id

        now = self.clock.now()
        if challenge.consumed_at:
            raise AlreadyUsedError("Code already used")
        # Lock is checked before expiry and before touching the hash.
        locked_until = ensure_utc(challenge.locked_until)
        if locked_until and locked_until > now:
            raise RateLimitedError("Too many attempts. Try again later.")
        if ensure_utc(challenge.expires_at) < now:
            raise ExpiredError("Code expired")

        if not verify_otp_code(candidate, challenge.code_salt, challenge.code_hash):
            lock_until = now + timedelta(minutes=self.settings.otp_lock_minutes)
            try:
                challenge = self.store.record_failed_attempt(
                    challenge, self.settings.otp_max_attempts, lock_until
                )
            except SQLAlchemyError:
                logger.exception("Failed to record OTP attempt for challenge %s", challenge_id)
                raise InternalError("Unable to verify code")
            if challenge.attempts >= self.settings.otp_max_attempts:
                logger.warning(
                    "Password reset locked for %s after %d failed attempts",
                    normalized,
                    challenge.attempts,
                )
                raise RateLimitedError("Too many invalid attempts. Try again later.")
            raise InvalidCodeError()

        session_token = generate_session_token()
        try:
            self.store.mark_verified(
                challenge,
                verified_at=now,
                session_token=session_token,
                session_token_expires_at=now
                + timedelta(minutes=self.settings.reset_session_expire_minutes),
            )
        except SQLAlchemyError:
            logger.exception("Failed to update reset challenge %s after verification", challenge_id)
            raise InternalError("Unable to verify code")
        return {"ok": True, "sessionToken": session_token}

    def reset_password(
        self,
        email: Optional[str],
        new_password: Optional[str],
        session_token: Optional[str],
    ) -> dict:
        normalized = normalize_email(email)
        password = (new_password or "").strip()
        token = (session_token or "").strip()
        if not normalized or not password or not token:
            raise ValidationError("Missing data")

        violation = password_policy_violation(password)
        if violation:
            raise PolicyError(violation)

        try:
            challenge = self.store.find_by_email_and_session_token(normalized, token)
        except SQLAlchemyError:
            logger.exception("Reset challenge lookup failed")
            raise InternalError("Unable to reset password")
        if not challenge:
            raise InvalidSessionError()
        challenge_id = challenge.id

        now = self.clock.now()
        if challenge.consumed_at:
            raise AlreadyUsedError("Reset session already used")
        verified_at = ensure_utc(challenge.verified_at)
        if not verified_at or verified_at > now:
            raise NotVerifiedError()
        session_expires_at = ensure_utc(challenge.session_token_expires_at)
        if session_expires_at and session_expires_at < now:
            raise SessionExpiredError()

        try:
            account = self.identity.find_account_by_email(normalized)
        except IdentityProviderError:
            logger.exception("Account lookup failed during password reset")
            raise InternalError("Unable to reset password")
        if not account:
            raise AccountNotFoundError()

        session_window = challenge.session_token_expires_at
        try:
            claimed = self.store.claim_for_reset(challenge, now)
        except SQLAlchemyError:
            logger.exception("Failed to claim reset challenge %s", challenge_id)
            raise InternalError("Unable to reset password")
        if not claimed:
            raise AlreadyUsedError("Reset session already used")

        try:
            self.identity.update_account_password(account.id, password)
        except IdentityProviderError:
            logger.exception("Password update failed for user %s", account.id)
            try:
                self.store.release_claim(challenge, session_window)
            except SQLAlchemyError:
                logger.exception("Failed to release reset challenge %s", challenge_id)
            raise InternalError("Unable to reset password")

        logger.info("Password reset completed for user %s", account.id)
        return {"ok": True}
