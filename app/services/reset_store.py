"""Persistence for password reset challenges."""

from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy import case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models.password_reset import PasswordResetChallenge


class PasswordResetStore(Protocol):
    def replace_for_user(self, challenge: PasswordResetChallenge) -> PasswordResetChallenge: ...

    def find_latest_by_email(self, email: str) -> Optional[PasswordResetChallenge]: ...

    def find_by_email_and_session_token(
        self, email: str, session_token: str
    ) -> Optional[PasswordResetChallenge]: ...

    def record_failed_attempt(
        self,
        challenge: PasswordResetChallenge,
        max_attempts: int,
        lock_until: datetime,
    ) -> PasswordResetChallenge: ...

    def mark_verified(
        self,
        challenge: PasswordResetChallenge,
        verified_at: datetime,
        session_token: str,
        session_token_expires_at: datetime,
    ) -> PasswordResetChallenge: ...

    def claim_for_reset(self, challenge: PasswordResetChallenge, consumed_at: datetime) -> bool: ...

    def release_claim(
        self, challenge: PasswordResetChallenge, session_token_expires_at: Optional[datetime]
    ) -> PasswordResetChallenge: ...


class SqlAlchemyPasswordResetStore:
    """Challenge rows in ``password_reset_challenges``. Code hash and salt are never updated."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def _by_id(self, challenge: PasswordResetChallenge):
        return self.db.query(PasswordResetChallenge).filter(
            PasswordResetChallenge.id == challenge.id
        )

    def replace_for_user(self, challenge: PasswordResetChallenge) -> PasswordResetChallenge:
        """Delete every challenge of the account and insert the new one in one transaction."""
        try:
            self.db.query(PasswordResetChallenge).filter(
                PasswordResetChallenge.user_id == challenge.user_id
            ).delete()
            self.db.add(challenge)
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self._commit()
        self.db.refresh(challenge)
        return challenge

    def find_latest_by_email(self, email: str) -> Optional[PasswordResetChallenge]:
        return (
            self.db.query(PasswordResetChallenge)
            .filter(PasswordResetChallenge.email == email)
            .order_by(PasswordResetChallenge.created_at.desc())
            .first()
        )

    def find_by_email_and_session_token(
        self, email: str, session_token: str
    ) -> Optional[PasswordResetChallenge]:
        return (
            self.db.query(PasswordResetChallenge)
            .filter(
                PasswordResetChallenge.email == email,
                PasswordResetChallenge.session_token == session_token,
            )
            .order_by(PasswordResetChallenge.created_at.desc())
            .first()
        )

    def record_failed_attempt(
        self,
        challenge: PasswordResetChallenge,
        max_attempts: int,
        lock_until: datetime,
    ) -> PasswordResetChallenge:
        """Increment attempts and set the lock in one statement so concurrent verifies don't lose updates."""
        next_attempts = PasswordResetChallenge.attempts + 1
        try:
            self._by_id(challenge).update(
                {
                    PasswordResetChallenge.attempts: next_attempts,
                    PasswordResetChallenge.locked_until: case(
                        (next_attempts >= max_attempts, lock_until),
                        else_=PasswordResetChallenge.locked_until,
                    ),
                },
                synchronize_session=False,
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self._commit()
        self.db.refresh(challenge)
        return challenge

    def mark_verified(
        self,
        challenge: PasswordResetChallenge,
        verified_at: datetime,
        session_token: str,
        session_token_expires_at: datetime,
    ) -> PasswordResetChallenge:
        challenge.verified_at = verified_at
        challenge.session_token = session_token
        challenge.session_token_expires_at = session_token_expires_at
        challenge.attempts = 0
        challenge.locked_until = None
        self._commit()
        self.db.refresh(challenge)
        return challenge

    def claim_for_reset(self, challenge: PasswordResetChallenge, consumed_at: datetime) -> bool:
        """Consume the challenge unless another request already has.

        Returns False when the row was already consumed. The session window
        collapses to ``consumed_at`` in the same statement.
        """
        try:
            claimed = (
                self._by_id(challenge)
                .filter(PasswordResetChallenge.consumed_at.is_(None))
                .update(
                    {
                        PasswordResetChallenge.consumed_at: consumed_at,
                        PasswordResetChallenge.session_token_expires_at: consumed_at,
                    },
                    synchronize_session=False,
                )
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self._commit()
        self.db.refresh(challenge)
        return claimed == 1

    def release_claim(
        self, challenge: PasswordResetChallenge, session_token_expires_at: Optional[datetime]
    ) -> PasswordResetChallenge:
        """Undo ``claim_for_reset`` after the credential update failed."""
        challenge.consumed_at = None
        challenge.session_token_expires_at = session_token_expires_at
        self._commit()
        self.db.refresh(challenge)
        return challenge
