"""Password reset challenge (one active OTP challenge per account)."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class PasswordResetChallenge(Base):
    __tablename__ = "password_reset_challenges"
    __table_args__ = (
        Index("ix_password_reset_challenges_email_createdAt", "email", "createdAt"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    # Opaque account id from the identity backend (local uuid or Supabase id)
    user_id: Mapped[str] = mapped_column("userId", String(255), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    code_hash: Mapped[str] = mapped_column("codeHash", String(255), nullable=False)
    code_salt: Mapped[str] = mapped_column("codeSalt", String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        "expiresAt",
        DateTime(timezone=True),
        nullable=False,
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    locked_until: Mapped[Optional[datetime]] = mapped_column(
        "lockedUntil",
        DateTime(timezone=True),
        nullable=True,
    )
    verified_at: Mapped[Optional[datetime]] = mapped_column(
        "verifiedAt",
        DateTime(timezone=True),
        nullable=True,
    )
    session_token: Mapped[Optional[str]] = mapped_column("sessionToken", String(255), nullable=True)
    session_token_expires_at: Mapped[Optional[datetime]] = mapped_column(
        "sessionTokenExpiresAt",
        DateTime(timezone=True),
        nullable=True,
    )
    consumed_at: Mapped[Optional[datetime]] = mapped_column(
        "consumedAt",
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        "createdAt",
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
