"""FastAPI dependency injection: db session, clock, collaborators, reset service."""

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.core.clock import Clock, SystemClock
from app.db.base import SessionLocal
from app.services.email_service import Mailer, build_mailer
from app.services.identity_service import (
    IdentityProvider,
    LocalIdentityProvider,
    SupabaseIdentityProvider,
)
from app.services.password_reset_service import PasswordResetService
from app.services.reset_store import SqlAlchemyPasswordResetStore


def get_db() -> Generator[Session, None, None]:
    """Provide a DB session; close after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_clock() -> Clock:
    return SystemClock()


def get_mailer(settings: Annotated[Settings, Depends(get_settings)]) -> Mailer:
    return build_mailer(settings)


def get_identity_provider(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> IdentityProvider:
    """Identity backend selected by IDENTITY_BACKEND."""
    if settings.identity_backend == "supabase":
        return SupabaseIdentityProvider(settings)
    return LocalIdentityProvider(db)


def get_password_reset_service(
    db: Annotated[Session, Depends(get_db)],
    identity: Annotated[IdentityProvider, Depends(get_identity_provider)],
    mailer: Annotated[Mailer, Depends(get_mailer)],
    clock: Annotated[Clock, Depends(get_clock)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> PasswordResetService:
    return PasswordResetService(
        store=SqlAlchemyPasswordResetStore(db),
        identity=identity,
        mailer=mailer,
        clock=clock,
        settings=settings,
    )


ResetService = Annotated[PasswordResetService, Depends(get_password_reset_service)]
