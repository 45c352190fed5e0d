"""SQLAlchemy models - import all for Alembic."""

from app.db.base import Base
from app.db.models.user import User
from app.db.models.password_reset import PasswordResetChallenge

__all__ = [
    "Base",
    "User",
    "PasswordResetChallenge",
]
