"""users and password_reset_challenges

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("passwordHash", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("createdAt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updatedAt", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "password_reset_challenges",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("userId", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("codeHash", sa.String(255), nullable=False),
        sa.Column("codeSalt", sa.String(64), nullable=False),
        sa.Column("expiresAt", sa.DateTime(timezone=True), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lockedUntil", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verifiedAt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sessionToken", sa.String(255), nullable=True),
        sa.Column("sessionTokenExpiresAt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("consumedAt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("createdAt", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_password_reset_challenges_userId", "password_reset_challenges", ["userId"]
    )
    op.create_index(
        "ix_password_reset_challenges_email_createdAt",
        "password_reset_challenges",
        ["email", "createdAt"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_password_reset_challenges_email_createdAt", table_name="password_reset_challenges"
    )
    op.drop_index("ix_password_reset_challenges_userId", table_name="password_reset_challenges")
    op.drop_table("password_reset_challenges")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
