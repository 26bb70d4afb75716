"""Create login limiting tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates:
- login_attempts
- security_log
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create login attempt and security log tables."""
    op.create_table(
        "login_attempts",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("ip_address", sa.String(100), nullable=False),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("attempt_time", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_login_attempts")),
    )
    op.create_index("ix_login_attempts_ip_address", "login_attempts", ["ip_address"])
    op.create_index("ix_login_attempts_username", "login_attempts", ["username"])
    op.create_index("ix_login_attempts_attempt_time", "login_attempts", ["attempt_time"])
    op.create_index(
        "ix_login_attempts_ip_time", "login_attempts", ["ip_address", "attempt_time"]
    )
    op.create_index(
        "ix_login_attempts_user_time", "login_attempts", ["username", "attempt_time"]
    )

    op.create_table(
        "security_log",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False, server_default="info"),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("ip_address", sa.String(100), nullable=True),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("context", sa.Text(), nullable=True),
        sa.Column("occurrence_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("first_seen", sa.DateTime(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_security_log")),
    )
    op.create_index("ix_security_log_event_type", "security_log", ["event_type"])
    op.create_index("ix_security_log_ip_address", "security_log", ["ip_address"])
    op.create_index("ix_security_log_timestamp", "security_log", ["timestamp"])
    op.create_index(
        "ix_security_log_event_ip", "security_log", ["event_type", "ip_address"]
    )


def downgrade() -> None:
    """Drop login attempt and security log tables."""
    op.drop_index("ix_security_log_event_ip", table_name="security_log")
    op.drop_index("ix_security_log_timestamp", table_name="security_log")
    op.drop_index("ix_security_log_ip_address", table_name="security_log")
    op.drop_index("ix_security_log_event_type", table_name="security_log")
    op.drop_table("security_log")
    op.drop_index("ix_login_attempts_user_time", table_name="login_attempts")
    op.drop_index("ix_login_attempts_ip_time", table_name="login_attempts")
    op.drop_index("ix_login_attempts_attempt_time", table_name="login_attempts")
    op.drop_index("ix_login_attempts_username", table_name="login_attempts")
    op.drop_index("ix_login_attempts_ip_address", table_name="login_attempts")
    op.drop_table("login_attempts")
