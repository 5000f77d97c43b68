"""create portal tables

Revision ID: 5a1f0c2e7b90
Revises:
Create Date: 2026-10-17 09:12:41.208311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5a1f0c2e7b90'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, sessions, audit, leadership, library, news, support and chat tables."""
    # Check if tables already exist (idempotent; AUTO_CREATE_SCHEMA may have run first)
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = set(inspector.get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("email", sa.String(320), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(255), nullable=False),
            sa.Column("phone", sa.String(64), nullable=True),
            sa.Column("role", sa.String(16), nullable=False, server_default="STUDENT"),
            sa.Column("institution", sa.String(255), nullable=True),
            sa.Column("gpa", sa.Numeric(4, 2), nullable=False, server_default="0.00"),
            sa.Column("courses", sa.JSON(), nullable=False),
            sa.Column("profile_pic", sa.String(512), nullable=True),
            sa.Column("faculty", sa.String(255), nullable=True),
            sa.Column("department", sa.String(255), nullable=True),
            sa.Column("program", sa.String(255), nullable=True),
            sa.Column("level", sa.String(64), nullable=True),
            sa.Column("financial_status", sa.String(64), nullable=True),
            sa.Column("year_entry", sa.String(16), nullable=True),
            sa.Column("year_completion", sa.String(16), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sqlite_autoincrement=True,
        )

    if "auth_sessions" not in existing_tables:
        op.create_table(
            "auth_sessions",
            sa.Column("token", sa.String(128), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("role", sa.String(16), nullable=False),
            sa.Column("issued_at", sa.DateTime(), nullable=False),
            sa.Column("expires_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_auth_sessions_user_id", "auth_sessions", ["user_id"])

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("actor_user_email", sa.String(320), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("reason", sa.String(512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.Column("client_ip", sa.String(64), nullable=True),
        )

    if "leadership_apps" not in existing_tables:
        op.create_table(
            "leadership_apps",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("name", sa.String(255), nullable=True),
            sa.Column("institution", sa.String(255), nullable=True),
            sa.Column("position", sa.String(255), nullable=False),
            sa.Column("experience", sa.Text(), nullable=True),
            sa.Column("vision", sa.Text(), nullable=False),
            sa.Column("reference", sa.String(512), nullable=True),
            sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("reviewed_at", sa.DateTime(), nullable=True),
            sa.Column(
                "reviewed_by_user_id",
                sa.Integer(),
                sa.ForeignKey("users.id", ondelete="SET NULL"),
                nullable=True,
            ),
        )
        op.create_index("ix_leadership_apps_user_created", "leadership_apps", ["user_id", "created_at"])
        op.create_index("ix_leadership_apps_status", "leadership_apps", ["status"])

    if "resources" not in existing_tables:
        op.create_table(
            "resources",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("category", sa.String(128), nullable=True),
            sa.Column("storage_key", sa.String(512), nullable=False),
            sa.Column("filename", sa.String(255), nullable=False),
            sa.Column("content_type", sa.String(128), nullable=False, server_default="application/octet-stream"),
            sa.Column("sha256", sa.String(64), nullable=False),
            sa.Column("size_bytes", sa.Integer(), nullable=False),
            sa.Column("uploaded_by", sa.String(255), nullable=True),
            sa.Column(
                "uploader_user_id",
                sa.Integer(),
                sa.ForeignKey("users.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_resources_status_created", "resources", ["status", "created_at"])

    if "news" not in existing_tables:
        op.create_table(
            "news",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("category", sa.String(64), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_news_created_at", "news", ["created_at"])

    if "support_tickets" not in existing_tables:
        op.create_table(
            "support_tickets",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("user_name", sa.String(255), nullable=True),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )

    if "global_chat" not in existing_tables:
        op.create_table(
            "global_chat",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("user_name", sa.String(255), nullable=True),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_global_chat_created_at", "global_chat", ["created_at"])


def downgrade() -> None:
    """Drop tables in reverse order."""
    op.drop_table("global_chat")
    op.drop_table("support_tickets")
    op.drop_table("news")
    op.drop_table("resources")
    op.drop_table("leadership_apps")
    op.drop_table("audit_events")
    op.drop_table("auth_sessions")
    op.drop_table("users")
