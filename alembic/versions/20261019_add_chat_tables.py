"""Add chat_session and chat_message tables

Revision ID: 20261019_add_chat_tables
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_add_chat_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "chat_session",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("owner_id", sa.BigInteger, nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column(
            "last_activity",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    )

    op.create_table(
        "chat_message",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("session_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),  # 'user' or 'assistant'
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("sequence", sa.Integer, nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("clock_timestamp()"),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.CheckConstraint("role IN ('user', 'assistant')", name="ck_chat_message_role"),
        sa.CheckConstraint("length(content) > 0", name="ck_chat_message_content"),
    )

    # Deleting a session deletes its transcript
    op.create_foreign_key(
        "fk_chat_message_session_id",
        "chat_message",
        "chat_session",
        ["session_id"],
        ["id"],
        ondelete="CASCADE",
    )
    op.create_unique_constraint(
        "uq_chat_message_session_sequence", "chat_message", ["session_id", "sequence"]
    )

    op.create_index("ix_chat_session_owner_id", "chat_session", ["owner_id"])
    op.create_index("ix_chat_session_last_activity", "chat_session", ["last_activity"])
    op.create_index(
        "ix_chat_message_session_order",
        "chat_message",
        ["session_id", "created_at", "sequence"],
    )


def downgrade() -> None:
    op.drop_index("ix_chat_message_session_order", table_name="chat_message")
    op.drop_index("ix_chat_session_last_activity", table_name="chat_session")
    op.drop_index("ix_chat_session_owner_id", table_name="chat_session")

    op.drop_constraint("uq_chat_message_session_sequence", "chat_message", type_="unique")
    op.drop_constraint("fk_chat_message_session_id", "chat_message", type_="foreignkey")

    op.drop_table("chat_message")
    op.drop_table("chat_session")
