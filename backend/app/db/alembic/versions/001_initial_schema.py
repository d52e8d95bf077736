"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates:
- legal_document, legal_clause
- chat_room, question, answer, answer_clause
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all tables."""
    # legal_document table
    op.create_table(
        "legal_document",
        sa.Column("document_id", sa.Uuid(), primary_key=True),
        sa.Column("document_name", sa.Text(), nullable=False),
        sa.Column("document_type", sa.Text(), nullable=False),
        sa.Column("document_date_issue", sa.DateTime(timezone=True), nullable=False),
        sa.Column("document_signee", sa.Text(), nullable=True),
        sa.Column("document_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # legal_clause table (embedding reserved for semantic search)
    op.create_table(
        "legal_clause",
        sa.Column("clause_id", sa.Uuid(), primary_key=True),
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("clause_number", sa.Text(), nullable=False),
        sa.Column("clause_content", sa.Text(), nullable=False),
        sa.Column("clause_title", sa.Text(), nullable=True),
        sa.Column("embedding", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["document_id"], ["legal_document.document_id"], ondelete="CASCADE"),
    )
    op.create_index("idx_clause_document_position", "legal_clause", ["document_id", "position"])

    # chat_room table
    op.create_table(
        "chat_room",
        sa.Column("chat_id", sa.Text(), primary_key=True),
        sa.Column("account_id", sa.Text(), nullable=False),
        sa.Column("room_name", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_chat_room_account", "chat_room", ["account_id", "updated_at"])

    # question table
    op.create_table(
        "question",
        sa.Column("question_id", sa.Uuid(), primary_key=True),
        sa.Column("question_content", sa.Text(), nullable=False),
        sa.Column("account_id", sa.Text(), nullable=False),
        sa.Column("chat_id", sa.Text(), nullable=False),
        sa.Column("question_date", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_question_account_date", "question", ["account_id", "question_date"])
    op.create_index("idx_question_chat_date", "question", ["chat_id", "question_date"])

    # answer table
    op.create_table(
        "answer",
        sa.Column("answer_id", sa.Uuid(), primary_key=True),
        sa.Column("answer_content", sa.Text(), nullable=False),
        sa.Column("question_id", sa.Uuid(), nullable=False),
        sa.Column("chat_id", sa.Text(), nullable=False),
        sa.Column("answer_date", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["question_id"], ["question.question_id"]),
    )
    op.create_index("idx_answer_question", "answer", ["question_id"])

    # answer_clause link table
    op.create_table(
        "answer_clause",
        sa.Column("answer_id", sa.Uuid(), primary_key=True),
        sa.Column("clause_id", sa.Uuid(), primary_key=True),
        sa.ForeignKeyConstraint(["answer_id"], ["answer.answer_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["clause_id"], ["legal_clause.clause_id"], ondelete="CASCADE"),
    )


def downgrade() -> None:
    """Drop all tables (development convenience)."""
    op.drop_table("answer_clause")
    op.drop_table("answer")
    op.drop_table("question")
    op.drop_table("chat_room")
    op.drop_table("legal_clause")
    op.drop_table("legal_document")
