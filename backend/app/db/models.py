"""SQLAlchemy ORM models for documents, clauses and conversations."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class LegalDocument(Base):
    """Legal document table - one row per ingested source file."""

    __tablename__ = "legal_document"

    document_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_name: Mapped[str] = mapped_column(Text, nullable=False)
    document_type: Mapped[str] = mapped_column(Text, nullable=False, default="PDF")
    document_date_issue: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    document_signee: Mapped[str | None] = mapped_column(Text, nullable=True)
    document_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    clauses: Mapped[list["LegalClause"]] = relationship(
        "LegalClause", back_populates="document", cascade="all, delete-orphan"
    )


class LegalClause(Base):
    """Legal clause table - addressable provisions of a document."""

    __tablename__ = "legal_clause"
    __table_args__ = (Index("idx_clause_document_position", "document_id", "position"),)

    clause_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("legal_document.document_id", ondelete="CASCADE"), nullable=False
    )
    # Order of the clause inside its document
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clause_number: Mapped[str] = mapped_column(Text, nullable=False)
    clause_content: Mapped[str] = mapped_column(Text, nullable=False)
    clause_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Reserved for semantic search; never populated
    embedding: Mapped[list[float] | None] = mapped_column(JSON, nullable=True)

    # Relationships
    document: Mapped["LegalDocument"] = relationship("LegalDocument", back_populates="clauses")


class ChatRoom(Base):
    """Chat room table - named session owned by one account."""

    __tablename__ = "chat_room"
    __table_args__ = (Index("idx_chat_room_account", "account_id", "updated_at"),)

    chat_id: Mapped[str] = mapped_column(Text, primary_key=True)
    account_id: Mapped[str] = mapped_column(Text, nullable=False)
    room_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Question(Base):
    """Question table - one user turn."""

    __tablename__ = "question"
    __table_args__ = (
        Index("idx_question_account_date", "account_id", "question_date"),
        Index("idx_question_chat_date", "chat_id", "question_date"),
    )

    question_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    question_content: Mapped[str] = mapped_column(Text, nullable=False)
    account_id: Mapped[str] = mapped_column(Text, nullable=False)
    chat_id: Mapped[str] = mapped_column(Text, nullable=False)
    question_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    answers: Mapped[list["Answer"]] = relationship("Answer", back_populates="question")


class Answer(Base):
    """Answer table - always references exactly one question."""

    __tablename__ = "answer"
    __table_args__ = (Index("idx_answer_question", "question_id"),)

    answer_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    answer_content: Mapped[str] = mapped_column(Text, nullable=False)
    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("question.question_id"), nullable=False
    )
    chat_id: Mapped[str] = mapped_column(Text, nullable=False)
    answer_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    question: Mapped["Question"] = relationship("Question", back_populates="answers")


class AnswerClause(Base):
    """Answer-clause link table - clauses that backed an answer."""

    __tablename__ = "answer_clause"

    answer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("answer.answer_id", ondelete="CASCADE"), primary_key=True
    )
    clause_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("legal_clause.clause_id", ondelete="CASCADE"), primary_key=True
    )
