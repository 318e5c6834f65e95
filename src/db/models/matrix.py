"""
Matrix question storage.

Implements:
- MatrixOptionsRecord: per-question settings and combined feedback (one per question)
- MatrixColumnRecord: answer columns, numbered 0..n-1 within a question
- MatrixRowRecord: sub-question rows with their encoded correct answers

correct_answers holds the persisted JSON text {"<column id>": "<marker>"}.
It stays a plain Text column so that the encoding is owned by the codec,
not by the database dialect.
"""
from __future__ import annotations

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class MatrixOptionsRecord(Base):
    """Settings of one matrix question."""

    __tablename__ = "qtype_matrix_options"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True, index=True)

    input_type: Mapped[str] = mapped_column(String(16), nullable=False, default="single")
    grade_method: Mapped[str] = mapped_column(String(16), nullable=False, default="partial")
    shuffle_answers: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    show_num_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Combined feedback
    correct_feedback: Mapped[str] = mapped_column(Text, nullable=False, default="")
    correct_feedback_format: Mapped[str] = mapped_column(String(32), nullable=False, default="html")
    partially_correct_feedback: Mapped[str] = mapped_column(Text, nullable=False, default="")
    partially_correct_feedback_format: Mapped[str] = mapped_column(String(32), nullable=False, default="html")
    incorrect_feedback: Mapped[str] = mapped_column(Text, nullable=False, default="")
    incorrect_feedback_format: Mapped[str] = mapped_column(String(32), nullable=False, default="html")

    def __repr__(self) -> str:
        return f"<MatrixOptionsRecord(question_id={self.question_id}, input_type={self.input_type})>"


class MatrixColumnRecord(Base):
    """An answer column."""

    __tablename__ = "qtype_matrix_columns"
    # Ids are never reused, so a stale correct-answer key cannot alias a new column
    __table_args__ = (
        Index("ix_qtype_matrix_columns_question_number", "question_id", "number"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<MatrixColumnRecord(id={self.id}, number={self.number}, name={self.name!r})>"


class MatrixRowRecord(Base):
    """A sub-question row."""

    __tablename__ = "qtype_matrix_rows"
    # Ids are never reused; they own feedback file areas
    __table_args__ = (
        Index("ix_qtype_matrix_rows_question_number", "question_id", "number"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    correct_answers: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    feedback: Mapped[str] = mapped_column(Text, nullable=False, default="")
    feedback_format: Mapped[str] = mapped_column(String(32), nullable=False, default="html")

    def __repr__(self) -> str:
        return f"<MatrixRowRecord(id={self.id}, number={self.number}, name={self.name!r})>"
