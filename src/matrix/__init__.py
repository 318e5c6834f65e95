"""
Matrix question module: a grid of rows rated against shared answer columns.

This module provides:
- MatrixValidator: structural checks on an authored form
- MatrixQuestionMapper: save/load/delete against the database
- FilesystemAttachmentStore: row feedback files and draft areas
- interchange: XML import/export
- evaluator: correctness queries over a loaded question

Input Modes:
- single: exactly one correct column per row (radio buttons)
- multiple: one or more correct columns per row (checkboxes)
"""

from .attachments import FilesystemAttachmentStore
from .errors import (
    AnswerDecodeError,
    AnswerEncodingError,
    AttachmentError,
    FieldError,
    FormValidationError,
    IncompleteQuestionError,
    InterchangeFormatError,
    MatrixError,
)
from .mapper import MatrixQuestionMapper
from .models import (
    Column,
    FormRow,
    GradeMethod,
    InputMode,
    MatrixDefaults,
    MatrixForm,
    MatrixQuestion,
    QuestionOptions,
    RichText,
    Row,
)
from .validator import MatrixValidator

__all__ = [
    "AnswerDecodeError",
    "AnswerEncodingError",
    "AttachmentError",
    "Column",
    "FieldError",
    "FilesystemAttachmentStore",
    "FormRow",
    "FormValidationError",
    "GradeMethod",
    "IncompleteQuestionError",
    "InputMode",
    "InterchangeFormatError",
    "MatrixDefaults",
    "MatrixError",
    "MatrixForm",
    "MatrixQuestion",
    "MatrixQuestionMapper",
    "MatrixValidator",
    "QuestionOptions",
    "RichText",
    "Row",
]
