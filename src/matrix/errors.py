"""
Exceptions raised by the matrix question pipeline.

Validation problems found in an authored form are collected as FieldError
values and only wrapped in FormValidationError when a caller needs to abort.
Data-integrity and interchange failures are raised as single typed errors.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """A validation message attached to one widget of the authoring form."""
    key: str  # e.g. "columnname[1]", "rowoptions[3]"
    message: str

    def __str__(self) -> str:
        return f"{self.key}: {self.message}"


class MatrixError(Exception):
    """Base class for matrix question errors."""
    pass


class FormValidationError(MatrixError):
    """Raised when an authored matrix cannot be saved."""

    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        summary = "; ".join(str(e) for e in self.errors)
        super().__init__(f"Matrix form is invalid: {summary}")

    def as_dict(self) -> dict[str, str]:
        """Map field keys to messages, first error per key wins."""
        result: dict[str, str] = {}
        for error in self.errors:
            result.setdefault(error.key, error.message)
        return result


class AnswerDecodeError(FormValidationError):
    """A submitted single-choice answer points at a column that does not exist."""

    def __init__(self, key: str, value: object):
        self.value = value
        super().__init__([FieldError(key, f"Answer {value!r} does not match any column")])


class AnswerEncodingError(MatrixError):
    """A persisted correct-answer blob is not a JSON object."""
    pass


class IncompleteQuestionError(MatrixError):
    """A stored question is missing its columns or rows."""

    def __init__(self, question_id: int, missing: str):
        self.question_id = question_id
        self.missing = missing
        super().__init__(f"Question {question_id} is incomplete: missing {missing}")


class InterchangeFormatError(MatrixError):
    """An interchange document could not be imported."""
    pass


class AttachmentError(MatrixError):
    """A draft id does not name a draft area of the attachment store."""
    pass
