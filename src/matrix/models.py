"""
Matrix question data models.

Two shapes of the same question live here:

- Normalized registry: QuestionOptions + Column + Row, as stored and rendered.
  Row.correct_answers maps column id -> marker ("1" unless a multi-choice
  form supplied another flag value).
- Authored form: MatrixForm with one FormRow per row slot. Column slots are
  plain names; blank slots are kept because the editing form can grow.

The flat repeated-field layout (columnname[i], rowanswersa2[i], ...) is NOT
modelled here; see form_fields.py.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class InputMode(str, Enum):
    """How many columns a row may have marked correct."""
    SINGLE = "single"      # Exactly one column per row (radio buttons)
    MULTIPLE = "multiple"  # One or more columns per row (checkboxes)

    def __str__(self) -> str:
        return self.value


class GradeMethod(str, Enum):
    """Grading of multi-choice rows. Ignored in SINGLE mode."""
    PARTIAL_CREDIT = "partial"
    ALL_OR_NOTHING = "allnone"

    def __str__(self) -> str:
        return self.value


class TextFormat(str, Enum):
    """Rich-text formats understood by the interchange document."""
    MOODLE = "moodle_auto_format"
    HTML = "html"
    PLAIN = "plain_text"
    MARKDOWN = "markdown"

    @classmethod
    def parse(cls, value: str | None, default: TextFormat | None = None) -> TextFormat:
        """Parse a format name, falling back to the default for unknown values."""
        default = default or cls.HTML
        if not value:
            return default
        try:
            return cls(value.strip().lower())
        except ValueError:
            return default


# Marker stored against a correct column when nothing more specific is known
CORRECT_MARKER = "1"

# Defaults for the combined feedback text of a new question
DEFAULT_CORRECT_FEEDBACK = "Your answer is correct."
DEFAULT_PARTIALLY_CORRECT_FEEDBACK = "Your answer is partially correct."
DEFAULT_INCORRECT_FEEDBACK = "Your answer is incorrect."


def is_blank(value: object) -> bool:
    """True for None and whitespace-only strings."""
    return value is None or str(value).strip() == ""


@dataclass
class RichText:
    """Text with a format and, while being edited, a draft attachment area."""
    text: str = ""
    format: TextFormat = TextFormat.HTML
    draft_id: str | None = None

    @property
    def is_empty(self) -> bool:
        return is_blank(self.text)


# =============================================================================
# Normalized registry
# =============================================================================


@dataclass
class Column:
    """An answer option shared by every row of a question."""
    question_id: int
    number: int  # 0-based ordinal within the question
    name: str
    id: int | None = None


@dataclass
class Row:
    """A sub-question rated against the columns."""
    question_id: int
    number: int
    name: str
    correct_answers: dict[int, str] = field(default_factory=dict)
    feedback: str = ""
    feedback_format: TextFormat = TextFormat.HTML
    id: int | None = None

    def is_correct_column(self, column_id: int) -> bool:
        return column_id in self.correct_answers


@dataclass
class MatrixDefaults:
    """
    Site-wide defaults used when a question has no stored options yet.

    Built from Settings.get_matrix_defaults(); passed explicitly so the
    mapper never reads global configuration on its own.
    """
    input_mode: InputMode = InputMode.SINGLE
    grade_method: GradeMethod = GradeMethod.PARTIAL_CREDIT
    shuffle_answers: bool = True
    min_columns: int = 2
    min_rows: int = 2


@dataclass
class QuestionOptions:
    """Per-question settings, including the combined feedback."""
    question_id: int
    input_mode: InputMode = InputMode.SINGLE
    grade_method: GradeMethod = GradeMethod.PARTIAL_CREDIT
    shuffle_answers: bool = True
    show_num_correct: bool = True
    correct_feedback: RichText = field(default_factory=RichText)
    partially_correct_feedback: RichText = field(default_factory=RichText)
    incorrect_feedback: RichText = field(default_factory=RichText)
    id: int | None = None

    @classmethod
    def from_defaults(cls, question_id: int, defaults: MatrixDefaults) -> "QuestionOptions":
        """Synthesize options for a question that has none stored."""
        return cls(
            question_id=question_id,
            input_mode=defaults.input_mode,
            grade_method=defaults.grade_method,
            shuffle_answers=defaults.shuffle_answers,
            show_num_correct=True,
            correct_feedback=RichText(DEFAULT_CORRECT_FEEDBACK),
            partially_correct_feedback=RichText(DEFAULT_PARTIALLY_CORRECT_FEEDBACK),
            incorrect_feedback=RichText(DEFAULT_INCORRECT_FEEDBACK),
        )


@dataclass
class MatrixQuestion:
    """
    A fully loaded matrix question.

    Columns and rows are ordered by number. Every key of a row's
    correct_answers is the id of one of the columns.
    """
    question_id: int
    options: QuestionOptions
    columns: list[Column] = field(default_factory=list)
    rows: list[Row] = field(default_factory=list)
    context_id: int = 0

    @property
    def input_mode(self) -> InputMode:
        return self.options.input_mode

    def column_by_id(self, column_id: int) -> Column | None:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def column_by_number(self, number: int) -> Column | None:
        for column in self.columns:
            if column.number == number:
                return column
        return None

    def row_by_number(self, number: int) -> Row | None:
        for row in self.rows:
            if row.number == number:
                return row
        return None

    def correct_numbers(self, row: Row) -> set[int]:
        """Column ordinals marked correct for a row."""
        return {c.number for c in self.columns if c.id in row.correct_answers}


# =============================================================================
# Authored form
# =============================================================================


@dataclass
class FormRow:
    """
    One row slot of the editing form.

    answer: SINGLE mode radio value, a 1-based column ordinal. Submitted
        values may carry a prefix ("a2"); only the digits count.
    flags: MULTIPLE mode checkboxes, 0-based column ordinal -> flag value.
        A missing ordinal means "not ticked"; there are no explicit False
        entries.
    """
    name: str = ""
    answer: str | int | None = None
    flags: dict[int, str] = field(default_factory=dict)
    feedback: RichText = field(default_factory=RichText)

    @property
    def is_blank(self) -> bool:
        return is_blank(self.name)

    def has_answer(self, input_mode: InputMode, num_columns: int | None = None) -> bool:
        """
        True when the row names a correct answer.

        With num_columns given, MULTIPLE mode only counts flags on ordinals
        below it, since flags on unnamed columns are dropped when saved.
        """
        if input_mode == InputMode.SINGLE:
            return not is_blank(self.answer)
        if num_columns is None:
            return bool(self.flags)
        return any(0 <= k < num_columns for k in self.flags)


@dataclass
class MatrixForm:
    """The authored-form shape of a matrix question."""
    input_mode: InputMode = InputMode.SINGLE
    grade_method: GradeMethod = GradeMethod.PARTIAL_CREDIT
    shuffle_answers: bool = True
    show_num_correct: bool = True
    columns: list[str] = field(default_factory=list)
    rows: list[FormRow] = field(default_factory=list)
    correct_feedback: RichText = field(default_factory=RichText)
    partially_correct_feedback: RichText = field(default_factory=RichText)
    incorrect_feedback: RichText = field(default_factory=RichText)

    def filled_columns(self) -> list[tuple[int, str]]:
        """(slot, name) for every non-blank column slot, in slot order."""
        return [(i, name) for i, name in enumerate(self.columns) if not is_blank(name)]

    def filled_rows(self) -> list[tuple[int, FormRow]]:
        """(slot, row) for every non-blank row slot, in slot order."""
        return [(i, row) for i, row in enumerate(self.rows) if not row.is_blank]
