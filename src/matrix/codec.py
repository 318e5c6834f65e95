"""
Answer codec for matrix questions.

Converts a row's correct-answer set (column id -> marker) between:

1. Persisted encoding: a compact JSON object, {"<column id>": "<marker>"}.
   The same text is carried inside interchange documents. Existing rows
   depend on this shape, so do not change it without a data migration.
2. Authored form: FormRow.answer (SINGLE, 1-based column ordinal) or
   FormRow.flags (MULTIPLE, 0-based column ordinal -> flag value).

Decoding is tolerant of stale references: a key that names a column that
no longer exists is skipped, never an error.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping, Sequence
from itertools import count

from loguru import logger

from .errors import AnswerDecodeError, AnswerEncodingError
from .models import (
    CORRECT_MARKER,
    Column,
    FormRow,
    InputMode,
    MatrixForm,
    MatrixQuestion,
    QuestionOptions,
    RichText,
    Row,
    is_blank,
)

_NON_DIGITS = re.compile(r"[^0-9]")


def row_field_key(slot: int) -> str:
    """Form key that row-level errors are attached to."""
    return f"rowoptions[{slot}]"


def column_field_key(slot: int) -> str:
    """Form key that column-level errors are attached to."""
    return f"columnname[{slot}]"


# =============================================================================
# Persisted encoding
# =============================================================================


def encode_correct_answers(
    correct_answers: Mapping[int | str, str],
    input_mode: InputMode = InputMode.MULTIPLE,
) -> str:
    """
    Encode a correct-answer set as its persisted JSON text.

    SINGLE mode always stores the plain "1" marker; MULTIPLE mode keeps the
    marker supplied by the form. Key order follows the mapping.
    """
    payload = {}
    for column_id, marker in correct_answers.items():
        if input_mode == InputMode.SINGLE or is_blank(marker):
            marker = CORRECT_MARKER
        payload[str(column_id)] = str(marker)
    return json.dumps(payload, separators=(",", ":"))


def parse_correct_answers(blob: str | None) -> dict[str, str]:
    """
    Parse persisted text into a raw key -> marker mapping.

    Empty text and an empty JSON array (written by older encoders for an
    empty set) both mean "no correct answers".

    Raises:
        AnswerEncodingError: if the text is not a JSON object
    """
    if blob is None or blob.strip() == "":
        return {}
    try:
        data = json.loads(blob)
    except json.JSONDecodeError as e:
        raise AnswerEncodingError(f"Correct answers are not valid JSON: {blob!r}") from e
    if data == []:
        return {}
    if not isinstance(data, dict):
        raise AnswerEncodingError(f"Correct answers must be a JSON object: {blob!r}")
    return {str(key): str(value) for key, value in data.items()}


def decode_correct_answers(blob: str | None, columns: Iterable[Column]) -> dict[int, str]:
    """
    Decode persisted text against the question's current columns.

    The result is keyed by column id in column order. Keys that match no
    column are dropped.
    """
    raw = parse_correct_answers(blob)
    decoded: dict[int, str] = {}
    for column in columns:
        key = str(column.id)
        if key in raw:
            decoded[column.id] = raw.pop(key)
    if raw:
        logger.debug(f"Ignoring correct answers for unknown columns: {sorted(raw)}")
    return decoded


# =============================================================================
# Authored form <-> normalized
# =============================================================================


def single_answer_ordinal(value: str | int | None) -> int | None:
    """1-based column ordinal from a submitted radio value, e.g. "a2" -> 2."""
    if value is None:
        return None
    digits = _NON_DIGITS.sub("", str(value))
    return int(digits) if digits else None


def form_row_to_correct_answers(
    form_row: FormRow,
    slot: int,
    columns: Sequence[Column],
    input_mode: InputMode,
) -> dict[int, str]:
    """
    Build a row's correct-answer set from its form slot.

    columns must be the saved columns in number order, so position k in the
    sequence is column ordinal k.

    Raises:
        AnswerDecodeError: SINGLE mode answer that names no column
    """
    if input_mode == InputMode.SINGLE:
        if not form_row.has_answer(input_mode):
            return {}
        ordinal = single_answer_ordinal(form_row.answer)
        if ordinal is None or not 1 <= ordinal <= len(columns):
            raise AnswerDecodeError(row_field_key(slot), form_row.answer)
        return {columns[ordinal - 1].id: CORRECT_MARKER}

    correct: dict[int, str] = {}
    for k, column in enumerate(columns):
        if k in form_row.flags:
            marker = form_row.flags[k]
            correct[column.id] = CORRECT_MARKER if is_blank(marker) else str(marker)
    return correct


def correct_answers_to_form(
    row: Row,
    columns: Sequence[Column],
    input_mode: InputMode,
) -> tuple[int | None, dict[int, str]]:
    """
    Inverse of form_row_to_correct_answers.

    Returns (answer, flags). SINGLE mode fills answer with the 1-based
    ordinal of the first correct column; MULTIPLE mode fills flags for the
    correct columns only.
    """
    answer = None
    flags: dict[int, str] = {}
    for column in columns:
        if column.id not in row.correct_answers:
            continue
        if input_mode == InputMode.SINGLE:
            answer = column.number + 1
            break
        flags[column.number] = row.correct_answers[column.id]
    return answer, flags


def build_columns(form: MatrixForm, question_id: int) -> list[Column]:
    """Columns for every non-blank slot, numbered 0..n-1 in slot order."""
    return [
        Column(question_id=question_id, number=number, name=name)
        for number, (_slot, name) in enumerate(form.filled_columns())
    ]


def build_row(
    form: MatrixForm,
    slot: int,
    number: int,
    columns: Sequence[Column],
    question_id: int,
) -> Row:
    """Normalize one form row slot against already-identified columns."""
    form_row = form.rows[slot]
    return Row(
        question_id=question_id,
        number=number,
        name=form_row.name,
        correct_answers=form_row_to_correct_answers(form_row, slot, columns, form.input_mode),
        feedback=form_row.feedback.text,
        feedback_format=form_row.feedback.format,
    )


def normalize_form(form: MatrixForm, question_id: int = 0, first_id: int = 1) -> MatrixQuestion:
    """
    Turn an authored form into a registry without touching storage.

    Column and row ids are assigned from a counter starting at first_id.
    """
    ids = count(first_id)
    columns = build_columns(form, question_id)
    for column in columns:
        column.id = next(ids)
    rows = []
    for number, (slot, _form_row) in enumerate(form.filled_rows()):
        row = build_row(form, slot, number, columns, question_id)
        row.id = next(ids)
        rows.append(row)
    return MatrixQuestion(
        question_id=question_id,
        options=options_from_form(form, question_id),
        columns=columns,
        rows=rows,
    )


def options_from_form(form: MatrixForm, question_id: int, base: QuestionOptions | None = None) -> QuestionOptions:
    """Copy the form's option fields onto a (new or existing) options record."""
    options = base or QuestionOptions(question_id=question_id)
    options.question_id = question_id
    options.input_mode = form.input_mode
    options.grade_method = form.grade_method
    options.shuffle_answers = form.shuffle_answers
    options.show_num_correct = form.show_num_correct
    options.correct_feedback = form.correct_feedback
    options.partially_correct_feedback = form.partially_correct_feedback
    options.incorrect_feedback = form.incorrect_feedback
    return options


def question_to_form(question: MatrixQuestion) -> MatrixForm:
    """
    Populate an editing form from a loaded question.

    Feedback text is copied as stored; preparing draft attachment areas is
    the mapper's job (see MatrixQuestionMapper.prepare_form).
    """
    options = question.options
    rows = []
    for row in question.rows:
        answer, flags = correct_answers_to_form(row, question.columns, options.input_mode)
        rows.append(FormRow(
            name=row.name,
            answer=answer,
            flags=flags,
            feedback=RichText(text=row.feedback or "", format=row.feedback_format),
        ))
    return MatrixForm(
        input_mode=options.input_mode,
        grade_method=options.grade_method,
        shuffle_answers=options.shuffle_answers,
        show_num_correct=options.show_num_correct,
        columns=[column.name for column in question.columns if not is_blank(column.name)],
        rows=rows,
        correct_feedback=options.correct_feedback,
        partially_correct_feedback=options.partially_correct_feedback,
        incorrect_feedback=options.incorrect_feedback,
    )
