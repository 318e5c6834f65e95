"""
Persistence Mapper for matrix questions.

Moves a question between its authored form, the normalized registry and
three tables (options, columns, rows). The mapper never commits: every
operation runs inside the caller's session transaction, typically
src.db.database.session_scope().

Save order matters. Columns are inserted and flushed first so their ids
exist before rows encode correct answers against them; row feedback files
are persisted after the row has an id to own them.
"""

from __future__ import annotations

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from src.db.models import MatrixColumnRecord, MatrixOptionsRecord, MatrixRowRecord

from .attachments import AttachmentStore
from .codec import (
    build_columns,
    build_row,
    decode_correct_answers,
    encode_correct_answers,
    options_from_form,
    question_to_form,
)
from .errors import IncompleteQuestionError
from .models import (
    Column,
    GradeMethod,
    InputMode,
    MatrixDefaults,
    MatrixForm,
    MatrixQuestion,
    QuestionOptions,
    RichText,
    Row,
    TextFormat,
)


# =============================================================================
# Record conversion
# =============================================================================


def _options_from_record(record: MatrixOptionsRecord) -> QuestionOptions:
    return QuestionOptions(
        id=record.id,
        question_id=record.question_id,
        input_mode=InputMode(record.input_type),
        grade_method=GradeMethod(record.grade_method),
        shuffle_answers=record.shuffle_answers,
        show_num_correct=record.show_num_correct,
        correct_feedback=RichText(record.correct_feedback, TextFormat.parse(record.correct_feedback_format)),
        partially_correct_feedback=RichText(
            record.partially_correct_feedback,
            TextFormat.parse(record.partially_correct_feedback_format),
        ),
        incorrect_feedback=RichText(record.incorrect_feedback, TextFormat.parse(record.incorrect_feedback_format)),
    )


def _copy_options_to_record(options: QuestionOptions, record: MatrixOptionsRecord) -> None:
    record.question_id = options.question_id
    record.input_type = options.input_mode.value
    record.grade_method = options.grade_method.value
    record.shuffle_answers = options.shuffle_answers
    record.show_num_correct = options.show_num_correct
    record.correct_feedback = options.correct_feedback.text
    record.correct_feedback_format = options.correct_feedback.format.value
    record.partially_correct_feedback = options.partially_correct_feedback.text
    record.partially_correct_feedback_format = options.partially_correct_feedback.format.value
    record.incorrect_feedback = options.incorrect_feedback.text
    record.incorrect_feedback_format = options.incorrect_feedback.format.value


def _column_from_record(record: MatrixColumnRecord) -> Column:
    return Column(id=record.id, question_id=record.question_id, number=record.number, name=record.name)


class MatrixQuestionMapper:
    """
    Loads, saves and deletes matrix questions.

    Handles:
    - Options upsert, with defaults synthesized for questions that have none
    - Column and row replacement on save
    - Row feedback files through the attachment store
    """

    def __init__(
        self,
        session: Session,
        defaults: MatrixDefaults | None = None,
        attachments: AttachmentStore | None = None,
    ):
        self.session = session
        self.defaults = defaults or MatrixDefaults()
        self.attachments = attachments

    # ========================================
    # Options
    # ========================================

    def _get_options_record(self, question_id: int) -> MatrixOptionsRecord | None:
        return self.session.execute(
            select(MatrixOptionsRecord).where(MatrixOptionsRecord.question_id == question_id)
        ).scalar_one_or_none()

    def create_default_options(self, question_id: int) -> QuestionOptions:
        """Options for a question with nothing stored, from the configured defaults."""
        return QuestionOptions.from_defaults(question_id, self.defaults)

    def get_options(self, question_id: int) -> QuestionOptions:
        """Stored options, or synthesized defaults when the question has none."""
        record = self._get_options_record(question_id)
        if record is None:
            logger.warning(f"Question {question_id} has no stored options, using defaults")
            return self.create_default_options(question_id)
        return _options_from_record(record)

    def save_options(self, question_id: int, form: MatrixForm) -> QuestionOptions:
        """Create or update the options record from the form."""
        record = self._get_options_record(question_id)
        if record is None:
            base = self.create_default_options(question_id)
            record = MatrixOptionsRecord()
            self.session.add(record)
        else:
            base = _options_from_record(record)
        options = options_from_form(form, question_id, base=base)
        _copy_options_to_record(options, record)
        self.session.flush()
        options.id = record.id
        return options

    # ========================================
    # Save
    # ========================================

    def save(self, question_id: int, form: MatrixForm, context_id: int = 0) -> MatrixQuestion:
        """
        Persist an authored form, replacing the question's columns and rows.

        The form should already have passed MatrixValidator; blank column and
        row slots are skipped and consume no number.

        Feedback files of the replaced rows are only removed once every new
        row has been built and stored, so a failed save that the caller rolls
        back leaves the old rows with their files.

        Raises:
            AnswerDecodeError: a SINGLE mode answer names no column
            AttachmentError: a row feedback draft id is not a valid draft
        """
        options = self.save_options(question_id, form)
        old_row_ids = [record.id for record in self._row_records(question_id)]
        self._delete_records(question_id)

        columns = self._save_columns(question_id, form)
        rows = self._save_rows(question_id, form, columns, context_id)
        self._delete_row_files(old_row_ids, context_id)

        logger.info(f"Saved question {question_id}: {len(columns)} columns, {len(rows)} rows")
        return MatrixQuestion(
            question_id=question_id,
            options=options,
            columns=columns,
            rows=rows,
            context_id=context_id,
        )

    def _save_columns(self, question_id: int, form: MatrixForm) -> list[Column]:
        columns = build_columns(form, question_id)
        records = [
            MatrixColumnRecord(question_id=question_id, number=c.number, name=c.name)
            for c in columns
        ]
        self.session.add_all(records)
        self.session.flush()
        for column, record in zip(columns, records):
            column.id = record.id
        return columns

    def _save_rows(
        self,
        question_id: int,
        form: MatrixForm,
        columns: list[Column],
        context_id: int,
    ) -> list[Row]:
        # Build every row before anything is written, so a bad answer fails early
        built = [
            (build_row(form, slot, number, columns, question_id), form_row)
            for number, (slot, form_row) in enumerate(form.filled_rows())
        ]
        rows = []
        for row, form_row in built:
            record = MatrixRowRecord(
                question_id=question_id,
                number=row.number,
                name=row.name,
                correct_answers=encode_correct_answers(row.correct_answers, form.input_mode),
                feedback=row.feedback,
                feedback_format=row.feedback_format.value,
            )
            self.session.add(record)
            self.session.flush()
            row.id = record.id

            if self.attachments is not None:
                row.feedback = self.attachments.persist_draft_as_files(
                    form_row.feedback.draft_id, context_id, row.id, row.feedback
                )
                record.feedback = row.feedback
            rows.append(row)
        self.session.flush()
        return rows

    # ========================================
    # Load
    # ========================================

    def _column_records(self, question_id: int) -> list[MatrixColumnRecord]:
        return list(self.session.execute(
            select(MatrixColumnRecord)
            .where(MatrixColumnRecord.question_id == question_id)
            .order_by(MatrixColumnRecord.number, MatrixColumnRecord.id)
        ).scalars())

    def _row_records(self, question_id: int) -> list[MatrixRowRecord]:
        return list(self.session.execute(
            select(MatrixRowRecord)
            .where(MatrixRowRecord.question_id == question_id)
            .order_by(MatrixRowRecord.number, MatrixRowRecord.id)
        ).scalars())

    def exists(self, question_id: int) -> bool:
        """True when anything is stored for the question."""
        return bool(self._get_options_record(question_id) or self._column_records(question_id))

    def load(self, question_id: int, context_id: int = 0) -> MatrixQuestion:
        """
        Load a question into the normalized registry.

        Raises:
            IncompleteQuestionError: no columns or no rows are stored
            AnswerEncodingError: a row's correct answers are not valid JSON
        """
        options = self.get_options(question_id)
        column_records = self._column_records(question_id)
        row_records = self._row_records(question_id)

        missing = [name for name, found in (("columns", column_records), ("rows", row_records)) if not found]
        if missing:
            raise IncompleteQuestionError(question_id, " and ".join(missing))

        columns = [_column_from_record(record) for record in column_records]
        rows = [
            Row(
                id=record.id,
                question_id=record.question_id,
                number=record.number,
                name=record.name,
                correct_answers=decode_correct_answers(record.correct_answers, columns),
                feedback=record.feedback or "",
                feedback_format=TextFormat.parse(record.feedback_format),
            )
            for record in row_records
        ]
        logger.debug(f"Loaded question {question_id}: {len(columns)} columns, {len(rows)} rows")
        return MatrixQuestion(
            question_id=question_id,
            options=options,
            columns=columns,
            rows=rows,
            context_id=context_id,
        )

    def prepare_form(self, question: MatrixQuestion) -> MatrixForm:
        """
        Editing form for a loaded question.

        Each row's feedback files are copied into a fresh draft area and the
        feedback text is rewritten to point at it.
        """
        form = question_to_form(question)
        if self.attachments is None:
            return form
        for row, form_row in zip(question.rows, form.rows):
            draft_id, text = self.attachments.prepare_draft_area(
                question.context_id, row.id, form_row.feedback.text
            )
            form_row.feedback = RichText(text=text, format=form_row.feedback.format, draft_id=draft_id)
        return form

    # ========================================
    # Delete / move
    # ========================================

    def _delete_row_files(self, row_ids: list[int], context_id: int) -> None:
        if self.attachments is None:
            return
        for row_id in row_ids:
            self.attachments.delete_files(context_id, row_id)

    def _delete_records(self, question_id: int) -> None:
        self.session.execute(delete(MatrixColumnRecord).where(MatrixColumnRecord.question_id == question_id))
        self.session.execute(delete(MatrixRowRecord).where(MatrixRowRecord.question_id == question_id))
        self.session.flush()

    def delete(self, question_id: int, context_id: int = 0) -> None:
        """Delete options, columns, rows and row feedback files of a question."""
        row_ids = [record.id for record in self._row_records(question_id)]
        self._delete_records(question_id)
        self.session.execute(delete(MatrixOptionsRecord).where(MatrixOptionsRecord.question_id == question_id))
        self.session.flush()
        self._delete_row_files(row_ids, context_id)
        logger.info(f"Deleted question {question_id}")

    def move_files(self, question_id: int, old_context_id: int, new_context_id: int) -> None:
        """Move every row's feedback files to another context."""
        if self.attachments is None:
            return
        row_records = self._row_records(question_id)
        for record in row_records:
            self.attachments.move_files(record.id, old_context_id, new_context_id)
        logger.debug(f"Moved feedback files of {len(row_records)} rows from context {old_context_id} to {new_context_id}")
