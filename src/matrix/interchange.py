"""
Interchange Transcoder - matrix questions to and from the XML exchange format.

Document shape (one <question> per matrix, usually wrapped in <quiz>):

    <question type="oumatrix">
      <inputtype>single</inputtype>
      <grademethod>partial</grademethod>
      <shuffleanswers>1</shuffleanswers>
      <columns>
        <column key="0"><text>True</text></column>
      </columns>
      <rows>
        <row key="0">
          <name><text>Row</text></name>
          <correctanswers><text>{"0":"1"}</text></correctanswers>
          <feedback format="html"><text>...</text><file name=".." encoding="base64">..</file></feedback>
        </row>
      </rows>
      <correctfeedback format="html"><text>...</text></correctfeedback>
      <partiallycorrectfeedback format="html"><text>...</text></partiallycorrectfeedback>
      <incorrectfeedback format="html"><text>...</text></incorrectfeedback>
      <shownumcorrect/>
    </question>

Keys are positions in the exported sequence, never storage ids, and the
correctanswers blob is keyed by column key. Import therefore decodes rows
against the column keys of the same document. A document that cannot be
read fails as a whole with InterchangeFormatError.
"""

from __future__ import annotations

import base64
import binascii
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from dataclasses import dataclass, field

from loguru import logger

from .attachments import AttachmentStore, StoredFile
from .codec import encode_correct_answers, parse_correct_answers
from .errors import AnswerEncodingError, InterchangeFormatError
from .models import (
    FormRow,
    GradeMethod,
    InputMode,
    MatrixForm,
    MatrixQuestion,
    RichText,
    TextFormat,
)

QUESTION_TYPE = "oumatrix"

_COMBINED_FEEDBACK = (
    ("correctfeedback", "correct_feedback"),
    ("partiallycorrectfeedback", "partially_correct_feedback"),
    ("incorrectfeedback", "incorrect_feedback"),
)


# =============================================================================
# Export
# =============================================================================


def _add_text(parent: ET.Element, tag: str, text: str) -> ET.Element:
    """<tag><text>text</text></tag>"""
    element = ET.SubElement(parent, tag)
    ET.SubElement(element, "text").text = text or ""
    return element


def _add_rich_text(parent: ET.Element, tag: str, text: RichText, files: Iterable[StoredFile] = ()) -> ET.Element:
    element = ET.SubElement(parent, tag, {"format": text.format.value})
    ET.SubElement(element, "text").text = text.text or ""
    for stored in files:
        file_element = ET.SubElement(element, "file", {"name": stored.name, "path": "/", "encoding": "base64"})
        file_element.text = base64.b64encode(stored.content).decode("ascii")
    return element


def build_question_element(
    question: MatrixQuestion,
    attachments: AttachmentStore | None = None,
    name: str | None = None,
) -> ET.Element:
    """Build the <question> element for a loaded question."""
    options = question.options
    root = ET.Element("question", {"type": QUESTION_TYPE})
    if name:
        _add_text(root, "name", name)

    ET.SubElement(root, "inputtype").text = options.input_mode.value
    ET.SubElement(root, "grademethod").text = options.grade_method.value
    ET.SubElement(root, "shuffleanswers").text = "1" if options.shuffle_answers else "0"

    column_keys: dict[int, int] = {}
    columns_element = ET.SubElement(root, "columns")
    for key, column in enumerate(question.columns):
        column_keys[column.id] = key
        column_element = ET.SubElement(columns_element, "column", {"key": str(key)})
        ET.SubElement(column_element, "text").text = column.name

    rows_element = ET.SubElement(root, "rows")
    for key, row in enumerate(question.rows):
        row_element = ET.SubElement(rows_element, "row", {"key": str(key)})
        _add_text(row_element, "name", row.name)
        rekeyed = {
            column_keys[column_id]: marker
            for column_id, marker in row.correct_answers.items()
            if column_id in column_keys
        }
        _add_text(row_element, "correctanswers", encode_correct_answers(rekeyed))
        if row.feedback:
            files = attachments.list_files(question.context_id, row.id) if attachments else []
            _add_rich_text(row_element, "feedback", RichText(row.feedback, row.feedback_format), files)

    for tag, attribute in _COMBINED_FEEDBACK:
        _add_rich_text(root, tag, getattr(options, attribute))
    if options.show_num_correct:
        ET.SubElement(root, "shownumcorrect")
    return root


def _serialize(element: ET.Element) -> str:
    ET.indent(element, space="  ")
    return ET.tostring(element, encoding="unicode")


def export_question(
    question: MatrixQuestion,
    attachments: AttachmentStore | None = None,
    name: str | None = None,
) -> str:
    """Export one question as a <question> element string."""
    return _serialize(build_question_element(question, attachments, name=name))


def export_quiz(
    questions: Iterable[MatrixQuestion],
    attachments: AttachmentStore | None = None,
) -> str:
    """Export questions as a complete <quiz> document."""
    root = ET.Element("quiz")
    count = 0
    for question in questions:
        root.append(build_question_element(question, attachments, name=f"Matrix question {question.question_id}"))
        count += 1
    logger.info(f"Exported {count} matrix question(s)")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + _serialize(root) + "\n"


# =============================================================================
# Import
# =============================================================================


@dataclass
class _ImportCursor:
    """
    Position within one question being imported.

    Columns and rows without a key attribute are keyed by encounter index.
    column_positions maps a column key to its ordinal in the form.
    """
    column_index: int = 0
    row_index: int = 0
    column_positions: dict[str, int] = field(default_factory=dict)

    def add_column(self, element: ET.Element) -> None:
        key = element.get("key", str(self.column_index)).strip()
        if key in self.column_positions:
            raise InterchangeFormatError(f"Duplicate column key {key!r}")
        self.column_positions[key] = self.column_index
        self.column_index += 1

    def next_row(self) -> int:
        index = self.row_index
        self.row_index += 1
        return index


def _child_text(element: ET.Element | None, path: str, default: str = "") -> str:
    if element is None:
        return default
    found = element.find(path)
    if found is None or found.text is None:
        return default
    return found.text


def _parse_bool(value: str, default: bool) -> bool:
    value = value.strip().lower()
    if value == "":
        return default
    return value in {"1", "true", "yes"}


def _parse_enum(enum_type, value: str, default):
    value = value.strip()
    if not value:
        return default
    try:
        return enum_type(value)
    except ValueError as e:
        raise InterchangeFormatError(f"Unknown {enum_type.__name__} {value!r}") from e


def _read_files(element: ET.Element) -> list[StoredFile]:
    files = []
    for file_element in element.findall("file"):
        name = file_element.get("name")
        if not name:
            raise InterchangeFormatError("Attached file has no name")
        try:
            content = base64.b64decode((file_element.text or "").strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise InterchangeFormatError(f"Attached file {name!r} is not valid base64") from e
        files.append(StoredFile(name=name, content=content))
    return files


# Rich text read so far and the files embedded in it, stored once the document has parsed
_PendingFiles = list[tuple[RichText, list[StoredFile]]]


def _read_rich_text(element: ET.Element | None, pending: _PendingFiles, default: str = "") -> RichText:
    if element is None:
        return RichText(text=default)
    text = RichText(
        text=_child_text(element, "text", default),
        format=TextFormat.parse(element.get("format")),
    )
    files = _read_files(element)
    if files:
        pending.append((text, files))
    return text


def _create_drafts(pending: _PendingFiles, attachments: AttachmentStore | None) -> None:
    if not pending:
        return
    if attachments is None:
        count = sum(len(files) for _, files in pending)
        logger.warning(f"Dropping {count} attached file(s): no attachment store configured")
        return
    for text, files in pending:
        text.draft_id = attachments.create_draft(files)


def _read_row(
    element: ET.Element,
    cursor: _ImportCursor,
    input_mode: InputMode,
    pending: _PendingFiles,
) -> FormRow:
    index = cursor.next_row()
    blob = _child_text(element, "correctanswers/text")
    try:
        correct = parse_correct_answers(blob)
    except AnswerEncodingError as e:
        raise InterchangeFormatError(f"Row {index}: {e}") from e

    form_row = FormRow(
        name=_child_text(element, "name/text"),
        feedback=_read_rich_text(element.find("feedback"), pending),
    )
    # Column order decides which column a SINGLE row gets when the blob names several
    for key, position in cursor.column_positions.items():
        if key not in correct:
            continue
        if input_mode == InputMode.SINGLE:
            form_row.answer = position + 1
            break
        form_row.flags[position] = correct[key]
    return form_row


def _read_question(element: ET.Element, pending: _PendingFiles) -> MatrixForm:
    question_type = element.get("type")
    if question_type != QUESTION_TYPE:
        raise InterchangeFormatError(f"Expected a {QUESTION_TYPE} question, got {question_type!r}")

    input_mode = _parse_enum(InputMode, _child_text(element, "inputtype"), InputMode.SINGLE)
    form = MatrixForm(
        input_mode=input_mode,
        grade_method=_parse_enum(GradeMethod, _child_text(element, "grademethod"), GradeMethod.PARTIAL_CREDIT),
        shuffle_answers=_parse_bool(_child_text(element, "shuffleanswers"), True),
        show_num_correct=element.find("shownumcorrect") is not None,
    )

    cursor = _ImportCursor()
    for column_element in element.findall("columns/column"):
        cursor.add_column(column_element)
        form.columns.append(_child_text(column_element, "text"))

    for row_element in element.findall("rows/row"):
        form.rows.append(_read_row(row_element, cursor, input_mode, pending))

    for tag, attribute in _COMBINED_FEEDBACK:
        setattr(form, attribute, _read_rich_text(element.find(tag), pending))
    return form


def _parse_document(source: str | bytes | ET.Element) -> ET.Element:
    if isinstance(source, ET.Element):
        return source
    try:
        return ET.fromstring(source)
    except ET.ParseError as e:
        raise InterchangeFormatError(f"Not a well-formed document: {e}") from e


def _read_matrix_questions(root: ET.Element, pending: _PendingFiles) -> list[MatrixForm]:
    if root.tag == "question":
        elements = [root]
    elif root.tag == "quiz":
        elements = root.findall("question")
    else:
        raise InterchangeFormatError(f"Unexpected root element <{root.tag}>")

    forms = []
    for element in elements:
        if element.get("type") != QUESTION_TYPE:
            logger.debug(f"Skipping question of type {element.get('type')!r}")
            continue
        forms.append(_read_question(element, pending))
    return forms


def import_quiz(source: str | bytes | ET.Element, attachments: AttachmentStore | None = None) -> list[MatrixForm]:
    """
    Import every matrix question of a document.

    The root may be a single <question> or a <quiz>. Questions of other
    types are skipped; each matrix question gets its own cursor. Embedded
    files are put into draft areas only after the whole document has been
    read, so a malformed document leaves nothing behind.

    Raises:
        InterchangeFormatError: the document, or any matrix question in it, is malformed
    """
    pending: _PendingFiles = []
    forms = _read_matrix_questions(_parse_document(source), pending)
    _create_drafts(pending, attachments)
    logger.info(f"Imported {len(forms)} matrix question(s)")
    return forms


def import_question(source: str | bytes | ET.Element, attachments: AttachmentStore | None = None) -> MatrixForm:
    """
    Import a document holding exactly one matrix question.

    Raises:
        InterchangeFormatError: malformed document, or not exactly one matrix question
    """
    pending: _PendingFiles = []
    root = _parse_document(source)
    if root.tag == "question":
        forms = [_read_question(root, pending)]
    else:
        forms = _read_matrix_questions(root, pending)
    if len(forms) != 1:
        raise InterchangeFormatError(f"Expected one {QUESTION_TYPE} question, found {len(forms)}")
    _create_drafts(pending, attachments)
    return forms[0]
