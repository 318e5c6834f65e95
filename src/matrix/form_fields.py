"""
Flat form-field layout of the matrix editing form and attempt response.

The hosting form engine submits repeated groups as parallel arrays:

    columnname[i]       column slot names
    rowname[i]          row slot names
    rowanswers[i]       SINGLE mode: radio value for row i ("a2" or 2)
    rowanswersa{k}[i]   MULTIPLE mode: checkbox for row i, column k (1-based)
    feedback[i]         {"text", "format", "itemid"} editor value for row i

Attempt responses use one field per row (SINGLE, value = column number)
or per cell (MULTIPLE, value = "1"):

    rowanswers{row}
    rowanswers{row}_{column}

This module is the only place those names are built or parsed. Everything
else works with MatrixForm / FormRow and response mappings.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from .models import FormRow, GradeMethod, InputMode, MatrixForm, RichText, TextFormat, is_blank

COLUMN_NAME_FIELD = "columnname"
ROW_NAME_FIELD = "rowname"
ROW_ANSWER_FIELD = "rowanswers"
ROW_FEEDBACK_FIELD = "feedback"

_FLAG_FIELD = re.compile(r"^rowanswersa(\d+)$")

_COMBINED_FEEDBACK_FIELDS = {
    "correctfeedback": "correct_feedback",
    "partiallycorrectfeedback": "partially_correct_feedback",
    "incorrectfeedback": "incorrect_feedback",
}


def flag_field_name(column_number: int) -> str:
    """Checkbox group name for a 0-based column number."""
    return f"{ROW_ANSWER_FIELD}a{column_number + 1}"


def _indexed(value: Any) -> dict[int, Any]:
    """Read a repeated field submitted either as a list or a sparse mapping."""
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return {int(k): v for k, v in value.items()}
    return {i: v for i, v in enumerate(value) if v is not None}


def _as_bool(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _editor_value(value: Any) -> RichText:
    if value is None:
        return RichText()
    if isinstance(value, str):
        return RichText(text=value)
    return RichText(
        text=value.get("text") or "",
        format=TextFormat.parse(value.get("format")),
        draft_id=value.get("itemid") or None,
    )


def _editor_fields(text: RichText) -> dict[str, Any]:
    return {"text": text.text, "format": text.format.value, "itemid": text.draft_id or ""}


# =============================================================================
# Editing form
# =============================================================================


def from_form_fields(data: Mapping[str, Any]) -> MatrixForm:
    """
    Build a MatrixForm from submitted flat form data.

    The number of row slots is the length of rowname; answer entries for
    slots beyond it are ignored.
    """
    input_mode = InputMode(data.get("inputtype") or InputMode.SINGLE.value)
    grade_method = GradeMethod(data.get("grademethod") or GradeMethod.PARTIAL_CREDIT.value)

    columns = [str(name or "") for name in data.get(COLUMN_NAME_FIELD) or []]
    names = data.get(ROW_NAME_FIELD) or []
    feedback = _indexed(data.get(ROW_FEEDBACK_FIELD))
    rows = [
        FormRow(name=str(name or ""), feedback=_editor_value(feedback.get(i)))
        for i, name in enumerate(names)
    ]

    if input_mode == InputMode.SINGLE:
        for i, value in _indexed(data.get(ROW_ANSWER_FIELD)).items():
            if i < len(rows) and not is_blank(value):
                rows[i].answer = value
    else:
        for field_name, value in data.items():
            match = _FLAG_FIELD.match(field_name)
            if not match:
                continue
            column_number = int(match.group(1)) - 1
            for i, flag in _indexed(value).items():
                if i < len(rows):
                    rows[i].flags[column_number] = str(flag)
        for row in rows:
            row.flags = dict(sorted(row.flags.items()))

    form = MatrixForm(
        input_mode=input_mode,
        grade_method=grade_method,
        shuffle_answers=_as_bool(data.get("shuffleanswers"), True),
        show_num_correct=_as_bool(data.get("shownumcorrect"), True),
        columns=columns,
        rows=rows,
    )
    for field_name, attribute in _COMBINED_FEEDBACK_FIELDS.items():
        if field_name in data:
            setattr(form, attribute, _editor_value(data[field_name]))
    return form


def to_form_fields(form: MatrixForm) -> dict[str, Any]:
    """
    Flatten a MatrixForm into the repeated-field layout.

    Only ticked cells produce an entry; an unticked checkbox is absent,
    never an explicit False.
    """
    data: dict[str, Any] = {
        "inputtype": form.input_mode.value,
        "grademethod": form.grade_method.value,
        "shuffleanswers": int(form.shuffle_answers),
        "shownumcorrect": int(form.show_num_correct),
        COLUMN_NAME_FIELD: list(form.columns),
        ROW_NAME_FIELD: [row.name for row in form.rows],
        ROW_FEEDBACK_FIELD: [_editor_fields(row.feedback) for row in form.rows],
    }

    if form.input_mode == InputMode.SINGLE:
        data[ROW_ANSWER_FIELD] = {
            i: row.answer for i, row in enumerate(form.rows) if row.answer is not None
        }
    else:
        for i, row in enumerate(form.rows):
            for column_number, flag in row.flags.items():
                data.setdefault(flag_field_name(column_number), {})[i] = flag

    for field_name, attribute in _COMBINED_FEEDBACK_FIELDS.items():
        data[field_name] = _editor_fields(getattr(form, attribute))
    return data


# =============================================================================
# Attempt responses
# =============================================================================


def response_field_name(row_number: int, column_number: int | None = None) -> str:
    """Field name of a response input. Pass column_number for MULTIPLE mode."""
    if column_number is None:
        return f"{ROW_ANSWER_FIELD}{row_number}"
    return f"{ROW_ANSWER_FIELD}{row_number}_{column_number}"


def response_from_fields(
    data: Mapping[str, Any],
    input_mode: InputMode,
    num_rows: int,
    num_columns: int,
) -> dict[int, set[int]]:
    """
    Read an attempt response into row number -> selected column numbers.

    Rows with nothing selected are omitted. Out-of-range and non-numeric
    SINGLE values are ignored.
    """
    response: dict[int, set[int]] = {}
    for row_number in range(num_rows):
        selected: set[int] = set()
        if input_mode == InputMode.SINGLE:
            value = data.get(response_field_name(row_number))
            try:
                column_number = int(value)
            except (TypeError, ValueError):
                continue
            if 0 <= column_number < num_columns:
                selected.add(column_number)
        else:
            for column_number in range(num_columns):
                if _as_bool(data.get(response_field_name(row_number, column_number)), False):
                    selected.add(column_number)
        if selected:
            response[row_number] = selected
    return response


def response_to_fields(response: Mapping[int, set[int]], input_mode: InputMode) -> dict[str, str]:
    """Inverse of response_from_fields."""
    data: dict[str, str] = {}
    for row_number, selected in response.items():
        if input_mode == InputMode.SINGLE:
            if selected:
                data[response_field_name(row_number)] = str(min(selected))
        else:
            for column_number in sorted(selected):
                data[response_field_name(row_number, column_number)] = "1"
    return data
