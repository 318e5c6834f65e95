"""
Correctness Evaluator - read-only queries over a loaded matrix question.

Responses are mappings of row number -> selected column numbers, as
produced by form_fields.response_from_fields(). In SINGLE mode each set
holds at most one column.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from .models import InputMode, MatrixQuestion, Row

Response = Mapping[int, set[int]]


@dataclass(frozen=True)
class CellResult:
    """Correctness of one selected cell."""
    row_number: int
    column_number: int
    correct: bool


def is_choice_correct(question: MatrixQuestion, row: Row, column_number: int) -> bool:
    """True when the column with this number is marked correct for the row."""
    column = question.column_by_number(column_number)
    return column is not None and row.is_correct_column(column.id)


def evaluate(question: MatrixQuestion, response: Response) -> list[CellResult]:
    """Mark every selected cell right or wrong, in row then column order."""
    results = []
    for row in question.rows:
        for column_number in sorted(response.get(row.number, ())):
            results.append(CellResult(
                row_number=row.number,
                column_number=column_number,
                correct=is_choice_correct(question, row, column_number),
            ))
    return results


def _counts_as_correct(marker: str) -> bool:
    try:
        return int(str(marker).strip()) == 1
    except ValueError:
        return False


def count_correct_choices(question: MatrixQuestion) -> int:
    """Number of correct cells whose marker reads as 1."""
    return sum(
        1
        for row in question.rows
        for marker in row.correct_answers.values()
        if _counts_as_correct(marker)
    )


def random_guess_score(question: MatrixQuestion) -> float:
    """
    Correct cells divided by rows.

    This is not a probability: a MULTIPLE question with several correct
    columns per row scores above 1.0. Callers rely on the value as is.
    """
    if not question.rows:
        return 0.0
    return count_correct_choices(question) / len(question.rows)


def count_selected(response: Response) -> int:
    return sum(len(selected) for selected in response.values())


def too_many_selected(question: MatrixQuestion, response: Response) -> bool:
    """MULTIPLE mode only: more cells ticked than there are correct cells."""
    if question.input_mode != InputMode.MULTIPLE:
        return False
    correct_cells = sum(len(row.correct_answers) for row in question.rows)
    return count_selected(response) > correct_cells


def correct_response_summary(question: MatrixQuestion) -> list[str]:
    """
    One "row => column[, column]" line per row with a correct answer.

    SINGLE mode names only the first correct column.
    """
    lines = []
    for row in question.rows:
        names = [c.name for c in question.columns if c.id in row.correct_answers]
        if not names:
            continue
        if question.input_mode == InputMode.SINGLE:
            names = names[:1]
        lines.append(f"{row.name} => {', '.join(names)}")
    return lines


def format_correct_response(question: MatrixQuestion) -> str:
    """Sentence form of correct_response_summary, empty when nothing is correct."""
    lines = correct_response_summary(question)
    if not lines:
        return ""
    if len(lines) == 1:
        return f"The correct answer is: {lines[0]}"
    return f"The correct answers are: {', '.join(lines)}"
