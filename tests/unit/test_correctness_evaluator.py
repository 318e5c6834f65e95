"""
Unit tests for the correctness evaluator.

Run: pytest tests/unit/test_correctness_evaluator.py -v
"""
import pytest

from src.matrix.codec import normalize_form
from src.matrix.evaluator import (
    CellResult,
    correct_response_summary,
    count_correct_choices,
    evaluate,
    format_correct_response,
    is_choice_correct,
    random_guess_score,
    too_many_selected,
)
from src.matrix.models import FormRow, InputMode, MatrixForm


@pytest.fixture
def capitals(single_form):
    return normalize_form(single_form, question_id=1)


@pytest.fixture
def animals(multiple_form):
    return normalize_form(multiple_form, question_id=2)


class TestCellCorrectness:
    """Per-cell right/wrong marks."""

    def test_is_choice_correct(self, capitals):
        paris = capitals.rows[0]
        assert is_choice_correct(capitals, paris, 0)
        assert not is_choice_correct(capitals, paris, 1)
        assert not is_choice_correct(capitals, paris, 7)

    def test_evaluate_single_response(self, capitals):
        results = evaluate(capitals, {0: {0}, 1: {2}})
        assert results == [
            CellResult(row_number=0, column_number=0, correct=True),
            CellResult(row_number=1, column_number=2, correct=False),
        ]

    def test_evaluate_multiple_response(self, animals):
        results = evaluate(animals, {1: {2, 0}})
        assert [(r.column_number, r.correct) for r in results] == [(0, False), (2, True)]

    def test_empty_response(self, capitals):
        assert evaluate(capitals, {}) == []


class TestRandomGuessScore:
    """Correct cells divided by rows, not a probability."""

    def test_one_correct_per_row(self):
        """Two rows with one correct cell each score 1.0."""
        form = MatrixForm(columns=["A", "B"], rows=[FormRow(name="x", answer=1), FormRow(name="y", answer=2)])
        assert random_guess_score(normalize_form(form)) == 1.0

    def test_can_exceed_one(self):
        """Rows with two and one correct cells score 1.5."""
        form = MatrixForm(
            input_mode=InputMode.MULTIPLE,
            columns=["A", "B"],
            rows=[FormRow(name="x", flags={0: "1", 1: "1"}), FormRow(name="y", flags={1: "1"})],
        )
        assert random_guess_score(normalize_form(form)) == 1.5

    def test_only_unit_markers_count(self):
        form = MatrixForm(
            input_mode=InputMode.MULTIPLE,
            columns=["A", "B"],
            rows=[FormRow(name="x", flags={0: "1", 1: "2"}), FormRow(name="y", flags={1: "yes"})],
        )
        question = normalize_form(form)
        assert count_correct_choices(question) == 1
        assert random_guess_score(question) == 0.5

    def test_no_rows(self, capitals):
        capitals.rows = []
        assert random_guess_score(capitals) == 0.0


class TestCorrectResponse:
    """Summary lines and the too-many-selected check."""

    def test_single_summary(self, capitals):
        assert correct_response_summary(capitals) == ["Paris => France", "Madrid => Spain", "Rome => Italy"]

    def test_multiple_summary(self, animals):
        assert correct_response_summary(animals) == [
            "Duck => Flies, Swims, Walks",
            "Penguin => Swims, Walks",
        ]

    def test_format_correct_response(self, animals):
        text = format_correct_response(animals)
        assert text.startswith("The correct answers are: Duck => Flies")

    def test_format_single_line(self, capitals):
        capitals.rows = capitals.rows[:1]
        assert format_correct_response(capitals) == "The correct answer is: Paris => France"

    def test_too_many_selected(self, animals):
        """Five cells are correct; ticking six is too many."""
        assert not too_many_selected(animals, {0: {0, 1, 2}, 1: {0, 1}})
        assert too_many_selected(animals, {0: {0, 1, 2}, 1: {0, 1, 2}})

    def test_too_many_selected_ignores_single_mode(self, capitals):
        assert not too_many_selected(capitals, {0: {0, 1, 2}, 1: {0, 1, 2}})
