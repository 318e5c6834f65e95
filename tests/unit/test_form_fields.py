"""
Unit tests for the flat form-field layout.

Run: pytest tests/unit/test_form_fields.py -v
"""
import pytest

from src.matrix.form_fields import (
    flag_field_name,
    from_form_fields,
    response_field_name,
    response_from_fields,
    response_to_fields,
    to_form_fields,
)
from src.matrix.models import FormRow, GradeMethod, InputMode, MatrixForm, TextFormat


class TestEditingForm:
    """columnname[i] / rowanswers[i] / rowanswersa{k}[i]."""

    def test_single_answer_field(self):
        """SINGLE ordinal 2 is written as rowanswers[row] = 2."""
        form = MatrixForm(columns=["A", "B", "C"], rows=[FormRow(name="r0", answer=1), FormRow(name="r1", answer=2)])
        data = to_form_fields(form)
        assert data["rowanswers"] == {0: 1, 1: 2}
        assert not any(key.startswith("rowanswersa") for key in data)

    def test_multiple_flag_fields(self):
        """Correct {0, 2} of 3 columns gives rowanswersa1 and rowanswersa3 only."""
        form = MatrixForm(
            input_mode=InputMode.MULTIPLE,
            columns=["A", "B", "C"],
            rows=[FormRow(name="r0"), FormRow(name="r1", flags={0: "1", 2: "1"})],
        )
        data = to_form_fields(form)
        assert data["rowanswersa1"] == {1: "1"}
        assert data["rowanswersa3"] == {1: "1"}
        assert "rowanswersa2" not in data
        assert "rowanswers" not in data

    def test_flag_field_name(self):
        assert flag_field_name(0) == "rowanswersa1"

    def test_read_single_form(self):
        data = {
            "inputtype": "single",
            "grademethod": "partial",
            "shuffleanswers": "0",
            "columnname": ["A", "B", ""],
            "rowname": ["r0", "r1"],
            "rowanswers": ["a2", "1"],
            "feedback": [{"text": "<p>Hi</p>", "format": "html", "itemid": "abc"}, None],
        }
        form = from_form_fields(data)
        assert form.input_mode == InputMode.SINGLE
        assert form.shuffle_answers is False
        assert form.columns == ["A", "B", ""]
        assert [row.answer for row in form.rows] == ["a2", "1"]
        assert form.rows[0].feedback.text == "<p>Hi</p>"
        assert form.rows[0].feedback.draft_id == "abc"
        assert form.rows[1].feedback.is_empty

    def test_read_multiple_form_sparse_mapping(self):
        """Checkbox groups arrive as sparse mappings keyed by row slot."""
        data = {
            "inputtype": "multiple",
            "grademethod": "allnone",
            "columnname": ["A", "B", "C"],
            "rowname": ["r0", "r1"],
            "rowanswersa3": {"0": "1"},
            "rowanswersa1": {"0": "1", "1": "1"},
            "rowanswersa2": {"7": "1"},
        }
        form = from_form_fields(data)
        assert form.grade_method == GradeMethod.ALL_OR_NOTHING
        assert form.rows[0].flags == {0: "1", 2: "1"}
        assert form.rows[1].flags == {0: "1"}

    def test_combined_feedback_fields(self):
        data = {
            "columnname": ["A", "B"],
            "rowname": [],
            "correctfeedback": {"text": "Yes", "format": "plain_text"},
        }
        form = from_form_fields(data)
        assert form.correct_feedback.text == "Yes"
        assert form.correct_feedback.format == TextFormat.PLAIN
        assert to_form_fields(form)["correctfeedback"]["text"] == "Yes"

    @pytest.mark.parametrize("mode", [InputMode.SINGLE, InputMode.MULTIPLE])
    def test_fields_read_back(self, mode, single_form, multiple_form):
        form = single_form if mode == InputMode.SINGLE else multiple_form
        again = from_form_fields(to_form_fields(form))
        assert again.columns == form.columns
        assert [r.name for r in again.rows] == [r.name for r in form.rows]
        if mode == InputMode.SINGLE:
            assert [r.answer for r in again.rows] == [r.answer for r in form.rows]
        else:
            assert [r.flags for r in again.rows] == [r.flags for r in form.rows]


class TestResponseFields:
    """rowanswers{row} and rowanswers{row}_{col}."""

    def test_field_names(self):
        assert response_field_name(3) == "rowanswers3"
        assert response_field_name(3, 1) == "rowanswers3_1"

    def test_single_response(self):
        data = {"rowanswers0": "2", "rowanswers1": "x", "rowanswers2": "9"}
        assert response_from_fields(data, InputMode.SINGLE, num_rows=3, num_columns=3) == {0: {2}}

    def test_multiple_response(self):
        data = {"rowanswers0_0": "1", "rowanswers0_2": "1", "rowanswers1_1": "0"}
        response = response_from_fields(data, InputMode.MULTIPLE, num_rows=2, num_columns=3)
        assert response == {0: {0, 2}}

    def test_response_to_fields(self):
        assert response_to_fields({0: {0, 2}}, InputMode.MULTIPLE) == {"rowanswers0_0": "1", "rowanswers0_2": "1"}
        assert response_to_fields({1: {2}}, InputMode.SINGLE) == {"rowanswers1": "2"}
