"""
Unit tests for MatrixValidator.

Run: pytest tests/unit/test_matrix_validator.py -v
"""
import pytest

from src.matrix.errors import FormValidationError
from src.matrix.models import FormRow, InputMode, MatrixDefaults, MatrixForm
from src.matrix.validator import MatrixValidator, validate_form


def _form(columns, rows=None, mode=InputMode.SINGLE):
    if rows is None:
        rows = [FormRow(name="r1", answer=1, flags={0: "1"}), FormRow(name="r2", answer=1, flags={0: "1"})]
    return MatrixForm(input_mode=mode, columns=columns, rows=rows)


def _keys(errors):
    return [e.key for e in errors]


class TestColumnRules:
    """Column count, uniqueness and gaps."""

    def test_valid_form_has_no_errors(self, single_form):
        assert validate_form(single_form) == []

    def test_duplicate_column_reported_once_at_second_slot(self):
        """Columns ["A","A","B"] give exactly one duplicate error at index 1."""
        errors = validate_form(_form(["A", "A", "B"]))
        assert _keys(errors) == ["columnname[1]"]
        assert "Duplicate" in errors[0].message

    def test_duplicates_compare_stripped_names(self):
        errors = validate_form(_form(["A", " A ", "B"]))
        assert _keys(errors) == ["columnname[1]"]

    def test_interior_blank_reported(self):
        """Columns ["A","","B"] give a blank-gap error at index 1."""
        errors = validate_form(_form(["A", "", "B"]))
        assert _keys(errors) == ["columnname[1]"]
        assert "Blank" in errors[0].message

    def test_trailing_blanks_tolerated(self):
        """Columns ["A","B",""] give no error."""
        assert validate_form(_form(["A", "B", ""])) == []

    def test_too_few_columns_keyed_to_first_blank(self):
        errors = validate_form(_form(["A", "", ""]))
        assert _keys(errors) == ["columnname[1]"]

    def test_too_few_columns_without_blank_slot(self):
        """With no blank slot the error goes to the next slot index."""
        errors = validate_form(_form(["A"]))
        assert _keys(errors) == ["columnname[1]"]

    def test_rules_are_independent(self):
        """A form can break several column rules at once, reported in rule order."""
        errors = validate_form(_form(["", "A", "A"]), min_columns=3)
        assert _keys(errors) == ["columnname[0]", "columnname[2]", "columnname[0]"]


class TestRowRules:
    """Row count, uniqueness and answer completeness."""

    def test_too_few_rows(self):
        rows = [FormRow(name="r1", answer=1), FormRow(name="")]
        errors = validate_form(_form(["A", "B"], rows))
        assert _keys(errors) == ["rowoptions[1]"]

    def test_duplicate_row_name(self):
        rows = [FormRow(name="r", answer=1), FormRow(name="s", answer=2), FormRow(name="r", answer=1)]
        errors = validate_form(_form(["A", "B"], rows))
        assert _keys(errors) == ["rowoptions[2]"]

    def test_single_row_without_answer(self):
        rows = [FormRow(name="r1", answer=1), FormRow(name="r2")]
        errors = validate_form(_form(["A", "B"], rows))
        assert _keys(errors) == ["rowoptions[1]"]
        assert errors[0].message == "Choose the correct answer for this row."

    def test_multiple_row_without_flags(self):
        rows = [FormRow(name="r1", flags={0: "1"}), FormRow(name="r2")]
        errors = validate_form(_form(["A", "B"], rows, mode=InputMode.MULTIPLE))
        assert _keys(errors) == ["rowoptions[1]"]
        assert errors[0].message == "Choose at least one correct answer for this row."

    def test_multiple_flags_on_unnamed_columns_do_not_count(self):
        """Flags past the last named column are dropped on save, so the row has no answer."""
        rows = [FormRow(name="r1", flags={2: "1"}), FormRow(name="r2", flags={0: "1"})]
        errors = validate_form(_form(["A", "B", ""], rows, mode=InputMode.MULTIPLE))
        assert _keys(errors) == ["rowoptions[0]"]

    def test_multiple_row_with_one_flag_in_range(self):
        rows = [FormRow(name="r1", flags={1: "1", 5: "1"}), FormRow(name="r2", flags={0: "1"})]
        assert validate_form(_form(["A", "B"], rows, mode=InputMode.MULTIPLE)) == []

    def test_blank_rows_need_no_answer(self, multiple_form):
        """The trailing blank row slot of the sample form is ignored."""
        assert validate_form(multiple_form) == []


class TestConfiguredMinimums:
    """Minimums come from MatrixDefaults."""

    def test_from_defaults(self):
        validator = MatrixValidator.from_defaults(MatrixDefaults(min_columns=3, min_rows=1))
        assert validator.min_columns == 3
        assert validator.min_rows == 1

    def test_raised_minimum(self, single_form):
        validator = MatrixValidator(min_columns=4)
        assert _keys(validator.validate(single_form)) == ["columnname[3]"]

    def test_check_raises_with_all_errors(self):
        with pytest.raises(FormValidationError) as exc:
            MatrixValidator().check(_form(["A", "A", "", "B"]))
        assert exc.value.as_dict() == {
            "columnname[1]": "Duplicate column name 'A'. Every column needs a different name.",
            "columnname[2]": "Blank columns are not allowed between named columns.",
        }

    def test_check_passes_valid_form(self, single_form):
        MatrixValidator().check(single_form)
