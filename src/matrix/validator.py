"""
Matrix Validator - structural checks on an authored matrix before it is saved.

Every rule runs independently; the result is the full ordered list of
field-scoped errors. Keys use the editing form's widget names:

- columnname[i]  for column slot i
- rowoptions[i]  for row slot i (name, answer radios/checkboxes and feedback)

An empty list means the form can be normalized and saved.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .codec import column_field_key, row_field_key
from .errors import FieldError, FormValidationError
from .models import InputMode, MatrixDefaults, MatrixForm, is_blank

MIN_NUMBER_OF_COLUMNS = 2
MIN_NUMBER_OF_ROWS = 2


def _first_blank_slot(names: Sequence[str]) -> int:
    for i, name in enumerate(names):
        if is_blank(name):
            return i
    return len(names)


def _duplicate_slots(names: Sequence[str]) -> list[tuple[int, str]]:
    """(slot, name) for every non-blank name already seen in an earlier slot."""
    seen: set[str] = set()
    duplicates = []
    for i, name in enumerate(names):
        if is_blank(name):
            continue
        key = name.strip()
        if key in seen:
            duplicates.append((i, name))
        seen.add(key)
    return duplicates


def _interior_blank_slots(names: Sequence[str]) -> list[int]:
    """Blank slots followed by a non-blank slot. Trailing blanks are fine."""
    slots = []
    value_found = False
    for i in range(len(names) - 1, -1, -1):
        if not is_blank(names[i]):
            value_found = True
        elif value_found:
            slots.append(i)
    return sorted(slots)


@dataclass
class MatrixValidator:
    """Validates authored matrix forms against the configured minimums."""
    min_columns: int = MIN_NUMBER_OF_COLUMNS
    min_rows: int = MIN_NUMBER_OF_ROWS

    @classmethod
    def from_defaults(cls, defaults: MatrixDefaults) -> "MatrixValidator":
        return cls(min_columns=defaults.min_columns, min_rows=defaults.min_rows)

    def validate(self, form: MatrixForm) -> list[FieldError]:
        """Run every rule and return the errors in rule order."""
        errors: list[FieldError] = []
        errors.extend(self._check_columns(form.columns))
        errors.extend(self._check_rows(form))
        errors.extend(self._check_answers(form))
        return errors

    def check(self, form: MatrixForm) -> None:
        """
        Raise if the form has any errors.

        Raises:
            FormValidationError: with the full error list
        """
        errors = self.validate(form)
        if errors:
            raise FormValidationError(errors)

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    def _check_columns(self, names: Sequence[str]) -> list[FieldError]:
        errors = []
        filled = sum(1 for name in names if not is_blank(name))
        if filled < self.min_columns:
            errors.append(FieldError(
                column_field_key(_first_blank_slot(names)),
                f"You must have at least {self.min_columns} answer columns.",
            ))

        for slot, name in _duplicate_slots(names):
            errors.append(FieldError(
                column_field_key(slot),
                f"Duplicate column name '{name}'. Every column needs a different name.",
            ))

        for slot in _interior_blank_slots(names):
            errors.append(FieldError(
                column_field_key(slot),
                "Blank columns are not allowed between named columns.",
            ))
        return errors

    def _check_rows(self, form: MatrixForm) -> list[FieldError]:
        errors = []
        names = [row.name for row in form.rows]
        filled = sum(1 for name in names if not is_blank(name))
        if filled < self.min_rows:
            errors.append(FieldError(
                row_field_key(_first_blank_slot(names)),
                f"You must have at least {self.min_rows} question rows.",
            ))

        for slot, name in _duplicate_slots(names):
            errors.append(FieldError(
                row_field_key(slot),
                f"Duplicate row name '{name}'. Every row needs a different name.",
            ))
        return errors

    def _check_answers(self, form: MatrixForm) -> list[FieldError]:
        if form.input_mode == InputMode.SINGLE:
            message = "Choose the correct answer for this row."
        else:
            message = "Choose at least one correct answer for this row."
        num_columns = len(form.filled_columns())
        return [
            FieldError(row_field_key(slot), message)
            for slot, row in form.filled_rows()
            if not row.has_answer(form.input_mode, num_columns)
        ]


def validate_form(
    form: MatrixForm,
    min_columns: int = MIN_NUMBER_OF_COLUMNS,
    min_rows: int = MIN_NUMBER_OF_ROWS,
) -> list[FieldError]:
    """Validate a form with explicit minimums."""
    return MatrixValidator(min_columns=min_columns, min_rows=min_rows).validate(form)
