"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.db.models import Base  # noqa: E402
from src.matrix.attachments import FilesystemAttachmentStore  # noqa: E402
from src.matrix.models import (  # noqa: E402
    FormRow,
    GradeMethod,
    InputMode,
    MatrixDefaults,
    MatrixForm,
    RichText,
)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


# ========================================
# Database
# ========================================


@pytest.fixture
def engine():
    """In-memory SQLite engine with the matrix tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    """Session on the in-memory engine. Tests commit or roll back themselves."""
    with Session(engine) as session:
        yield session


@pytest.fixture
def attachments(tmp_path):
    """Attachment store rooted in a temporary directory."""
    return FilesystemAttachmentStore(tmp_path / "attachments")


@pytest.fixture
def defaults():
    return MatrixDefaults()


# ========================================
# Sample forms
# ========================================


@pytest.fixture
def single_form():
    """Three capitals against three countries, one correct column per row."""
    return MatrixForm(
        input_mode=InputMode.SINGLE,
        grade_method=GradeMethod.PARTIAL_CREDIT,
        columns=["France", "Spain", "Italy"],
        rows=[
            FormRow(name="Paris", answer=1),
            FormRow(name="Madrid", answer="a2"),
            FormRow(name="Rome", answer=3, feedback=RichText("Rome is in Italy.")),
        ],
        correct_feedback=RichText("Well done."),
        partially_correct_feedback=RichText("Nearly."),
        incorrect_feedback=RichText("Not quite."),
    )


@pytest.fixture
def multiple_form():
    """Animals against traits, several correct columns per row."""
    return MatrixForm(
        input_mode=InputMode.MULTIPLE,
        grade_method=GradeMethod.ALL_OR_NOTHING,
        columns=["Flies", "Swims", "Walks", ""],
        rows=[
            FormRow(name="Duck", flags={0: "1", 1: "1", 2: "1"}),
            FormRow(name="Penguin", flags={1: "1", 2: "1"}),
            FormRow(name=""),
        ],
    )
