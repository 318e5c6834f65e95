"""
Configuration settings for the matrix question service.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.matrix.models import GradeMethod, InputMode, MatrixDefaults


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///matrix_questions.db",
        description="SQLAlchemy connection string",
    )

    # ========================================
    # Attachments
    # ========================================
    attachments_dir: str = Field(
        default="data/attachments",
        description="Root directory for row feedback files and draft areas",
    )

    # ========================================
    # Matrix question defaults
    # ========================================
    matrix_default_input_mode: Literal["single", "multiple"] = Field(
        default="single",
        description="Answer mode of new questions (one or several columns per row)",
    )
    matrix_default_grade_method: Literal["partial", "allnone"] = Field(
        default="partial",
        description="Grading of new multi-answer questions",
    )
    matrix_default_shuffle_answers: bool = Field(
        default=True,
        description="Shuffle rows of new questions",
    )
    matrix_min_columns: int = Field(
        default=2,
        ge=1,
        description="Minimum number of named answer columns",
    )
    matrix_min_rows: int = Field(
        default=2,
        ge=1,
        description="Minimum number of named rows",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    def get_matrix_defaults(self) -> MatrixDefaults:
        """Defaults handed to the mapper and validator."""
        return MatrixDefaults(
            input_mode=InputMode(self.matrix_default_input_mode),
            grade_method=GradeMethod(self.matrix_default_grade_method),
            shuffle_answers=self.matrix_default_shuffle_answers,
            min_columns=self.matrix_min_columns,
            min_rows=self.matrix_min_rows,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
