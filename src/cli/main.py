"""
Typer CLI for the matrix question service.

Commands:
    matrixq db init              - Initialize database tables
    matrixq import FILE          - Import an interchange document as a question
    matrixq export QUESTION_ID   - Export a question as an interchange document
    matrixq show QUESTION_ID     - Show the matrix, correct answers and guess score
    matrixq delete QUESTION_ID   - Delete a question and its row feedback files

Usage:
    matrixq --help
    matrixq db init
    matrixq import examples/capitals.xml --question-id 7
    matrixq export 7 -o capitals.xml
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from config import Settings, get_settings
from src.db.database import init_db, session_scope
from src.matrix import (
    FilesystemAttachmentStore,
    FormValidationError,
    MatrixError,
    MatrixForm,
    MatrixQuestion,
    MatrixQuestionMapper,
    MatrixValidator,
)
from src.matrix.evaluator import correct_response_summary, random_guess_score
from src.matrix.interchange import export_quiz, import_question

app = typer.Typer(
    help="matrixq: author, store and exchange matrix questions",
    no_args_is_help=True,
)

console = Console()


# ========================================
# Helpers
# ========================================


def _configure_logging(settings: Settings) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if settings.log_file:
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB")


def _build_mapper(session) -> MatrixQuestionMapper:
    settings = get_settings()
    return MatrixQuestionMapper(
        session,
        defaults=settings.get_matrix_defaults(),
        attachments=FilesystemAttachmentStore(settings.attachments_dir),
    )


def _print_field_errors(error: FormValidationError) -> None:
    table = Table(title="Validation errors", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Message", style="red")
    for field_error in error.errors:
        table.add_row(field_error.key, field_error.message)
    console.print(table)


def _print_matrix(question: MatrixQuestion) -> None:
    options = question.options
    table = Table(
        title=f"Question {question.question_id} ({options.input_mode.value}, {options.grade_method.value})",
        show_header=True,
    )
    table.add_column("Row", style="bold")
    for column in question.columns:
        table.add_column(column.name, justify="center")
    for row in question.rows:
        cells = ["[green]✓[/green]" if row.is_correct_column(c.id) else "·" for c in question.columns]
        table.add_row(row.name, *cells)
    console.print(table)


# ========================================
# DATABASE COMMANDS
# ========================================

db_app = typer.Typer(help="Database management")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """
    Initialize database tables from SQLAlchemy models.

    Safe to run multiple times (idempotent).
    """
    logger.info("Initializing database tables...")
    init_db()
    rprint("[green]✓[/green] Database initialized!")


# ========================================
# QUESTION COMMANDS
# ========================================


def _discard_drafts(attachments: FilesystemAttachmentStore, form: MatrixForm | None) -> None:
    """Remove the draft areas an import created for a form that was not saved."""
    if form is None:
        return
    texts = [row.feedback for row in form.rows]
    texts += [form.correct_feedback, form.partially_correct_feedback, form.incorrect_feedback]
    for text in texts:
        attachments.discard_draft(text.draft_id)


@app.command("import")
def import_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Interchange XML document"),
    question_id: int = typer.Option(..., "--question-id", "-q", help="Question id to store the matrix under"),
    context_id: int = typer.Option(0, "--context-id", "-c", help="Context that owns row feedback files"),
) -> None:
    """Import a matrix question, validate it and save it."""
    settings = get_settings()
    attachments = FilesystemAttachmentStore(settings.attachments_dir)

    form = None
    try:
        form = import_question(file.read_bytes(), attachments)
        MatrixValidator.from_defaults(settings.get_matrix_defaults()).check(form)
        with session_scope() as session:
            question = _build_mapper(session).save(question_id, form, context_id=context_id)
    except FormValidationError as e:
        _discard_drafts(attachments, form)
        _print_field_errors(e)
        raise typer.Exit(code=1)
    except MatrixError as e:
        _discard_drafts(attachments, form)
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    rprint(
        f"[green]✓[/green] Imported question {question_id}: "
        f"{len(question.columns)} columns, {len(question.rows)} rows"
    )


@app.command("export")
def export_command(
    question_id: int = typer.Argument(..., help="Question id"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write to a file instead of stdout"),
    context_id: int = typer.Option(0, "--context-id", "-c", help="Context that owns row feedback files"),
) -> None:
    """Export a question as an interchange XML document."""
    settings = get_settings()
    try:
        with session_scope() as session:
            question = _build_mapper(session).load(question_id, context_id=context_id)
    except MatrixError as e:
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    document = export_quiz([question], FilesystemAttachmentStore(settings.attachments_dir))
    if output is None:
        typer.echo(document, nl=False)
        return
    output.write_text(document, encoding="utf-8")
    rprint(f"[green]✓[/green] Exported question {question_id} to {output}")


@app.command("show")
def show_command(
    question_id: int = typer.Argument(..., help="Question id"),
) -> None:
    """Show the matrix with correct cells marked."""
    try:
        with session_scope() as session:
            question = _build_mapper(session).load(question_id)
    except MatrixError as e:
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    _print_matrix(question)
    for line in correct_response_summary(question):
        console.print(f"  {line}", markup=False)
    console.print(f"Random guess score: [bold]{random_guess_score(question):.2f}[/bold]")


@app.command("delete")
def delete_command(
    question_id: int = typer.Argument(..., help="Question id"),
    context_id: int = typer.Option(0, "--context-id", "-c", help="Context that owns row feedback files"),
) -> None:
    """Delete a question's options, columns, rows and row feedback files."""
    with session_scope() as session:
        mapper = _build_mapper(session)
        if not mapper.exists(question_id):
            rprint(f"[yellow]Question {question_id} not found[/yellow]")
            raise typer.Exit(code=1)
        mapper.delete(question_id, context_id=context_id)
    rprint(f"[green]✓[/green] Deleted question {question_id}")


def run() -> None:
    """Entry point for the CLI."""
    _configure_logging(get_settings())
    app()


if __name__ == "__main__":
    run()
