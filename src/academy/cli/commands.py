"""CLI commands for the academy scheduler.

Commands:
- init-db: Create the SQLite schema
- import-wordbook / import-listening / import-enrollment: Load documents
- schedule / week: What a student studies on a date or in a week
- review: Review range (and questions) for a date
- today: Teacher overview of all active enrollments
- start / submit: Open a study log, record a test result
- dollars: Reward ledger of a student
- set-progress: Re-anchor an enrollment's start date on a progress cursor
"""

import json
import logging
import random
import sys
from datetime import date
from pathlib import Path
from typing import NoReturn

import structlog
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from academy.config.app_config import ConfigError, load_app_config
from academy.core.calendar import civil_today, get_week_days, to_civil_date
from academy.core.models import Enrollment
from academy.core.review import (
    ReviewError,
    build_review_questions,
    review_range_for_assignment,
)
from academy.core.schedule_resolver import (
    NoAssignment,
    ScheduleAssignment,
    ScheduleUnavailable,
    assignment_status,
    build_item_plans,
    calculate_start_date_for_progress,
    get_schedule_for_date,
)
from academy.core.study_session import start_study, submit_test, today_assignments
from academy.db import enrollment_repository, study_log_repository
from academy.db.content_store import ContentNotFoundError, ContentStore
from academy.db.database import init_db as do_init_db
from academy.db.dollar_ledger import DollarLedger
from academy.db.enrollment_repository import EnrollmentNotFoundError
from academy.db.study_log_repository import StudyLogNotFoundError
from academy.schemas import (
    EnrollmentDocument,
    ListeningDocument,
    WordbookDocument,
    load_document,
)
from academy.utils.validators import (
    AmbiguousIdError,
    IdNotFoundError,
    ScheduleValidationError,
    resolve_id,
)

app = typer.Typer(
    name="academy",
    help="Curriculum scheduling for an English-learning academy.",
    no_args_is_help=True,
)

console = Console()

REASON_LABELS = {
    "before_enrollment": "before the enrollment start date",
    "not_a_study_day": "not a study day",
    "on_break": "on break",
    "curriculum_complete": "curriculum complete",
}


def _fail(message: str) -> NoReturn:
    console.print(f"[red]✗ {message}[/red]")
    raise typer.Exit(code=1)


def _parse_date_or_exit(value: str | None) -> date:
    """Civil date from an option, today (civil timezone) when omitted."""
    if value is None:
        return civil_today()
    try:
        return to_civil_date(value)
    except ScheduleValidationError as e:
        _fail(str(e))


def _resolve_enrollment_id_or_exit(prefix: str) -> str:
    try:
        candidates = enrollment_repository.list_enrollment_ids(status=None)
        return resolve_id(prefix, candidates)
    except IdNotFoundError as e:
        console.print(f"[red]✗ {e}[/red]")
        if candidates:
            console.print("\nAvailable enrollments:")
            for c in candidates:
                console.print(f"  - {c}")
        raise typer.Exit(code=1)
    except AmbiguousIdError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)


def _load_enrollment_or_exit(prefix: str) -> Enrollment:
    enrollment_id = _resolve_enrollment_id_or_exit(prefix)
    try:
        return enrollment_repository.get_enrollment(enrollment_id, ContentStore())
    except (EnrollmentNotFoundError, ContentNotFoundError, ScheduleValidationError) as e:
        _fail(str(e))


def _load_model_or_exit(model: type, file: Path):
    path = file.expanduser()
    if not path.exists():
        _fail(f"File not found: {path}")
    try:
        return model.model_validate(load_document(path))
    except ValidationError as e:
        console.print(f"[red]✗ Invalid document {path.name}:[/red]")
        for err in e.errors():
            loc = ".".join(str(p) for p in err["loc"])
            console.print(f"  - {loc}: {err['msg']}")
        raise typer.Exit(code=1)
    except ValueError as e:
        _fail(str(e))


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug events to stderr"),
) -> None:
    """Curriculum scheduling for an English-learning academy."""
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )
    try:
        do_init_db()
    except ConfigError as e:
        _fail(str(e))


# =============================================================================
# SETUP AND IMPORT
# =============================================================================


@app.command(name="init-db")
def init_db() -> None:
    """Create the database schema (idempotent)."""
    path = do_init_db()
    console.print(f"[green]✓ Database ready:[/green] {path}")


@app.command(name="import-wordbook")
def import_wordbook(
    file: Path = typer.Argument(..., help="YAML or JSON wordbook document"),
) -> None:
    """Import or replace a wordbook."""
    doc = _load_model_or_exit(WordbookDocument, file)
    content = ContentStore().save_wordbook(doc.id, doc.title, doc.word_dicts())
    console.print(f"[green]✓ Wordbook imported:[/green] {content.content_id}")
    console.print(f"  [dim]words:[/dim]    {content.total_units}")
    console.print(f"  [dim]sections:[/dim] {len(content.sections)}")


@app.command(name="import-listening")
def import_listening(
    file: Path = typer.Argument(..., help="YAML or JSON listening test document"),
) -> None:
    """Import or replace a listening test."""
    doc = _load_model_or_exit(ListeningDocument, file)
    content = ContentStore().save_listening(doc.id, doc.title, doc.questions)
    console.print(f"[green]✓ Listening test imported:[/green] {content.content_id}")
    console.print(f"  [dim]questions:[/dim] {content.total_units}")


@app.command(name="import-enrollment")
def import_enrollment(
    file: Path = typer.Argument(..., help="YAML or JSON enrollment document"),
) -> None:
    """Import a student, their curriculum and the enrollment.

    Every item's content must already be imported; the pacing table is
    built once to validate the curriculum before anything is saved.
    """
    doc = _load_model_or_exit(EnrollmentDocument, file)
    enrollment = doc.to_enrollment()
    store = ContentStore()

    try:
        for item in enrollment.items:
            item.content = store.get_content(item.item_type, item.item_id)
        plans = build_item_plans(enrollment, load_app_config().schedule)
    except (ContentNotFoundError, ScheduleValidationError) as e:
        _fail(str(e))

    enrollment_repository.upsert_student(doc.student.id, doc.student.name, doc.student.class_name)
    enrollment_repository.save_curriculum(
        doc.curriculum.id, doc.curriculum.name, enrollment.items, doc.curriculum.description
    )
    enrollment_repository.save_enrollment(enrollment)

    console.print(f"[green]✓ Enrollment imported:[/green] {enrollment.id}")
    console.print(f"  [dim]student:[/dim]    {doc.student.name}")
    console.print(f"  [dim]curriculum:[/dim] {doc.curriculum.name}")
    console.print(f"  [dim]study days:[/dim] {sum(p.capacity for p in plans)}")


# =============================================================================
# SCHEDULE
# =============================================================================


def _print_result(result: ScheduleAssignment | NoAssignment, today: date) -> None:
    if isinstance(result, NoAssignment):
        console.print(
            f"[yellow]{result.target_date}: no assignment "
            f"({REASON_LABELS[result.reason.value]})[/yellow]"
        )
        return

    console.print(f"[bold]{result.target_date}[/bold]  day {result.day_index}  "
                  f"[dim]({assignment_status(result, today)})[/dim]")
    console.print(f"  [dim]item:[/dim]     {result.item.display_title} ({result.item.item_type})")
    console.print(f"  [dim]unit:[/dim]     {result.unit_name}")
    console.print(f"  [dim]progress:[/dim] {result.progress_range} ({result.word_count} units)")


@app.command()
def schedule(
    enrollment_id: str = typer.Argument(..., help="Enrollment ID or unique prefix"),
    on: str | None = typer.Option(None, "--date", "-d", help="Date (YYYY-MM-DD), default today"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """Show what is due on a date."""
    enrollment = _load_enrollment_or_exit(enrollment_id)
    target = _parse_date_or_exit(on)

    try:
        result = get_schedule_for_date(enrollment, target, load_app_config().schedule)
    except ScheduleValidationError as e:
        _fail(str(e))

    if as_json:
        typer.echo(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return
    _print_result(result, civil_today())


@app.command()
def week(
    enrollment_id: str = typer.Argument(..., help="Enrollment ID or unique prefix"),
    on: str | None = typer.Option(None, "--date", "-d", help="Any date of the week"),
    offset: int = typer.Option(0, "--offset", "-o", help="Weeks to shift"),
) -> None:
    """Show Monday to Friday of a week."""
    enrollment = _load_enrollment_or_exit(enrollment_id)
    anchor = _parse_date_or_exit(on)
    config = load_app_config().schedule
    today = civil_today()

    table = Table(title=f"{enrollment.student_name or enrollment.student_id} · {enrollment.curriculum_name}")
    table.add_column("Date")
    table.add_column("Day")
    table.add_column("Item")
    table.add_column("Unit")
    table.add_column("Progress")
    table.add_column("Status")

    try:
        plans = build_item_plans(enrollment, config)
        for day in get_week_days(anchor, offset):
            result = get_schedule_for_date(enrollment, day["full_date"], config, plans=plans)
            if isinstance(result, ScheduleAssignment):
                table.add_row(
                    day["date"],
                    day["day_of_week"],
                    result.item.display_title,
                    result.unit_name,
                    result.progress_range,
                    assignment_status(result, today),
                )
            else:
                table.add_row(day["date"], day["day_of_week"], "-", "-", "-",
                              REASON_LABELS[result.reason.value])
    except ScheduleValidationError as e:
        _fail(str(e))

    console.print(table)


@app.command()
def review(
    enrollment_id: str = typer.Argument(..., help="Enrollment ID or unique prefix"),
    on: str | None = typer.Option(None, "--date", "-d", help="Date (YYYY-MM-DD), default today"),
    questions: bool = typer.Option(False, "--questions", "-q", help="Generate multiple-choice questions"),
    seed: int | None = typer.Option(None, "--seed", help="Random seed for questions"),
) -> None:
    """Show the review range for the day's assignment."""
    enrollment = _load_enrollment_or_exit(enrollment_id)
    target = _parse_date_or_exit(on)
    config = load_app_config().schedule

    try:
        result = get_schedule_for_date(enrollment, target, config)
    except ScheduleValidationError as e:
        _fail(str(e))

    if isinstance(result, NoAssignment):
        _print_result(result, civil_today())
        return

    review_range = review_range_for_assignment(result, config)
    if review_range is None:
        console.print("[yellow]Nothing to review yet (first day of the item)[/yellow]")
        return

    console.print(f"[bold]Review {review_range.start}~{review_range.end}[/bold] "
                  f"({review_range.size} units) of {result.item.display_title}")

    if not questions:
        return

    try:
        built = build_review_questions(
            result.item.content,
            review_range,
            rng=random.Random(seed),
            distractor_count=config.distractor_count,
        )
    except (ReviewError, KeyError) as e:
        _fail(f"Cannot build questions: {e}")

    for n, q in enumerate(built, start=1):
        console.print(f"{n:>3}. {q.prompt}")
        console.print(f"     [dim]{' / '.join(q.choices)}[/dim]")


# =============================================================================
# STUDY LOGS
# =============================================================================


@app.command()
def today(
    on: str | None = typer.Option(None, "--date", "-d", help="Date (YYYY-MM-DD), default today"),
) -> None:
    """Teacher overview: every active enrollment's assignment for a day."""
    target = _parse_date_or_exit(on)
    try:
        enrollments = enrollment_repository.list_enrollments(ContentStore())
        rows = today_assignments(
            enrollments, study_log_repository.list_logs_for_date(target), target
        )
    except (ContentNotFoundError, ScheduleValidationError) as e:
        _fail(str(e))

    table = Table(title=f"Assignments for {target}")
    table.add_column("Student")
    table.add_column("Curriculum")
    table.add_column("Item")
    table.add_column("Progress")
    table.add_column("Status")
    table.add_column("Score", justify="right")

    for row in rows:
        table.add_row(
            row.student_name,
            row.curriculum_name,
            row.item_name,
            row.progress_range,
            row.status,
            "" if row.score is None else str(row.score),
        )
    console.print(table)


@app.command()
def start(
    enrollment_id: str = typer.Argument(..., help="Enrollment ID or unique prefix"),
    on: str | None = typer.Option(None, "--date", "-d", help="Date (YYYY-MM-DD), default today"),
) -> None:
    """Open (or reuse) the study log for the day's assignment."""
    enrollment = _load_enrollment_or_exit(enrollment_id)
    target = _parse_date_or_exit(on)

    try:
        started = start_study(enrollment, target)
    except (ScheduleUnavailable, ScheduleValidationError) as e:
        _fail(str(e))

    verb = "Created" if started.created else "Reusing"
    console.print(f"[green]✓ {verb} study log {started.study_log.id}[/green]")
    _print_result(started.assignment, civil_today())


@app.command()
def submit(
    study_log_id: int = typer.Argument(..., help="Study log ID"),
    score: int = typer.Option(..., "--score", "-s", min=0, max=100, help="Test score"),
    wrong: str = typer.Option("", "--wrong", "-w", help="Comma-separated wrong answers"),
    phase: str | None = typer.Option(None, "--phase", help="Test phase label"),
) -> None:
    """Record a test result; a clean test completes the log and pays dollars."""
    wrong_answers = [w.strip() for w in wrong.split(",") if w.strip()]

    try:
        result = submit_test(study_log_id, score, wrong_answers, DollarLedger(), test_phase=phase)
    except StudyLogNotFoundError as e:
        _fail(str(e))

    if result.completed:
        console.print(f"[green]✓ Study log {study_log_id} completed[/green]")
        if result.dollars_awarded:
            console.print(f"  [dim]dollars:[/dim] +{result.dollars_awarded}")
    else:
        console.print(f"[yellow]Study log {study_log_id} in progress: "
                      f"{len(wrong_answers)} wrong answer(s) to retry[/yellow]")
    for warning in result.warnings:
        console.print(f"  [yellow]⚠ {warning}[/yellow]")


@app.command()
def dollars(
    student_id: str = typer.Argument(..., help="Student ID"),
    limit: int = typer.Option(5, "--limit", "-n", help="Recent transactions to show"),
) -> None:
    """Show a student's dollar balance and recent transactions."""
    ledger = DollarLedger()
    console.print(f"[bold]{student_id}[/bold]: ${ledger.total(student_id)} "
                  f"(this week ${ledger.weekly_total(student_id, civil_today())})")

    table = Table()
    table.add_column("When")
    table.add_column("Amount", justify="right")
    table.add_column("Type")
    table.add_column("Description")
    for t in ledger.recent(student_id, limit):
        table.add_row(t.created_at[:16], f"{t.amount:+d}", t.transaction_type, t.description)
    console.print(table)


@app.command(name="set-progress")
def set_progress(
    enrollment_id: str = typer.Argument(..., help="Enrollment ID or unique prefix"),
    progress: int = typer.Option(..., "--progress", "-p", min=1, help="Unit index to study next"),
    item: str | None = typer.Option(None, "--item", help="Curriculum item ID (default: current item)"),
    base: str | None = typer.Option(None, "--base-date", help="Date the progress is due, default today"),
) -> None:
    """Move the start date so that --progress is due on --base-date."""
    enrollment = _load_enrollment_or_exit(enrollment_id)
    base_date = _parse_date_or_exit(base)

    if not enrollment.items:
        _fail(f"Enrollment {enrollment.id} has no curriculum items")

    if item is not None and enrollment.get_item(item) is None:
        _fail(f"Item '{item}' is not part of enrollment {enrollment.id}")

    try:
        new_start = calculate_start_date_for_progress(
            enrollment, progress, base_date, item_id=item, config=load_app_config().schedule
        )
    except ScheduleValidationError as e:
        _fail(str(e))

    if new_start == enrollment.start_date:
        console.print(f"[yellow]Start date unchanged ({new_start})[/yellow]")
    else:
        enrollment_repository.update_start_date(enrollment.id, new_start)
        console.print(f"[green]✓ Start date moved:[/green] {enrollment.start_date} → {new_start}")

    item_id = item or enrollment.current_item_id or enrollment.ordered_items()[0].id
    enrollment_repository.update_progress(enrollment.id, item_id, progress - 1)


if __name__ == "__main__":
    app()
