"""
Typer CLI for the lexicore review engines.

Commands:
    lexicore db init                 - Initialize database tables
    lexicore db seed ITEMS.json      - Load vocabulary/grammar items
    lexicore select                  - Pick items for the next session
    lexicore select --create         - Pick items and open a pending session
    lexicore due                     - List items due for review
    lexicore complete ID ANSWERS     - Record answers and complete a session
    lexicore recommend LEARNER       - Ranked study recommendations
    lexicore profile LEARNER         - Learning profile and patterns

Usage:
    lexicore --help
    lexicore --database-url sqlite:///lexicore.db db init
    lexicore select --count 10 --learner ana --create
"""

from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from lexicore.config import Settings, get_settings
from lexicore.core.errors import LexicoreError
from lexicore.core.mastery import MasteryLevel, format_progress_bar
from lexicore.core.models import ItemType, LearningItem, Priority

app = typer.Typer(
    help="lexicore: adaptive review scheduling for vocabulary and grammar",
    no_args_is_help=True,
)

console = Console()

PRIORITY_STYLES = {
    Priority.HIGH: "bold red",
    Priority.MEDIUM: "yellow",
    Priority.LOW: "dim",
}


# ========================================
# Context Builder (Dependency Injection)
# ========================================


class CLIContext:
    """
    Dependency injection container for CLI commands.

    Lazily builds the engine, store and service so that commands which fail
    validation never open a database connection.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._engine = None
        self._store = None
        self._service = None

    @property
    def engine(self):
        if self._engine is None:
            from lexicore.db.database import create_db_engine

            self._engine = create_db_engine(self.settings.database_url)
        return self._engine

    @property
    def store(self):
        if self._store is None:
            from lexicore.db.database import create_session_factory
            from lexicore.db.store import SqlMasteryStore

            self._store = SqlMasteryStore(create_session_factory(self.engine))
        return self._store

    @property
    def service(self):
        if self._service is None:
            from lexicore.study.study_service import StudyService

            self._service = StudyService.from_settings(self.store, self.settings)
        return self._service


def _configure_logging(settings: Settings) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
    )
    if settings.log_file:
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB")


@app.callback()
def main_callback(
    ctx: typer.Context,
    database_url: str | None = typer.Option(
        None, "--database-url", help="Override DATABASE_URL for this invocation"
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="DEBUG, INFO, WARNING or ERROR"
    ),
):
    """Adaptive review scheduling and mastery tracking."""
    settings = get_settings()
    overrides = {}
    if database_url:
        overrides["database_url"] = database_url
    if log_level:
        overrides["log_level"] = log_level.upper()
    if overrides:
        settings = settings.model_copy(update=overrides)

    _configure_logging(settings)
    ctx.obj = CLIContext(settings)


def _fail(error: LexicoreError) -> None:
    rprint(f"[red]✗[/red] {error}")
    raise typer.Exit(code=1)


# ========================================
# DATABASE COMMANDS
# ========================================

db_app = typer.Typer(help="Database management (init, seed)")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init(ctx: typer.Context) -> None:
    """
    Initialize database tables from SQLAlchemy models.

    Safe to run multiple times (idempotent).
    """
    from lexicore.db.database import init_db

    init_db(ctx.obj.engine)
    rprint("[green]✓[/green] Database initialized!")


@db_app.command("seed")
def db_seed(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON list of items"),
) -> None:
    """
    Load learning items from a JSON file.

    Each entry: {"id", "type": "vocabulary"|"grammar", "label", "difficulty",
    optional "frequency_rank", "category", "tags"}. Existing ids are updated.
    """
    entries = json.loads(path.read_text(encoding="utf-8"))
    now = datetime.now()
    counts = {ItemType.VOCABULARY: 0, ItemType.GRAMMAR: 0}

    try:
        for entry in entries:
            item = LearningItem(
                id=str(entry["id"]),
                item_type=ItemType(entry["type"]),
                difficulty_level=int(entry["difficulty"]),
                created_at=now,
                label=entry.get("label", ""),
                frequency_rank=entry.get("frequency_rank"),
                category=entry.get("category"),
                tags=tuple(entry.get("tags", ())),
            )
            ctx.obj.store.save_item(item)
            counts[item.item_type] += 1
    except (KeyError, ValueError) as e:
        rprint(f"[red]✗[/red] Invalid item entry: {e}")
        raise typer.Exit(code=1)
    except LexicoreError as e:
        _fail(e)

    rprint(
        f"[green]✓[/green] Seeded {counts[ItemType.VOCABULARY]} vocabulary "
        f"and {counts[ItemType.GRAMMAR]} grammar items"
    )


# ========================================
# SESSION COMMANDS
# ========================================


@app.command("select")
def select_items(
    ctx: typer.Context,
    count: int = typer.Option(10, "--count", "-n", min=0, help="Number of items"),
    learner: str | None = typer.Option(None, "--learner", "-l", help="Learner id"),
    create: bool = typer.Option(False, "--create", help="Open a pending session"),
    time_limit: float = typer.Option(30.0, "--time-limit", help="Seconds per question"),
) -> None:
    """
    Select items for the next session.

    The vocabulary/grammar split follows recent accuracy; inside each
    category due and urgent items come first.
    """
    service = ctx.obj.service
    try:
        selection = service.select_items(count, learner)
    except LexicoreError as e:
        _fail(e)

    ratio = selection.ratio
    rprint(
        f"\n[bold cyan]Item Selection[/bold cyan]  "
        f"vocab {ratio.vocab_ratio:.0%} / grammar {ratio.grammar_ratio:.0%} "
        f"[dim]({ratio.sessions_used} sessions)[/dim]"
    )

    table = Table(show_header=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Item")
    for i, item_id in enumerate(selection.vocabulary_ids, 1):
        table.add_row(str(i), "vocabulary", item_id)
    offset = len(selection.vocabulary_ids)
    for i, item_id in enumerate(selection.grammar_ids, offset + 1):
        table.add_row(str(i), "grammar", item_id)
    console.print(table)

    if selection.total < count:
        rprint(f"[yellow]⚠[/yellow] Only {selection.total} of {count} items available")

    if create:
        if learner is None:
            rprint("[red]✗[/red] --learner is required with --create")
            raise typer.Exit(code=1)
        try:
            session = service.create_session_from_selection(learner, selection, time_limit)
        except LexicoreError as e:
            _fail(e)
        rprint(f"\n[green]✓[/green] Session created: [bold]{session.id}[/bold]")
        for question in session.questions:
            refs = ", ".join(i for i, _ in question.item_refs())
            rprint(f"  {question.id}  [dim]{question.question_type}[/dim]  {refs}")


@app.command("due")
def due_items(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", help="Maximum rows"),
) -> None:
    """List items due for review, most urgent first."""
    try:
        due = ctx.obj.service.due_items(limit)
    except LexicoreError as e:
        _fail(e)

    if not due:
        rprint("[green]Nothing due for review.[/green]")
        return

    table = Table(title="Due for Review", show_header=True)
    table.add_column("Item", style="cyan")
    table.add_column("Type")
    table.add_column("Difficulty", justify="right")
    table.add_column("Mastery")
    table.add_column("Level")
    table.add_column("Exposures", justify="right")
    for c in due:
        level = MasteryLevel.from_score(c.mastery)
        table.add_row(
            c.item_id,
            c.item_type.value,
            str(c.difficulty_level),
            f"[{level.color}]{format_progress_bar(c.mastery)}[/{level.color}] {c.mastery:.0%}",
            level.display_name,
            str(c.exposure),
        )
    console.print(table)


@app.command("complete")
def complete_session(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Pending session id"),
    answers: Path = typer.Argument(
        ..., exists=True, dir_okay=False,
        help='JSON object: {question_id: {"correct": bool, "time_spent": seconds}}',
    ),
) -> None:
    """
    Record answers and complete a session.

    Applies mastery updates and prints the evaluation and the next reviews.
    """
    service = ctx.obj.service
    try:
        outcomes = {
            question_id: (bool(outcome["correct"]), outcome.get("time_spent"))
            for question_id, outcome in json.loads(answers.read_text(encoding="utf-8")).items()
        }
    except (KeyError, ValueError, AttributeError, TypeError) as e:
        rprint(f"[red]✗[/red] Invalid answers file: {e!r}")
        raise typer.Exit(code=1)

    try:
        session = service.store.get_session(session_id) or session_id
        for question_id, (correct, time_spent) in outcomes.items():
            session = service.record_answer(session, question_id, correct, time_spent)
        result = service.complete_session(session)
    except LexicoreError as e:
        _fail(e)

    evaluation = result.evaluation
    summary = (
        f"Score: [bold]{evaluation.overall_score}[/bold]/100\n"
        f"Accuracy: {evaluation.accuracy_rate:.0%}   "
        f"Time efficiency: {evaluation.time_efficiency:.0%}   "
        f"Points: {result.session.total_score}"
    )
    console.print(Panel(summary, title=f"Session {result.session.id[:8]}", border_style="cyan"))

    for note in evaluation.strengths:
        rprint(f"  [green]+[/green] {note}")
    for note in evaluation.weaknesses:
        rprint(f"  [red]-[/red] {note}")
    for note in evaluation.suggestions:
        rprint(f"  [cyan]>[/cyan] {note}")

    if result.review_schedule:
        table = Table(title="Next Reviews", show_header=True)
        table.add_column("Item", style="cyan")
        table.add_column("Type")
        table.add_column("Date")
        table.add_column("Priority")
        table.add_column("Reason", style="dim")
        for review in result.review_schedule:
            style = PRIORITY_STYLES[review.priority]
            table.add_row(
                review.item_id,
                review.item_type.value,
                review.review_date.strftime("%Y-%m-%d"),
                f"[{style}]{review.priority.value}[/{style}]",
                review.reason,
            )
        console.print(table)


# ========================================
# LEARNER COMMANDS
# ========================================


@app.command("recommend")
def recommend(
    ctx: typer.Context,
    learner: str = typer.Argument(..., help="Learner id"),
) -> None:
    """Ranked study recommendations for a learner."""
    try:
        recommendations = ctx.obj.service.generate_recommendations(learner)
    except LexicoreError as e:
        _fail(e)

    if not recommendations:
        rprint("[green]No recommendations - keep going![/green]")
        return

    for i, rec in enumerate(recommendations, 1):
        style = PRIORITY_STYLES[rec.priority]
        body = rec.description + "\n" + "\n".join(f"  • {a}" for a in rec.action_items)
        console.print(Panel(
            body,
            title=f"{i}. {rec.title}",
            subtitle=f"[{style}]{rec.priority.value}[/{style}] | impact {rec.estimated_impact:.0f}",
            border_style=style,
        ))


@app.command("profile")
def profile(
    ctx: typer.Context,
    learner: str = typer.Argument(..., help="Learner id"),
) -> None:
    """Learning profile: style, pace, patterns."""
    try:
        prof = ctx.obj.service.build_profile(learner)
    except LexicoreError as e:
        _fail(e)

    patterns = prof.patterns
    table = Table(title=f"Learning Profile: {learner}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Learning style", prof.learning_style)
    table.add_row("Preferred pace", prof.preferred_pace)
    table.add_row("Optimal study time", prof.optimal_study_time)
    table.add_row("Focus areas", ", ".join(prof.focus_areas) or "-")
    table.add_row("Recent accuracy", f"{prof.recent.accuracy_rate:.0%} ({prof.recent.total_sessions} sessions)")
    table.add_row("Consistency", f"{patterns.consistency:.2f}")
    table.add_row("Improvement", f"{patterns.improvement:+.2f}")
    table.add_row("Engagement", f"{patterns.engagement:.2f}")
    console.print(table)

    if patterns.weaknesses:
        rprint("\n[bold red]Weaknesses[/bold red]")
        for w in patterns.weaknesses:
            rprint(f"  {w.question_type} ({w.category}): {w.accuracy:.0%} [{w.severity.value}]")
    if patterns.strengths:
        rprint("\n[bold green]Strengths[/bold green]")
        for s in patterns.strengths:
            rprint(f"  {s.question_type} ({s.category}): {s.accuracy:.0%} [{s.proficiency}]")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
