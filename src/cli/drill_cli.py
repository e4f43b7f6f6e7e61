"""
quizdrill CLI - practice and mock exams in the terminal.

Usage:
    drill import bank.json            # Add a question bank
    drill banks                       # List banks with progress
    drill learn BANK                  # Sequential practice
    drill learn BANK --random --review
    drill exam BANK -s 20 -m 10 -j 10 --minutes 60
    drill exam BANK --count 30        # Legacy: total count only
    drill resume exam                 # Continue an interrupted session
    drill history                     # Recent exam results
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from config import get_settings
from src.quizdrill.errors import InvalidIndex, QuizDrillError
from src.quizdrill.grader import join_choices
from src.quizdrill.models import Question, QuestionType, SessionKind
from src.quizdrill.persistence import LoadStatus
from src.quizdrill.scoring import Result
from src.quizdrill.service import SessionService
from src.quizdrill.session import SessionState
from src.quizdrill.store import JsonFileStore
from src.quizdrill.timer import ExamTimer, Urgency

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="drill",
    help="quizdrill - question bank practice and timed mock exams",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

TYPE_LABELS = {
    QuestionType.SINGLE: "Single choice",
    QuestionType.MULTIPLE: "Multiple choice",
    QuestionType.JUDGE: "True / False",
}

URGENCY_STYLES = {
    Urgency.NORMAL: "green",
    Urgency.WARNING: "yellow",
    Urgency.CRITICAL: "bold red",
}

HELP_LINE = (
    "[dim]Letters to answer (e.g. A or A,C) | n/p next/prev | g N goto | m mark | "
    "v show answer | r random unanswered | x clear | s submit | q save & quit[/dim]"
)


def get_service() -> SessionService:
    settings = get_settings()
    return SessionService(JsonFileStore(settings.data_dir), settings)


# =============================================================================
# Input Parsing
# =============================================================================


@dataclass
class Command:
    """One parsed line of session input."""

    action: str  # answer, next, prev, goto, mark, view, random, clear, submit, quit, unknown
    value: str | None = None


_COMMANDS = {
    "n": "next",
    "p": "prev",
    "m": "mark",
    "v": "view",
    "r": "random",
    "x": "clear",
    "s": "submit",
    "q": "quit",
}


def parse_command(text: str, question: Question) -> Command:
    """Turn raw input into a Command. Option letters always win over command letters."""
    text = text.strip()
    if not text:
        return Command("unknown")

    letters = [part for part in text.upper().replace(",", " ").split() if part]
    if len(letters) == 1 and len(letters[0]) > 1 and letters[0].isalpha():
        # "AC" typed without separators
        letters = list(letters[0])
    if letters and all(letter in question.options for letter in letters):
        if question.type is QuestionType.MULTIPLE:
            return Command("answer", join_choices(letters))
        if len(letters) == 1:
            return Command("answer", letters[0])

    lowered = text.lower()
    if lowered.startswith("g"):
        target = lowered[1:].strip()
        if target.isdigit():
            return Command("goto", target)
    if lowered in _COMMANDS:
        return Command(_COMMANDS[lowered])
    return Command("unknown", text)


# =============================================================================
# Rendering
# =============================================================================


def _render_question(session: SessionState) -> None:
    question = session.current_question
    index = session.current_index
    progress = session.progress()

    header = f"Question {progress.current}/{progress.total} · {TYPE_LABELS[question.type]}"
    if index in session.marked_questions:
        header += " · [magenta]marked[/magenta]"
    if session.is_exam and not session.submitted:
        timer = ExamTimer(session)
        style = URGENCY_STYLES[timer.urgency()]
        header += f" · [{style}]{timer.display()}[/{style}]"

    table = Table(box=box.MINIMAL, show_header=False)
    table.add_column("Key", style="cyan", justify="right", width=4)
    table.add_column("Option", style="white")
    for letter in sorted(question.options):
        table.add_row(letter, question.options[letter])

    console.print(Panel(question.content, title=header, border_style="cyan", box=box.HEAVY))
    if question.options:
        console.print(table)

    answer = session.answers.get(index)
    if answer:
        console.print(f"Your answer: [bold]{answer}[/bold]")

    if session.is_answer_visible(index):
        result = session.results.get(index)
        verdict = ""
        if result is not None and not result.skipped:
            verdict = " [green]✓[/green]" if result.correct else " [red]✗[/red]"
        console.print(f"Correct answer: [bold green]{question.answer}[/bold green]{verdict}")
        if question.analysis:
            console.print(f"[dim]{question.analysis}[/dim]")


def _render_result(session: SessionState, result: Result) -> None:
    table = Table(title=f"Result · {session.bank_name or session.bank_id}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    if session.is_exam:
        table.add_row("Score", f"{result.total_score:g} / {result.max_score:g} ({result.score_percent}%)")
    table.add_row("Correct", str(result.correct_count))
    table.add_row("Wrong", str(result.wrong_count))
    table.add_row("Skipped", str(result.skipped_count))
    table.add_row("Accuracy", f"{result.accuracy_percent}%")
    console.print(table)

    if result.wrong_questions:
        wrong = Table(title="Review (first 10)", box=box.SIMPLE)
        wrong.add_column("#", style="dim", justify="right")
        wrong.add_column("Question", style="white")
        wrong.add_column("Yours", style="red")
        wrong.add_column("Correct", style="green")
        for item in result.wrong_questions[:10]:
            wrong.add_row(
                str(item.index + 1),
                item.question.content[:60],
                item.user_answer or "-",
                item.correct_answer,
            )
        console.print(wrong)


# =============================================================================
# Session Loop
# =============================================================================


def _run_session(service: SessionService, session: SessionState) -> None:
    """Drive a session until it is submitted or the user leaves."""
    console.print(HELP_LINE)
    while True:
        if session.is_exam:
            result = service.tick(session)
            if result is not None:
                console.print("[bold red]Time is up, the exam has been submitted.[/bold red]")
                _render_result(session, result)
                return

        _render_question(session)
        text = Prompt.ask("›")

        # the prompt blocks, so the clock may have run out meanwhile
        if session.is_exam:
            result = service.tick(session)
            if result is not None:
                console.print("[bold red]Time is up, the exam has been submitted.[/bold red]")
                _render_result(session, result)
                return

        command = parse_command(text, session.current_question)
        try:
            if _dispatch(service, session, command):
                return
        except InvalidIndex as e:
            console.print(f"[yellow]{e}[/yellow]")


def _dispatch(service: SessionService, session: SessionState, command: Command) -> bool:
    """Apply one command. Returns True when the loop should end."""
    index = session.current_index

    if command.action == "answer":
        service.answer(session, index, command.value)
        if session.current_index < session.total - 1:
            service.advance(session, 1)
    elif command.action == "clear":
        service.answer(session, index, None)
    elif command.action == "next":
        service.advance(session, 1)
    elif command.action == "prev":
        service.advance(session, -1)
    elif command.action == "goto":
        service.jump(session, int(command.value) - 1)
    elif command.action == "mark":
        service.mark(session, index)
    elif command.action == "view":
        if session.is_exam and not session.submitted:
            console.print("[yellow]Answers are shown after the exam is submitted.[/yellow]")
        elif not session.is_exam:
            service.reveal(session, index)
    elif command.action == "random":
        service.random_jump(session)
    elif command.action == "submit":
        unanswered = len(session.unanswered_indices())
        prompt = f"{session.total - unanswered}/{session.total} answered. Submit?"
        if unanswered and not Confirm.ask(prompt, default=False):
            return False
        result = service.finish(session)
        _render_result(session, result)
        return True
    elif command.action == "quit":
        if session.submitted:
            return True
        service.exit(session)
        console.print(f"[cyan]Progress saved. Continue with: drill resume {session.kind.value}[/cyan]")
        return True
    else:
        console.print(HELP_LINE)
    return False


# =============================================================================
# Bank Commands
# =============================================================================


@app.command("import")
def import_bank(
    path: Annotated[Path, typer.Argument(help="JSON bank file: {name, questions: [...]} or a list of questions")],
) -> None:
    """Add a question bank from a JSON file."""
    if not path.exists():
        console.print(f"[red]File not found: {path}[/]")
        raise typer.Exit(1)
    service = get_service()
    try:
        bank = service.banks.load_file(path)
    except QuizDrillError as e:
        console.print(f"[red]Could not import {path}: {e}[/]")
        raise typer.Exit(1)
    console.print(f"[green]✓ Imported '{bank.name}' ({len(bank.questions)} questions) as {bank.id}[/]")


@app.command("banks")
def list_banks() -> None:
    """List question banks with learning progress."""
    service = get_service()
    banks = service.banks.list_banks()
    if not banks:
        console.print("[yellow]No question banks yet. Add one with: drill import FILE[/]")
        return

    table = Table(title="Question Banks")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Single", justify="right")
    table.add_column("Multiple", justify="right")
    table.add_column("Judge", justify="right")
    table.add_column("Done", justify="right", style="green")
    table.add_column("Accuracy", justify="right", style="green")
    for bank in banks:
        counts = bank.count_by_type()
        stats = service.progress.stats(bank)
        table.add_row(
            bank.id,
            bank.name,
            str(counts[QuestionType.SINGLE]),
            str(counts[QuestionType.MULTIPLE]),
            str(counts[QuestionType.JUDGE]),
            f"{stats.completed}/{stats.total_questions}",
            f"{stats.accuracy:.1f}%",
        )
    console.print(table)


@app.command("remove")
def remove_bank(
    bank_id: Annotated[str, typer.Argument(help="Bank ID")],
) -> None:
    """Delete a bank with its progress and exam history."""
    if not get_service().remove_bank(bank_id):
        console.print(f"[red]No bank with id {bank_id}[/]")
        raise typer.Exit(1)
    console.print(f"[green]✓ Removed {bank_id}[/]")


# =============================================================================
# Session Commands
# =============================================================================


@app.command()
def learn(
    bank_id: Annotated[str, typer.Argument(help="Bank ID")],
    random_order: Annotated[
        bool, typer.Option("--random", "-r", help="Shuffle within each question type")
    ] = False,
    review: Annotated[
        bool, typer.Option("--review", help="Show answers up front")
    ] = False,
    wrong_only: Annotated[
        bool, typer.Option("--wrong", "-w", help="Only questions last answered wrong")
    ] = False,
    instant: Annotated[
        bool, typer.Option("--instant", help="Grade every answer immediately")
    ] = False,
) -> None:
    """Start a practice session."""
    service = get_service()
    try:
        session = service.start_learning(
            bank_id,
            mode="random" if random_order else "sequential",
            review_mode=review,
            immediate_grading=instant,
            only_incorrect=wrong_only,
        )
    except QuizDrillError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)
    _run_session(service, session)


@app.command()
def exam(
    bank_id: Annotated[str, typer.Argument(help="Bank ID")],
    single: Annotated[int, typer.Option("--single", "-s", help="Single-choice questions")] = 0,
    multiple: Annotated[int, typer.Option("--multiple", "-m", help="Multiple-choice questions")] = 0,
    judge: Annotated[int, typer.Option("--judge", "-j", help="True/false questions")] = 0,
    count: Annotated[
        int | None, typer.Option("--count", "-n", help="Total questions (ignores per-type counts)")
    ] = None,
    minutes: Annotated[float | None, typer.Option("--minutes", "-t", help="Time limit")] = None,
    name: Annotated[str | None, typer.Option("--name", help="Candidate name")] = None,
) -> None:
    """Start a timed mock exam."""
    service = get_service()
    if count is not None:
        selection = {"kind": "legacy", "question_count": count}
    else:
        selection = {
            "kind": "typed",
            "single_count": single,
            "multiple_count": multiple,
            "judge_count": judge,
        }
    try:
        session = service.start_exam(
            bank_id, selection, duration_minutes=minutes, candidate_name=name
        )
    except QuizDrillError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)
    console.print(
        f"[cyan]{len(session.questions)} questions, "
        f"{session.config.duration_minutes:g} minutes. Good luck![/cyan]"
    )
    _run_session(service, session)


@app.command()
def resume(
    kind: Annotated[SessionKind, typer.Argument(help="exam or learning")] = SessionKind.EXAM,
) -> None:
    """Continue an interrupted session."""
    service = get_service()
    outcome = service.resume(kind)
    if outcome.session is None:
        if outcome.status is LoadStatus.ABSENT:
            console.print(f"[yellow]No saved {kind.value} session.[/]")
        else:
            console.print(f"[yellow]The saved {kind.value} session was {outcome.status.value} and has been cleared.[/]")
        raise typer.Exit(1)
    _run_session(service, outcome.session)


@app.command()
def history(
    bank_id: Annotated[str | None, typer.Option("--bank", "-b", help="Only this bank")] = None,
) -> None:
    """Show recent exam results."""
    records = get_service().history.list(bank_id)
    if not records:
        console.print("[yellow]No exams taken yet.[/]")
        return

    table = Table(title="Exam History")
    table.add_column("Finished", style="dim")
    table.add_column("Bank", style="white")
    table.add_column("Candidate", style="white")
    table.add_column("Score", style="green", justify="right")
    table.add_column("✓/✗/–", justify="right")
    table.add_column("Minutes", justify="right")
    for record in records:
        finished = datetime.fromtimestamp(record.completed_time / 1000).strftime("%Y-%m-%d %H:%M")
        table.add_row(
            finished,
            record.bank_name,
            record.candidate_name or "-",
            f"{record.score:g}/{record.max_score:g}",
            f"{record.correct_count}/{record.wrong_count}/{record.skipped_count}",
            f"{record.duration_minutes:g}",
        )
    console.print(table)


@app.command()
def stats(
    bank_id: Annotated[str, typer.Argument(help="Bank ID")],
) -> None:
    """Show learning progress for one bank."""
    service = get_service()
    bank = service.banks.find(bank_id)
    if bank is None:
        console.print(f"[red]No bank with id {bank_id}[/]")
        raise typer.Exit(1)
    progress = service.progress.stats(bank)

    table = Table(title=f"Progress · {bank.name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Questions", str(progress.total_questions))
    table.add_row("Answered", str(progress.completed))
    table.add_row("Correct", str(progress.correct))
    table.add_row("Wrong", str(progress.incorrect))
    table.add_row("Accuracy", f"{progress.accuracy:.1f}%")
    if progress.last_studied:
        last = datetime.fromtimestamp(progress.last_studied / 1000).strftime("%Y-%m-%d %H:%M")
        table.add_row("Last studied", last)
    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=get_settings().log_level,
        format="<level>{message}</level>",
    )

    app()


if __name__ == "__main__":
    main()
