"""Stack advisor command - the "guide me" questionnaire."""
import typer
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich import box

from ..advisor import QUESTIONS, RULES, Question, Questionnaire, recommend
from ..errors import AmbiguousAnswerError


def _parse_answers(values: Optional[list[str]]) -> dict[str, str]:
    """Turn repeated --answer id=value options into a dict."""
    answers: dict[str, str] = {}
    for item in values or []:
        if "=" not in item:
            typer.echo(f"Error: --answer expects id=value, got '{item}'", err=True)
            raise typer.Exit(1)
        key, value = item.split("=", 1)
        answers[key.strip()] = value.strip()
    return answers


def guide(
    answer: Optional[list[str]] = typer.Option(
        None, "--answer", "-a",
        help="Pre-answer a question as id=value (repeatable)"
    ),
    base: Path = typer.Option(Path("."), "--base", "-b", help="Memory-bank root"),
) -> None:
    """Answer a few questions and get a recommended stack.

    Each recommendation points at the stack guide under stacks/ that
    documents it. Answers can be the option number, its name, or the
    start of its name.

    Example:
        membank guide
        membank guide -a project_type=web -a frontend=react
    """
    console = Console()
    preset = _parse_answers(answer)

    known = {q.id for q in QUESTIONS}
    unknown = sorted(set(preset) - known)
    if unknown:
        typer.echo(f"Error: Unknown question id(s): {', '.join(unknown)}", err=True)
        typer.echo(f"Valid ids: {', '.join(q.id for q in QUESTIONS)}", err=True)
        raise typer.Exit(1)

    console.print()
    console.print(Panel(
        "[bold cyan]Stack Guide[/bold cyan]\n"
        "A few questions, then a recommended stack",
        box=box.ROUNDED,
        padding=(1, 2)
    ))

    def ask(question: Question) -> str:
        console.print()
        console.print(f"[bold]{question.prompt}[/bold]")
        if question.help:
            console.print(f"[dim]{question.help}[/dim]")
        for number, choice in enumerate(question.choices, start=1):
            console.print(f"  {number}. {choice.label}")
        return Prompt.ask("Your answer", console=console)

    def on_invalid(question: Question, error: AmbiguousAnswerError) -> None:
        console.print(f"[yellow]{error}[/yellow]")

    questionnaire = Questionnaire(QUESTIONS)
    try:
        answers = questionnaire.run(ask, preset=preset, on_invalid=on_invalid)
    except AmbiguousAnswerError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    recommendations = recommend(answers, RULES, root=base)

    console.print()
    if not recommendations:
        console.print("[yellow]No stack recommendations for these answers.[/yellow]")
        return

    table = Table(box=box.ROUNDED, show_header=True, header_style="bold", title="Recommended stack")
    table.add_column("Area", style="cyan")
    table.add_column("Pick", style="bold")
    table.add_column("Why")
    table.add_column("Guide")
    for rec in recommendations:
        guide_cell = rec.guide if rec.installed else f"{rec.guide} [dim](not installed)[/dim]"
        table.add_row(rec.category, rec.name, rec.reason, guide_cell)
    console.print(table)

    if any(not rec.installed for rec in recommendations):
        console.print()
        console.print("[dim]Missing guides arrive with 'membank update' (full mode).[/dim]")
