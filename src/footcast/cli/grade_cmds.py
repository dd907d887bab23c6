"""Grading commands: grade, grade-batch."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from footcast.cli._shared import _fail, _load_csv, _setup_logging, console

app = typer.Typer(add_completion=False)


@app.command()
def grade(
    predicted: str = typer.Argument(..., help="Predicted score, e.g. 2-1"),
    actual: str = typer.Argument(..., help="Final score"),
    home_xg: Optional[float] = typer.Option(None, "--home-xg"),
    away_xg: Optional[float] = typer.Option(None, "--away-xg"),
):
    """Grade one prediction against the final score."""
    from footcast.grading import grade as _grade

    try:
        g = _grade(predicted, actual, home_xg, away_xg)
    except ValueError as e:
        _fail(str(e))

    console.print(f"Outcome correct:     {'yes' if g.outcome_correct else 'no'}")
    console.print(f"Exact score correct: {'yes' if g.exact_score_correct else 'no'}")
    console.print(f"xG verdict:          [bold]{g.verdict.value}[/bold]")


@app.command("grade-batch")
def grade_batch(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV with predicted_score, home_goals, away_goals"),
    skip_bad: bool = typer.Option(False, "--skip-bad", help="Skip rows that cannot be graded"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Grade a CSV of predictions and show aggregate accuracy."""
    from rich.table import Table

    from footcast.grading import grade_frame, summarize_grades

    _setup_logging(verbose)
    try:
        graded = grade_frame(_load_csv(path), errors="skip" if skip_bad else "raise")
    except (AttributeError, ValueError) as e:
        _fail(f"Cannot grade {path}: {e}")

    sm = summarize_grades(graded)
    if sm["n_predictions"] == 0:
        console.print("[yellow]No gradable predictions[/yellow]")
        return

    table = Table(title=f"Grading summary ({sm['n_predictions']} predictions)")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Outcome accuracy", f"{sm['accuracy']:.3f}")
    table.add_row("Exact score rate", f"{sm['exact_score_rate']:.3f}")
    for verdict, n in sm["verdicts"].items():
        table.add_row(verdict.title(), str(n))
    if "logloss" in sm:
        table.add_row("Logloss", f"{sm['logloss']:.3f}")
        table.add_row("Brier", f"{sm['brier']:.3f}")
    console.print(table)
