"""Shared CLI utilities: console, logging setup, JSON/CSV loading."""
from __future__ import annotations

import json
import logging
from pathlib import Path

import pandas as pd
import typer
from rich.console import Console
from rich.logging import RichHandler

from footcast.config import settings

console = Console()


def _setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings().log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _load_json(path: Path) -> dict:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]{path} is not valid JSON:[/red] {e}")
        raise typer.Exit(code=1)


def _load_csv(path: Path) -> pd.DataFrame:
    return pd.read_csv(path)


def _fail(msg: str) -> None:
    console.print(f"[red]{msg}[/red]")
    raise typer.Exit(code=1)
