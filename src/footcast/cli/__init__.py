"""footcast CLI.

Usage examples:
    footcast reconcile forecasts.json    # consensus of the three engines
    footcast kelly 0.6 2.5               # fractional Kelly for one bet
    footcast stake fixture.json          # Dixon-Coles probabilities + stake per market
    footcast fuse stats.csv              # raw statistics -> model inputs
    footcast grade 2-0 2-1 --home-xg 2.6 --away-xg 0.9
    footcast grade-batch predictions.csv # accuracy over a season
"""
from __future__ import annotations

import typer

from footcast.cli.forecast_cmds import app as _forecast_app
from footcast.cli.grade_cmds import app as _grade_app
from footcast.cli._shared import console

app = typer.Typer(add_completion=False)

for _sub in (_forecast_app, _grade_app):
    for cmd in _sub.registered_commands:
        app.registered_commands.append(cmd)


@app.command()
def version():
    """Print the installed footcast version."""
    from importlib.metadata import version as _version

    console.print(f"footcast {_version('footcast')}")


if __name__ == "__main__":
    app()
