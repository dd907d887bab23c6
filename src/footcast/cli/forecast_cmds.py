"""Forecast commands: reconcile, kelly, stake, fuse."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from footcast.cli._shared import _fail, _load_csv, _load_json, _setup_logging, console
from footcast.config import settings

app = typer.Typer(add_completion=False)


@app.command()
def reconcile(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON forecast payload"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Reconcile rule, simulation and context forecasts into a consensus."""
    from rich.table import Table

    from footcast.adapters import forecasts_from_payload
    from footcast.models.consensus import reconcile as _reconcile

    _setup_logging(verbose)
    try:
        rule, sim, ctx = forecasts_from_payload(_load_json(path))
        result = _reconcile(rule, sim, ctx)
    except (ValidationError, ValueError) as e:
        _fail(f"Invalid forecast payload: {e}")

    table = Table(title="Consensus")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Rule engine", result.rule_score)
    table.add_row("Simulation", result.simulation_score or "-")
    table.add_row("Context", result.context_score or "-")
    table.add_row("Agreement", result.tier.value)
    table.add_row("Discrepancy", str(result.discrepancy))
    table.add_row("Weights", result.weights.formatted())
    table.add_row("Consensus score", str(result.consensus_score))
    table.add_row("Prediction", result.consensus_prediction)
    if result.narrative:
        table.add_row("Disagreement", result.narrative)
    console.print(table)


@app.command()
def kelly(
    probability: float = typer.Argument(..., help="Win probability, 0-1"),
    odds: float = typer.Argument(..., help="Decimal odds"),
    fraction: Optional[float] = typer.Option(None, "--fraction", help="Kelly multiplier (default from FOOTCAST_KELLY_FRACTION)"),
):
    """Fractional Kelly stake, value score and risk tier for one bet."""
    from footcast.models.staking import kelly as _kelly, recommended_stake, risk_tier, value_score, value_edge

    s = settings()
    if fraction is not None and not (0.0 < fraction <= 1.0):
        _fail(f"--fraction must be in (0, 1], got {fraction}")
    k = _kelly(probability, odds, fraction if fraction is not None else s.kelly_fraction, s.kelly_cap)
    if k is None:
        console.print(f"[yellow]No value bet[/yellow] (edge {value_edge(probability, odds):+.3f})")
        return

    tier = risk_tier(k)
    console.print(f"Kelly fraction: [bold]{k:.4f}[/bold]")
    console.print(f"Value score:    {value_score(k)}/10")
    console.print(f"Risk tier:      {tier.value}")
    console.print(f"Stake:          {recommended_stake(k, tier):.2%} of bankroll")


@app.command()
def stake(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON with strength, optional modifiers, odds"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Dixon-Coles probabilities from team strengths, then a stake per market.

    The file holds ``{"strength": {...}, "modifiers": {...}, "odds": {"HOME": .., "DRAW": .., "AWAY": ..}}``.
    """
    from rich.table import Table

    from footcast.models.dixon_coles import predict_1x2
    from footcast.models.staking import implied_probabilities, recommend, value_edge
    from footcast.models.strength import TeamStrength, apply_modifiers
    from footcast.utils import Outcome

    _setup_logging(verbose)
    s = settings()
    payload = _load_json(path)
    try:
        strength = TeamStrength.model_validate(payload["strength"])
        if payload.get("modifiers"):
            strength = apply_modifiers(payload["modifiers"], strength)
        odds = {Outcome(k): float(v) for k, v in (payload.get("odds") or {}).items()}
    except KeyError as e:
        _fail(f"Missing key in {path}: {e}")
    except (ValidationError, ValueError) as e:
        _fail(f"Invalid input: {e}")

    probs = predict_1x2(strength, rho=s.dc_rho, max_goals=s.max_goals)
    rec = recommend(probs.as_market(), odds, s.kelly_fraction, s.kelly_cap)
    implied = implied_probabilities(odds.get(Outcome.HOME), odds.get(Outcome.DRAW), odds.get(Outcome.AWAY))

    console.print(f"Expected goals {probs.eg_home:.2f} - {probs.eg_away:.2f}, "
                  f"most likely {probs.most_likely_score}, "
                  f"over 2.5 {probs.p_over25:.1%}, BTTS {probs.p_btts:.1%}")

    table = Table(title="Markets")
    table.add_column("Market", style="cyan")
    table.add_column("Model", style="magenta")
    table.add_column("Implied", style="yellow")
    table.add_column("Edge", style="green")
    table.add_column("Kelly", style="white")
    table.add_column("Value", style="white")
    model = probs.as_market()
    for i, market in enumerate(Outcome):
        price = odds.get(market)
        k = rec.kelly_for(market)
        table.add_row(
            market.label,
            f"{model[market.value]:.3f}",
            f"{implied[i]:.3f}" if price else "-",
            f"{value_edge(model[market.value], price):+.3f}" if price else "-",
            f"{k:.4f}" if k is not None else "-",
            str(rec.value_for(market)),
        )
    console.print(table)

    if not rec.has_value_bet:
        console.print("[yellow]No value bet[/yellow]")
        return
    console.print(f"Best market: [bold]{rec.best_market.label}[/bold], risk {rec.risk.value}, "
                  f"stake {rec.stake:.2%} of bankroll")


@app.command()
def fuse(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV with home_goals, away_goals and optional xG/shot columns"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Fuse raw match statistics into model input scores."""
    from rich.table import Table

    from footcast.fusion import fuse_frame

    _setup_logging(verbose)
    df = _load_csv(path)
    missing = {"home_goals", "away_goals"} - set(df.columns)
    if missing:
        _fail(f"{path} is missing columns: {', '.join(sorted(missing))}")
    try:
        out = fuse_frame(df)
    except (ValidationError, ValueError) as e:
        _fail(f"Invalid statistics: {e}")

    table = Table(title=f"Fused inputs ({len(out)} fixtures)")
    table.add_column("#", style="cyan")
    table.add_column("Home", style="magenta")
    table.add_column("Source", style="white")
    table.add_column("Away", style="magenta")
    table.add_column("Source", style="white")
    for i, r in enumerate(out.itertuples(index=False), 1):
        table.add_row(str(i), f"{r.home_input:.3f}", r.home_source, f"{r.away_input:.3f}", r.away_source)
    console.print(table)
