"""CLI for the telos idea matrix.

Scores ideas against a goals document and reports analytics over exported
idea batches.
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .analytics import as_records, build_snapshot
from .app_logging import setup_logging
from .config import (
    EngineSettings,
    find_config_file,
    find_telos_file,
    load_settings,
    save_default_settings,
)
from .engine import IdeaEvaluator
from .exceptions import TelosMatrixError, TelosNotFoundError
from .rules import RUBRIC
from .schema import AnalyticsSnapshot, DetectedPattern, IdeaEvaluation, Recommendation, Telos
from .telos_parser import load_telos

console = Console()

SEVERITY_COLORS = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "cyan",
    "positive": "green",
}

RECOMMENDATION_COLORS = {
    Recommendation.PRIORITY: "bold green",
    Recommendation.GOOD: "green",
    Recommendation.CONSIDER: "yellow",
    Recommendation.AVOID: "red",
}


def resolve_telos(telos_path: Optional[str], settings: EngineSettings) -> Telos:
    """Load the telos from --telos, settings or discovery."""
    path = Path(telos_path) if telos_path else find_telos_file(settings)
    if path is None:
        raise TelosNotFoundError(
            "no telos file found; pass --telos, set TELOS_FILE or create ./telos.md"
        )
    return load_telos(path)


def read_idea(idea: str) -> str:
    """Idea text from the argument, or stdin when the argument is '-'."""
    if idea == "-":
        return sys.stdin.read()
    return idea


@click.group()
@click.version_option(version=__version__, prog_name="telos-matrix")
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Settings YAML (default: TELOS_MATRIX_CONFIG or ./telos-matrix.yaml)"
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (overrides settings)"
)
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], log_level: Optional[str]):
    """Telos Idea Matrix.

    Scores ideas against your goals, flags anti-patterns and reports
    trends across captured ideas.
    """
    try:
        path = Path(config_path) if config_path else find_config_file()
        settings = load_settings(path) if path else EngineSettings()
    except TelosMatrixError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        sys.exit(1)

    setup_logging(log_level or settings.log_level)
    ctx.obj = settings


@main.command("validate")
@click.option("--telos", "-t", "telos_path", type=click.Path(), help="Path to telos.md")
@click.pass_obj
def validate_cmd(settings: EngineSettings, telos_path: Optional[str]):
    """Validate a telos file and summarize its contents."""
    try:
        telos = resolve_telos(telos_path, settings)
    except TelosMatrixError as e:
        console.print(f"[red]✗ Invalid telos: {escape(e.message)}[/red]")
        sys.exit(1)

    console.print(Panel(
        f"Goals: {len(telos.goals)}\n"
        f"Strategies: {len(telos.strategies)}\n"
        f"Problems: {len(telos.problems)} | Missions: {len(telos.missions)} | "
        f"Challenges: {len(telos.challenges)}\n"
        f"Primary stack: {escape(', '.join(telos.stack.primary)) or '-'}\n"
        f"Secondary stack: {escape(', '.join(telos.stack.secondary)) or '-'}\n"
        f"Failure patterns: {len(telos.failure_patterns)}",
        title=f"[green]✓ Valid telos[/green] {escape(str(telos.source_path or ''))}",
    ))


@main.command("score")
@click.argument("idea")
@click.option("--telos", "-t", "telos_path", type=click.Path(), help="Path to telos.md")
@click.option("--json-output", "-j", is_flag=True, help="Output raw JSON instead of formatted text")
@click.option("--parallel", is_flag=True, help="Run scoring and pattern detection concurrently")
@click.pass_obj
def score_cmd(settings: EngineSettings, idea: str, telos_path: Optional[str], json_output: bool, parallel: bool):
    """Score an idea against your telos.

    Examples:
        telos-matrix score "Build an AI invoice parser in Python" -t telos.md
        echo "..." | telos-matrix score - -j
    """
    try:
        evaluator = IdeaEvaluator(resolve_telos(telos_path, settings))
        evaluation = evaluator.evaluate(read_idea(idea), parallel=parallel)
    except TelosMatrixError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        sys.exit(1)

    if json_output:
        click.echo(evaluation.model_dump_json(indent=2, exclude={"breakdown_json"}))
    else:
        display_evaluation(evaluation)


@main.command("patterns")
@click.argument("idea")
@click.option("--telos", "-t", "telos_path", type=click.Path(), help="Path to telos.md")
@click.pass_obj
def patterns_cmd(settings: EngineSettings, idea: str, telos_path: Optional[str]):
    """Detect anti-patterns in an idea without scoring it."""
    try:
        evaluation = IdeaEvaluator(resolve_telos(telos_path, settings)).evaluate(read_idea(idea))
    except TelosMatrixError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        sys.exit(1)

    display_patterns(evaluation.detected_patterns)


@main.command("analytics")
@click.argument("ideas_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--outlier-threshold", type=float, help="Stddevs from the mean for a score outlier")
@click.option("--rare-threshold", type=float, help="Percentage below which a pattern is rare")
@click.option("--timing-threshold", type=float, help="Stddevs from the daily mean for a capture spike")
@click.option("--json-output", "-j", is_flag=True, help="Output raw JSON instead of formatted text")
@click.pass_obj
def analytics_cmd(
    settings: EngineSettings,
    ideas_file: str,
    outlier_threshold: Optional[float],
    rare_threshold: Optional[float],
    timing_threshold: Optional[float],
    json_output: bool,
):
    """Report statistics and anomalies for an exported idea batch.

    IDEAS_FILE is a JSON list of idea records, or an object with an
    "ideas" list. Each record needs final_score, patterns, created_at and
    recommendation.
    """
    overrides = {
        key: value
        for key, value in {
            "outlier_threshold": outlier_threshold,
            "rare_pattern_threshold": rare_threshold,
            "timing_threshold": timing_threshold,
        }.items()
        if value is not None
    }
    analytics_settings = settings.analytics.model_copy(update=overrides)

    try:
        with open(ideas_file, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("ideas", [])
        if not isinstance(data, list):
            raise ValueError("expected a list of idea records or an object with an \"ideas\" list")
        snapshot = build_snapshot(as_records(data), analytics_settings)
    except (ValueError, ValidationError) as e:
        console.print(f"[red]Error: invalid ideas file {escape(ideas_file)}: {escape(str(e))}[/red]")
        sys.exit(1)

    if json_output:
        click.echo(snapshot.model_dump_json(indent=2))
    else:
        display_snapshot(snapshot)


@main.command("init-config")
@click.argument("path", type=click.Path(dir_okay=False), default="telos-matrix.yaml")
def init_config_cmd(path: str):
    """Write the default settings to PATH."""
    save_default_settings(path)
    console.print(f"[green]✓ Settings written to {path}[/green]")


# =============================================================================
# Display
# =============================================================================


def display_evaluation(evaluation: IdeaEvaluation):
    """Display a scored idea as a factor table plus patterns."""
    breakdown = evaluation.breakdown
    color = RECOMMENDATION_COLORS[evaluation.recommendation]

    console.print(Panel(
        f"Score: [bold]{evaluation.final_score:.2f}[/bold] / 10.00\n"
        f"Recommendation: [{color}]{evaluation.recommendation_label}[/{color}]",
        title="Idea Score",
    ))

    table = Table(title="Score Breakdown")
    table.add_column("Factor", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Max", justify="right", style="dim")
    table.add_column("Why")

    models = breakdown.groups()
    for group in RUBRIC:
        model = models[group.key]
        table.add_row(
            f"[bold]{group.name}[/bold]",
            f"[bold]{model.total:.2f}[/bold]",
            f"{group.max_value:.2f}",
            "",
        )
        for rule in group.factors:
            table.add_row(
                f"  {rule.name}",
                f"{getattr(model, rule.key):.2f}",
                f"{rule.max_value:.2f}",
                escape(breakdown.explanations.get(rule.name, "")),
            )

    console.print(table)
    display_patterns(evaluation.detected_patterns)


def display_patterns(patterns: list[DetectedPattern]):
    """Display detected patterns, most severe first."""
    if not patterns:
        console.print("\n[dim]No patterns detected[/dim]")
        return

    console.print("\n[bold]Patterns:[/bold]")
    for pattern in patterns:
        color = SEVERITY_COLORS[pattern.severity.value]
        console.print(
            f"  [{color}]{pattern.severity.value.upper()}[/{color}] "
            f"[bold]{pattern.pattern_type.display_name}[/bold]: {escape(pattern.message)}"
        )
        if pattern.matches:
            console.print(f"     [dim]Matched: {escape(', '.join(pattern.matches))}[/dim]")
        if pattern.suggestion:
            console.print(f"     [blue]Try:[/blue] {escape(pattern.suggestion)}")


def display_snapshot(snapshot: AnalyticsSnapshot):
    """Display batch statistics and anomalies."""
    if snapshot.total_ideas == 0:
        console.print("[yellow]No ideas to analyze[/yellow]")
        return

    console.print(Panel(
        f"Ideas: {snapshot.total_ideas}\n"
        f"Mean: {snapshot.mean:.2f} | Median: {snapshot.median:.2f} | "
        f"Std dev: {snapshot.std_dev:.2f}\n"
        f"Range: {snapshot.min_score:.2f} - {snapshot.max_score:.2f}\n"
        f"Trend: {snapshot.trend_direction.value}",
        title="Score Statistics",
    ))

    table = Table(title="Score Distribution")
    table.add_column("Bucket")
    table.add_column("Ideas", justify="right")
    for bucket, count in snapshot.distribution.items():
        table.add_row(bucket, str(count))
    console.print(table)

    percentiles = " | ".join(f"{k.upper()}: {v:.2f}" for k, v in snapshot.percentiles.items())
    console.print(f"[dim]{percentiles}[/dim]")

    if snapshot.pattern_stats:
        patterns = Table(title="Top Patterns")
        patterns.add_column("Pattern")
        patterns.add_column("Ideas", justify="right")
        patterns.add_column("%", justify="right")
        for stat in snapshot.pattern_stats[:10]:
            patterns.add_row(escape(stat.pattern), str(stat.count), f"{stat.percentage:.1f}")
        console.print(patterns)

    if snapshot.outliers:
        console.print("\n[bold]Score Outliers:[/bold]")
        for outlier in snapshot.outliers:
            direction = "above" if outlier.above_mean else "below"
            console.print(
                f"  [yellow]•[/yellow] {escape(outlier.idea_id)}: {outlier.score:.2f} "
                f"({outlier.deviation:.1f} stddev {direction} mean)"
            )

    if snapshot.rare_patterns:
        console.print("\n[bold]Rare Patterns:[/bold]")
        for rare in snapshot.rare_patterns:
            console.print(f"  [cyan]•[/cyan] {escape(rare.pattern)} ({rare.percentage:.1f}%)")

    if snapshot.timing_anomalies:
        console.print("\n[bold]Capture Spikes:[/bold]")
        for anomaly in snapshot.timing_anomalies:
            console.print(
                f"  [magenta]•[/magenta] {anomaly.day.isoformat()}: {anomaly.count} ideas "
                f"({anomaly.ratio:.1f}x usual)"
            )

    if snapshot.recommendation_issues:
        console.print("\n[bold]Recommendation Issues:[/bold]")
        for issue in snapshot.recommendation_issues:
            console.print(f"  [red]•[/red] {escape(issue.idea_id)}: {escape(issue.reason)}")
