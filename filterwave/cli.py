"""Filterwave CLI — moderate text and review recorded decisions."""

import json
from dataclasses import asdict, replace
from pathlib import Path

import click
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from filterwave import __version__
from filterwave.config import Settings
from filterwave.errors import FilterwaveError

console = Console()


def _settings(data_dir: str | None) -> Settings:
    settings = Settings.from_env()
    if data_dir:
        settings = replace(settings, data_dir=Path(data_dir).expanduser())
    return settings


def _decision_log(data_dir: str | None):
    from filterwave.decisions.store import DecisionLog

    return DecisionLog(_settings(data_dir).data_dir)


data_dir_option = click.option(
    "--data-dir", "-d", default=None, help="Decision store directory (overrides FILTERWAVE_DATA_DIR)"
)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    default="WARNING",
    envvar="FILTERWAVE_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Minimum level for diagnostic logs on stderr",
)
def main(log_level: str):
    """Filterwave — two-tier content moderation.

    Text is checked against local rules first and, when a classifier
    endpoint is configured, by the remote AI classifier. Every decision is
    recorded and can be reviewed or annotated with feedback later.
    """
    logger.remove()
    logger.add(lambda msg: click.echo(msg, err=True, nl=False), level=log_level.upper())


# ── Moderate ─────────────────────────────────────────────────────────


@main.command()
@click.argument("text")
@click.option("--user", "-u", default=None, help="Caller identity to record")
@data_dir_option
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON")
def moderate(text: str, user: str | None, data_dir: str | None, as_json: bool):
    """Moderate TEXT and record the decision."""
    from filterwave.moderation.pipeline import ModerationPipeline

    try:
        pipeline = ModerationPipeline.from_settings(_settings(data_dir))
        record = pipeline.decide(text, user)
    except FilterwaveError as e:
        raise click.ClickException(str(e)) from e

    result = record.result
    if as_json:
        click.echo(json.dumps({"decision_id": record.id, **result.to_dict()}, indent=2))
        return

    verdict = "[red]FLAGGED[/]" if result.flagged else "[green]OK[/]"
    lines = [
        f"Verdict:    {verdict}",
        f"Confidence: {result.confidence:.0%}",
        f"Categories: {', '.join(result.categories) or '-'}",
        f"Method:     {result.method.value}",
        f"Reason:     {escape(result.reason)}",
    ]
    console.print(Panel("\n".join(lines), title=f"Decision {record.id}"))


# ── Stats ────────────────────────────────────────────────────────────


@main.command()
@click.option("--user", "-u", default=None, help="Only count this caller's decisions")
@data_dir_option
def stats(user: str | None, data_dir: str | None):
    """Show per-day moderation statistics (last 30 days)."""
    try:
        daily = _decision_log(data_dir).statistics(user)
    except FilterwaveError as e:
        raise click.ClickException(str(e)) from e

    if not daily:
        console.print("[yellow]No decisions recorded yet.[/]")
        return

    table = Table(title="Moderation statistics")
    table.add_column("Date", style="cyan")
    table.add_column("Scans", justify="right")
    table.add_column("Flagged", justify="right", style="red")
    table.add_column("Avg confidence", justify="right", style="green")

    for day in daily:
        avg = "-" if day.avg_confidence is None else f"{day.avg_confidence:.2f}"
        table.add_row(day.date, str(day.total_scans), str(day.flagged_content), avg)

    console.print(table)


# ── Feedback ─────────────────────────────────────────────────────────


@main.command()
@click.argument("decision_id")
@click.argument("feedback_type")
@click.option("--comment", "-c", default=None, help="Free-form comment")
@click.option("--user", "-u", default=None, help="Caller identity to record")
@data_dir_option
def feedback(decision_id: str, feedback_type: str, comment: str | None, user: str | None, data_dir: str | None):
    """Attach feedback (agree / disagree / other) to a recorded decision."""
    try:
        record = _decision_log(data_dir).attach_feedback(decision_id, user, feedback_type, comment)
    except FilterwaveError as e:
        raise click.ClickException(str(e)) from e

    console.print(f"  [green]v[/] Feedback {record.id} recorded for decision {decision_id}")


# ── Review ───────────────────────────────────────────────────────────


@main.command()
@click.argument("decision_id")
@data_dir_option
def show(decision_id: str, data_dir: str | None):
    """Print a recorded decision and its feedback as JSON."""
    try:
        log = _decision_log(data_dir)
        record = log.get_decision(decision_id)
        feedback = log.get_feedback(decision_id) if record is not None else []
    except FilterwaveError as e:
        raise click.ClickException(str(e)) from e

    if record is None:
        raise click.ClickException(f"Unknown decision: {decision_id}")

    data = record.to_dict()
    data["feedback"] = [asdict(f) for f in feedback]
    click.echo(json.dumps(data, indent=2))


@main.command()
@click.option("--user", "-u", default=None, help="Only show this caller's decisions")
@click.option("--limit", "-n", default=20, show_default=True, help="Number of decisions")
@data_dir_option
def history(user: str | None, limit: int, data_dir: str | None):
    """List recent decisions, newest first."""
    try:
        records = _decision_log(data_dir).list_decisions(user, limit=limit)
    except FilterwaveError as e:
        raise click.ClickException(str(e)) from e

    if not records:
        console.print("[yellow]No decisions recorded yet.[/]")
        return

    table = Table(title=f"Recent decisions ({len(records)})")
    table.add_column("ID", style="dim")
    table.add_column("When")
    table.add_column("Flagged", justify="center")
    table.add_column("Method")
    table.add_column("Text")

    for r in records:
        flagged = "[red]Y[/]" if r.result.flagged else "[green]N[/]"
        table.add_row(r.id, r.created_at[:19], flagged, r.result.method.value, escape(r.request_text[:50]))

    console.print(table)


if __name__ == "__main__":
    main()
