"""Command-line interface for Task Phrase."""

import json
import logging
import sys
from datetime import timedelta
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import get_config, load_config
from .models import ParseResult
from .parser import TaskPhraseParser
from .recurring import describe_recurrence, expand_occurrences
from .utils.datetime import parse_iso_datetime, resolve_timezone


def get_console() -> Console:
    """Console bound to the current stdout."""
    return Console()


def _resolve_options(now, tz):
    """Validate --now/--tz and return (reference instant, tzinfo)."""
    zone = None
    if tz:
        try:
            zone = resolve_timezone(tz)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--tz")
    reference = None
    if now:
        try:
            reference = parse_iso_datetime(now, zone)
        except ValueError:
            raise click.BadParameter(f"Not an ISO 8601 datetime: {now}", param_hint="--now")
    return reference, zone


def _result_table(result: ParseResult) -> Table:
    table = Table(title="Parsed task", show_header=False)
    table.add_column("Field", style="bold cyan")
    table.add_column("Value")
    table.add_row("Title", escape(result.cleaned_title))
    table.add_row("Due", result.due_date.strftime("%Y-%m-%d %H:%M %Z").strip())
    table.add_row("Priority", result.priority.value if result.priority else "-")
    table.add_row("Recurrence", describe_recurrence(result.recurrence_pattern, result.recurrence_interval))
    if result.recurrence_starts_at:
        table.add_row("Starts", result.recurrence_starts_at.strftime("%Y-%m-%d %H:%M"))
    if result.recurrence_ends_at:
        table.add_row("Ends", result.recurrence_ends_at.strftime("%Y-%m-%d %H:%M"))
    return table


@click.group()
@click.option("--config", type=click.Path(dir_okay=False), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def cli(ctx, config, verbose):
    """Task Phrase - turn task titles into schedules."""
    ctx.ensure_object(dict)
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if config:
        ctx.obj['config'] = load_config(Path(config))
    else:
        ctx.obj['config'] = get_config()


@cli.command()
@click.argument("text")
@click.option("--now", help="Reference instant (ISO 8601); defaults to the current time")
@click.option("--tz", help="IANA timezone name, e.g. Europe/Berlin")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def parse(ctx, text, now, tz, as_json):
    """Parse a task title.
    
    Examples:
      taskphrase parse "Take medicine every day at 8am"
      taskphrase parse "Pay credit card bill monthly on the 5th" --json
    """
    reference, zone = _resolve_options(now, tz)
    parser = TaskPhraseParser(ctx.obj['config'])
    result = parser.parse(text, reference, zone)
    suggestions = parser.suggest_corrections(text)

    if as_json:
        payload = result.to_dict()
        payload["suggestions"] = suggestions
        click.echo(json.dumps(payload, indent=2))
        return

    console = get_console()
    console.print(_result_table(result))
    for warning in result.warnings:
        console.print(f"[yellow]⚠️  {escape(warning.message)}[/yellow]")
    if suggestions:
        console.print("[bold blue]💡 Suggestions:[/bold blue]")
        for suggestion in suggestions:
            console.print(f"  [blue]{escape(suggestion)}[/blue]")


@cli.command()
@click.argument("text")
@click.option("--days", default=30, show_default=True, type=click.IntRange(min=1), help="Days to look ahead")
@click.option("--now", help="Reference instant (ISO 8601); defaults to the current time")
@click.option("--tz", help="IANA timezone name, e.g. Europe/Berlin")
@click.pass_context
def occurrences(ctx, text, days, now, tz):
    """List upcoming occurrences of a task title."""
    reference, zone = _resolve_options(now, tz)
    parser = TaskPhraseParser(ctx.obj['config'])
    result = parser.parse(text, reference, zone)

    start = result.due_date
    window_end = (reference or result.due_date) + timedelta(days=days)
    dates = list(expand_occurrences(
        result.due_date,
        result.recurrence_pattern,
        result.recurrence_interval,
        ends_at=result.recurrence_ends_at,
        range_start=start,
        range_end=window_end,
    ))

    console = get_console()
    console.print(f"[bold]{escape(result.cleaned_title)}[/bold] "
                  f"({describe_recurrence(result.recurrence_pattern, result.recurrence_interval)})")
    if not dates:
        console.print("[dim]No occurrences in range[/dim]")
    for occurrence in dates:
        console.print(f"  {occurrence.strftime('%a %Y-%m-%d %H:%M')}")


def main():
    """Console script entry point."""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
