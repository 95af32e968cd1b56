import asyncio
import json
from typing import Optional

import typer

from eventfinder.config import Settings
from eventfinder.domain.plans import PLAN_LIMITS
from eventfinder.errors import ConfigurationError, IntentExtractionError
from eventfinder.hub.aggregator import build_aggregator
from eventfinder.logging_config import configure_logging

app = typer.Typer(help="Search events across ticketing, search and calendar providers")


@app.callback()
def main(log_level: str = typer.Option("WARNING", help="Logging level")):
    configure_logging(log_level)


@app.command("search")
def cli_search(
    prompt: str = typer.Argument(..., help="Free-text query, e.g. 'jazz tonight'"),
    city: Optional[str] = typer.Option(None, help="City to search around"),
    country: Optional[str] = typer.Option(None, help="2-letter country code"),
    plan: str = typer.Option("free", help="Plan tier: free, pro or premium"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw response body"),
):
    aggregator = build_aggregator_or_exit(Settings.from_env())
    try:
        result = asyncio.run(_run_search(aggregator, prompt, city, country, plan))
    except IntentExtractionError as exc:
        typer.echo(f"Failed to extract intent: {exc}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        raise typer.Exit(code=0)
    for name, exc in result.errors:
        typer.echo(f"[{name}] failed: {exc}", err=True)
    if not result.events:
        typer.echo("No events found")
        raise typer.Exit(code=0)
    typer.echo("startsAt\tsource\ttitle\tvenue")
    for event in result.events:
        typer.echo(f"{event.starts_at or '-'}\t{event.source}\t{event.title}\t{event.venue or '-'}")
    typer.echo(f"{len(result.events)} of {result.total_events} events ({result.limits.plan.value} plan)")


@app.command("plans")
def cli_plans():
    typer.echo("plan\tmax_radius_mi\tmax_events")
    for limits in PLAN_LIMITS.values():
        radius = "unlimited" if limits.max_radius_miles is None else f"{limits.max_radius_miles:g}"
        events = "unlimited" if limits.max_events is None else str(limits.max_events)
        typer.echo(f"{limits.plan.value}\t{radius}\t{events}")


async def _run_search(aggregator, prompt, city, country, plan):
    try:
        return await aggregator.aggregate(prompt, city, country, plan)
    finally:
        await aggregator.aclose()


def build_aggregator_or_exit(settings: Settings):
    try:
        return build_aggregator(settings)
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2)


if __name__ == "__main__":
    app()
