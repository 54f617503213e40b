"""Scrapify CLI: list sources and run extractions.

Usage:
    scrapify sources                          # List enabled sources
    scrapify status                           # Catalog summary
    scrapify scrape github-most-starred       # Scrape as JSON
    scrapify scrape turing-remote-jobs --format csv --limit 10
    scrapify scrape epic-games-top-sellers --headed --settle-delay 5
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click
from pydantic import ValidationError as ConfigValidationError

from scrapify.catalog import build_default_catalog
from scrapify.config import ScrapifyConfig
from scrapify.data_types import OutputFormat, ScrapeOptions, ScrapeRequest
from scrapify.orchestrator import ExtractionOrchestrator


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _parse_headers(values: tuple[str, ...]) -> dict[str, str]:
    """Parse repeated ``Name: value`` options into a dict.

    Raises:
        click.BadParameter: If a value has no colon.
    """
    headers: dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise click.BadParameter(
                f"Invalid header '{value}'. Expected format: 'Name: value'"
            )
        headers[name.strip()] = content.strip()
    return headers


def _build_orchestrator(
    settle_delay: float | None = None, headed: bool = False
) -> ExtractionOrchestrator:
    overrides: dict[str, object] = {"browser_headless": not headed}
    if settle_delay is not None:
        overrides["browser_settle_delay"] = settle_delay
    try:
        config = ScrapifyConfig(**overrides)
    except ConfigValidationError as e:
        raise click.BadParameter(str(e)) from e
    return ExtractionOrchestrator(build_default_catalog(config), config=config)


@click.group()
@click.version_option(package_name="scrapify")
def cli() -> None:
    """Scrapify: extract structured records from public web sources."""


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output JSON.")
def sources(as_json: bool) -> None:
    """List the enabled sources."""
    listing = _build_orchestrator().list_sources()
    if as_json:
        click.echo(json.dumps(listing, indent=2))
        return
    for source in listing:
        formats = ", ".join(source["supportedFormats"])
        click.echo(f"{source['id']:<28} {source['name']}  [{formats}]")


@cli.command()
def status() -> None:
    """Show the catalog summary."""
    click.echo(json.dumps(_build_orchestrator().status(), indent=2))


@cli.command()
@click.argument("source")
@click.option(
    "--format",
    "fmt",
    type=click.Choice([f.value for f in OutputFormat]),
    default=OutputFormat.JSON.value,
    show_default=True,
    help="Output format.",
)
@click.option("--limit", type=int, default=None, help="Maximum records.")
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Upstream timeout in seconds (overrides the source default).",
)
@click.option(
    "-H",
    "--header",
    "headers",
    multiple=True,
    help="Extra request header, 'Name: value'. May be repeated.",
)
@click.option(
    "--settle-delay",
    type=float,
    default=None,
    envvar="SCRAPIFY_SETTLE_DELAY",
    help="Seconds to wait after browser navigation.",
)
@click.option(
    "--headed",
    is_flag=True,
    envvar="SCRAPIFY_HEADED",
    help="Show the browser window for browser-driven sources.",
)
@click.option(
    "--envelope",
    is_flag=True,
    help="Print the full response envelope instead of the data only.",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def scrape(
    source: str,
    fmt: str,
    limit: int | None,
    timeout: float | None,
    headers: tuple[str, ...],
    settle_delay: float | None,
    headed: bool,
    envelope: bool,
    verbose: bool,
) -> None:
    """Scrape SOURCE and print the formatted records.

    \b
    Examples:
        scrapify scrape github-most-starred --limit 5
        scrapify scrape turing-remote-jobs --format csv
        scrapify scrape bullish-markets -H 'Accept-Language: en-GB'
    """
    _configure_logging(verbose)
    orchestrator = _build_orchestrator(settle_delay, headed)
    request = ScrapeRequest(
        source_id=source,
        format=fmt,
        options=ScrapeOptions(
            limit=limit, timeout=timeout, headers=_parse_headers(headers)
        ),
    )
    response = asyncio.run(orchestrator.handle(request))

    if envelope:
        click.echo(json.dumps(response, indent=2))
    elif not response["success"]:
        raise click.ClickException(response["error"])
    elif isinstance(response["data"], str):
        click.echo(response["data"])
    else:
        click.echo(json.dumps(response["data"], indent=2))

    if not response["success"]:
        sys.exit(1)


if __name__ == "__main__":
    cli()
