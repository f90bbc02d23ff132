"""CLI entry point for rankscope."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
import httpx

from rankscope import analysis, formatters
from rankscope.dataset import Dataset, DatasetError, fetch_dataset, load_dataset
from rankscope.models import (
    DEFAULT_ANOMALY_THRESHOLD,
    DEFAULT_GAP_TREND_THRESHOLD,
    DEFAULT_HISTORICAL_YEARS,
    DEFAULT_STABILITY_THRESHOLD,
    AnalysisConfig,
)


def _parse_codes(raw: str) -> list[str]:
    codes = [c.strip().upper() for c in raw.split(",") if c.strip()]
    for c in codes:
        if len(c) != 3 or not c.isalpha():
            raise click.BadParameter(
                f"Invalid country code: {c!r}. Use ISO 3166-1 alpha-3 (e.g. IND)."
            )
    return codes


def _parse_code(raw: str) -> str:
    codes = _parse_codes(raw)
    if len(codes) != 1:
        raise click.BadParameter(f"Expected a single country code, got {raw!r}.")
    return codes[0]


def _parse_ids(raw: str | None) -> list[str] | None:
    if not raw:
        return None
    return [i.strip() for i in raw.split(",") if i.strip()] or None


async def _fetch(url: str) -> Dataset:
    async with httpx.AsyncClient(timeout=30.0) as client:
        return await fetch_dataset(client, url)


def _load(source: str) -> Dataset:
    if source.startswith(("http://", "https://")):
        return asyncio.run(_fetch(source))
    return load_dataset(Path(source))


def _fail(exc: Exception) -> NoReturn:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(1)


data_option = click.option(
    "--data",
    "data_source",
    required=True,
    help="Dataset file (JSON or CSV) or http(s) URL of a JSON dataset",
)


def output_option(*formats: str):  # type: ignore[no-untyped-def]
    return click.option(
        "--output",
        "output_format",
        default="table",
        type=click.Choice(["table", *formats]),
        help="Output format",
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """Global Ranking Analytics.

    Tracks a country's position across ranking indices over time and
    compares it against peers.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@data_option
@click.option("--index", "index_id", required=True, help="Ranking index id")
@click.option("--country", required=True, help="ISO 3166-1 alpha-3 country code")
@click.option(
    "--stability-threshold",
    type=click.FloatRange(min=0),
    default=DEFAULT_STABILITY_THRESHOLD,
    show_default=True,
    help="Velocity (positions/year) below which a series is stable",
)
@click.option(
    "--anomaly-threshold",
    type=click.IntRange(min=1),
    default=DEFAULT_ANOMALY_THRESHOLD,
    show_default=True,
    help="Year-over-year rank change flagged as an anomaly",
)
@output_option("json")
def trend(
    data_source: str,
    index_id: str,
    country: str,
    stability_threshold: float,
    anomaly_threshold: int,
    output_format: str,
) -> None:
    """Velocity, volatility, trend and anomalies for one country on one index."""
    code = _parse_code(country)
    config = AnalysisConfig(
        stability_threshold=stability_threshold,
        anomaly_threshold=anomaly_threshold,
    )

    try:
        dataset = _load(data_source)
        report = analysis.build_time_series_report(dataset, index_id, code, config)
    except DatasetError as exc:
        _fail(exc)

    if output_format == "table":
        click.echo(formatters.format_series_table(report), nl=False)
    else:
        click.echo(formatters.format_series_json(report))


@main.command()
@data_option
@click.option("--base", "base_country", required=True, help="Base country code")
@click.option("--peers", default="", help="Comma-separated comparison country codes")
@click.option(
    "--peer-group",
    "peer_group_id",
    default=None,
    help="Peer group id whose members are added to --peers",
)
@click.option("--indices", default=None, help="Comma-separated index ids (default: all)")
@click.option("--year", type=int, default=None, help="Year to compare (default: latest)")
@click.option(
    "--history",
    "historical_years",
    type=click.IntRange(min=1),
    default=DEFAULT_HISTORICAL_YEARS,
    show_default=True,
    help="Years of history used for the convergence trend",
)
@click.option(
    "--trend-threshold",
    type=click.FloatRange(min=0),
    default=DEFAULT_GAP_TREND_THRESHOLD,
    show_default=True,
    help="Change in absolute gap needed to call converging/diverging",
)
@output_option("json", "csv")
def gaps(
    data_source: str,
    base_country: str,
    peers: str,
    peer_group_id: str | None,
    indices: str | None,
    year: int | None,
    historical_years: int,
    trend_threshold: float,
    output_format: str,
) -> None:
    """Rank gaps between a base country and its peers."""
    base = _parse_code(base_country)
    peer_codes = [c for c in _parse_codes(peers) if c != base]
    if not peer_codes and peer_group_id is None:
        raise click.BadParameter(
            "--peers must include at least one country other than the base.",
            param_hint="--peers",
        )

    config = AnalysisConfig(
        gap_trend_threshold=trend_threshold,
        historical_years=historical_years,
    )

    try:
        dataset = _load(data_source)
        report = analysis.build_gap_report(
            dataset,
            base,
            peer_codes,
            _parse_ids(indices),
            year,
            config,
            peer_group_id=peer_group_id,
        )
    except DatasetError as exc:
        _fail(exc)

    if output_format == "json":
        click.echo(formatters.format_gaps_json(report))
    elif output_format == "csv":
        click.echo(formatters.format_gaps_csv(report), nl=False)
    else:
        click.echo(formatters.format_gaps_table(report), nl=False)


@main.command()
@data_option
@click.option("--index", "index_id", required=True, help="Ranking index id")
@click.option("--country", default=None, help="Country code for ranking context")
@output_option("json")
def milestones(
    data_source: str, index_id: str, country: str | None, output_format: str
) -> None:
    """Index milestones with the rank change around each event."""
    code = _parse_code(country) if country else None

    try:
        dataset = _load(data_source)
        contexts = analysis.build_milestone_report(dataset, index_id, code)
    except DatasetError as exc:
        _fail(exc)

    if output_format == "table":
        click.echo(formatters.format_milestones_table(contexts), nl=False)
    else:
        click.echo(formatters.format_milestones_json(contexts))


if __name__ == "__main__":
    main()
