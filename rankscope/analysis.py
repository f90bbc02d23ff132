"""Compose dataset lookups with the analytics functions into report objects."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from rankscope import gaps, metrics, milestones
from rankscope.dataset import Dataset
from rankscope.models import (
    AnalysisConfig,
    GapReport,
    MilestoneContext,
    TimeSeriesReport,
)

logger = logging.getLogger(__name__)


def build_time_series_report(
    dataset: Dataset,
    index_id: str,
    country_code: str,
    config: AnalysisConfig | None = None,
) -> TimeSeriesReport:
    """Entries, metrics, anomalies and milestones for one country on one index."""
    config = config or AnalysisConfig()
    dataset.require_index(index_id)
    dataset.require_country(country_code)

    series = dataset.series_for(index_id, country_code)
    index_milestones = dataset.milestones_for(index_id)
    logger.debug("%s/%s: %d data points", index_id, country_code, len(series))

    return TimeSeriesReport(
        index_id=index_id,
        country_code=country_code,
        index=dataset.get_index(index_id),
        entries=series,
        metrics=metrics.calculate_metrics(series, config.stability_threshold),
        anomalies=metrics.detect_anomalies(series, config.anomaly_threshold),
        milestones=index_milestones,
        points=milestones.attach_milestones(series, index_milestones),
    )


def build_gap_report(
    dataset: Dataset,
    base_country_code: str,
    comparison_country_codes: Sequence[str],
    index_ids: Sequence[str] | None = None,
    year: int | None = None,
    config: AnalysisConfig | None = None,
    peer_group_id: str | None = None,
) -> GapReport:
    """Gaps between a base country and peers, with a summary.

    Members of ``peer_group_id`` are merged after the explicit peers, without
    duplicates and without the base country. Group members with no entries are
    kept and simply produce no gaps.
    """
    config = config or AnalysisConfig()
    for code in (base_country_code, *comparison_country_codes):
        dataset.require_country(code)

    peer_group = None
    if peer_group_id is not None:
        peer_group = dataset.peer_group(peer_group_id)
        comparison_country_codes = [
            *comparison_country_codes,
            *peer_group.country_codes,
        ]
    comparison_country_codes = [
        c for c in dict.fromkeys(comparison_country_codes) if c != base_country_code
    ]

    for index_id in index_ids or ():
        dataset.require_index(index_id)

    resolved_year, records = gaps.calculate_gaps(
        dataset.entries,
        base_country_code,
        comparison_country_codes,
        index_ids=index_ids or None,
        year=year,
        historical_years=config.historical_years,
        trend_threshold=config.gap_trend_threshold,
        index_names=dataset.index_names(),
    )
    logger.debug(
        "%s vs %s in %s: %d gaps",
        base_country_code,
        ",".join(comparison_country_codes),
        resolved_year,
        len(records),
    )

    return GapReport(
        base_country_code=base_country_code,
        comparison_country_codes=list(comparison_country_codes),
        year=resolved_year,
        gaps=records,
        summary=gaps.summarize_gaps(records),
        peer_group=peer_group,
    )


def build_milestone_report(
    dataset: Dataset, index_id: str, country_code: str | None = None
) -> list[MilestoneContext]:
    """Milestones for an index, with ranking context when a country is given."""
    dataset.require_index(index_id)
    series = None
    if country_code is not None:
        dataset.require_country(country_code)
        series = dataset.series_for(index_id, country_code)
    return milestones.associate_milestones(dataset.milestones_for(index_id), series)
