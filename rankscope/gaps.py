"""Rank gaps between a base country and its peers, and their convergence trend.

Gap sign convention: ``gap = base_rank - comparison_rank``. A positive gap
means the base country ranks worse (higher rank number) than the peer.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from rankscope.models import (
    DEFAULT_GAP_TREND_THRESHOLD,
    DEFAULT_HISTORICAL_YEARS,
    GapRecord,
    GapSummary,
    GapTrend,
    RankingEntry,
)


def latest_year(
    entries: Iterable[RankingEntry],
    country_codes: Iterable[str] | None = None,
    index_ids: Iterable[str] | None = None,
) -> int | None:
    """Most recent year with any entry for the given countries and indices."""
    countries = set(country_codes) if country_codes is not None else None
    indices = set(index_ids) if index_ids is not None else None
    years = [
        e.year
        for e in entries
        if (countries is None or e.country_code in countries)
        and (indices is None or e.index_id in indices)
    ]
    return max(years) if years else None


def _country_series(
    history: Iterable[RankingEntry], country_code: str, index_id: str
) -> list[RankingEntry]:
    return sorted(
        (e for e in history if e.country_code == country_code and e.index_id == index_id),
        key=lambda e: e.year,
    )


def calculate_gap_trend(
    history: Iterable[RankingEntry],
    base_country_code: str,
    comparison_country_code: str,
    index_id: str,
    threshold: float = DEFAULT_GAP_TREND_THRESHOLD,
) -> GapTrend:
    """Classify whether two countries' ranks are converging on one index.

    Compares the absolute gap at the first and last years both countries have
    data for; interior years are ignored. Fewer than two points for either
    country, or fewer than two shared years, gives ``stable``.
    """
    history = list(history)
    base_entries = _country_series(history, base_country_code, index_id)
    comp_entries = _country_series(history, comparison_country_code, index_id)

    if len(base_entries) < 2 or len(comp_entries) < 2:
        return GapTrend.STABLE

    comp_by_year = {e.year: e.rank for e in comp_entries}
    yearly_gaps = [
        e.rank - comp_by_year[e.year] for e in base_entries if e.year in comp_by_year
    ]
    if len(yearly_gaps) < 2:
        return GapTrend.STABLE

    change = abs(yearly_gaps[-1]) - abs(yearly_gaps[0])
    if change < -threshold:
        return GapTrend.CONVERGING
    if change > threshold:
        return GapTrend.DIVERGING
    return GapTrend.STABLE


def calculate_gaps(
    entries: Sequence[RankingEntry],
    base_country_code: str,
    comparison_country_codes: Sequence[str],
    index_ids: Sequence[str] | None = None,
    year: int | None = None,
    historical_years: int = DEFAULT_HISTORICAL_YEARS,
    trend_threshold: float = DEFAULT_GAP_TREND_THRESHOLD,
    index_names: Mapping[str, str] | None = None,
) -> tuple[int | None, list[GapRecord]]:
    """Current gaps per (index, peer) plus each gap's trend over the look-back window.

    Returns ``(year, gaps)``. ``year`` defaults to the latest year with data for
    the involved countries; pairs where either side lacks an entry for that
    index and year are left out. Trends only see history within
    ``[year - historical_years, year]``.
    """
    all_countries = [base_country_code, *comparison_country_codes]
    if index_ids is None:
        index_ids = list(dict.fromkeys(e.index_id for e in entries))
    index_names = index_names or {}

    if year is None:
        year = latest_year(entries, all_countries, index_ids)
    if year is None:
        return None, []

    involved_countries = set(all_countries)
    involved_indices = set(index_ids)
    involved = [
        e
        for e in entries
        if e.country_code in involved_countries and e.index_id in involved_indices
    ]

    current = {(e.index_id, e.country_code): e for e in involved if e.year == year}
    start_year = year - historical_years
    history = [e for e in involved if start_year <= e.year <= year]

    gaps: list[GapRecord] = []
    for index_id in index_ids:
        base_entry = current.get((index_id, base_country_code))
        if base_entry is None:
            continue

        for comp_code in comparison_country_codes:
            comp_entry = current.get((index_id, comp_code))
            if comp_entry is None:
                continue

            gaps.append(
                GapRecord(
                    index_id=index_id,
                    comparison_country_code=comp_code,
                    base_rank=base_entry.rank,
                    comparison_rank=comp_entry.rank,
                    gap=base_entry.rank - comp_entry.rank,
                    trend=calculate_gap_trend(
                        history, base_country_code, comp_code, index_id, trend_threshold
                    ),
                    index_name=index_names.get(index_id, index_id),
                )
            )

    return year, gaps


def summarize_gaps(gaps: Sequence[GapRecord]) -> GapSummary:
    """Trend counts, sign counts and signed mean over a set of gaps."""
    if not gaps:
        return GapSummary()

    return GapSummary(
        total_gaps=len(gaps),
        average_gap=sum(g.gap for g in gaps) / len(gaps),
        converging_count=sum(1 for g in gaps if g.trend == GapTrend.CONVERGING),
        diverging_count=sum(1 for g in gaps if g.trend == GapTrend.DIVERGING),
        stable_count=sum(1 for g in gaps if g.trend == GapTrend.STABLE),
        positive_gaps=sum(1 for g in gaps if g.gap > 0),
        negative_gaps=sum(1 for g in gaps if g.gap < 0),
    )
