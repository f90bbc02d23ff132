"""Pure calculation functions over a single country's rank history.

Every function expects a series for one index and one country, ordered by
ascending year with unique years. Out-of-order or duplicated years are a caller
error and give undefined results; nothing here re-sorts or deduplicates.
Sparse input never raises: fewer than two points degrade to zero, ``stable``
or an empty list.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from rankscope.models import (
    DEFAULT_ANOMALY_THRESHOLD,
    DEFAULT_STABILITY_THRESHOLD,
    Anomaly,
    Direction,
    RankPoint,
    TimeSeriesMetrics,
    Trend,
)


def calculate_velocity(series: Sequence[RankPoint]) -> float:
    """Average rank change per year between the first and last points.

    Only the two endpoints are used; interior points never change the result.
    Negative means the rank number is shrinking, i.e. improving.
    """
    if len(series) < 2:
        return 0.0

    first, last = series[0], series[-1]
    year_span = last.year - first.year
    if year_span == 0:
        return 0.0

    return (last.rank - first.rank) / year_span


def _rank_deltas(series: Sequence[RankPoint]) -> list[int]:
    return [series[i].rank - series[i - 1].rank for i in range(1, len(series))]


def calculate_volatility(series: Sequence[RankPoint]) -> float:
    """Population standard deviation of consecutive rank deltas."""
    deltas = _rank_deltas(series)
    if not deltas:
        return 0.0

    mean = sum(deltas) / len(deltas)
    variance = sum((d - mean) ** 2 for d in deltas) / len(deltas)
    return math.sqrt(variance)


def determine_trend(
    velocity: float, threshold: float = DEFAULT_STABILITY_THRESHOLD
) -> Trend:
    if velocity < -threshold:
        return Trend.IMPROVING
    if velocity > threshold:
        return Trend.DECLINING
    return Trend.STABLE


def calculate_metrics(
    series: Sequence[RankPoint],
    stability_threshold: float = DEFAULT_STABILITY_THRESHOLD,
) -> TimeSeriesMetrics:
    """Velocity, volatility, trend and rank extremes for a series.

    An empty series yields zeroed metrics with a ``stable`` trend.
    """
    if not series:
        return TimeSeriesMetrics(
            velocity=0.0,
            volatility=0.0,
            trend=Trend.STABLE,
            total_years=0,
            earliest_year=0,
            latest_year=0,
            best_rank=0,
            worst_rank=0,
            average_rank=0.0,
        )

    velocity = calculate_velocity(series)
    ranks = [p.rank for p in series]
    years = [p.year for p in series]

    return TimeSeriesMetrics(
        velocity=velocity,
        volatility=calculate_volatility(series),
        trend=determine_trend(velocity, stability_threshold),
        total_years=len(series),
        earliest_year=min(years),
        latest_year=max(years),
        best_rank=min(ranks),  # lower rank is better
        worst_rank=max(ranks),
        average_rank=sum(ranks) / len(ranks),
    )


def detect_anomalies(
    series: Sequence[RankPoint], threshold: int = DEFAULT_ANOMALY_THRESHOLD
) -> list[Anomaly]:
    """Flag consecutive pairs whose rank moved by at least ``threshold`` positions.

    The threshold is in raw rank positions, regardless of index size.
    """
    anomalies: list[Anomaly] = []
    for previous, current in zip(series, series[1:]):
        rank_change = current.rank - previous.rank
        if abs(rank_change) < threshold:
            continue
        anomalies.append(
            Anomaly(
                year=current.year,
                previous_year=previous.year,
                rank_change=rank_change,
                previous_rank=previous.rank,
                current_rank=current.rank,
                is_significant=True,
                direction=(
                    Direction.IMPROVEMENT if rank_change < 0 else Direction.DECLINE
                ),
            )
        )
    return anomalies


# --- Rank and score scaling ---


def calculate_percentile(rank: int, total_countries: int) -> float | None:
    """Percentile from an absolute rank: rank 1 of 100 is the 100th percentile.

    Returns None when the rank is outside ``[1, total_countries]``.
    """
    if rank < 1 or total_countries < 1 or rank > total_countries:
        return None
    if total_countries == 1:
        return 100.0
    return ((total_countries - rank + 1) / total_countries) * 100


def normalize_score(
    score: float | None,
    score_min: float,
    score_max: float,
    higher_is_better: bool = True,
) -> float | None:
    """Map a raw index score onto 0-100 where 100 is always best.

    Out-of-range scores are clamped. A degenerate range returns the midpoint.
    """
    if score is None:
        return None
    if score_min == score_max:
        return 50.0

    if higher_is_better:
        normalized = (score - score_min) / (score_max - score_min)
    else:
        normalized = (score_max - score) / (score_max - score_min)

    return max(0.0, min(100.0, normalized * 100))
