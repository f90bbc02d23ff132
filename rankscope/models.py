"""Data models for ranking histories, analytics results and configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class Trend(StrEnum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class GapTrend(StrEnum):
    CONVERGING = "converging"
    DIVERGING = "diverging"
    STABLE = "stable"


class Direction(StrEnum):
    IMPROVEMENT = "improvement"
    DECLINE = "decline"


class MilestoneImpact(StrEnum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


@dataclass(slots=True)
class RankPoint:
    year: int
    rank: int  # 1-based, lower is better
    total_countries: int
    score: float | None = None
    normalized_score: float | None = None  # 0-100
    percentile: float = 0.0  # 0-100


@dataclass(slots=True)
class RankingEntry:
    """A stored ranking row: one country, one index, one year."""

    index_id: str
    country_code: str
    year: int
    rank: int
    total_countries: int
    score: float | None = None
    normalized_score: float | None = None
    percentile: float = 0.0

    def to_point(self) -> RankPoint:
        return RankPoint(
            year=self.year,
            rank=self.rank,
            total_countries=self.total_countries,
            score=self.score,
            normalized_score=self.normalized_score,
            percentile=self.percentile,
        )


@dataclass(slots=True)
class IndexInfo:
    id: str
    name: str
    short_name: str = ""
    source: str = ""
    source_url: str = ""
    higher_is_better: bool = True
    score_min: float | None = None
    score_max: float | None = None


@dataclass(slots=True)
class PeerGroup:
    id: str
    name: str
    country_codes: list[str] = field(default_factory=list)


@dataclass(slots=True)
class Milestone:
    id: str
    index_id: str
    year: int
    event: str
    impact: MilestoneImpact = MilestoneImpact.NEUTRAL
    source: str | None = None


@dataclass(slots=True)
class TimeSeriesMetrics:
    velocity: float
    volatility: float
    trend: Trend
    total_years: int
    earliest_year: int
    latest_year: int
    best_rank: int
    worst_rank: int
    average_rank: float


@dataclass(slots=True)
class Anomaly:
    year: int
    previous_year: int
    rank_change: int
    previous_rank: int
    current_rank: int
    is_significant: bool
    direction: Direction


@dataclass(slots=True)
class MilestoneContext:
    milestone: Milestone
    ranking_entry: RankPoint | None
    previous_entry: RankPoint | None
    rank_change_from_previous: int | None


@dataclass(slots=True)
class AnnotatedPoint:
    entry: RankPoint
    milestones: list[Milestone] = field(default_factory=list)


@dataclass(slots=True)
class GapRecord:
    index_id: str
    comparison_country_code: str
    base_rank: int
    comparison_rank: int
    gap: int  # base_rank - comparison_rank; positive means base is behind
    trend: GapTrend
    index_name: str = ""


@dataclass(slots=True)
class GapSummary:
    total_gaps: int = 0
    average_gap: float = 0.0
    converging_count: int = 0
    diverging_count: int = 0
    stable_count: int = 0
    positive_gaps: int = 0  # base country behind
    negative_gaps: int = 0  # base country ahead


@dataclass(slots=True)
class TimeSeriesReport:
    index_id: str
    country_code: str
    index: IndexInfo | None
    entries: list[RankPoint]
    metrics: TimeSeriesMetrics
    anomalies: list[Anomaly] = field(default_factory=list)
    milestones: list[Milestone] = field(default_factory=list)
    points: list[AnnotatedPoint] = field(default_factory=list)


@dataclass(slots=True)
class GapReport:
    base_country_code: str
    comparison_country_codes: list[str]
    year: int | None
    gaps: list[GapRecord] = field(default_factory=list)
    summary: GapSummary = field(default_factory=GapSummary)
    peer_group: PeerGroup | None = None


# --- Tunable thresholds ---

DEFAULT_STABILITY_THRESHOLD = 0.5  # rank positions per year
DEFAULT_ANOMALY_THRESHOLD = 10  # rank positions
DEFAULT_GAP_TREND_THRESHOLD = 2.0  # rank positions
DEFAULT_HISTORICAL_YEARS = 5


@dataclass(slots=True)
class AnalysisConfig:
    stability_threshold: float = DEFAULT_STABILITY_THRESHOLD
    anomaly_threshold: int = DEFAULT_ANOMALY_THRESHOLD
    gap_trend_threshold: float = DEFAULT_GAP_TREND_THRESHOLD
    historical_years: int = DEFAULT_HISTORICAL_YEARS
