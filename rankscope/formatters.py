"""Output formatters for table, JSON, and CSV."""

from __future__ import annotations

import csv
import io
import json
from typing import Any

from rich import box
from rich.console import Console
from rich.table import Table

from rankscope.models import GapReport, MilestoneContext, RankPoint, TimeSeriesReport


def _fmt_signed(val: float, decimals: int = 1) -> str:
    """Format a change with an explicit plus sign for positive values."""
    if val > 0:
        return f"+{val:.{decimals}f}"
    return f"{val:.{decimals}f}"


def _fmt_optional(val: float | None, decimals: int = 1) -> str:
    return "—" if val is None else f"{val:.{decimals}f}"


def _render(*renderables: Any) -> str:
    buf = io.StringIO()
    rich_console = Console(file=buf, width=120, no_color=True, markup=False)
    for r in renderables:
        rich_console.print(r)
    return buf.getvalue()


def _point_dict(p: RankPoint) -> dict[str, Any]:
    return {
        "year": p.year,
        "rank": p.rank,
        "total_countries": p.total_countries,
        "score": p.score,
        "normalized_score": (
            round(p.normalized_score, 2) if p.normalized_score is not None else None
        ),
        "percentile": round(p.percentile, 2),
    }


# --- Time series ---


def format_series_table(report: TimeSeriesReport) -> str:
    """Format a time series report as Rich tables rendered to string."""
    m = report.metrics
    name = report.index.name if report.index else report.index_id
    header = (
        f"Ranking History: {name} ({report.country_code})\n"
        f"Years: {m.earliest_year}–{m.latest_year} ({m.total_years} data points)\n"
        f"Trend: {m.trend.value}  velocity {_fmt_signed(m.velocity, 2)}/yr  "
        f"volatility {m.volatility:.2f}\n"
        f"Best {m.best_rank}  Worst {m.worst_rank}  Average {m.average_rank:.1f}"
    )

    anomaly_years = {a.year: a for a in report.anomalies}

    table = Table(box=box.SIMPLE_HEAD, pad_edge=False)
    table.add_column("Year", style="bold")
    table.add_column("Rank", justify="right")
    table.add_column("Of", justify="right")
    table.add_column("Percentile", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Flags")

    for point in report.points:
        p = point.entry
        flags = []
        anomaly = anomaly_years.get(p.year)
        if anomaly is not None:
            flags.append(f"{anomaly.direction.value} {_fmt_signed(anomaly.rank_change, 0)}")
        if point.milestones:
            flags.append("milestone")
        table.add_row(
            str(p.year),
            str(p.rank),
            str(p.total_countries),
            f"{p.percentile:.1f}",
            _fmt_optional(p.score, 2),
            ", ".join(flags),
        )

    renderables: list[Any] = [header, table]
    if report.milestones:
        lines = ["Milestones:"]
        for ms in report.milestones:
            lines.append(f"  {ms.year}  ({ms.impact.value}) {ms.event}")
        renderables.append("\n".join(lines))
    if report.index and report.index.source:
        renderables.append(f"Source: {report.index.source}")

    return _render(*renderables)


def format_series_json(report: TimeSeriesReport) -> str:
    m = report.metrics
    data: dict[str, Any] = {
        "index_id": report.index_id,
        "country_code": report.country_code,
        "index": None,
        "entries": [
            {
                **_point_dict(point.entry),
                "milestone_ids": [ms.id for ms in point.milestones],
            }
            for point in report.points
        ],
        "metrics": {
            "velocity": round(m.velocity, 4),
            "volatility": round(m.volatility, 4),
            "trend": m.trend.value,
            "total_years": m.total_years,
            "earliest_year": m.earliest_year,
            "latest_year": m.latest_year,
            "best_rank": m.best_rank,
            "worst_rank": m.worst_rank,
            "average_rank": round(m.average_rank, 2),
        },
        "anomalies": [
            {
                "year": a.year,
                "previous_year": a.previous_year,
                "rank_change": a.rank_change,
                "previous_rank": a.previous_rank,
                "current_rank": a.current_rank,
                "is_significant": a.is_significant,
                "direction": a.direction.value,
            }
            for a in report.anomalies
        ],
        "milestones": [
            {
                "id": ms.id,
                "year": ms.year,
                "event": ms.event,
                "impact": ms.impact.value,
                "source": ms.source,
            }
            for ms in report.milestones
        ],
    }
    if report.index is not None:
        data["index"] = {
            "id": report.index.id,
            "name": report.index.name,
            "short_name": report.index.short_name,
            "source": report.index.source,
            "source_url": report.index.source_url,
            "higher_is_better": report.index.higher_is_better,
        }
    return json.dumps(data, indent=2)


# --- Gaps ---


def format_gaps_table(report: GapReport) -> str:
    s = report.summary
    header = (
        f"Gap Analysis: {report.base_country_code} vs "
        f"{', '.join(report.comparison_country_codes)}\n"
        f"Year: {report.year if report.year is not None else 'n/a'}"
    )
    if report.peer_group is not None:
        header += f"\nPeer group: {report.peer_group.name}"

    table = Table(box=box.SIMPLE_HEAD, pad_edge=False)
    table.add_column("Index", style="bold")
    table.add_column("Peer")
    table.add_column(f"{report.base_country_code} Rank", justify="right")
    table.add_column("Peer Rank", justify="right")
    table.add_column("Gap", justify="right")
    table.add_column("Trend")

    for g in report.gaps:
        table.add_row(
            g.index_name or g.index_id,
            g.comparison_country_code,
            str(g.base_rank),
            str(g.comparison_rank),
            _fmt_signed(g.gap, 0),
            g.trend.value,
        )

    footer = (
        f"{s.total_gaps} gap(s), average {_fmt_signed(s.average_gap, 2)}  "
        f"behind {s.positive_gaps} / ahead {s.negative_gaps}\n"
        f"converging {s.converging_count}  diverging {s.diverging_count}  "
        f"stable {s.stable_count}"
    )
    return _render(header, table, footer)


def format_gaps_json(report: GapReport) -> str:
    s = report.summary
    data: dict[str, Any] = {
        "base_country_code": report.base_country_code,
        "comparison_country_codes": report.comparison_country_codes,
        "year": report.year,
        "peer_group": (
            {"id": report.peer_group.id, "name": report.peer_group.name}
            if report.peer_group is not None
            else None
        ),
        "gaps": [
            {
                "index_id": g.index_id,
                "index_name": g.index_name,
                "comparison_country_code": g.comparison_country_code,
                "base_rank": g.base_rank,
                "comparison_rank": g.comparison_rank,
                "gap": g.gap,
                "trend": g.trend.value,
            }
            for g in report.gaps
        ],
        "summary": {
            "total_gaps": s.total_gaps,
            "average_gap": round(s.average_gap, 3),
            "converging_count": s.converging_count,
            "diverging_count": s.diverging_count,
            "stable_count": s.stable_count,
            "positive_gaps": s.positive_gaps,
            "negative_gaps": s.negative_gaps,
        },
    }
    return json.dumps(data, indent=2)


def format_gaps_csv(report: GapReport) -> str:
    buf = io.StringIO()
    fields = [
        "index_id",
        "index_name",
        "base_country_code",
        "comparison_country_code",
        "year",
        "base_rank",
        "comparison_rank",
        "gap",
        "trend",
    ]
    writer = csv.DictWriter(buf, fieldnames=fields)
    writer.writeheader()

    for g in report.gaps:
        writer.writerow(
            {
                "index_id": g.index_id,
                "index_name": g.index_name,
                "base_country_code": report.base_country_code,
                "comparison_country_code": g.comparison_country_code,
                "year": report.year,
                "base_rank": g.base_rank,
                "comparison_rank": g.comparison_rank,
                "gap": g.gap,
                "trend": g.trend.value,
            }
        )

    return buf.getvalue()


# --- Milestones ---


def format_milestones_table(contexts: list[MilestoneContext]) -> str:
    table = Table(box=box.SIMPLE_HEAD, pad_edge=False)
    table.add_column("Year", style="bold")
    table.add_column("Impact")
    table.add_column("Event")
    table.add_column("Rank", justify="right")
    table.add_column("Previous", justify="right")
    table.add_column("Change", justify="right")

    for c in contexts:
        prev = c.previous_entry
        table.add_row(
            str(c.milestone.year),
            c.milestone.impact.value,
            c.milestone.event,
            str(c.ranking_entry.rank) if c.ranking_entry else "—",
            f"{prev.rank} ({prev.year})" if prev else "—",
            (
                _fmt_signed(c.rank_change_from_previous, 0)
                if c.rank_change_from_previous is not None
                else "—"
            ),
        )

    if not contexts:
        return _render("No milestones recorded.")
    return _render(table)


def format_milestones_json(contexts: list[MilestoneContext]) -> str:
    data = [
        {
            "milestone": {
                "id": c.milestone.id,
                "index_id": c.milestone.index_id,
                "year": c.milestone.year,
                "event": c.milestone.event,
                "impact": c.milestone.impact.value,
                "source": c.milestone.source,
            },
            "ranking_entry": _point_dict(c.ranking_entry) if c.ranking_entry else None,
            "previous_entry": _point_dict(c.previous_entry) if c.previous_entry else None,
            "rank_change_from_previous": c.rank_change_from_previous,
        }
        for c in contexts
    ]
    return json.dumps(data, indent=2)
