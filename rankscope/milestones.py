"""Link index milestones to the data points of a country's rank history."""

from __future__ import annotations

from collections.abc import Sequence

from rankscope.models import AnnotatedPoint, Milestone, MilestoneContext, RankPoint


def associate_milestones(
    milestones: Sequence[Milestone],
    series: Sequence[RankPoint] | None = None,
) -> list[MilestoneContext]:
    """Attach the ranking at each milestone's year and the entry before it.

    "Before" means the nearest earlier year present in the series, which may be
    several calendar years back. When the series has no entry at the milestone
    year, both sides are None. Without a series, every context is empty.
    """
    if series is None:
        return [MilestoneContext(m, None, None, None) for m in milestones]

    by_year = {p.year: p for p in series}
    sorted_years = sorted(by_year)
    position = {year: i for i, year in enumerate(sorted_years)}

    contexts: list[MilestoneContext] = []
    for m in milestones:
        current = by_year.get(m.year)
        previous = None
        idx = position.get(m.year)
        if idx is not None and idx > 0:
            previous = by_year[sorted_years[idx - 1]]

        change = None
        if current is not None and previous is not None:
            change = current.rank - previous.rank

        contexts.append(
            MilestoneContext(
                milestone=m,
                ranking_entry=current,
                previous_entry=previous,
                rank_change_from_previous=change,
            )
        )
    return contexts


def attach_milestones(
    series: Sequence[RankPoint], milestones: Sequence[Milestone]
) -> list[AnnotatedPoint]:
    """Pair every point of a series with the milestones recorded for its year."""
    by_year: dict[int, list[Milestone]] = {}
    for m in milestones:
        by_year.setdefault(m.year, []).append(m)

    return [
        AnnotatedPoint(entry=p, milestones=list(by_year.get(p.year, ())))
        for p in series
    ]
