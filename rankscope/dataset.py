"""Loading ranking datasets from JSON/CSV files or a published URL.

JSON layout:
    {
        "indices":    [{"id", "name", "short_name", "source", "source_url",
                        "higher_is_better", "score_range": {"min", "max"}}],
        "entries":    [{"index_id", "country_code", "year", "rank",
                        "total_countries", "score", "normalized_score",
                        "percentile"}],
        "milestones": [{"id", "index_id", "year", "event", "impact", "source"}],
        "peer_groups": [{"id", "name", "country_codes"}]
    }

A CSV file carries entries only, one row per entry with the same column names.
Missing percentiles are derived from rank; missing normalized scores are derived
when the index declares a score range.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx

from rankscope.metrics import calculate_percentile, normalize_score
from rankscope.models import (
    IndexInfo,
    Milestone,
    MilestoneImpact,
    PeerGroup,
    RankingEntry,
    RankPoint,
)

logger = logging.getLogger(__name__)


class DatasetError(ValueError):
    """A dataset could not be read or parsed."""


class UnknownEntityError(DatasetError):
    """An index or country id does not exist in the dataset."""


@dataclass(slots=True)
class Dataset:
    indices: dict[str, IndexInfo] = field(default_factory=dict)
    entries: list[RankingEntry] = field(default_factory=list)
    milestones: list[Milestone] = field(default_factory=list)
    peer_groups: dict[str, PeerGroup] = field(default_factory=dict)

    def country_codes(self) -> set[str]:
        return {e.country_code for e in self.entries}

    def get_index(self, index_id: str) -> IndexInfo | None:
        return self.indices.get(index_id)

    def require_index(self, index_id: str) -> None:
        if index_id not in self.indices and not any(
            e.index_id == index_id for e in self.entries
        ):
            raise UnknownEntityError(f"Index not found: {index_id}")

    def require_country(self, country_code: str) -> None:
        if country_code not in self.country_codes():
            raise UnknownEntityError(f"Country not found: {country_code}")

    def peer_group(self, group_id: str) -> PeerGroup:
        group = self.peer_groups.get(group_id)
        if group is None:
            raise UnknownEntityError(f"Peer group not found: {group_id}")
        return group

    def series_for(self, index_id: str, country_code: str) -> list[RankPoint]:
        """Ascending-by-year rank history of one country on one index."""
        rows = [
            e
            for e in self.entries
            if e.index_id == index_id and e.country_code == country_code
        ]
        return [e.to_point() for e in sorted(rows, key=lambda e: e.year)]

    def milestones_for(self, index_id: str) -> list[Milestone]:
        return sorted(
            (m for m in self.milestones if m.index_id == index_id),
            key=lambda m: m.year,
        )

    def index_names(self) -> dict[str, str]:
        return {i.id: i.name for i in self.indices.values()}


# --- Parsing ---


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def _parse_index(raw: dict[str, Any]) -> IndexInfo:
    score_range = raw.get("score_range") or {}
    return IndexInfo(
        id=str(raw["id"]),
        name=raw.get("name", raw["id"]),
        short_name=raw.get("short_name", ""),
        source=raw.get("source", ""),
        source_url=raw.get("source_url", ""),
        higher_is_better=bool(raw.get("higher_is_better", True)),
        score_min=_optional_float(score_range.get("min")),
        score_max=_optional_float(score_range.get("max")),
    )


def _parse_entry(raw: dict[str, Any], indices: dict[str, IndexInfo]) -> RankingEntry:
    rank = int(raw["rank"])
    total = int(raw["total_countries"])
    score = _optional_float(raw.get("score"))

    percentile = _optional_float(raw.get("percentile"))
    if percentile is None:
        percentile = calculate_percentile(rank, total) or 0.0

    normalized = _optional_float(raw.get("normalized_score"))
    info = indices.get(str(raw["index_id"]))
    if (
        normalized is None
        and info is not None
        and info.score_min is not None
        and info.score_max is not None
    ):
        normalized = normalize_score(
            score, info.score_min, info.score_max, info.higher_is_better
        )

    return RankingEntry(
        index_id=str(raw["index_id"]),
        country_code=str(raw["country_code"]).upper(),
        year=int(raw["year"]),
        rank=rank,
        total_countries=total,
        score=score,
        normalized_score=normalized,
        percentile=percentile,
    )


def _parse_milestone(raw: dict[str, Any]) -> Milestone:
    return Milestone(
        id=str(raw["id"]),
        index_id=str(raw["index_id"]),
        year=int(raw["year"]),
        event=raw["event"],
        impact=MilestoneImpact(raw.get("impact", "neutral")),
        source=raw.get("source"),
    )


def _parse_peer_group(raw: dict[str, Any]) -> PeerGroup:
    return PeerGroup(
        id=str(raw["id"]),
        name=raw.get("name", raw["id"]),
        country_codes=[str(c).upper() for c in raw["country_codes"]],
    )


def parse_dataset(data: dict[str, Any]) -> Dataset:
    """Build a Dataset from a decoded JSON document."""
    try:
        indices = {i.id: i for i in map(_parse_index, data.get("indices", []))}
        entries = [_parse_entry(e, indices) for e in data.get("entries", [])]
        milestones = [_parse_milestone(m) for m in data.get("milestones", [])]
        peer_groups = {
            g.id: g for g in map(_parse_peer_group, data.get("peer_groups", []))
        }
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise DatasetError(f"Malformed dataset: {exc}") from exc

    logger.debug(
        "Parsed dataset: %d indices, %d entries, %d milestones, %d peer groups",
        len(indices),
        len(entries),
        len(milestones),
        len(peer_groups),
    )
    return Dataset(
        indices=indices,
        entries=entries,
        milestones=milestones,
        peer_groups=peer_groups,
    )


def _load_csv(text: str) -> Dataset:
    try:
        entries = [_parse_entry(row, {}) for row in csv.DictReader(text.splitlines())]
    except (KeyError, TypeError, ValueError) as exc:
        raise DatasetError(f"Malformed CSV row: {exc}") from exc
    return Dataset(entries=entries)


def load_dataset(path: Path) -> Dataset:
    """Read a JSON dataset, or a CSV of ranking entries, from disk."""
    if not path.exists():
        raise DatasetError(f"Dataset file not found: {path}")

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DatasetError(f"Could not read dataset {path}: {exc}") from exc
    logger.debug("Loading dataset from %s", path)

    if path.suffix.lower() == ".csv":
        return _load_csv(text)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DatasetError(f"Invalid JSON in {path}: {exc}") from exc
    return parse_dataset(data)


async def fetch_dataset(client: httpx.AsyncClient, url: str) -> Dataset:
    """Fetch a published JSON dataset over HTTP."""
    logger.debug("Fetching dataset from %s", url)
    try:
        resp = await client.get(url)
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise DatasetError(f"Could not fetch dataset from {url}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise DatasetError(f"Invalid JSON from {url}: {exc}") from exc
    return parse_dataset(data)
