"""Shared sample dataset for loader, analysis, formatter and CLI tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from rankscope.dataset import Dataset, parse_dataset


def sample_document() -> dict[str, Any]:
    def entry(country: str, year: int, rank: int, index_id: str = "gii") -> dict[str, Any]:
        return {
            "index_id": index_id,
            "country_code": country,
            "year": year,
            "rank": rank,
            "total_countries": 132,
        }

    return {
        "indices": [
            {
                "id": "gii",
                "name": "Global Innovation Index",
                "short_name": "GII",
                "source": "WIPO",
                "source_url": "https://www.wipo.int/global_innovation_index",
                "higher_is_better": True,
                "score_range": {"min": 0, "max": 100},
            },
            {
                "id": "hdi",
                "name": "Human Development Index",
                "short_name": "HDI",
                "source": "UNDP",
                "higher_is_better": True,
            },
        ],
        "entries": [
            {**entry("IND", 2018, 50), "score": 35.2},
            entry("IND", 2019, 40),
            entry("IND", 2020, 45),
            entry("CHN", 2018, 17),
            entry("CHN", 2019, 14),
            entry("CHN", 2020, 14),
            entry("USA", 2020, 3),
            entry("IND", 2020, 131, index_id="hdi"),
            entry("USA", 2020, 21, index_id="hdi"),
        ],
        "peer_groups": [
            {
                "id": "brics",
                "name": "BRICS",
                "country_codes": ["BRA", "RUS", "IND", "chn", "ZAF"],
            },
            {"id": "g7", "name": "G7", "country_codes": ["USA", "CAN"]},
        ],
        "milestones": [
            {
                "id": "m1",
                "index_id": "gii",
                "year": 2019,
                "event": "National Innovation Mission launched",
                "impact": "positive",
                "source": "Press release",
            },
            {
                "id": "m2",
                "index_id": "gii",
                "year": 2016,
                "event": "Methodology revision",
                "impact": "neutral",
            },
        ],
    }


@pytest.fixture
def dataset() -> Dataset:
    return parse_dataset(sample_document())


@pytest.fixture
def dataset_file(tmp_path: Path) -> Path:
    path = tmp_path / "rankings.json"
    path.write_text(json.dumps(sample_document()))
    return path
