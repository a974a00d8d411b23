"""Tests for result payloads handed to answer synthesis"""

import json
from datetime import datetime
from decimal import Decimal

from analyst.common.schemas.results import (
    AggregateResult,
    CountResult,
    DistinctResult,
    GroupBucket,
    GroupResult,
    HybridResult,
    RowsResult,
    SimilarityMatch,
    SimilarityResult,
    serialize_result,
)


class TestPayloads:
    def test_kinds(self):
        assert RowsResult().kind == "rows"
        assert CountResult(1).kind == "count"
        assert DistinctResult("car").kind == "distinct"
        assert AggregateResult("avg", "id", 1.0).kind == "aggregate"
        assert GroupResult("car").kind == "group"
        assert SimilarityResult().kind == "similarity"
        assert HybridResult(CountResult(1), SimilarityResult()).kind == "hybrid"

    def test_group_payload_uses_field_name(self):
        result = GroupResult("device", [GroupBucket("Android", 2), GroupBucket("iOS", 1)], generic=True)

        assert result.to_payload() == [
            {"device": "Android", "count": 2},
            {"device": "iOS", "count": 1},
        ]
        assert result.total == 3

    def test_rows_list_and_single(self):
        rows = [{"id": 1}, {"id": 2}]
        assert RowsResult(rows).to_payload() == rows
        assert RowsResult(rows, single=True).to_payload() == {"id": 1}
        assert RowsResult([], single=True).to_payload() is None

    def test_empty_results(self):
        assert RowsResult().to_payload() == []
        assert SimilarityResult().to_payload() == []
        assert DistinctResult("car").to_payload() == {"field": "car", "values": [], "total": 0}


class TestSerializeResult:
    def test_datetimes_and_decimals(self):
        result = RowsResult([{"created_at": datetime(2025, 1, 2, 3, 4, 5), "score": Decimal("1.5")}])

        assert json.loads(serialize_result(result)) == [{"created_at": "2025-01-02T03:04:05", "score": 1.5}]

    def test_hybrid(self):
        result = HybridResult(
            structured=AggregateResult("avg", "id", 6.5),
            semantic=SimilarityResult([SimilarityMatch(2, "doc", 0.75)]),
        )

        assert json.loads(serialize_result(result)) == {
            "structured": {"operation": "avg", "field": "id", "result": 6.5},
            "semantic": [{"subject_id": 2, "content": "doc", "similarity": 0.75}],
        }

    def test_non_ascii_kept(self):
        assert "São Paulo" in serialize_result(RowsResult([{"city": "São Paulo"}]))

    def test_none(self):
        assert serialize_result(None) == "null"
