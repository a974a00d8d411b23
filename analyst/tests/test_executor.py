"""
Tests for StructuredExecutor

Runs compiled plans against the seeded SQLite store from conftest:
12 users in India, 3 in Brazil (Android 10, Android 12, iOS 16) and
2 in Germany (one with no device, car or job title).
"""

from datetime import datetime

import pytest

from analyst.common.database import create_engine, create_session_factory
from analyst.common.errors import ExecutionError
from analyst.common.schemas.results import (
    AggregateResult,
    CountResult,
    DistinctResult,
    GroupResult,
    RowsResult,
)
from analyst.planner.compiler import IntentCompiler
from analyst.planner.executor import StructuredExecutor
from analyst.planner.validator import IntentValidator


def _plan(**raw):
    intent = IntentValidator().validate({"entity": "Users", "action": "list", **raw})
    return IntentCompiler().compile(intent)


@pytest.fixture
def executor(session_factory):
    return StructuredExecutor(session_factory)


class TestRows:
    @pytest.mark.asyncio
    async def test_and_filters_all_hold(self, executor):
        result = await executor.execute(_plan(filters=[
            {"field": "country", "op": "eq", "value": "India"},
            {"field": "job_title", "op": "eq", "value": "engineer"},
        ]))

        assert isinstance(result, RowsResult)
        assert len(result.rows) == 4
        for row in result.rows:
            assert "india" in row["country"].lower()
            assert "engineer" in row["job_title"].lower()

    @pytest.mark.asyncio
    async def test_projection_order_limit(self, executor):
        result = await executor.execute(_plan(projection=["email"], sortField="id", sortDirection="desc", limit=2))

        assert result.to_payload() == [
            {"email": "hans_100%@example.de"},
            {"email": "greta@example.de"},
        ]

    @pytest.mark.asyncio
    async def test_offset(self, executor):
        result = await executor.execute(_plan(projection=["id"], sortField="id", limit=2, offset=3))
        assert [row["id"] for row in result.rows] == [4, 5]

    @pytest.mark.asyncio
    async def test_full_rows_include_every_column(self, executor):
        result = await executor.execute(_plan(filters=[{"field": "id", "op": "eq", "value": 13}]))

        row = result.rows[0]
        assert row["device"] == "Android 10"
        assert row["created_at"] == datetime(2025, 2, 1)
        assert set(row) >= {"id", "first_name", "email", "car", "country", "created_at"}

    @pytest.mark.asyncio
    async def test_contains_escapes_wildcards(self, executor):
        result = await executor.execute(_plan(filters=[{"field": "email", "op": "contains", "value": "_100%"}]))
        assert [row["id"] for row in result.rows] == [17]

    @pytest.mark.asyncio
    async def test_single_returns_first_row(self, executor):
        result = await executor.execute(_plan(action="single", sortField="created_at", sortDirection="desc"))

        assert result.single is True
        assert result.to_payload()["id"] == 17

    @pytest.mark.asyncio
    async def test_single_with_no_match_is_none(self, executor):
        result = await executor.execute(_plan(action="single", filters=[
            {"field": "country", "op": "eq", "value": "Atlantis"},
        ]))
        assert result.to_payload() is None

    @pytest.mark.asyncio
    async def test_starts_with_case_insensitive(self, executor):
        result = await executor.execute(_plan(filters=[{"field": "first_name", "op": "startsWith", "value": "bru"}]))
        assert [row["id"] for row in result.rows] == [13, 14, 15]


class TestCount:
    @pytest.mark.asyncio
    async def test_count_india(self, executor):
        result = await executor.execute(_plan(
            action="count",
            filters=[{"field": "country", "op": "eq", "value": "India"}],
        ))

        assert isinstance(result, CountResult)
        assert result.to_payload() == {"count": 12}

    @pytest.mark.asyncio
    async def test_count_ignores_limit_and_projection(self, executor):
        result = await executor.execute(_plan(action="count", projection=["id"], limit=1))
        assert result.count == 17

    @pytest.mark.asyncio
    async def test_eq_and_contains_agree(self, executor):
        eq = await executor.execute(_plan(action="count", filters=[{"field": "car", "op": "eq", "value": "ford"}]))
        contains = await executor.execute(_plan(action="count", filters=[{"field": "car", "op": "contains", "value": "ford"}]))
        assert eq.count == contains.count == 2

    @pytest.mark.asyncio
    async def test_null_tests_partition_rows(self, executor):
        nulls = await executor.execute(_plan(action="count", filters=[{"field": "car", "op": "isNull"}]))
        not_nulls = await executor.execute(_plan(action="count", filters=[{"field": "car", "op": "isNotNull"}]))

        assert nulls.count == 1
        assert not_nulls.count == 16

    @pytest.mark.asyncio
    async def test_date_range(self, executor):
        result = await executor.execute(_plan(action="count", filters=[
            {"field": "created_at", "op": "gte", "value": "2025-01-01T00:00:00Z"},
        ]))
        assert result.count == 5

    @pytest.mark.asyncio
    async def test_date_filter_with_offset_matches_same_instant_in_utc(self, executor):
        utc = await executor.execute(_plan(action="count", filters=[
            {"field": "created_at", "op": "gte", "value": "2025-03-01T00:00:00Z"},
        ]))
        offset = await executor.execute(_plan(action="count", filters=[
            {"field": "created_at", "op": "gte", "value": "2025-03-01T05:30:00+05:30"},
        ]))

        assert utc.count == 2
        assert offset.count == 2

    @pytest.mark.asyncio
    async def test_in_and_not_in(self, executor):
        in_result = await executor.execute(_plan(action="count", filters=[
            {"field": "country", "op": "in", "value": ["Brazil", "Germany"]},
        ]))
        not_in_result = await executor.execute(_plan(action="count", filters=[
            {"field": "country", "op": "notIn", "value": ["India"]},
        ]))

        assert in_result.count == 5
        assert not_in_result.count == 5

    @pytest.mark.asyncio
    async def test_or_filters(self, executor):
        result = await executor.execute(_plan(action="count", orFilters=[
            {"field": "country", "op": "eq", "value": "Brazil"},
            {"field": "country", "op": "eq", "value": "Germany"},
        ]))
        assert result.count == 5

    @pytest.mark.asyncio
    async def test_and_with_or_group(self, executor):
        result = await executor.execute(_plan(
            action="count",
            filters=[{"field": "gender", "op": "eq", "value": "Female"}],
            orFilters=[
                {"field": "country", "op": "eq", "value": "Brazil"},
                {"field": "country", "op": "eq", "value": "Germany"},
            ],
        ))
        assert result.count == 1


class TestDistinctAndAggregate:
    @pytest.mark.asyncio
    async def test_distinct_in_scan_order(self, executor):
        result = await executor.execute(_plan(action="distinct", distinctField="language"))

        assert isinstance(result, DistinctResult)
        assert result.to_payload() == {
            "field": "language",
            "values": ["Hindi", "Portuguese", "German"],
            "total": 3,
        }

    @pytest.mark.asyncio
    async def test_distinct_sorted(self, executor):
        result = await executor.execute(_plan(action="distinct", distinctField="language", sortField="language"))
        assert result.values == ["German", "Hindi", "Portuguese"]

    @pytest.mark.asyncio
    async def test_aggregate_max(self, executor):
        result = await executor.execute(_plan(action="aggregate", aggregateField="id", aggregateOp="max"))

        assert isinstance(result, AggregateResult)
        assert result.to_payload() == {"operation": "max", "field": "id", "result": 17}

    @pytest.mark.asyncio
    async def test_aggregate_avg_with_filter(self, executor):
        result = await executor.execute(_plan(
            action="aggregate",
            aggregateField="id",
            aggregateOp="avg",
            filters=[{"field": "country", "op": "eq", "value": "India"}],
        ))
        assert result.result == pytest.approx(6.5)

    @pytest.mark.asyncio
    async def test_aggregate_count_skips_nulls(self, executor):
        result = await executor.execute(_plan(action="aggregate", aggregateField="car", aggregateOp="count"))
        assert result.result == 16

    @pytest.mark.asyncio
    async def test_aggregate_min_date(self, executor):
        result = await executor.execute(_plan(action="aggregate", aggregateField="created_at", aggregateOp="min"))
        assert result.result == datetime(2024, 1, 1)


class TestGroup:
    @pytest.mark.asyncio
    async def test_standard_group_by_count(self, executor):
        result = await executor.execute(_plan(action="group", groupByField="country"))

        assert isinstance(result, GroupResult)
        assert result.to_payload() == [
            {"country": "India", "count": 12},
            {"country": "Brazil", "count": 3},
            {"country": "Germany", "count": 2},
        ]

    @pytest.mark.asyncio
    async def test_standard_group_truncated(self, executor):
        result = await executor.execute(_plan(action="group", groupByField="country", limit=2))
        assert [b.value for b in result.buckets] == ["India", "Brazil"]

    @pytest.mark.asyncio
    async def test_standard_group_ascending(self, executor):
        result = await executor.execute(_plan(action="group", groupByField="country", sortDirection="asc"))
        assert [b.value for b in result.buckets] == ["Germany", "Brazil", "India"]

    @pytest.mark.asyncio
    async def test_generic_device_grouping(self, executor):
        result = await executor.execute(_plan(
            action="group",
            groupByField="device",
            groupByGeneric=True,
            filters=[{"field": "country", "op": "eq", "value": "Brazil"}],
        ))

        assert result.generic is True
        assert result.to_payload() == [
            {"device": "Android", "count": 2},
            {"device": "iOS", "count": 1},
        ]

    @pytest.mark.asyncio
    async def test_generic_grouping_conserves_total(self, executor):
        result = await executor.execute(_plan(action="group", groupByField="device", groupByGeneric=True, limit=50))

        assert result.total == 17
        assert result.to_payload() == [
            {"device": "Android", "count": 8},
            {"device": "iOS", "count": 7},
            {"device": None, "count": 1},
            {"device": "Feature phone", "count": 1},
        ]

    @pytest.mark.asyncio
    async def test_generic_car_ties_keep_first_seen_order(self, executor):
        result = await executor.execute(_plan(action="group", groupByField="car", groupByGeneric=True))

        assert [(b.value, b.count) for b in result.buckets] == [
            ("Honda", 7),
            ("Toyota", 5),
            ("Ford", 2),
            ("Tesla", 1),
            (None, 1),
            ("Volkswagen", 1),
        ]

    @pytest.mark.asyncio
    async def test_generic_grouping_ascending(self, executor):
        result = await executor.execute(_plan(
            action="group",
            groupByField="device",
            groupByGeneric=True,
            sortDirection="asc",
            filters=[{"field": "country", "op": "eq", "value": "Brazil"}],
        ))
        assert [b.value for b in result.buckets] == ["iOS", "Android"]

    @pytest.mark.asyncio
    async def test_generic_without_rule_falls_back(self, executor):
        result = await executor.execute(_plan(action="group", groupByField="language", groupByGeneric=True))

        assert result.generic is False
        assert result.buckets[0].value == "Hindi"


class TestFailures:
    @pytest.mark.asyncio
    async def test_store_failure_raises_execution_error(self, tmp_path):
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'no_tables.db'}")
        try:
            executor = StructuredExecutor(create_session_factory(engine))
            with pytest.raises(ExecutionError, match="Store failure"):
                await executor.execute(_plan(action="count"))
        finally:
            await engine.dispose()
