"""
Structured Executor

Runs a CompiledPlan against the tabular store (SQLAlchemy async session over
the users table) and returns a typed structured result. One handler per
action; generic grouping is done in memory after fetching raw values.
"""

import logging
from collections import Counter
from typing import Awaitable, Callable, Dict

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..common.errors import ExecutionError
from ..common.models import User
from ..common.schemas.query_intent import Action, AggregateOp, SortDirection
from ..common.schemas.results import (
    AggregateResult,
    CountResult,
    DistinctResult,
    GroupBucket,
    GroupResult,
    RowsResult,
    StructuredResult,
)
from .canonicalize import canonicalize, get_canonicalizer
from .compiler import (
    AggregateSpec,
    BoolClause,
    CompareOp,
    CompiledPlan,
    Comparison,
    DistinctSpec,
    GroupSpec,
    NullTest,
    Predicate,
)

logger = logging.getLogger("analyst.planner.executor")

_users = User.__table__


def _column(name: str):
    return _users.c[name]


def _comparison_clause(predicate: Comparison):
    column = _column(predicate.field)
    value = predicate.value
    op = predicate.op

    if op == CompareOp.EQ:
        return column == value
    if op == CompareOp.NEQ:
        return column != value
    if op == CompareOp.CONTAINS:
        return column.icontains(str(value), autoescape=True)
    if op == CompareOp.STARTS_WITH:
        return column.istartswith(str(value), autoescape=True)
    if op == CompareOp.ENDS_WITH:
        return column.iendswith(str(value), autoescape=True)
    if op == CompareOp.GT:
        return column > value
    if op == CompareOp.GTE:
        return column >= value
    if op == CompareOp.LT:
        return column < value
    if op == CompareOp.LTE:
        return column <= value
    if op == CompareOp.IN:
        return column.in_(list(value))
    if op == CompareOp.NOT_IN:
        return column.not_in(list(value))
    raise ExecutionError(f"Unsupported comparison operator: {op}")


def to_clause(predicate: Predicate):
    """Translate a predicate tree into a SQLAlchemy boolean clause."""
    if isinstance(predicate, Comparison):
        return _comparison_clause(predicate)
    if isinstance(predicate, NullTest):
        column = _column(predicate.field)
        return column.is_(None) if predicate.is_null else column.is_not(None)
    if isinstance(predicate, BoolClause):
        children = [to_clause(child) for child in predicate.children]
        return and_(*children) if predicate.conjunction == "and" else or_(*children)
    raise ExecutionError(f"Unsupported predicate: {predicate!r}")


class StructuredExecutor:
    """
    Executes compiled plans.

    Args:
        session_factory: Async session factory bound to the tabular store
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._handlers: Dict[Action, Callable[[AsyncSession, CompiledPlan], Awaitable[StructuredResult]]] = {
            Action.LIST: self._rows,
            Action.SINGLE: self._rows,
            Action.COUNT: self._count,
            Action.DISTINCT: self._distinct,
            Action.AGGREGATE: self._aggregate,
            Action.GROUP: self._group,
        }

    async def execute(self, plan: CompiledPlan) -> StructuredResult:
        """
        Execute a plan.

        Raises:
            ExecutionError: store failure or a plan the store cannot run
        """
        handler = self._handlers[plan.action]
        try:
            async with self._session_factory() as session:
                result = await handler(session, plan)
        except SQLAlchemyError as e:
            logger.error("Store failure executing %s plan: %s", plan.action.value, e)
            raise ExecutionError(f"Store failure executing {plan.action.value} plan: {e}") from e

        logger.info("Executed %s plan", plan.action.value)
        return result

    # ------------------------------------------------------------------
    # Statement helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _filtered(stmt: Select, plan: CompiledPlan) -> Select:
        if plan.where is not None:
            stmt = stmt.where(to_clause(plan.where))
        return stmt

    @staticmethod
    def _ordered(stmt: Select, plan: CompiledPlan) -> Select:
        if plan.order_by is not None:
            column = _column(plan.order_by.field)
            stmt = stmt.order_by(column.desc() if plan.order_by.direction == SortDirection.DESC else column.asc())
        # Scan order breaks ties
        return stmt.order_by(_users.c.id.asc())

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _rows(self, session: AsyncSession, plan: CompiledPlan) -> RowsResult:
        columns = [_column(name) for name in plan.projection] or [_users]
        stmt = self._ordered(self._filtered(select(*columns), plan), plan)

        single = plan.action == Action.SINGLE
        if single:
            stmt = stmt.limit(1)
        elif plan.limit is not None:
            stmt = stmt.limit(plan.limit)
        if plan.offset:
            stmt = stmt.offset(plan.offset)

        result = await session.execute(stmt)
        rows = [dict(row) for row in result.mappings().all()]
        return RowsResult(rows=rows, single=single)

    async def _count(self, session: AsyncSession, plan: CompiledPlan) -> CountResult:
        stmt = self._filtered(select(func.count()).select_from(_users), plan)
        count = (await session.execute(stmt)).scalar_one()
        return CountResult(count=int(count))

    async def _distinct(self, session: AsyncSession, plan: CompiledPlan) -> DistinctResult:
        spec: DistinctSpec = plan.special
        stmt = self._ordered(self._filtered(select(_column(spec.field)), plan), plan)
        result = await session.execute(stmt)
        values = list(dict.fromkeys(result.scalars().all()))
        return DistinctResult(field=spec.field, values=values)

    async def _aggregate(self, session: AsyncSession, plan: CompiledPlan) -> AggregateResult:
        spec: AggregateSpec = plan.special
        column = _column(spec.field)
        functions = {
            AggregateOp.COUNT: func.count,
            AggregateOp.AVG: func.avg,
            AggregateOp.SUM: func.sum,
            AggregateOp.MIN: func.min,
            AggregateOp.MAX: func.max,
        }
        stmt = self._filtered(select(functions[spec.op](column)).select_from(_users), plan)
        value = (await session.execute(stmt)).scalar_one()
        return AggregateResult(operation=spec.op.value, field=spec.field, result=value)

    async def _group(self, session: AsyncSession, plan: CompiledPlan) -> GroupResult:
        spec: GroupSpec = plan.special
        if spec.generic and get_canonicalizer(spec.field) is not None:
            return await self._generic_group(session, plan, spec)
        if spec.generic:
            logger.debug("No generic grouping rule for %r, using standard grouping", spec.field)

        column = _column(spec.field)
        count = func.count().label("count")
        stmt = self._filtered(select(column, count), plan).group_by(column)
        stmt = stmt.order_by(count.desc() if spec.direction == SortDirection.DESC else count.asc(), column.asc())
        stmt = stmt.limit(spec.limit)

        result = await session.execute(stmt)
        buckets = [GroupBucket(value=value, count=int(n)) for value, n in result.all()]
        return GroupResult(field=spec.field, buckets=buckets, generic=False)

    async def _generic_group(self, session: AsyncSession, plan: CompiledPlan, spec: GroupSpec) -> GroupResult:
        stmt = self._filtered(select(_column(spec.field)), plan).order_by(_users.c.id.asc())
        raw_values = (await session.execute(stmt)).scalars().all()

        counts: Counter = Counter()
        for value in raw_values:
            counts[canonicalize(spec.field, value)] += 1

        # sorted() is stable with reverse=True, so ties keep first-seen order
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=spec.direction == SortDirection.DESC)
        buckets = [GroupBucket(value=value, count=n) for value, n in ranked[: spec.limit]]
        logger.debug(
            "Generic grouping on %s: %d raw values into %d buckets",
            spec.field,
            len(raw_values),
            len(counts),
        )
        return GroupResult(field=spec.field, buckets=buckets, generic=True)

