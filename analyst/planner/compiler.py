"""
Intent Compiler

Maps a validated QueryIntent into a store-agnostic CompiledPlan.

Compilation rules:
- AND filters and OR filters each become one predicate per condition; the
  top level is AND(AND-group, OR-group) when both groups are present
- eq on a free-text field becomes a case-insensitive substring match; other
  fields keep exact equality
- isNull / isNotNull become null tests whatever value was supplied
- unrecognized operators degrade to the same fuzzy-equality rule as eq
- projection, ordering, limit and offset pass through unchanged
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from ..common.errors import CompilationError
from ..common.schemas.entity import EntitySchema, USERS_SCHEMA
from ..common.schemas.query_intent import (
    Action,
    AggregateOp,
    FilterCondition,
    FilterOp,
    QueryIntent,
    SortDirection,
    missing_required_fields,
)
from .validator import parse_iso_datetime

logger = logging.getLogger("analyst.planner.compiler")


# ============================================================================
# Plan types
# ============================================================================

class CompareOp(str, Enum):
    """Comparison operators understood by the executor"""
    EQ = "eq"
    NEQ = "neq"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    NOT_IN = "not_in"


@dataclass(frozen=True)
class Comparison:
    field: str
    op: CompareOp
    value: Any


@dataclass(frozen=True)
class NullTest:
    field: str
    is_null: bool


@dataclass(frozen=True)
class BoolClause:
    """AND / OR over child predicates"""
    conjunction: str  # "and" | "or"
    children: Tuple["Predicate", ...]


Predicate = Union[Comparison, NullTest, BoolClause]


@dataclass(frozen=True)
class OrderBy:
    field: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class DistinctSpec:
    field: str


@dataclass(frozen=True)
class GroupSpec:
    field: str
    generic: bool
    direction: SortDirection
    limit: int


@dataclass(frozen=True)
class AggregateSpec:
    op: AggregateOp
    field: str


SpecialAction = Union[DistinctSpec, GroupSpec, AggregateSpec]


@dataclass(frozen=True)
class CompiledPlan:
    """Store-operation-ready form of one intent"""
    action: Action
    where: Optional[Predicate] = None
    projection: Tuple[str, ...] = ()
    order_by: Optional[OrderBy] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    special: Optional[SpecialAction] = None
    degraded: Tuple[str, ...] = field(default=(), compare=False)  # fields whose operator was degraded


_DIRECT_OPS = {
    FilterOp.NEQ: CompareOp.NEQ,
    FilterOp.CONTAINS: CompareOp.CONTAINS,
    FilterOp.STARTS_WITH: CompareOp.STARTS_WITH,
    FilterOp.ENDS_WITH: CompareOp.ENDS_WITH,
    FilterOp.GT: CompareOp.GT,
    FilterOp.GTE: CompareOp.GTE,
    FilterOp.LT: CompareOp.LT,
    FilterOp.LTE: CompareOp.LTE,
    FilterOp.IN: CompareOp.IN,
    FilterOp.NOT_IN: CompareOp.NOT_IN,
}


# ============================================================================
# Compiler
# ============================================================================

class IntentCompiler:
    """
    Compiles validated intents into plans.

    Pure and deterministic: the same intent always yields the same plan.
    """

    def __init__(self, schema: EntitySchema = USERS_SCHEMA, default_group_limit: int = 10):
        self._schema = schema
        self._default_group_limit = default_group_limit

    def compile(self, intent: QueryIntent) -> CompiledPlan:
        """
        Compile an intent.

        Raises:
            CompilationError: a field required by the intent's action is missing
        """
        missing = missing_required_fields(intent)
        if missing:
            raise CompilationError(
                f"{missing[0]} is required for {intent.action.value} action",
                field=missing[0],
            )

        degraded: List[str] = []
        and_group = [self._compile_condition(c, degraded) for c in intent.filters]
        or_group = [self._compile_condition(c, degraded) for c in intent.or_filters]

        where: Optional[Predicate] = None
        if and_group and or_group:
            where = BoolClause("and", (BoolClause("and", tuple(and_group)), BoolClause("or", tuple(or_group))))
        elif and_group:
            where = BoolClause("and", tuple(and_group))
        elif or_group:
            where = BoolClause("or", tuple(or_group))

        order_by = None
        if intent.sort_field:
            order_by = OrderBy(intent.sort_field, intent.sort_direction or SortDirection.ASC)

        plan = CompiledPlan(
            action=intent.action,
            where=where,
            projection=tuple(intent.projection),
            order_by=order_by,
            limit=intent.limit,
            offset=intent.offset,
            special=self._special_action(intent),
            degraded=tuple(degraded),
        )
        logger.debug("Compiled plan: %s", plan)
        return plan

    def _special_action(self, intent: QueryIntent) -> Optional[SpecialAction]:
        if intent.action == Action.DISTINCT:
            return DistinctSpec(intent.distinct_field)
        if intent.action == Action.GROUP:
            return GroupSpec(
                field=intent.group_by_field,
                generic=intent.group_by_generic,
                direction=intent.sort_direction or SortDirection.DESC,
                limit=intent.limit or self._default_group_limit,
            )
        if intent.action == Action.AGGREGATE:
            return AggregateSpec(intent.aggregate_op, intent.aggregate_field)
        return None

    def _compile_condition(self, condition: FilterCondition, degraded: List[str]) -> Predicate:
        name = condition.field
        op = condition.operator

        if op == FilterOp.IS_NULL:
            return NullTest(name, is_null=True)
        if op == FilterOp.IS_NOT_NULL:
            return NullTest(name, is_null=False)

        if op is None:
            logger.warning(
                "Unrecognized filter operator %r on %r, falling back to fuzzy equality",
                condition.op,
                name,
            )
            degraded.append(name)
            op = FilterOp.EQ

        value = self._coerce(name, condition.value)

        if op == FilterOp.EQ:
            if self._schema.is_text(name):
                return Comparison(name, CompareOp.CONTAINS, value)
            return Comparison(name, CompareOp.EQ, value)

        return Comparison(name, _DIRECT_OPS[op], value)

    def _coerce(self, name: str, value: Any) -> Any:
        """Parse ISO strings for date fields; everything else passes through."""
        if not self._schema.is_date(name):
            return tuple(value) if isinstance(value, list) else value
        if isinstance(value, (list, tuple)):
            return tuple(_to_naive_utc(v) for v in value)
        return _to_naive_utc(value)


def _to_naive_utc(value: Any) -> Any:
    """Date values are compared as naive UTC, matching the store's columns."""
    if isinstance(value, str):
        value = parse_iso_datetime(value)
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
