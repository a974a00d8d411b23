"""
Query Intent Schema

The declarative representation of a structured question. Intents come from
an LLM translator and are parsed here for shape only; semantic checks
(entity, field names, operator/value agreement, action requirements) live in
analyst.planner.validator.

Wire format is camelCase JSON. The spellings used by earlier planner
prompts (select, sortBy, sortOrder, skip, findMany, findFirst, groupBy) are
accepted as aliases.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Enums
# ============================================================================

class Action(str, Enum):
    """What the structured query returns"""
    LIST = "list"
    SINGLE = "single"
    COUNT = "count"
    DISTINCT = "distinct"
    GROUP = "group"
    AGGREGATE = "aggregate"


class FilterOp(str, Enum):
    """Filter operators the translator may emit"""
    EQ = "eq"
    NEQ = "neq"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    NOT_IN = "notIn"
    IS_NULL = "isNull"
    IS_NOT_NULL = "isNotNull"


class AggregateOp(str, Enum):
    COUNT = "count"
    AVG = "avg"
    SUM = "sum"
    MIN = "min"
    MAX = "max"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


ACTION_ALIASES = {
    "findmany": Action.LIST,
    "findfirst": Action.SINGLE,
    "groupby": Action.GROUP,
}

LIST_OPERATORS = frozenset({FilterOp.IN, FilterOp.NOT_IN})
NULL_OPERATORS = frozenset({FilterOp.IS_NULL, FilterOp.IS_NOT_NULL})
TEXT_OPERATORS = frozenset({FilterOp.CONTAINS, FilterOp.STARTS_WITH, FilterOp.ENDS_WITH})

_OPERATORS_BY_VALUE = {op.value: op for op in FilterOp}


def resolve_operator(name: str) -> Optional[FilterOp]:
    """Map an operator name to FilterOp, or None when it is not recognized."""
    return _OPERATORS_BY_VALUE.get(name)


# ============================================================================
# Models
# ============================================================================

class FilterCondition(BaseModel):
    """
    One predicate on one field.

    ``op`` is kept as the raw string so that unrecognized operators can be
    degraded by the compiler instead of failing the whole intent.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    field: str
    op: str = Field(validation_alias=AliasChoices("op", "operator"))
    value: Any = None

    @property
    def operator(self) -> Optional[FilterOp]:
        return resolve_operator(self.op)


class QueryIntent(BaseModel):
    """Validated-shape structured query over a single entity"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    entity: str
    action: Action
    filters: Tuple[FilterCondition, ...] = ()
    or_filters: Tuple[FilterCondition, ...] = Field(
        default=(), validation_alias=AliasChoices("orFilters", "or_filters")
    )
    projection: Tuple[str, ...] = Field(
        default=(), validation_alias=AliasChoices("projection", "select")
    )
    distinct_field: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("distinctField", "distinct_field")
    )
    group_by_field: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("groupByField", "group_by_field")
    )
    group_by_generic: bool = Field(
        default=False, validation_alias=AliasChoices("groupByGeneric", "group_by_generic")
    )
    aggregate_field: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("aggregateField", "aggregate_field")
    )
    aggregate_op: Optional[AggregateOp] = Field(
        default=None, validation_alias=AliasChoices("aggregateOp", "aggregate_op")
    )
    sort_field: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("sortField", "sortBy", "sort_field")
    )
    sort_direction: Optional[SortDirection] = Field(
        default=None, validation_alias=AliasChoices("sortDirection", "sortOrder", "sort_direction")
    )
    limit: Optional[int] = None
    offset: Optional[int] = Field(default=None, validation_alias=AliasChoices("offset", "skip"))

    @field_validator("action", mode="before")
    @classmethod
    def _resolve_action_alias(cls, value: Any) -> Any:
        if isinstance(value, str):
            return ACTION_ALIASES.get(value.lower(), value.lower())
        return value

    @field_validator("filters", "or_filters", "projection", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return () if value is None else value

    @field_validator("projection")
    @classmethod
    def _dedupe_projection(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(value))

    @field_validator("group_by_generic", mode="before")
    @classmethod
    def _none_as_false(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("aggregate_op", "sort_direction", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


# Fields that must be present for each action
REQUIRED_FIELDS: Dict[Action, Tuple[str, ...]] = {
    Action.LIST: (),
    Action.SINGLE: (),
    Action.COUNT: (),
    Action.DISTINCT: ("distinct_field",),
    Action.GROUP: ("group_by_field",),
    Action.AGGREGATE: ("aggregate_field", "aggregate_op"),
}

WIRE_NAMES = {
    "distinct_field": "distinctField",
    "group_by_field": "groupByField",
    "aggregate_field": "aggregateField",
    "aggregate_op": "aggregateOp",
}


def missing_required_fields(intent: QueryIntent) -> List[str]:
    """Wire names of the action-required fields that are absent."""
    return [
        WIRE_NAMES.get(name, name)
        for name in REQUIRED_FIELDS[intent.action]
        if getattr(intent, name) in (None, "")
    ]
