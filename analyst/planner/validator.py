"""
Intent Validator

Checks a raw intent payload against the entity schema before anything is
compiled. The translator is a probabilistic component, so nothing it emits
is trusted: every field name, operator/value pairing and action requirement
is checked here, and the first problem found is raised.
"""

import logging
from datetime import datetime
from typing import Any, Mapping, Union

from pydantic import ValidationError as PydanticValidationError

from ..common.errors import CompilationError, UnsupportedEntityError, ValidationError
from ..common.schemas.entity import EntitySchema, USERS_SCHEMA
from ..common.schemas.query_intent import (
    AggregateOp,
    FilterCondition,
    LIST_OPERATORS,
    NULL_OPERATORS,
    QueryIntent,
    TEXT_OPERATORS,
    missing_required_fields,
)

logger = logging.getLogger("analyst.planner.validator")

_SCALAR_TYPES = (str, int, float, bool)


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z``."""
    return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))


class IntentValidator:
    """
    Validates raw intents for one entity schema.

    Args:
        schema: Entity schema intents must target
        strict_operators: Reject unrecognized filter operators instead of
            letting the compiler degrade them to fuzzy equality
    """

    def __init__(self, schema: EntitySchema = USERS_SCHEMA, strict_operators: bool = False):
        self._schema = schema
        self._strict_operators = strict_operators

    @property
    def schema(self) -> EntitySchema:
        return self._schema

    def validate(self, raw: Union[Mapping[str, Any], QueryIntent]) -> QueryIntent:
        """
        Validate a raw intent payload.

        Returns:
            The parsed QueryIntent

        Raises:
            UnsupportedEntityError: entity is not the schema's entity
            ValidationError: unknown action/field, operator-value mismatch,
                negative limit/offset
            CompilationError: a field required by the action is missing
        """
        intent = raw if isinstance(raw, QueryIntent) else self._parse(raw)

        if intent.entity != self._schema.name:
            raise UnsupportedEntityError(
                f"Unsupported entity: {intent.entity!r} (only {self._schema.name} is supported)",
                field="entity",
            )

        missing = missing_required_fields(intent)
        if missing:
            raise CompilationError(
                f"{missing[0]} is required for {intent.action.value} action",
                field=missing[0],
            )

        for key, condition in self._iter_conditions(intent):
            self._validate_condition(condition, key)

        for name in intent.projection:
            self._require_field(name, "projection")
        for key, name in (
            ("distinctField", intent.distinct_field),
            ("groupByField", intent.group_by_field),
            ("aggregateField", intent.aggregate_field),
            ("sortField", intent.sort_field),
        ):
            if name is not None:
                self._require_field(name, key)

        if intent.aggregate_op in (AggregateOp.AVG, AggregateOp.SUM) and not self._schema.is_numeric(
            intent.aggregate_field
        ):
            raise ValidationError(
                f"{intent.aggregate_op.value} requires a numeric field, got {intent.aggregate_field!r}",
                field="aggregateField",
            )

        if intent.limit is not None and intent.limit < 0:
            raise ValidationError(f"limit must be non-negative, got {intent.limit}", field="limit")
        if intent.offset is not None and intent.offset < 0:
            raise ValidationError(f"offset must be non-negative, got {intent.offset}", field="offset")

        return intent

    def _parse(self, raw: Mapping[str, Any]) -> QueryIntent:
        if not isinstance(raw, Mapping):
            raise ValidationError(f"Intent must be an object, got {type(raw).__name__}")
        if "entity" in raw and raw["entity"] != self._schema.name:
            # Report the entity before any shape problem
            raise UnsupportedEntityError(
                f"Unsupported entity: {raw['entity']!r} (only {self._schema.name} is supported)",
                field="entity",
            )
        try:
            return QueryIntent.model_validate(raw)
        except PydanticValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise ValidationError(f"Invalid intent: {first['msg']}", field=location or None) from e

    @staticmethod
    def _iter_conditions(intent: QueryIntent):
        for i, condition in enumerate(intent.filters):
            yield f"filters.{i}", condition
        for i, condition in enumerate(intent.or_filters):
            yield f"orFilters.{i}", condition

    def _require_field(self, name: str, key: str) -> None:
        if not self._schema.has_field(name):
            raise ValidationError(f"Unknown field {name!r} for {self._schema.name}", field=key)

    def _validate_condition(self, condition: FilterCondition, key: str) -> None:
        self._require_field(condition.field, f"{key}.field")

        op = condition.operator
        value = condition.value

        if op is None:
            if self._strict_operators:
                raise ValidationError(f"Unknown filter operator {condition.op!r}", field=f"{key}.op")
            # Degrades to fuzzy equality at compile time, so it needs an equality value
            logger.debug("Accepting unrecognized operator %r on %r", condition.op, condition.field)
            self._check_scalar(condition.field, value, key)
            return

        if op in NULL_OPERATORS:
            return

        if op in LIST_OPERATORS:
            if not isinstance(value, (list, tuple)):
                raise ValidationError(
                    f"{op.value} requires a list value, got {type(value).__name__}",
                    field=f"{key}.value",
                )
            for item in value:
                self._check_scalar(condition.field, item, key)
            return

        if op in TEXT_OPERATORS and not isinstance(value, str):
            raise ValidationError(
                f"{op.value} requires a string value, got {type(value).__name__}",
                field=f"{key}.value",
            )

        self._check_scalar(condition.field, value, key)

    def _check_scalar(self, field_name: str, value: Any, key: str) -> None:
        if value is None or not isinstance(value, _SCALAR_TYPES):
            raise ValidationError(
                f"Filter on {field_name!r} requires a scalar value, got {type(value).__name__}",
                field=f"{key}.value",
            )

        if self._schema.is_numeric(field_name):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(
                    f"Field {field_name!r} is numeric, got {value!r}",
                    field=f"{key}.value",
                )
        elif self._schema.is_date(field_name):
            if not _is_iso_datetime(value):
                raise ValidationError(
                    f"Field {field_name!r} requires an ISO-8601 date string, got {value!r}",
                    field=f"{key}.value",
                )
        elif not isinstance(value, str):
            raise ValidationError(
                f"Field {field_name!r} is text, got {value!r}",
                field=f"{key}.value",
            )


def _is_iso_datetime(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parse_iso_datetime(value)
    except ValueError:
        return False
    return True
