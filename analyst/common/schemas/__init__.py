"""
Analyst Schemas

- entity: fixed schema of the analysed dataset
- query_intent: structured query intent produced by the translator
- results: retrieval result variants handed to answer synthesis
"""

from .entity import EntitySchema, FieldKind, USERS_SCHEMA
from .query_intent import (
    Action,
    AggregateOp,
    FilterCondition,
    FilterOp,
    QueryIntent,
    SortDirection,
    missing_required_fields,
)
from .results import (
    AggregateResult,
    CountResult,
    DistinctResult,
    GroupBucket,
    GroupResult,
    HybridResult,
    RetrievalResult,
    RowsResult,
    SimilarityMatch,
    SimilarityResult,
    serialize_result,
)

__all__ = [
    "EntitySchema",
    "FieldKind",
    "USERS_SCHEMA",
    "Action",
    "AggregateOp",
    "FilterCondition",
    "FilterOp",
    "QueryIntent",
    "SortDirection",
    "missing_required_fields",
    "AggregateResult",
    "CountResult",
    "DistinctResult",
    "GroupBucket",
    "GroupResult",
    "HybridResult",
    "RetrievalResult",
    "RowsResult",
    "SimilarityMatch",
    "SimilarityResult",
    "serialize_result",
]
