"""
Retrieval Results

Tagged union of everything a question can retrieve. Results are created per
question, handed to answer synthesis as JSON, and never persisted.
"""

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union


@dataclass(frozen=True)
class SimilarityMatch:
    """One stored document scored against the query"""
    subject_id: int
    text_content: str
    score: float  # cosine similarity, rounded to 3 decimals

    def to_payload(self) -> Dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "content": self.text_content,
            "similarity": self.score,
        }


@dataclass
class RowsResult:
    """Rows for list/single actions"""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    single: bool = False
    kind: str = field(default="rows", init=False)

    def to_payload(self) -> Any:
        if self.single:
            return self.rows[0] if self.rows else None
        return self.rows


@dataclass
class CountResult:
    count: int
    kind: str = field(default="count", init=False)

    def to_payload(self) -> Any:
        return {"count": self.count}


@dataclass
class DistinctResult:
    field: str
    values: List[Any] = field(default_factory=list)
    kind: str = field(default="distinct", init=False)

    @property
    def total(self) -> int:
        return len(self.values)

    def to_payload(self) -> Any:
        return {"field": self.field, "values": self.values, "total": self.total}


@dataclass
class AggregateResult:
    operation: str
    field: str
    result: Any
    kind: str = field(default="aggregate", init=False)

    def to_payload(self) -> Any:
        return {"operation": self.operation, "field": self.field, "result": self.result}


@dataclass
class GroupBucket:
    value: Any
    count: int


@dataclass
class GroupResult:
    """Per-bucket counts, already sorted and truncated"""
    field: str
    buckets: List[GroupBucket] = field(default_factory=list)
    generic: bool = False
    kind: str = field(default="group", init=False)

    @property
    def total(self) -> int:
        return sum(b.count for b in self.buckets)

    def to_payload(self) -> Any:
        return [{self.field: b.value, "count": b.count} for b in self.buckets]


@dataclass
class SimilarityResult:
    matches: List[SimilarityMatch] = field(default_factory=list)
    kind: str = field(default="similarity", init=False)

    def to_payload(self) -> Any:
        return [m.to_payload() for m in self.matches]


StructuredResult = Union[RowsResult, CountResult, DistinctResult, AggregateResult, GroupResult]


@dataclass
class HybridResult:
    """Structured and semantic results of the same question"""
    structured: StructuredResult
    semantic: SimilarityResult
    kind: str = field(default="hybrid", init=False)

    def to_payload(self) -> Any:
        return {
            "structured": self.structured.to_payload(),
            "semantic": self.semantic.to_payload(),
        }


RetrievalResult = Union[StructuredResult, SimilarityResult, HybridResult]


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_result(result: Optional[RetrievalResult]) -> str:
    """Render a result as the JSON document given to answer synthesis."""
    payload = result.to_payload() if result is not None else None
    return json.dumps(payload, default=_json_default, ensure_ascii=False)
