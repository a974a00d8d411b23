"""
Intent Translator

Turns a natural-language question into a validated QueryIntent using the
language-model service. The model output is unwrapped (code fences,
comments), parsed as a JSON object and validated against the entity schema;
nothing it emits is used unchecked.
"""

import logging
from typing import Optional

from ..common.errors import AnalystError, ExternalServiceError
from ..common.llm_client import LLMClient
from ..common.llm_utils import parse_llm_json
from ..common.schemas.query_intent import QueryIntent
from .validator import IntentValidator

logger = logging.getLogger("analyst.planner.translator")


TRANSLATION_PROMPT = """You are a query planner. Convert user questions into STRICT JSON query intents.

Schema: {schema}

JSON Format:
{{
  "entity": "{entity}",
  "action": "list" | "single" | "count" | "distinct" | "group" | "aggregate",
  "filters": [{{ "field": "country", "op": "eq", "value": "India" }}],
  "orFilters": [{{ "field": "country", "op": "eq", "value": "USA" }}],
  "projection": ["id", "first_name", "email"],
  "distinctField": "device",
  "groupByField": "car",
  "groupByGeneric": true,
  "aggregateField": "id",
  "aggregateOp": "count",
  "sortField": "created_at",
  "sortDirection": "desc",
  "limit": 10,
  "offset": 0
}}

Filter Operations:
- "eq": equals (text fields match case-insensitively on partial text)
- "neq": not equals
- "contains": partial text match (case-insensitive)
- "startsWith": text starts with
- "endsWith": text ends with
- "gt": greater than (for numbers/dates)
- "gte": greater than or equal
- "lt": less than (for numbers/dates)
- "lte": less than or equal
- "in": value in list, e.g., {{"field": "country", "op": "in", "value": ["USA", "India"]}}
- "notIn": value not in list
- "isNull": field is null (value should be true)
- "isNotNull": field is not null (value should be true)

Actions:
- "list": get multiple records (default)
- "single": get a single record
- "count": count records matching filters
- "distinct": get unique values for distinctField
- "group": group by field and count (for rankings, most/least popular)
- "aggregate": perform aggregation (count, avg, sum, min, max) on aggregateField

Rules:
- Output ONLY valid JSON, no comments
- Use "count" for "how many", "total", "number of"
- Use "distinct" for "unique", "different types", "all values of"
- Use "group" for "most popular", "least used", "ranking", "top N by count"
- For group on device/car: set "groupByGeneric": true for general queries (e.g., "most common device", "popular car brand"). Set to false only when user asks about specific versions (e.g., "Android versions", "iOS versions", "car models")
- Use "aggregate" for "average", "sum", "minimum", "maximum"
- Use "single" for "first", "latest", "oldest", single record queries
- Use "orFilters" for OR conditions (matches ANY of these)
- Use "filters" for AND conditions (matches ALL of these)
- For dates: use ISO format "2025-01-01T00:00:00Z"
- For sorting: use sortField with sortDirection ("asc" or "desc")
- For pagination: use limit and offset

User Question: "{question}"
"""


class IntentTranslator:
    """
    NL-to-intent client.

    Args:
        llm_client: Language-model client used for generation
        validator: Validator the parsed intent must pass
        max_tokens: Generation budget for the JSON intent
    """

    def __init__(
        self,
        llm_client: LLMClient,
        validator: Optional[IntentValidator] = None,
        max_tokens: int = 512,
    ):
        self._llm = llm_client
        self._validator = validator or IntentValidator()
        self._max_tokens = max_tokens

    @property
    def validator(self) -> IntentValidator:
        return self._validator

    def build_prompt(self, question: str) -> str:
        schema = self._validator.schema
        return TRANSLATION_PROMPT.format(
            schema=schema.describe(),
            entity=schema.name,
            question=question.replace('"', "'"),
        )

    async def translate(self, question: str) -> QueryIntent:
        """
        Translate a question into a validated intent.

        Raises:
            ExternalServiceError: the language-model call failed
            TranslationParseError: output is not a JSON object
            ValidationError / CompilationError: the intent failed validation
        """
        try:
            raw = await self._llm.generate(self.build_prompt(question), max_tokens=self._max_tokens)
        except AnalystError:
            raise
        except Exception as e:
            raise ExternalServiceError(f"Intent translation failed: {e}") from e

        logger.debug("Translator output: %s", raw)
        intent = self._validator.validate(parse_llm_json(raw))
        logger.info(
            "Translated question into %s intent (%d filters, %d or-filters)",
            intent.action.value,
            len(intent.filters),
            len(intent.or_filters),
        )
        return intent
