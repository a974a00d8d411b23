"""
Query Classifier

Asks the language-model service which retrieval strategy fits a question.
The label is matched by substring, so chatty answers such as
"Hybrid - both would help" still resolve.
"""

import logging
from enum import Enum

from ..common.llm_client import LLMClient

logger = logging.getLogger("analyst.retriever.classifier")


class Strategy(str, Enum):
    """Retrieval strategy for one question"""
    STRUCTURED = "structured"  # exact filters, counts, aggregations, rankings
    SEMANTIC = "semantic"  # similarity / context
    HYBRID = "hybrid"  # both, merged


CLASSIFICATION_PROMPT = """You are a query classifier. Analyze the user's question and determine the best approach.

Return ONLY one of these values:
- "structured" - for exact filters, counts, aggregations, rankings (e.g., "how many users from India", "top 5 car brands", "users who joined in 2025")
- "semantic" - for similarity/context queries (e.g., "find users similar to John", "users interested in technology", "people like software engineers")
- "hybrid" - when both approaches would help (e.g., "find Android users who might like gaming", "software engineers from Asia")

User question: "{question}"

Response (one word only):"""


def strategy_from_label(label: str) -> Strategy:
    """Map a classifier label to a strategy; anything unrecognized is structured."""
    text = (label or "").lower().strip()
    if Strategy.SEMANTIC.value in text:
        return Strategy.SEMANTIC
    if Strategy.HYBRID.value in text:
        return Strategy.HYBRID
    return Strategy.STRUCTURED


class QueryClassifier:
    def __init__(self, llm_client: LLMClient, max_tokens: int = 16):
        self._llm = llm_client
        self._max_tokens = max_tokens

    async def classify(self, question: str) -> Strategy:
        """
        Classify ``question``.

        Raises:
            ExternalServiceError: the language-model call failed
        """
        label = await self._llm.generate(
            CLASSIFICATION_PROMPT.format(question=question.replace('"', "'")),
            max_tokens=self._max_tokens,
        )
        strategy = strategy_from_label(label)
        logger.debug("Classifier label %r -> %s", label, strategy.value)
        return strategy
