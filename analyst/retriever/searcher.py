"""
Similarity Retriever

Ranks stored user documents against a question by cosine similarity.
The vector store has no index, so every search is a full scan: embed the
normalized question once, score every EmbeddingRecord, keep the ones at or
above the threshold, and return the best ``top_k``.
"""

import logging
from typing import List

from ..common.embedding_service import EmbeddingService, batch_cosine_similarity
from ..common.errors import ExecutionError
from ..common.schemas.results import SimilarityMatch
from ..common.vector_store import VectorStore

logger = logging.getLogger("analyst.retriever.searcher")

DEFAULT_TOPK = 5
DEFAULT_MIN_SIMILARITY = 0.4


def normalize_query(text: str) -> str:
    return text.casefold().strip()


class SimilarityRetriever:
    """
    Embedding-similarity search over the vector store.

    Read-only: nothing is written during retrieval.
    """

    def __init__(self, embedding_service: EmbeddingService, vector_store: VectorStore):
        self._embedding = embedding_service
        self._store = vector_store

    async def retrieve(
        self,
        query_text: str,
        top_k: int = DEFAULT_TOPK,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
    ) -> List[SimilarityMatch]:
        """
        Find the documents most similar to ``query_text``.

        Args:
            query_text: Natural-language question
            top_k: Maximum number of matches
            min_similarity: Minimum (rounded) score a match must reach

        Returns:
            At most ``top_k`` matches, best first; ties keep scan order

        Raises:
            ExternalServiceError: embedding call failed
            ExecutionError: store failure or vector dimension mismatch
        """
        normalized = normalize_query(query_text)
        if not normalized or top_k <= 0:
            return []

        query_vector = await self._embedding.embed_single(normalized)
        records = await self._store.list_records()
        if not records:
            logger.info("Vector store is empty, no matches")
            return []

        try:
            scores = batch_cosine_similarity(query_vector, [record.vector for record in records])
        except ValueError as e:
            raise ExecutionError(f"Cannot score stored embeddings: {e}") from e

        matches = []
        for record, score in zip(records, scores):
            rounded = round(score, 3)
            if rounded >= min_similarity:
                matches.append(SimilarityMatch(record.subject_id, record.text_content, rounded))

        # Stable sort keeps scan order among equal scores
        matches.sort(key=lambda m: m.score, reverse=True)
        logger.info("Found %d documents above similarity %.2f", len(matches), min_similarity)
        return matches[:top_k]
