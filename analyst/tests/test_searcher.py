"""Tests for cosine similarity and SimilarityRetriever"""

import math
from unittest.mock import AsyncMock, Mock

import pytest

from analyst.common.embedding_service import batch_cosine_similarity, cosine_similarity
from analyst.common.errors import ExecutionError, ExternalServiceError
from analyst.common.vector_store import EmbeddingRecord


class TestCosineSimilarity:
    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 5.0]) == pytest.approx(0.0)

    def test_symmetric(self):
        a, b = [0.3, -1.2, 4.0], [2.5, 0.1, -0.7]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_zero_vector_scores_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
        assert cosine_similarity([1.0, 1.0], [0.0, 0.0]) == 0.0

    def test_bounded(self):
        vectors = [[1e-8, 3.0, -2.0], [1e8, 1e8, 1e8], [-0.5, 0.25, 0.125]]
        for a in vectors:
            for b in vectors:
                assert -1.0 <= cosine_similarity(a, b) <= 1.0

    def test_dimension_mismatch(self):
        with pytest.raises(ValueError, match="mismatch"):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])

    def test_batch_matches_pairwise(self):
        query = [1.0, 2.0, 0.5]
        vectors = [[1.0, 2.0, 0.5], [0.0, 0.0, 0.0], [-2.0, 1.0, 0.0]]

        scores = batch_cosine_similarity(query, vectors)

        assert scores == pytest.approx([cosine_similarity(query, v) for v in vectors])
        assert scores[1] == 0.0

    def test_batch_empty(self):
        assert batch_cosine_similarity([1.0], []) == []

    def test_batch_dimension_mismatch(self):
        with pytest.raises(ValueError):
            batch_cosine_similarity([1.0, 0.0], [[1.0, 0.0, 0.0]])


def _unit(angle_degrees):
    radians = math.radians(angle_degrees)
    return (math.cos(radians), math.sin(radians))


class TestSimilarityRetriever:
    """Query vector is (1, 0); record angles set their similarity to cos(angle)."""

    @pytest.fixture
    def mock_embedding(self):
        embedding = Mock()
        embedding.embed_single = AsyncMock(return_value=[1.0, 0.0])
        return embedding

    @pytest.fixture
    def records(self):
        return [
            EmbeddingRecord(1, "a data analyst in india", _unit(60)),   # 0.5
            EmbeddingRecord(2, "a software engineer in india", _unit(0)),  # 1.0
            EmbeddingRecord(3, "a mechanic in germany", _unit(90)),   # 0.0
            EmbeddingRecord(4, "a product manager in brazil", _unit(25)),  # 0.906
            EmbeddingRecord(5, "another software engineer", _unit(0)),  # 1.0
        ]

    @pytest.fixture
    def mock_store(self, records):
        store = Mock()
        store.list_records = AsyncMock(return_value=records)
        return store

    @pytest.fixture
    def retriever(self, mock_embedding, mock_store):
        from analyst.retriever.searcher import SimilarityRetriever
        return SimilarityRetriever(mock_embedding, mock_store)

    @pytest.mark.asyncio
    async def test_ranked_and_thresholded(self, retriever):
        matches = await retriever.retrieve("Software engineers", top_k=5, min_similarity=0.4)

        assert [m.subject_id for m in matches] == [2, 5, 4, 1]
        assert [m.score for m in matches] == [1.0, 1.0, 0.906, 0.5]

    @pytest.mark.asyncio
    async def test_top_k_truncates(self, retriever):
        matches = await retriever.retrieve("engineers", top_k=2)
        assert [m.subject_id for m in matches] == [2, 5]

    @pytest.mark.asyncio
    async def test_every_match_meets_threshold(self, retriever):
        matches = await retriever.retrieve("engineers", top_k=10, min_similarity=0.6)

        assert len(matches) <= 10
        assert all(m.score >= 0.6 for m in matches)
        assert 1 not in [m.subject_id for m in matches]

    @pytest.mark.asyncio
    async def test_high_threshold_no_matches(self, mock_embedding, mock_store):
        from analyst.retriever.searcher import SimilarityRetriever

        mock_store.list_records = AsyncMock(return_value=[
            EmbeddingRecord(1, "doc", _unit(60)),
            EmbeddingRecord(2, "doc", _unit(40)),
        ])
        retriever = SimilarityRetriever(mock_embedding, mock_store)

        assert await retriever.retrieve("anything", min_similarity=0.9) == []

    @pytest.mark.asyncio
    async def test_query_normalized_before_embedding(self, retriever, mock_embedding):
        await retriever.retrieve("  Who Works In INDIA?  ")
        mock_embedding.embed_single.assert_awaited_once_with("who works in india?")

    @pytest.mark.asyncio
    async def test_blank_query_skips_embedding(self, retriever, mock_embedding):
        assert await retriever.retrieve("   ") == []
        mock_embedding.embed_single.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_store(self, mock_embedding):
        from analyst.retriever.searcher import SimilarityRetriever

        store = Mock()
        store.list_records = AsyncMock(return_value=[])
        assert await SimilarityRetriever(mock_embedding, store).retrieve("x") == []

    @pytest.mark.asyncio
    async def test_dimension_mismatch_is_execution_error(self, mock_embedding, mock_store):
        from analyst.retriever.searcher import SimilarityRetriever

        mock_store.list_records = AsyncMock(return_value=[EmbeddingRecord(1, "doc", (1.0, 0.0, 0.0))])
        retriever = SimilarityRetriever(mock_embedding, mock_store)

        with pytest.raises(ExecutionError):
            await retriever.retrieve("query")

    @pytest.mark.asyncio
    async def test_embedding_failure_propagates(self, mock_embedding, retriever):
        mock_embedding.embed_single.side_effect = ExternalServiceError("ollama down")

        with pytest.raises(ExternalServiceError):
            await retriever.retrieve("query")

    @pytest.mark.asyncio
    async def test_store_is_not_written(self, retriever, mock_store):
        await retriever.retrieve("query")
        mock_store.upsert.assert_not_called()
