"""Tests for EmbeddingService"""

import logging

import httpx
import pytest

from analyst.common.embedding_service import EmbeddingService, create_embedding_service
from analyst.common.errors import ExternalServiceError


def _ollama_service(handler):
    return EmbeddingService(
        mode="ollama",
        model="nomic-embed-text",
        base_url="http://ollama.test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestEmbeddingService:
    @pytest.mark.asyncio
    async def test_ollama_embed_single(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"embedding": [0.1, 0.2, 0.3]})

        service = _ollama_service(handler)
        vector = await service.embed_single("a software engineer in india")

        assert vector == [0.1, 0.2, 0.3]
        assert str(requests[0].url) == "http://ollama.test/api/embeddings"
        await service.aclose()

    @pytest.mark.asyncio
    async def test_ollama_batch_one_request_per_text(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"embedding": [float(len(calls))]})

        vectors = await _ollama_service(handler).embed(["a", "b", "c"])

        assert vectors == [[1.0], [2.0], [3.0]]
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_empty_text_rejected(self):
        service = _ollama_service(lambda request: httpx.Response(200, json={"embedding": [1.0]}))
        with pytest.raises(ValueError, match="empty"):
            await service.embed_single("")

    @pytest.mark.asyncio
    async def test_missing_embedding_in_response(self):
        service = _ollama_service(lambda request: httpx.Response(200, json={"error": "model not pulled"}))
        with pytest.raises(ExternalServiceError, match="model not pulled"):
            await service.embed_single("text")

    @pytest.mark.asyncio
    async def test_http_error_wrapped(self):
        service = _ollama_service(lambda request: httpx.Response(503))
        with pytest.raises(ExternalServiceError, match="Embedding request failed"):
            await service.embed_single("text")

    @pytest.mark.asyncio
    async def test_openai_without_key_unavailable(self, caplog):
        with caplog.at_level(logging.INFO, logger="analyst.common.embedding_service"):
            service = EmbeddingService(mode="openai")

        assert not service.is_available
        with pytest.raises(ExternalServiceError, match="not available"):
            await service.embed_single("text")

    def test_unsupported_mode(self, caplog):
        with caplog.at_level(logging.WARNING, logger="analyst.common.embedding_service"):
            service = EmbeddingService(mode="word2vec")
        assert not service.is_available
        assert "Unsupported embedding mode" in caplog.text

    def test_create_from_config(self):
        from analyst.common.config import EmbeddingConfig, LLMConfig

        service = create_embedding_service(
            EmbeddingConfig(model="mxbai-embed-large"),
            LLMConfig(ollama_base_url="http://gpu-box:11434"),
        )
        assert service.is_available
        assert service.model == "mxbai-embed-large"
