"""
Embedding Service

Turns text into vectors through the configured embedding capability:
- ollama: local Ollama server (/api/embeddings), the default
- openai: OpenAI embeddings API
- femb: on-device generation with fastembed
"""

import asyncio
import logging
from typing import List, Optional, Sequence

import httpx
import numpy as np

from .errors import ExternalServiceError

logger = logging.getLogger("analyst.common.embedding_service")


class EmbeddingService:
    """
    Async embedding service for Analyst.

    One instance is created at wiring time and injected wherever vectors
    are needed (retriever, knowledge-base builder).
    """

    def __init__(
        self,
        mode: str = "ollama",
        model: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._mode = (mode or "ollama").lower()
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._backend = None

        if self._mode == "ollama":
            self._backend = http_client or httpx.AsyncClient()
        elif self._mode == "openai":
            if not api_key:
                logger.info("OpenAI API key not provided, embedding service unavailable")
            else:
                try:
                    from openai import AsyncOpenAI

                    self._backend = AsyncOpenAI(api_key=api_key)
                except ImportError:
                    logger.warning("openai package not installed")
        elif self._mode == "femb":
            try:
                from fastembed import TextEmbedding

                self._backend = TextEmbedding(model_name=model)
            except ImportError:
                logger.warning("fastembed package not installed")
            except Exception as e:
                logger.warning("Failed to load fastembed model %s: %s", model, e)
        else:
            logger.warning("Unsupported embedding mode: %s", self._mode)

        if self._backend is not None:
            logger.info("Embedding service initialized with mode=%s, model=%s", self._mode, model)

    @property
    def is_available(self) -> bool:
        """Check if embedding service is available"""
        return self._backend is not None

    @property
    def model(self) -> str:
        return self._model

    async def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for a list of texts.

        Args:
            texts: List of strings to embed

        Returns:
            List of embedding vectors

        Raises:
            ExternalServiceError: backend unavailable, unreachable or erroring
        """
        if not self.is_available:
            raise ExternalServiceError(f"Embedding service is not available (mode={self._mode})")

        if not texts:
            return []

        try:
            if self._mode == "ollama":
                return [await self._embed_ollama(text) for text in texts]

            if self._mode == "openai":
                response = await self._backend.embeddings.create(
                    model=self._model,
                    input=texts,
                    timeout=self._timeout,
                )
                return [item.embedding for item in response.data]

            # fastembed is synchronous and CPU bound
            embeddings = await asyncio.to_thread(lambda: list(self._backend.embed(texts)))
            return [np.asarray(e).tolist() for e in embeddings]
        except ExternalServiceError:
            raise
        except Exception as e:
            logger.error("Embedding request failed (mode=%s): %s", self._mode, e)
            raise ExternalServiceError(f"Embedding request failed: {e}") from e

    async def _embed_ollama(self, text: str) -> List[float]:
        response = await self._backend.post(
            f"{self._base_url}/api/embeddings",
            json={"model": self._model, "prompt": text},
            timeout=self._timeout,
        )
        response.raise_for_status()
        data = response.json()
        embedding = data.get("embedding")
        if not embedding:
            raise ExternalServiceError(f"Unexpected Ollama embedding response: {data.get('error', data)}")
        return embedding

    async def embed_single(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: String to embed

        Returns:
            Embedding vector
        """
        if not text:
            raise ValueError("Cannot embed empty text")

        embeddings = await self.embed([text])
        return embeddings[0]

    async def aclose(self) -> None:
        if self._mode == "ollama" and self._backend is not None:
            await self._backend.aclose()


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """
    Cosine similarity between two vectors, in [-1, 1].

    Defined as 0.0 when either vector has zero magnitude.

    Raises:
        ValueError: dimension mismatch
    """
    v1 = np.asarray(vec1, dtype=float)
    v2 = np.asarray(vec2, dtype=float)

    if v1.shape != v2.shape:
        raise ValueError(f"Vector dimension mismatch: {v1.shape} vs {v2.shape}")

    norm1 = np.linalg.norm(v1)
    norm2 = np.linalg.norm(v2)
    if norm1 == 0 or norm2 == 0:
        return 0.0

    similarity = float(np.dot(v1, v2) / (norm1 * norm2))
    # Floating point can overshoot the bounds by an ulp
    return max(-1.0, min(1.0, similarity))


def batch_cosine_similarity(
    query_vec: Sequence[float],
    vectors: Sequence[Sequence[float]],
) -> List[float]:
    """
    Cosine similarity between a query and each of ``vectors``.

    Rows (or a query) with zero magnitude score 0.0.

    Raises:
        ValueError: ragged input or dimension mismatch
    """
    if len(vectors) == 0:
        return []

    query = np.asarray(query_vec, dtype=float)
    matrix = np.asarray(vectors, dtype=float)

    if matrix.ndim != 2 or matrix.shape[1] != query.shape[0]:
        raise ValueError(f"Vector dimension mismatch: query {query.shape} vs matrix {matrix.shape}")

    query_norm = np.linalg.norm(query)
    if query_norm == 0:
        return [0.0] * matrix.shape[0]

    row_norms = np.linalg.norm(matrix, axis=1)
    dots = matrix @ query
    denom = row_norms * query_norm
    similarities = np.divide(dots, denom, out=np.zeros_like(dots), where=denom != 0)

    return np.clip(similarities, -1.0, 1.0).tolist()


def create_embedding_service(embedding_config, llm_config=None) -> EmbeddingService:
    """Build an EmbeddingService from config sections."""
    base_url = llm_config.ollama_base_url if llm_config else "http://localhost:11434"
    api_key = llm_config.openai_api_key if llm_config else None
    return EmbeddingService(
        mode=embedding_config.mode,
        model=embedding_config.model,
        base_url=base_url,
        api_key=api_key or None,
    )
