"""
Analyst Common Module

Shared infrastructure for the planner, retriever and indexer.
"""

from .config import AnalystConfig, load_config
from .embedding_service import EmbeddingService
from .llm_client import LLMClient
from .vector_store import EmbeddingRecord, VectorStore

__all__ = [
    "AnalystConfig",
    "load_config",
    "EmbeddingService",
    "LLMClient",
    "EmbeddingRecord",
    "VectorStore",
]
