"""
Knowledge Base Builder

Renders one natural-language document per user, embeds it and upserts the
result into the vector store. Documents are lower-cased and repeat the key
attributes so similarity search weights them more strongly.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..common.embedding_service import EmbeddingService
from ..common.errors import AnalystError, ExecutionError
from ..common.models import User
from ..common.vector_store import VectorStore

logger = logging.getLogger("analyst.indexer.knowledge_base")

DEFAULT_CONCURRENCY = 8


def _lower(value: Optional[str]) -> str:
    return value.lower() if value else ""


def render_user_document(user: User) -> str:
    """Render the searchable profile document for one user."""
    job_title = _lower(user.job_title)
    country = _lower(user.country)
    device = _lower(user.device)
    car = _lower(user.car)
    language = _lower(user.language)
    gender = _lower(user.gender)

    return (
        f"This person works as a {job_title} and lives in {country}.\n"
        f"They use a {device} as their primary device and drive a {car}.\n"
        f"They speak {language} and identify as {gender}.\n"
        f"Overall, this is a {job_title} based in {country} who uses a {device} and drives a {car}."
    )


@dataclass
class BuildReport:
    """Outcome of one knowledge-base build"""
    total: int = 0
    processed: int = 0
    failed: int = 0
    failed_ids: List[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0


class KnowledgeBaseBuilder:
    """
    Builds the similarity-search knowledge base from the users table.

    Args:
        session_factory: Async session factory for the tabular store
        embedding_service: Embedding capability
        vector_store: Destination for the embeddings
        concurrency: Maximum embedding calls in flight
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        concurrency: int = DEFAULT_CONCURRENCY,
    ):
        if concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {concurrency}")
        self._session_factory = session_factory
        self._embedding = embedding_service
        self._store = vector_store
        self._concurrency = concurrency

    async def load_users(self) -> List[User]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(User).order_by(User.id))
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise ExecutionError(f"Failed to load users: {e}") from e

    async def build(self) -> BuildReport:
        """
        Embed and upsert every user.

        A failure for one user is logged and counted; the build continues.

        Raises:
            ExecutionError: users could not be loaded
        """
        users = await self.load_users()
        report = BuildReport(total=len(users))
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _index(user: User) -> None:
            async with semaphore:
                try:
                    document = render_user_document(user)
                    vector = await self._embedding.embed_single(document)
                    await self._store.upsert(user.id, document, vector)
                except (AnalystError, ValueError) as e:
                    logger.warning("Error processing user %s: %s", user.id, e)
                    report.failed += 1
                    report.failed_ids.append(user.id)
                    return
            report.processed += 1
            logger.debug("Processed user %s (%d/%d)", user.id, report.processed, report.total)

        await asyncio.gather(*(_index(user) for user in users))
        logger.info(
            "Knowledge base build complete: %d processed, %d failed, %d total",
            report.processed,
            report.failed,
            report.total,
        )
        return report
