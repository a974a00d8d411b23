"""
Vector Store

Reads and writes EmbeddingRecords kept in the user_embeddings table.
Supports the two operations the pipeline needs: list every record for a
full-scan similarity search, and upsert one record per subject.
"""

import json
import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .errors import ExecutionError
from .models import UserEmbedding

logger = logging.getLogger("analyst.common.vector_store")


@dataclass(frozen=True)
class EmbeddingRecord:
    """Stored document and vector for one subject (user)"""
    subject_id: int
    text_content: str
    vector: Tuple[float, ...]


class VectorStore:
    """
    Embedding storage over the tabular store.

    There is no vector index: ``list_records`` returns every row in scan
    order (subject id ascending).
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_records(self) -> List[EmbeddingRecord]:
        """
        Load all EmbeddingRecords.

        Raises:
            ExecutionError: store failure or a row whose vector is not a JSON array
        """
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(UserEmbedding).order_by(UserEmbedding.user_id))
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to load embeddings: %s", e)
            raise ExecutionError(f"Failed to load embeddings: {e}") from e

        return [self._to_record(row) for row in rows]

    async def upsert(self, subject_id: int, text_content: str, vector: Sequence[float]) -> EmbeddingRecord:
        """Insert or replace the embedding for ``subject_id``."""
        encoded = json.dumps([float(v) for v in vector])
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(UserEmbedding).where(UserEmbedding.user_id == subject_id)
                )
                row = result.scalar_one_or_none()
                if row is None:
                    session.add(UserEmbedding(user_id=subject_id, content=text_content, embedding=encoded))
                else:
                    row.content = text_content
                    row.embedding = encoded
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to upsert embedding for subject %s: %s", subject_id, e)
            raise ExecutionError(f"Failed to upsert embedding for subject {subject_id}: {e}") from e

        return EmbeddingRecord(
            subject_id=subject_id,
            text_content=text_content,
            vector=tuple(float(v) for v in vector),
        )

    @staticmethod
    def _to_record(row: UserEmbedding) -> EmbeddingRecord:
        try:
            vector = json.loads(row.embedding)
            if not isinstance(vector, list):
                raise ExecutionError(f"Embedding for subject {row.user_id} is not a JSON array")
            values = tuple(float(v) for v in vector)
        except (TypeError, ValueError) as e:
            raise ExecutionError(f"Embedding for subject {row.user_id} is not a numeric JSON array") from e

        return EmbeddingRecord(
            subject_id=row.user_id,
            text_content=row.content,
            vector=values,
        )
