#!/usr/bin/env python3
"""
Knowledge Base Build Script

Embeds one profile document per user and stores it for similarity search.
Re-running it replaces existing embeddings.

Usage:
    python scripts/build_knowledge_base.py [--dry-run] [--concurrency 8]
"""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from analyst.common.config import load_config
from analyst.common.database import create_engine, create_session_factory, init_models
from analyst.common.embedding_service import create_embedding_service
from analyst.common.errors import AnalystError
from analyst.common.vector_store import VectorStore
from analyst.indexer import KnowledgeBaseBuilder, render_user_document
from analyst.indexer.knowledge_base import DEFAULT_CONCURRENCY


async def run(args: argparse.Namespace) -> int:
    config = load_config()
    if args.database_url:
        config.database.url = args.database_url

    print(f"[KnowledgeBase] Database: {config.database.url}")
    print(f"[KnowledgeBase] Embedding: {config.embedding.mode}/{config.embedding.model}")

    engine = create_engine(config.database.url, echo=config.database.echo)
    embedding_svc = create_embedding_service(config.embedding, config.llm)
    try:
        await init_models(engine)
        session_factory = create_session_factory(engine)
        builder = KnowledgeBaseBuilder(
            session_factory,
            embedding_svc,
            VectorStore(session_factory),
            concurrency=args.concurrency,
        )

        if args.dry_run:
            users = await builder.load_users()
            print("[KnowledgeBase] DRY RUN - no embeddings will be written")
            print(f"[KnowledgeBase] Would embed {len(users)} users")
            if users:
                print("[KnowledgeBase] Sample document:")
                print(render_user_document(users[0]))
            return 0

        if not embedding_svc.is_available:
            print("[KnowledgeBase] ERROR: Embedding service not available")
            return 1

        report = await builder.build()
    except AnalystError as e:
        print(f"[KnowledgeBase] ERROR: {e}")
        return 1
    finally:
        await embedding_svc.aclose()
        await engine.dispose()

    print(f"[KnowledgeBase] Complete: {report.processed} processed, {report.failed} errors, {report.total} total")
    return 0 if report.ok else 1


def main():
    parser = argparse.ArgumentParser(description="Build the similarity-search knowledge base from the users table")
    parser.add_argument("--dry-run", action="store_true", help="Print what would be done without executing")
    parser.add_argument(
        "--concurrency",
        type=int,
        default=DEFAULT_CONCURRENCY,
        help="Maximum embedding requests in flight",
    )
    parser.add_argument("--database-url", type=str, default=None, help="Override the configured database URL")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
