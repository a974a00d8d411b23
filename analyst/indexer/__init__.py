"""
Analyst Indexer

Builds the knowledge base the similarity retriever searches.
"""

from .knowledge_base import BuildReport, KnowledgeBaseBuilder, render_user_document

__all__ = ["BuildReport", "KnowledgeBaseBuilder", "render_user_document"]
