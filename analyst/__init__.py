"""
Analyst

Answers analytic questions about the Users dataset by routing each question
to structured querying, embedding similarity search, or both.

Philosophy:
- The LLM proposes, the validator disposes: query intents are never trusted
  until they pass schema validation
- Structured answers come from exact store operations, never from the LLM
- Similarity search is a full scan over stored embeddings (small datasets)

Usage:
    from analyst.common import load_config
    from analyst.retriever import create_analyzer

    analyzer = create_analyzer(load_config())
    analysis = await analyzer.analyze("How many users are from India?")
"""

__version__ = "0.1.0"
