"""
Analyst Retriever

Strategy selection, similarity search and answer synthesis.

    classifier    question -> Strategy
    searcher      embedding-similarity retrieval over the vector store
    synthesizer   result -> natural-language answer
    orchestrator  AnalyzerAgent tying everything together
"""

from .classifier import QueryClassifier, Strategy
from .history import ConversationHistory, HistoryEntry
from .orchestrator import Analysis, AnalysisState, AnalyzerAgent, create_analyzer
from .searcher import SimilarityRetriever
from .synthesizer import AnswerSynthesizer

__all__ = [
    "QueryClassifier",
    "Strategy",
    "ConversationHistory",
    "HistoryEntry",
    "Analysis",
    "AnalysisState",
    "AnalyzerAgent",
    "create_analyzer",
    "SimilarityRetriever",
    "AnswerSynthesizer",
]
