"""
Retrieval Orchestrator

Answers one analytic question end to end:

    Classifying -> Executing -> Merging -> Done

1. Classify the question into a strategy (structured / semantic / hybrid)
2. Execute it: structured = translate -> validate -> compile -> execute,
   semantic = similarity retrieval, hybrid = both concurrently
3. Merge: single results pass through, hybrid results are wrapped
4. Synthesize the answer and append it to the conversation history

Any failure ends the question with an AnalystError tagged with the stage
that failed. There is no retry and no partial answer; history is only
written for completed questions.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, TypeVar

from ..common.config import AnalystConfig, load_config
from ..common.database import create_engine, create_session_factory
from ..common.embedding_service import create_embedding_service
from ..common.errors import AnalystError, ExecutionError, ExternalServiceError
from ..common.llm_client import create_llm_client
from ..common.schemas.results import (
    HybridResult,
    RetrievalResult,
    SimilarityResult,
    StructuredResult,
    serialize_result,
)
from ..common.vector_store import VectorStore
from ..planner import QueryPlanner
from ..planner.translator import IntentTranslator
from ..planner.validator import IntentValidator
from .classifier import QueryClassifier, Strategy
from .history import ConversationHistory
from .searcher import DEFAULT_MIN_SIMILARITY, DEFAULT_TOPK, SimilarityRetriever
from .synthesizer import AnswerSynthesizer

logger = logging.getLogger("analyst.retriever.orchestrator")

T = TypeVar("T")

# Stages whose unexpected failures come from the language-model service
_SERVICE_STAGES = frozenset({"classify", "translate", "synthesize"})


class AnalysisState(str, Enum):
    IDLE = "idle"
    CLASSIFYING = "classifying"
    EXECUTING = "executing"
    MERGING = "merging"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Analysis:
    """Outcome of one answered question"""
    question: str
    strategy: Strategy
    result: RetrievalResult
    answer: str


class AnalyzerAgent:
    """
    Hybrid retrieval orchestrator.

    All collaborators are injected; the agent itself only keeps the
    current state and the conversation history.

    Args:
        classifier: Strategy classifier
        planner: Structured pipeline (translator, compiler, executor)
        retriever: Similarity retriever
        synthesizer: Answer synthesizer
        history: Conversation history to append to (new, unbounded one if omitted)
        top_k: Maximum similarity matches per question
        min_similarity: Similarity threshold
    """

    def __init__(
        self,
        classifier: QueryClassifier,
        planner: QueryPlanner,
        retriever: SimilarityRetriever,
        synthesizer: AnswerSynthesizer,
        history: Optional[ConversationHistory] = None,
        top_k: int = DEFAULT_TOPK,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
        closers: Optional[List[Callable[[], Awaitable[None]]]] = None,
    ):
        self._classifier = classifier
        self._planner = planner
        self._retriever = retriever
        self._synthesizer = synthesizer
        self.history = history if history is not None else ConversationHistory()
        self._top_k = top_k
        self._min_similarity = min_similarity
        self._closers = list(closers or [])
        self.state = AnalysisState.IDLE

    async def analyze(self, question: str) -> Analysis:
        """
        Answer ``question``.

        Raises:
            AnalystError: any failure, with ``stage`` set to the failing stage
        """
        try:
            self._transition(AnalysisState.CLASSIFYING)
            strategy = await self._run_stage("classify", self._classifier.classify(question))
            logger.info("Classified as: %s", strategy.value)

            self._transition(AnalysisState.EXECUTING)
            if strategy == Strategy.STRUCTURED:
                result: RetrievalResult = await self._structured(question)
            elif strategy == Strategy.SEMANTIC:
                result = await self._semantic(question)
            else:
                structured, semantic = await self._hybrid(question)
                result = HybridResult(structured=structured, semantic=semantic)

            self._transition(AnalysisState.MERGING)

            answer = await self._run_stage("synthesize", self._synthesize(question, result))
        except AnalystError as e:
            self._transition(AnalysisState.FAILED)
            logger.error("Question failed: %s", e)
            raise

        self.history.append(question, answer, strategy.value)
        self._transition(AnalysisState.DONE)
        return Analysis(question=question, strategy=strategy, result=result, answer=answer)

    async def aclose(self) -> None:
        """Release clients and engines the agent owns."""
        for close in self._closers:
            await close()
        self._closers.clear()

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def _structured(self, question: str) -> StructuredResult:
        plan = await self._run_stage("translate", self._planner.plan(question))
        return await self._run_stage("execute", self._planner.executor.execute(plan))

    async def _semantic(self, question: str) -> SimilarityResult:
        matches = await self._run_stage(
            "retrieve",
            self._retriever.retrieve(question, top_k=self._top_k, min_similarity=self._min_similarity),
        )
        return SimilarityResult(matches=matches)

    async def _hybrid(self, question: str):
        # Both sub-calls always run to completion before any failure surfaces
        structured, semantic = await asyncio.gather(
            self._structured(question),
            self._semantic(question),
            return_exceptions=True,
        )
        for outcome in (structured, semantic):
            if isinstance(outcome, BaseException):
                raise outcome
        return structured, semantic

    async def _synthesize(self, question: str, result: RetrievalResult) -> str:
        return await self._synthesizer.synthesize(question, serialize_result(result))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _transition(self, state: AnalysisState) -> None:
        logger.debug("State %s -> %s", self.state.value, state.value)
        self.state = state

    @staticmethod
    async def _run_stage(stage: str, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except AnalystError as e:
            if e.stage is None:
                e.stage = stage
            raise
        except Exception as e:
            error_cls = ExternalServiceError if stage in _SERVICE_STAGES else ExecutionError
            raise error_cls(f"{stage} failed: {e}", stage=stage) from e


def create_analyzer(
    config: Optional[AnalystConfig] = None,
    history: Optional[ConversationHistory] = None,
) -> AnalyzerAgent:
    """
    Wire an AnalyzerAgent from configuration.

    Args:
        config: Configuration (loaded from file and environment if omitted)
        history: Conversation history to share across agents
    """
    config = config or load_config()

    llm_client = create_llm_client(config.llm)
    embedding_service = create_embedding_service(config.embedding, config.llm)
    engine = create_engine(config.database.url, echo=config.database.echo)
    session_factory = create_session_factory(engine)

    validator = IntentValidator(strict_operators=config.planner.strict_operators)
    translator = IntentTranslator(llm_client, validator)
    planner = QueryPlanner.from_session_factory(
        session_factory,
        translator,
        default_group_limit=config.planner.default_group_limit,
    )

    logger.info(
        "Analyzer ready (llm=%s/%s, embedding=%s/%s)",
        config.llm.provider,
        config.llm.model,
        config.embedding.mode,
        config.embedding.model,
    )
    return AnalyzerAgent(
        classifier=QueryClassifier(llm_client),
        planner=planner,
        retriever=SimilarityRetriever(embedding_service, VectorStore(session_factory)),
        synthesizer=AnswerSynthesizer(llm_client),
        history=history,
        top_k=config.retriever.topk,
        min_similarity=config.retriever.min_similarity,
        closers=[llm_client.aclose, embedding_service.aclose, engine.dispose],
    )
