"""
Analyst Planner

Structured retrieval path: question -> intent -> plan -> store result.

    translator  NL question to validated QueryIntent (language-model service)
    validator   schema checks on raw intents
    compiler    QueryIntent to store-agnostic CompiledPlan
    executor    CompiledPlan to structured result over the tabular store
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..common.schemas.results import StructuredResult
from .compiler import CompiledPlan, IntentCompiler
from .executor import StructuredExecutor
from .translator import IntentTranslator
from .validator import IntentValidator

logger = logging.getLogger("analyst.planner")


class QueryPlanner:
    """
    Runs the structured pipeline end to end for one question.

    Each call is independent; no state is kept between questions.
    """

    def __init__(
        self,
        translator: IntentTranslator,
        compiler: IntentCompiler,
        executor: StructuredExecutor,
    ):
        self.translator = translator
        self.compiler = compiler
        self.executor = executor

    @classmethod
    def from_session_factory(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        translator: IntentTranslator,
        default_group_limit: int = 10,
    ) -> "QueryPlanner":
        schema = translator.validator.schema
        return cls(
            translator=translator,
            compiler=IntentCompiler(schema, default_group_limit=default_group_limit),
            executor=StructuredExecutor(session_factory),
        )

    async def plan(self, question: str) -> CompiledPlan:
        intent = await self.translator.translate(question)
        return self.compiler.compile(intent)

    async def run(self, question: str) -> StructuredResult:
        """Translate, validate, compile and execute ``question``."""
        plan = await self.plan(question)
        return await self.executor.execute(plan)


__all__ = [
    "QueryPlanner",
    "IntentTranslator",
    "IntentValidator",
    "IntentCompiler",
    "StructuredExecutor",
    "CompiledPlan",
]
