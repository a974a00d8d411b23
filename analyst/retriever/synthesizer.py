"""
Answer Synthesizer

Turns a question and its serialized retrieval result into a short
conversational answer using the language-model service.

Rules the prompt enforces:
- answer only from the provided result, never invent
- empty results get a contextual "couldn't find" phrased from the question
- counts and aggregates are stated plainly
- no mention of SQL, queries, databases or tables unless asked
"""

import logging

from ..common.llm_client import LLMClient

logger = logging.getLogger("analyst.retriever.synthesizer")


SYNTHESIS_PROMPT = """You are a friendly, human-like data assistant.

You are given:
- A user's natural language question
- The result of that question in JSON

Your task:
- Answer the user's question using ONLY the provided result.
- Do NOT invent or assume any information.
- Do NOT mention SQL, queries, databases, or tables unless the user explicitly asked about them.

Empty result rules:
- If the result is empty, do NOT say generic lines like:
  - "No matching records were found."
  - "No data found."
- Instead, respond in a natural, contextual way using words from the user's question.
  - Example:
    - Question: "How many users are from India?"
    - Answer: "I couldn't find any users from India."
  - Example:
    - Question: "List female users from France"
    - Answer: "I couldn't find any female users from France."

Aggregate result rules:
- If the result contains a count or aggregate value, state it plainly.
  - Example: "There are 12 users from Germany."

Row result rules:
- If the result contains rows, summarize the key information briefly and clearly.

Style & tone:
- Sound natural and conversational, like a helpful human.
- Be clear, concise, and direct.
- Avoid robotic or technical phrasing.
- Do NOT say phrases like:
  - "Based on the result you provided"
  - "According to the data"
- Keep it short unless more detail is genuinely useful.

Formatting rules:
- Give a direct answer to the user's question.
- Use simple sentences.
- Do not add extra explanations or disclaimers.

Here is the information:

User question:
{question}

Result data:
{result}
"""


class AnswerSynthesizer:
    """
    Answer-synthesis client.

    Args:
        llm_client: Language-model client used for generation
        max_tokens: Generation budget for the answer
    """

    def __init__(self, llm_client: LLMClient, max_tokens: int = 512):
        self._llm = llm_client
        self._max_tokens = max_tokens

    async def synthesize(self, question: str, result_json: str) -> str:
        """
        Answer ``question`` from ``result_json``.

        Raises:
            ExternalServiceError: the language-model call failed
        """
        answer = await self._llm.generate(
            SYNTHESIS_PROMPT.format(question=question, result=result_json),
            max_tokens=self._max_tokens,
        )
        return answer.strip()
