"""Shared utilities for parsing LLM responses."""

from __future__ import annotations

import json
import re

from .errors import TranslationParseError

_FENCED_BLOCK = re.compile(r"```[a-zA-Z0-9_-]*[ \t]*\n?(.*?)```", re.DOTALL)

# String literals are matched first so comment markers inside them survive.
_STRING_OR_COMMENT = re.compile(
    r'"(?:\\.|[^"\\])*"|//[^\n]*|/\*.*?\*/',
    re.DOTALL,
)


def strip_code_fences(raw: str) -> str:
    """Return the body of the first markdown code fence, or the text unchanged.

    A fence that was opened but never closed is dropped as well.
    """
    text = raw.strip()
    match = _FENCED_BLOCK.search(text)
    if match:
        return match.group(1).strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [l for l in lines if not l.strip().startswith("```")]
        return "\n".join(lines).strip()
    return text


def strip_json_comments(text: str) -> str:
    """Remove // line comments and /* block */ comments outside string literals."""

    def _replace(match: re.Match) -> str:
        token = match.group(0)
        return token if token.startswith('"') else ""

    return _STRING_OR_COMMENT.sub(_replace, text)


def parse_llm_json(raw: str) -> dict:
    """Parse a JSON object from an LLM response.

    Code fences and JS-style comments are stripped first. Anything that is
    still not a JSON object raises TranslationParseError; nothing is guessed.
    """
    if not raw or not raw.strip():
        raise TranslationParseError("Empty response from translator")

    text = strip_json_comments(strip_code_fences(raw)).strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise TranslationParseError(f"Translator output is not valid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise TranslationParseError(
            f"Translator output must be a JSON object, got {type(data).__name__}"
        )
    return data
