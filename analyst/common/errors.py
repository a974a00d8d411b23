"""
Error types for the Analyst pipeline.

Every failure that ends a question is one of these kinds. Errors raised by
the orchestrator always carry the stage that failed.
"""

from typing import Optional


class AnalystError(Exception):
    """Base error for all Analyst failures."""

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[str] = None,
        field: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.field = field

    def __str__(self) -> str:
        parts = []
        if self.stage:
            parts.append(f"[{self.stage}]")
        parts.append(self.message)
        if self.field:
            parts.append(f"(field: {self.field})")
        return " ".join(parts)


class ValidationError(AnalystError):
    """Query intent is structurally invalid or unsupported."""


class UnsupportedEntityError(ValidationError):
    """Query intent targets an entity other than the supported one."""


class CompilationError(AnalystError):
    """A field required by the intent's action is missing."""


class TranslationParseError(AnalystError):
    """Translator output could not be parsed into an intent payload."""


class ExecutionError(AnalystError):
    """Store call failed or returned an unexpected shape."""


class ExternalServiceError(AnalystError):
    """Language-model or embedding service unreachable or erroring."""
