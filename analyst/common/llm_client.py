"""
Provider-agnostic LLM client for Analyst pipelines.

Supports a local Ollama server, Anthropic, OpenAI, and Google Gemini with a
shared async text-generation interface.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from .errors import ExternalServiceError

logger = logging.getLogger("analyst.common.llm_client")


class LLMClient:
    """Unified async text generation client across LLM providers."""

    def __init__(
        self,
        provider: str = "ollama",
        model: str = "",
        ollama_base_url: str = "http://localhost:11434",
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ) -> None:
        self.provider = (provider or "ollama").lower()
        self.model = model
        self.timeout = timeout
        self._client = None

        if self.provider == "ollama":
            self._base_url = ollama_base_url.rstrip("/")
            self._client = http_client or httpx.AsyncClient()
            return

        if self.provider == "anthropic":
            if not anthropic_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                import anthropic

                self._client = anthropic.AsyncAnthropic(api_key=anthropic_api_key)
            except ImportError:
                logger.warning("anthropic package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Anthropic client: %s", e)
            return

        if self.provider == "openai":
            if not openai_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                from openai import AsyncOpenAI

                self._client = AsyncOpenAI(api_key=openai_api_key)
            except ImportError:
                logger.warning("openai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize OpenAI client: %s", e)
            return

        if self.provider == "google":
            if not google_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                import google.generativeai as genai

                genai.configure(api_key=google_api_key)
                self._client = genai  # Store the module, not a model instance
                self._google_models = {}  # Cache models by system prompt
            except ImportError:
                logger.warning("google-generativeai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Gemini client: %s", e)
            return

        logger.warning("Unsupported LLM provider: %s", self.provider)

    @property
    def is_available(self) -> bool:
        return self._client is not None

    async def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 512,
        timeout: Optional[float] = None,
    ) -> str:
        """Generate a completion for ``prompt``.

        Raises:
            ExternalServiceError: provider unavailable, unreachable or erroring
        """
        if not self.is_available:
            raise ExternalServiceError(f"LLM client is not available (provider={self.provider})")

        try:
            return await self._generate(
                prompt,
                system=system,
                max_tokens=max_tokens,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except ExternalServiceError:
            raise
        except Exception as e:
            logger.error("LLM generation failed (provider=%s, model=%s): %s", self.provider, self.model, e)
            raise ExternalServiceError(f"LLM generation failed: {e}") from e

    async def _generate(
        self,
        prompt: str,
        *,
        system: Optional[str],
        max_tokens: int,
        timeout: float,
    ) -> str:
        if self.provider == "ollama":
            body = {
                "model": self.model,
                "prompt": prompt,
                "stream": False,
                "options": {"num_predict": max_tokens},
            }
            if system:
                body["system"] = system
            response = await self._client.post(
                f"{self._base_url}/api/generate",
                json=body,
                timeout=timeout,
            )
            response.raise_for_status()
            data = response.json()
            if "response" not in data:
                raise ExternalServiceError(f"Unexpected Ollama response: {data.get('error', data)}")
            return data["response"].strip()

        if self.provider == "anthropic":
            kwargs = {}
            if system:
                kwargs["system"] = system
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
                timeout=timeout,
                **kwargs,
            )
            return response.content[0].text.strip()

        if self.provider == "openai":
            messages = []
            if system:
                messages.append({"role": "system", "content": system})
            messages.append({"role": "user", "content": prompt})
            response = await self._client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                messages=messages,
                timeout=timeout,
            )
            return (response.choices[0].message.content or "").strip()

        if self.provider == "google":
            cache_key = system or ""
            if cache_key not in self._google_models:
                kwargs = {"model_name": self.model}
                if system:
                    kwargs["system_instruction"] = system
                self._google_models[cache_key] = self._client.GenerativeModel(**kwargs)
            model = self._google_models[cache_key]
            response = await model.generate_content_async(
                prompt,
                generation_config={"max_output_tokens": max_tokens},
                request_options={"timeout": timeout},
            )
            return response.text.strip()

        raise ExternalServiceError(f"Unsupported LLM provider: {self.provider}")

    async def aclose(self) -> None:
        """Close the underlying HTTP client, if any."""
        if self.provider == "ollama" and self._client is not None:
            await self._client.aclose()


def create_llm_client(llm_config) -> LLMClient:
    """Build an LLMClient from an LLMConfig section."""
    return LLMClient(
        provider=llm_config.provider,
        model=llm_config.model,
        ollama_base_url=llm_config.ollama_base_url,
        anthropic_api_key=llm_config.anthropic_api_key or None,
        openai_api_key=llm_config.openai_api_key or None,
        google_api_key=llm_config.google_api_key or None,
        timeout=llm_config.timeout,
    )
