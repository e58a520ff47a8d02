"""
Provider-agnostic LLM client for Storyweave.

Supports Anthropic, OpenAI, and Google Gemini with a shared text-generation
interface. Provider SDKs are synchronous; ``agenerate`` runs them in a worker
thread so Layer 2 can await them. The per-request ``timeout`` is handed to
the SDK; callers that need a hard bound wrap ``agenerate`` themselves.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from .config import LLMConfig

logger = logging.getLogger("storyweave.common.llm_client")


def _connect_anthropic(api_key: str) -> Any:
    import anthropic

    return anthropic.Anthropic(api_key=api_key)


def _connect_openai(api_key: str) -> Any:
    from openai import OpenAI

    return OpenAI(api_key=api_key)


def _connect_google(api_key: str) -> Any:
    import google.generativeai as genai

    genai.configure(api_key=api_key)
    return genai


_CONNECTORS = {
    "anthropic": (_connect_anthropic, "anthropic"),
    "openai": (_connect_openai, "openai"),
    "google": (_connect_google, "google-generativeai"),
}


class LLMClient:
    """Unified text generation client across LLM providers."""

    def __init__(
        self,
        provider: str = "anthropic",
        model: str = "",
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
    ) -> None:
        self.provider = (provider or "anthropic").lower()
        self.model = model
        self._client = None

        if self.provider == "auto":
            raise ValueError(
                '"auto" provider must be resolved before creating LLMClient. '
                'Set llm.provider to anthropic, openai or google.'
            )

        if self.provider not in _CONNECTORS:
            logger.warning("Unsupported LLM provider: %s", self.provider)
            return

        keys: Dict[str, Optional[str]] = {
            "anthropic": anthropic_api_key,
            "openai": openai_api_key,
            "google": google_api_key,
        }
        api_key = keys[self.provider]
        if not api_key:
            logger.info("%s API key not provided, LLM client unavailable", self.provider)
            return

        connect, package = _CONNECTORS[self.provider]
        try:
            self._client = connect(api_key)
        except ImportError:
            logger.warning("%s package not installed", package)
        except Exception as e:
            logger.warning("Failed to initialize %s client: %s", self.provider, e)

    @classmethod
    def from_config(cls, config: LLMConfig) -> "LLMClient":
        """Build a client for the provider selected in ``config``."""
        return cls(
            provider=config.provider,
            model=config.model,
            anthropic_api_key=config.anthropic_api_key or None,
            openai_api_key=config.openai_api_key or None,
            google_api_key=config.google_api_key or None,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 512,
        timeout: float = 30.0,
    ) -> str:
        """Single-turn completion; returns the stripped response text."""
        if not self.is_available:
            raise RuntimeError("LLM client is not available")

        if self.provider == "anthropic":
            return self._generate_anthropic(prompt, system, max_tokens, timeout)
        if self.provider == "openai":
            return self._generate_openai(prompt, system, max_tokens, timeout)
        if self.provider == "google":
            return self._generate_google(prompt, system, max_tokens, timeout)
        raise RuntimeError(f"Unsupported LLM provider: {self.provider}")

    def _generate_anthropic(self, prompt, system, max_tokens, timeout) -> str:
        extra = {"system": system} if system else {}
        response = self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
            timeout=timeout,
            **extra,
        )
        return response.content[0].text.strip()

    def _generate_openai(self, prompt, system, max_tokens, timeout) -> str:
        messages = [{"role": "system", "content": system}] if system else []
        messages.append({"role": "user", "content": prompt})
        response = self._client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=messages,
            timeout=timeout,
        )
        return (response.choices[0].message.content or "").strip()

    def _generate_google(self, prompt, system, max_tokens, timeout) -> str:
        # The system prompt is bound to the model object, not to the request
        model = self._client.GenerativeModel(model_name=self.model, system_instruction=system)
        response = model.generate_content(
            prompt,
            generation_config={"max_output_tokens": max_tokens},
            request_options={"timeout": timeout},
        )
        return response.text.strip()

    async def agenerate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 512,
        timeout: float = 30.0,
    ) -> str:
        """Run ``generate`` in a worker thread.

        ``timeout`` is the SDK request timeout; this coroutine adds no
        deadline of its own.
        """
        return await asyncio.to_thread(
            self.generate,
            prompt,
            system=system,
            max_tokens=max_tokens,
            timeout=timeout,
        )
