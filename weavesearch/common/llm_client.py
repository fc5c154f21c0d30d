"""
Provider-agnostic LLM client for weavesearch.

Supports Google Gemini, OpenAI and Anthropic behind a single text-generation
interface. The enhancement stages only rely on "prompt in, text out".
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Callable, Dict, Optional, Protocol

from .config import LLMConfig

logger = logging.getLogger("weavesearch.common.llm_client")


class TextGenerator(Protocol):
    """Anything that turns a prompt into text."""

    @property
    def is_available(self) -> bool: ...

    def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 1024,
        timeout: float = 30.0,
    ) -> str: ...


def _anthropic_sdk(api_key: str) -> Any:
    import anthropic

    return anthropic.Anthropic(api_key=api_key)


def _openai_sdk(api_key: str) -> Any:
    from openai import OpenAI

    return OpenAI(api_key=api_key)


def _google_sdk(api_key: str) -> Any:
    import google.generativeai as genai

    genai.configure(api_key=api_key)
    return genai  # module; GenerativeModel instances are built per system prompt


# provider -> (SDK factory, pip distribution)
_SDKS: Dict[str, tuple] = {
    "google": (_google_sdk, "google-generativeai"),
    "openai": (_openai_sdk, "openai"),
    "anthropic": (_anthropic_sdk, "anthropic"),
}


class LLMClient:
    """
    Text generation over one provider SDK.

    An instance without a usable SDK client (missing key, missing package,
    unknown provider) is unavailable; generate() then raises RuntimeError.
    """

    def __init__(
        self,
        provider: str = "google",
        model: str = "",
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
    ) -> None:
        self.provider = (provider or "google").lower()
        self.model = model
        self._client: Any = None
        self._google_models: Dict[str, Any] = {}

        if self.provider not in _SDKS:
            logger.warning("Unsupported LLM provider: %s", self.provider)
            return

        api_key = {
            "anthropic": anthropic_api_key,
            "openai": openai_api_key,
            "google": google_api_key,
        }[self.provider]
        if not api_key:
            logger.info("%s API key not provided, LLM client unavailable", self.provider)
            return

        factory, package = _SDKS[self.provider]
        try:
            self._client = factory(api_key)
        except ImportError:
            logger.warning("%s package not installed", package)
        except Exception as e:
            logger.warning("Failed to initialize %s client: %s", self.provider, e)

    @classmethod
    def from_config(cls, config: LLMConfig) -> "LLMClient":
        return cls(
            provider=config.provider,
            model=config.active_model(),
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
        max_tokens: int = 1024,
        timeout: float = 30.0,
    ) -> str:
        """Blocking completion; callers on an event loop run it in an executor"""
        if not self.is_available:
            raise RuntimeError("LLM client is not available")

        handlers: Dict[str, Callable[..., str]] = {
            "anthropic": self._generate_anthropic,
            "openai": self._generate_openai,
            "google": self._generate_google,
        }
        handler = handlers.get(self.provider)
        if handler is None:
            raise RuntimeError(f"Unsupported LLM provider: {self.provider}")
        return handler(prompt, system, max_tokens, timeout).strip()

    def _generate_anthropic(self, prompt: str, system: Optional[str], max_tokens: int, timeout: float) -> str:
        extra = {"system": system} if system else {}
        response = self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
            timeout=timeout,
            **extra,
        )
        return response.content[0].text

    def _generate_openai(self, prompt: str, system: Optional[str], max_tokens: int, timeout: float) -> str:
        messages = [{"role": "user", "content": prompt}]
        if system:
            messages.insert(0, {"role": "system", "content": system})
        response = self._client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=messages,
            timeout=timeout,
        )
        return response.choices[0].message.content or ""

    def _generate_google(self, prompt: str, system: Optional[str], max_tokens: int, timeout: float) -> str:
        cache_key = hashlib.md5((system or "").encode()).hexdigest()
        model = self._google_models.get(cache_key)
        if model is None:
            options = {"model_name": self.model}
            if system:
                options["system_instruction"] = system
            model = self._google_models[cache_key] = self._client.GenerativeModel(**options)

        response = model.generate_content(
            prompt,
            generation_config={"max_output_tokens": max_tokens},
            request_options={"timeout": timeout},
        )
        return response.text
