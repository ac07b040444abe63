"""
Pluggable LLM runtime abstraction for the PRD QA pipeline.

Provides a unified interface over OpenAI-compatible chat completion services
(hosted or local) that accept multimodal content parts, plus a mock runtime
for tests.
"""

from __future__ import annotations
from typing import Optional, Dict, Any, List, Protocol, Sequence, Union, Callable
import logging

import requests
from openai import OpenAI

from .config import Settings
from .exceptions import LLMRuntimeError, ConfigurationError
from .prompt import PromptPart, TextPart, InlineDataPart

logger = logging.getLogger(__name__)


class LLMRuntime(Protocol):
    """Protocol for all LLM runtime implementations."""

    def generate(
        self,
        parts: Sequence[PromptPart],
        system_instruction: Optional[str] = None,
        temperature: float = 0.1,
        json_output: bool = False,
        **kwargs
    ) -> str:
        """Generate a text response from multimodal parts."""
        ...

    def is_available(self) -> bool:
        """Check if this runtime is currently available."""
        ...

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the current model."""
        ...


def to_chat_content(parts: Sequence[PromptPart]) -> List[Dict[str, Any]]:
    """Convert prompt parts to chat-completions user content parts."""
    content: List[Dict[str, Any]] = []
    for part in parts:
        if isinstance(part, TextPart):
            content.append({"type": "text", "text": part.text})
        elif isinstance(part, InlineDataPart):
            content.append({"type": "image_url", "image_url": {"url": part.data_url}})
        else:
            raise LLMRuntimeError(f"Unsupported prompt part: {type(part).__name__}")
    return content


class OpenAICompatibleRuntime:
    """
    Runtime for OpenAI-compatible chat completion APIs.
    Works with OpenAI and any compatible gateway or local server that accepts
    image_url content parts.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout: float = 120.0,
        max_tokens: int = 8192,
        name: str = "openai-compatible"
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.name = name
        self.client = OpenAI(base_url=base_url, api_key=api_key, timeout=timeout, max_retries=0)

    def generate(
        self,
        parts: Sequence[PromptPart],
        system_instruction: Optional[str] = None,
        temperature: float = 0.1,
        json_output: bool = False,
        **kwargs
    ) -> str:
        """Generate response using the chat completions API."""
        messages: List[Dict[str, Any]] = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": to_chat_content(parts)})

        if json_output:
            kwargs.setdefault("response_format", {"type": "json_object"})

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=kwargs.pop("max_tokens", self.max_tokens),
                **kwargs
            )
        except Exception as e:
            raise LLMRuntimeError(f"Failed to generate response from {self.name}: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if content is None:
            raise LLMRuntimeError(f"{self.name} returned an empty response")
        return content.strip()

    def is_available(self) -> bool:
        """Check if the service is reachable via its models endpoint."""
        try:
            response = requests.get(
                f"{self.base_url.rstrip('/')}/models",
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=5
            )
            return response.status_code == 200
        except requests.RequestException:
            return False

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "model": self.model,
            "base_url": self.base_url,
            "type": "openai-compatible"
        }


MockResponse = Union[str, Exception, Callable[[Sequence[PromptPart], Optional[str]], str]]


class MockLLMRuntime:
    """Mock runtime for testing - returns predefined responses."""

    def __init__(self, responses: Dict[str, MockResponse], default: str = "{}"):
        """
        Args:
            responses: Map from keywords (matched against the system instruction,
                then the text parts) to a response string, an exception to
                raise, or a callable producing the response
            default: Response when no keyword matches
        """
        self.responses = responses
        self.default = default
        self.calls: List[Dict[str, Any]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def generate(
        self,
        parts: Sequence[PromptPart],
        system_instruction: Optional[str] = None,
        temperature: float = 0.1,
        json_output: bool = False,
        **kwargs
    ) -> str:
        """Return mock response based on prompt content."""
        prompt_text = "\n".join(p.text for p in parts if isinstance(p, TextPart))
        self.calls.append({
            "parts": list(parts),
            "system_instruction": system_instruction,
            "temperature": temperature,
            "json_output": json_output,
            "prompt_text": prompt_text,
        })

        for haystack in ((system_instruction or "").lower(), prompt_text.lower()):
            for keyword, response in self.responses.items():
                if keyword.lower() in haystack:
                    if isinstance(response, Exception):
                        raise response
                    if callable(response):
                        return response(parts, system_instruction)
                    return response

        return self.default

    def is_available(self) -> bool:
        return True

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "name": "mock",
            "type": "mock",
            "responses_count": len(self.responses)
        }


def create_runtime(settings: Settings) -> LLMRuntime:
    """Create the OpenAI-compatible runtime described by settings."""
    api_key = settings.require_api_key()
    if not settings.model:
        raise ConfigurationError("A model name is required")

    runtime = OpenAICompatibleRuntime(
        base_url=settings.base_url,
        api_key=api_key,
        model=settings.model,
        timeout=settings.timeout,
        max_tokens=settings.max_tokens,
    )
    logger.info(f"Using runtime: {runtime.name} ({settings.model} @ {settings.base_url})")
    return runtime
