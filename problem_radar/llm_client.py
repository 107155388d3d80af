"""LLM client for Problem Radar.

Talks to OpenAI-compatible chat completion APIs (OpenAI, DeepSeek) and
returns either raw text or a parsed JSON object.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

try:
    from openai import OpenAI
    HAS_OPENAI = True
except ImportError:
    HAS_OPENAI = False
    OpenAI = None

from problem_radar.config import get_config

logger = logging.getLogger(__name__)

# API endpoints for different providers
PROVIDER_ENDPOINTS = {
    "openai": "https://api.openai.com/v1",
    "deepseek": "https://api.deepseek.com",
}

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


@dataclass
class LLMResponse:
    """Response from LLM API."""
    content: str
    model: str
    provider: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class LLMClientError(Exception):
    """Base exception for LLM client errors."""
    pass


class APIKeyError(LLMClientError):
    """Raised when API key is missing or invalid."""
    pass


def extract_json_segment(content: str | None) -> str:
    """Pull the JSON object out of a model reply.

    Handles fenced ```json blocks and prose around a bare object.

    Raises:
        LLMClientError: If the reply is empty or holds no JSON text.
    """
    if not content or not content.strip():
        raise LLMClientError("Empty response from LLM")

    text = content.strip()
    fenced = _FENCED_JSON.search(text)
    if fenced:
        text = fenced.group(1)

    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last >= first:
        text = text[first:last + 1]

    text = text.strip()
    if not text:
        raise LLMClientError("No JSON object found in LLM response")
    return text


def parse_json_response(content: str | None) -> dict[str, Any]:
    """Parse a model reply into a dict.

    Raises:
        LLMClientError: If the reply is not a JSON object.
    """
    json_text = extract_json_segment(content)
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError:
        raise LLMClientError(f"Invalid JSON from LLM: {json_text[:200]}")
    if not isinstance(data, dict):
        raise LLMClientError(f"Expected a JSON object from LLM, got {type(data).__name__}")
    return data


class LLMClient:
    """Chat completion client for OpenAI-compatible providers."""

    def __init__(
        self,
        provider: str = "openai",
        model: str = "gpt-4o-mini",
        api_key: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 500,
    ):
        """Initialize LLM client.

        Args:
            provider: LLM provider (openai, deepseek).
            model: Model to use.
            api_key: API key. If None, loads from config.
            temperature: Generation temperature.
            max_tokens: Maximum tokens to generate.

        Raises:
            ImportError: If openai library is not installed.
            APIKeyError: If API key is not configured.
            LLMClientError: If the provider is unknown.
        """
        if not HAS_OPENAI:
            raise ImportError(
                "openai library is required for LLM access. "
                "Install it with: pip install openai"
            )

        self.provider = provider
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

        if api_key is None:
            api_key = get_config().llm_credentials.get_key_for_provider(provider)

        if not api_key:
            raise APIKeyError(
                f"API key not configured for provider '{provider}'. "
                f"Set the appropriate environment variable."
            )

        base_url = PROVIDER_ENDPOINTS.get(provider)
        if base_url is None:
            raise LLMClientError(f"Unknown provider: {provider}")

        self._client = OpenAI(api_key=api_key, base_url=base_url)

    def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        """Generate a response from the LLM.

        Args:
            prompt: User prompt.
            system_prompt: Optional system prompt.
            temperature: Override default temperature.

        Returns:
            LLMResponse with generated content.

        Raises:
            LLMClientError: If generation fails.
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature if temperature is None else temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            raise LLMClientError(f"LLM generation failed: {e}")

        usage = response.usage
        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=self.model,
            provider=self.provider,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            total_tokens=usage.total_tokens if usage else 0,
        )

    def generate_json(self, prompt: str, system_prompt: str | None = None) -> dict[str, Any]:
        """Generate a response and parse it as a JSON object."""
        response = self.generate(prompt, system_prompt)
        logger.debug(f"[LLM] {self.model} used {response.total_tokens} tokens")
        return parse_json_response(response.content)


def get_llm_client(
    provider: str | None = None,
    model: str | None = None,
) -> LLMClient:
    """Get an LLM client configured from the global config.

    Args:
        provider: Optional provider override.
        model: Optional model override.

    Returns:
        Configured LLMClient.
    """
    config = get_config()

    return LLMClient(
        provider=provider or config.llm.provider,
        model=model or config.llm.model,
        temperature=config.llm.temperature,
        max_tokens=config.llm.max_tokens,
    )
