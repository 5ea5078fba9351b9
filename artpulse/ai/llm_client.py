"""
ArtPulse LLM Client
===================

Thin synchronous client over the LLM providers.
Supports Claude (Anthropic) and OpenAI as fallback.

The LLM is only used for optional capabilities:
1. Enriching low-confidence title parses
2. Describing listing images (visual analysis side stage)

Usage:
    from artpulse.ai.llm_client import get_llm_client

    client = get_llm_client(settings.llm)
    data = client.generate_json("Extract ...", system="...")
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from ..data.config import LLMConfig

logger = logging.getLogger(__name__)

JSON_INSTRUCTIONS = (
    "Respond ONLY with valid JSON. "
    "No text before or after the JSON and no ``` markers."
)


class LLMProvider(Enum):
    """Supported LLM providers."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


@dataclass
class LLMResponse:
    """Response from an LLM."""
    content: str
    model: str
    provider: LLMProvider
    tokens_input: int
    tokens_output: int
    cost_usd: float

    @property
    def total_tokens(self) -> int:
        return self.tokens_input + self.tokens_output


def parse_json_content(content: str) -> Dict[str, Any]:
    """
    Decode a JSON object from raw model output, tolerating ``` fences.

    Raises:
        ValueError: If the content is not a JSON object
    """
    text = content.strip()
    if text.startswith("```"):
        text = text.split("```")[1]
        if text.startswith("json"):
            text = text[4:]
    try:
        data = json.loads(text.strip())
    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {e}\nContent: {content[:500]}")
        raise ValueError(f"LLM did not return valid JSON: {e}")
    if not isinstance(data, dict):
        raise ValueError("LLM returned JSON that is not an object")
    return data


class LLMClient(ABC):
    """Abstract LLM client."""

    model: str

    @abstractmethod
    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        image_url: Optional[str] = None,
    ) -> LLMResponse:
        """Generate a completion, optionally grounded on one image."""
        pass

    def generate_json(
        self,
        prompt: str,
        system: Optional[str] = None,
        schema: Optional[Dict[str, Any]] = None,
        image_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Generate a structured JSON object."""
        json_system = ((system or "") + "\n\n" + JSON_INSTRUCTIONS).strip()
        if schema:
            json_system += f"\n\nExpected schema:\n{json.dumps(schema, indent=2)}"

        response = self.generate(
            prompt=prompt,
            system=json_system,
            temperature=0.2,
            image_url=image_url,
        )
        return parse_json_content(response.content)


class AnthropicClient(LLMClient):
    """Client for Claude (Anthropic)."""

    # Pricing per 1M tokens (USD)
    PRICING = {
        "claude-sonnet-4-20250514": {"input": 3.0, "output": 15.0},
        "claude-3-5-haiku-20241022": {"input": 0.8, "output": 4.0},
    }

    def __init__(self, api_key: Optional[str] = None, model: str = "claude-3-5-haiku-20241022"):
        self.api_key = api_key
        self.model = model
        self._client = None

        if not self.api_key:
            logger.warning("ANTHROPIC_API_KEY not set - LLM features disabled")

    def _get_client(self):
        """Lazy init of the Anthropic client."""
        if self._client is None:
            try:
                import anthropic
            except ImportError:
                raise ImportError("pip install anthropic required")
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def _calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        pricing = self.PRICING.get(self.model, {"input": 3.0, "output": 15.0})
        cost = (input_tokens * pricing["input"] + output_tokens * pricing["output"]) / 1_000_000
        return round(cost, 6)

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        image_url: Optional[str] = None,
    ) -> LLMResponse:
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY required")

        client = self._get_client()

        content: List[Dict[str, Any]] = []
        if image_url:
            content.append({"type": "image", "source": {"type": "url", "url": image_url}})
        content.append({"type": "text", "text": prompt})

        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": content}],
            "temperature": temperature,
        }
        if system:
            kwargs["system"] = system

        response = client.messages.create(**kwargs)

        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens

        return LLMResponse(
            content=response.content[0].text,
            model=self.model,
            provider=LLMProvider.ANTHROPIC,
            tokens_input=input_tokens,
            tokens_output=output_tokens,
            cost_usd=self._calculate_cost(input_tokens, output_tokens),
        )


class OpenAIClient(LLMClient):
    """Client for OpenAI GPT, used when Anthropic is not configured."""

    PRICING = {
        "gpt-4o": {"input": 2.5, "output": 10.0},
        "gpt-4o-mini": {"input": 0.15, "output": 0.6},
    }

    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4o-mini"):
        self.api_key = api_key
        self.model = model
        self._client = None

    def _get_client(self):
        if self._client is None:
            try:
                import openai
            except ImportError:
                raise ImportError("pip install openai required")
            self._client = openai.OpenAI(api_key=self.api_key)
        return self._client

    def _calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        pricing = self.PRICING.get(self.model, {"input": 2.5, "output": 10.0})
        cost = (input_tokens * pricing["input"] + output_tokens * pricing["output"]) / 1_000_000
        return round(cost, 6)

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        image_url: Optional[str] = None,
    ) -> LLMResponse:
        if not self.api_key:
            raise ValueError("OPENAI_API_KEY required")

        client = self._get_client()

        messages: List[Dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        if image_url:
            messages.append({
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": image_url}},
                    {"type": "text", "text": prompt},
                ],
            })
        else:
            messages.append({"role": "user", "content": prompt})

        response = client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )

        input_tokens = response.usage.prompt_tokens
        output_tokens = response.usage.completion_tokens

        return LLMResponse(
            content=response.choices[0].message.content,
            model=self.model,
            provider=LLMProvider.OPENAI,
            tokens_input=input_tokens,
            tokens_output=output_tokens,
            cost_usd=self._calculate_cost(input_tokens, output_tokens),
        )


def get_llm_client(config: LLMConfig) -> LLMClient:
    """
    Build the client for the configured provider.

    Raises:
        ValueError: If the provider's API key is missing
    """
    if config.provider == "openai":
        if not config.openai_api_key:
            raise ValueError("LLM_PROVIDER=openai but OPENAI_API_KEY is not set")
        return OpenAIClient(api_key=config.openai_api_key, model=config.model or "gpt-4o-mini")

    if not config.anthropic_api_key:
        raise ValueError("LLM_PROVIDER=anthropic but ANTHROPIC_API_KEY is not set")
    return AnthropicClient(
        api_key=config.anthropic_api_key,
        model=config.model or "claude-3-5-haiku-20241022",
    )
