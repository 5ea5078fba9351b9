"""
ArtPulse AI Module
==================

Optional LLM-backed capabilities. Nothing in the core pipeline requires
an API key; these are enabled through configuration.

Components:
    - LLMClient: Anthropic / OpenAI client
    - VisualAnalyzer: Listing image metadata (non-critical side stage)
"""

from .llm_client import (
    LLMClient,
    LLMProvider,
    LLMResponse,
    AnthropicClient,
    OpenAIClient,
    get_llm_client,
    parse_json_content,
)
from .visual_analyzer import VisualAnalyzer, normalize_visual_metadata

__all__ = [
    "LLMClient",
    "LLMProvider",
    "LLMResponse",
    "AnthropicClient",
    "OpenAIClient",
    "get_llm_client",
    "parse_json_content",
    "VisualAnalyzer",
    "normalize_visual_metadata",
]
