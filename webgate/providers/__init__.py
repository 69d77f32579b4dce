"""
Providers
=========

- GeminiWebProvider: cookie-authenticated Gemini web app
- OpenAIWebProvider: hosted OpenAI-compatible API
- ProviderRegistry: probing and primary provider resolution
"""

from .base import ProviderChatSession, ProviderOutput, WebModelProvider
from .gemini_web import GeminiWebProvider
from .openai_web import OpenAIWebProvider
from .registry import ProviderRegistry, ProviderStatus, create_provider_registry

__all__ = [
    "ProviderChatSession",
    "ProviderOutput",
    "WebModelProvider",
    "GeminiWebProvider",
    "OpenAIWebProvider",
    "ProviderRegistry",
    "ProviderStatus",
    "create_provider_registry",
]
