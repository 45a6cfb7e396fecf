"""
Provider module for polytrans.
Vendor adapters and the registry that instantiates them.
"""

from .base import BaseProvider, ProviderConfig, ProviderType, mask_api_key
from .gemini_provider import GeminiProvider
from .openai_provider import (
    CerebrasProvider,
    GrokProvider,
    GroqProvider,
    OpenAICompatibleProvider,
    OpenAIProvider,
)
from .registry import ProviderRegistry, get_default_registry, parse_provider

__all__ = [
    "BaseProvider",
    "ProviderConfig",
    "ProviderType",
    "mask_api_key",
    "GeminiProvider",
    "OpenAICompatibleProvider",
    "OpenAIProvider",
    "GroqProvider",
    "CerebrasProvider",
    "GrokProvider",
    "ProviderRegistry",
    "get_default_registry",
    "parse_provider",
]
