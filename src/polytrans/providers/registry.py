"""
Provider registry mapping provider identifiers to adapter classes.
"""

from typing import Dict, List, Optional, Type, Union

import structlog

from ..exceptions import UnsupportedProviderError
from ..utils.http_client import HTTPClient
from .base import ANALYSIS_TIMEOUT, TRANSLATION_TIMEOUT, BaseProvider, ProviderConfig, ProviderType
from .gemini_provider import GeminiProvider
from .openai_provider import CerebrasProvider, GrokProvider, GroqProvider, OpenAIProvider

logger = structlog.get_logger(__name__)


class ProviderRegistry:
    """
    Registry for vendor adapters.

    New vendors are added by registering a BaseProvider subclass; nothing
    outside the adapter layer branches on vendor identity.
    """

    def __init__(self, include_defaults: bool = True):
        """
        Initialize provider registry.

        Args:
            include_defaults: Register the built-in adapters
        """
        self._providers: Dict[ProviderType, Type[BaseProvider]] = {}
        if include_defaults:
            self._initialize_default_providers()

    def _initialize_default_providers(self) -> None:
        for provider_cls in (
            OpenAIProvider,
            GroqProvider,
            CerebrasProvider,
            GrokProvider,
            GeminiProvider,
        ):
            self.register(provider_cls.provider_type, provider_cls)

    def register(self, provider_type: ProviderType, provider_cls: Type[BaseProvider]) -> None:
        """
        Register an adapter class, replacing any previous one for the type.

        Args:
            provider_type: Provider identifier
            provider_cls: Adapter class
        """
        self._providers[provider_type] = provider_cls

    def is_registered(self, provider: Union[ProviderType, str]) -> bool:
        try:
            return self._resolve(provider) in self._providers
        except UnsupportedProviderError:
            return False

    def default_model(self, provider: Union[ProviderType, str]) -> str:
        provider_type = self._resolve(provider)
        if provider_type not in self._providers:
            raise UnsupportedProviderError(provider_type.value)
        return self._providers[provider_type].default_model

    def list_providers(self) -> List[Dict[str, str]]:
        """List registered providers with their default models."""
        return [
            {
                "name": provider_type.value,
                "display_name": provider_cls.display_name,
                "default_model": provider_cls.default_model,
            }
            for provider_type, provider_cls in self._providers.items()
        ]

    def create(
        self,
        config: ProviderConfig,
        http_client: HTTPClient,
        translation_timeout: float = TRANSLATION_TIMEOUT,
        analysis_timeout: float = ANALYSIS_TIMEOUT,
    ) -> BaseProvider:
        """
        Instantiate the adapter for ``config.provider``.

        Args:
            config: Per-call provider configuration
            http_client: Shared HTTP client
            translation_timeout: Seconds allowed for translation calls
            analysis_timeout: Seconds allowed for analysis calls

        Returns:
            Adapter instance

        Raises:
            UnsupportedProviderError: No adapter registered for the provider
        """
        provider_cls = self._providers.get(config.provider)
        if provider_cls is None:
            raise UnsupportedProviderError(config.provider.value)

        logger.debug(
            "Creating provider",
            provider=config.provider.value,
            model=config.model or provider_cls.default_model,
        )
        return provider_cls(
            config,
            http_client,
            translation_timeout=translation_timeout,
            analysis_timeout=analysis_timeout,
        )

    @staticmethod
    def _resolve(provider: Union[ProviderType, str]) -> ProviderType:
        if isinstance(provider, ProviderType):
            return provider
        try:
            return ProviderType(provider)
        except ValueError:
            raise UnsupportedProviderError(str(provider))


_default_registry: Optional[ProviderRegistry] = None


def get_default_registry() -> ProviderRegistry:
    """Registry with the built-in adapters, created on first use."""
    global _default_registry
    if _default_registry is None:
        _default_registry = ProviderRegistry()
    return _default_registry


def parse_provider(provider: Union[ProviderType, str]) -> ProviderType:
    """
    Resolve a provider identifier.

    Raises:
        UnsupportedProviderError: Unknown identifier
    """
    return ProviderRegistry._resolve(provider)
