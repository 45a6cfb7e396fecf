"""
Service facade: the single-step ``translate`` API and a configuration-backed
wrapper around the router.
"""

from typing import Awaitable, Callable, Dict, Optional, TypeVar

import structlog

from .cancellation import CancellationSlot, CancellationToken
from .config import AppConfig
from .exceptions import NoUsableConfigurationError, ProviderError
from .languages import resolve_explanation_language
from .models import AnalysisKind, TaskKind, TranslationRequest, TranslationResult
from .providers.base import ANALYSIS_TIMEOUT, TRANSLATION_TIMEOUT, ProviderConfig, ProviderType
from .providers.registry import ProviderRegistry, get_default_registry, parse_provider
from .router import LanguagePair, RouteOutcome, Router, RoutingPlan, RoutingStep
from .utils.http_client import HTTPClient, create_http_client

logger = structlog.get_logger(__name__)

T = TypeVar("T")


async def translate(
    request: TranslationRequest,
    provider_config: ProviderConfig,
    *,
    http_client: Optional[HTTPClient] = None,
    cancel_token: Optional[CancellationToken] = None,
    registry: Optional[ProviderRegistry] = None,
    translation_timeout: float = TRANSLATION_TIMEOUT,
    analysis_timeout: float = ANALYSIS_TIMEOUT,
) -> TranslationResult:
    """
    Translate with a single provider, no fallback.

    An ANALYZE request translates first and then runs the requested analysis
    on the same provider, so it costs two requests under one token.

    Args:
        request: The request
        provider_config: Provider, key, model, endpoint and temperature
        http_client: Shared client; a private one is created and closed otherwise
        cancel_token: Caller's cancellation token
        registry: Adapter registry (defaults to the built-in adapters)
        translation_timeout: Seconds allowed for the translation call
        analysis_timeout: Seconds allowed for the analysis call

    Returns:
        TranslationResult

    Raises:
        NoUsableConfigurationError: The config has no API key
        ProviderError: The vendor call failed
        RequestAbortedError: The token was cancelled
    """
    if not provider_config.api_key.strip():
        raise NoUsableConfigurationError(
            f"No API key is configured for {provider_config.provider.value}."
        )

    client = http_client or HTTPClient(timeout=analysis_timeout)
    try:
        provider = (registry or get_default_registry()).create(
            provider_config,
            client,
            translation_timeout=translation_timeout,
            analysis_timeout=analysis_timeout,
        )

        translation = await provider.translate_text(
            request.text,
            request.source_language,
            request.target_language,
            cancel_token=cancel_token,
        )
        result = TranslationResult(translation=translation)

        if request.task is TaskKind.ANALYZE:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            analysis = await provider.analyze(
                request.text,
                translation,
                request.source_language,
                request.target_language,
                resolve_explanation_language(request.explanation_language, request.target_language),
                request.analysis,
                cancel_token=cancel_token,
            )
            result = result.merge(analysis)

        return result
    finally:
        if http_client is None:
            await client.aclose()


class TranslationService:
    """
    Binds the core to application configuration.

    Keys, plan, depth, temperature and timeouts are read from ``AppConfig``
    once; every call gets its own adapters and cancellation token.
    """

    def __init__(
        self,
        config: AppConfig,
        http_client: Optional[HTTPClient] = None,
        registry: Optional[ProviderRegistry] = None,
    ):
        """
        Initialize translation service.

        Args:
            config: Application configuration
            http_client: Shared HTTP client (created from config if omitted)
            registry: Adapter registry
        """
        self.config = config
        self.http_client = http_client or create_http_client(config)
        self.registry = registry or get_default_registry()
        self.router = Router(
            api_keys=config.api_keys.as_mapping(),
            http_client=self.http_client,
            temperature=config.temperature,
            endpoint_overrides=config.endpoint_overrides(),
            registry=self.registry,
            translation_timeout=config.translation_timeout,
            analysis_timeout=config.analysis_timeout,
            on_fallback=self._on_fallback,
        )
        self._slots: Dict[str, CancellationSlot] = {}

    def _on_fallback(self, step: RoutingStep, error: ProviderError) -> None:
        logger.info(
            "Provider is congested, trying the next routing step",
            provider=step.provider.value,
            status_code=error.status_code,
        )

    def slot(self, name: str) -> CancellationSlot:
        """Named cancellation slot, created on first use."""
        if name not in self._slots:
            self._slots[name] = CancellationSlot(name)
        return self._slots[name]

    def cancel_slot(self, name: str) -> bool:
        """Cancel the in-flight operation of ``name``. Returns False if nothing was running."""
        slot = self._slots.get(name)
        return slot.cancel() if slot is not None else False

    async def run_in_slot(
        self,
        name: str,
        operation: Callable[[CancellationToken], Awaitable[T]],
    ) -> T:
        """
        Run ``operation`` with a fresh token from slot ``name``.

        Starting an operation supersedes (cancels) the slot's previous one.
        """
        slot = self.slot(name)
        token = slot.begin()
        try:
            return await operation(token)
        finally:
            slot.release(token)

    def provider_config(
        self,
        provider: Optional[ProviderType] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> ProviderConfig:
        """Build a ProviderConfig from the configured keys for a single-step call."""
        provider = parse_provider(provider) if provider is not None else self.config.primary_provider
        return ProviderConfig(
            provider=provider,
            api_key=getattr(self.config.api_keys, provider.value),
            model=model,
            custom_endpoint=self.config.endpoint_overrides().get(provider),
            temperature=self.config.temperature if temperature is None else temperature,
        )

    async def translate(
        self,
        request: TranslationRequest,
        provider: Optional[ProviderType] = None,
        model: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> TranslationResult:
        return await translate(
            request,
            self.provider_config(provider, model),
            http_client=self.http_client,
            cancel_token=cancel_token,
            registry=self.registry,
            translation_timeout=self.config.translation_timeout,
            analysis_timeout=self.config.analysis_timeout,
        )

    async def route_translate(
        self,
        request: TranslationRequest,
        cancel_token: Optional[CancellationToken] = None,
        plan: Optional[RoutingPlan] = None,
        depth: Optional[int] = None,
    ) -> RouteOutcome[TranslationResult]:
        return await self.router.route_translate(
            request,
            plan or self.config.routing_plan(),
            depth or self.config.routing_depth(),
            cancel_token,
        )

    async def route_analyze(
        self,
        source_text: str,
        translated_text: str,
        languages: LanguagePair,
        analysis_kind: AnalysisKind,
        cancel_token: Optional[CancellationToken] = None,
        plan: Optional[RoutingPlan] = None,
        depth: Optional[int] = None,
    ) -> RouteOutcome[TranslationResult]:
        return await self.router.route_analyze(
            source_text,
            translated_text,
            languages,
            analysis_kind,
            plan or self.config.routing_plan(),
            depth or self.config.routing_depth(),
            cancel_token,
        )

    def languages(self, source: str, target: str, explanation: Optional[str] = None) -> LanguagePair:
        return LanguagePair(source, target, explanation or self.config.explanation_language)

    async def aclose(self) -> None:
        for slot in self._slots.values():
            slot.cancel("service shutting down")
        await self.http_client.aclose()
