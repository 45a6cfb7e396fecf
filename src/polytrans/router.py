"""
Fallback router.

Executes a routing plan step by step: the first success wins, congestion
(429/503) moves on to the next step, every other error is raised as is.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, Mapping, Optional, Tuple, TypeVar, Union

import structlog

from .cancellation import CancellationToken
from .exceptions import NoUsableConfigurationError, ProviderError
from .languages import AUTO_EXPLANATION_LANGUAGE, resolve_explanation_language
from .models import AnalysisKind, TranslationRequest, TranslationResult
from .providers.base import (
    ANALYSIS_TIMEOUT,
    DEFAULT_TEMPERATURE,
    TRANSLATION_TIMEOUT,
    BaseProvider,
    ProviderConfig,
    ProviderType,
)
from .providers.registry import ProviderRegistry, get_default_registry, parse_provider
from .utils.http_client import HTTPClient

logger = structlog.get_logger(__name__)

T = TypeVar("T")

MAX_ROUTING_STEPS = 5


@dataclass(frozen=True)
class RoutingStep:
    """One (provider, model) entry of a routing plan. ``model=None`` uses the provider default."""
    provider: ProviderType
    model: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "provider", parse_provider(self.provider))


@dataclass(frozen=True)
class RoutingPlan:
    """Ordered sequence of up to five routing steps."""
    steps: Tuple[RoutingStep, ...]

    def __post_init__(self):
        steps = tuple(self.steps)
        if len(steps) > MAX_ROUTING_STEPS:
            raise ValueError(f"A routing plan holds at most {MAX_ROUTING_STEPS} steps, got {len(steps)}")
        object.__setattr__(self, "steps", steps)

    @classmethod
    def of(cls, *steps: Union[RoutingStep, Tuple[str, Optional[str]], str]) -> "RoutingPlan":
        """Build a plan from steps, ``(provider, model)`` pairs or bare provider names."""
        built = []
        for step in steps:
            if isinstance(step, RoutingStep):
                built.append(step)
            elif isinstance(step, (tuple, list)):
                built.append(RoutingStep(*step))
            else:
                built.append(RoutingStep(step))
        return cls(tuple(built))

    def __len__(self) -> int:
        return len(self.steps)

    def effective_steps(self, depth: int) -> Tuple[RoutingStep, ...]:
        """
        Steps that are actually executed for ``depth``.

        Args:
            depth: Routing depth, 1..5; clamped to the plan length

        Returns:
            The first ``depth`` steps
        """
        if not 1 <= depth <= MAX_ROUTING_STEPS:
            raise ValueError(f"Routing depth must be between 1 and {MAX_ROUTING_STEPS}, got {depth}")
        return self.steps[:depth]


@dataclass(frozen=True)
class LanguagePair:
    source: str
    target: str
    explanation: str = AUTO_EXPLANATION_LANGUAGE

    @property
    def explanation_language(self) -> str:
        return resolve_explanation_language(self.explanation, self.target)


@dataclass
class RouteOutcome(Generic[T]):
    """Result plus the provider and model that actually produced it."""
    result: T
    provider_used: ProviderType
    model_used: str


FallbackCallback = Callable[[RoutingStep, ProviderError], None]


class Router:
    """
    Executes routing plans against the vendor adapters.

    All configuration is passed in explicitly; the router holds no state
    between calls and every call starts again from step 0.
    """

    def __init__(
        self,
        api_keys: Mapping[Union[ProviderType, str], str],
        http_client: HTTPClient,
        temperature: float = DEFAULT_TEMPERATURE,
        endpoint_overrides: Optional[Mapping[Union[ProviderType, str], str]] = None,
        registry: Optional[ProviderRegistry] = None,
        translation_timeout: float = TRANSLATION_TIMEOUT,
        analysis_timeout: float = ANALYSIS_TIMEOUT,
        on_fallback: Optional[FallbackCallback] = None,
    ):
        """
        Initialize router.

        Args:
            api_keys: Read-only provider -> API key mapping; empty keys mean "not configured"
            http_client: Shared HTTP client
            temperature: Sampling temperature passed to every adapter
            endpoint_overrides: Provider -> custom endpoint URL
            registry: Adapter registry (defaults to the built-in adapters)
            translation_timeout: Seconds allowed per translation call
            analysis_timeout: Seconds allowed per analysis call
            on_fallback: Called with the step and error whenever congestion triggers a fallback
        """
        self.http_client = http_client
        self.temperature = temperature
        self.registry = registry or get_default_registry()
        self.translation_timeout = translation_timeout
        self.analysis_timeout = analysis_timeout
        self.on_fallback = on_fallback
        self._api_keys: Dict[ProviderType, str] = _by_provider(api_keys)
        self._endpoint_overrides: Dict[ProviderType, str] = _by_provider(endpoint_overrides or {})

    def api_key_for(self, provider: ProviderType) -> str:
        return (self._api_keys.get(provider) or "").strip()

    def provider_config_for(self, step: RoutingStep) -> ProviderConfig:
        return ProviderConfig(
            provider=step.provider,
            api_key=self.api_key_for(step.provider),
            model=step.model,
            custom_endpoint=self._endpoint_overrides.get(step.provider),
            temperature=self.temperature,
        )

    def create_provider(self, config: ProviderConfig) -> BaseProvider:
        return self.registry.create(
            config,
            self.http_client,
            translation_timeout=self.translation_timeout,
            analysis_timeout=self.analysis_timeout,
        )

    async def route_translate(
        self,
        request: TranslationRequest,
        plan: RoutingPlan,
        depth: int,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RouteOutcome[TranslationResult]:
        """
        Translate ``request.text`` with fallback.

        Args:
            request: Translation request
            plan: Routing plan
            depth: Number of plan steps that may be tried
            cancel_token: Caller's cancellation token

        Returns:
            RouteOutcome with the translation and the provider/model used
        """

        async def action(provider: BaseProvider) -> TranslationResult:
            translation = await provider.translate_text(
                request.text,
                request.source_language,
                request.target_language,
                cancel_token=cancel_token,
            )
            return TranslationResult(translation=translation)

        return await self._route(plan, depth, cancel_token, action, operation="translate")

    async def route_analyze(
        self,
        source_text: str,
        translated_text: str,
        languages: LanguagePair,
        analysis_kind: AnalysisKind,
        plan: RoutingPlan,
        depth: int,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RouteOutcome[TranslationResult]:
        """
        Analyze a translation with fallback.

        Args:
            source_text: Original text
            translated_text: Its translation
            languages: Source, target and explanation languages
            analysis_kind: Vocabulary, grammar or nuance
            plan: Routing plan
            depth: Number of plan steps that may be tried
            cancel_token: Caller's cancellation token

        Returns:
            RouteOutcome with the partial analysis and the provider/model used
        """

        async def action(provider: BaseProvider) -> TranslationResult:
            return await provider.analyze(
                source_text,
                translated_text,
                languages.source,
                languages.target,
                languages.explanation_language,
                analysis_kind,
                cancel_token=cancel_token,
            )

        return await self._route(plan, depth, cancel_token, action, operation=f"analyze:{analysis_kind.value}")

    async def _route(
        self,
        plan: RoutingPlan,
        depth: int,
        cancel_token: Optional[CancellationToken],
        action: Callable[[BaseProvider], Awaitable[T]],
        operation: str,
    ) -> RouteOutcome[T]:
        eligible = [step for step in plan.effective_steps(depth) if self.api_key_for(step.provider)]
        if not eligible:
            raise NoUsableConfigurationError()

        for index, step in enumerate(eligible):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            provider = self.create_provider(self.provider_config_for(step))
            is_last = index == len(eligible) - 1

            try:
                result = await action(provider)
            except ProviderError as e:
                if e.is_congestion and not is_last:
                    logger.warning(
                        "Provider congested, falling back",
                        operation=operation,
                        step=index,
                        provider=step.provider.value,
                        model=provider.model,
                        status_code=e.status_code,
                    )
                    if self.on_fallback is not None:
                        self.on_fallback(step, e)
                    continue
                logger.error(
                    "Routing step failed",
                    operation=operation,
                    step=index,
                    provider=step.provider.value,
                    model=provider.model,
                    status_code=e.status_code,
                    error=e.message,
                )
                raise

            logger.info(
                "Routing step succeeded",
                operation=operation,
                step=index,
                provider=step.provider.value,
                model=provider.model,
            )
            return RouteOutcome(result=result, provider_used=step.provider, model_used=provider.model)

        # Unreachable: the last eligible step either returns or raises
        raise NoUsableConfigurationError()


def _by_provider(mapping: Mapping[Union[ProviderType, str], str]) -> Dict[ProviderType, str]:
    return {parse_provider(provider): value for provider, value in mapping.items() if value}
