"""
polytrans: vendor-independent translation with provider fallback.
"""

from .cancellation import CancellationSlot, CancellationToken, run_cancellable
from .exceptions import (
    NoUsableConfigurationError,
    PolytransError,
    ProviderError,
    RequestAbortedError,
    RequestTimeoutError,
    UnsupportedProviderError,
)
from .models import AnalysisKind, TaskKind, TranslationRequest, TranslationResult
from .normalizer import normalize
from .providers import ProviderConfig, ProviderRegistry, ProviderType
from .router import LanguagePair, RouteOutcome, Router, RoutingPlan, RoutingStep
from .service import TranslationService, translate

__version__ = "0.1.0"

__all__ = [
    "AnalysisKind",
    "CancellationSlot",
    "CancellationToken",
    "LanguagePair",
    "NoUsableConfigurationError",
    "PolytransError",
    "ProviderConfig",
    "ProviderError",
    "ProviderRegistry",
    "ProviderType",
    "RequestAbortedError",
    "RequestTimeoutError",
    "RouteOutcome",
    "Router",
    "RoutingPlan",
    "RoutingStep",
    "TaskKind",
    "TranslationRequest",
    "TranslationResult",
    "TranslationService",
    "UnsupportedProviderError",
    "normalize",
    "run_cancellable",
    "translate",
]
