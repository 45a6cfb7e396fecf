"""API routes for polytrans.
"""

from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from ..cancellation import CancellationToken
from ..languages import AUTO_EXPLANATION_LANGUAGE
from ..models import AnalysisKind, TaskKind, TranslationRequest, TranslationResult
from ..providers.base import ProviderType
from ..router import MAX_ROUTING_STEPS, RouteOutcome
from ..service import TranslationService

router = APIRouter()

T = TypeVar("T")


class TranslateBody(BaseModel):
    """Single-step translate request."""
    text: str = Field(min_length=1)
    source_language: str
    target_language: str
    task: TaskKind = TaskKind.TRANSLATE
    analysis: Optional[AnalysisKind] = None
    explanation_language: str = AUTO_EXPLANATION_LANGUAGE
    provider: Optional[ProviderType] = None
    model: Optional[str] = None
    slot: Optional[str] = None


class RouteTranslateBody(BaseModel):
    text: str = Field(min_length=1)
    source_language: str
    target_language: str
    depth: Optional[int] = Field(default=None, ge=1, le=MAX_ROUTING_STEPS)
    slot: Optional[str] = None


class RouteAnalyzeBody(BaseModel):
    source_text: str = Field(min_length=1)
    translated_text: str = Field(min_length=1)
    source_language: str
    target_language: str
    explanation_language: Optional[str] = None
    analysis: AnalysisKind
    depth: Optional[int] = Field(default=None, ge=1, le=MAX_ROUTING_STEPS)
    slot: Optional[str] = None


# Dependency injection functions
async def get_translation_service(request: Request) -> TranslationService:
    """Get translation service from app state."""
    return request.app.state.translation_service


async def _run(
    service: TranslationService,
    slot: Optional[str],
    operation: Callable[[CancellationToken], Awaitable[T]],
) -> T:
    if slot:
        return await service.run_in_slot(slot, operation)
    return await operation(CancellationToken())


def _build_request(**kwargs: Any) -> TranslationRequest:
    try:
        return TranslationRequest(**kwargs)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _outcome_to_dict(outcome: RouteOutcome[TranslationResult]) -> Dict[str, Any]:
    return {
        "result": outcome.result.to_dict(),
        "provider_used": outcome.provider_used.value,
        "model_used": outcome.model_used,
    }


@router.post("/translate")
async def translate(
    body: TranslateBody,
    service: TranslationService = Depends(get_translation_service),
):
    """
    Translate with a single provider (the configured primary one unless given).

    ``task=analyze`` additionally runs the requested analysis on the same provider.
    """
    request = _build_request(
        text=body.text,
        source_language=body.source_language,
        target_language=body.target_language,
        task=body.task,
        analysis=body.analysis,
        explanation_language=body.explanation_language,
    )
    provider = body.provider or service.config.primary_provider

    result = await _run(
        service,
        body.slot,
        lambda token: service.translate(request, provider=provider, model=body.model, cancel_token=token),
    )
    return {
        "result": result.to_dict(),
        "provider_used": provider.value,
        "model_used": body.model or service.registry.default_model(provider),
    }


@router.post("/route/translate")
async def route_translate(
    body: RouteTranslateBody,
    service: TranslationService = Depends(get_translation_service),
):
    """Translate following the configured routing plan."""
    request = _build_request(
        text=body.text,
        source_language=body.source_language,
        target_language=body.target_language,
    )
    outcome = await _run(
        service,
        body.slot,
        lambda token: service.route_translate(request, cancel_token=token, depth=body.depth),
    )
    return _outcome_to_dict(outcome)


@router.post("/route/analyze")
async def route_analyze(
    body: RouteAnalyzeBody,
    service: TranslationService = Depends(get_translation_service),
):
    """Analyze a translation following the configured routing plan."""
    languages = service.languages(body.source_language, body.target_language, body.explanation_language)
    outcome = await _run(
        service,
        body.slot,
        lambda token: service.route_analyze(
            body.source_text,
            body.translated_text,
            languages,
            body.analysis,
            cancel_token=token,
            depth=body.depth,
        ),
    )
    return _outcome_to_dict(outcome)


@router.delete("/slots/{slot}")
async def cancel_slot(
    slot: str,
    service: TranslationService = Depends(get_translation_service),
):
    """Cancel the in-flight operation of a slot."""
    return {"slot": slot, "cancelled": service.cancel_slot(slot)}


@router.get("/providers")
async def list_providers(
    service: TranslationService = Depends(get_translation_service),
):
    """List supported providers and whether a key is configured for each."""
    configured = set(service.config.api_keys.configured())
    providers = []
    for info in service.registry.list_providers():
        providers.append({**info, "configured": info["name"] in configured})
    return {
        "object": "list",
        "data": providers,
        "routing": {
            "steps": [
                {"provider": step.provider.value, "model": step.model}
                for step in service.config.routing_plan().steps
            ],
            "depth": service.config.routing_depth(),
        },
    }
