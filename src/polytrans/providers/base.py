"""
Base provider interface for AI translation vendors.
"""

import abc
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Optional

import httpx
import structlog

from ..cancellation import CancellationToken
from ..exceptions import ProviderError, RequestTimeoutError
from ..models import AnalysisKind, TranslationResult
from ..normalizer import normalize_analysis, normalize_translation
from ..prompts import build_analysis_input, build_analysis_prompt, build_translation_prompt
from ..utils.http_client import HTTPClient

logger = structlog.get_logger(__name__)

DEFAULT_TEMPERATURE = 0.7
TRANSLATION_TIMEOUT = 30.0
ANALYSIS_TIMEOUT = 60.0


class ProviderType(Enum):
    """Provider type enumeration."""
    OPENAI = "openai"
    GROQ = "groq"
    CEREBRAS = "cerebras"
    GROK = "grok"
    GEMINI = "gemini"


def mask_api_key(api_key: Optional[str]) -> str:
    """Show only the last four characters of a key."""
    if not api_key:
        return ""
    if len(api_key) <= 4:
        return "****"
    return f"****{api_key[-4:]}"


@dataclass(frozen=True)
class ProviderConfig:
    """Per-call provider configuration. Owned by the caller, never persisted."""
    provider: ProviderType
    api_key: str = field(repr=False)
    model: Optional[str] = None
    custom_endpoint: Optional[str] = None
    temperature: float = DEFAULT_TEMPERATURE

    def __post_init__(self):
        if not isinstance(self.provider, ProviderType):
            object.__setattr__(self, "provider", ProviderType(self.provider))
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"Temperature must be within [0, 2], got {self.temperature}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with the API key masked."""
        return {
            "provider": self.provider.value,
            "api_key": mask_api_key(self.api_key),
            "model": self.model,
            "custom_endpoint": self.custom_endpoint,
            "temperature": self.temperature,
        }


@dataclass
class ProviderRequest:
    """A vendor-specific HTTP request ready to be sent."""
    url: str
    body: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)
    params: Optional[Dict[str, str]] = None


class BaseProvider(abc.ABC):
    """
    Base class for all vendor adapters.

    Subclasses only describe their wire protocol (``_build_request`` and
    ``_extract_content``); authentication lives entirely inside them.
    Every operation is exactly one POST.
    """

    provider_type: ClassVar[ProviderType]
    display_name: ClassVar[str] = "Provider"
    default_model: ClassVar[str] = ""

    def __init__(
        self,
        config: ProviderConfig,
        http_client: HTTPClient,
        translation_timeout: float = TRANSLATION_TIMEOUT,
        analysis_timeout: float = ANALYSIS_TIMEOUT,
    ):
        """
        Initialize provider.

        Args:
            config: Provider configuration
            http_client: Shared HTTP client
            translation_timeout: Seconds allowed for a translation call
            analysis_timeout: Seconds allowed for an analysis call
        """
        self.config = config
        self.http_client = http_client
        self.translation_timeout = translation_timeout
        self.analysis_timeout = analysis_timeout

    @property
    def name(self) -> str:
        return self.provider_type.value

    @property
    def model(self) -> str:
        return self.config.model or self.default_model

    @abc.abstractmethod
    def _build_request(self, system_prompt: str, user_content: str, json_mode: bool) -> ProviderRequest:
        """
        Build the vendor request.

        Args:
            system_prompt: Instructions for the model
            user_content: Text to process
            json_mode: Whether structured JSON output is expected

        Returns:
            ProviderRequest
        """
        pass

    @abc.abstractmethod
    def _extract_content(self, data: Dict[str, Any]) -> Optional[str]:
        """Pull the generated text out of a successful response body."""
        pass

    async def translate_text(
        self,
        text: str,
        source_language: str,
        target_language: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        """
        Translate ``text``.

        Returns:
            The translation, normalized to plain text
        """
        system_prompt = build_translation_prompt(source_language, target_language)
        content = await self._complete(
            system_prompt,
            text,
            json_mode=False,
            timeout=self.translation_timeout,
            cancel_token=cancel_token,
        )
        return normalize_translation(content)

    async def analyze(
        self,
        source_text: str,
        translated_text: str,
        source_language: str,
        target_language: str,
        explanation_language: str,
        analysis_kind: AnalysisKind,
        cancel_token: Optional[CancellationToken] = None,
    ) -> TranslationResult:
        """
        Run a vocabulary, grammar or nuance analysis of a translation.

        Returns:
            A partially populated TranslationResult (empty if the vendor
            answered with something unparsable)
        """
        system_prompt = build_analysis_prompt(
            analysis_kind, source_language, target_language, explanation_language
        )
        content = await self._complete(
            system_prompt,
            build_analysis_input(source_text, translated_text),
            json_mode=True,
            timeout=self.analysis_timeout,
            cancel_token=cancel_token,
        )
        return normalize_analysis(content)

    async def _complete(
        self,
        system_prompt: str,
        user_content: str,
        json_mode: bool,
        timeout: float,
        cancel_token: Optional[CancellationToken],
    ) -> str:
        request = self._build_request(system_prompt, user_content, json_mode)

        logger.debug(
            "Provider request",
            provider=self.name,
            model=self.model,
            json_mode=json_mode,
        )

        try:
            response = await self.http_client.post(
                request.url,
                json=request.body,
                headers=request.headers,
                params=request.params,
                timeout=timeout,
                cancel_token=cancel_token,
            )
        except RequestTimeoutError as e:
            raise RequestTimeoutError(e.timeout, provider=self.display_name) from e
        except httpx.TransportError as e:
            raise ProviderError(
                f"Network error: {e}" if str(e) else "Network error",
                provider=self.display_name,
            ) from e

        if not response.is_success:
            raise ProviderError(
                self._error_message(response),
                status_code=response.status_code,
                provider=self.display_name,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError("Invalid response format", provider=self.display_name) from e

        content = self._extract_content(data) if isinstance(data, dict) else None
        if not content:
            raise ProviderError(
                f"No content received from {self.display_name}",
                provider=self.display_name,
            )
        return content

    def _error_message(self, response: httpx.Response) -> str:
        """
        Best-effort vendor message for a failed response.

        JSON bodies are preferred, raw text is the fallback, and a failure to
        read the body never masks the original status.
        """
        try:
            data = response.json()
        except ValueError:
            try:
                text = response.text.strip()
            except Exception:
                text = ""
            return text or response.reason_phrase or "Unknown error"
        except Exception:
            return response.reason_phrase or "Unknown error"

        return _message_from_body(data) or response.reason_phrase or "Unknown error"


def _message_from_body(data: Any) -> str:
    if isinstance(data, list) and data:
        return _message_from_body(data[0])
    if not isinstance(data, dict):
        return str(data) if data else ""

    error = data.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    if isinstance(error, str):
        return error
    if isinstance(data.get("message"), str):
        return data["message"]
    return json.dumps(data, ensure_ascii=False)
