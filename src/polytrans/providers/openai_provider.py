"""
OpenAI-compatible provider implementations.

OpenAI, Groq, Cerebras and Grok (xAI) all speak the chat completions protocol
and differ only in endpoint, default model and JSON-mode support.
"""

from typing import Any, Dict, Optional

from .base import BaseProvider, ProviderRequest, ProviderType


class OpenAICompatibleProvider(BaseProvider):
    """Chat completions adapter with bearer-token authentication."""

    default_endpoint: str = "https://api.openai.com/v1/chat/completions"
    supports_json_mode: bool = True

    @property
    def endpoint(self) -> str:
        return self.config.custom_endpoint or self.default_endpoint

    def _build_request(self, system_prompt: str, user_content: str, json_mode: bool) -> ProviderRequest:
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            "temperature": self.config.temperature,
        }
        if json_mode and self.supports_json_mode:
            body["response_format"] = {"type": "json_object"}

        return ProviderRequest(
            url=self.endpoint,
            body=body,
            headers={"Authorization": f"Bearer {self.config.api_key}"},
        )

    def _extract_content(self, data: Dict[str, Any]) -> Optional[str]:
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            return None
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            return None
        content = message.get("content")
        return content if isinstance(content, str) else None


class OpenAIProvider(OpenAICompatibleProvider):
    provider_type = ProviderType.OPENAI
    display_name = "OpenAI"
    default_model = "gpt-4o-mini"
    default_endpoint = "https://api.openai.com/v1/chat/completions"


class GroqProvider(OpenAICompatibleProvider):
    provider_type = ProviderType.GROQ
    display_name = "Groq"
    default_model = "llama-3.3-70b-versatile"
    default_endpoint = "https://api.groq.com/openai/v1/chat/completions"


class CerebrasProvider(OpenAICompatibleProvider):
    provider_type = ProviderType.CEREBRAS
    display_name = "Cerebras"
    default_model = "llama-3.3-70b"
    default_endpoint = "https://api.cerebras.ai/v1/chat/completions"
    supports_json_mode = False


class GrokProvider(OpenAICompatibleProvider):
    provider_type = ProviderType.GROK
    display_name = "Grok"
    default_model = "grok-beta"
    default_endpoint = "https://api.x.ai/v1/chat/completions"
    supports_json_mode = False
