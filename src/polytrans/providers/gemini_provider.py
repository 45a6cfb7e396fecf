"""
Gemini provider implementation.
"""

from typing import Any, Dict, Optional

from .base import BaseProvider, ProviderRequest, ProviderType


class GeminiProvider(BaseProvider):
    """
    Gemini generateContent adapter.

    The API key travels as the ``key`` query parameter. The system prompt goes
    into the dedicated ``system_instruction`` field; inlining it into
    ``contents`` gives noticeably worse translations.
    """

    provider_type = ProviderType.GEMINI
    display_name = "Gemini"
    default_model = "gemini-2.0-flash-exp"
    base_url = "https://generativelanguage.googleapis.com"
    api_version = "v1beta"

    @property
    def endpoint(self) -> str:
        if self.config.custom_endpoint:
            return self.config.custom_endpoint
        return f"{self.base_url}/{self.api_version}/models/{self.model}:generateContent"

    def _build_request(self, system_prompt: str, user_content: str, json_mode: bool) -> ProviderRequest:
        body = {
            "contents": [
                {"parts": [{"text": user_content}]},
            ],
            "system_instruction": {
                "parts": [{"text": system_prompt}],
            },
            "generationConfig": {
                "temperature": self.config.temperature,
                "responseMimeType": "application/json" if json_mode else "text/plain",
            },
        }

        return ProviderRequest(
            url=self.endpoint,
            body=body,
            params={"key": self.config.api_key},
        )

    def _extract_content(self, data: Dict[str, Any]) -> Optional[str]:
        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            return None
        content = candidates[0].get("content")
        if not isinstance(content, dict):
            return None
        parts = content.get("parts")
        if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
            return None
        text = parts[0].get("text")
        return text if isinstance(text, str) else None
