"""Suggestion provider backed by Google's Gemini ``generateContent`` API."""

from __future__ import annotations

from typing import ClassVar
from urllib.parse import quote

from ..errors import SuggestionProviderError
from .suggestions import LLMSuggestionProvider


class GeminiSuggestionProvider(LLMSuggestionProvider):
    name: ClassVar[str] = "gemini"

    async def _complete(self, system_prompt: str, user_prompt: str, *, count: int) -> str:
        payload = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self._estimate_token_budget(count),
                "responseMimeType": "application/json",
            },
        }
        headers = {
            "x-goog-api-key": str(self._api_key),
            "Content-Type": "application/json",
        }
        response = await self._client.post(
            f"/models/{quote(self._model, safe='')}:generateContent",
            json=payload,
            headers=headers,
        )
        data = self._check_response(response)

        candidates = data.get("candidates") or []
        if not candidates:
            feedback = data.get("promptFeedback") or {}
            reason = feedback.get("blockReason") or "no candidates"
            raise SuggestionProviderError(self.name, f"Model returned {reason}")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(
            part.get("text", "") for part in parts if isinstance(part, dict)
        )
        if not text.strip():
            raise SuggestionProviderError(self.name, "Model response missing content")
        return text
