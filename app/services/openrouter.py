"""Suggestion provider backed by the OpenRouter API."""

from __future__ import annotations

from typing import ClassVar

from .suggestions import ChatCompletionsProvider


class OpenRouterSuggestionProvider(ChatCompletionsProvider):
    """Client responsible for talking to OpenRouter."""

    name: ClassVar[str] = "openrouter"
    token_limit_field: ClassVar[str] = "max_output_tokens"

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["HTTP-Referer"] = "https://github.com/reelpicks/reelpicks"
        headers["X-Title"] = self._settings.app_name
        return headers
