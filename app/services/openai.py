"""Suggestion providers for OpenAI and Mistral.

Both speak the same ``/chat/completions`` dialect, so they only differ in
name (which selects their settings) and base URL.
"""

from __future__ import annotations

from typing import ClassVar

from .suggestions import ChatCompletionsProvider


class OpenAISuggestionProvider(ChatCompletionsProvider):
    name: ClassVar[str] = "openai"


class MistralSuggestionProvider(ChatCompletionsProvider):
    name: ClassVar[str] = "mistral"
    temperature: ClassVar[float] = 0.7
