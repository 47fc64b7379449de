"""Exceptions and result types shared across the recommendation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


class ResolutionFailure(RuntimeError):
    """A catalog lookup failed at the transport or payload level."""


class SuggestionProviderError(RuntimeError):
    """A single suggestion provider could not produce a usable batch."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class SuggestionUnavailable(RuntimeError):
    """Every configured suggestion provider failed for a request."""

    def __init__(self, attempts: Sequence[tuple[str, str]] = ()):
        self.attempts = list(attempts)
        if self.attempts:
            detail = "; ".join(f"{name}: {reason}" for name, reason in self.attempts)
            message = f"No suggestion provider could produce recommendations ({detail})"
        else:
            message = "No suggestion providers are configured"
        super().__init__(message)


class PersistenceMutationFailure(RuntimeError):
    """A like/dislike mutation could not be stored."""


class MissingCatalogMatch(ValueError):
    """A preference change was requested for an unresolved recommendation."""

    def __init__(self, title: str | None = None):
        message = "cannot modify a recommendation without a resolved catalog match"
        if title:
            message = f"{message}: {title}"
        super().__init__(message)
        self.title = title


@dataclass(frozen=True, slots=True)
class MutationResult:
    """Outcome of a preference mutation."""

    ok: bool
    error: str | None = None

    @classmethod
    def success(cls) -> "MutationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, message: str) -> "MutationResult":
        return cls(ok=False, error=message or "Unknown persistence error")

    def raise_for_error(self) -> None:
        if not self.ok:
            raise PersistenceMutationFailure(self.error or "Unknown persistence error")
