"""Entry point for the FastAPI-powered recommendation service."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Literal

import httpx
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, settings
from .database import Database
from .errors import MutationResult, ResolutionFailure, SuggestionUnavailable
from .genres import genre_ids_for_names
from .models import (
    ContentType,
    EnrichedRecommendation,
    PeoplePage,
    PersonKind,
    PreferenceMetadata,
    RecommendationRequest,
    SearchPage,
    StoredPreference,
    TasteProfile,
    normalise_category,
)
from .services.enrichment import EnrichmentEngine
from .services.gemini import GeminiSuggestionProvider
from .services.openai import MistralSuggestionProvider, OpenAISuggestionProvider
from .services.openrouter import OpenRouterSuggestionProvider
from .services.preferences import PreferenceRepository
from .services.recommendations import RecommendationOrchestrator
from .services.resolver import ContentResolver
from .services.suggestions import LLMSuggestionProvider
from .services.tmdb import TMDBClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[str, type[LLMSuggestionProvider]] = {
    "gemini": GeminiSuggestionProvider,
    "mistral": MistralSuggestionProvider,
    "openrouter": OpenRouterSuggestionProvider,
    "openai": OpenAISuggestionProvider,
}

app: FastAPI


async def build_providers(
    config: Settings, exit_stack: AsyncExitStack
) -> list[LLMSuggestionProvider]:
    """Instantiate the configured provider chain, skipping unconfigured ones."""

    providers: list[LLMSuggestionProvider] = []
    for name in config.suggestion_providers:
        if not config.provider_api_key(name):
            logger.info("Skipping suggestion provider %s: no API key configured", name)
            continue
        http_client = await exit_stack.enter_async_context(
            httpx.AsyncClient(
                base_url=str(getattr(config, f"{name}_api_url")),
                timeout=httpx.Timeout(config.suggestion_timeout_seconds, connect=10.0),
            )
        )
        providers.append(PROVIDER_CLASSES[name](config, http_client))
    return providers


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    tmdb_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.tmdb_api_url),
            timeout=httpx.Timeout(settings.catalog_timeout_seconds, connect=5.0),
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    catalog: TMDBClient | None = None
    if settings.has_tmdb_credentials:
        catalog = TMDBClient(settings, tmdb_http_client)
    else:
        logger.error(
            "TMDB_API_KEY or TMDB_TOKEN must be set; catalog browsing is disabled "
            "and recommendations will not be enriched"
        )
    providers = await build_providers(settings, exit_stack)
    orchestrator = RecommendationOrchestrator(
        providers,
        EnrichmentEngine(ContentResolver(catalog)),
        batch_size=settings.recommendation_batch_size,
        provider_timeout=settings.suggestion_timeout_seconds,
    )
    if orchestrator.provider_names:
        logger.info("Suggestion provider chain: %s", " -> ".join(orchestrator.provider_names))
    else:
        logger.warning("No suggestion providers configured; recommendations will fail")

    fastapi_app.state.catalog = catalog
    fastapi_app.state.orchestrator = orchestrator
    fastapi_app.state.preferences = PreferenceRepository(database.session_factory)
    fastapi_app.state.database = database

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="AI-personalised movie and series recommendations",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    fastapi_app.add_exception_handler(RequestValidationError, validation_error_handler)
    register_routes(fastapi_app)
    return fastapi_app


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def _state(fastapi_app: FastAPI, name: str):
    service = getattr(fastapi_app.state, name, None)
    if service is None:
        raise RuntimeError(f"{name} service not initialised")
    return service


def _catalog(fastapi_app: FastAPI) -> TMDBClient:
    catalog = getattr(fastapi_app.state, "catalog", None)
    if catalog is None:
        raise HTTPException(
            status_code=503,
            detail="Catalog search is unavailable: TMDB credentials are not configured",
        )
    return catalog


def _content_type(value: str) -> ContentType:
    category = normalise_category(value)
    if category not in ("movie", "series"):
        raise HTTPException(status_code=400, detail="Unsupported content type")
    return category  # type: ignore[return-value]


def _ensure_ok(result: MutationResult) -> dict[str, bool]:
    if not result.ok:
        raise HTTPException(status_code=502, detail=result.error)
    return {"success": True}


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/search/people", response_model=PeoplePage)
    async def search_people(
        query: str = Query(default=""), page: int = Query(default=1, ge=1)
    ) -> PeoplePage:
        catalog = _catalog(fastapi_app)
        try:
            return await catalog.search_people(query, page=page)
        except ResolutionFailure as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    @fastapi_app.get("/api/search/{category}", response_model=SearchPage)
    async def search(
        category: str,
        query: str = Query(default=""),
        year: int | None = Query(default=None),
        page: int = Query(default=1, ge=1),
    ) -> SearchPage:
        catalog = _catalog(fastapi_app)
        try:
            return await catalog.search(
                query, _content_type(category), year_hint=year, page=page
            )
        except ResolutionFailure as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    @fastapi_app.get("/api/discover/{category}", response_model=SearchPage)
    async def discover(
        category: str,
        genres: str = Query(default=""),
        min_rating: float | None = Query(default=None, alias="minRating", ge=0, le=10),
        year: int | None = Query(default=None),
        page: int = Query(default=1, ge=1),
    ) -> SearchPage:
        content_type = _content_type(category)
        catalog = _catalog(fastapi_app)
        genre_ids = genre_ids_for_names(genres.split(","), content_type) if genres else []
        try:
            return await catalog.discover(
                content_type, genre_ids=genre_ids, min_rating=min_rating, year=year, page=page
            )
        except ResolutionFailure as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    @fastapi_app.get("/api/trending/{category}", response_model=SearchPage)
    async def trending(
        category: str, window: Literal["day", "week"] = Query(default="week")
    ) -> SearchPage:
        catalog = _catalog(fastapi_app)
        try:
            return await catalog.trending(_content_type(category), window=window)
        except ResolutionFailure as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    @fastapi_app.get("/api/users/{user_id}/taste-profile", response_model=TasteProfile)
    async def taste_profile(user_id: str) -> TasteProfile:
        preferences: PreferenceRepository = _state(fastapi_app, "preferences")
        return await preferences.load_taste_profile(user_id)

    @fastapi_app.post(
        "/api/users/{user_id}/recommendations",
        response_model=list[EnrichedRecommendation],
    )
    async def recommendations(
        user_id: str, request: RecommendationRequest | None = None
    ) -> list[EnrichedRecommendation]:
        request = request or RecommendationRequest()
        orchestrator: RecommendationOrchestrator = _state(fastapi_app, "orchestrator")
        profile = request.taste_profile
        if profile is None:
            preferences: PreferenceRepository = _state(fastapi_app, "preferences")
            profile = await preferences.load_taste_profile(user_id)
        try:
            return await orchestrator.get_recommendations(
                profile, request.previous_recommendations
            )
        except SuggestionUnavailable as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc

    @fastapi_app.get("/api/users/{user_id}/likes", response_model=list[StoredPreference])
    async def list_likes(user_id: str, category: str | None = None) -> list[StoredPreference]:
        preferences: PreferenceRepository = _state(fastapi_app, "preferences")
        content_type = _content_type(category) if category else None
        return await preferences.list_likes(user_id, content_type)

    @fastapi_app.put("/api/users/{user_id}/likes/{catalog_id}")
    async def add_like(
        user_id: str, catalog_id: int, metadata: PreferenceMetadata
    ) -> dict[str, bool]:
        preferences: PreferenceRepository = _state(fastapi_app, "preferences")
        return _ensure_ok(await preferences.add_like(user_id, catalog_id, metadata))

    @fastapi_app.delete("/api/users/{user_id}/likes/{catalog_id}")
    async def remove_like(user_id: str, catalog_id: int) -> dict[str, bool]:
        preferences: PreferenceRepository = _state(fastapi_app, "preferences")
        return _ensure_ok(await preferences.remove_like(user_id, catalog_id))

    @fastapi_app.get("/api/users/{user_id}/dislikes", response_model=list[StoredPreference])
    async def list_dislikes(
        user_id: str, category: str | None = None
    ) -> list[StoredPreference]:
        preferences: PreferenceRepository = _state(fastapi_app, "preferences")
        content_type = _content_type(category) if category else None
        return await preferences.list_dislikes(user_id, content_type)

    @fastapi_app.put("/api/users/{user_id}/dislikes/{catalog_id}")
    async def add_dislike(
        user_id: str, catalog_id: int, metadata: PreferenceMetadata
    ) -> dict[str, bool]:
        preferences: PreferenceRepository = _state(fastapi_app, "preferences")
        return _ensure_ok(await preferences.add_dislike(user_id, catalog_id, metadata))

    @fastapi_app.delete("/api/users/{user_id}/dislikes/{catalog_id}")
    async def remove_dislike(user_id: str, catalog_id: int) -> dict[str, bool]:
        preferences: PreferenceRepository = _state(fastapi_app, "preferences")
        return _ensure_ok(await preferences.remove_dislike(user_id, catalog_id))

    @fastapi_app.put("/api/users/{user_id}/people/{kind}/{name}")
    async def add_person(user_id: str, kind: PersonKind, name: str) -> dict[str, bool]:
        preferences: PreferenceRepository = _state(fastapi_app, "preferences")
        return _ensure_ok(await preferences.add_person(user_id, name, kind))

    @fastapi_app.delete("/api/users/{user_id}/people/{kind}/{name}")
    async def remove_person(user_id: str, kind: PersonKind, name: str) -> dict[str, bool]:
        preferences: PreferenceRepository = _state(fastapi_app, "preferences")
        return _ensure_ok(await preferences.remove_person(user_id, name, kind))


app = create_app()
