"""Pydantic models describing taste profiles and recommendation payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .utils import title_fingerprint

ContentType = Literal["movie", "series"]
PersonKind = Literal["actor", "director"]

_CATEGORY_ALIASES = {
    "movie": "movie",
    "movies": "movie",
    "film": "movie",
    "series": "series",
    "tv": "series",
    "tv-series": "series",
    "show": "series",
    "shows": "series",
}


def normalise_category(value: object) -> object:
    """Map the category spellings used by providers and storage onto ``ContentType``."""

    if isinstance(value, str):
        return _CATEGORY_ALIASES.get(value.strip().lower(), value)
    return value


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class TitleRef(_CamelModel):
    """A title the user has liked, identified by name and release year."""

    title: str
    year: int = Field(validation_alias=AliasChoices("year", "releaseYear", "releasedYear"))


class TitleKey(TitleRef):
    """A title plus its category; the unit of exclusion and dislike lists."""

    category: ContentType

    @field_validator("category", mode="before")
    @classmethod
    def _parse_category(cls, value: object) -> object:
        return normalise_category(value)

    def fingerprint(self) -> tuple[str, int, str]:
        return title_fingerprint(self.title, self.year, self.category)


class TasteProfile(_CamelModel):
    """Aggregate of the signals used to bias suggestions for one request."""

    liked_movies: list[TitleRef] = Field(default_factory=list)
    liked_series: list[TitleRef] = Field(
        default_factory=list,
        validation_alias=AliasChoices("likedSeries", "liked_series", "likedTvs"),
    )
    disliked_content: list[TitleKey] = Field(default_factory=list)
    favorite_actors: list[str] = Field(default_factory=list)
    favorite_directors: list[str] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)
    exclude_adult: bool = True

    @field_validator("favorite_actors", "favorite_directors", "genres", mode="before")
    @classmethod
    def _unique_names(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, (list, tuple, set, frozenset)):
            seen: list[str] = []
            for entry in value:
                name = str(entry).strip()
                if name and name not in seen:
                    seen.append(name)
            return seen
        return value

    def is_empty(self) -> bool:
        return not (
            self.liked_movies
            or self.liked_series
            or self.disliked_content
            or self.favorite_actors
            or self.favorite_directors
            or self.genres
        )


class CatalogMatch(_CamelModel):
    """Catalog metadata resolved for a recommendation."""

    id: int
    title: str | None = None
    category: ContentType | None = None
    poster_url: str | None = None
    backdrop_url: str | None = None
    overview_text: str | None = None
    aggregate_rating: float | None = None
    release_date: str | None = None
    genre_ids: list[int] = Field(default_factory=list)
    genre_names: list[str] = Field(default_factory=list)


class SearchPage(_CamelModel):
    """One page of catalog results."""

    page: int = 1
    results: list[CatalogMatch] = Field(default_factory=list)
    total_pages: int = 0


class PersonMatch(_CamelModel):
    """An actor or director found through the catalog's person search."""

    id: int
    name: str
    known_for_department: str | None = None
    profile_url: str | None = None
    popularity: float | None = None
    known_for: list[CatalogMatch] = Field(default_factory=list)


class PeoplePage(_CamelModel):
    page: int = 1
    results: list[PersonMatch] = Field(default_factory=list)
    total_pages: int = 0


class RecommendationStub(_CamelModel):
    """A suggestion produced by a provider before catalog enrichment."""

    title: str = Field(min_length=1)
    category: ContentType
    released_year: int = Field(
        ge=1800,
        le=9999,
        validation_alias=AliasChoices("releasedYear", "released_year", "year"),
    )
    rationale: str = Field(
        default="",
        validation_alias=AliasChoices("rationale", "reason", "description"),
    )
    external_rating: float | None = Field(
        default=None,
        validation_alias=AliasChoices("externalRating", "external_rating", "rating"),
    )

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("category", mode="before")
    @classmethod
    def _parse_category(cls, value: object) -> object:
        return normalise_category(value)

    def to_title_key(self) -> TitleKey:
        return TitleKey(title=self.title, year=self.released_year, category=self.category)


class EnrichedRecommendation(RecommendationStub):
    """A suggestion plus its catalog metadata, when it could be resolved."""

    catalog_match: CatalogMatch | None = None

    @classmethod
    def from_stub(
        cls, stub: RecommendationStub, match: CatalogMatch | None
    ) -> "EnrichedRecommendation":
        return cls(**stub.model_dump(), catalog_match=match)

    @property
    def key(self) -> str | None:
        """Identifier used for like/dislike bookkeeping."""

        if self.catalog_match is None:
            return None
        return str(self.catalog_match.id)


class PreferenceMetadata(_CamelModel):
    """Descriptive data stored alongside a like or dislike."""

    title: str = Field(min_length=1)
    year: int
    category: ContentType
    poster_url: str | None = None
    genres: list[str] = Field(default_factory=list)

    @field_validator("category", mode="before")
    @classmethod
    def _parse_category(cls, value: object) -> object:
        return normalise_category(value)

    @classmethod
    def from_recommendation(cls, item: EnrichedRecommendation) -> "PreferenceMetadata":
        match = item.catalog_match
        return cls(
            title=item.title,
            year=item.released_year,
            category=item.category,
            poster_url=match.poster_url if match else None,
            genres=list(match.genre_names) if match else [],
        )


class StoredPreference(PreferenceMetadata):
    """A persisted like or dislike as returned by listings."""

    catalog_id: int


class RecommendationRequest(_CamelModel):
    """Body of the recommendations endpoint."""

    previous_recommendations: list[TitleKey] = Field(default_factory=list)
    taste_profile: TasteProfile | None = None
