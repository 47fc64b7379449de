"""Static TMDB genre tables used to label catalog results."""

from __future__ import annotations

from typing import Iterable

from .models import ContentType


MOVIE_GENRES: dict[int, str] = {
    28: "Action",
    12: "Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    14: "Fantasy",
    36: "History",
    27: "Horror",
    10402: "Music",
    9648: "Mystery",
    10749: "Romance",
    878: "Science Fiction",
    10770: "TV Movie",
    53: "Thriller",
    10752: "War",
    37: "Western",
}

SERIES_GENRES: dict[int, str] = {
    10759: "Action & Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    10762: "Kids",
    9648: "Mystery",
    10763: "News",
    10764: "Reality",
    10765: "Sci-Fi & Fantasy",
    10766: "Soap",
    10767: "Talk",
    10768: "War & Politics",
    37: "Western",
}


def genre_table(category: ContentType) -> dict[int, str]:
    if category == "movie":
        return MOVIE_GENRES
    if category == "series":
        return SERIES_GENRES
    raise ValueError(f"Unsupported content type: {category}")


def genre_names(genre_ids: Iterable[object], category: ContentType) -> list[str]:
    """Translate TMDB genre identifiers, skipping unknown ones."""

    table = genre_table(category)
    names: list[str] = []
    for raw in genre_ids:
        try:
            name = table.get(int(raw))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            continue
        if name and name not in names:
            names.append(name)
    return names


def genre_ids_for_names(names: Iterable[str], category: ContentType) -> list[int]:
    """Reverse lookup used by the discover endpoint's ``genres`` filter."""

    lookup = {name.casefold(): genre_id for genre_id, name in genre_table(category).items()}
    ids: list[int] = []
    for name in names:
        genre_id = lookup.get(name.strip().casefold())
        if genre_id is not None and genre_id not in ids:
            ids.append(genre_id)
    return ids
