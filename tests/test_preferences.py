from __future__ import annotations

import asyncio

from app.database import Database
from app.models import PreferenceMetadata, TitleKey, TitleRef
from app.services.preferences import PreferenceRepository


def _metadata(title: str, year: int, category: str = "movie", genres=()) -> PreferenceMetadata:
    return PreferenceMetadata(title=title, year=year, category=category, genres=list(genres))


def _run(tmp_path, scenario):
    """Run ``scenario`` against a fresh repository inside a single event loop."""

    async def runner():
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'prefs.db'}")
        await database.create_all()
        try:
            return await scenario(PreferenceRepository(database.session_factory))
        finally:
            await database.dispose()

    return asyncio.run(runner())


def test_add_like_is_idempotent(tmp_path) -> None:
    async def scenario(repository: PreferenceRepository):
        first = await repository.add_like("u1", 949, _metadata("Heat", 1995))
        second = await repository.add_like("u1", 949, _metadata("Heat", 1995))
        return first, second, await repository.list_likes("u1")

    first, second, likes = _run(tmp_path, scenario)

    assert first.ok and second.ok
    assert [(like.catalog_id, like.title) for like in likes] == [(949, "Heat")]


def test_concurrent_adds_of_the_same_entry_all_succeed(tmp_path) -> None:
    async def scenario(repository: PreferenceRepository):
        likes = await asyncio.gather(
            *[repository.add_like("u1", 949, _metadata("Heat", 1995)) for _ in range(5)]
        )
        dislikes = await asyncio.gather(
            *[repository.add_dislike("u1", 5, _metadata("Cats", 2019)) for _ in range(5)]
        )
        people = await asyncio.gather(
            *[repository.add_person("u1", "Al Pacino", "actor") for _ in range(5)]
        )
        profile = await repository.load_taste_profile("u1")
        return likes + dislikes + people, profile

    results, profile = _run(tmp_path, scenario)

    assert all(result.ok for result in results), [r.error for r in results if not r.ok]
    assert profile.liked_movies == [TitleRef(title="Heat", year=1995)]
    assert len(profile.disliked_content) == 1
    assert profile.favorite_actors == ["Al Pacino"]


def test_removing_absent_entries_succeeds(tmp_path) -> None:
    async def scenario(repository: PreferenceRepository):
        return (
            await repository.remove_like("u1", 1),
            await repository.remove_dislike("u1", 1),
            await repository.remove_person("u1", "Nobody", "actor"),
        )

    assert all(result.ok for result in _run(tmp_path, scenario))


def test_likes_are_scoped_per_user_and_filtered_by_category(tmp_path) -> None:
    async def scenario(repository: PreferenceRepository):
        await repository.add_like("u1", 949, _metadata("Heat", 1995))
        await repository.add_like("u1", 1396, _metadata("Breaking Bad", 2008, "series"))
        await repository.add_like("u2", 11524, _metadata("Thief", 1981))
        return (
            await repository.list_likes("u1"),
            await repository.list_likes("u1", "series"),
            await repository.list_likes("u2"),
        )

    all_likes, series_likes, other_user = _run(tmp_path, scenario)

    assert [like.title for like in all_likes] == ["Breaking Bad", "Heat"]
    assert [like.title for like in series_likes] == ["Breaking Bad"]
    assert [like.title for like in other_user] == ["Thief"]


def test_remove_dislike_deletes_the_row(tmp_path) -> None:
    async def scenario(repository: PreferenceRepository):
        await repository.add_dislike("u1", 5, _metadata("Cats", 2019))
        before = await repository.list_dislikes("u1")
        result = await repository.remove_dislike("u1", 5)
        return before, result, await repository.list_dislikes("u1")

    before, result, after = _run(tmp_path, scenario)

    assert [item.catalog_id for item in before] == [5]
    assert result.ok
    assert after == []


def test_blank_person_name_is_rejected(tmp_path) -> None:
    async def scenario(repository: PreferenceRepository):
        return await repository.add_person("u1", "   ", "actor")

    result = _run(tmp_path, scenario)

    assert not result.ok
    assert result.error == "Person name is required"


def test_load_taste_profile_assembles_every_signal(tmp_path) -> None:
    async def scenario(repository: PreferenceRepository):
        await repository.add_like("u1", 949, _metadata("Heat", 1995, genres=["Crime", "Drama"]))
        await repository.add_like(
            "u1", 1396, _metadata("Breaking Bad", 2008, "series", genres=["Drama"])
        )
        await repository.add_dislike("u1", 5, _metadata("Cats", 2019))
        await repository.add_person("u1", "Al Pacino", "actor")
        await repository.add_person("u1", "Al Pacino", "actor")
        await repository.add_person("u1", "Michael Mann", "director")
        return await repository.load_taste_profile("u1")

    profile = _run(tmp_path, scenario)

    assert profile.liked_movies == [TitleRef(title="Heat", year=1995)]
    assert profile.liked_series == [TitleRef(title="Breaking Bad", year=2008)]
    assert profile.disliked_content == [TitleKey(title="Cats", year=2019, category="movie")]
    assert profile.favorite_actors == ["Al Pacino"]
    assert profile.favorite_directors == ["Michael Mann"]
    assert set(profile.genres) == {"Crime", "Drama"}
    assert len(profile.genres) == 2
    assert profile.exclude_adult is True


def test_unknown_user_has_an_empty_profile(tmp_path) -> None:
    async def scenario(repository: PreferenceRepository):
        return await repository.load_taste_profile("nobody")

    profile = _run(tmp_path, scenario)

    assert profile.is_empty()
