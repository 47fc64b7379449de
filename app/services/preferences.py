"""Persistence of likes, dislikes and favourite people."""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import UserDislike, UserLike, UserPerson
from ..errors import MutationResult
from ..models import (
    ContentType,
    PersonKind,
    PreferenceMetadata,
    StoredPreference,
    TasteProfile,
    TitleKey,
    TitleRef,
)
from ..utils import split_genres

logger = logging.getLogger(__name__)


class PreferenceStore(Protocol):
    """Mutations a recommendation session needs to persist its toggles.

    All operations are idempotent: adding a present entry or removing an
    absent one succeeds.
    """

    async def add_like(
        self, user_id: str, catalog_id: int, metadata: PreferenceMetadata
    ) -> MutationResult: ...

    async def remove_like(self, user_id: str, catalog_id: int) -> MutationResult: ...

    async def add_dislike(
        self, user_id: str, catalog_id: int, metadata: PreferenceMetadata
    ) -> MutationResult: ...

    async def remove_dislike(self, user_id: str, catalog_id: int) -> MutationResult: ...


class PreferenceRepository:
    """SQLAlchemy implementation of the preference store."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def add_like(
        self, user_id: str, catalog_id: int, metadata: PreferenceMetadata
    ) -> MutationResult:
        try:
            async with self._session_factory() as session:
                existing = await session.scalar(
                    select(UserLike.id).where(
                        UserLike.user_id == user_id, UserLike.catalog_id == catalog_id
                    )
                )
                if existing is not None:
                    return MutationResult.success()
                session.add(
                    UserLike(
                        user_id=user_id,
                        catalog_id=catalog_id,
                        title=metadata.title,
                        year=metadata.year,
                        category=metadata.category,
                        genres=", ".join(metadata.genres) or None,
                        poster_url=metadata.poster_url,
                    )
                )
                await session.commit()
        except IntegrityError:
            # A concurrent request stored the same like first.
            logger.debug("Like %s for %s already stored", catalog_id, user_id)
            return MutationResult.success()
        except SQLAlchemyError as exc:
            logger.warning("Failed to add like %s for %s: %s", catalog_id, user_id, exc)
            return MutationResult.failure(f"Failed to add like: {exc}")
        return MutationResult.success()

    async def remove_like(self, user_id: str, catalog_id: int) -> MutationResult:
        return await self._delete(
            delete(UserLike).where(
                UserLike.user_id == user_id, UserLike.catalog_id == catalog_id
            ),
            description=f"like {catalog_id} for {user_id}",
        )

    async def add_dislike(
        self, user_id: str, catalog_id: int, metadata: PreferenceMetadata
    ) -> MutationResult:
        try:
            async with self._session_factory() as session:
                existing = await session.scalar(
                    select(UserDislike.id).where(
                        UserDislike.user_id == user_id,
                        UserDislike.catalog_id == catalog_id,
                    )
                )
                if existing is not None:
                    return MutationResult.success()
                session.add(
                    UserDislike(
                        user_id=user_id,
                        catalog_id=catalog_id,
                        title=metadata.title,
                        year=metadata.year,
                        category=metadata.category,
                        poster_url=metadata.poster_url,
                    )
                )
                await session.commit()
        except IntegrityError:
            logger.debug("Dislike %s for %s already stored", catalog_id, user_id)
            return MutationResult.success()
        except SQLAlchemyError as exc:
            logger.warning(
                "Failed to add dislike %s for %s: %s", catalog_id, user_id, exc
            )
            return MutationResult.failure(f"Failed to add dislike: {exc}")
        return MutationResult.success()

    async def remove_dislike(self, user_id: str, catalog_id: int) -> MutationResult:
        return await self._delete(
            delete(UserDislike).where(
                UserDislike.user_id == user_id, UserDislike.catalog_id == catalog_id
            ),
            description=f"dislike {catalog_id} for {user_id}",
        )

    async def add_person(self, user_id: str, name: str, kind: PersonKind) -> MutationResult:
        cleaned = name.strip()
        if not cleaned:
            return MutationResult.failure("Person name is required")
        try:
            async with self._session_factory() as session:
                existing = await session.scalar(
                    select(UserPerson.id).where(
                        UserPerson.user_id == user_id,
                        UserPerson.person_name == cleaned,
                        UserPerson.person_type == kind,
                    )
                )
                if existing is None:
                    session.add(
                        UserPerson(user_id=user_id, person_name=cleaned, person_type=kind)
                    )
                    await session.commit()
        except IntegrityError:
            logger.debug("%s %s for %s already stored", kind, cleaned, user_id)
            return MutationResult.success()
        except SQLAlchemyError as exc:
            logger.warning("Failed to add %s %s for %s: %s", kind, cleaned, user_id, exc)
            return MutationResult.failure(f"Failed to add {kind}: {exc}")
        return MutationResult.success()

    async def remove_person(
        self, user_id: str, name: str, kind: PersonKind
    ) -> MutationResult:
        return await self._delete(
            delete(UserPerson).where(
                UserPerson.user_id == user_id,
                UserPerson.person_name == name.strip(),
                UserPerson.person_type == kind,
            ),
            description=f"{kind} {name} for {user_id}",
        )

    async def list_likes(
        self, user_id: str, category: ContentType | None = None
    ) -> list[StoredPreference]:
        stmt = select(UserLike).where(UserLike.user_id == user_id)
        if category is not None:
            stmt = stmt.where(UserLike.category == category)
        stmt = stmt.order_by(UserLike.updated_at.desc(), UserLike.id.desc())
        async with self._session_factory() as session:
            rows = (await session.scalars(stmt)).all()
        return [
            StoredPreference(
                catalog_id=row.catalog_id,
                title=row.title,
                year=row.year,
                category=row.category,
                poster_url=row.poster_url,
                genres=split_genres(row.genres),
            )
            for row in rows
        ]

    async def list_dislikes(
        self, user_id: str, category: ContentType | None = None
    ) -> list[StoredPreference]:
        stmt = select(UserDislike).where(UserDislike.user_id == user_id)
        if category is not None:
            stmt = stmt.where(UserDislike.category == category)
        stmt = stmt.order_by(UserDislike.updated_at.desc(), UserDislike.id.desc())
        async with self._session_factory() as session:
            rows = (await session.scalars(stmt)).all()
        return [
            StoredPreference(
                catalog_id=row.catalog_id,
                title=row.title,
                year=row.year,
                category=row.category,
                poster_url=row.poster_url,
            )
            for row in rows
        ]

    async def load_taste_profile(
        self, user_id: str, *, exclude_adult: bool = True
    ) -> TasteProfile:
        """Assemble the taste profile used to prompt suggestion providers."""

        try:
            likes = await self.list_likes(user_id)
            dislikes = await self.list_dislikes(user_id)
            async with self._session_factory() as session:
                people = (
                    await session.scalars(
                        select(UserPerson)
                        .where(UserPerson.user_id == user_id)
                        .order_by(UserPerson.created_at, UserPerson.id)
                    )
                ).all()
        except SQLAlchemyError as exc:
            logger.warning("Failed to load preferences for %s: %s", user_id, exc)
            return TasteProfile(exclude_adult=exclude_adult)

        genres: list[str] = []
        for like in likes:
            for genre in like.genres:
                if genre not in genres:
                    genres.append(genre)

        return TasteProfile(
            liked_movies=[
                TitleRef(title=like.title, year=like.year)
                for like in likes
                if like.category == "movie"
            ],
            liked_series=[
                TitleRef(title=like.title, year=like.year)
                for like in likes
                if like.category == "series"
            ],
            disliked_content=[
                TitleKey(title=item.title, year=item.year, category=item.category)
                for item in dislikes
            ],
            favorite_actors=[p.person_name for p in people if p.person_type == "actor"],
            favorite_directors=[
                p.person_name for p in people if p.person_type == "director"
            ],
            genres=genres,
            exclude_adult=exclude_adult,
        )

    async def _delete(self, stmt, *, description: str) -> MutationResult:
        try:
            async with self._session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.warning("Failed to remove %s: %s", description, exc)
            return MutationResult.failure(f"Failed to remove {description}: {exc}")
        return MutationResult.success()
