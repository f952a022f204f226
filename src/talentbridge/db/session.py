from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from talentbridge.config import Settings, get_settings
from talentbridge.db.base import Base
from talentbridge.db.repositories import Repository


def create_engine_for(database_url: str) -> AsyncEngine:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_async_engine(database_url, connect_args=connect_args)


class Store:
    """Owns the async engine and hands out repositories.

    ``restricted(user_id)`` yields a repository that refuses rows owned by
    anyone else; ``elevated()`` yields one with no owner, reserved for
    background and system paths.
    """

    def __init__(self, settings: Settings | None = None, *, database_url: str | None = None):
        self.settings = settings or get_settings()
        self.engine = create_engine_for(database_url or self.settings.database_url)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        from talentbridge.db import models  # noqa: F401

        async with self.engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            yield session

    @asynccontextmanager
    async def restricted(self, user_id: str) -> AsyncIterator[Repository]:
        if not user_id:
            raise ValueError("restricted repository requires a user id")
        async with self.session() as session:
            yield Repository(session, owner_id=user_id)

    @asynccontextmanager
    async def elevated(self) -> AsyncIterator[Repository]:
        async with self.session() as session:
            yield Repository(session)
