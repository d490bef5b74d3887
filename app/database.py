"""Database utilities for the AnimePool service."""

from __future__ import annotations

from sqlalchemy import MetaData, inspect, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base with consistent naming conventions."""

    metadata = MetaData()


class Database:
    """Owns the async engine and the session factory handed to the snapshot store."""

    def __init__(self, database_url: str):
        self._engine: AsyncEngine = create_async_engine(database_url, future=True)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine, expire_on_commit=False
        )

    async def create_all(self) -> None:
        """Create database tables if they do not yet exist."""

        # Registers the ORM tables on ``Base.metadata``.
        from . import db_models  # noqa: F401

        async with self._engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
            await connection.run_sync(self._apply_schema_migrations)

    @staticmethod
    def _apply_schema_migrations(sync_connection) -> None:
        """Backfill columns missing from snapshot tables created by older builds."""

        inspector = inspect(sync_connection)
        if "top_anime_cache" not in inspector.get_table_names():
            return

        existing_columns = {
            column["name"] for column in inspector.get_columns("top_anime_cache")
        }
        if "updated_at" not in existing_columns:
            sync_connection.execute(
                text("ALTER TABLE top_anime_cache ADD COLUMN updated_at DATETIME")
            )
            # Unknown age: epoch forces the next staleness check to rebuild.
            sync_connection.execute(
                text(
                    "UPDATE top_anime_cache SET updated_at = '1970-01-01 00:00:00' "
                    "WHERE updated_at IS NULL"
                )
            )

    async def dispose(self) -> None:
        """Dispose of the underlying database engine."""

        await self._engine.dispose()
