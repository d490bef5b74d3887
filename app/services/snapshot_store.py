"""Durable key-value store for serialized pool snapshots."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import TopAnimeCache
from ..models import PoolSnapshot

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Reads and upserts single-row snapshots keyed by source."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, source: str) -> PoolSnapshot | None:
        """Return the stored snapshot for ``source`` or ``None``."""

        async with self._session_factory() as session:
            record = await session.get(TopAnimeCache, source)
            if record is None:
                return None
            return PoolSnapshot(
                source=record.source,
                payload_json=record.payload_json or "",
                updated_at=record.updated_at,
            )

    async def put(self, source: str, payload_json: str) -> None:
        """Overwrite the snapshot for ``source`` and stamp it with the current time."""

        now = datetime.utcnow()
        async with self._session_factory() as session:
            record = await session.get(TopAnimeCache, source)
            if record is None:
                session.add(
                    TopAnimeCache(
                        source=source,
                        payload_json=payload_json,
                        updated_at=now,
                    )
                )
            else:
                record.payload_json = payload_json
                record.updated_at = now
            await session.commit()
        logger.debug("Stored %s snapshot (%d bytes)", source, len(payload_json))
