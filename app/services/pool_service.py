"""In-memory holder for the random anime pool."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace as evolve
from typing import Iterable

from pydantic import ValidationError

from ..models import EnrichedRecord, decode_pool
from .snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)

POOL_SOURCE_KEY = "random_pool"


@dataclass(frozen=True, slots=True)
class PoolState:
    """Immutable view of the pool; swapped wholesale on every change."""

    records: tuple[EnrichedRecord, ...] = ()
    building: bool = False


@dataclass(slots=True)
class PoolStatus:
    """Expose pool readiness to the status endpoint."""

    size: int
    building: bool

    def to_payload(self) -> dict[str, object]:
        return {
            "size": self.size,
            "building": self.building,
            "ready": self.size > 0 and not self.building,
        }


class PoolService:
    """Holds the current pool behind a single reference.

    Writers replace the whole ``PoolState``; readers grab the reference once,
    so they observe either the old pool or the new one, never a mix.
    """

    def __init__(self, snapshot_store: SnapshotStore | None = None):
        self._state = PoolState()
        self._snapshot_store = snapshot_store

    def current_size(self) -> int:
        return len(self._state.records)

    def is_building(self) -> bool:
        return self._state.building

    def snapshot(self) -> tuple[EnrichedRecord, ...]:
        return self._state.records

    def status(self) -> PoolStatus:
        state = self._state
        return PoolStatus(size=len(state.records), building=state.building)

    def replace(self, records: Iterable[EnrichedRecord]) -> None:
        """Swap in a new pool; the previous collection is never mutated."""

        self._state = evolve(self._state, records=tuple(records))

    def set_building(self, building: bool) -> None:
        self._state = evolve(self._state, building=bool(building))

    def random_picks(
        self, count: int, *, rng: random.Random | None = None
    ) -> list[EnrichedRecord]:
        """Return up to ``count`` records sampled from the in-memory pool."""

        records = self._state.records
        if count <= 0 or not records:
            return []
        chooser = rng or random
        return chooser.sample(records, min(count, len(records)))

    async def get_random_picks(
        self, count: int, *, rng: random.Random | None = None
    ) -> list[EnrichedRecord]:
        """Random picks, falling back to the durable snapshot when memory is cold."""

        if self.current_size() > 0 or self._snapshot_store is None:
            return self.random_picks(count, rng=rng)

        snapshot = await self._snapshot_store.get(POOL_SOURCE_KEY)
        if snapshot is None or not snapshot.payload_json.strip():
            return []

        try:
            pool = decode_pool(snapshot.payload_json)
        except (ValidationError, ValueError) as exc:
            logger.warning("Failed to deserialize random pool snapshot: %s", exc)
            return []
        if not pool:
            return []

        self.replace(pool)
        logger.info("Loaded random pool from snapshot into memory (%d items)", len(pool))
        return self.random_picks(count, rng=rng)
