"""Background orchestration that builds and refreshes the random anime pool.

The pool (~250 titles) is collected from AniList (trending, popularity and
score orderings), the Bangumi ranking and two pages of the MyAnimeList top
chart via Jikan. Items are deduplicated on source-prefixed keys, enriched one
by one from TMDB and persisted every ``pool_save_batch_size`` items so readers
can use a partial pool while the build is still running.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import suppress
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Iterable, Literal

from pydantic import ValidationError

from ..config import Settings
from ..models import (
    AnimeImages,
    EnrichedRecord,
    EnrichmentMatch,
    ExternalUrls,
    RawPoolItem,
    decode_pool,
    encode_pool,
)
from ..utils import first_non_blank
from .anilist import (
    SORT_POPULARITY,
    SORT_SCORE,
    SORT_TRENDING,
    AniListClient,
    AniListMedia,
)
from .bangumi import BangumiClient, BangumiSubject
from .jikan import JikanAnime, JikanClient
from .pool_service import POOL_SOURCE_KEY, PoolService
from .snapshot_store import SnapshotStore
from .tmdb import TMDBClient
from .token_storage import TokenStorage

logger = logging.getLogger(__name__)

ANILIST_PREFIX = "al"
BANGUMI_PREFIX = "bgm"
JIKAN_PREFIX = "mal"

ANILIST_SORTS = (SORT_TRENDING, SORT_POPULARITY, SORT_SCORE)
RANKED_LIMIT = 50
JIKAN_PAGES = (1, 2)
JIKAN_PAGE_SIZE = 25

CollectionStatus = Literal["ok", "empty", "error"]


@dataclass(slots=True)
class CollectionResult:
    """Outcome of one collection branch.

    A branch that failed part-way keeps whatever it gathered before the error.
    """

    source: str
    items: list[RawPoolItem] = field(default_factory=list)
    error: Exception | None = None

    @property
    def status(self) -> CollectionStatus:
        if self.error is not None:
            return "error"
        if not self.items:
            return "empty"
        return "ok"


def raw_item_from_anilist(media: AniListMedia) -> RawPoolItem:
    return RawPoolItem(
        pool_key=media.anilist_id,
        search_title=first_non_blank(media.native_title, media.english_title),
        native_title=media.native_title or None,
        alternate_title=media.english_title or None,
        short_description=media.description or None,
        primary_image_url=media.cover_url,
        wide_image_url=media.banner_image,
        score_text=media.score or None,
        anilist_url=media.site_url or None,
    )


def raw_item_from_bangumi(subject: BangumiSubject) -> RawPoolItem:
    return RawPoolItem(
        pool_key=str(subject.id),
        search_title=subject.name,
        native_title=subject.name or None,
        chinese_title=subject.name_cn or None,
        air_date=subject.air_date,
        primary_image_url=subject.image_url,
        score_text=f"{subject.score:.1f}" if subject.score else None,
        bangumi_url=subject.site_url,
    )


def raw_item_from_jikan(anime: JikanAnime) -> RawPoolItem:
    return RawPoolItem(
        pool_key=str(anime.mal_id),
        search_title=first_non_blank(anime.title_japanese, anime.title),
        native_title=anime.title_japanese,
        alternate_title=anime.title_english or anime.title or None,
        short_description=anime.synopsis,
        primary_image_url=anime.image_url,
        score_text=f"{anime.score:.1f}" if anime.score is not None else None,
        mal_url=anime.url or None,
    )


def merge_raw_items(results: Iterable[CollectionResult]) -> list[RawPoolItem]:
    """Prefix pool keys with their source and keep the first item per key.

    Branch order decides which duplicate wins; later occurrences are dropped
    rather than merged field by field.
    """

    seen: set[str] = set()
    merged: list[RawPoolItem] = []
    for result in results:
        for item in result.items:
            key = f"{result.source}:{item.pool_key}"
            fingerprint = key.casefold()
            if fingerprint in seen:
                continue
            seen.add(fingerprint)
            merged.append(replace(item, pool_key=key))
    return merged


def build_record(raw: RawPoolItem, match: EnrichmentMatch | None) -> EnrichedRecord:
    """Combine a raw item with its (optional) TMDB match.

    TMDB only fills English fields the source left empty. Chinese text, the
    backdrop and the TMDB link come from the match; a source-provided Chinese
    title and the wide image cover the gaps it leaves.
    """

    en_title = raw.alternate_title or ""
    en_desc = raw.short_description or ""
    ch_title = ""
    ch_desc = ""
    landscape = ""
    tmdb_url = ""

    if match is not None:
        landscape = match.backdrop_url or ""
        ch_title = match.chinese_title or ""
        ch_desc = match.chinese_summary or ""
        tmdb_url = match.site_url or ""
        if not en_title.strip():
            en_title = match.english_title or ""
        if not en_desc.strip():
            en_desc = match.english_summary or ""

    if not ch_title.strip() and raw.chinese_title:
        ch_title = raw.chinese_title
    if not landscape.strip() and raw.wide_image_url.strip():
        landscape = raw.wide_image_url

    return EnrichedRecord(
        bangumi_id="",
        jp_title=raw.native_title or "",
        ch_title=ch_title,
        en_title=en_title,
        ch_desc=ch_desc,
        en_desc=en_desc,
        score=raw.score_text,
        images=AnimeImages(portrait=raw.primary_image_url or "", landscape=landscape),
        external_urls=ExternalUrls(
            bangumi=raw.bangumi_url or "",
            tmdb=tmdb_url,
            anilist=raw.anilist_url or "",
            mal=raw.mal_url or "",
        ),
    )


class PoolBuilder:
    """Keeps the random pool fresh from a single resident background task."""

    def __init__(
        self,
        settings: Settings,
        pool_service: PoolService,
        snapshot_store: SnapshotStore,
        anilist_client: AniListClient,
        bangumi_client: BangumiClient,
        jikan_client: JikanClient,
        tmdb_client: TMDBClient,
        token_storage: TokenStorage,
    ):
        self._settings = settings
        self._pool = pool_service
        self._store = snapshot_store
        self._anilist = anilist_client
        self._bangumi = bangumi_client
        self._jikan = jikan_client
        self._tmdb = tmdb_client
        self._tokens = token_storage
        self._rebuild_interval = timedelta(
            seconds=settings.pool_rebuild_interval_seconds
        )
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Launch the scheduling loop."""

        if self._task is None:
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Cancel the scheduling loop and any build in progress."""

        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def run(self) -> None:
        logger.info("Pool builder started")
        await asyncio.sleep(self._settings.pool_startup_delay_seconds)
        while True:
            try:
                if await self.should_rebuild():
                    await self.build_pool()
            except Exception as exc:
                logger.exception("Pool builder cycle failed: %s", exc)
            await asyncio.sleep(self._settings.pool_rebuild_interval_seconds)

    async def should_rebuild(self) -> bool:
        """Decide whether a build is due, warming memory from a fresh snapshot."""

        if self._pool.current_size() > 0:
            return False

        try:
            snapshot = await self._store.get(POOL_SOURCE_KEY)
        except Exception as exc:
            logger.warning("Failed to read random pool snapshot: %s", exc)
            return False
        if snapshot is None:
            return True

        age = datetime.utcnow() - snapshot.updated_at
        if age > self._rebuild_interval:
            return True

        if snapshot.payload_json.strip():
            try:
                pool = decode_pool(snapshot.payload_json)
            except (ValidationError, ValueError) as exc:
                logger.warning("Failed to warm random pool from snapshot: %s", exc)
                return False
            if pool:
                self._pool.replace(pool)
                logger.info(
                    "Warmed random pool from snapshot (%d items, age %.1fh)",
                    len(pool),
                    age.total_seconds() / 3600,
                )
        return False

    async def build_pool(self) -> list[EnrichedRecord]:
        """Collect, deduplicate, enrich and persist a fresh pool."""

        self._pool.set_building(True)
        started = time.perf_counter()
        records: list[EnrichedRecord] = []
        logger.info("Building random anime pool...")

        try:
            self._tmdb.set_token(await self._tokens.get_tmdb_token())
            self._bangumi.set_token(await self._tokens.get_bangumi_token())

            results = await self.collect()
            raw_items = merge_raw_items(results)
            logger.info(
                "Collected %d unique items for random pool enrichment", len(raw_items)
            )

            batch_size = self._settings.pool_save_batch_size
            for raw in raw_items:
                records.append(await self.enrich_item(raw))

                if len(records) % batch_size == 0:
                    await self._persist(records)
                    logger.info(
                        "Random pool partial save: %d/%d", len(records), len(raw_items)
                    )

                # Items without a search title made no TMDB request.
                if raw.search_title.strip():
                    await self._pause(self._settings.enrichment_delay_seconds)

            await self._persist(records)
            logger.info(
                "Random pool built: %d items in %.1fs",
                len(records),
                time.perf_counter() - started,
            )
        except Exception as exc:
            logger.exception("Failed to build random anime pool: %s", exc)
        finally:
            self._pool.set_building(False)

        return records

    async def collect(self) -> list[CollectionResult]:
        """Run the three source branches concurrently, in A, B, C order."""

        results = await asyncio.gather(
            self._collect_anilist(),
            self._collect_bangumi(),
            self._collect_jikan(),
        )
        for result in results:
            if result.error is not None:
                logger.warning(
                    "Source %s failed after %d items: %s",
                    result.source,
                    len(result.items),
                    result.error,
                )
            else:
                logger.info("Source %s returned %d items", result.source, len(result.items))
        return list(results)

    async def _collect_anilist(self) -> CollectionResult:
        batches = await asyncio.gather(
            *(self._anilist.fetch_ranked(sort, RANKED_LIMIT) for sort in ANILIST_SORTS),
            return_exceptions=True,
        )
        result = CollectionResult(source=ANILIST_PREFIX)
        for sort, batch in zip(ANILIST_SORTS, batches):
            if isinstance(batch, asyncio.CancelledError):
                raise batch
            if isinstance(batch, Exception):
                logger.warning("AniList %s query failed: %s", sort, batch)
                if result.error is None:
                    result.error = batch
                continue
            result.items.extend(raw_item_from_anilist(media) for media in batch)
        return result

    async def _collect_bangumi(self) -> CollectionResult:
        result = CollectionResult(source=BANGUMI_PREFIX)
        try:
            subjects = await self._bangumi.fetch_ranked("rank", RANKED_LIMIT)
        except Exception as exc:
            result.error = exc
            return result
        result.items.extend(raw_item_from_bangumi(subject) for subject in subjects)
        return result

    async def _collect_jikan(self) -> CollectionResult:
        result = CollectionResult(source=JIKAN_PREFIX)
        try:
            for index, page in enumerate(JIKAN_PAGES):
                if index:
                    await self._pause(self._settings.jikan_page_delay_seconds)
                anime = await self._jikan.fetch_page(page, JIKAN_PAGE_SIZE)
                result.items.extend(raw_item_from_jikan(entry) for entry in anime)
        except Exception as exc:
            result.error = exc
        return result

    async def enrich_item(self, raw: RawPoolItem) -> EnrichedRecord:
        """Look the item up on TMDB and shape the final record."""

        match: EnrichmentMatch | None = None
        if raw.search_title.strip():
            try:
                match = await self._tmdb.lookup(raw.search_title, raw.air_date)
            except Exception as exc:
                logger.warning(
                    "TMDB enrichment failed for %s (%r): %s",
                    raw.pool_key,
                    raw.search_title,
                    exc,
                )
        return build_record(raw, match)

    async def _persist(self, records: list[EnrichedRecord]) -> None:
        """Write the snapshot, then publish the same records in memory."""

        snapshot = list(records)
        try:
            await self._store.put(POOL_SOURCE_KEY, encode_pool(snapshot))
        except Exception as exc:
            logger.warning("Failed to save random pool snapshot: %s", exc)
        self._pool.replace(snapshot)

    async def _pause(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)
