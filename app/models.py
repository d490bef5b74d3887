"""Data shapes shared by the pool collectors, builder and readers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

CHINESE_DESCRIPTION_PLACEHOLDER = "无可用中文介绍"
ENGLISH_DESCRIPTION_PLACEHOLDER = "No English description available"
DEFAULT_SCORE = "0"


@dataclass(frozen=True, slots=True)
class RawPoolItem:
    """Pre-enrichment entry produced by a source adapter.

    ``pool_key`` is unprefixed when an adapter builds the item; the merge step
    returns copies carrying the ``<source>:<id>`` form used for deduplication.
    """

    pool_key: str
    search_title: str = ""
    native_title: str | None = None
    alternate_title: str | None = None
    chinese_title: str | None = None
    short_description: str | None = None
    air_date: str | None = None
    primary_image_url: str = ""
    wide_image_url: str = ""
    score_text: str | None = None
    bangumi_url: str | None = None
    anilist_url: str | None = None
    mal_url: str | None = None


@dataclass(slots=True)
class EnrichmentMatch:
    """Best supplementary record found for a raw item."""

    tmdb_id: str
    english_title: str = ""
    chinese_title: str = ""
    english_summary: str = ""
    chinese_summary: str = ""
    backdrop_url: str = ""
    site_url: str = ""


class AnimeImages(BaseModel):
    """Portrait and landscape artwork for a pool record."""

    portrait: str = ""
    landscape: str = ""

    @field_validator("portrait", "landscape", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value


class ExternalUrls(BaseModel):
    """Canonical pages on the originating catalogs."""

    bangumi: str = ""
    tmdb: str = ""
    anilist: str = ""
    mal: str = ""

    @field_validator("bangumi", "tmdb", "anilist", "mal", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value


class EnrichedRecord(BaseModel):
    """Final pool entry persisted in the snapshot and served to readers.

    Descriptions and score are never empty: placeholders are substituted on
    construction, including when a stored snapshot is decoded.
    """

    model_config = ConfigDict(frozen=True)

    bangumi_id: str = ""
    jp_title: str = ""
    ch_title: str = ""
    en_title: str = ""
    ch_desc: str = CHINESE_DESCRIPTION_PLACEHOLDER
    en_desc: str = ENGLISH_DESCRIPTION_PLACEHOLDER
    score: str = DEFAULT_SCORE
    images: AnimeImages = Field(default_factory=AnimeImages)
    external_urls: ExternalUrls = Field(default_factory=ExternalUrls)

    @field_validator("bangumi_id", "jp_title", "ch_title", "en_title", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("ch_desc", mode="before")
    @classmethod
    def _default_chinese_description(cls, value: object) -> object:
        if value is None or value == "":
            return CHINESE_DESCRIPTION_PLACEHOLDER
        return value

    @field_validator("en_desc", mode="before")
    @classmethod
    def _default_english_description(cls, value: object) -> object:
        if value is None or value == "":
            return ENGLISH_DESCRIPTION_PLACEHOLDER
        return value

    @field_validator("score", mode="before")
    @classmethod
    def _default_score(cls, value: object) -> object:
        if value is None or value == "":
            return DEFAULT_SCORE
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("images", "external_urls", mode="before")
    @classmethod
    def _none_to_default(cls, value: object) -> object:
        return {} if value is None else value


POOL_ADAPTER: TypeAdapter[list[EnrichedRecord]] = TypeAdapter(list[EnrichedRecord])


def encode_pool(records: list[EnrichedRecord] | tuple[EnrichedRecord, ...]) -> str:
    """Serialise pool records into the snapshot payload format."""

    return POOL_ADAPTER.dump_json(list(records)).decode("utf-8")


def decode_pool(payload: str) -> list[EnrichedRecord]:
    """Parse a snapshot payload; raises ``ValidationError`` on malformed data."""

    return POOL_ADAPTER.validate_json(payload)


@dataclass(slots=True)
class PoolSnapshot:
    """Durable snapshot row as returned by the snapshot store."""

    source: str
    payload_json: str
    updated_at: datetime
