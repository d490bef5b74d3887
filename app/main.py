"""Entry point for the FastAPI service hosting the random pool builder."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .database import Database
from .services.anilist import AniListClient
from .services.bangumi import BangumiClient
from .services.jikan import JikanClient
from .services.pool_builder import PoolBuilder
from .services.pool_service import PoolService
from .services.snapshot_store import SnapshotStore
from .services.tmdb import TMDBClient
from .services.token_storage import TokenStorage

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    timeout = httpx.Timeout(settings.request_timeout_seconds, connect=10.0)
    anilist_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(base_url=settings.anilist_api_url, timeout=timeout)
    )
    bangumi_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(base_url=settings.bangumi_api_url, timeout=timeout)
    )
    jikan_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(base_url=settings.jikan_api_url, timeout=timeout)
    )
    tmdb_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(base_url=settings.tmdb_api_url, timeout=timeout)
    )
    database = Database(settings.database_url)
    await database.create_all()

    snapshot_store = SnapshotStore(database.session_factory)
    pool_service = PoolService(snapshot_store)
    builder = PoolBuilder(
        settings,
        pool_service,
        snapshot_store,
        AniListClient(settings, anilist_http),
        BangumiClient(settings, bangumi_http),
        JikanClient(settings, jikan_http),
        TMDBClient(settings, tmdb_http),
        TokenStorage(settings),
    )

    fastapi_app.state.pool_service = pool_service
    fastapi_app.state.pool_builder = builder
    fastapi_app.state.database = database
    if settings.pool_builder_enabled:
        await builder.start()
    else:
        logger.info("Pool builder disabled; serving the stored snapshot only")

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await builder.stop()
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Random anime pool aggregated from AniList, Bangumi and MyAnimeList",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_pool_service(fastapi_app: FastAPI) -> PoolService:
    service = getattr(fastapi_app.state, "pool_service", None)
    if not isinstance(service, PoolService):
        raise RuntimeError("Pool service not initialised")
    return service


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/pool/status")
    async def pool_status() -> JSONResponse:
        try:
            service = get_pool_service(fastapi_app)
        except RuntimeError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return JSONResponse(service.status().to_payload())

    @fastapi_app.get("/api/pool/random")
    async def random_pool(count: int = Query(default=10, ge=1, le=50)) -> JSONResponse:
        try:
            service = get_pool_service(fastapi_app)
        except RuntimeError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        picks = await service.get_random_picks(count)
        return JSONResponse(
            {
                "items": [record.model_dump(mode="json") for record in picks],
                "count": len(picks),
                "building": service.is_building(),
            }
        )


app = create_app()
