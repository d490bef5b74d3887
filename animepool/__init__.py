"""Distribution-level alias for the AnimePool FastAPI app."""

from __future__ import annotations

from app.main import app, create_app, get_pool_service

__all__ = ["app", "create_app", "get_pool_service"]
