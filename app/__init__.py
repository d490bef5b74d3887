"""AnimePool FastAPI application package.

The app object is resolved lazily so service modules can be imported (and
tested) without configuring logging or building the FastAPI instance.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = ["app", "create_app", "get_pool_service"]


def __getattr__(name: str) -> Any:
    if name in __all__:
        return getattr(import_module("app.main"), name)
    raise AttributeError(f"module 'app' has no attribute {name}")
