"""Run the AnimePool service with ``python -m animepool`` or the ``animepool`` script."""

from __future__ import annotations

import uvicorn

from app.config import get_settings


def main() -> None:
    config = get_settings()
    development = config.environment == "development"
    uvicorn.run(
        "app.main:app",
        host=config.server_host,
        port=config.server_port,
        log_level="debug" if development else "info",
    )


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()
