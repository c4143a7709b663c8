"""Command line launcher for the room document service."""

from __future__ import annotations

import argparse
import logging
from typing import Sequence

from decksync.backend.api import create_app
from decksync.backend.config import load_settings
from decksync.backend.store import create_store


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Deck Sync room service")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--database-url", default=settings.database_url or "")
    parser.add_argument("--log-level", default=settings.log_level, choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    import uvicorn

    store = create_store(args.database_url or None)
    logging.getLogger(__name__).info(
        "Starting room service on %s:%s (%s)", args.host, args.port, type(store).__name__
    )
    uvicorn.run(create_app(store=store), host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
