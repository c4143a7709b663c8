"""Create the room table and prune abandoned rooms in PostgreSQL."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Callable, Sequence

from decksync.backend.config import load_settings


logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("db_schema.sql")
PRUNE_SQL = "DELETE FROM room_documents WHERE updated_at < now() - make_interval(days => %s)"


def _psycopg_connect(database_url: str) -> Any:
    import psycopg

    return psycopg.connect(database_url)


def apply_schema(database_url: str, connect: Callable[[str], Any] = _psycopg_connect) -> None:
    schema_sql = SCHEMA_PATH.read_text(encoding="utf-8")
    with connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(schema_sql)
        conn.commit()
    logger.info("Applied %s", SCHEMA_PATH.name)


def prune_rooms(database_url: str, older_than_days: int, connect: Callable[[str], Any] = _psycopg_connect) -> int:
    """Delete rooms nobody wrote to for ``older_than_days``; return how many went."""
    with connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(PRUNE_SQL, (older_than_days,))
            removed = cur.rowcount
        conn.commit()
    logger.info("Pruned %d rooms idle for more than %d days", removed, older_than_days)
    return removed


def main(argv: Sequence[str] | None = None) -> None:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Prepare the decksync room table")
    parser.add_argument(
        "--prune-days",
        type=int,
        default=settings.room_retention_days,
        help="also delete rooms idle this many days",
    )
    args = parser.parse_args(argv)

    if not settings.database_url:
        raise RuntimeError("DECKSYNC_DATABASE_URL is required for migration")

    apply_schema(settings.database_url)
    if args.prune_days is not None:
        prune_rooms(settings.database_url, args.prune_days)


if __name__ == "__main__":
    main()
