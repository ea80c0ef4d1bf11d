"""Database migration runner."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

import asyncpg
import structlog
from dotenv import load_dotenv

from .catalog import PORT_HUBS
from .config import Settings
from .log import configure_logging

logger = structlog.get_logger(__name__)


def _split_sql_statements(sql_text: str) -> list[str]:
    return [stmt.strip() for stmt in sql_text.split(";") if stmt.strip()]


async def run_migrations(database_url: str, sql_path: Path, seed_hubs: bool = True) -> None:
    if not sql_path.exists():
        raise FileNotFoundError(f"Migration file not found: {sql_path}")

    statements = _split_sql_statements(sql_path.read_text(encoding="utf-8"))

    conn = await asyncpg.connect(database_url)
    try:
        async with conn.transaction():
            for stmt in statements:
                await conn.execute(stmt)

            if seed_hubs:
                await conn.executemany(
                    """
                    INSERT INTO port_hubs (name, status)
                    VALUES ($1, 'normal')
                    ON CONFLICT (name) DO NOTHING
                    """,
                    [(port["name"],) for port in PORT_HUBS],
                )
    finally:
        await conn.close()

    logger.info("migrations_applied", statements=len(statements), seeded_hubs=seed_hubs)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="disruptwatch database migration runner")
    parser.add_argument(
        "--sql",
        default=str(Path(__file__).resolve().parents[2] / "sql" / "init.sql"),
        help="Path to SQL migration file",
    )
    parser.add_argument("--no-seed", action="store_true", help="Skip seeding the monitored port hubs")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    load_dotenv(Path(__file__).resolve().parents[2] / ".env")
    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_format)
    if not settings.database_url:
        raise SystemExit("Missing DATABASE_URL in environment.")
    asyncio.run(run_migrations(settings.database_url, Path(args.sql), seed_hubs=not args.no_seed))
    print("[MIGRATE] completed")


if __name__ == "__main__":
    main()
