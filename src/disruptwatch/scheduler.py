"""Periodic ingestion runner."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

import structlog
from dotenv import load_dotenv

from .config import Settings
from .log import configure_logging
from .pipeline import IngestionPipeline
from .schemas import IngestResult

logger = structlog.get_logger(__name__)


class IngestionScheduler:
    """Runs the pipeline once on start and then every ``interval_minutes``.

    Timer runs are not awaited by the timer, so a slow run can overlap the
    next one. Overlaps are logged, not prevented.
    """

    def __init__(self, pipeline: IngestionPipeline, interval_minutes: float = 15):
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be > 0")
        self.pipeline = pipeline
        self.interval_seconds = interval_minutes * 60
        self._timer: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()

    def is_active(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        """Must be called from inside a running event loop."""
        if self._timer is not None:
            logger.warning("scheduler_already_running")
            return
        logger.info("scheduler_started", interval_seconds=self.interval_seconds)
        self._timer = asyncio.get_running_loop().create_task(self._tick())

    def stop(self) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        logger.info("scheduler_stopped", in_flight=len(self._in_flight))

    async def run_once(self) -> IngestResult:
        return await self.pipeline.run()

    async def drain(self) -> None:
        """Wait for runs already started by the timer."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def _tick(self) -> None:
        while True:
            self._spawn_run()
            await asyncio.sleep(self.interval_seconds)

    def _spawn_run(self) -> None:
        if self._in_flight:
            logger.warning("ingestion_overlap", in_flight=len(self._in_flight))
        task = asyncio.get_running_loop().create_task(self._guarded_run())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _guarded_run(self) -> None:
        try:
            await self.pipeline.run()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("scheduled_ingestion_failed", error=str(exc))


async def _serve(settings: Settings, once: bool, dry_run: bool) -> int:
    from .runtime import Runtime

    async with Runtime(settings, dry_run=dry_run) as runtime:
        scheduler = IngestionScheduler(runtime.pipeline, settings.ingest_interval_minutes)
        if once:
            result = await scheduler.run_once()
            print(json.dumps(result.model_dump(mode="json", exclude={"events"}), indent=2))
            return 0

        scheduler.start()
        try:
            await asyncio.Event().wait()
        finally:
            scheduler.stop()
            await scheduler.drain()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Disruption signal ingestion runner")
    parser.add_argument("--once", action="store_true", help="Run one ingestion pass and exit")
    parser.add_argument("--dry-run", action="store_true", help="Use the in-memory store instead of PostgreSQL")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    load_dotenv(Path(__file__).resolve().parents[2] / ".env")
    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_format)
    logger.info("config_loaded", config=settings.redacted_snapshot())
    if not args.dry_run and not settings.database_url:
        raise SystemExit("Missing DATABASE_URL in environment. Use --dry-run for the in-memory store.")

    try:
        raise SystemExit(asyncio.run(_serve(settings, once=args.once, dry_run=args.dry_run)))
    except KeyboardInterrupt:
        raise SystemExit(0)


if __name__ == "__main__":
    main()
