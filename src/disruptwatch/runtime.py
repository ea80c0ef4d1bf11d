"""Process-scoped wiring of clients, store, pipeline and orchestrator."""

from __future__ import annotations

import random

import structlog

from .catalog import PORT_HUBS, default_shipments
from .classifier import build_classifier
from .config import Settings
from .fetchers import NewsFetcher, ShippingFetcher, WeatherFetcher
from .http import HttpClient
from .orchestrator import WorkflowOrchestrator, build_capabilities
from .pipeline import IngestionPipeline
from .storage import DisruptionStore, MemoryDisruptionStore, PostgresDisruptionStore

logger = structlog.get_logger(__name__)


class Runtime:
    """Owns every long-lived object for one process.

    Use as an async context manager so the database pool and HTTP session are
    opened and closed together.
    """

    def __init__(self, settings: Settings, dry_run: bool = False, rng: random.Random | None = None):
        if not dry_run and not settings.database_url:
            raise ValueError("DATABASE_URL is required unless running in dry-run mode.")

        self.settings = settings
        self.dry_run = dry_run
        self.http = HttpClient(
            timeout=settings.http_timeout_seconds,
            retries=settings.http_retries,
            retry_delay=settings.http_retry_delay_seconds,
        )
        self.news_fetcher = NewsFetcher(self.http, settings.news_api_key)
        self.weather_fetcher = WeatherFetcher(
            self.http,
            openweather_api_key=settings.openweather_api_key,
            rapidapi_key=settings.rapidapi_key,
            rng=rng,
        )
        self.shipping_fetcher = ShippingFetcher(rng=rng)
        self.classifier = build_classifier(settings, rng=rng)

        self.store: DisruptionStore
        if dry_run:
            self.store = MemoryDisruptionStore(
                port_hubs={port["name"]: "normal" for port in PORT_HUBS},
                shipments=default_shipments(),
            )
        else:
            self.store = PostgresDisruptionStore(settings.database_url)

        self.pipeline = IngestionPipeline(
            news_fetcher=self.news_fetcher,
            weather_fetcher=self.weather_fetcher,
            shipping_fetcher=self.shipping_fetcher,
            classifier=self.classifier,
            store=self.store,
            max_concurrency=settings.max_concurrent_requests,
        )
        self.orchestrator = WorkflowOrchestrator(
            build_capabilities(self.news_fetcher, self.weather_fetcher, self.shipping_fetcher, self.store),
            store=self.store,
        )

    async def __aenter__(self) -> "Runtime":
        if isinstance(self.store, PostgresDisruptionStore):
            await self.store.connect()
        logger.info(
            "runtime_ready",
            store=type(self.store).__name__,
            classifier=type(self.classifier).__name__,
            dry_run=self.dry_run,
        )
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.orchestrator.stop()
        await self.http.close()
        if isinstance(self.store, PostgresDisruptionStore):
            await self.store.close()
