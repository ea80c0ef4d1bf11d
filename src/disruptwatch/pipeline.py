"""One ingestion pass: fetch, classify, store, link, refresh hub status."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from .classifier import EventClassifier
from .fetchers import ShippingFetcher, SignalFetcher
from .schemas import IngestResult, ProcessedEvent
from .storage import DisruptionStore

logger = structlog.get_logger(__name__)


class IngestionPipeline:
    """Coordinates fetchers, the classifier and the store for one run."""

    def __init__(
        self,
        news_fetcher: SignalFetcher,
        weather_fetcher: SignalFetcher,
        shipping_fetcher: ShippingFetcher,
        classifier: EventClassifier,
        store: DisruptionStore,
        max_concurrency: int = 5,
    ):
        self.news_fetcher = news_fetcher
        self.weather_fetcher = weather_fetcher
        self.shipping_fetcher = shipping_fetcher
        self.classifier = classifier
        self.store = store
        self.max_concurrency = max(1, max_concurrency)

    async def run(self) -> IngestResult:
        logger.info("ingestion_started")
        signals = await self._fetch_all()

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(signal: Any) -> ProcessedEvent | None:
            async with semaphore:
                return await self._process_signal(signal)

        outcomes = await asyncio.gather(*(bounded(signal) for signal in signals), return_exceptions=True)

        result = IngestResult(processed=len(signals))
        for signal, outcome in zip(signals, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "signal_processing_failed",
                    kind=getattr(signal, "kind", type(signal).__name__),
                    error=str(outcome),
                )
                result.errors += 1
            elif outcome is not None:
                result.stored += 1
                result.events.append(outcome)

        result.errors += await self._refresh_port_status()

        logger.info(
            "ingestion_completed",
            processed=result.processed,
            stored=result.stored,
            errors=result.errors,
        )
        return result

    async def _fetch_all(self) -> list[Any]:
        sources = {
            "news": self.news_fetcher,
            "weather": self.weather_fetcher,
            "shipping": self.shipping_fetcher,
        }
        batches = await asyncio.gather(
            *(fetcher.fetch() for fetcher in sources.values()),
            return_exceptions=True,
        )

        signals: list[Any] = []
        for name, batch in zip(sources, batches):
            if isinstance(batch, BaseException):
                logger.error("source_fetch_failed", source=name, error=str(batch))
                continue
            logger.info("source_fetched", source=name, count=len(batch))
            signals.extend(batch)
        return signals

    async def _process_signal(self, signal: Any) -> ProcessedEvent | None:
        event = await self.classifier.classify(signal)
        if event is None:
            return None

        disruption_id = await self.store.store_disruption(event)
        if event.affected_shipments:
            try:
                await self.store.link_disruption_to_shipments(disruption_id, event)
            except Exception as exc:
                # The disruption row stays; only the shipment links are missing.
                logger.error(
                    "disruption_link_failed",
                    disruption_id=disruption_id,
                    shipments=event.affected_shipments,
                    error=str(exc),
                )
                raise
        return event

    async def _refresh_port_status(self) -> int:
        """Push simulated hub statuses to the store; returns the failure count."""
        try:
            ports = await self.shipping_fetcher.fetch_port_status()
        except Exception as exc:
            logger.error("port_status_fetch_failed", error=str(exc))
            return 1

        errors = 0
        for port in ports:
            try:
                matched = await self.store.update_port_status(port.name, port.status)
            except Exception as exc:
                logger.error("port_status_update_failed", port=port.name, error=str(exc))
                errors += 1
                continue
            if not matched:
                logger.debug("port_status_unmatched", port=port.name)
        return errors
