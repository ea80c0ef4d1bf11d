"""Ingestion pipeline tests."""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import asyncpg

from disruptwatch.catalog import PORT_HUBS
from disruptwatch.classifier import EventClassifier, SimulatedEventClassifier
from disruptwatch.errors import SourceUnavailable, StorageFailure
from disruptwatch.fetchers import NewsFetcher, ShippingFetcher, WeatherFetcher
from disruptwatch.pipeline import IngestionPipeline
from disruptwatch.schemas import ProcessedEvent, ShippingSignal, WeatherSignal
from disruptwatch.storage import MemoryDisruptionStore


class FailingHttp:
    async def get(self, url: str, params=None, headers=None):
        raise SourceUnavailable("offline")


@dataclass
class StaticFetcher:
    signals: list = field(default_factory=list)

    async def fetch(self) -> list:
        return list(self.signals)


class BrokenFetcher:
    async def fetch(self) -> list:
        raise RuntimeError("contract violated")


class StaticShipping(StaticFetcher):
    async def fetch_port_status(self) -> list:
        return []


class FlakyStore(MemoryDisruptionStore):
    """Rejects writes for one location."""

    def __init__(self, reject_location: str, **kwargs):
        super().__init__(**kwargs)
        self.reject_location = reject_location

    async def store_disruption(self, event: ProcessedEvent) -> str:
        if event.location_id == self.reject_location:
            raise StorageFailure("disk full")
        return await super().store_disruption(event)


class LinkingClassifier(EventClassifier):
    """Marks every material weather reading as affecting one shipment."""

    async def _classify_weather(self, signal: WeatherSignal) -> ProcessedEvent | None:
        return ProcessedEvent(
            type="weather",
            location_type="port",
            location_id=signal.location,
            severity="high",
            description=f"{signal.conditions} at {signal.location}",
            start_time=datetime.now(timezone.utc),
            source="weather",
            affected_shipments=["shipment_001"],
        )


def _weather(location: str, risk_level: int = 5) -> WeatherSignal:
    return WeatherSignal(location=location, conditions="Storm", wind_speed=30, risk_level=risk_level)


def _shipping(vessel_id: str, delay_hours: float) -> ShippingSignal:
    return ShippingSignal(
        vessel_id=vessel_id,
        location="Hamburg",
        status="in_transit",
        eta=datetime.now(timezone.utc) + timedelta(days=2),
        delay_hours=delay_hours,
    )


def test_all_upstreams_failing_still_ingests_simulated_data() -> None:
    rng = random.Random(42)
    http = FailingHttp()
    store = MemoryDisruptionStore(port_hubs={hub["name"]: "normal" for hub in PORT_HUBS})
    pipeline = IngestionPipeline(
        news_fetcher=NewsFetcher(http, api_key="key"),
        weather_fetcher=WeatherFetcher(http, openweather_api_key="key", rng=rng),
        shipping_fetcher=ShippingFetcher(rng),
        classifier=SimulatedEventClassifier(rng),
        store=store,
    )

    result = asyncio.run(pipeline.run())

    assert result.errors == 0
    assert result.processed == 5 + 10 + 10
    assert result.stored == len(result.events) == len(store.disruptions)
    assert store.port_hubs["Port of Shanghai"] == "congested"


def test_raising_fetcher_yields_empty_batch() -> None:
    pipeline = IngestionPipeline(
        news_fetcher=BrokenFetcher(),
        weather_fetcher=StaticFetcher([_weather("Busan,KR")]),
        shipping_fetcher=StaticShipping([]),
        classifier=SimulatedEventClassifier(random.Random(1)),
        store=MemoryDisruptionStore(),
    )

    result = asyncio.run(pipeline.run())

    assert result.processed == 1
    assert result.stored == 1
    assert result.errors == 0


def test_storage_failure_counts_one_error_and_continues() -> None:
    signals = [_weather("Busan,KR"), _weather("Dubai,AE"), _weather("Mumbai,IN")]
    store = FlakyStore(reject_location="Dubai,AE")
    pipeline = IngestionPipeline(
        news_fetcher=StaticFetcher(),
        weather_fetcher=StaticFetcher(signals),
        shipping_fetcher=StaticShipping([]),
        classifier=SimulatedEventClassifier(random.Random(1)),
        store=store,
        max_concurrency=1,
    )

    result = asyncio.run(pipeline.run())

    assert result.processed == 3
    assert result.stored == 2
    assert result.errors == 1
    assert [event.location_id for event in result.events] == ["Busan,KR", "Mumbai,IN"]


def test_immaterial_signals_are_processed_but_not_stored() -> None:
    pipeline = IngestionPipeline(
        news_fetcher=StaticFetcher(),
        weather_fetcher=StaticFetcher([_weather("Busan,KR", risk_level=1)]),
        shipping_fetcher=StaticShipping([_shipping("VESSEL001", 4), _shipping("VESSEL002", 40)]),
        classifier=SimulatedEventClassifier(random.Random(1)),
        store=MemoryDisruptionStore(),
    )

    result = asyncio.run(pipeline.run())

    assert (result.processed, result.stored, result.errors) == (3, 1, 0)
    assert result.events[0].source == "shipping"


def test_affected_shipments_are_linked() -> None:
    store = MemoryDisruptionStore()
    pipeline = IngestionPipeline(
        news_fetcher=StaticFetcher(),
        weather_fetcher=StaticFetcher([_weather("Singapore,SG")]),
        shipping_fetcher=StaticShipping([]),
        classifier=LinkingClassifier(),
        store=store,
    )

    result = asyncio.run(pipeline.run())

    assert result.stored == 1
    assert [key[0] for key in store.links] == ["shipment_001"]


class HubShipping(StaticShipping):
    async def fetch_port_status(self) -> list:
        return await ShippingFetcher().fetch_port_status()


class ClosedPoolStore(MemoryDisruptionStore):
    async def update_port_status(self, location_id: str, status: str) -> int:
        raise asyncpg.InterfaceError("pool is closed")


class UnlinkableStore(MemoryDisruptionStore):
    async def link_disruption_to_shipments(self, disruption_id: str, event: ProcessedEvent) -> int:
        raise StorageFailure("unknown shipment")


def test_port_status_failures_are_counted_and_run_completes() -> None:
    pipeline = IngestionPipeline(
        news_fetcher=StaticFetcher(),
        weather_fetcher=StaticFetcher([_weather("Busan,KR")]),
        shipping_fetcher=HubShipping([]),
        classifier=SimulatedEventClassifier(random.Random(1)),
        store=ClosedPoolStore(),
    )

    result = asyncio.run(pipeline.run())

    assert result.stored == 1
    assert result.errors == len(PORT_HUBS)


def test_malformed_weather_payload_still_ingests_fallback() -> None:
    class NullHttp:
        async def get(self, url: str, params=None, headers=None):
            return None

    store = MemoryDisruptionStore()
    pipeline = IngestionPipeline(
        news_fetcher=StaticFetcher(),
        weather_fetcher=WeatherFetcher(NullHttp(), openweather_api_key="key", hubs=["Busan,KR", "Dubai,AE"]),
        shipping_fetcher=StaticShipping([]),
        classifier=SimulatedEventClassifier(random.Random(1)),
        store=store,
    )

    result = asyncio.run(pipeline.run())

    assert result.processed == 2
    assert result.errors == 0


def test_failed_link_counts_error_and_keeps_disruption() -> None:
    store = UnlinkableStore()
    pipeline = IngestionPipeline(
        news_fetcher=StaticFetcher(),
        weather_fetcher=StaticFetcher([_weather("Singapore,SG")]),
        shipping_fetcher=StaticShipping([]),
        classifier=LinkingClassifier(),
        store=store,
    )

    result = asyncio.run(pipeline.run())

    assert (result.processed, result.stored, result.errors) == (1, 0, 1)
    assert result.events == []
    assert len(store.disruptions) == 1
