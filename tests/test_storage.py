"""In-memory store tests."""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone

import asyncpg
import pytest

from disruptwatch.catalog import default_shipments
from disruptwatch.errors import StorageFailure
from disruptwatch.schemas import ProcessedEvent
from disruptwatch.storage import MemoryDisruptionStore, PostgresDisruptionStore, build_links


def _event(**overrides) -> ProcessedEvent:
    data = {
        "type": "strike",
        "location_type": "port",
        "location_id": "Shanghai",
        "severity": "high",
        "description": "Dock strike",
        "start_time": datetime(2024, 2, 1, tzinfo=timezone.utc),
        "source": "news",
    }
    data.update(overrides)
    return ProcessedEvent(**data)


def test_build_links_defaults_missing_impact() -> None:
    links = build_links("d-1", _event(affected_shipments=["shipment_001", "shipment_002"]))
    assert [link.shipment_id for link in links] == ["shipment_001", "shipment_002"]
    assert all(link.impact_delay_hours == 0 and link.reroute_needed is False and link.extra_cost == 0 for link in links)
    assert build_links("d-1", _event()) == []


def test_store_and_link_disruption() -> None:
    store = MemoryDisruptionStore(shipments=default_shipments())
    event = _event(affected_shipments=["shipment_001"], impact_delay_hours=36, reroute_needed=True, extra_cost=2500)

    async def scenario():
        disruption_id = await store.store_disruption(event)
        linked = await store.link_disruption_to_shipments(disruption_id, event)
        return disruption_id, linked, await store.get_shipment_disruptions("shipment_001")

    disruption_id, linked, rows = asyncio.run(scenario())

    assert linked == 1
    assert len(rows) == 1
    assert rows[0].disruption.id == disruption_id
    assert rows[0].disruption.status == "active"
    assert rows[0].impact_delay_hours == 36
    assert rows[0].reroute_needed is True


def test_disruption_without_links_is_kept() -> None:
    store = MemoryDisruptionStore()

    async def scenario():
        disruption_id = await store.store_disruption(_event())
        linked = await store.link_disruption_to_shipments(disruption_id, _event())
        return linked, await store.get_active_disruptions()

    linked, active = asyncio.run(scenario())
    assert linked == 0
    assert len(active) == 1


def test_resolving_twice_overwrites_end_time() -> None:
    store = MemoryDisruptionStore()
    disruption_id = asyncio.run(store.store_disruption(_event()))

    asyncio.run(store.resolve_disruption(disruption_id))
    first = store.disruptions[disruption_id].end_time
    time.sleep(0.001)
    asyncio.run(store.resolve_disruption(disruption_id))
    second = store.disruptions[disruption_id]

    assert second.status == "resolved"
    assert second.end_time is not None and first is not None
    assert second.end_time > first
    assert asyncio.run(store.get_active_disruptions()) == []


def test_resolve_unknown_disruption_raises() -> None:
    with pytest.raises(KeyError):
        asyncio.run(MemoryDisruptionStore().resolve_disruption("missing"))


def test_update_port_status_matches_substring_case_insensitively() -> None:
    store = MemoryDisruptionStore(port_hubs={"Port of Shanghai": "normal", "Port of Busan": "normal"})
    matched = asyncio.run(store.update_port_status("shanghai", "congested"))
    assert matched == 1
    assert store.port_hubs == {"Port of Shanghai": "congested", "Port of Busan": "normal"}
    assert asyncio.run(store.update_port_status("Atlantis", "closed")) == 0


def test_deleting_either_side_removes_links() -> None:
    store = MemoryDisruptionStore(shipments=default_shipments())
    event = _event(affected_shipments=["shipment_001", "shipment_002"])

    async def scenario():
        disruption_id = await store.store_disruption(event)
        await store.link_disruption_to_shipments(disruption_id, event)
        await store.delete_shipment("shipment_001")
        after_shipment = len(store.links)
        await store.delete_disruption(disruption_id)
        return after_shipment, len(store.links)

    assert asyncio.run(scenario()) == (1, 0)


class ClosedPool:
    """Pool whose connections fail the way a closed asyncpg pool does."""

    def acquire(self):
        return self

    async def __aenter__(self):
        raise asyncpg.InterfaceError("pool is closed")

    async def __aexit__(self, *exc_info):
        return False


def test_postgres_interface_errors_become_storage_failures() -> None:
    store = PostgresDisruptionStore("postgresql://localhost/disruptions")
    store._pool = ClosedPool()

    with pytest.raises(StorageFailure):
        asyncio.run(store.update_port_status("Shanghai", "congested"))
    with pytest.raises(StorageFailure):
        asyncio.run(store.store_disruption(_event()))
    with pytest.raises(StorageFailure):
        asyncio.run(store.get_active_disruptions())
