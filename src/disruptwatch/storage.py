"""Disruption persistence for PostgreSQL and an in-memory store."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

import asyncpg
import structlog

from .errors import StorageFailure
from .schemas import Disruption, LinkedDisruption, ProcessedEvent, Route, Shipment, ShipmentDisruptionLink

logger = structlog.get_logger(__name__)

# Driver and transport failures surfaced to callers as StorageFailure.
_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class DisruptionStore(Protocol):
    """Persistence operations used by ingestion and orchestration."""

    async def store_disruption(self, event: ProcessedEvent) -> str: ...

    async def link_disruption_to_shipments(self, disruption_id: str, event: ProcessedEvent) -> int: ...

    async def update_port_status(self, location_id: str, status: str) -> int: ...

    async def get_active_disruptions(self) -> list[Disruption]: ...

    async def resolve_disruption(self, disruption_id: str) -> None: ...

    async def list_shipments(self) -> list[Shipment]: ...

    async def get_shipment_disruptions(self, shipment_id: str) -> list[LinkedDisruption]: ...


def build_links(disruption_id: str, event: ProcessedEvent) -> list[ShipmentDisruptionLink]:
    """One link per affected shipment; absent impact fields default to zero/False."""
    return [
        ShipmentDisruptionLink(
            shipment_id=shipment_id,
            disruption_id=disruption_id,
            impact_delay_hours=event.impact_delay_hours or 0.0,
            reroute_needed=bool(event.reroute_needed),
            extra_cost=event.extra_cost or 0.0,
        )
        for shipment_id in event.affected_shipments or []
    ]


class PostgresDisruptionStore:
    """Thin async storage wrapper over an asyncpg pool."""

    def __init__(self, database_url: str):
        self._database_url = database_url
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        self._pool = await asyncpg.create_pool(self._database_url, min_size=1, max_size=5)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise StorageFailure("Storage is not connected")
        return self._pool

    async def store_disruption(self, event: ProcessedEvent) -> str:
        query = """
            INSERT INTO disruptions (
                id,
                type,
                location_type,
                location,
                severity,
                description,
                start_time,
                end_time,
                status,
                confidence,
                source,
                raw_data
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, 'active', $9, $10, $11::jsonb)
        """
        disruption_id = str(uuid.uuid4())
        try:
            async with self._require_pool().acquire() as conn:
                await conn.execute(
                    query,
                    disruption_id,
                    event.type,
                    event.location_type,
                    event.location_id,
                    event.severity,
                    event.description,
                    event.start_time,
                    event.end_time,
                    event.confidence,
                    event.source,
                    json.dumps(event.raw_data, default=str),
                )
        except _DB_ERRORS as exc:
            logger.error("disruption_store_failed", type=event.type, location=event.location_id, error=str(exc))
            raise StorageFailure(f"Failed to store disruption: {exc}") from exc

        logger.info("disruption_stored", id=disruption_id, type=event.type, severity=event.severity)
        return disruption_id

    async def link_disruption_to_shipments(self, disruption_id: str, event: ProcessedEvent) -> int:
        links = build_links(disruption_id, event)
        if not links:
            return 0

        query = """
            INSERT INTO shipment_disruptions (
                shipment_id,
                disruption_id,
                impact_delay_hours,
                reroute_needed,
                extra_cost
            ) VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (shipment_id, disruption_id) DO NOTHING
        """
        try:
            async with self._require_pool().acquire() as conn:
                await conn.executemany(
                    query,
                    [
                        (
                            link.shipment_id,
                            link.disruption_id,
                            link.impact_delay_hours,
                            link.reroute_needed,
                            link.extra_cost,
                        )
                        for link in links
                    ],
                )
        except _DB_ERRORS as exc:
            raise StorageFailure(f"Failed to link disruption {disruption_id}: {exc}") from exc

        logger.info("disruption_linked", disruption_id=disruption_id, shipment_count=len(links))
        return len(links)

    async def update_port_status(self, location_id: str, status: str) -> int:
        query = """
            UPDATE port_hubs
            SET status = $2, updated_at = NOW()
            WHERE name ILIKE '%' || $1 || '%'
        """
        try:
            async with self._require_pool().acquire() as conn:
                result = await conn.execute(query, location_id, status)
        except _DB_ERRORS as exc:
            raise StorageFailure(f"Failed to update port status for {location_id}: {exc}") from exc

        # asyncpg returns the command tag, e.g. "UPDATE 2".
        matched = int(result.split()[-1]) if result else 0
        logger.debug("port_status_updated", location_id=location_id, status=status, matched=matched)
        return matched

    async def get_active_disruptions(self) -> list[Disruption]:
        query = """
            SELECT id, type, location_type, location, severity, description, start_time, end_time, status
            FROM disruptions
            WHERE status = 'active'
            ORDER BY start_time DESC
        """
        try:
            async with self._require_pool().acquire() as conn:
                rows = await conn.fetch(query)
        except _DB_ERRORS as exc:
            raise StorageFailure(f"Failed to load active disruptions: {exc}") from exc
        return [Disruption.model_validate(dict(row)) for row in rows]

    async def resolve_disruption(self, disruption_id: str) -> None:
        query = """
            UPDATE disruptions
            SET status = 'resolved', end_time = NOW()
            WHERE id = $1
        """
        try:
            async with self._require_pool().acquire() as conn:
                result = await conn.execute(query, disruption_id)
        except _DB_ERRORS as exc:
            raise StorageFailure(f"Failed to resolve disruption {disruption_id}: {exc}") from exc

        if result == "UPDATE 0":
            raise KeyError(disruption_id)
        logger.info("disruption_resolved", id=disruption_id)

    async def list_shipments(self) -> list[Shipment]:
        shipments_query = """
            SELECT id, supplier, origin, destination, waypoints
            FROM shipments
            ORDER BY id
        """
        routes_query = """
            SELECT shipment_id, mode, travel_time_est, cost_est,
                   from_location_type, to_location_type, sequence_number
            FROM routes
            ORDER BY shipment_id, sequence_number
        """
        try:
            async with self._require_pool().acquire() as conn:
                shipment_rows = await conn.fetch(shipments_query)
                route_rows = await conn.fetch(routes_query)
        except _DB_ERRORS as exc:
            raise StorageFailure(f"Failed to load shipments: {exc}") from exc

        routes: dict[str, list[Route]] = {}
        for row in route_rows:
            routes.setdefault(row["shipment_id"], []).append(Route.model_validate(dict(row)))

        return [
            Shipment(
                id=row["id"],
                supplier=row["supplier"] or "",
                origin=row["origin"] or "",
                destination=row["destination"] or "",
                waypoints=list(row["waypoints"] or []),
                routes=routes.get(row["id"], []),
            )
            for row in shipment_rows
        ]

    async def get_shipment_disruptions(self, shipment_id: str) -> list[LinkedDisruption]:
        query = """
            SELECT sd.shipment_id, sd.disruption_id, sd.impact_delay_hours, sd.reroute_needed, sd.extra_cost,
                   d.id, d.type, d.location_type, d.location, d.severity, d.description,
                   d.start_time, d.end_time, d.status
            FROM shipment_disruptions sd
            JOIN disruptions d ON d.id = sd.disruption_id
            WHERE sd.shipment_id = $1
            ORDER BY d.start_time DESC
        """
        try:
            async with self._require_pool().acquire() as conn:
                rows = await conn.fetch(query, shipment_id)
        except _DB_ERRORS as exc:
            raise StorageFailure(f"Failed to load disruptions for {shipment_id}: {exc}") from exc

        return [_linked_from_row(dict(row)) for row in rows]


def _linked_from_row(row: dict[str, Any]) -> LinkedDisruption:
    return LinkedDisruption(
        shipment_id=row["shipment_id"],
        disruption_id=row["disruption_id"],
        impact_delay_hours=row["impact_delay_hours"] or 0.0,
        reroute_needed=bool(row["reroute_needed"]),
        extra_cost=row["extra_cost"] or 0.0,
        disruption=Disruption(
            id=row["id"],
            type=row["type"],
            location_type=row["location_type"],
            location=row["location"],
            severity=row["severity"],
            description=row["description"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            status=row["status"],
        ),
    )


class MemoryDisruptionStore:
    """Process-local store for dry runs and tests."""

    def __init__(
        self,
        port_hubs: dict[str, str] | None = None,
        shipments: list[Shipment] | None = None,
    ):
        self.disruptions: dict[str, Disruption] = {}
        self.links: dict[tuple[str, str], ShipmentDisruptionLink] = {}
        self.port_hubs: dict[str, str] = dict(port_hubs or {})
        self.shipments: dict[str, Shipment] = {shipment.id: shipment for shipment in shipments or []}

    async def store_disruption(self, event: ProcessedEvent) -> str:
        disruption_id = str(uuid.uuid4())
        self.disruptions[disruption_id] = Disruption(
            id=disruption_id,
            type=event.type,
            location_type=event.location_type,
            location=event.location_id,
            severity=event.severity,
            description=event.description,
            start_time=event.start_time,
            end_time=event.end_time,
            status="active",
        )
        return disruption_id

    async def link_disruption_to_shipments(self, disruption_id: str, event: ProcessedEvent) -> int:
        links = build_links(disruption_id, event)
        for link in links:
            self.links.setdefault((link.shipment_id, link.disruption_id), link)
        return len(links)

    async def update_port_status(self, location_id: str, status: str) -> int:
        needle = location_id.lower()
        matched = [name for name in self.port_hubs if needle in name.lower()]
        for name in matched:
            self.port_hubs[name] = status
        return len(matched)

    async def get_active_disruptions(self) -> list[Disruption]:
        active = [d for d in self.disruptions.values() if d.status == "active"]
        return sorted(active, key=lambda d: d.start_time, reverse=True)

    async def resolve_disruption(self, disruption_id: str) -> None:
        current = self.disruptions[disruption_id]
        self.disruptions[disruption_id] = current.model_copy(
            update={"status": "resolved", "end_time": datetime.now(timezone.utc)}
        )

    async def delete_disruption(self, disruption_id: str) -> None:
        self.disruptions.pop(disruption_id, None)
        for key in [key for key in self.links if key[1] == disruption_id]:
            del self.links[key]

    async def delete_shipment(self, shipment_id: str) -> None:
        self.shipments.pop(shipment_id, None)
        for key in [key for key in self.links if key[0] == shipment_id]:
            del self.links[key]

    async def list_shipments(self) -> list[Shipment]:
        return list(self.shipments.values())

    async def get_shipment_disruptions(self, shipment_id: str) -> list[LinkedDisruption]:
        return [
            LinkedDisruption(**link.model_dump(), disruption=self.disruptions.get(link.disruption_id))
            for (linked_shipment, _), link in self.links.items()
            if linked_shipment == shipment_id
        ]
