"""Capabilities composed by the workflow orchestrator."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Mapping

import structlog
from pydantic import TypeAdapter

from .catalog import LOCATIONS, default_shipments
from .errors import DisruptWatchError
from .fetchers import ShippingFetcher, SignalFetcher
from .recommendations import build_recommendations
from .schemas import (
    AgentResponse,
    CollectedData,
    RiskAssessmentReport,
    RiskSummary,
    Shipment,
    ShipmentAssessment,
    SimulationResult,
    WeatherSignal,
    utcnow,
)
from .scoring import enhanced_shipment_risk, read_field, risk_level
from .simulation import ScenarioSimulator
from .storage import DisruptionStore

logger = structlog.get_logger(__name__)

_JSON = TypeAdapter(Any)


def to_jsonable(value: Any) -> Any:
    """Dump models, datetimes and nested containers to JSON-compatible values."""
    return _JSON.dump_python(value, mode="json")


def error_payload(exc: Exception, message: str) -> dict[str, Any]:
    return {
        "error": message,
        "error_type": getattr(exc, "code", type(exc).__name__),
        "details": str(exc),
    }


async def resolve_shipments(store: DisruptionStore | None, provided: Any = None) -> list[Shipment]:
    """Provided shipments win, then the store's shipments, then the reference set."""
    if provided is not None:
        return [Shipment.model_validate(item) for item in provided]
    if store is not None:
        try:
            stored = await store.list_shipments()
        except DisruptWatchError as exc:
            logger.warning("shipment_source_unavailable", error=str(exc), fallback="catalog")
        else:
            if stored:
                return stored
    return default_shipments()


class Capability:
    """Base unit of work with a uniform response envelope.

    ``execute`` raises on failure; ``process`` never does and reports failures
    as a low-confidence response.
    """

    agent_type = "Capability"
    confidence = 0.9
    failure_confidence = 0.1

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        self.is_active = False
        self.last_activity: datetime | None = None

    def start(self) -> None:
        self.is_active = True

    def stop(self) -> None:
        self.is_active = False

    def info(self) -> dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "agent_type": self.agent_type,
            "is_active": self.is_active,
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
        }

    def create_response(self, data: Any, confidence: float) -> AgentResponse:
        self.last_activity = utcnow()
        return AgentResponse(
            agent_id=self.agent_id,
            agent_type=self.agent_type,
            timestamp=self.last_activity,
            data=data,
            confidence=confidence,
        )

    async def execute(self, data: Mapping[str, Any]) -> Any:
        raise NotImplementedError

    async def process(self, data: Mapping[str, Any] | None = None) -> AgentResponse:
        try:
            result = await self.execute(data or {})
        except Exception as exc:
            logger.error("capability_failed", agent_type=self.agent_type, error=str(exc))
            return self.create_response(
                error_payload(exc, f"{self.agent_type} failed"),
                self.failure_confidence,
            )
        return self.create_response(to_jsonable(result), self.confidence)


class DataCollector(Capability):
    """Pulls one snapshot from every signal source concurrently."""

    agent_type = "DataCollector"

    def __init__(
        self,
        news_fetcher: SignalFetcher,
        weather_fetcher: SignalFetcher,
        shipping_fetcher: ShippingFetcher,
        agent_id: str = "data_collector_001",
    ):
        super().__init__(agent_id)
        self.news_fetcher = news_fetcher
        self.weather_fetcher = weather_fetcher
        self.shipping_fetcher = shipping_fetcher

    async def execute(self, data: Mapping[str, Any]) -> CollectedData:
        news, weather, shipping, ports = await asyncio.gather(
            self.news_fetcher.fetch(),
            self.weather_fetcher.fetch(),
            self.shipping_fetcher.fetch(),
            self.shipping_fetcher.fetch_port_status(),
        )
        logger.info(
            "data_collected",
            news=len(news),
            weather=len(weather),
            shipping=len(shipping),
            ports=len(ports),
        )
        return CollectedData(news=news, weather=weather, shipping=shipping, ports=ports)


def weather_exposure(shipment: Shipment, severe: list[WeatherSignal]) -> list[str]:
    """Waypoints whose city currently reports severe weather."""
    exposed = []
    for waypoint in shipment.waypoints:
        name = LOCATIONS.get(waypoint, {}).get("name", "").lower()
        if name and any(name in reading.location.lower() for reading in severe):
            exposed.append(waypoint)
    return exposed


class RiskAssessor(Capability):
    """Scores every shipment from its legs and linked disruptions."""

    agent_type = "RiskAssessment"
    confidence = 0.85

    def __init__(self, store: DisruptionStore | None = None, agent_id: str = "risk_assessor_001"):
        super().__init__(agent_id)
        self.store = store

    async def _disruptions_for(self, shipment: Shipment, provided: Any) -> list[Any]:
        if provided is not None:
            return [item for item in provided if read_field(item, "shipment_id") == shipment.id]
        if self.store is None:
            return []
        try:
            return await self.store.get_shipment_disruptions(shipment.id)
        except DisruptWatchError as exc:
            logger.warning("shipment_disruptions_unavailable", shipment_id=shipment.id, error=str(exc))
            return []

    async def execute(self, data: Mapping[str, Any]) -> RiskAssessmentReport:
        shipments = await resolve_shipments(self.store, read_field(data, "shipments"))
        provided = read_field(data, "disruptions")
        severe = [
            WeatherSignal.model_validate(reading)
            for reading in read_field(data, "weather") or []
        ]
        severe = [reading for reading in severe if reading.risk_level >= 4]

        assessments = []
        for shipment in shipments:
            linked = await self._disruptions_for(shipment, provided)
            assessments.append(
                ShipmentAssessment(
                    shipment_id=shipment.id,
                    risk=enhanced_shipment_risk(shipment.ordered_routes(), linked),
                    weather_exposure=weather_exposure(shipment, severe),
                )
            )
        return RiskAssessmentReport(assessments=assessments, summary=summarize_assessments(assessments))


def summarize_assessments(assessments: list[ShipmentAssessment]) -> RiskSummary:
    if not assessments:
        return RiskSummary()
    levels = [assessment.risk.risk_level for assessment in assessments]
    average = round(sum(assessment.risk.total_risk for assessment in assessments) / len(assessments), 1)
    return RiskSummary(
        total_shipments=len(assessments),
        high_risk_shipments=levels.count("high"),
        medium_risk_shipments=levels.count("medium"),
        low_risk_shipments=levels.count("low"),
        average_risk=average,
        risk_level=risk_level(average),
    )


class Simulator(Capability):
    agent_type = "Simulation"

    def __init__(
        self,
        simulator: ScenarioSimulator | None = None,
        store: DisruptionStore | None = None,
        agent_id: str = "simulation_agent_001",
    ):
        super().__init__(agent_id)
        self.simulator = simulator or ScenarioSimulator()
        self.store = store

    async def execute(self, data: Mapping[str, Any]) -> SimulationResult:
        shipments = await resolve_shipments(self.store, read_field(data, "shipments"))
        return self.simulator.run(
            read_field(data, "scenario_type"),
            read_field(data, "scenario_params"),
            shipments,
        )


class StrategyRecommender(Capability):
    agent_type = "StrategyRecommender"

    def __init__(self, store: DisruptionStore | None = None, agent_id: str = "strategy_recommender_001"):
        super().__init__(agent_id)
        self.store = store

    async def execute(self, data: Mapping[str, Any]) -> dict[str, Any]:
        shipments = await resolve_shipments(self.store, read_field(data, "shipments"))
        assessments = [
            ShipmentAssessment.model_validate(item) for item in read_field(data, "assessments") or []
        ]
        simulations = [
            SimulationResult.model_validate(item) for item in read_field(data, "simulations") or []
        ]
        return build_recommendations(shipments, assessments, simulations)
