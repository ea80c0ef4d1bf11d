"""What-if scenario simulation over the shipment network."""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import Any, Mapping

import structlog

from .catalog import LOCATIONS
from .errors import UnknownScenario
from .schemas import (
    Disruption,
    LinkedDisruption,
    ScenarioImpact,
    Shipment,
    SimulatedDisruption,
    SimulationResult,
    utcnow,
)
from .scoring import read_field

logger = structlog.get_logger(__name__)

SCENARIO_TYPES = ("port_closure", "weather_event", "geopolitical_crisis", "custom")

# USD of extra cost per hour of disruption.
PORT_CLOSURE_COST_PER_HOUR = 1000
WEATHER_COST_PER_HOUR = 500
GEOPOLITICAL_COST_PER_HOUR = 800

_SEVERITY_RANK = {"low": 0, "medium": 1, "high": 2, "critical": 3}

DEFAULT_STRATEGIC_SCENARIOS: list[dict[str, Any]] = [
    {
        "type": "port_closure",
        "params": {"port_id": "port_singapore", "closure_duration": 72, "reason": "technical failure"},
    },
    {
        "type": "weather_event",
        "params": {"location_id": "port_rotterdam", "event_type": "Storm", "severity": "high", "duration": 48},
    },
    {
        "type": "geopolitical_crisis",
        "params": {"region": "Asia", "crisis_type": "Trade Dispute", "severity": "high", "duration": 168},
    },
]


def _scenario_id() -> str:
    return f"scenario_{uuid.uuid4().hex[:12]}"


def affected_shipments(shipments: list[Shipment], disruptions: list[SimulatedDisruption]) -> list[Shipment]:
    """Shipments whose waypoints pass through any disrupted location."""
    locations = {disruption.location for disruption in disruptions}
    return [shipment for shipment in shipments if locations.intersection(shipment.waypoints)]


def scenario_impact(affected: list[Shipment], disruptions: list[SimulatedDisruption]) -> ScenarioImpact:
    worst = "low"
    for disruption in disruptions:
        if _SEVERITY_RANK[disruption.severity] > _SEVERITY_RANK[worst]:
            worst = disruption.severity
    return ScenarioImpact(
        total_delay=sum(disruption.delay_hours for disruption in disruptions),
        total_cost_increase=sum(disruption.cost_increase for disruption in disruptions),
        risk_level=worst,
        affected_shipment_count=len(affected),
    )


def scenario_recommendations(disruption: SimulatedDisruption | None, affected_count: int) -> list[str]:
    if disruption is None:
        return []

    recommendations: list[str] = []
    if disruption.type == "weather_event":
        recommendations.append("Monitor weather forecasts and prepare alternative routes")
        recommendations.append("Consider delaying non-critical shipments until conditions improve")
    elif disruption.type == "political_unrest":
        recommendations.append("Assess alternative suppliers in different regions")
        recommendations.append("Review and update risk mitigation strategies")
    elif disruption.type == "port_closure":
        recommendations.append("Implement immediate contingency plans")
        recommendations.append("Communicate delays to customers and stakeholders")

    if affected_count > 3:
        recommendations.append("Prioritize critical shipments for alternative routing")
        recommendations.append("Consider temporary inventory increases at destination locations")

    if disruption.severity == "critical":
        recommendations.append("Activate emergency response protocols")
        recommendations.append("Establish crisis management team")
    return recommendations


def linked_disruptions(result: SimulationResult, shipments: list[Shipment]) -> list[LinkedDisruption]:
    """Attach each synthesized disruption to every shipment routed through it."""
    links: list[LinkedDisruption] = []
    for disruption in result.disruptions:
        record = Disruption(
            id=disruption.id,
            type=disruption.type,
            location_type=LOCATIONS.get(disruption.location, {}).get("type", "port"),
            location=disruption.location,
            severity=disruption.severity,
            description=disruption.description,
            start_time=disruption.start_time,
            end_time=disruption.end_time,
            status="active",
        )
        for shipment in shipments:
            if disruption.location not in shipment.waypoints:
                continue
            links.append(
                LinkedDisruption(
                    shipment_id=shipment.id,
                    disruption_id=disruption.id,
                    impact_delay_hours=disruption.delay_hours,
                    reroute_needed=disruption.severity == "critical",
                    extra_cost=disruption.cost_increase,
                    disruption=record,
                )
            )
    return links


class ScenarioSimulator:
    """Synthesizes disruptions for a named scenario and measures their reach."""

    def __init__(self, locations: Mapping[str, Mapping[str, str]] | None = None):
        self.locations = dict(locations or LOCATIONS)

    def run(self, scenario_type: str, params: Mapping[str, Any] | None, shipments: list[Shipment]) -> SimulationResult:
        params = params or {}
        if scenario_type == "port_closure":
            name, description, disruptions = self._port_closure(params)
        elif scenario_type == "weather_event":
            name, description, disruptions = self._weather_event(params)
        elif scenario_type == "geopolitical_crisis":
            name, description, disruptions = self._geopolitical_crisis(params)
        elif scenario_type == "custom":
            name, description, disruptions = self._custom(params)
        else:
            raise UnknownScenario(f"Unknown scenario type: {scenario_type}")

        affected = affected_shipments(shipments, disruptions)
        result = SimulationResult(
            id=_scenario_id(),
            scenario_type=scenario_type,
            name=name,
            description=description,
            disruptions=disruptions,
            affected_shipments=[shipment.id for shipment in affected],
            impact=scenario_impact(affected, disruptions),
            recommendations=scenario_recommendations(disruptions[0] if disruptions else None, len(affected)),
        )
        logger.info(
            "scenario_simulated",
            scenario_type=scenario_type,
            disruptions=len(disruptions),
            affected_shipments=len(affected),
        )
        return result

    def _location(self, location_id: str) -> Mapping[str, str]:
        location = self.locations.get(location_id)
        if location is None:
            raise ValueError(f"Location not found: {location_id}")
        return location

    def _port_closure(self, params: Mapping[str, Any]) -> tuple[str, str, list[SimulatedDisruption]]:
        port_id = read_field(params, "port_id")
        hours = float(read_field(params, "closure_duration", 24))
        reason = read_field(params, "reason") or "technical issues"
        port = self._location(port_id)
        now = utcnow()
        disruption = SimulatedDisruption(
            id=f"sim_port_closure_{uuid.uuid4().hex[:8]}",
            type="port_closure",
            severity="critical",
            description=f"Port of {port['name']} closed due to {reason}",
            location=port_id,
            start_time=now,
            end_time=now + timedelta(hours=hours),
            delay_hours=hours,
            cost_increase=hours * PORT_CLOSURE_COST_PER_HOUR,
            probability=0.95,
        )
        return (
            f"Port Closure: {port['name']}",
            f"Simulation of {port['name']} closure for {hours:g} hours due to {reason}",
            [disruption],
        )

    def _weather_event(self, params: Mapping[str, Any]) -> tuple[str, str, list[SimulatedDisruption]]:
        location_id = read_field(params, "location_id")
        event_type = read_field(params, "event_type") or "Storm"
        hours = float(read_field(params, "duration", 24))
        location = self._location(location_id)
        now = utcnow()
        disruption = SimulatedDisruption(
            id=f"sim_weather_{uuid.uuid4().hex[:8]}",
            type="weather_event",
            severity=read_field(params, "severity") or "high",
            description=f"{event_type} affecting operations at {location['name']}",
            location=location_id,
            start_time=now,
            end_time=now + timedelta(hours=hours),
            delay_hours=hours,
            cost_increase=hours * WEATHER_COST_PER_HOUR,
            probability=0.8,
        )
        return (
            f"Weather Event: {event_type} at {location['name']}",
            f"Simulation of {event_type} affecting {location['name']} for {hours:g} hours",
            [disruption],
        )

    def _geopolitical_crisis(self, params: Mapping[str, Any]) -> tuple[str, str, list[SimulatedDisruption]]:
        region = read_field(params, "region")
        crisis_type = read_field(params, "crisis_type") or "Trade Dispute"
        hours = float(read_field(params, "duration", 24))
        severity = read_field(params, "severity") or "high"
        in_region = [location_id for location_id, info in self.locations.items() if info.get("region") == region]
        if not in_region:
            raise ValueError(f"No monitored locations in region: {region}")

        now = utcnow()
        disruptions = [
            SimulatedDisruption(
                id=f"sim_geopolitical_{uuid.uuid4().hex[:8]}_{location_id}",
                type="political_unrest",
                severity=severity,
                description=f"{crisis_type} affecting operations in {region} region",
                location=location_id,
                start_time=now,
                end_time=now + timedelta(hours=hours),
                delay_hours=hours,
                cost_increase=hours * GEOPOLITICAL_COST_PER_HOUR,
                probability=0.7,
            )
            for location_id in in_region
        ]
        return (
            f"Geopolitical Crisis: {crisis_type} in {region}",
            f"Simulation of {crisis_type} affecting {region} region for {hours:g} hours",
            disruptions,
        )

    def _custom(self, params: Mapping[str, Any]) -> tuple[str, str, list[SimulatedDisruption]]:
        raw = read_field(params, "disruptions")
        if not isinstance(raw, list) or not raw:
            raise ValueError("Custom scenario must include a non-empty disruptions list")

        disruptions = []
        for index, item in enumerate(raw, start=1):
            data = dict(item)
            data.setdefault("id", f"sim_custom_{uuid.uuid4().hex[:8]}_{index}")
            data.setdefault("type", "unknown")
            disruptions.append(SimulatedDisruption.model_validate(data))

        return (
            read_field(params, "name") or "Custom Scenario",
            read_field(params, "description") or "Custom simulation scenario",
            disruptions,
        )
