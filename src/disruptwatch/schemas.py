"""Data schemas for disruptwatch."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


EventType = Literal["strike", "weather", "congestion", "geopolitical", "technical", "other"]
LocationType = Literal["port", "warehouse", "route", "supplier", "customer"]
Severity = Literal["low", "medium", "high", "critical"]
DisruptionStatus = Literal["active", "monitoring", "resolved"]
TransportMode = Literal["sea", "air", "road", "rail"]
RiskLevel = Literal["low", "medium", "high"]
CongestionLevel = Literal["low", "medium", "high"]


class NewsSignal(BaseModel):
    """Headline pulled from a news source."""

    kind: Literal["news"] = "news"
    title: str
    description: str = ""
    published_at: datetime = Field(default_factory=utcnow)
    url: str = ""
    source: str = "Unknown"


class WeatherSignal(BaseModel):
    """Current conditions at a monitored hub."""

    kind: Literal["weather"] = "weather"
    location: str
    temperature: float = 0.0
    humidity: float = 0.0
    wind_speed: float = 0.0
    conditions: str = "Unknown"
    risk_level: int = Field(ge=1, le=5)


class ShippingSignal(BaseModel):
    """Vessel position and schedule slip."""

    kind: Literal["shipping"] = "shipping"
    vessel_id: str
    location: str
    status: str
    eta: datetime
    delay_hours: float = Field(ge=0.0)


RawSignal = Annotated[Union[NewsSignal, WeatherSignal, ShippingSignal], Field(discriminator="kind")]


class ProcessedEvent(BaseModel):
    """Structured disruption extracted from exactly one raw signal."""

    model_config = ConfigDict(frozen=True)

    type: EventType
    location_type: LocationType
    location_id: str = Field(min_length=1)
    severity: Severity
    description: str = Field(min_length=1)
    start_time: datetime
    end_time: datetime | None = None
    confidence: float = 0.5
    source: str
    raw_data: dict[str, Any] = Field(default_factory=dict)
    affected_shipments: list[str] | None = None
    impact_delay_hours: float | None = None
    reroute_needed: bool | None = None
    extra_cost: float | None = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        if value is None or value == "":
            return 0.5
        confidence = float(value)
        if not math.isfinite(confidence):
            return 0.5
        return min(max(confidence, 0.0), 1.0)


class Disruption(BaseModel):
    """Persisted disruption record."""

    id: str
    type: str
    location_type: str
    location: str
    severity: str
    description: str
    start_time: datetime
    end_time: datetime | None = None
    status: DisruptionStatus = "active"


class ShipmentDisruptionLink(BaseModel):
    shipment_id: str
    disruption_id: str
    impact_delay_hours: float = 0.0
    reroute_needed: bool = False
    extra_cost: float = 0.0


class LinkedDisruption(ShipmentDisruptionLink):
    """Link row joined with its disruption, as consumed by the risk scorer."""

    disruption: Disruption | None = None


class Route(BaseModel):
    """One transport leg of a shipment."""

    shipment_id: str = ""
    mode: TransportMode
    travel_time_est: float = Field(ge=0.0)
    cost_est: float = Field(ge=0.0)
    from_location_type: str
    to_location_type: str
    sequence_number: int = 0


class Shipment(BaseModel):
    """Tracked movement of goods with its ordered legs."""

    id: str
    supplier: str = ""
    origin: str = ""
    destination: str = ""
    waypoints: list[str] = Field(default_factory=list)
    routes: list[Route] = Field(default_factory=list)

    def ordered_routes(self) -> list[Route]:
        return sorted(self.routes, key=lambda route: route.sequence_number)


class PortStatus(BaseModel):
    name: str
    status: str
    wait_time_hours: float = Field(ge=0.0)
    congestion_level: CongestionLevel
    timestamp: datetime = Field(default_factory=utcnow)


class RiskBreakdown(BaseModel):
    transport_mode: float = 0.0
    travel_time: float = 0.0
    cost: float = 0.0
    location_type: float = 0.0
    disruption_impact: float = 0.0


class RiskScore(BaseModel):
    """Composite shipment risk, recomputed on demand."""

    base_risk: float = Field(ge=0.0, le=100.0)
    disruption_risk: float = Field(ge=0.0, le=100.0)
    total_risk: float = Field(ge=0.0, le=100.0)
    risk_level: RiskLevel
    disruption_count: int = Field(ge=0)
    active_disruptions: int = Field(ge=0)
    breakdown: RiskBreakdown = Field(default_factory=RiskBreakdown)
    degraded: bool = False


class ScoreResult(BaseModel):
    """Score tagged with whether the documented fallback value was used."""

    value: float = Field(ge=0.0, le=100.0)
    fallback: bool = False
    error: str | None = None


class IngestResult(BaseModel):
    processed: int = 0
    stored: int = 0
    errors: int = 0
    events: list[ProcessedEvent] = Field(default_factory=list)


class AgentResponse(BaseModel):
    """Uniform envelope returned by every capability and the orchestrator."""

    agent_id: str
    agent_type: str
    timestamp: datetime = Field(default_factory=utcnow)
    data: Any = None
    confidence: float = Field(ge=0.0, le=1.0)


class WorkflowRequest(BaseModel):
    workflow: str | None = None
    input_data: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("input_data", "inputData"),
    )


class WorkflowRun(BaseModel):
    """History entry for one workflow invocation."""

    model_config = ConfigDict(frozen=True)

    workflow_id: str
    workflow_name: str
    start_time: datetime
    end_time: datetime
    execution_time_ms: float = Field(ge=0.0)
    status: Literal["completed", "failed"]
    result: dict[str, Any] | None = None
    error_message: str | None = None


class CollectedData(BaseModel):
    """Snapshot gathered by the data collection capability."""

    news: list[NewsSignal] = Field(default_factory=list)
    weather: list[WeatherSignal] = Field(default_factory=list)
    shipping: list[ShippingSignal] = Field(default_factory=list)
    ports: list[PortStatus] = Field(default_factory=list)
    collected_at: datetime = Field(default_factory=utcnow)

    def severe_weather(self, min_risk_level: int = 4) -> list[WeatherSignal]:
        return [reading for reading in self.weather if reading.risk_level >= min_risk_level]

    def congested_ports(self) -> list[PortStatus]:
        return [port for port in self.ports if port.congestion_level == "high"]


class ShipmentAssessment(BaseModel):
    shipment_id: str
    risk: RiskScore
    weather_exposure: list[str] = Field(default_factory=list)


class RiskSummary(BaseModel):
    total_shipments: int = 0
    high_risk_shipments: int = 0
    medium_risk_shipments: int = 0
    low_risk_shipments: int = 0
    average_risk: float = 0.0
    risk_level: RiskLevel = "low"


class RiskAssessmentReport(BaseModel):
    assessments: list[ShipmentAssessment] = Field(default_factory=list)
    summary: RiskSummary = Field(default_factory=RiskSummary)
    timestamp: datetime = Field(default_factory=utcnow)


class SimulatedDisruption(BaseModel):
    """Hypothetical disruption synthesized for a what-if scenario."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: str
    severity: Severity = "high"
    description: str = ""
    location: str
    start_time: datetime = Field(default_factory=utcnow)
    end_time: datetime | None = None
    delay_hours: float = Field(default=0.0, ge=0.0, validation_alias=AliasChoices("delay_hours", "delayHours"))
    cost_increase: float = Field(
        default=0.0,
        ge=0.0,
        validation_alias=AliasChoices("cost_increase", "costIncrease"),
    )
    probability: float = Field(default=1.0, ge=0.0, le=1.0)


class ScenarioImpact(BaseModel):
    total_delay: float = 0.0
    total_cost_increase: float = 0.0
    risk_level: Severity = "low"
    affected_shipment_count: int = 0


class SimulationResult(BaseModel):
    id: str
    scenario_type: str
    name: str
    description: str
    disruptions: list[SimulatedDisruption] = Field(default_factory=list)
    affected_shipments: list[str] = Field(default_factory=list)
    impact: ScenarioImpact = Field(default_factory=ScenarioImpact)
    recommendations: list[str] = Field(default_factory=list)


class Alert(BaseModel):
    id: str
    type: Literal["risk_alert", "weather_alert", "congestion_alert"]
    severity: Severity
    title: str
    message: str
    timestamp: datetime = Field(default_factory=utcnow)
    actionable: bool = True
