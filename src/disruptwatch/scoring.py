"""Deterministic shipment risk scoring."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, Iterable

import structlog

from .schemas import RiskBreakdown, RiskScore, ScoreResult

logger = structlog.get_logger(__name__)

DISRUPTION_RISK_FALLBACK = 15
BASE_WEIGHT = 0.4
DISRUPTION_WEIGHT = 0.6

_MODE_POINTS = {"sea": 25, "road": 20, "air": 15, "rail": 10}
_DEFAULT_MODE_POINTS = 15

_TYPE_POINTS = {
    "port_closure": 30,
    "political_unrest": 28,
    "carrier_strike": 25,
    "infrastructure_failure": 22,
    "weather_event": 20,
    "border_delay": 18,
    "fuel_spike": 15,
    "unknown": 10,
}
_DEFAULT_TYPE_POINTS = 15
_SEVERITY_POINTS = {"critical": 25, "high": 20, "medium": 15, "low": 10}
_STATUS_POINTS = {"active": 20, "monitoring": 10, "resolved": 0}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def read_field(obj: Any, name: str, default: Any = None) -> Any:
    """Read a snake_case (or camelCase) field from a model or mapping."""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        if name in obj:
            return obj[name]
        return obj.get(_camel(name), default)
    return getattr(obj, name, default)


def _round(value: float) -> int:
    # Half-up rounding; round() would send 2.5 to 2.
    return int(math.floor(value + 0.5))


def _clamp(value: float) -> int:
    return max(0, min(100, int(value)))


def _travel_time_points(hours: float) -> int:
    if hours > 72:
        return 20
    if hours > 48:
        return 15
    if hours > 24:
        return 10
    return 0


def _cost_points(cost: float) -> int:
    if cost > 10000:
        return -10
    if cost < 1000:
        return 10
    return 0


def _location_points(from_type: str | None, to_type: str | None) -> int:
    points = 0
    if "port" in (from_type, to_type):
        points += 5
    if "warehouse" in (from_type, to_type):
        points -= 5
    return points


def route_risk(route: Any) -> int:
    """Risk of one transport leg from mode, duration, cost and endpoints."""
    risk = _MODE_POINTS.get(read_field(route, "mode"), _DEFAULT_MODE_POINTS)
    risk += _travel_time_points(read_field(route, "travel_time_est") or 0)
    risk += _cost_points(read_field(route, "cost_est") or 0)
    risk += _location_points(read_field(route, "from_location_type"), read_field(route, "to_location_type"))
    return _clamp(risk)


def disruption_risk_result(disruption: Any) -> ScoreResult:
    """Score a disruption, tagging the result when the fallback value is used."""
    try:
        disruption_type = read_field(disruption, "type") or "unknown"
        severity = read_field(disruption, "severity") or "medium"
        status = read_field(disruption, "status") or "monitoring"
        impact_hours = read_field(disruption, "impact_delay_hours") or 0
        reroute_needed = bool(read_field(disruption, "reroute_needed") or False)
        extra_cost = read_field(disruption, "extra_cost") or 0

        risk = _TYPE_POINTS.get(disruption_type, _DEFAULT_TYPE_POINTS)
        risk += _SEVERITY_POINTS.get(severity, 15)
        risk += _STATUS_POINTS.get(status, 10)

        if impact_hours > 72:
            risk += 20
        elif impact_hours > 48:
            risk += 15
        elif impact_hours > 24:
            risk += 10
        elif impact_hours > 0:
            risk += 5

        if reroute_needed:
            risk += 15

        if extra_cost > 5000:
            risk += 10
        elif extra_cost > 1000:
            risk += 5

        return ScoreResult(value=_clamp(risk))
    except Exception as exc:
        logger.error("disruption_risk_failed", error=str(exc), disruption=repr(disruption)[:200])
        return ScoreResult(value=DISRUPTION_RISK_FALLBACK, fallback=True, error=str(exc))


def disruption_risk(disruption: Any) -> int:
    return int(disruption_risk_result(disruption).value)


def shipment_risk(routes: Iterable[Any]) -> int:
    """Mean route risk across all legs, 0 for a shipment without legs."""
    risks = [route_risk(route) for route in routes or []]
    if not risks:
        return 0
    return _round(sum(risks) / len(risks))


def risk_level(score: float) -> str:
    """Risk service policy: low < 30 <= medium < 70 <= high."""
    if score < 30:
        return "low"
    if score < 70:
        return "medium"
    return "high"


def display_risk_level(score: float) -> str:
    """Dashboard policy: low < 30 <= medium < 60 <= high."""
    if score < 30:
        return "low"
    if score < 60:
        return "medium"
    return "high"


def disruption_pressure_level(active_disruptions: int) -> str:
    if active_disruptions == 0:
        return "low"
    if active_disruptions <= 2:
        return "medium"
    return "high"


def _is_valid_disruption(nested: Any) -> bool:
    return bool(
        nested is not None
        and read_field(nested, "type")
        and read_field(nested, "severity")
        and read_field(nested, "status")
    )


def _disruption_factors(linked: Any, nested: Any) -> dict[str, Any]:
    return {
        "type": read_field(nested, "type"),
        "severity": read_field(nested, "severity"),
        "status": read_field(nested, "status"),
        "impact_delay_hours": read_field(linked, "impact_delay_hours", 0),
        "reroute_needed": read_field(linked, "reroute_needed", False),
        "extra_cost": read_field(linked, "extra_cost", 0),
    }


def risk_breakdown(routes: Iterable[Any], disruption_scores: list[int]) -> RiskBreakdown:
    """Per-factor means over legs with complete estimates, for explainability."""
    mode_total = time_total = cost_total = location_total = 0
    valid_routes = 0
    for route in routes or []:
        mode = read_field(route, "mode")
        hours = read_field(route, "travel_time_est")
        cost = read_field(route, "cost_est")
        if not mode or hours is None or cost is None:
            logger.warning("route_skipped_in_breakdown", route=repr(route)[:200])
            continue
        mode_total += _MODE_POINTS.get(mode, _DEFAULT_MODE_POINTS)
        time_total += _travel_time_points(hours)
        cost_total += _cost_points(cost)
        location_total += _location_points(
            read_field(route, "from_location_type"), read_field(route, "to_location_type")
        )
        valid_routes += 1

    breakdown = RiskBreakdown()
    if valid_routes:
        breakdown.transport_mode = _round(mode_total / valid_routes)
        breakdown.travel_time = _round(time_total / valid_routes)
        breakdown.cost = _round(cost_total / valid_routes)
        breakdown.location_type = _round(location_total / valid_routes)
    if disruption_scores:
        breakdown.disruption_impact = _round(sum(disruption_scores) / len(disruption_scores))
    return breakdown


def _base_only(routes: Iterable[Any]) -> RiskScore:
    try:
        base = shipment_risk(routes)
    except Exception as exc:
        logger.error("shipment_risk_failed", error=str(exc))
        base = 0
    return RiskScore(
        base_risk=base,
        disruption_risk=0,
        total_risk=base,
        risk_level=risk_level(base),
        disruption_count=0,
        active_disruptions=0,
        degraded=True,
    )


def enhanced_shipment_risk(routes: Iterable[Any], disruptions: Iterable[Any] | None = None) -> RiskScore:
    """Blend route risk with the risk of linked disruptions.

    ``disruptions`` are shipment/disruption links carrying a nested
    ``disruption``. Links whose nested disruption lacks type, severity or
    status are skipped and not counted. With no valid disruption the total is
    the base route risk; otherwise 40% base and 60% mean disruption risk.
    """
    routes = list(routes or [])
    try:
        base = shipment_risk(routes)
        scores: list[int] = []
        active = 0
        for linked in disruptions or []:
            nested = read_field(linked, "disruption")
            if not _is_valid_disruption(nested):
                logger.warning("invalid_disruption_skipped", link=repr(linked)[:200])
                continue
            scores.append(disruption_risk(_disruption_factors(linked, nested)))
            if read_field(nested, "status") == "active":
                active += 1

        disruption_score = _round(sum(scores) / len(scores)) if scores else 0
        if scores:
            total = min(100, _round(base * BASE_WEIGHT + disruption_score * DISRUPTION_WEIGHT))
        else:
            total = base

        return RiskScore(
            base_risk=base,
            disruption_risk=disruption_score,
            total_risk=total,
            risk_level=risk_level(total),
            disruption_count=len(scores),
            active_disruptions=active,
            breakdown=risk_breakdown(routes, scores),
        )
    except Exception as exc:
        logger.error("enhanced_shipment_risk_failed", error=str(exc))
        return _base_only(routes)
