"""Scoring unit tests."""

from datetime import datetime, timezone

from disruptwatch.schemas import Disruption, LinkedDisruption, Route
from disruptwatch.scoring import (
    disruption_pressure_level,
    disruption_risk,
    disruption_risk_result,
    display_risk_level,
    enhanced_shipment_risk,
    risk_level,
    route_risk,
    shipment_risk,
)


def _route(**overrides) -> Route:
    data = {
        "mode": "sea",
        "travel_time_est": 80,
        "cost_est": 5000,
        "from_location_type": "port",
        "to_location_type": "warehouse",
    }
    data.update(overrides)
    return Route(**data)


def _linked(shipment_id: str = "shipment_001", **disruption_overrides) -> LinkedDisruption:
    disruption = {
        "id": "d-1",
        "type": "port_closure",
        "location_type": "port",
        "location": "port_singapore",
        "severity": "critical",
        "description": "closed",
        "start_time": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "status": "active",
    }
    disruption.update(disruption_overrides)
    return LinkedDisruption(
        shipment_id=shipment_id,
        disruption_id="d-1",
        impact_delay_hours=100,
        reroute_needed=True,
        extra_cost=6000,
        disruption=Disruption(**disruption),
    )


def test_route_risk_sea_long_port_to_warehouse() -> None:
    # 25 + 20 + 0 + 5 - 5
    assert route_risk(_route()) == 45


def test_route_risk_accepts_camel_case_mapping() -> None:
    route = {
        "mode": "sea",
        "travelTimeEst": 80,
        "costEst": 5000,
        "fromLocationType": "port",
        "toLocationType": "warehouse",
    }
    assert route_risk(route) == 45


def test_route_risk_cheap_sea_port_to_customer() -> None:
    route = {
        "mode": "sea",
        "travelTimeEst": 80,
        "costEst": 500,
        "fromLocationType": "port",
        "toLocationType": "customer",
    }
    assert route_risk(route) == 60


def test_disruption_risk_documented_example() -> None:
    data = {
        "type": "port_closure",
        "severity": "critical",
        "status": "active",
        "impactDelayHours": 80,
        "rerouteNeeded": True,
        "extraCost": 6000,
    }
    assert disruption_risk(data) == 100
    assert disruption_risk_result(data).fallback is False


def test_route_risk_cheap_short_rail() -> None:
    assert route_risk(_route(mode="rail", travel_time_est=10, cost_est=500,
                             from_location_type="supplier", to_location_type="customer")) == 20


def test_route_risk_stays_in_bounds() -> None:
    for mode in ("sea", "air", "road", "rail"):
        for hours in (0, 30, 50, 100):
            for cost in (0, 5000, 20000):
                score = route_risk(_route(mode=mode, travel_time_est=hours, cost_est=cost))
                assert 0 <= score <= 100


def test_disruption_risk_clamps_at_100() -> None:
    data = {
        "type": "port_closure",
        "severity": "critical",
        "status": "active",
        "impact_delay_hours": 100,
        "reroute_needed": True,
        "extra_cost": 6000,
    }
    assert disruption_risk(data) == 100


def test_disruption_risk_defaults_missing_fields() -> None:
    # unknown 10 + medium 15 + monitoring 10
    assert disruption_risk({}) == 35


def test_disruption_risk_unlisted_type_uses_other() -> None:
    assert disruption_risk({"type": "volcano", "severity": "low", "status": "resolved"}) == 25


def test_disruption_risk_falls_back_on_bad_input() -> None:
    result = disruption_risk_result({"impact_delay_hours": "many"})
    assert result.fallback is True
    assert result.value == 15
    assert result.error
    assert disruption_risk({"extra_cost": object()}) == 15


def test_shipment_risk_mean_and_empty() -> None:
    assert shipment_risk([]) == 0
    port_rail = _route(mode="rail", travel_time_est=30, cost_est=5000,
                       from_location_type="port", to_location_type="customer")
    assert route_risk(port_rail) == 25
    # (45 + 25) / 2
    assert shipment_risk([_route(), port_rail]) == 35


def test_shipment_risk_rounds_half_up() -> None:
    cheap_rail = _route(mode="rail", travel_time_est=10, cost_est=500,
                        from_location_type="supplier", to_location_type="customer")
    # (45 + 20) / 2 = 32.5
    assert shipment_risk([_route(), cheap_rail]) == 33


def test_enhanced_without_disruptions_equals_base() -> None:
    routes = [_route()]
    score = enhanced_shipment_risk(routes, [])
    assert score.total_risk == shipment_risk(routes) == 45
    assert score.disruption_count == 0
    assert score.risk_level == "medium"
    assert score.degraded is False


def test_enhanced_blends_base_and_disruption() -> None:
    score = enhanced_shipment_risk([_route()], [_linked()])
    # round(45 * 0.4 + 100 * 0.6)
    assert score.disruption_risk == 100
    assert score.total_risk == 78
    assert score.risk_level == "high"
    assert score.disruption_count == 1
    assert score.active_disruptions == 1
    assert score.breakdown.transport_mode == 25
    assert score.breakdown.disruption_impact == 100


def test_enhanced_skips_links_without_disruption() -> None:
    missing = LinkedDisruption(shipment_id="shipment_001", disruption_id="gone")
    incomplete = {"shipment_id": "shipment_001", "disruption": {"type": "port_closure"}}
    score = enhanced_shipment_risk([_route()], [missing, incomplete])
    assert score.disruption_count == 0
    assert score.total_risk == 45


def test_enhanced_counts_only_active_disruptions() -> None:
    score = enhanced_shipment_risk([_route()], [_linked(), _linked(status="resolved")])
    assert score.disruption_count == 2
    assert score.active_disruptions == 1


def test_enhanced_degrades_to_base_on_unexpected_error() -> None:
    class Exploding:
        def __iter__(self):
            raise RuntimeError("boom")

    score = enhanced_shipment_risk([_route()], Exploding())
    assert score.degraded is True
    assert score.total_risk == 45
    assert score.disruption_count == 0


def test_risk_level_policies_differ() -> None:
    assert risk_level(29) == "low"
    assert risk_level(65) == "medium"
    assert risk_level(70) == "high"
    assert display_risk_level(65) == "high"
    assert display_risk_level(59) == "medium"


def test_disruption_pressure_level() -> None:
    assert disruption_pressure_level(0) == "low"
    assert disruption_pressure_level(2) == "medium"
    assert disruption_pressure_level(3) == "high"
