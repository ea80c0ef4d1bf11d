"""Recommendation builder tests."""

from __future__ import annotations

from disruptwatch.catalog import default_shipments
from disruptwatch.recommendations import build_recommendations, supplier_concentration
from disruptwatch.schemas import RiskScore, ShipmentAssessment
from disruptwatch.simulation import ScenarioSimulator


def _assessment(shipment_id: str, level: str, total: float, disruptions: int = 0, exposure=None) -> ShipmentAssessment:
    return ShipmentAssessment(
        shipment_id=shipment_id,
        risk=RiskScore(
            base_risk=total,
            disruption_risk=total,
            total_risk=total,
            risk_level=level,
            disruption_count=disruptions,
            active_disruptions=disruptions,
        ),
        weather_exposure=exposure or [],
    )


def test_baseline_recommendations_without_risk() -> None:
    result = build_recommendations(default_shipments(), [])

    groups = result["recommendations"]
    assert len(groups["immediate"]) == 0
    assert [item["type"] for item in groups["short_term"]] == ["inventory_optimization"]
    assert len(groups["long_term"]) == 3
    assert len(groups["strategic"]) == 2
    assert result["summary"]["total_recommendations"] == 6
    assert result["summary"]["total_cost"] == 202000
    assert result["summary"]["total_savings"] == 75000
    assert result["summary"]["roi"] == -62.9
    assert result["implementation"]["phase3"]["actions"] == 5


def test_high_risk_and_weather_exposure_trigger_immediate_actions() -> None:
    assessments = [
        _assessment("shipment_001", "high", 82, disruptions=1, exposure=["port_singapore"]),
        _assessment("shipment_002", "low", 20),
    ]

    result = build_recommendations(default_shipments(), assessments)

    immediate = result["recommendations"]["immediate"]
    assert [(item["shipment_id"], item["priority"]) for item in immediate] == [
        ("shipment_001", "critical"),
        ("shipment_001", "high"),
    ]
    route_items = [item for item in result["recommendations"]["short_term"] if item["type"] == "route_optimization"]
    assert [item["shipment_id"] for item in route_items] == ["shipment_001"]
    assert result["summary"]["by_priority"]["critical"] == 1


def test_supplier_concentration_flags_heavy_suppliers() -> None:
    shipments = default_shipments()
    shipments[1] = shipments[1].model_copy(update={"supplier": "supplier_china"})

    actions = supplier_concentration(shipments)

    assert len(actions) == 1
    assert "Shenzhen Components" in actions[0]["description"]
    assert supplier_concentration(default_shipments()) == []


def test_simulations_add_contingency_plans() -> None:
    simulation = ScenarioSimulator().run(
        "port_closure", {"port_id": "port_singapore", "closure_duration": 10}, default_shipments()
    )

    result = build_recommendations(default_shipments(), [], [simulation])

    contingency = [item for item in result["recommendations"]["long_term"] if item["type"] == "contingency_planning"]
    assert len(contingency) == 1
    assert contingency[0]["priority"] == "high"
    assert contingency[0]["expected_savings"] == 2500
