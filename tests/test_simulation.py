"""Scenario simulation tests."""

from __future__ import annotations

import pytest

from disruptwatch.catalog import default_shipments
from disruptwatch.errors import UnknownScenario
from disruptwatch.simulation import ScenarioSimulator, linked_disruptions


def test_port_closure_reaches_shipments_through_the_port() -> None:
    result = ScenarioSimulator().run(
        "port_closure",
        {"port_id": "port_singapore", "closure_duration": 72, "reason": "cyber attack"},
        default_shipments(),
    )

    assert result.affected_shipments == ["shipment_001", "shipment_003", "shipment_004"]
    assert result.impact.total_delay == 72
    assert result.impact.total_cost_increase == 72000
    assert result.impact.risk_level == "critical"
    assert result.impact.affected_shipment_count == 3
    assert "cyber attack" in result.disruptions[0].description
    assert result.recommendations == [
        "Implement immediate contingency plans",
        "Communicate delays to customers and stakeholders",
        "Activate emergency response protocols",
        "Establish crisis management team",
    ]


def test_weather_event_defaults_to_high_severity() -> None:
    result = ScenarioSimulator().run(
        "weather_event", {"location_id": "port_rotterdam", "duration": 48}, default_shipments()
    )
    assert result.disruptions[0].severity == "high"
    assert result.impact.total_cost_increase == 24000
    assert result.affected_shipments == ["shipment_002", "shipment_003", "shipment_005"]


def test_geopolitical_crisis_covers_every_location_in_region() -> None:
    result = ScenarioSimulator().run(
        "geopolitical_crisis",
        {"region": "Asia", "crisis_type": "Trade Dispute", "duration": 10},
        default_shipments(),
    )

    assert sorted(disruption.location for disruption in result.disruptions) == [
        "port_shanghai",
        "supplier_china",
        "supplier_india",
    ]
    assert all(disruption.type == "political_unrest" for disruption in result.disruptions)
    assert result.impact.total_cost_increase == 3 * 8000
    assert "Prioritize critical shipments for alternative routing" not in result.recommendations


def test_custom_scenario_accepts_camel_case_fields() -> None:
    result = ScenarioSimulator().run(
        "custom",
        {
            "name": "Canal blockage",
            "disruptions": [
                {"type": "infrastructure_failure", "location": "port_los_angeles", "delayHours": 12, "costIncrease": 900},
            ],
        },
        default_shipments(),
    )

    assert result.name == "Canal blockage"
    assert result.disruptions[0].delay_hours == 12
    assert result.disruptions[0].cost_increase == 900
    assert len(result.affected_shipments) == 3


def test_invalid_scenarios_are_rejected() -> None:
    simulator = ScenarioSimulator()
    with pytest.raises(UnknownScenario):
        simulator.run("meteor", {}, default_shipments())
    with pytest.raises(ValueError):
        simulator.run("port_closure", {"port_id": "port_atlantis"}, default_shipments())
    with pytest.raises(ValueError):
        simulator.run("geopolitical_crisis", {"region": "Antarctica"}, default_shipments())
    with pytest.raises(ValueError):
        simulator.run("custom", {"disruptions": []}, default_shipments())


def test_linked_disruptions_mark_critical_reroutes() -> None:
    shipments = default_shipments()
    result = ScenarioSimulator().run("port_closure", {"port_id": "port_shanghai", "closure_duration": 5}, shipments)

    links = linked_disruptions(result, shipments)

    assert [link.shipment_id for link in links] == ["shipment_001"]
    assert links[0].reroute_needed is True
    assert links[0].extra_cost == 5000
    assert links[0].disruption.status == "active"
    assert links[0].disruption.location_type == "port"
