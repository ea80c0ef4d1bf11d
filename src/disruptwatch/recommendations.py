"""Mitigation recommendations derived from risk assessments and scenarios."""

from __future__ import annotations

from collections import Counter
from typing import Any

from .catalog import LOCATIONS
from .schemas import Shipment, ShipmentAssessment, SimulationResult

SUPPLIER_CONCENTRATION_LIMIT = 2


def _action(
    kind: str,
    priority: str,
    action: str,
    description: str,
    timeframe: str,
    responsible: str,
    estimated_cost: float,
    expected_savings: float = 0.0,
    shipment_id: str | None = None,
) -> dict[str, Any]:
    item: dict[str, Any] = {
        "type": kind,
        "priority": priority,
        "action": action,
        "description": description,
        "timeframe": timeframe,
        "responsible": responsible,
        "estimated_cost": estimated_cost,
        "expected_savings": expected_savings,
    }
    if shipment_id is not None:
        item["shipment_id"] = shipment_id
    return item


def immediate_actions(assessments: list[ShipmentAssessment]) -> list[dict[str, Any]]:
    """Actions due within a day for high-risk or actively disrupted shipments."""
    actions = []
    for assessment in assessments:
        risk = assessment.risk
        if risk.risk_level == "high":
            actions.append(
                _action(
                    "immediate_action",
                    "critical",
                    "Implement contingency plan immediately",
                    f"Shipment {assessment.shipment_id} has high risk ({risk.total_risk:g}/100). "
                    "Activate emergency protocols.",
                    "Within 24 hours",
                    "Supply Chain Manager",
                    5000,
                    shipment_id=assessment.shipment_id,
                )
            )
        if assessment.weather_exposure:
            actions.append(
                _action(
                    "immediate_action",
                    "high",
                    "Reroute to avoid adverse weather",
                    f"Severe weather at {', '.join(assessment.weather_exposure)} on the route of "
                    f"shipment {assessment.shipment_id}.",
                    "Within 12 hours",
                    "Logistics Coordinator",
                    2000,
                    shipment_id=assessment.shipment_id,
                )
            )
    return actions


def supplier_concentration(shipments: list[Shipment]) -> list[dict[str, Any]]:
    usage = Counter(shipment.supplier for shipment in shipments if shipment.supplier)
    actions = []
    for supplier_id, count in sorted(usage.items()):
        if count <= SUPPLIER_CONCENTRATION_LIMIT:
            continue
        name = LOCATIONS.get(supplier_id, {}).get("name", supplier_id)
        actions.append(
            _action(
                "supplier_diversification",
                "medium",
                "Reduce dependency on single supplier",
                f"Supplier {name} is used for {count} shipments. Consider alternatives.",
                "2-4 months",
                "Sourcing Manager",
                5000,
                8000,
            )
        )
    return actions


def short_term_actions(shipments: list[Shipment], assessments: list[ShipmentAssessment]) -> list[dict[str, Any]]:
    actions = [
        _action(
            "route_optimization",
            "medium",
            "Evaluate alternative routes",
            f"Shipment {assessment.shipment_id} carries {assessment.risk.disruption_count} linked "
            f"disruption(s) at total risk {assessment.risk.total_risk:g}.",
            "1-2 weeks",
            "Route Planner",
            1000,
            3000,
            shipment_id=assessment.shipment_id,
        )
        for assessment in assessments
        if assessment.risk.disruption_count > 0 and assessment.risk.risk_level != "low"
    ]
    actions.extend(supplier_concentration(shipments))
    actions.append(
        _action(
            "inventory_optimization",
            "medium",
            "Review safety stock levels",
            "Adjust safety stock at destinations based on current risk assessments.",
            "2-4 weeks",
            "Inventory Manager",
            2000,
            5000,
        )
    )
    return actions


def long_term_actions(simulations: list[SimulationResult]) -> list[dict[str, Any]]:
    actions = [
        _action(
            "technology_investment",
            "medium",
            "Implement advanced tracking system",
            "Deploy real-time shipment tracking and predictive analytics.",
            "6-12 months",
            "IT Director",
            50000,
            15000,
        ),
        _action(
            "infrastructure_improvement",
            "low",
            "Port partnership development",
            "Establish partnerships with alternative ports to reduce dependency.",
            "6-12 months",
            "Business Development",
            10000,
            8000,
        ),
        _action(
            "process_improvement",
            "medium",
            "Standardize risk assessment procedures",
            "Apply one risk assessment and mitigation procedure across all shipments.",
            "3-6 months",
            "Process Manager",
            15000,
            12000,
        ),
    ]
    for simulation in simulations:
        if not simulation.affected_shipments:
            continue
        priority = "high" if simulation.impact.risk_level in ("high", "critical") else "medium"
        actions.append(
            _action(
                "contingency_planning",
                priority,
                f"Prepare contingency plan for {simulation.name}",
                f"{len(simulation.affected_shipments)} shipment(s) exposed; projected delay "
                f"{simulation.impact.total_delay:g}h and extra cost ${simulation.impact.total_cost_increase:,.0f}.",
                "1-3 months",
                "Risk Manager",
                7500,
                round(simulation.impact.total_cost_increase * 0.25, 2),
            )
        )
    return actions


def strategic_actions() -> list[dict[str, Any]]:
    return [
        _action(
            "strategic_initiative",
            "low",
            "Geographic market expansion",
            "Explore new markets to reduce regional concentration risk.",
            "12-24 months",
            "Strategic Planning",
            100000,
            25000,
        ),
        _action(
            "strategic_initiative",
            "medium",
            "Strategic partnership development",
            "Partner with logistics providers and technology companies.",
            "6-18 months",
            "Partnership Manager",
            25000,
            10000,
        ),
    ]


def summarize(recommendations: dict[str, list[dict[str, Any]]]) -> dict[str, Any]:
    """Totals and ROI across every recommendation horizon."""
    items = [item for group in recommendations.values() for item in group]
    total_cost = sum(item["estimated_cost"] for item in items)
    total_savings = sum(item["expected_savings"] for item in items)
    roi = round((total_savings - total_cost) / total_cost * 100, 1) if total_cost else 0.0
    return {
        "total_recommendations": len(items),
        "total_cost": total_cost,
        "total_savings": total_savings,
        "roi": roi,
        "by_priority": dict(Counter(item["priority"] for item in items)),
    }


def build_recommendations(
    shipments: list[Shipment],
    assessments: list[ShipmentAssessment],
    simulations: list[SimulationResult] | None = None,
) -> dict[str, Any]:
    recommendations = {
        "immediate": immediate_actions(assessments),
        "short_term": short_term_actions(shipments, assessments),
        "long_term": long_term_actions(simulations or []),
        "strategic": strategic_actions(),
    }
    return {
        "recommendations": recommendations,
        "implementation": {
            "phase1": {"name": "Immediate Actions (0-30 days)", "actions": len(recommendations["immediate"])},
            "phase2": {"name": "Short-term Improvements (1-6 months)", "actions": len(recommendations["short_term"])},
            "phase3": {
                "name": "Long-term Strategic (6-24 months)",
                "actions": len(recommendations["long_term"]) + len(recommendations["strategic"]),
            },
        },
        "summary": summarize(recommendations),
    }
