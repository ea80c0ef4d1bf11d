"""Named multi-step workflows over the registered capabilities."""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

import structlog

from .capabilities import (
    Capability,
    DataCollector,
    RiskAssessor,
    Simulator,
    StrategyRecommender,
    error_payload,
    resolve_shipments,
    to_jsonable,
)
from .errors import UnknownCapability, UnknownWorkflow
from .schemas import (
    AgentResponse,
    Alert,
    CollectedData,
    RiskAssessmentReport,
    SimulationResult,
    WorkflowRequest,
    WorkflowRun,
    utcnow,
)
from .scoring import read_field
from .simulation import DEFAULT_STRATEGIC_SCENARIOS, linked_disruptions
from .storage import DisruptionStore

logger = structlog.get_logger(__name__)

Context = dict[str, Any]


@dataclass(frozen=True)
class WorkflowStep:
    """One ordered step; its result is stored in the context under ``name``."""

    name: str
    run: Callable[[Context], Awaitable[Any]]


async def run_steps(steps: list[WorkflowStep], context: Context) -> Context:
    for step in steps:
        logger.debug("workflow_step_started", step=step.name)
        context[step.name] = await step.run(context)
    return context


class WorkflowHistory:
    """Append-only log of workflow runs, safe for concurrent invocations."""

    def __init__(self) -> None:
        self._runs: list[WorkflowRun] = []
        self._lock = asyncio.Lock()

    async def append(self, run: WorkflowRun) -> None:
        async with self._lock:
            self._runs.append(run)

    def snapshot(self) -> list[WorkflowRun]:
        return list(self._runs)

    def __len__(self) -> int:
        return len(self._runs)


class WorkflowOrchestrator(Capability):
    """Dispatches workflow requests and records every invocation.

    Capabilities are looked up by name in a fixed registry: ``data_collector``,
    ``risk_assessor``, ``simulator`` and ``strategy_recommender``.
    """

    agent_type = "Orchestrator"
    confidence = 0.95

    def __init__(
        self,
        capabilities: Mapping[str, Capability],
        store: DisruptionStore | None = None,
        history: WorkflowHistory | None = None,
        agent_id: str = "orchestrator_001",
    ):
        super().__init__(agent_id)
        self.capabilities = dict(capabilities)
        self.store = store
        self.history = history or WorkflowHistory()
        self._workflows: dict[str, Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]] = {
            "full_risk_assessment": self._full_risk_assessment,
            "scenario_simulation": self._scenario_simulation,
            "strategic_planning": self._strategic_planning,
            "real_time_monitoring": self._real_time_monitoring,
            "custom_workflow": self._custom_workflow,
        }
        self.start()

    def start(self) -> None:
        super().start()
        for capability in self.capabilities.values():
            capability.start()

    def stop(self) -> None:
        super().stop()
        for capability in self.capabilities.values():
            capability.stop()

    def capability(self, name: str) -> Capability:
        try:
            return self.capabilities[name]
        except KeyError:
            raise UnknownCapability(f"Unknown capability: {name}") from None

    def get_available_workflows(self) -> list[str]:
        return list(self._workflows)

    def get_workflow_history(self) -> list[WorkflowRun]:
        return self.history.snapshot()

    def get_agent_status(self) -> dict[str, Any]:
        agents = {name: capability.info() for name, capability in self.capabilities.items()}
        return {
            "orchestrator": self.info(),
            "agents": agents,
            "total_agents": len(agents),
            "active_agents": sum(1 for info in agents.values() if info["is_active"]),
        }

    async def process(self, data: WorkflowRequest | Mapping[str, Any] | None = None) -> AgentResponse:
        workflow_id = f"workflow_{uuid.uuid4().hex[:12]}"
        start_time = utcnow()
        started = time.perf_counter()
        workflow_name = str(read_field(data, "workflow") or "")

        try:
            request = WorkflowRequest.model_validate(data or {})
            workflow_name = request.workflow or ""
            handler = self._workflows.get(workflow_name)
            if handler is None:
                raise UnknownWorkflow(f"Unknown workflow: {workflow_name or '<missing>'}")
            logger.info("workflow_started", workflow=workflow_name, workflow_id=workflow_id)
            result = to_jsonable(await handler(request.input_data))
        except Exception as exc:
            elapsed_ms = (time.perf_counter() - started) * 1000
            await self.history.append(
                WorkflowRun(
                    workflow_id=workflow_id,
                    workflow_name=workflow_name,
                    start_time=start_time,
                    end_time=utcnow(),
                    execution_time_ms=elapsed_ms,
                    status="failed",
                    error_message=str(exc),
                )
            )
            logger.error("workflow_failed", workflow=workflow_name, workflow_id=workflow_id, error=str(exc))
            payload = error_payload(exc, "Orchestration failed")
            payload["workflow_id"] = workflow_id
            return self.create_response(payload, self.failure_confidence)

        elapsed_ms = (time.perf_counter() - started) * 1000
        end_time = utcnow()
        await self.history.append(
            WorkflowRun(
                workflow_id=workflow_id,
                workflow_name=workflow_name,
                start_time=start_time,
                end_time=end_time,
                execution_time_ms=elapsed_ms,
                status="completed",
                result=result,
            )
        )
        logger.info(
            "workflow_completed",
            workflow=workflow_name,
            workflow_id=workflow_id,
            elapsed_ms=round(elapsed_ms, 1),
        )
        return self.create_response(
            {
                "workflow_id": workflow_id,
                "workflow": workflow_name,
                "execution_time_ms": elapsed_ms,
                "result": result,
                "timestamp": end_time.isoformat(),
            },
            self.confidence,
        )

    def _collect_step(self) -> WorkflowStep:
        async def collect(context: Context) -> CollectedData:
            return await self.capability("data_collector").execute({})

        return WorkflowStep("collected", collect)

    def _shipments_step(self, input_data: Mapping[str, Any]) -> WorkflowStep:
        async def shipments(context: Context) -> list:
            return await resolve_shipments(self.store, read_field(input_data, "shipments"))

        return WorkflowStep("shipments", shipments)

    def _assess_step(self, name: str, disruptions: Callable[[Context], Any]) -> WorkflowStep:
        async def assess(context: Context) -> RiskAssessmentReport:
            return await self.capability("risk_assessor").execute(
                {
                    "shipments": context["shipments"],
                    "weather": context["collected"].weather,
                    "disruptions": disruptions(context),
                }
            )

        return WorkflowStep(name, assess)

    def _recommend_step(
        self,
        assessments: Callable[[Context], list],
        simulations: Callable[[Context], list],
    ) -> WorkflowStep:
        async def recommend(context: Context) -> dict[str, Any]:
            return await self.capability("strategy_recommender").execute(
                {
                    "shipments": context["shipments"],
                    "assessments": assessments(context),
                    "simulations": simulations(context),
                }
            )

        return WorkflowStep("recommendations", recommend)

    async def _full_risk_assessment(self, input_data: dict[str, Any]) -> dict[str, Any]:
        provided = read_field(input_data, "disruptions")
        context = await run_steps(
            [
                self._shipments_step(input_data),
                self._collect_step(),
                self._assess_step("assessment", lambda ctx: provided),
                self._recommend_step(lambda ctx: ctx["assessment"].assessments, lambda ctx: []),
            ],
            {},
        )
        assessment: RiskAssessmentReport = context["assessment"]
        recommendations = context["recommendations"]
        return {
            "data_collection": context["collected"],
            "risk_assessments": assessment,
            "strategic_recommendations": recommendations,
            "summary": {
                "total_shipments": len(context["shipments"]),
                "high_risk_shipments": assessment.summary.high_risk_shipments,
                "overall_risk_level": assessment.summary.risk_level,
                "total_recommendations": recommendations["summary"]["total_recommendations"],
            },
        }

    async def _scenario_simulation(self, input_data: dict[str, Any]) -> dict[str, Any]:
        scenario_type = read_field(input_data, "scenario_type")
        if not scenario_type:
            raise ValueError("scenario_type is required for the scenario_simulation workflow")
        scenario_params = read_field(input_data, "scenario_params") or {}

        async def simulate(context: Context) -> SimulationResult:
            return await self.capability("simulator").execute(
                {
                    "scenario_type": scenario_type,
                    "scenario_params": scenario_params,
                    "shipments": context["shipments"],
                }
            )

        context = await run_steps(
            [
                self._shipments_step(input_data),
                self._collect_step(),
                WorkflowStep("simulation", simulate),
                self._assess_step(
                    "impact_assessment",
                    lambda ctx: linked_disruptions(ctx["simulation"], ctx["shipments"]),
                ),
                self._recommend_step(
                    lambda ctx: ctx["impact_assessment"].assessments,
                    lambda ctx: [ctx["simulation"]],
                ),
            ],
            {},
        )
        simulation: SimulationResult = context["simulation"]
        return {
            "simulation": simulation,
            "impact_assessment": context["impact_assessment"],
            "recommendations": context["recommendations"],
            "summary": {
                "scenario_name": simulation.name,
                "affected_shipments": len(simulation.affected_shipments),
                "total_delay": simulation.impact.total_delay,
                "total_cost_increase": simulation.impact.total_cost_increase,
                "risk_level": simulation.impact.risk_level,
            },
        }

    async def _strategic_planning(self, input_data: dict[str, Any]) -> dict[str, Any]:
        scenarios = read_field(input_data, "scenarios") or DEFAULT_STRATEGIC_SCENARIOS

        async def simulate_all(context: Context) -> list[SimulationResult]:
            simulator = self.capability("simulator")
            results = []
            for scenario in scenarios:
                results.append(
                    await simulator.execute(
                        {
                            "scenario_type": read_field(scenario, "type") or read_field(scenario, "scenario_type"),
                            "scenario_params": read_field(scenario, "params")
                            or read_field(scenario, "scenario_params"),
                            "shipments": context["shipments"],
                        }
                    )
                )
            return results

        context = await run_steps(
            [
                self._shipments_step(input_data),
                self._collect_step(),
                WorkflowStep("scenarios", simulate_all),
                self._recommend_step(lambda ctx: [], lambda ctx: ctx["scenarios"]),
            ],
            {},
        )
        results: list[SimulationResult] = context["scenarios"]
        recommendations = context["recommendations"]
        affected = sorted({shipment_id for result in results for shipment_id in result.affected_shipments})
        return {
            "scenarios": results,
            "strategic_recommendations": recommendations,
            "summary": {
                "total_scenarios": len(results),
                "total_delay": sum(result.impact.total_delay for result in results),
                "total_cost_increase": sum(result.impact.total_cost_increase for result in results),
                "affected_shipments": affected,
                "total_recommendations": recommendations["summary"]["total_recommendations"],
                "total_investment": recommendations["summary"]["total_cost"],
                "expected_roi": recommendations["summary"]["roi"],
            },
        }

    async def _real_time_monitoring(self, input_data: dict[str, Any]) -> dict[str, Any]:
        provided = read_field(input_data, "disruptions")

        async def alerts(context: Context) -> list[Alert]:
            return build_alerts(context["snapshot"], context["collected"])

        context = await run_steps(
            [
                self._shipments_step(input_data),
                self._collect_step(),
                self._assess_step("snapshot", lambda ctx: provided),
                WorkflowStep("alerts", alerts),
            ],
            {},
        )
        snapshot: RiskAssessmentReport = context["snapshot"]
        raised: list[Alert] = context["alerts"]
        return {
            "timestamp": utcnow(),
            "data_snapshot": context["collected"],
            "risk_snapshot": snapshot,
            "alerts": raised,
            "summary": {
                "total_alerts": len(raised),
                "critical_alerts": sum(1 for alert in raised if alert.severity == "critical"),
                "high_risk_shipments": snapshot.summary.high_risk_shipments,
            },
        }

    async def _custom_workflow(self, input_data: dict[str, Any]) -> dict[str, Any]:
        steps = read_field(input_data, "steps")
        if not isinstance(steps, list):
            raise ValueError("custom_workflow requires a steps list")

        results = []
        for index, step in enumerate(steps, start=1):
            name = read_field(step, "capability") or read_field(step, "agent")
            capability = self.capability(name)
            response = await capability.process(read_field(step, "input") or read_field(step, "data") or {})
            results.append(
                {
                    "step": read_field(step, "name") or f"Step {index}",
                    "capability": name,
                    "confidence": response.confidence,
                    "result": response.data,
                }
            )
        return {
            "workflow_type": "custom",
            "steps": results,
            "summary": {
                "total_steps": len(steps),
                "completed_steps": len(results),
                "status": "completed",
            },
        }


def _alert_id() -> str:
    return f"alert_{uuid.uuid4().hex[:12]}"


def build_alerts(snapshot: RiskAssessmentReport, collected: CollectedData) -> list[Alert]:
    """Threshold alerts for high-risk shipments, severe weather and congested ports."""
    alerts = []
    high_risk = snapshot.summary.high_risk_shipments
    if high_risk > 0:
        alerts.append(
            Alert(
                id=_alert_id(),
                type="risk_alert",
                severity="high",
                title="High-Risk Shipments Detected",
                message=f"{high_risk} shipments have high risk levels",
            )
        )

    severe = collected.severe_weather()
    if severe:
        alerts.append(
            Alert(
                id=_alert_id(),
                type="weather_alert",
                severity="medium",
                title="Severe Weather Conditions",
                message=f"Severe weather detected at {len(severe)} locations",
            )
        )

    congested = collected.congested_ports()
    if congested:
        alerts.append(
            Alert(
                id=_alert_id(),
                type="congestion_alert",
                severity="medium",
                title="Port Congestion Detected",
                message=f"High congestion at {len(congested)} ports",
            )
        )
    return alerts


def build_capabilities(
    news_fetcher: Any,
    weather_fetcher: Any,
    shipping_fetcher: Any,
    store: DisruptionStore | None = None,
) -> dict[str, Capability]:
    return {
        "data_collector": DataCollector(news_fetcher, weather_fetcher, shipping_fetcher),
        "risk_assessor": RiskAssessor(store),
        "simulator": Simulator(store=store),
        "strategy_recommender": StrategyRecommender(store),
    }
