"""Disruption classification with AI-backed and simulated variants."""

from __future__ import annotations

import asyncio
import json
import random
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog
from pydantic import ValidationError

from .config import Settings
from .errors import ClassificationInvalid
from .schemas import NewsSignal, ProcessedEvent, ShippingSignal, WeatherSignal

try:
    import google.generativeai as genai
except ImportError:  # pragma: no cover - optional runtime provider
    genai = None

try:
    from ollama import AsyncClient
except ImportError:  # pragma: no cover - optional runtime provider
    AsyncClient = None

logger = structlog.get_logger(__name__)

WEATHER_RISK_THRESHOLD = 3
SHIPPING_DELAY_THRESHOLD_HOURS = 12

REQUIRED_FIELDS = ("type", "location_type", "location_id", "severity", "description", "start_time")

_CAMEL_KEYS = {
    "locationType": "location_type",
    "locationId": "location_id",
    "startTime": "start_time",
    "endTime": "end_time",
    "affectedShipments": "affected_shipments",
    "impactDelayHours": "impact_delay_hours",
    "rerouteNeeded": "reroute_needed",
    "extraCost": "extra_cost",
}


class GenerationBackend(Protocol):
    """Text generation capability used for structured extraction."""

    async def generate_content(self, prompt: str) -> str:
        """Return raw model text for a prompt."""


class GeminiBackend:
    def __init__(self, api_key: str, model_name: str = "gemini-1.5-flash"):
        if not api_key:
            raise ValueError("Missing GEMINI_API_KEY for Gemini provider.")
        if genai is None:
            raise ValueError("google-generativeai package is not installed.")
        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(model_name)

    async def generate_content(self, prompt: str) -> str:
        response = await asyncio.to_thread(self.model.generate_content, prompt)
        return getattr(response, "text", "") or ""


class OllamaBackend:
    def __init__(self, model: str = "llama3", base_url: str = "http://localhost:11434"):
        if AsyncClient is None:
            raise ValueError("ollama package is not installed.")
        self.model = model
        self.client = AsyncClient(host=base_url)

    async def generate_content(self, prompt: str) -> str:
        response = await self.client.chat(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            format="json",
        )
        return str((response.get("message") or {}).get("content") or "")


class EventClassifier:
    """Turns one raw signal into zero or one disruption event.

    The materiality gate runs before any variant-specific work: weather below
    risk level 3 and shipping delays under 12 hours never become events.
    """

    async def classify(self, signal: Any) -> ProcessedEvent | None:
        if isinstance(signal, WeatherSignal):
            if signal.risk_level < WEATHER_RISK_THRESHOLD:
                return None
            return await self._classify_weather(signal)
        if isinstance(signal, ShippingSignal):
            if signal.delay_hours < SHIPPING_DELAY_THRESHOLD_HOURS:
                return None
            return await self._classify_shipping(signal)
        if isinstance(signal, NewsSignal):
            return await self._classify_news(signal)
        raise TypeError(f"Unsupported signal type: {type(signal).__name__}")

    async def _classify_news(self, signal: NewsSignal) -> ProcessedEvent | None:
        raise NotImplementedError

    async def _classify_weather(self, signal: WeatherSignal) -> ProcessedEvent | None:
        raise NotImplementedError

    async def _classify_shipping(self, signal: ShippingSignal) -> ProcessedEvent | None:
        raise NotImplementedError


class SimulatedEventClassifier(EventClassifier):
    """Deterministic banding with sampled confidence, no model calls."""

    news_event_probability = 0.2

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    async def _classify_news(self, signal: NewsSignal) -> ProcessedEvent | None:
        if self.rng.random() >= self.news_event_probability:
            return None

        return ProcessedEvent(
            type=self.rng.choice(["strike", "geopolitical", "technical", "other"]),
            location_type=self.rng.choice(["port", "warehouse", "supplier"]),
            location_id="Simulated Location",
            severity=self.rng.choice(["low", "medium", "high"]),
            description=f"Simulated disruption based on: {signal.title}",
            start_time=datetime.now(timezone.utc),
            confidence=self.rng.uniform(0.6, 0.9),
            source="news",
            raw_data=signal.model_dump(mode="json"),
        )

    async def _classify_weather(self, signal: WeatherSignal) -> ProcessedEvent | None:
        if signal.risk_level >= 5:
            severity = "critical"
        elif signal.risk_level >= 4:
            severity = "high"
        else:
            severity = "medium"

        return ProcessedEvent(
            type="weather",
            location_type="port",
            location_id=signal.location,
            severity=severity,
            description=(
                f"{signal.conditions} conditions at {signal.location} "
                f"with {signal.wind_speed:g} m/s winds"
            ),
            start_time=datetime.now(timezone.utc),
            confidence=self.rng.uniform(0.7, 0.9),
            source="weather",
            raw_data=signal.model_dump(mode="json"),
        )

    async def _classify_shipping(self, signal: ShippingSignal) -> ProcessedEvent | None:
        if signal.delay_hours > 48:
            severity = "critical"
        elif signal.delay_hours > 24:
            severity = "high"
        else:
            severity = "medium"

        return ProcessedEvent(
            type=self.rng.choice(["congestion", "technical", "other"]),
            location_type="port",
            location_id=signal.location,
            severity=severity,
            description=(
                f"Vessel {signal.vessel_id} delayed by {signal.delay_hours:g} hours at {signal.location}"
            ),
            start_time=datetime.now(timezone.utc),
            confidence=self.rng.uniform(0.8, 0.95),
            source="shipping",
            raw_data=signal.model_dump(mode="json"),
        )


class AIEventClassifier(EventClassifier):
    """Structured extraction through a generation backend.

    Unusable backend output is logged and handed to the simulated variant.
    """

    def __init__(self, backend: GenerationBackend, fallback: EventClassifier | None = None):
        self.backend = backend
        self.fallback = fallback or SimulatedEventClassifier()

    async def _classify_news(self, signal: NewsSignal) -> ProcessedEvent | None:
        try:
            return await self._extract(_news_prompt(signal), signal, source="news", allow_null=True)
        except ClassificationInvalid as exc:
            logger.warning("classification_invalid", kind="news", error=str(exc), fallback="simulated")
            return await self.fallback._classify_news(signal)

    async def _classify_weather(self, signal: WeatherSignal) -> ProcessedEvent | None:
        try:
            return await self._extract(_weather_prompt(signal), signal, source="weather")
        except ClassificationInvalid as exc:
            logger.warning(
                "classification_invalid",
                kind="weather",
                location=signal.location,
                error=str(exc),
                fallback="simulated",
            )
            return await self.fallback._classify_weather(signal)

    async def _classify_shipping(self, signal: ShippingSignal) -> ProcessedEvent | None:
        try:
            return await self._extract(_shipping_prompt(signal), signal, source="shipping")
        except ClassificationInvalid as exc:
            logger.warning(
                "classification_invalid",
                kind="shipping",
                vessel_id=signal.vessel_id,
                error=str(exc),
                fallback="simulated",
            )
            return await self.fallback._classify_shipping(signal)

    async def _extract(
        self,
        prompt: str,
        signal: Any,
        source: str,
        allow_null: bool = False,
    ) -> ProcessedEvent | None:
        try:
            raw_text = await self.backend.generate_content(prompt)
        except Exception as exc:  # broad to catch provider errors
            raise ClassificationInvalid(f"Backend call failed: {exc}") from exc

        text = _strip_fences(raw_text)
        if allow_null and text.lower() in {"", "null"}:
            return None
        return parse_event(text, signal, source)


def parse_event(text: str, signal: Any, source: str) -> ProcessedEvent:
    """Validate one JSON object of model output into a ProcessedEvent."""
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ClassificationInvalid(f"Invalid model response: {exc}") from exc

    if not isinstance(parsed, dict):
        raise ClassificationInvalid("Model response is not a JSON object")

    data = {_CAMEL_KEYS.get(key, key): value for key, value in parsed.items()}
    missing = [name for name in REQUIRED_FIELDS if not data.get(name)]
    if missing:
        raise ClassificationInvalid(f"Missing required fields: {', '.join(missing)}")

    data["source"] = data.get("source") or source
    data["raw_data"] = signal.model_dump(mode="json")
    try:
        return ProcessedEvent.model_validate(data)
    except ValidationError as exc:
        raise ClassificationInvalid(f"Invalid model response: {exc}") from exc


def _strip_fences(text: str) -> str:
    stripped = (text or "").strip()
    if stripped.startswith("```"):
        stripped = stripped.strip("`")
        if stripped.lower().startswith("json"):
            stripped = stripped[4:]
    return stripped.strip()


_EVENT_SCHEMA = """{{
  "type": "{types}",
  "location_type": "{location_types}",
  "location_id": "{location_id}",
  "severity": "low|medium|high|critical",
  "description": "string",
  "start_time": "ISO-8601 timestamp",
  "confidence": float between 0 and 1,
  "affected_shipments": ["shipment id", ...] or null,
  "impact_delay_hours": float or null,
  "reroute_needed": bool or null,
  "extra_cost": float or null
}}"""


def _news_prompt(signal: NewsSignal) -> str:
    schema = _EVENT_SCHEMA.format(
        types="strike|weather|congestion|geopolitical|technical|other",
        location_types="port|warehouse|route|supplier|customer",
        location_id="specific location name",
    )
    return f"""
Role: Supply chain disruption classifier

Article:
Title: {signal.title}
Description: {signal.description}
Source: {signal.source}
Published: {signal.published_at.isoformat()}

Task: Extract the supply chain disruption described by this article.
If no disruption is described, return null.

Output constraints:
- Return JSON only
- No markdown, no extra keys

Schema:
{schema}
""".strip()


def _weather_prompt(signal: WeatherSignal) -> str:
    schema = _EVENT_SCHEMA.format(types="weather", location_types="port", location_id=signal.location)
    return f"""
Role: Supply chain disruption classifier

Weather reading:
Location: {signal.location}
Temperature: {signal.temperature} C
Humidity: {signal.humidity}%
Wind Speed: {signal.wind_speed} m/s
Conditions: {signal.conditions}
Risk Level: {signal.risk_level}/5

Task: Describe the disruption these conditions cause for port operations.

Output constraints:
- Return JSON only
- No markdown, no extra keys

Schema:
{schema}
""".strip()


def _shipping_prompt(signal: ShippingSignal) -> str:
    schema = _EVENT_SCHEMA.format(
        types="congestion|technical|other",
        location_types="port",
        location_id=signal.location,
    )
    return f"""
Role: Supply chain disruption classifier

Vessel status:
Vessel: {signal.vessel_id}
Location: {signal.location}
Status: {signal.status}
ETA: {signal.eta.isoformat()}
Delay: {signal.delay_hours} hours

Task: Describe the disruption this delay represents.

Output constraints:
- Return JSON only
- No markdown, no extra keys

Schema:
{schema}
""".strip()


def build_classifier(settings: Settings, rng: random.Random | None = None) -> EventClassifier:
    """Pick the classifier variant once from configured credentials."""
    simulated = SimulatedEventClassifier(rng=rng)

    if settings.llm_provider == "gemini" and settings.gemini_api_key:
        backend: GenerationBackend = GeminiBackend(settings.gemini_api_key, settings.gemini_model)
    elif settings.llm_provider == "ollama":
        backend = OllamaBackend(settings.ollama_model, settings.ollama_base_url)
    else:
        logger.warning("classifier_backend_unavailable", provider=settings.llm_provider, variant="simulated")
        return simulated

    logger.info("classifier_backend_selected", provider=settings.llm_provider, variant="ai")
    return AIEventClassifier(backend, fallback=simulated)
