"""Signal fetchers for news, weather and vessel status.

Every fetcher returns a well-formed batch. When a credential is missing or the
upstream call fails, a simulated batch of the same shape is substituted.
"""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

import structlog
from pydantic import ValidationError

from .catalog import (
    DEFAULT_VESSEL_BOUNDS,
    PORT_HUBS,
    SIMULATED_HEADLINES,
    VESSEL_STATUS_BOUNDS,
    VESSELS,
    WEATHER_HUBS,
)
from .errors import SourceUnavailable
from .http import HttpClient
from .schemas import NewsSignal, PortStatus, ShippingSignal, WeatherSignal

logger = structlog.get_logger(__name__)

_NEWS_API = "https://newsapi.org/v2/everything"
_NEWS_QUERY = "supply chain logistics shipping port congestion strike disruption"
_OPENWEATHER_API = "https://api.openweathermap.org/data/2.5/weather"
_RAPIDAPI_WEATHER_HOST = "open-weather13.p.rapidapi.com"

# Errors a fetcher converts into simulated data.
_RECOVERABLE = (SourceUnavailable, AttributeError, KeyError, TypeError, ValueError, ValidationError)


class SignalFetcher(Protocol):
    async def fetch(self) -> list[Any]:
        """Return one batch of raw signals."""


def _normalize_text(value: str | None) -> str:
    return " ".join((value or "").split()).strip()


def weather_risk_level(conditions: str, wind_speed: float) -> int:
    """Map reported conditions and wind speed onto a 1-5 risk level."""
    lowered = conditions.lower()
    if lowered in {"storm", "thunderstorm"}:
        risk = 5
    elif lowered == "snow":
        risk = 4
    elif lowered in {"rain", "drizzle"}:
        risk = 3
    elif lowered in {"fog", "mist"}:
        risk = 2
    else:
        risk = 1

    if wind_speed > 15:
        risk = max(risk, 4)
    if wind_speed > 25:
        risk = 5
    return min(risk, 5)


def congestion_level(status: str, wait_time_hours: float) -> str:
    if status == "congested" and wait_time_hours >= 30:
        return "high"
    if status == "congested" or wait_time_hours >= 12:
        return "medium"
    return "low"


class NewsFetcher:
    """Supply-chain headlines from NewsAPI."""

    def __init__(self, http: HttpClient, api_key: str | None = None, page_size: int = 20):
        self.http = http
        self.api_key = (api_key or "").strip()
        self.page_size = page_size

    async def fetch(self) -> list[NewsSignal]:
        if not self.api_key:
            logger.warning("news_api_key_missing", fallback="simulated")
            return self.simulated()

        try:
            payload = await self.http.get(
                _NEWS_API,
                params={
                    "q": _NEWS_QUERY,
                    "sortBy": "publishedAt",
                    "pageSize": self.page_size,
                    "language": "en",
                },
                headers={"X-Api-Key": self.api_key},
            )
            return self._parse(payload)
        except _RECOVERABLE as exc:
            logger.warning("news_fetch_failed", error=str(exc), fallback="simulated")
            return self.simulated()

    @staticmethod
    def _parse(payload: Any) -> list[NewsSignal]:
        if not isinstance(payload, dict):
            raise SourceUnavailable(f"News API returned {type(payload).__name__}, expected an object")
        if payload.get("status") != "ok":
            raise SourceUnavailable(f"News API error: {payload.get('message', 'unknown')}")

        signals: list[NewsSignal] = []
        for article in payload.get("articles") or []:
            if not isinstance(article, dict):
                continue
            signals.append(
                NewsSignal(
                    title=_normalize_text(article.get("title")),
                    description=_normalize_text(article.get("description")),
                    published_at=article.get("publishedAt") or datetime.now(timezone.utc),
                    url=article.get("url") or "",
                    source=(article.get("source") or {}).get("name") or "Unknown",
                )
            )
        return signals

    @staticmethod
    def simulated() -> list[NewsSignal]:
        now = datetime.now(timezone.utc)
        return [
            NewsSignal(
                title=item["title"],
                description=item["description"],
                published_at=now - timedelta(hours=item["hours_ago"]),
                url=f"https://example.com/news{index}",
                source=item["source"],
            )
            for index, item in enumerate(SIMULATED_HEADLINES, start=1)
        ]


class WeatherFetcher:
    """Current conditions for each monitored hub, one upstream call per hub."""

    def __init__(
        self,
        http: HttpClient,
        openweather_api_key: str | None = None,
        rapidapi_key: str | None = None,
        hubs: list[str] | None = None,
        rng: random.Random | None = None,
    ):
        self.http = http
        self.openweather_api_key = (openweather_api_key or "").strip()
        self.rapidapi_key = (rapidapi_key or "").strip()
        self.hubs = list(hubs or WEATHER_HUBS)
        self.rng = rng or random.Random()

    @property
    def configured(self) -> bool:
        return bool(self.rapidapi_key or self.openweather_api_key)

    async def fetch(self) -> list[WeatherSignal]:
        if not self.configured:
            logger.warning("weather_api_key_missing", fallback="simulated", hubs=len(self.hubs))
            return [self.simulated(hub) for hub in self.hubs]

        return list(await asyncio.gather(*(self._fetch_hub(hub) for hub in self.hubs)))

    async def _fetch_hub(self, hub: str) -> WeatherSignal:
        try:
            if self.rapidapi_key:
                city = hub.split(",")[0] or hub
                payload = await self.http.get(
                    f"https://{_RAPIDAPI_WEATHER_HOST}/city",
                    params={"city": city, "lang": "EN"},
                    headers={
                        "X-RapidAPI-Key": self.rapidapi_key,
                        "X-RapidAPI-Host": _RAPIDAPI_WEATHER_HOST,
                    },
                )
            else:
                payload = await self.http.get(
                    _OPENWEATHER_API,
                    params={"q": hub, "appid": self.openweather_api_key, "units": "metric"},
                )
            return self._parse(payload, hub)
        except _RECOVERABLE as exc:
            logger.warning("weather_fetch_failed", hub=hub, error=str(exc), fallback="simulated")
            return self.simulated(hub)

    @staticmethod
    def _parse(payload: Any, hub: str) -> WeatherSignal:
        if not isinstance(payload, dict):
            raise SourceUnavailable(f"Weather API returned {type(payload).__name__} for {hub}")
        main = payload.get("main") or {}
        wind_speed = float((payload.get("wind") or {}).get("speed") or 0.0)
        weather = payload.get("weather") or [{}]
        conditions = weather[0].get("main") or "Unknown"
        return WeatherSignal(
            location=payload.get("name") or hub,
            temperature=float(main.get("temp") or 0.0),
            humidity=float(main.get("humidity") or 0.0),
            wind_speed=wind_speed,
            conditions=conditions,
            risk_level=weather_risk_level(conditions, wind_speed),
        )

    def simulated(self, hub: str) -> WeatherSignal:
        conditions = self.rng.choice(["Clear", "Clouds", "Rain", "Storm", "Fog", "Snow"])
        wind_speed = float(self.rng.randint(5, 25))
        return WeatherSignal(
            location=hub,
            temperature=float(self.rng.randint(-5, 25)),
            humidity=float(self.rng.randint(20, 80)),
            wind_speed=wind_speed,
            conditions=conditions,
            risk_level=weather_risk_level(conditions, wind_speed),
        )


class ShippingFetcher:
    """Simulated vessel tracking over a fixed roster."""

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    async def fetch(self) -> list[ShippingSignal]:
        logger.info("shipping_fetch", vessels=len(VESSELS), mode="simulated")
        now = datetime.now(timezone.utc)
        signals: list[ShippingSignal] = []
        for vessel in VESSELS:
            eta_min, eta_max, delay_min, delay_max = VESSEL_STATUS_BOUNDS.get(
                vessel["status"], DEFAULT_VESSEL_BOUNDS
            )
            signals.append(
                ShippingSignal(
                    vessel_id=vessel["id"],
                    location=vessel["location"],
                    status=vessel["status"],
                    eta=now + timedelta(hours=self.rng.randint(eta_min, eta_max)),
                    delay_hours=self.rng.randint(delay_min, delay_max),
                )
            )
        return signals

    async def fetch_port_status(self) -> list[PortStatus]:
        now = datetime.now(timezone.utc)
        return [
            PortStatus(
                name=port["name"],
                status=port["status"],
                wait_time_hours=port["wait_time_hours"],
                congestion_level=congestion_level(port["status"], port["wait_time_hours"]),
                timestamp=now,
            )
            for port in PORT_HUBS
        ]
