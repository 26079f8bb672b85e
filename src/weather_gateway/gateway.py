"""Process-level composition of the resilient fetch pipeline.

One breaker and one orchestrator exist per resource type for the lifetime of
the process, so a failing forecast upstream never trips the city search
breaker and vice versa. The cache store and HTTP client are shared.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date

import httpx

from weather_gateway.cache import CacheStore, RedisCacheStore
from weather_gateway.circuit_breaker import CircuitBreaker
from weather_gateway.circuit_breaker.integrations.structlog_events import (
    LoggingBreakerListener,
)
from weather_gateway.client import WeatherApiClient
from weather_gateway.logging import StructuredLogger, configure_structlog, get_logger
from weather_gateway.mapper import map_city_search, map_forecast
from weather_gateway.models import CityMatch, DailyForecast
from weather_gateway.orchestrator import CacheAsideOrchestrator, FetchOutcome
from weather_gateway.settings import GatewaySettings, ResourcePolicy

WEATHER = "weather"
CITY = "city"


def _map_forecast(raw: object, key: str) -> DailyForecast:
    return map_forecast(raw, city_hint=key)


def _build_breaker(
    name: str, policy: ResourcePolicy, logger: StructuredLogger
) -> CircuitBreaker:
    return CircuitBreaker(
        name,
        config=policy.breaker_config(),
        listeners=[LoggingBreakerListener(logger=logger)],
    )


class WeatherGateway:
    """Forecast and city-search resolution behind cache and breakers."""

    def __init__(
        self,
        *,
        api: WeatherApiClient,
        store: CacheStore,
        weather_policy: ResourcePolicy,
        city_policy: ResourcePolicy,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Build both orchestrators with independent breakers.

        Args:
            api: Provider client used as the remote fetch for both resources.
            store: Cache store shared by both resources.
            weather_policy: Breaker and TTL tuning for forecasts.
            city_policy: Breaker and TTL tuning for city search.
            logger: Structured logger for cache, upstream and breaker events.
        """
        resolved_logger = get_logger("weather_gateway") if logger is None else logger
        self.weather: CacheAsideOrchestrator[DailyForecast] = CacheAsideOrchestrator(
            resource_type=WEATHER,
            store=store,
            breaker=_build_breaker(WEATHER, weather_policy, resolved_logger),
            remote_fetch=api.forecast,
            mapper=_map_forecast,
            payload_type=DailyForecast,
            ttl_seconds=weather_policy.cache_ttl_seconds,
            time_bucketed=True,
            logger=resolved_logger,
        )
        self.city: CacheAsideOrchestrator[tuple[CityMatch, ...]] = (
            CacheAsideOrchestrator(
                resource_type=CITY,
                store=store,
                breaker=_build_breaker(CITY, city_policy, resolved_logger),
                remote_fetch=lambda query, _day: api.search(query),
                mapper=lambda raw, _query: map_city_search(raw),
                payload_type=tuple[CityMatch, ...],
                ttl_seconds=city_policy.cache_ttl_seconds,
                logger=resolved_logger,
            )
        )

    @classmethod
    @asynccontextmanager
    async def from_settings(
        cls,
        settings: GatewaySettings,
        *,
        logger: StructuredLogger | None = None,
    ) -> AsyncIterator[WeatherGateway]:
        """Build a gateway with its own HTTP and Redis clients.

        Both clients are closed when the context exits. Without an explicit
        ``logger`` the process logging is configured from ``settings.log_level``.
        """
        if logger is None:
            logger = configure_structlog(log_level=settings.log_level)
        store = RedisCacheStore.from_url(
            settings.redis_url, socket_timeout=settings.http_timeout_seconds
        )
        try:
            async with httpx.AsyncClient(
                timeout=settings.http_timeout_seconds
            ) as http_client:
                api = WeatherApiClient(
                    client=http_client,
                    api_uri=settings.api_uri,
                    api_key=settings.api_key,
                )
                yield cls(
                    api=api,
                    store=store,
                    weather_policy=settings.weather,
                    city_policy=settings.city,
                    logger=logger,
                )
        finally:
            await store.aclose()

    async def get_weather(
        self, city: str, day: date | None = None
    ) -> FetchOutcome[DailyForecast]:
        """Resolve the hourly forecast for ``city`` on ``day`` (UTC today)."""
        return await self.weather.fetch(city, day=day)

    async def search_cities(self, query: str) -> FetchOutcome[tuple[CityMatch, ...]]:
        """Resolve candidate locations for ``query``."""
        return await self.city.fetch(query)

    async def breaker_status(self) -> dict[str, str]:
        """Return each resource type's breaker state for health endpoints."""
        return {
            WEATHER: str(await self.weather.status()),
            CITY: str(await self.city.status()),
        }
