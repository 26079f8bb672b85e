from __future__ import annotations

from datetime import date

import httpx
import pytest
from pytest_httpx import HTTPXMock

from tests.weather_gateway.support.fakes import FakeLogger, RecordingCacheStore
from weather_gateway.cache import RedisCacheStore
from weather_gateway.circuit_breaker import CircuitOpenError
from weather_gateway.client import WeatherApiClient
from weather_gateway.errors import UpstreamUnavailableError
from weather_gateway.gateway import WeatherGateway
from weather_gateway.models import CityMatch
from weather_gateway.orchestrator import FetchOrigin
from weather_gateway.settings import CityPolicy, GatewaySettings, WeatherPolicy

pytestmark = pytest.mark.asyncio

_DAY = date(2025, 7, 24)

_FORECAST_BODY: dict[str, object] = {
    "location": {"name": "London", "country": "United Kingdom", "tz_id": "UTC"},
    "current": {"last_updated_epoch": 1753352100},
    "forecast": {
        "forecastday": [
            {
                "date": "2025-07-24",
                "astro": {"sunrise": "05:13 AM", "sunset": "09:00 PM"},
                "hour": [
                    {"time": "2025-07-24 09:00", "temp_c": 19.5, "condition": {"text": "Sunny"}},
                ],
            }
        ]
    },
}


def _build_gateway(
    http_client: httpx.AsyncClient,
    store: RecordingCacheStore,
    logger: FakeLogger,
    *,
    weather_policy: WeatherPolicy | None = None,
) -> WeatherGateway:
    return WeatherGateway(
        api=WeatherApiClient(
            client=http_client, api_uri="https://api.example.com/v1", api_key="secret"
        ),
        store=store,
        weather_policy=WeatherPolicy() if weather_policy is None else weather_policy,
        city_policy=CityPolicy(),
        logger=logger,
    )


async def test_get_weather_serves_live_then_cached(
    httpx_mock: HTTPXMock,
    recording_store: RecordingCacheStore,
    fake_logger: FakeLogger,
) -> None:
    httpx_mock.add_response(method="GET", json=_FORECAST_BODY)

    async with httpx.AsyncClient() as http_client:
        gateway = _build_gateway(http_client, recording_store, fake_logger)
        first = await gateway.get_weather(" London ", _DAY)
        second = await gateway.get_weather("LONDON", _DAY)

    assert first.origin is FetchOrigin.LIVE
    assert second.origin is FetchOrigin.CACHE
    assert first.payload == second.payload
    assert first.payload.city == "London"
    assert first.payload.weather[0].hour == 9
    assert first.payload.weather[0].temperature == 19.5
    assert len(httpx_mock.get_requests()) == 1
    assert httpx_mock.get_requests()[0].url.params["q"] == "London"
    assert [(key, ttl) for key, _, ttl in recording_store.writes] == [
        ("weather:london:2025-07-24", 3_600)
    ]


async def test_search_cities_caches_with_city_ttl(
    httpx_mock: HTTPXMock,
    recording_store: RecordingCacheStore,
    fake_logger: FakeLogger,
) -> None:
    httpx_mock.add_response(
        method="GET",
        json=[
            {
                "id": 2801268,
                "name": "London",
                "region": "City of London, Greater London",
                "country": "United Kingdom",
                "lat": 51.52,
                "lon": -0.11,
                "url": "london-city-of-london-greater-london-united-kingdom",
            }
        ],
    )

    async with httpx.AsyncClient() as http_client:
        gateway = _build_gateway(http_client, recording_store, fake_logger)
        outcome = await gateway.search_cities("Lon")

    assert outcome.origin is FetchOrigin.LIVE
    assert outcome.payload == (
        CityMatch(
            id=2801268,
            name="London",
            region="City of London, Greater London",
            country="United Kingdom",
            lat=51.52,
            lon=-0.11,
            url="london-city-of-london-greater-london-united-kingdom",
        ),
    )
    assert [(key, ttl) for key, _, ttl in recording_store.writes] == [
        ("city:lon", 604_800)
    ]
    assert dict(httpx_mock.get_requests()[0].url.params) == {"key": "secret", "q": "Lon"}


async def test_resource_breakers_are_independent(
    httpx_mock: HTTPXMock,
    recording_store: RecordingCacheStore,
    fake_logger: FakeLogger,
) -> None:
    httpx_mock.add_response(method="GET", status_code=503)
    httpx_mock.add_response(method="GET", json=[])

    async with httpx.AsyncClient() as http_client:
        gateway = _build_gateway(
            http_client,
            recording_store,
            fake_logger,
            weather_policy=WeatherPolicy(max_failures=1),
        )
        with pytest.raises(UpstreamUnavailableError):
            await gateway.get_weather("London", _DAY)

        assert await gateway.breaker_status() == {"weather": "open", "city": "closed"}

        with pytest.raises(UpstreamUnavailableError) as excinfo:
            await gateway.get_weather("Paris", _DAY)
        assert isinstance(excinfo.value.__cause__, CircuitOpenError)

        outcome = await gateway.search_cities("nowhere")

    assert outcome.payload == ()
    assert len(httpx_mock.get_requests()) == 2
    assert "circuit_breaker.state_changed" in fake_logger.events
    assert "circuit_breaker.call_rejected" in fake_logger.events


async def test_from_settings_builds_and_closes_clients(
    monkeypatch: pytest.MonkeyPatch,
    fake_logger: FakeLogger,
) -> None:
    closed: list[bool] = []

    async def _fake_aclose(self: RedisCacheStore) -> None:
        closed.append(True)

    monkeypatch.setattr(RedisCacheStore, "aclose", _fake_aclose)
    settings = GatewaySettings(api_uri="https://api.example.com/v1", api_key="secret")

    async with WeatherGateway.from_settings(settings, logger=fake_logger) as gateway:
        assert await gateway.breaker_status() == {"weather": "closed", "city": "closed"}
        assert gateway.weather.ttl_seconds == 3_600
        assert gateway.city.ttl_seconds == 604_800

    assert closed == [True]
