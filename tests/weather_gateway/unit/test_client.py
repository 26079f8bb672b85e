from __future__ import annotations

from datetime import date

import httpx
import pytest
from pytest_httpx import HTTPXMock

from weather_gateway.client import WeatherApiClient
from weather_gateway.errors import RemoteFetchError

pytestmark = pytest.mark.asyncio

_API_URI = "https://api.example.com/v1/"


def _build_client(http_client: httpx.AsyncClient) -> WeatherApiClient:
    return WeatherApiClient(client=http_client, api_uri=_API_URI, api_key="secret")


async def test_forecast_sends_city_and_date(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(method="GET", json={"location": {"name": "London"}})

    async with httpx.AsyncClient() as http_client:
        payload = await _build_client(http_client).forecast("London", date(2025, 7, 24))

    assert payload == {"location": {"name": "London"}}
    request = httpx_mock.get_requests()[0]
    assert request.url.path == "/v1/forecast.json"
    assert dict(request.url.params) == {
        "key": "secret",
        "q": "London",
        "days": "1",
        "dt": "2025-07-24",
    }


async def test_forecast_without_date_omits_dt(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(method="GET", json={})

    async with httpx.AsyncClient() as http_client:
        await _build_client(http_client).forecast("London", None)

    request = httpx_mock.get_requests()[0]
    assert "dt" not in request.url.params


async def test_search_returns_candidate_list(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(method="GET", json=[{"name": "London"}])

    async with httpx.AsyncClient() as http_client:
        payload = await _build_client(http_client).search("Lon")

    assert payload == [{"name": "London"}]
    request = httpx_mock.get_requests()[0]
    assert request.url.path == "/v1/search.json"
    assert request.url.params["q"] == "Lon"


async def test_non_success_status_raises_with_provider_summary(
    httpx_mock: HTTPXMock,
) -> None:
    httpx_mock.add_response(
        method="GET",
        status_code=400,
        json={"error": {"code": 1006, "message": "No matching location found."}},
    )

    async with httpx.AsyncClient() as http_client:
        with pytest.raises(RemoteFetchError) as excinfo:
            await _build_client(http_client).forecast("Atlantis", None)

    assert excinfo.value.http_status == 400
    assert "provider error 1006: No matching location found." in str(excinfo.value)
    assert excinfo.value.response_body is not None


async def test_server_error_without_json_uses_reason_phrase(
    httpx_mock: HTTPXMock,
) -> None:
    httpx_mock.add_response(method="GET", status_code=503, text="down")

    async with httpx.AsyncClient() as http_client:
        with pytest.raises(RemoteFetchError) as excinfo:
            await _build_client(http_client).search("London")

    assert excinfo.value.http_status == 503
    assert "Service Unavailable" in str(excinfo.value)


async def test_transport_error_raises_remote_fetch_error(
    httpx_mock: HTTPXMock,
) -> None:
    httpx_mock.add_exception(httpx.ConnectError("connection refused"))

    async with httpx.AsyncClient() as http_client:
        with pytest.raises(RemoteFetchError) as excinfo:
            await _build_client(http_client).forecast("London", None)

    assert excinfo.value.http_status is None
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


async def test_invalid_json_body_raises_remote_fetch_error(
    httpx_mock: HTTPXMock,
) -> None:
    httpx_mock.add_response(method="GET", text="<html>oops</html>")

    async with httpx.AsyncClient() as http_client:
        with pytest.raises(RemoteFetchError, match="not valid JSON"):
            await _build_client(http_client).forecast("London", None)


async def test_wrong_top_level_shape_raises_remote_fetch_error(
    httpx_mock: HTTPXMock,
) -> None:
    httpx_mock.add_response(method="GET", json=[])
    httpx_mock.add_response(method="GET", json={"error": {"code": 1003}})

    async with httpx.AsyncClient() as http_client:
        client = _build_client(http_client)
        with pytest.raises(RemoteFetchError, match="JSON object"):
            await client.forecast("London", None)
        with pytest.raises(RemoteFetchError, match="JSON array"):
            await client.search("London")
