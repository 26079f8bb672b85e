from __future__ import annotations

from datetime import date

import httpx

from weather_gateway.errors import RemoteFetchError

FORECAST_PATH = "/forecast.json"
SEARCH_PATH = "/search.json"


class WeatherApiClient:
    """Thin client for a weatherapi.com-compatible data provider.

    Every failure mode of the provider (transport errors, non-2xx statuses,
    bodies that are not the expected JSON shape) surfaces as
    ``RemoteFetchError``. Retrying is deliberately left to callers.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        api_uri: str,
        api_key: str,
    ) -> None:
        """Create a provider client.

        Args:
            client: Shared async HTTP client.
            api_uri: Provider base URL, for example ``https://api.weatherapi.com/v1``.
            api_key: Provider API key sent as the ``key`` query parameter.
        """
        self._client = client
        self._base_url = api_uri.rstrip("/")
        self._api_key = api_key

    async def forecast(self, city: str, day: date | None) -> dict[str, object]:
        """Fetch the one-day hourly forecast for ``city``."""
        params: dict[str, str] = {"key": self._api_key, "q": city, "days": "1"}
        if day is not None:
            params["dt"] = day.isoformat()
        payload = await self._get_json(FORECAST_PATH, params)
        if not isinstance(payload, dict):
            raise RemoteFetchError("forecast response is not a JSON object.")
        return payload

    async def search(self, query: str) -> list[object]:
        """Fetch candidate locations matching ``query``."""
        payload = await self._get_json(SEARCH_PATH, {"key": self._api_key, "q": query})
        if not isinstance(payload, list):
            raise RemoteFetchError("search response is not a JSON array.")
        return payload

    async def _get_json(self, path: str, params: dict[str, str]) -> object:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.get(url, params=params)
        except httpx.RequestError as exc:
            raise RemoteFetchError(f"request to {path} failed: {exc}") from exc

        if not response.is_success:
            raise RemoteFetchError(
                f"provider request failed with status {response.status_code}: "
                f"{summarize_provider_error(response)}",
                http_status=response.status_code,
                response_body=response.text,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise RemoteFetchError(
                f"{path} response is not valid JSON.",
                http_status=response.status_code,
                response_body=response.text,
            ) from exc


def summarize_provider_error(response: httpx.Response) -> str:
    """Create a concise summary from a provider error response."""
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            code = error.get("code")
            message = error.get("message")
            if isinstance(code, int) and isinstance(message, str) and message:
                return f"provider error {code}: {message}"
    return response.reason_phrase
