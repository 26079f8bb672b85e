"""Map raw provider payloads into normalized records.

Mapping never fails: absent or mistyped fields fall back to ``""``, ``0`` or
``False`` so a malformed-but-parseable payload degrades instead of aborting
the fetch.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from weather_gateway.models import CityMatch, DailyForecast, HourlyWeather

_LOCAL_TIME_FORMAT = "%Y-%m-%d %H:%M"


def _section(payload: object, key: str) -> Mapping[str, object]:
    if not isinstance(payload, Mapping):
        return {}
    value = payload.get(key)
    if isinstance(value, Mapping):
        return value
    return {}


def _text(payload: Mapping[str, object], key: str) -> str:
    value = payload.get(key)
    if isinstance(value, str):
        return value
    return ""


def _number(payload: Mapping[str, object], key: str) -> float:
    value = payload.get(key)
    if not isinstance(value, (bool, int, float, str)):
        return 0.0
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def _integer(payload: Mapping[str, object], key: str) -> int:
    return int(_number(payload, key))


def _icon_url(icon: str) -> str:
    if icon.startswith("//"):
        return f"https:{icon}"
    return icon


def format_timestamp(moment: datetime) -> str:
    """Render a timestamp in the canonical ``YYYY-MM-DDTHH:MM:SSZ`` form."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _timezone(tz_id: str) -> ZoneInfo | None:
    if not tz_id:
        return None
    try:
        return ZoneInfo(tz_id)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def _last_updated(current: Mapping[str, object], tz_id: str) -> str:
    epoch = current.get("last_updated_epoch")
    if isinstance(epoch, (int, float)) and not isinstance(epoch, bool):
        try:
            return format_timestamp(datetime.fromtimestamp(epoch, UTC))
        except (OverflowError, OSError, ValueError):
            return ""

    local_text = _text(current, "last_updated")
    if not local_text:
        return ""
    try:
        local = datetime.strptime(local_text, _LOCAL_TIME_FORMAT)
    except ValueError:
        return ""
    zone = _timezone(tz_id)
    return format_timestamp(local.replace(tzinfo=zone or UTC))


def _hour_of(time_text: str) -> int:
    try:
        return datetime.strptime(time_text, _LOCAL_TIME_FORMAT).hour
    except ValueError:
        return 0


def map_hour(raw: object) -> HourlyWeather:
    """Map one entry of the provider's hourly list."""
    if not isinstance(raw, Mapping):
        return HourlyWeather()
    condition = _section(raw, "condition")
    return HourlyWeather(
        hour=_hour_of(_text(raw, "time")),
        temperature=_number(raw, "temp_c"),
        condition=_text(condition, "text"),
        condition_icon=_icon_url(_text(condition, "icon")),
        wind_kph=_number(raw, "wind_kph"),
        wind_dir=_text(raw, "wind_dir"),
        humidity=_integer(raw, "humidity"),
        precip_mm=_number(raw, "precip_mm"),
        cloud=_integer(raw, "cloud"),
        feelslike=_number(raw, "feelslike_c"),
        will_it_rain=bool(_integer(raw, "will_it_rain")),
        chance_of_rain=_integer(raw, "chance_of_rain"),
        uv=_number(raw, "uv"),
    )


def map_forecast(raw: object, *, city_hint: str = "") -> DailyForecast:
    """Map a ``forecast.json`` payload into a ``DailyForecast``.

    Only the first forecast day is used. ``city_hint`` fills ``city`` when the
    provider omits the location name.
    """
    location = _section(raw, "location")
    current = _section(raw, "current")
    forecast = _section(raw, "forecast")

    days = forecast.get("forecastday")
    first_day: Mapping[str, object] = {}
    if isinstance(days, list) and days and isinstance(days[0], Mapping):
        first_day = days[0]

    astro = _section(first_day, "astro")
    hours = first_day.get("hour")
    weather = tuple(map_hour(item) for item in hours) if isinstance(hours, list) else ()

    return DailyForecast(
        city=_text(location, "name") or city_hint,
        region=_text(location, "region"),
        country=_text(location, "country"),
        lat=_number(location, "lat"),
        lon=_number(location, "lon"),
        date=_text(first_day, "date"),
        last_updated=_last_updated(current, _text(location, "tz_id")),
        sunrise=_text(astro, "sunrise"),
        sunset=_text(astro, "sunset"),
        weather=weather,
    )


def map_city(raw: object) -> CityMatch:
    """Map one entry of a ``search.json`` payload."""
    if not isinstance(raw, Mapping):
        return CityMatch()
    return CityMatch(
        id=_integer(raw, "id"),
        name=_text(raw, "name"),
        region=_text(raw, "region"),
        country=_text(raw, "country"),
        lat=_number(raw, "lat"),
        lon=_number(raw, "lon"),
        url=_text(raw, "url"),
    )


def map_city_search(raw: object) -> tuple[CityMatch, ...]:
    """Map a ``search.json`` payload into candidate matches."""
    if not isinstance(raw, list):
        return ()
    return tuple(map_city(item) for item in raw)
