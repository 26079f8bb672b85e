"""Normalized records produced by the response mapper.

Records are frozen so a cached payload and the payload handed to the caller
are interchangeable.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class HourlyWeather(_Record):
    """One hour of a daily forecast."""

    hour: int = 0
    temperature: float = 0.0
    condition: str = ""
    condition_icon: str = ""
    wind_kph: float = 0.0
    wind_dir: str = ""
    humidity: int = 0
    precip_mm: float = 0.0
    cloud: int = 0
    feelslike: float = 0.0
    will_it_rain: bool = False
    chance_of_rain: int = 0
    uv: float = 0.0


class DailyForecast(_Record):
    """Hour-by-hour forecast for one location and one day."""

    city: str = ""
    region: str = ""
    country: str = ""
    lat: float = 0.0
    lon: float = 0.0
    date: str = ""
    last_updated: str = ""
    sunrise: str = ""
    sunset: str = ""
    weather: tuple[HourlyWeather, ...] = ()


class CityMatch(_Record):
    """One candidate location returned by a city search."""

    id: int = 0
    name: str = ""
    region: str = ""
    country: str = ""
    lat: float = 0.0
    lon: float = 0.0
    url: str = ""
